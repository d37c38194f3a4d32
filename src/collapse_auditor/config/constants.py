"""
Centralized configuration for the Portfolio Collapse Auditor

This module defines all magic numbers, thresholds, and policy values used
throughout the auditor. Centralizing these values makes it easier to tune
the scoring and understand decision boundaries.

Every figure here is a fixed cut-point: risk is derived from static
category membership and allocation percentages, never from price history.
"""

# ============================================================================
# HOLDINGS PARSING
# ============================================================================

TICKER_PATTERN = r"[A-Z]{1,5}(?:\.[A-Z]{1,2})?"
"""Ticker shape: 1-5 uppercase letters, optional '.' plus 1-2 letters (BRK.A)"""

WEIGHT_PATTERN = r"(\d+(?:\.\d+)?)\s*%"
"""Percentage weight, e.g. '50%', '10.8 %'"""

ENTRY_SEPARATORS = r"[,\n\t]+"
"""Holdings are separated by commas, newlines, or tabs"""

APPROXIMATION_MARKER = "~"
"""Leading marker for human-estimated weights ('~10.8%'), stripped before parsing"""

MIN_WEIGHT_PCT = 0.1
"""Lowest weight a holding may carry after clamping"""

MAX_WEIGHT_PCT = 100.0
"""Highest weight a holding may carry after clamping"""

FALLBACK_NOISE_WORDS: frozenset[str] = frozenset({
    "A", "I", "AN", "AND", "THE", "MY", "OF", "IN", "TO", "FOR", "WITH",
    "FROM", "THIS", "THAT", "ALL", "ETF", "ETFS", "USD", "IRA", "ROTH",
    "TOTAL", "CASH", "FUND", "FUNDS", "STOCK", "STOCKS", "BOND", "BONDS",
    "NOTE", "TODO", "DATA", "RISK", "BUY", "SELL", "HOLD", "US", "IS", "OR", "AS",
})
"""Uppercase words the free-text fallback pass never treats as tickers"""

# ============================================================================
# CLASSIFICATION
# ============================================================================

DEFAULT_SECTOR = "Other"
"""Sector label for tickers missing from the sector lookup"""

ETF_HINT_SUBSTRINGS: tuple[str, ...] = (
    "ETF", "IDX", "BND", "BOND", "TIP", "DIV", "GLD", "REIT", "TRS", "MUNI",
)
"""Substrings that suggest a fund rather than a single company"""

MUTUAL_FUND_SUFFIX = "X"
"""Five-letter tickers ending in X are mutual funds (VTSAX, FXAIX)"""

# ============================================================================
# REDUNDANCY DETECTION
# ============================================================================

HIDDEN_OVERLAP_MIN_SECTOR_ETFS = 3
"""Sector ETFs held beside a broad fund before they count as hidden overlap"""

# ============================================================================
# RISK SCORING
# ============================================================================

TECH_CONCENTRATION_HIGH_PCT = 40.0
"""Technology weight above this drives structure/correlation/volatility to high"""

TECH_CONCENTRATION_DIVERSIFIED_MAX_PCT = 50.0
"""Technology weight must stay below this for a portfolio to count as diversified"""

BONDS_CONCENTRATION_DEFENSIVE_PCT = 30.0
"""Bond weight above this lowers correlation and volatility risk"""

DIVERSIFIED_MIN_HOLDINGS = 4
"""Minimum holding count for the diversified structure score"""

DIVERSIFIED_MIN_SECTORS = 3
"""Minimum distinct sector labels for the diversified structure score"""

STRUCTURE_SCORE_CONCENTRATED = 7
STRUCTURE_SCORE_DIVERSIFIED = 3
STRUCTURE_SCORE_DEFAULT = 5

CORRELATION_SCORE_CONCENTRATED = 8
CORRELATION_SCORE_DEFENSIVE = 3
CORRELATION_SCORE_DEFAULT = 5

VOLATILITY_SCORE_CONCENTRATED = 7
VOLATILITY_SCORE_DEFENSIVE = 3
VOLATILITY_SCORE_DEFAULT = 4

SIGNAL_QUALITY_BASELINE = 2
"""Placeholder score until trading-signal telemetry exists; not derived from holdings"""

NARRATIVE_DRIFT_BASELINE = 3
"""Placeholder score until allocation-history telemetry exists; not derived from holdings"""

RISK_LABEL_LOW_MAX = 3
"""Scores ≤ 3 are 'Low risk'"""

RISK_LABEL_MODERATE_MAX = 6
"""Scores 4-6 are 'Moderate risk'; anything above is 'High risk'"""

# ============================================================================
# SIMPLIFICATION SCORING
# ============================================================================

SIMPLIFICATION_START = 10.0
"""Score before any overlap penalty is applied"""

SIMPLIFICATION_MIN = 1.0
SIMPLIFICATION_MAX = 10.0

SIMPLICITY_STRENGTHS_MIN_SCORE = 7.0
"""Explanation lists positive factors only when the score reaches this"""

HOLDING_COUNT_PENALTIES: tuple[tuple[int, float], ...] = (
    (20, 1.0),
    (15, 0.5),
)
"""(count threshold, penalty): first threshold exceeded wins"""

COMPACT_PORTFOLIO_MAX_HOLDINGS = 10
"""Portfolios at or below this holding count earn a simplicity factor"""

# ============================================================================
# RECOMMENDATIONS
# ============================================================================

MAX_RECOMMENDATIONS = 6
"""Upper bound on consolidation/rebalance recommendations per analysis"""

LOW_BOND_THRESHOLD_PCT = 10.0
"""Bond weight below this (with equities held) triggers a buy-bonds action"""

LOW_BOND_TARGET_PCT = 10.0
"""Bond weight the low-bond action restores"""

INTERNATIONAL_MIN_PCT = 5.0
"""International weight below this is treated as a home-country tilt"""

INTERNATIONAL_TARGET_PCT = 10.0
"""International weight the misalignment action restores"""

US_EQUITY_TILT_MIN_PCT = 40.0
"""U.S. equity weight required before a missing international sleeve is flagged"""

SINGLE_STOCK_MAX_PCT = 10.0
"""Individual stocks above this weight are trimmed back to it"""

SAVINGS_REFERENCE_PORTFOLIO = 100_000
"""Dollar portfolio size used to express fee savings"""

DEFAULT_EXPENSE_RATIO_PCT = 0.20
"""Expense ratio assumed for funds missing from the fee table"""

# ============================================================================
# EXCEL OUTPUT FORMATTING
# ============================================================================

EXCEL_COLORS = {
    "light_green": "90EE90",
    "yellow": "FFFF00",
    "orange": "FFA500",
    "red": "FF0000",
    "white": "FFFFFF",
}
"""Color palette for Excel output formatting"""

EXCEL_COLUMN_WIDTH_MAX = 60
"""Widest auto-sized column in Excel output"""
