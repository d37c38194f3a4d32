"""
Auditor Tool: Category Registry
Static ticker-to-category membership, sector lookup, expense ratios and
flagship preference orders, bundled into an injectable CategoryRegistry.

Membership is fixed at construction time; nothing here queries a market
data service. The individual-stock classification is a named, lowest
priority fallback rule so its heuristic behavior can be tested alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional

from collapse_auditor.config.constants import (
    DEFAULT_EXPENSE_RATIO_PCT,
    DEFAULT_SECTOR,
    ETF_HINT_SUBSTRINGS,
    MUTUAL_FUND_SUFFIX,
)
from collapse_auditor.exceptions import RegistryConfigError
from collapse_auditor.schemas.holdings_output import is_valid_category, sector_etf_tag

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Category Membership Tables
# ---------------------------------------------------------------------------

CATEGORY_MEMBERS: dict[str, tuple[str, ...]] = {
    "broad-market": ("FZROX", "VTI", "VTSAX", "ITOT", "SPLG", "SCHB", "FSKAX", "SWTSX"),
    "sp500-index": ("VOO", "IVV", "SPY", "FXAIX", "SWPPX", "VFIAX"),
    "nasdaq100-index": ("QQQ", "QQQM"),
    "bond-aggregate-us": ("BND", "AGG", "FBND", "VBTLX", "FXNAX", "SCHZ", "SPAB", "IUSB"),
    "bond-global": ("BNDW", "BNDX", "IAGG"),
    "treasury-short": ("SGOV", "VGSH", "SHV", "BIL", "SHY", "SCHO"),
    "tips": ("VTIP", "TIP", "SCHP", "STIP"),
    "international-equity": (
        "VXUS", "VTIAX", "IXUS", "FZILX", "FTIHX", "VEA", "VWO", "IEFA", "EFA", "SCHF", "VEU",
    ),
    "dividend-factor": (
        "SCHD", "VYM", "VYMI", "VIG", "DGRO", "HDV", "DVY", "SDY", "NOBL", "SPYD", "FDVV",
    ),
    "quality-factor": ("QUAL", "SPHQ", "JQUA", "DGRW"),
    "low-volatility-factor": ("USMV", "SPLV"),
    "gold": ("GLD", "GLDM", "IAU", "SGOL"),
    "real-estate": ("VNQ", "SCHH", "XLRE", "USRT"),
    "commodity": ("DBC", "PDBC", "GSG", "DJP"),
}

# Sector ETFs, tagged "sector-etf:<sector>"
SECTOR_ETFS: dict[str, tuple[str, ...]] = {
    "Technology": ("XLK", "VGT", "FTEC", "IYW", "SMH", "SOXX"),
    "Healthcare": ("XLV", "VHT", "IYH"),
    "Finance": ("XLF", "VFH", "IYF", "KBE"),
    "Energy": ("XLE", "VDE"),
    "Utilities": ("XLU",),
    "Industrials": ("XLI",),
    "Consumer": ("XLY", "XLP"),
    "Communication": ("XLC",),
}


# ---------------------------------------------------------------------------
# Sector Lookup
# ---------------------------------------------------------------------------

SECTOR_LOOKUP: dict[str, str] = {
    # TECHNOLOGY
    "AAPL": "Technology", "MSFT": "Technology", "NVDA": "Technology",
    "TSLA": "Technology", "AMZN": "Technology", "GOOGL": "Technology",
    "GOOG": "Technology", "META": "Technology", "AVGO": "Technology",
    "ORCL": "Technology", "CRM": "Technology", "ADBE": "Technology",
    "AMD": "Technology", "INTC": "Technology", "CSCO": "Technology",
    "QCOM": "Technology", "TXN": "Technology", "IBM": "Technology",
    "NOW": "Technology",
    "XLK": "Technology", "VGT": "Technology", "FTEC": "Technology",
    "IYW": "Technology", "SMH": "Semiconductors", "SOXX": "Semiconductors",
    # FINANCE
    "JPM": "Finance", "GS": "Finance", "WFC": "Finance", "BAC": "Finance",
    "MS": "Finance", "C": "Finance", "SCHW": "Finance", "V": "Finance",
    "MA": "Finance", "AXP": "Finance", "BLK": "Finance",
    "BRK.A": "Finance", "BRK.B": "Finance",
    "XLF": "Finance", "VFH": "Finance", "IYF": "Finance", "KBE": "Finance",
    # HEALTHCARE
    "JNJ": "Healthcare", "UNH": "Healthcare", "LLY": "Healthcare",
    "PFE": "Healthcare", "MRK": "Healthcare", "ABBV": "Healthcare",
    "TMO": "Healthcare", "ABT": "Healthcare", "AMGN": "Healthcare",
    "XLV": "Healthcare", "VHT": "Healthcare", "IYH": "Healthcare",
    # ENERGY
    "XOM": "Energy", "CVX": "Energy", "COP": "Energy",
    "XLE": "Energy", "VDE": "Energy",
    # CONSUMER
    "WMT": "Consumer", "COST": "Consumer", "PG": "Consumer", "KO": "Consumer",
    "PEP": "Consumer", "HD": "Consumer", "MCD": "Consumer", "NKE": "Consumer",
    "XLY": "Consumer", "XLP": "Consumer",
    # OTHER SECTOR ETFS
    "XLU": "Utilities", "XLI": "Industrials", "XLC": "Communication",
    # BONDS
    "BND": "Bonds", "AGG": "Bonds", "FBND": "Bonds", "VBTLX": "Bonds",
    "FXNAX": "Bonds", "SCHZ": "Bonds", "SPAB": "Bonds", "IUSB": "Bonds",
    "BNDW": "Bonds", "BNDX": "Bonds", "IAGG": "Bonds",
    "SGOV": "Short-Term Bonds", "VGSH": "Short-Term Bonds", "SHV": "Short-Term Bonds",
    "BIL": "Short-Term Bonds", "SHY": "Short-Term Bonds", "SCHO": "Short-Term Bonds",
    "VTIP": "Inflation-Protected Bonds", "TIP": "Inflation-Protected Bonds",
    "SCHP": "Inflation-Protected Bonds", "STIP": "Inflation-Protected Bonds",
    # BROAD MARKET
    "FZROX": "Broad Market", "VTI": "Broad Market", "VTSAX": "Broad Market",
    "ITOT": "Broad Market", "SPLG": "Broad Market", "SCHB": "Broad Market",
    "FSKAX": "Broad Market", "SWTSX": "Broad Market",
    "VOO": "Broad Market", "IVV": "Broad Market", "SPY": "Broad Market",
    "FXAIX": "Broad Market", "SWPPX": "Broad Market", "VFIAX": "Broad Market",
    "QQQ": "Nasdaq-100", "QQQM": "Nasdaq-100",
    # INTERNATIONAL
    "VXUS": "International", "VTIAX": "International", "IXUS": "International",
    "FZILX": "International", "FTIHX": "International", "VEA": "International",
    "VWO": "International", "IEFA": "International", "EFA": "International",
    "SCHF": "International", "VEU": "International",
    # FACTOR / INCOME
    "SCHD": "Dividend Equities", "VYM": "Dividend/Income", "VYMI": "Dividend/Income",
    "HDV": "Dividend/Income", "DVY": "Dividend/Income", "SDY": "Dividend/Income",
    "SPYD": "Dividend/Income", "FDVV": "Dividend/Income",
    "VIG": "Dividend/Quality", "DGRO": "Dividend/Quality", "NOBL": "Dividend/Quality",
    "QUAL": "Quality", "SPHQ": "Quality", "JQUA": "Quality", "DGRW": "Quality",
    "USMV": "Low-Volatility Equities", "SPLV": "Low-Volatility Equities",
    # REAL ASSETS
    "GLD": "Gold", "GLDM": "Gold", "IAU": "Gold", "SGOL": "Gold",
    "DBC": "Commodities", "PDBC": "Commodities", "GSG": "Commodities", "DJP": "Commodities",
    "VNQ": "Real Estate", "SCHH": "Real Estate", "XLRE": "Real Estate", "USRT": "Real Estate",
}


# ---------------------------------------------------------------------------
# Keep-Selection Tables
# ---------------------------------------------------------------------------

# Annual expense ratio, percent
EXPENSE_RATIOS: dict[str, float] = {
    "FZROX": 0.00, "VTI": 0.03, "VTSAX": 0.04, "ITOT": 0.03, "SPLG": 0.02,
    "SCHB": 0.03, "FSKAX": 0.015, "SWTSX": 0.03,
    "QQQ": 0.20, "QQQM": 0.15,
    "VOO": 0.03, "IVV": 0.03, "SPY": 0.0945, "FXAIX": 0.015,
}

# Categories where the cheapest fund is kept
FEE_SENSITIVE_CATEGORIES: tuple[str, ...] = ("broad-market", "nasdaq100-index")

# Preferred "keep" ticker per category, best first
FLAGSHIP_ORDER: dict[str, tuple[str, ...]] = {
    "sp500-index": ("VOO", "IVV", "FXAIX", "SPLG", "SPY"),
    "bond-aggregate-us": ("BND", "AGG", "FBND", "SCHZ"),
    "bond-global": ("BNDW", "BNDX", "IAGG"),
    "treasury-short": ("SGOV", "VGSH"),
    "tips": ("VTIP", "SCHP", "TIP"),
    "international-equity": ("VXUS", "IXUS", "VTIAX"),
    "dividend-factor": ("SCHD", "VYM"),
    "quality-factor": ("QUAL", "SPHQ"),
    "gold": ("GLDM", "IAU", "GLD"),
    "real-estate": ("VNQ", "SCHH"),
}


# ---------------------------------------------------------------------------
# Fallback Rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FallbackRule:
    """A heuristic classification applied only when no table matches."""

    name: str
    category: str
    predicate: Callable[[str], bool]

    def applies(self, ticker: str) -> bool:
        return self.predicate(ticker)


def looks_like_individual_stock(ticker: str) -> bool:
    """
    Shape heuristic separating single companies from funds.

    Conservative: an unknown ETF misread as a stock is worse than a stock
    left unclassified, because detectors only fire on confident matches.
    """
    if not 1 <= len(ticker) <= 5:
        return False
    if "." in ticker:
        return False
    if any(hint in ticker for hint in ETF_HINT_SUBSTRINGS):
        return False
    # VTSAX, FXAIX and friends
    if len(ticker) == 5 and ticker.endswith(MUTUAL_FUND_SUFFIX):
        return False
    return True


INDIVIDUAL_STOCK_RULE = FallbackRule(
    name="individual-stock-shape",
    category="individual-stock",
    predicate=looks_like_individual_stock,
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class CategoryRegistry:
    """
    Injectable taxonomy: category tag -> tickers, ticker -> sector, plus the
    fee and flagship tables the recommender uses to choose a "keep" ticker.

    Args:
        members: Mapping of category tag to member tickers.
        sectors: Mapping of ticker to descriptive sector label.
        fallback_rules: Rules tried in order when a ticker matches no table.
        expense_ratios: Ticker -> annual expense ratio (percent).
        flagship_order: Category tag -> preferred tickers, best first.
        default_expense_ratio: Fee assumed for tickers missing from the table.

    Raises:
        RegistryConfigError: On an unknown category tag or a malformed table.
    """

    def __init__(
        self,
        members: Mapping[str, Iterable[str]],
        sectors: Optional[Mapping[str, str]] = None,
        fallback_rules: Iterable[FallbackRule] = (INDIVIDUAL_STOCK_RULE,),
        expense_ratios: Optional[Mapping[str, float]] = None,
        flagship_order: Optional[Mapping[str, Iterable[str]]] = None,
        default_expense_ratio: float = DEFAULT_EXPENSE_RATIO_PCT,
    ):
        self._members: dict[str, frozenset[str]] = {}
        self._index: dict[str, list[str]] = {}
        for tag, tickers in members.items():
            if not is_valid_category(tag):
                raise RegistryConfigError(f"Unknown category tag '{tag}'")
            normalized = frozenset(t.strip().upper() for t in tickers)
            if not normalized:
                raise RegistryConfigError(f"Category '{tag}' has no member tickers")
            self._members[tag] = normalized
            for ticker in normalized:
                self._index.setdefault(ticker, []).append(tag)

        self._sectors = {t.strip().upper(): s for t, s in (sectors or {}).items()}

        self._fallback_rules = tuple(fallback_rules)
        for rule in self._fallback_rules:
            if not is_valid_category(rule.category):
                raise RegistryConfigError(
                    f"Fallback rule '{rule.name}' targets unknown category '{rule.category}'"
                )

        self._expense_ratios = dict(expense_ratios or {})
        if default_expense_ratio < 0 or any(v < 0 for v in self._expense_ratios.values()):
            raise RegistryConfigError("Expense ratios must be non-negative")
        self._default_expense_ratio = default_expense_ratio

        self._flagship_order: dict[str, tuple[str, ...]] = {}
        for tag, order in (flagship_order or {}).items():
            if not is_valid_category(tag):
                raise RegistryConfigError(f"Flagship order for unknown category '{tag}'")
            self._flagship_order[tag] = tuple(order)

    # --- lookups ---

    @property
    def categories(self) -> list[str]:
        return list(self._members)

    @property
    def fallback_rules(self) -> tuple[FallbackRule, ...]:
        return self._fallback_rules

    def members(self, tag: str) -> frozenset[str]:
        return self._members.get(tag, frozenset())

    def table_categories(self, ticker: str) -> list[str]:
        """Categories from membership tables only, no fallback rules."""
        return sorted(self._index.get(ticker.strip().upper(), []))

    def fallback_category(self, ticker: str) -> Optional[str]:
        ticker = ticker.strip().upper()
        for rule in self._fallback_rules:
            if rule.applies(ticker):
                logger.debug(f"{ticker}: fallback rule '{rule.name}' -> {rule.category}")
                return rule.category
        return None

    def sector_for(self, ticker: str) -> str:
        return self._sectors.get(ticker.strip().upper(), DEFAULT_SECTOR)

    def all_tickers(self) -> list[str]:
        return sorted(self._index)

    def expense_ratio(self, ticker: str) -> float:
        return self._expense_ratios.get(ticker, self._default_expense_ratio)

    def flagship_order(self, tag: str) -> tuple[str, ...]:
        return self._flagship_order.get(tag, ())


def build_default_registry() -> CategoryRegistry:
    """Registry over the module-level tables."""
    members: dict[str, tuple[str, ...]] = dict(CATEGORY_MEMBERS)
    for sector, tickers in SECTOR_ETFS.items():
        members[sector_etf_tag(sector)] = tickers
    return CategoryRegistry(
        members=members,
        sectors=SECTOR_LOOKUP,
        expense_ratios=EXPENSE_RATIOS,
        flagship_order=FLAGSHIP_ORDER,
    )


DEFAULT_REGISTRY = build_default_registry()
