"""
Auditor Tool: Consolidation & Rebalancing Recommender
Turns redundancy findings into keep/sell consolidations and signed
buy/sell weight adjustments, then adds allocation checks (low bonds,
missing international, single-stock concentration).

Keep selection:
  - fee-sensitive categories (broad market, Nasdaq-100): lowest expense ratio
  - other categories: first held ticker in the flagship preference order
  - anything else: the first-listed ticker
Ties always go to input order, so the same input proposes the same keep.
Findings are consolidated in priority order and claim their tickers, so
a later suggestion never sells an earlier keep or re-sells a ticker.
"""

from __future__ import annotations

import logging
from typing import Optional

from collapse_auditor.config.constants import (
    INTERNATIONAL_MIN_PCT,
    INTERNATIONAL_TARGET_PCT,
    LOW_BOND_TARGET_PCT,
    LOW_BOND_THRESHOLD_PCT,
    MAX_RECOMMENDATIONS,
    SAVINGS_REFERENCE_PORTFOLIO,
    SINGLE_STOCK_MAX_PCT,
    US_EQUITY_TILT_MIN_PCT,
)
from collapse_auditor.schemas.holdings_output import Holding, sector_etf_tag
from collapse_auditor.schemas.recommendation_output import (
    PRIORITY_GROUPS,
    ConsolidationSuggestion,
    RebalanceAction,
    Recommendation,
    RecommendationOutput,
)
from collapse_auditor.schemas.redundancy_output import RedundancyFinding
from collapse_auditor.tools.category_registry import (
    DEFAULT_REGISTRY,
    FEE_SENSITIVE_CATEGORIES,
    CategoryRegistry,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Rule -> Priority Group
# ---------------------------------------------------------------------------

RULE_GROUPS: dict[str, str] = {
    "same-category:broad-market": "index_duplication",
    "same-category:sp500-index": "index_duplication",
    "same-category:nasdaq100-index": "index_duplication",
    "hidden-overlap": "index_duplication",
    "same-category:bond-aggregate-us": "bond_duplication",
    "bond-overlap": "bond_duplication",
    "same-category:treasury-short": "bond_duplication",
    "same-category:tips": "bond_duplication",
    "sector-cluster:technology": "sector_clustering",
    "sector-cluster:healthcare": "sector_clustering",
    "sector-cluster:finance": "sector_clustering",
    "same-category:international-equity": "international_misalignment",
    "same-category:dividend-factor": "factor_overlap",
    "factor-overlap": "factor_overlap",
    "same-category:gold": "factor_overlap",
    "same-category:real-estate": "factor_overlap",
}

DEFAULT_GROUP = "factor_overlap"
"""Group for findings from rules outside the default battery"""


def group_for(rule_id: str) -> str:
    return RULE_GROUPS.get(rule_id, DEFAULT_GROUP)


SAME_CATEGORY_PREFIX = "same-category:"
SECTOR_CLUSTER_PREFIX = "sector-cluster:"


# ---------------------------------------------------------------------------
# Keep Selection
# ---------------------------------------------------------------------------

def lowest_fee(tickers: list[str], registry: CategoryRegistry) -> str:
    """Cheapest ticker; min() keeps the first of equal fees."""
    return min(tickers, key=registry.expense_ratio)


def flagship(tickers: list[str], tag: str, registry: CategoryRegistry) -> Optional[str]:
    """First ticker of the category's preference order that is present in `tickers`."""
    for candidate in registry.flagship_order(tag):
        if candidate in tickers:
            return candidate
    return None


def choose_keep(
    finding: RedundancyFinding,
    holdings: dict[str, Holding],
    registry: CategoryRegistry,
) -> tuple[str, list[str]]:
    """
    Pick the ticker to keep for a finding.

    Returns:
        (keep, tickers to sell)
    """
    symbols = finding.symbols
    rule_id = finding.rule_id
    keep: Optional[str] = None
    candidates = symbols

    if rule_id.startswith(SAME_CATEGORY_PREFIX):
        tag = rule_id[len(SAME_CATEGORY_PREFIX):]
        if tag in FEE_SENSITIVE_CATEGORIES:
            keep = lowest_fee(symbols, registry)
        else:
            keep = flagship(symbols, tag, registry)

    elif rule_id == "bond-overlap":
        globals_ = [t for t in symbols if _has(holdings, t, "bond-global")]
        keep = flagship(globals_, "bond-global", registry) or (globals_[0] if globals_ else None)

    elif rule_id.startswith(SECTOR_CLUSTER_PREFIX):
        etf_tag = sector_etf_tag(rule_id[len(SECTOR_CLUSTER_PREFIX):])
        etfs = [t for t in symbols if _has(holdings, t, etf_tag)]
        keep = etfs[0] if etfs else None

    elif rule_id == "hidden-overlap":
        broad = [
            t for t in symbols
            if _has(holdings, t, "broad-market") or _has(holdings, t, "sp500-index")
        ]
        if broad:
            keep = lowest_fee(broad, registry)
            # Other broad funds are handled by the duplication rules
            candidates = [t for t in symbols if t == keep or t not in broad]

    elif rule_id == "factor-overlap":
        dividends = [t for t in symbols if _has(holdings, t, "dividend-factor")]
        keep = flagship(dividends, "dividend-factor", registry) or (dividends[0] if dividends else None)

    if keep is None:
        logger.debug(f"{rule_id}: no keep heuristic matched, keeping first-listed {symbols[0]}")
        keep = symbols[0]
    return keep, [t for t in candidates if t != keep]


def _has(holdings: dict[str, Holding], ticker: str, tag: str) -> bool:
    h = holdings.get(ticker)
    return h is not None and h.has_category(tag)


# ---------------------------------------------------------------------------
# Actions & Savings
# ---------------------------------------------------------------------------

def _fmt_pct(value: float) -> str:
    return f"{value:.1f}% of portfolio"


def sell_action(ticker: str, weight: float) -> RebalanceAction:
    return RebalanceAction(
        ticker=ticker, action="Sell", amount=_fmt_pct(weight), percentage=-round(weight, 2),
    )


def buy_action(ticker: str, weight: float) -> RebalanceAction:
    return RebalanceAction(
        ticker=ticker, action="Buy", amount=_fmt_pct(weight), percentage=round(weight, 2),
    )


def estimate_savings(
    keep: str,
    sold: list[tuple[str, float]],
    registry: CategoryRegistry,
) -> Optional[str]:
    """Annual fee saved per reference portfolio by moving `sold` into `keep`."""
    keep_fee = registry.expense_ratio(keep)
    dollars = sum(
        (registry.expense_ratio(t) - keep_fee) / 100 * (w / 100 * SAVINGS_REFERENCE_PORTFOLIO)
        for t, w in sold
    )
    if dollars <= 0:
        return None
    return f"~${dollars:,.0f}/year per ${SAVINGS_REFERENCE_PORTFOLIO:,} invested"


def consolidate(
    finding: RedundancyFinding,
    holdings: dict[str, Holding],
    registry: CategoryRegistry,
    kept: Optional[set[str]] = None,
    sold: Optional[set[str]] = None,
) -> Optional[Recommendation]:
    """
    Keep one ticker, sell the rest into it.

    `kept` and `sold` carry the decisions of higher-priority
    recommendations and are updated in place. A ticker already kept or
    already sold is never sold again. Returns None when the keep was
    already sold or nothing is left to sell.
    """
    kept = set() if kept is None else kept
    sold = set() if sold is None else sold

    keep, sell = choose_keep(finding, holdings, registry)
    if keep in sold:
        logger.debug(f"{finding.rule_id}: keep {keep} already sold, skipping")
        return None
    sell = [t for t in sell if t not in kept and t not in sold]
    if not sell:
        logger.debug(f"{finding.rule_id}: nothing left to sell into {keep}, skipping")
        return None
    kept.add(keep)
    sold.update(sell)

    weights = {t.ticker: t.weight for t in finding.tickers}
    sold_weights = [(t, weights[t]) for t in sell]

    savings = None
    if finding.rule_id.startswith(SAME_CATEGORY_PREFIX):
        tag = finding.rule_id[len(SAME_CATEGORY_PREFIX):]
        if tag in FEE_SENSITIVE_CATEGORIES:
            savings = estimate_savings(keep, sold_weights, registry)

    reason = f"{finding.reason} Keep {keep} and sell {', '.join(sell)}."

    actions = [sell_action(t, w) for t, w in sold_weights]
    actions.append(buy_action(keep, sum(w for _, w in sold_weights)))

    return Recommendation(
        group=group_for(finding.rule_id),
        rule_id=finding.rule_id,
        consolidation=ConsolidationSuggestion(
            category=finding.category,
            keep=keep,
            sell=sell,
            reason=reason,
            savings=savings,
        ),
        actions=actions,
    )


# ---------------------------------------------------------------------------
# Allocation Checks
# ---------------------------------------------------------------------------

def _preferred_fund(
    holdings: list[Holding],
    tag: str,
    registry: CategoryRegistry,
) -> Optional[str]:
    """Held fund of the category by flagship order, else the category's top flagship."""
    held = [h.ticker for h in holdings if h.has_category(tag)]
    order = registry.flagship_order(tag)
    return flagship(held, tag, registry) or (held[0] if held else None) or (order[0] if order else None)


def low_bond_check(holdings: list[Holding], registry: CategoryRegistry) -> Optional[Recommendation]:
    bonds = sum(h.weight for h in holdings if h.is_bond)
    has_equity = any(h.is_us_equity or h.has_category("international-equity") for h in holdings)
    if bonds >= LOW_BOND_THRESHOLD_PCT or not has_equity:
        return None
    fund = _preferred_fund(holdings, "bond-aggregate-us", registry)
    delta = round(LOW_BOND_TARGET_PCT - bonds, 2)
    if fund is None or delta <= 0:
        return None
    return Recommendation(
        group="low_bonds",
        rule_id="low-bonds",
        actions=[buy_action(fund, delta)],
    )


def international_check(holdings: list[Holding], registry: CategoryRegistry) -> Optional[Recommendation]:
    intl = sum(h.weight for h in holdings if h.has_category("international-equity"))
    us_equity = sum(h.weight for h in holdings if h.is_us_equity)
    if intl >= INTERNATIONAL_MIN_PCT or us_equity < US_EQUITY_TILT_MIN_PCT:
        return None
    fund = _preferred_fund(holdings, "international-equity", registry)
    delta = round(INTERNATIONAL_TARGET_PCT - intl, 2)
    if fund is None or delta <= 0:
        return None
    return Recommendation(
        group="international_misalignment",
        rule_id="international-underweight",
        actions=[buy_action(fund, delta)],
    )


def single_stock_checks(holdings: list[Holding], already_sold: set[str]) -> list[Recommendation]:
    recs: list[Recommendation] = []
    for h in holdings:
        if not h.has_category("individual-stock") or h.ticker in already_sold:
            continue
        excess = round(h.weight - SINGLE_STOCK_MAX_PCT, 2)
        if excess > 0:
            recs.append(Recommendation(
                group="single_stock_concentration",
                rule_id="single-stock",
                actions=[sell_action(h.ticker, excess)],
            ))
    return recs


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def recommend(
    findings: list[RedundancyFinding],
    holdings: list[Holding],
    registry: Optional[CategoryRegistry] = None,
) -> RecommendationOutput:
    """
    Build prioritized recommendations.

    Args:
        findings: Redundancy findings, in detector order.
        holdings: The classified holdings the findings refer to.
        registry: Fee and flagship tables; defaults to the built-in tables.

    Returns:
        At most MAX_RECOMMENDATIONS recommendations in priority-group order.
    """
    registry = registry or DEFAULT_REGISTRY
    by_ticker = {h.ticker: h for h in holdings}

    # Higher-priority findings claim their tickers first; sorted() is stable
    kept: set[str] = set()
    sold: set[str] = set()
    candidates: list[Recommendation] = []
    for finding in sorted(findings, key=lambda f: PRIORITY_GROUPS.index(group_for(f.rule_id))):
        rec = consolidate(finding, by_ticker, registry, kept, sold)
        if rec is not None:
            candidates.append(rec)

    for check in (low_bond_check, international_check):
        rec = check(holdings, registry)
        if rec is not None:
            candidates.append(rec)

    candidates.extend(single_stock_checks(holdings, sold))

    # sorted() is stable: detector order is kept within a group
    ordered = sorted(candidates, key=lambda r: r.priority)
    if len(ordered) > MAX_RECOMMENDATIONS:
        logger.info(f"[Auditor] Dropping {len(ordered) - MAX_RECOMMENDATIONS} lower-priority recommendation(s)")

    output = RecommendationOutput(recommendations=ordered[:MAX_RECOMMENDATIONS])
    logger.info(
        f"[Auditor] {len(output.consolidations)} consolidation(s), "
        f"{len(output.rebalance_actions)} rebalance action(s)"
    )
    return output
