"""
Auditor Tool: Overlap Detector
Evaluates an ordered battery of overlap rules over classified holdings.

Each rule is a (matcher, finding builder) pair: the matcher returns the
holdings involved in the overlap (empty when the rule does not fire) and
the rule turns them into a RedundancyFinding. Rules are independent, so
a ticker can appear in several findings, and a later rule never
suppresses an earlier one.

detect_overlaps() is shared by the redundancy report and the
simplification scorer so both always agree on what overlaps exist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from collapse_auditor.config.constants import HIDDEN_OVERLAP_MIN_SECTOR_ETFS
from collapse_auditor.schemas.holdings_output import Holding, TickerWeight, sector_etf_tag
from collapse_auditor.schemas.redundancy_output import RedundancyFinding, RedundancyReport

logger = logging.getLogger(__name__)

Matcher = Callable[[list[Holding]], list[Holding]]


# ---------------------------------------------------------------------------
# Rule Definition
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OverlapRule:
    """One registered overlap check."""

    rule_id: str
    label: str
    reason: str
    matcher: Matcher

    def evaluate(self, holdings: list[Holding]) -> Optional[RedundancyFinding]:
        involved = self.matcher(holdings)
        if not involved:
            return None
        return RedundancyFinding(
            rule_id=self.rule_id,
            category=self.label,
            tickers=[TickerWeight(ticker=h.ticker, weight=h.weight) for h in involved],
            reason=self.reason,
            combined_weight=round(sum(h.weight for h in involved), 2),
        )


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------

def same_category(tag: str) -> Matcher:
    """Fires when two or more holdings share `tag`."""
    def _match(holdings: list[Holding]) -> list[Holding]:
        members = [h for h in holdings if h.has_category(tag)]
        return members if len(members) >= 2 else []
    return _match


def both_present(first_tag: str, second_tag: str) -> Matcher:
    """Fires when at least one holding carries each tag."""
    def _match(holdings: list[Holding]) -> list[Holding]:
        has_first = any(h.has_category(first_tag) for h in holdings)
        has_second = any(h.has_category(second_tag) for h in holdings)
        if not (has_first and has_second):
            return []
        return [h for h in holdings if h.has_category(first_tag) or h.has_category(second_tag)]
    return _match


def sector_cluster(sector: str) -> Matcher:
    """Fires when a sector ETF and an individual stock from the same sector are both held."""
    etf_tag = sector_etf_tag(sector)

    def _is_stock(h: Holding) -> bool:
        return h.has_category("individual-stock") and h.sector == sector

    def _match(holdings: list[Holding]) -> list[Holding]:
        etfs = [h for h in holdings if h.has_category(etf_tag)]
        stocks = [h for h in holdings if _is_stock(h)]
        if not etfs or not stocks:
            return []
        return [h for h in holdings if h.has_category(etf_tag) or _is_stock(h)]
    return _match


def hidden_overlap(min_sector_etfs: int = HIDDEN_OVERLAP_MIN_SECTOR_ETFS) -> Matcher:
    """Fires when a broad fund is held alongside `min_sector_etfs` or more sector ETFs."""
    def _is_broad(h: Holding) -> bool:
        return h.has_category("broad-market") or h.has_category("sp500-index")

    def _match(holdings: list[Holding]) -> list[Holding]:
        broad = [h for h in holdings if _is_broad(h)]
        sector_etfs = [h for h in holdings if h.sector_etf_tags]
        if not broad or len(sector_etfs) < min_sector_etfs:
            return []
        return [h for h in holdings if _is_broad(h) or h.sector_etf_tags]
    return _match


# ---------------------------------------------------------------------------
# Default Battery
# ---------------------------------------------------------------------------

_DUPLICATION_RULES: tuple[tuple[str, str, str], ...] = (
    ("broad-market", "Broad Market Duplication",
     "Multiple total-market funds hold the same U.S. stocks; one fund gives identical exposure."),
    ("sp500-index", "S&P 500 Duplication",
     "Multiple S&P 500 index funds track the same 500 companies."),
    ("nasdaq100-index", "Nasdaq-100 Duplication",
     "Multiple Nasdaq-100 funds track the same 100 companies."),
    ("bond-aggregate-us", "U.S. Bond Fund Duplication",
     "Multiple U.S. aggregate bond funds hold the same investment-grade bond market."),
    ("international-equity", "International Fund Duplication",
     "Multiple international funds cover the same non-U.S. developed and emerging markets."),
    ("dividend-factor", "Dividend Fund Duplication",
     "Multiple dividend funds screen for largely the same high-yield companies."),
    ("gold", "Gold Fund Duplication",
     "Multiple gold funds hold the same physical bullion."),
    ("real-estate", "REIT Fund Duplication",
     "Multiple REIT funds hold the same listed real estate companies."),
    ("treasury-short", "Short-Term Treasury Duplication",
     "Multiple short-term Treasury funds hold the same government bills."),
    ("tips", "TIPS Fund Duplication",
     "Multiple TIPS funds hold the same inflation-protected Treasuries."),
)

CLUSTER_SECTORS: tuple[str, ...] = ("Technology", "Healthcare", "Finance")


def build_default_rules() -> tuple[OverlapRule, ...]:
    rules: list[OverlapRule] = [
        OverlapRule(
            rule_id=f"same-category:{tag}",
            label=label,
            reason=reason,
            matcher=same_category(tag),
        )
        for tag, label, reason in _DUPLICATION_RULES
    ]
    rules.append(OverlapRule(
        rule_id="bond-overlap",
        label="U.S. + Global Bond Overlap",
        reason="Global bond funds already include the U.S. aggregate bond market.",
        matcher=both_present("bond-aggregate-us", "bond-global"),
    ))
    for sector in CLUSTER_SECTORS:
        rules.append(OverlapRule(
            rule_id=f"sector-cluster:{sector.lower()}",
            label=f"{sector} Sector Cluster",
            reason=(
                f"The {sector} sector ETF already holds these {sector} stocks, "
                f"so the same companies are owned twice."
            ),
            matcher=sector_cluster(sector),
        ))
    rules.append(OverlapRule(
        rule_id="factor-overlap",
        label="Dividend + Quality Factor Overlap",
        reason="Dividend and quality funds target overlapping sets of stable, profitable companies.",
        matcher=both_present("dividend-factor", "quality-factor"),
    ))
    rules.append(OverlapRule(
        rule_id="hidden-overlap",
        label="Hidden Broad Market Overlap",
        reason="Sector ETFs double-count exposure the broad-market fund already holds.",
        matcher=hidden_overlap(),
    ))
    return tuple(rules)


DEFAULT_RULES: tuple[OverlapRule, ...] = build_default_rules()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def detect_overlaps(
    holdings: list[Holding],
    rules: Optional[Iterable[OverlapRule]] = None,
) -> list[RedundancyFinding]:
    """Run every rule in order; return the findings of those that fired."""
    findings: list[RedundancyFinding] = []
    for rule in (DEFAULT_RULES if rules is None else rules):
        finding = rule.evaluate(holdings)
        if finding is not None:
            logger.debug(f"{rule.rule_id}: {finding.symbols} ({finding.combined_weight}%)")
            findings.append(finding)
    return findings


def detect_redundancy(
    holdings: list[Holding],
    rules: Optional[Iterable[OverlapRule]] = None,
) -> RedundancyReport:
    """
    Redundancy report over classified holdings.

    Returns the explicit no-redundancy sentinel when no rule fires.
    """
    findings = detect_overlaps(holdings, rules)
    if not findings:
        logger.info("[Auditor] No redundancy detected")
        return RedundancyReport.none_detected()
    logger.info(f"[Auditor] {len(findings)} redundancy finding(s)")
    return RedundancyReport(findings=findings, no_redundancy_detected=False)
