"""
Auditor Tool: Simplification Scorer
Portfolio complexity on a 1-10 scale: start at 10 and subtract a fixed
penalty for each overlap found by the shared rule battery, plus a
penalty for sprawling holding counts.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from collapse_auditor.config.constants import (
    COMPACT_PORTFOLIO_MAX_HOLDINGS,
    HOLDING_COUNT_PENALTIES,
    SIMPLICITY_STRENGTHS_MIN_SCORE,
    SIMPLIFICATION_MAX,
    SIMPLIFICATION_MIN,
    SIMPLIFICATION_START,
)
from collapse_auditor.schemas.holdings_output import Holding
from collapse_auditor.schemas.redundancy_output import RedundancyFinding
from collapse_auditor.schemas.simplification_output import (
    SimplificationPenalty,
    SimplificationScore,
)
from collapse_auditor.tools.overlap_detector import OverlapRule, detect_overlaps

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Penalty Table
# ---------------------------------------------------------------------------

PENALTY_WEIGHTS: dict[str, float] = {
    "same-category:broad-market": 2.0,
    "same-category:sp500-index": 2.0,
    "same-category:bond-aggregate-us": 1.5,
    "bond-overlap": 1.0,
    "sector-cluster:technology": 1.5,
    "sector-cluster:healthcare": 1.5,
    "sector-cluster:finance": 1.5,
    "same-category:dividend-factor": 1.0,
    "factor-overlap": 1.0,
    "same-category:international-equity": 1.5,
    "same-category:gold": 1.0,
    "same-category:real-estate": 1.0,
    "same-category:nasdaq100-index": 1.0,
    "same-category:treasury-short": 0.5,
    "same-category:tips": 0.5,
    "hidden-overlap": 1.0,
}

DEFAULT_RULE_PENALTY = 1.0
"""Penalty for overlap rules registered outside the default battery"""

HOLDING_COUNT_RULE_ID = "holding-count"

# (description, rule ids whose presence removes the factor)
SIMPLICITY_CHECKS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("No duplicate index funds", (
        "same-category:broad-market", "same-category:sp500-index",
        "same-category:nasdaq100-index", "hidden-overlap",
    )),
    ("No overlapping bond funds", (
        "same-category:bond-aggregate-us", "bond-overlap",
        "same-category:treasury-short", "same-category:tips",
    )),
    ("No sector ETF and individual stock clustering", (
        "sector-cluster:technology", "sector-cluster:healthcare", "sector-cluster:finance",
    )),
    ("No overlapping factor tilts", (
        "same-category:dividend-factor", "factor-overlap",
    )),
)


# ---------------------------------------------------------------------------
# Factors
# ---------------------------------------------------------------------------

def holding_count_penalty(count: int) -> float:
    for threshold, penalty in HOLDING_COUNT_PENALTIES:
        if count > threshold:
            return penalty
    return 0.0


def _penalties(
    findings: list[RedundancyFinding],
    holding_count: int,
) -> list[SimplificationPenalty]:
    penalties = [
        SimplificationPenalty(
            rule_id=f.rule_id,
            factor=f"{f.category}: {', '.join(f.symbols)}",
            penalty=PENALTY_WEIGHTS.get(f.rule_id, DEFAULT_RULE_PENALTY),
        )
        for f in findings
    ]
    count_penalty = holding_count_penalty(holding_count)
    if count_penalty:
        penalties.append(SimplificationPenalty(
            rule_id=HOLDING_COUNT_RULE_ID,
            factor=f"Large number of holdings ({holding_count})",
            penalty=count_penalty,
        ))
    return penalties


def simplicity_factors(findings: list[RedundancyFinding], holding_count: int) -> list[str]:
    """Positive factors, in fixed order."""
    fired = {f.rule_id for f in findings}
    factors = [
        description for description, rule_ids in SIMPLICITY_CHECKS
        if not fired.intersection(rule_ids)
    ]
    if holding_count <= COMPACT_PORTFOLIO_MAX_HOLDINGS:
        factors.append(f"Compact portfolio ({holding_count} holdings)")
    return factors


def _explanation(
    score: float,
    penalties: list[SimplificationPenalty],
    strengths: list[str],
) -> str:
    # Stable sort keeps rule order among equal penalties
    top = sorted(penalties, key=lambda p: -p.penalty)[:2]
    if top:
        drivers = "; ".join(f"{p.factor} (-{p.penalty:g})" for p in top)
        text = f"Simplification score {score:.1f}/10. Main complexity drivers: {drivers}."
    else:
        text = f"Simplification score {score:.1f}/10. No avoidable overlap detected."
    if score >= SIMPLICITY_STRENGTHS_MIN_SCORE and strengths:
        text += f" Strengths: {'; '.join(strengths[:2])}."
    return text


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def score_simplification(
    holdings: list[Holding],
    rules: Optional[Iterable[OverlapRule]] = None,
) -> SimplificationScore:
    """
    Score portfolio complexity from classified holdings.

    Runs the same overlap battery as the redundancy report, then applies
    this module's penalty weights. Score is clamped to [1, 10] and rounded
    to one decimal.
    """
    findings = detect_overlaps(holdings, rules)
    penalties = _penalties(findings, len(holdings))

    raw = SIMPLIFICATION_START - sum(p.penalty for p in penalties)
    score = round(max(SIMPLIFICATION_MIN, min(SIMPLIFICATION_MAX, raw)), 1)
    strengths = simplicity_factors(findings, len(holdings))

    logger.info(
        f"[Auditor] Simplification score {score}/10 "
        f"({len(penalties)} penalties, raw={raw:.1f})"
    )

    return SimplificationScore(
        score=score,
        explanation=_explanation(score, penalties, strengths),
        complexity_factors=[p.factor for p in penalties],
        simplicity_factors=strengths,
        penalties=penalties,
    )
