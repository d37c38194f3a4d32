"""
Auditor Tool: Risk Scorer
Five 0-10 risk dimensions from static category membership and raw
allocation weights. No price history is consulted: every threshold is a
fixed cut-point, so the same holdings always produce the same scores.
"""

from __future__ import annotations

import logging
import math

from collapse_auditor.config.constants import (
    BONDS_CONCENTRATION_DEFENSIVE_PCT,
    CORRELATION_SCORE_CONCENTRATED,
    CORRELATION_SCORE_DEFAULT,
    CORRELATION_SCORE_DEFENSIVE,
    DIVERSIFIED_MIN_HOLDINGS,
    DIVERSIFIED_MIN_SECTORS,
    NARRATIVE_DRIFT_BASELINE,
    SIGNAL_QUALITY_BASELINE,
    STRUCTURE_SCORE_CONCENTRATED,
    STRUCTURE_SCORE_DEFAULT,
    STRUCTURE_SCORE_DIVERSIFIED,
    TECH_CONCENTRATION_DIVERSIFIED_MAX_PCT,
    TECH_CONCENTRATION_HIGH_PCT,
    VOLATILITY_SCORE_CONCENTRATED,
    VOLATILITY_SCORE_DEFAULT,
    VOLATILITY_SCORE_DEFENSIVE,
)
from collapse_auditor.schemas.holdings_output import Holding, sector_etf_tag
from collapse_auditor.schemas.risk_output import RiskScore, RiskScores, SectorWeight, risk_label

logger = logging.getLogger(__name__)

TECHNOLOGY_SECTOR = "Technology"


# ---------------------------------------------------------------------------
# Concentrations
# ---------------------------------------------------------------------------

def technology_concentration(holdings: list[Holding]) -> float:
    """Weight in Technology stocks plus Technology sector ETFs."""
    tech_tag = sector_etf_tag(TECHNOLOGY_SECTOR)
    total = sum(
        h.weight for h in holdings
        if h.sector == TECHNOLOGY_SECTOR or h.has_category(tech_tag)
    )
    return round(total, 2)


def bonds_concentration(holdings: list[Holding]) -> float:
    """Weight in aggregate, global, short-term Treasury and TIPS funds."""
    return round(sum(h.weight for h in holdings if h.is_bond), 2)


def sector_weights(holdings: list[Holding]) -> list[SectorWeight]:
    """Aggregate weight per sector label, heaviest first (ties keep first-seen order)."""
    totals: dict[str, float] = {}
    for h in holdings:
        totals[h.sector] = totals.get(h.sector, 0.0) + h.weight
    ordered = sorted(totals.items(), key=lambda kv: -kv[1])
    return [SectorWeight(sector=s, weight=round(w, 2)) for s, w in ordered]


def is_diversified(holdings: list[Holding], tech_pct: float) -> bool:
    sectors = {h.sector for h in holdings}
    return (
        len(holdings) >= DIVERSIFIED_MIN_HOLDINGS
        and len(sectors) >= DIVERSIFIED_MIN_SECTORS
        and tech_pct < TECH_CONCENTRATION_DIVERSIFIED_MAX_PCT
    )


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Dimension Scores
# ---------------------------------------------------------------------------

def score_structure(holdings: list[Holding], tech_pct: float) -> int:
    if tech_pct > TECH_CONCENTRATION_HIGH_PCT:
        return STRUCTURE_SCORE_CONCENTRATED
    if is_diversified(holdings, tech_pct):
        return STRUCTURE_SCORE_DIVERSIFIED
    return STRUCTURE_SCORE_DEFAULT


def score_correlation(tech_pct: float, bonds_pct: float) -> int:
    if tech_pct > TECH_CONCENTRATION_HIGH_PCT:
        return CORRELATION_SCORE_CONCENTRATED
    if bonds_pct > BONDS_CONCENTRATION_DEFENSIVE_PCT:
        return CORRELATION_SCORE_DEFENSIVE
    return CORRELATION_SCORE_DEFAULT


def score_volatility(tech_pct: float, bonds_pct: float) -> int:
    if tech_pct > TECH_CONCENTRATION_HIGH_PCT:
        return VOLATILITY_SCORE_CONCENTRATED
    if bonds_pct > BONDS_CONCENTRATION_DEFENSIVE_PCT:
        return VOLATILITY_SCORE_DEFENSIVE
    return VOLATILITY_SCORE_DEFAULT


def _risk_score(dimension: str, score: int) -> RiskScore:
    return RiskScore(dimension=dimension, score=score, label=risk_label(score))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def score_risk(holdings: list[Holding]) -> RiskScores:
    """
    Score all five risk dimensions.

    signal_quality and narrative_drift are fixed baselines: no trading
    signal or allocation history telemetry exists to derive them from.
    The overall score averages structure, correlation and volatility only.
    """
    tech_pct = technology_concentration(holdings)
    bonds_pct = bonds_concentration(holdings)

    structure = score_structure(holdings, tech_pct)
    correlation = score_correlation(tech_pct, bonds_pct)
    volatility = score_volatility(tech_pct, bonds_pct)
    overall = round_half_up((structure + correlation + volatility) / 3)

    logger.info(
        f"[Auditor] Risk Assessment: Tech={tech_pct:.1f}%, "
        f"Bonds={bonds_pct:.1f}%, Overall Risk={overall}/10"
    )

    return RiskScores(
        structure=_risk_score("structure", structure),
        correlation=_risk_score("correlation", correlation),
        volatility=_risk_score("volatility", volatility),
        signal_quality=_risk_score("signal_quality", SIGNAL_QUALITY_BASELINE),
        narrative_drift=_risk_score("narrative_drift", NARRATIVE_DRIFT_BASELINE),
        overall_risk_score=overall,
        overall_label=risk_label(overall),
        technology_concentration=tech_pct,
        bonds_concentration=bonds_pct,
        sector_weights=sector_weights(holdings),
    )
