"""
Collapse Auditor
Portfolio redundancy and risk auditor.

Receives free-form holdings text.
Produces PortfolioAnalysis with:
- Classified holdings (category tags + sector)
- Redundancy findings (or the no-redundancy sentinel)
- Five risk dimension scores
- Simplification score with its factors
- Consolidation suggestions and rebalance actions

Returns a typed InsufficientData result, never an empty analysis, when
the text holds no recognizable ticker. This agent audits portfolios; it
never fetches prices or gives advice beyond consolidation mechanics.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

try:
    from crewai import Agent, Task
    HAS_CREWAI = True
except ImportError:
    HAS_CREWAI = False
    Agent = None  # type: ignore
    Task = None  # type: ignore

from collapse_auditor.exceptions import InsufficientDataError
from collapse_auditor.schemas.audit_output import InsufficientData, PortfolioAnalysis
from collapse_auditor.schemas.recommendation_output import RecommendationOutput
from collapse_auditor.schemas.redundancy_output import RedundancyReport
from collapse_auditor.schemas.risk_output import RiskScores
from collapse_auditor.schemas.simplification_output import SimplificationScore
from collapse_auditor.tools.category_registry import CategoryRegistry
from collapse_auditor.tools.consolidation_recommender import recommend
from collapse_auditor.tools.holdings_parser import parse_holdings
from collapse_auditor.tools.overlap_detector import detect_redundancy
from collapse_auditor.tools.risk_scorer import score_risk
from collapse_auditor.tools.simplification_scorer import score_simplification
from collapse_auditor.tools.ticker_classifier import classify_holdings

logger = logging.getLogger(__name__)

AuditResult = Union[PortfolioAnalysis, InsufficientData]


# ---------------------------------------------------------------------------
# CrewAI Agent Builder
# ---------------------------------------------------------------------------

def build_auditor_agent() -> "Agent":
    """Create the Collapse Auditor Agent. Requires crewai."""
    if not HAS_CREWAI:
        raise ImportError("crewai is required for agentic mode. pip install collapse-auditor[agents]")
    from collapse_auditor.agents.audit_tools import PortfolioAuditTool, RedundancyCheckTool

    return Agent(
        role="Portfolio Collapse Auditor",
        goal=(
            "Audit a portfolio for duplicated market exposure. Classify every "
            "holding, find overlapping funds and sector clusters, score risk "
            "and complexity, and propose which ticker to keep in each overlap."
        ),
        backstory=(
            "You are a meticulous portfolio auditor who has cleaned up hundreds "
            "of retirement accounts stuffed with three total-market funds and a "
            "tech ETF on top of Apple. You rely only on fund membership and "
            "allocation weights, never on price forecasts."
        ),
        tools=[PortfolioAuditTool(), RedundancyCheckTool()],
        verbose=True,
        allow_delegation=False,
        max_iter=5,
        temperature=0.2,
    )


def build_auditor_task(
    agent: "Agent",
    holdings_text: str = "",
) -> "Task":
    """Create the Portfolio Audit task. Requires crewai."""
    if not HAS_CREWAI:
        raise ImportError("crewai is required for agentic mode. pip install collapse-auditor[agents]")
    return Task(
        description=f"""Audit this portfolio for redundancy and concentration risk.

STEPS:
1. Parse holdings (ticker + approximate weight)
2. Classify each ticker into exposure categories
3. Detect overlaps (duplicate index funds, bond overlap, sector clusters,
   factor overlap, hidden broad-market overlap)
4. Score risk (structure, correlation, volatility) and simplification (1-10)
5. Recommend consolidations: which ticker to keep, which to sell

If no ticker can be found, ask the user for holdings in a format such as
"SGOV 50%, VTI 30%, VXUS 10%, SCHD 10%".

Holdings:
{holdings_text}
""",
        expected_output=(
            "JSON with holdings, findings, no_redundancy_detected, risk_scores, "
            "simplification, consolidations, rebalance_actions, summary."
        ),
        agent=agent,
    )


# ---------------------------------------------------------------------------
# Deterministic Pipeline
# ---------------------------------------------------------------------------

def run_audit_pipeline(
    raw_text: str,
    registry: Optional[CategoryRegistry] = None,
) -> AuditResult:
    """
    Run the deterministic audit pipeline without LLM.

    Args:
        raw_text: Free-form holdings text, e.g. "FZROX 40%, VTI 30%, BND 30%".
        registry: Taxonomy override; defaults to the built-in tables.

    Returns:
        PortfolioAnalysis, or InsufficientData when no ticker is found.
    """
    logger.info("[Auditor] Running Collapse Audit pipeline ...")

    # Step 1: Parse
    try:
        parsed = parse_holdings(raw_text)
    except InsufficientDataError as e:
        logger.warning(f"[Auditor] {e.message} ({e.record.severity.value})")
        return InsufficientData()

    # Step 2: Classify
    holdings = classify_holdings(parsed.weights, registry)

    # Step 3: Independent analyses over the same holdings
    report = detect_redundancy(holdings)
    risk = score_risk(holdings)
    simplification = score_simplification(holdings)

    # Step 4: Recommendations from findings
    recs = recommend(report.findings, holdings, registry)

    # Step 5: Summary
    summary = _build_summary(len(holdings), report, risk, simplification, recs)

    output = PortfolioAnalysis(
        holdings=holdings,
        findings=report.findings,
        no_redundancy_detected=report.no_redundancy_detected,
        risk_scores=risk,
        simplification=simplification,
        consolidations=recs.consolidations,
        rebalance_actions=recs.rebalance_actions,
        summary=summary,
    )

    logger.info(
        f"[Auditor] Done: {len(holdings)} holdings, {len(report.findings)} findings, "
        f"risk={risk.overall_risk_score}/10, simplification={simplification.score}/10"
    )
    return output


analyze = run_audit_pipeline


# ---------------------------------------------------------------------------
# String Builder
# ---------------------------------------------------------------------------

def _build_summary(
    holding_count: int,
    report: RedundancyReport,
    risk: RiskScores,
    simplification: SimplificationScore,
    recs: RecommendationOutput,
) -> str:
    """Build summary string (>= 20 chars)."""
    parts = [f"Audited {holding_count} holding(s)."]
    if report.no_redundancy_detected:
        parts.append("No redundancy detected.")
    else:
        parts.append(f"{len(report.findings)} redundancy finding(s).")
    parts.append(f"Overall risk {risk.overall_risk_score}/10 ({risk.overall_label}).")
    parts.append(f"Simplification {simplification.score:.1f}/10.")
    if recs.consolidations:
        parts.append(f"{len(recs.consolidations)} consolidation(s) suggested.")
    return " ".join(parts)
