"""
Collapse Auditor — Output Schema
Portfolio Collapse Auditor

Top-level contract returned by the audit pipeline: either a full
PortfolioAnalysis or a typed InsufficientData result asking the caller
for holdings.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, model_validator

from collapse_auditor.schemas.holdings_output import Holding
from collapse_auditor.schemas.recommendation_output import (
    ConsolidationSuggestion,
    RebalanceAction,
)
from collapse_auditor.schemas.redundancy_output import RedundancyFinding
from collapse_auditor.schemas.risk_output import RiskScores
from collapse_auditor.schemas.simplification_output import SimplificationScore


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

INSUFFICIENT_DATA_MESSAGE = (
    "No holdings found. Please provide your portfolio as ticker symbols "
    "with approximate percentage weights."
)

ACCEPTED_FORMATS: list[str] = [
    "SGOV 50%, VTI 30%, VXUS 10%, SCHD 10%",
    "50% SGOV, 30% VTI, 20% BND",
    "SGOV:50%\nVTI:30%\nBND:20%",
    "VTI, VXUS, BND (equal weights assumed)",
]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class InsufficientData(BaseModel):
    """Typed result for input that contains no recognizable ticker."""

    message: str = Field(default=INSUFFICIENT_DATA_MESSAGE, min_length=10)
    accepted_formats: List[str] = Field(default_factory=lambda: list(ACCEPTED_FORMATS))


class PortfolioAnalysis(BaseModel):
    """Complete audit of one portfolio submission."""

    holdings: List[Holding] = Field(..., min_length=1)
    findings: List[RedundancyFinding] = Field(default_factory=list)
    no_redundancy_detected: bool = Field(...)
    risk_scores: RiskScores
    simplification: SimplificationScore
    consolidations: List[ConsolidationSuggestion] = Field(default_factory=list)
    rebalance_actions: List[RebalanceAction] = Field(default_factory=list)
    summary: str = Field(..., min_length=20)

    @model_validator(mode="after")
    def validate_references(self) -> "PortfolioAnalysis":
        if self.no_redundancy_detected and self.findings:
            raise ValueError("no_redundancy_detected cannot be set alongside findings")
        held = {h.ticker for h in self.holdings}
        if len(held) != len(self.holdings):
            raise ValueError("holdings must not repeat a ticker")
        for finding in self.findings:
            unknown = [t for t in finding.symbols if t not in held]
            if unknown:
                raise ValueError(f"finding {finding.rule_id} cites unknown tickers {unknown}")
        return self

    @property
    def total_weight(self) -> float:
        return round(sum(h.weight for h in self.holdings), 4)

    def holding(self, ticker: str) -> Holding | None:
        for h in self.holdings:
            if h.ticker == ticker:
                return h
        return None
