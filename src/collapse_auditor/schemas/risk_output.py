"""
Risk Scorer — Output Schema
Portfolio Collapse Auditor

Output contract for the five risk dimensions. Every score is an integer
on a 0-10 scale with a label derived from fixed cut-points.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from collapse_auditor.config.constants import RISK_LABEL_LOW_MAX, RISK_LABEL_MODERATE_MAX


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

RISK_DIMENSIONS: tuple[str, ...] = (
    "structure",
    "correlation",
    "volatility",
    "signal_quality",
    "narrative_drift",
)

VALID_RISK_LABELS = ("Low risk", "Moderate risk", "High risk")


def risk_label(score: int) -> str:
    """Map a 0-10 score to its label: <=3 Low, <=6 Moderate, else High."""
    if score <= RISK_LABEL_LOW_MAX:
        return "Low risk"
    if score <= RISK_LABEL_MODERATE_MAX:
        return "Moderate risk"
    return "High risk"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class RiskScore(BaseModel):
    """A single risk dimension score."""

    dimension: str = Field(...)
    score: int = Field(..., ge=0, le=10)
    label: str = Field(...)

    @field_validator("dimension")
    @classmethod
    def validate_dimension(cls, v: str) -> str:
        if v not in RISK_DIMENSIONS:
            raise ValueError(f"dimension '{v}' not in {RISK_DIMENSIONS}")
        return v

    @model_validator(mode="after")
    def validate_label(self) -> "RiskScore":
        expected = risk_label(self.score)
        if self.label != expected:
            raise ValueError(f"label for score {self.score} must be '{expected}', got '{self.label}'")
        return self


class SectorWeight(BaseModel):
    """Aggregate weight of one sector label."""

    sector: str = Field(..., min_length=1)
    weight: float = Field(..., ge=0)


class RiskScores(BaseModel):
    """All five dimensions plus the overall score and the concentrations behind them."""

    structure: RiskScore
    correlation: RiskScore
    volatility: RiskScore
    signal_quality: RiskScore
    narrative_drift: RiskScore
    overall_risk_score: int = Field(..., ge=0, le=10)
    overall_label: str = Field(...)
    technology_concentration: float = Field(..., ge=0)
    bonds_concentration: float = Field(..., ge=0)
    sector_weights: List[SectorWeight] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_dimensions(self) -> "RiskScores":
        for name in RISK_DIMENSIONS:
            score = getattr(self, name)
            if score.dimension != name:
                raise ValueError(f"field '{name}' carries dimension '{score.dimension}'")
        if self.overall_label != risk_label(self.overall_risk_score):
            raise ValueError(
                f"overall_label must be '{risk_label(self.overall_risk_score)}', "
                f"got '{self.overall_label}'"
            )
        return self

    def dimensions(self) -> List[RiskScore]:
        return [getattr(self, name) for name in RISK_DIMENSIONS]
