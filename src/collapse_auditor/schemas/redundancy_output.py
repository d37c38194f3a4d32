"""
Redundancy Detector — Output Schema
Portfolio Collapse Auditor

Output contract for the overlap rule battery. A report either lists one
or more findings, or carries the explicit "no redundancy detected"
sentinel so consumers can tell "checked, found nothing" from "not run".
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, model_validator

from collapse_auditor.schemas.holdings_output import TickerWeight


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NO_REDUNDANCY_MESSAGE = (
    "No redundancy detected: each exposure category is covered by a single holding."
)

COMBINED_WEIGHT_TOLERANCE = 0.01


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class RedundancyFinding(BaseModel):
    """One detected overlap between two or more holdings."""

    rule_id: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    tickers: List[TickerWeight] = Field(..., min_length=1)
    reason: str = Field(..., min_length=10)
    combined_weight: float = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_combined_weight(self) -> "RedundancyFinding":
        total = sum(t.weight for t in self.tickers)
        if abs(total - self.combined_weight) > COMBINED_WEIGHT_TOLERANCE:
            raise ValueError(
                f"combined_weight {self.combined_weight} does not match "
                f"ticker weights total {total:.2f}"
            )
        return self

    @property
    def symbols(self) -> List[str]:
        return [t.ticker for t in self.tickers]


class RedundancyReport(BaseModel):
    """Ordered findings from the full rule battery."""

    findings: List[RedundancyFinding] = Field(default_factory=list)
    no_redundancy_detected: bool = Field(...)
    message: str = Field(default="")

    @model_validator(mode="after")
    def validate_sentinel(self) -> "RedundancyReport":
        if self.no_redundancy_detected and self.findings:
            raise ValueError("no_redundancy_detected report must not carry findings")
        if not self.no_redundancy_detected and not self.findings:
            raise ValueError("report without findings must set no_redundancy_detected")
        return self

    @classmethod
    def none_detected(cls) -> "RedundancyReport":
        return cls(findings=[], no_redundancy_detected=True, message=NO_REDUNDANCY_MESSAGE)
