"""
Simplification Scorer — Output Schema
Portfolio Collapse Auditor

Output contract for the 1-10 portfolio complexity score
(10 = no avoidable overlap, 1 = maximal overlap).
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, field_validator


class SimplificationPenalty(BaseModel):
    """One deduction applied to the simplification score."""

    rule_id: str = Field(..., min_length=1)
    factor: str = Field(..., min_length=5)
    penalty: float = Field(..., gt=0)


class SimplificationScore(BaseModel):
    """Complexity score with the factors that justify it."""

    score: float = Field(..., ge=1.0, le=10.0)
    explanation: str = Field(..., min_length=10)
    complexity_factors: List[str] = Field(default_factory=list)
    simplicity_factors: List[str] = Field(default_factory=list)
    penalties: List[SimplificationPenalty] = Field(default_factory=list)

    @field_validator("score")
    @classmethod
    def validate_score(cls, v: float) -> float:
        return round(v, 1)

    @property
    def total_penalty(self) -> float:
        return round(sum(p.penalty for p in self.penalties), 2)
