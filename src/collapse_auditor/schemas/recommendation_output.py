"""
Consolidation & Rebalancing Recommender — Output Schema
Portfolio Collapse Auditor

Output contract for keep/sell consolidation suggestions and the signed
buy/sell weight adjustments that carry them out.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from collapse_auditor.config.constants import MAX_RECOMMENDATIONS


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VALID_ACTIONS = ("Buy", "Sell")

# Fixed priority order; lower number is emitted first.
PRIORITY_GROUPS: tuple[str, ...] = (
    "index_duplication",
    "bond_duplication",
    "sector_clustering",
    "low_bonds",
    "international_misalignment",
    "factor_overlap",
    "single_stock_concentration",
)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class ConsolidationSuggestion(BaseModel):
    """Keep one ticker and sell the others covering the same exposure."""

    category: str = Field(..., min_length=1)
    keep: str = Field(..., min_length=1)
    sell: List[str] = Field(default_factory=list)
    reason: str = Field(..., min_length=10)
    savings: Optional[str] = None

    @model_validator(mode="after")
    def validate_keep_not_sold(self) -> "ConsolidationSuggestion":
        if self.keep in self.sell:
            raise ValueError(f"keep ticker {self.keep} cannot also be sold")
        return self


class RebalanceAction(BaseModel):
    """A signed weight adjustment: negative percentage for Sell, positive for Buy."""

    ticker: str = Field(..., min_length=1)
    action: str = Field(...)
    amount: str = Field(..., min_length=1)
    percentage: float = Field(...)

    @field_validator("action")
    @classmethod
    def validate_action(cls, v: str) -> str:
        if v not in VALID_ACTIONS:
            raise ValueError(f"action must be one of {VALID_ACTIONS}, got '{v}'")
        return v

    @model_validator(mode="after")
    def validate_sign(self) -> "RebalanceAction":
        if self.action == "Sell" and self.percentage >= 0:
            raise ValueError(f"Sell {self.ticker} must carry a negative percentage")
        if self.action == "Buy" and self.percentage <= 0:
            raise ValueError(f"Buy {self.ticker} must carry a positive percentage")
        return self


class Recommendation(BaseModel):
    """One prioritized recommendation: at most one consolidation plus its actions."""

    group: str = Field(...)
    rule_id: str = Field(..., min_length=1)
    consolidation: Optional[ConsolidationSuggestion] = None
    actions: List[RebalanceAction] = Field(default_factory=list)

    @field_validator("group")
    @classmethod
    def validate_group(cls, v: str) -> str:
        if v not in PRIORITY_GROUPS:
            raise ValueError(f"group '{v}' not in {PRIORITY_GROUPS}")
        return v

    @property
    def priority(self) -> int:
        return PRIORITY_GROUPS.index(self.group)


class RecommendationOutput(BaseModel):
    """Ordered, capped recommendation list."""

    recommendations: List[Recommendation] = Field(
        default_factory=list, max_length=MAX_RECOMMENDATIONS,
    )

    @model_validator(mode="after")
    def validate_order(self) -> "RecommendationOutput":
        priorities = [r.priority for r in self.recommendations]
        if priorities != sorted(priorities):
            raise ValueError("recommendations must follow priority group order")
        return self

    @property
    def consolidations(self) -> List[ConsolidationSuggestion]:
        return [r.consolidation for r in self.recommendations if r.consolidation is not None]

    @property
    def rebalance_actions(self) -> List[RebalanceAction]:
        return [a for r in self.recommendations for a in r.actions]
