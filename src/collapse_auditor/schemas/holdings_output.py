"""
Holdings Parser & Ticker Classifier — Output Schema
Portfolio Collapse Auditor

Output contract for the parser (ticker -> weight map) and the classifier
(Holding records carrying category tags and a sector label).
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from collapse_auditor.config.constants import (
    DEFAULT_SECTOR,
    MAX_WEIGHT_PCT,
    TICKER_PATTERN,
)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CATEGORY_TAGS: tuple[str, ...] = (
    "broad-market",
    "sp500-index",
    "nasdaq100-index",
    "bond-aggregate-us",
    "bond-global",
    "treasury-short",
    "tips",
    "international-equity",
    "dividend-factor",
    "quality-factor",
    "low-volatility-factor",
    "individual-stock",
    "gold",
    "real-estate",
    "commodity",
)

SECTOR_ETF_PREFIX = "sector-etf:"

BOND_CATEGORIES: tuple[str, ...] = (
    "bond-aggregate-us",
    "bond-global",
    "treasury-short",
    "tips",
)

US_EQUITY_CATEGORIES: tuple[str, ...] = (
    "broad-market",
    "sp500-index",
    "nasdaq100-index",
    "dividend-factor",
    "quality-factor",
    "low-volatility-factor",
    "individual-stock",
)

VALID_SOURCES = ("structured", "fallback")

_TICKER_RE = re.compile(rf"^{TICKER_PATTERN}$")


def sector_etf_tag(sector: str) -> str:
    """Category tag for a sector ETF, e.g. 'Technology' -> 'sector-etf:technology'."""
    return f"{SECTOR_ETF_PREFIX}{sector.strip().lower()}"


def is_valid_category(tag: str) -> bool:
    if tag in CATEGORY_TAGS:
        return True
    return tag.startswith(SECTOR_ETF_PREFIX) and len(tag) > len(SECTOR_ETF_PREFIX)


def _check_ticker(v: str) -> str:
    v = v.strip().upper()
    if not _TICKER_RE.match(v):
        raise ValueError(f"ticker '{v}' is not a valid symbol")
    return v


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class TickerWeight(BaseModel):
    """A ticker with its portfolio weight, as cited by findings."""

    model_config = ConfigDict(frozen=True)

    ticker: str = Field(...)
    weight: float = Field(..., gt=0, le=MAX_WEIGHT_PCT)

    @field_validator("ticker")
    @classmethod
    def validate_ticker(cls, v: str) -> str:
        return _check_ticker(v)


class Holding(BaseModel):
    """One classified portfolio position. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    ticker: str = Field(...)
    weight: float = Field(..., gt=0, le=MAX_WEIGHT_PCT)
    categories: Tuple[str, ...] = Field(default_factory=tuple)
    sector: str = Field(default=DEFAULT_SECTOR, min_length=1)

    @field_validator("ticker")
    @classmethod
    def validate_ticker(cls, v: str) -> str:
        return _check_ticker(v)

    @field_validator("categories")
    @classmethod
    def validate_categories(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        for tag in v:
            if not is_valid_category(tag):
                raise ValueError(f"category '{tag}' not in {CATEGORY_TAGS} or '{SECTOR_ETF_PREFIX}<sector>'")
        return tuple(sorted(set(v)))

    def has_category(self, tag: str) -> bool:
        return tag in self.categories

    @property
    def sector_etf_tags(self) -> List[str]:
        return [c for c in self.categories if c.startswith(SECTOR_ETF_PREFIX)]

    @property
    def is_bond(self) -> bool:
        return any(c in BOND_CATEGORIES for c in self.categories)

    @property
    def is_us_equity(self) -> bool:
        return bool(self.sector_etf_tags) or any(c in US_EQUITY_CATEGORIES for c in self.categories)


class ParsedHoldings(BaseModel):
    """Normalized ticker -> weight map produced by the Holdings Parser."""

    weights: Dict[str, float] = Field(..., min_length=1)
    source: str = Field(...)
    imputed_weights: bool = False
    warnings: List[dict] = Field(default_factory=list)

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: str) -> str:
        if v not in VALID_SOURCES:
            raise ValueError(f"source must be one of {VALID_SOURCES}, got '{v}'")
        return v

    @model_validator(mode="after")
    def validate_weights(self) -> "ParsedHoldings":
        for ticker, weight in self.weights.items():
            _check_ticker(ticker)
            if not 0 < weight <= MAX_WEIGHT_PCT:
                raise ValueError(f"weight for {ticker} must be in (0, {MAX_WEIGHT_PCT}], got {weight}")
        return self

    @property
    def tickers(self) -> List[str]:
        return list(self.weights)

    @property
    def total_weight(self) -> float:
        return round(sum(self.weights.values()), 4)
