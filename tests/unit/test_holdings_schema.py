"""
Holdings Parser & Ticker Classifier — Schema Tests
Level 1: Pure Pydantic validation, no file I/O.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from collapse_auditor.schemas.holdings_output import (
    BOND_CATEGORIES,
    CATEGORY_TAGS,
    SECTOR_ETF_PREFIX,
    US_EQUITY_CATEGORIES,
    Holding,
    ParsedHoldings,
    TickerWeight,
    is_valid_category,
    sector_etf_tag,
)


# ---------------------------------------------------------------------------
# Constant Tests
# ---------------------------------------------------------------------------

class TestConstants:

    @pytest.mark.schema
    def test_closed_taxonomy(self):
        assert len(CATEGORY_TAGS) == 15
        assert len(set(CATEGORY_TAGS)) == len(CATEGORY_TAGS)

    @pytest.mark.schema
    def test_bond_and_equity_groups_are_disjoint_subsets(self):
        assert set(BOND_CATEGORIES) <= set(CATEGORY_TAGS)
        assert set(US_EQUITY_CATEGORIES) <= set(CATEGORY_TAGS)
        assert not set(BOND_CATEGORIES) & set(US_EQUITY_CATEGORIES)

    @pytest.mark.schema
    def test_sector_etf_tag(self):
        assert sector_etf_tag("Technology") == "sector-etf:technology"
        assert sector_etf_tag(" Healthcare ") == "sector-etf:healthcare"

    @pytest.mark.schema
    def test_is_valid_category(self):
        assert is_valid_category("broad-market")
        assert is_valid_category("sector-etf:energy")
        assert not is_valid_category(SECTOR_ETF_PREFIX)
        assert not is_valid_category("crypto")


# ---------------------------------------------------------------------------
# TickerWeight / Holding
# ---------------------------------------------------------------------------

class TestHolding:

    @pytest.mark.schema
    def test_ticker_uppercased(self):
        h = Holding(ticker="vti", weight=30.0)
        assert h.ticker == "VTI"
        assert h.sector == "Other"
        assert h.categories == ()

    @pytest.mark.schema
    def test_class_share_ticker(self):
        assert Holding(ticker="BRK.B", weight=5.0).ticker == "BRK.B"

    @pytest.mark.schema
    @pytest.mark.parametrize("ticker", ["TOOLONG", "12AB", "BRK.ABC", ""])
    def test_bad_ticker_rejected(self, ticker):
        with pytest.raises(ValidationError):
            Holding(ticker=ticker, weight=10.0)

    @pytest.mark.schema
    @pytest.mark.parametrize("weight", [0.0, -5.0, 100.5])
    def test_weight_bounds(self, weight):
        with pytest.raises(ValidationError):
            Holding(ticker="VTI", weight=weight)

    @pytest.mark.schema
    def test_categories_sorted_and_deduplicated(self):
        h = Holding(ticker="X", weight=1.0, categories=["gold", "commodity", "gold"])
        assert h.categories == ("commodity", "gold")

    @pytest.mark.schema
    def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError, match="category"):
            Holding(ticker="X", weight=1.0, categories=["meme-stock"])

    @pytest.mark.schema
    def test_frozen(self):
        h = Holding(ticker="VTI", weight=30.0)
        with pytest.raises(ValidationError):
            h.weight = 40.0

    @pytest.mark.schema
    def test_categories_immutable(self):
        h = Holding(ticker="BND", weight=10.0, categories=["bond-aggregate-us"])
        with pytest.raises(AttributeError):
            h.categories.append("gold")

    @pytest.mark.schema
    def test_bond_and_equity_flags(self):
        bond = Holding(ticker="BND", weight=10.0, categories=["bond-aggregate-us"])
        etf = Holding(ticker="XLK", weight=10.0, categories=["sector-etf:technology"])
        gold = Holding(ticker="GLD", weight=10.0, categories=["gold"])
        assert bond.is_bond and not bond.is_us_equity
        assert etf.is_us_equity and etf.sector_etf_tags == ["sector-etf:technology"]
        assert not gold.is_bond and not gold.is_us_equity

    @pytest.mark.schema
    def test_ticker_weight(self):
        tw = TickerWeight(ticker="qqq", weight=5)
        assert tw.ticker == "QQQ"
        with pytest.raises(ValidationError):
            TickerWeight(ticker="QQQ", weight=0)


# ---------------------------------------------------------------------------
# ParsedHoldings
# ---------------------------------------------------------------------------

class TestParsedHoldings:

    @pytest.mark.schema
    def test_valid(self):
        p = ParsedHoldings(weights={"VTI": 60.0, "BND": 40.0}, source="structured")
        assert p.tickers == ["VTI", "BND"]
        assert p.total_weight == 100.0
        assert not p.imputed_weights
        assert p.warnings == []

    @pytest.mark.schema
    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            ParsedHoldings(weights={}, source="structured")

    @pytest.mark.schema
    def test_unknown_source_rejected(self):
        with pytest.raises(ValidationError, match="source"):
            ParsedHoldings(weights={"VTI": 100.0}, source="llm")

    @pytest.mark.schema
    def test_out_of_range_weight_rejected(self):
        with pytest.raises(ValidationError, match="weight for VTI"):
            ParsedHoldings(weights={"VTI": 0.0}, source="fallback")
