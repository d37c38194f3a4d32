"""
Auditor Tool: Consolidation & Rebalancing Recommender — Unit Tests
Level 1: Pure function tests over findings and classified holdings.
"""

from __future__ import annotations

import pytest

from collapse_auditor.agents.collapse_auditor import run_audit_pipeline
from collapse_auditor.config.constants import MAX_RECOMMENDATIONS
from collapse_auditor.schemas.holdings_output import TickerWeight
from collapse_auditor.schemas.recommendation_output import PRIORITY_GROUPS
from collapse_auditor.schemas.redundancy_output import RedundancyFinding
from collapse_auditor.tools.category_registry import DEFAULT_REGISTRY, CategoryRegistry
from collapse_auditor.tools.consolidation_recommender import (
    RULE_GROUPS,
    choose_keep,
    consolidate,
    estimate_savings,
    lowest_fee,
    recommend,
)
from collapse_auditor.tools.holdings_parser import parse_holdings
from collapse_auditor.tools.overlap_detector import DEFAULT_RULES, detect_overlaps

from tests.fixtures.conftest import KITCHEN_SINK, build_holdings


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _recommend(weights: dict[str, float]):
    holdings = build_holdings(weights)
    return recommend(detect_overlaps(holdings), holdings)


def _actions(output) -> list[tuple[str, str, float]]:
    return [(a.ticker, a.action, a.percentage) for a in output.rebalance_actions]


# ---------------------------------------------------------------------------
# Keep Selection
# ---------------------------------------------------------------------------

class TestKeepSelection:

    @pytest.mark.schema
    def test_every_default_rule_has_a_group(self):
        for rule in DEFAULT_RULES:
            assert RULE_GROUPS[rule.rule_id] in PRIORITY_GROUPS

    @pytest.mark.schema
    def test_lowest_fee_tie_keeps_input_order(self):
        assert lowest_fee(["ITOT", "VTI"], DEFAULT_REGISTRY) == "ITOT"
        assert lowest_fee(["VTI", "ITOT"], DEFAULT_REGISTRY) == "VTI"
        assert lowest_fee(["VTI", "FZROX"], DEFAULT_REGISTRY) == "FZROX"

    @pytest.mark.schema
    def test_flagship_bond(self):
        holdings = build_holdings({"AGG": 20.0, "FBND": 20.0, "BND": 20.0})
        finding = detect_overlaps(holdings)[0]
        keep, sell = choose_keep(finding, {h.ticker: h for h in holdings}, DEFAULT_REGISTRY)
        assert keep == "BND"
        assert sell == ["AGG", "FBND"]

    @pytest.mark.schema
    def test_unknown_rule_keeps_first_listed(self):
        finding = RedundancyFinding(
            rule_id="custom:widgets",
            category="Widget Overlap",
            tickers=[TickerWeight(ticker="AAA", weight=10.0), TickerWeight(ticker="BBB", weight=5.0)],
            reason="Both funds hold the same widgets.",
            combined_weight=15.0,
        )
        keep, sell = choose_keep(finding, {}, DEFAULT_REGISTRY)
        assert (keep, sell) == ("AAA", ["BBB"])

    @pytest.mark.schema
    def test_unknown_rule_grouped_not_rejected(self):
        holdings = build_holdings({"AAA": 10.0, "BBB": 5.0})
        finding = RedundancyFinding(
            rule_id="custom:widgets",
            category="Widget Overlap",
            tickers=[TickerWeight(ticker="AAA", weight=10.0), TickerWeight(ticker="BBB", weight=5.0)],
            reason="Both funds hold the same widgets.",
            combined_weight=15.0,
        )
        output = recommend([finding], holdings)
        custom = [r for r in output.recommendations if r.rule_id == "custom:widgets"][0]
        assert custom.group == "factor_overlap"
        assert custom.consolidation.keep == "AAA"

    @pytest.mark.schema
    def test_injected_fee_table(self):
        registry = CategoryRegistry(
            members={"broad-market": ["VTI", "ITOT"]},
            expense_ratios={"VTI": 0.05, "ITOT": 0.01},
        )
        holdings = build_holdings({"VTI": 50.0, "ITOT": 50.0}, registry)
        output = recommend(detect_overlaps(holdings), holdings, registry)
        assert output.consolidations[0].keep == "ITOT"


# ---------------------------------------------------------------------------
# Savings
# ---------------------------------------------------------------------------

class TestSavings:

    @pytest.mark.schema
    def test_savings_text(self):
        text = estimate_savings("FZROX", [("VTI", 30.0)], DEFAULT_REGISTRY)
        assert text == "~$9/year per $100,000 invested"

    @pytest.mark.schema
    def test_no_savings_when_keep_not_cheaper(self):
        assert estimate_savings("VTI", [("ITOT", 10.0)], DEFAULT_REGISTRY) is None


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

class TestRecommend:

    @pytest.mark.schema
    def test_duplicate_broad_market(self):
        output = _recommend({"FZROX": 40.0, "VTI": 30.0, "BND": 30.0})
        c = output.consolidations[0]
        assert (c.keep, c.sell) == ("FZROX", ["VTI"])
        assert "$9" in c.savings
        assert _actions(output) == [
            ("VTI", "Sell", -30.0),
            ("FZROX", "Buy", 30.0),
            ("VXUS", "Buy", 10.0),
        ]

    @pytest.mark.schema
    def test_tech_cluster(self):
        output = _recommend({"XLK": 20.0, "AAPL": 15.0, "MSFT": 10.0})
        groups = [r.group for r in output.recommendations]
        assert groups == ["sector_clustering", "low_bonds", "international_misalignment"]
        c = output.consolidations[0]
        assert (c.keep, c.sell) == ("XLK", ["AAPL", "MSFT"])
        assert c.savings is None
        assert ("BND", "Buy", 10.0) in _actions(output)
        assert ("VXUS", "Buy", 10.0) in _actions(output)

    @pytest.mark.schema
    def test_clean_portfolio_only_allocation_checks(self):
        output = _recommend({"SGOV": 50.0, "VTI": 50.0})
        assert output.consolidations == []
        assert _actions(output) == [("VXUS", "Buy", 10.0)]

    @pytest.mark.schema
    def test_low_bonds_tops_up_to_target(self):
        output = _recommend({"VTI": 80.0, "AGG": 4.0, "VXUS": 16.0})
        assert _actions(output) == [("AGG", "Buy", 6.0)]

    @pytest.mark.schema
    def test_no_low_bond_action_without_equities(self):
        output = _recommend({"GLD": 50.0, "DBC": 50.0})
        assert output.recommendations == []

    @pytest.mark.schema
    def test_single_stock_trimmed_to_limit(self):
        output = _recommend({"NVDA": 25.0, "VTI": 50.0, "BND": 15.0, "VXUS": 10.0})
        assert [r.group for r in output.recommendations] == ["single_stock_concentration"]
        assert _actions(output) == [("NVDA", "Sell", -15.0)]

    @pytest.mark.schema
    def test_sold_stock_not_trimmed_again(self):
        output = _recommend({"XLK": 20.0, "AAPL": 15.0, "MSFT": 10.0})
        assert "single_stock_concentration" not in [r.group for r in output.recommendations]

    @pytest.mark.schema
    def test_hidden_overlap_sells_sector_etfs_only(self):
        output = _recommend({"VTI": 55.0, "ITOT": 10.0, "XLK": 10.0, "XLV": 10.0, "XLF": 5.0, "BND": 10.0})
        hidden = [r for r in output.recommendations if r.rule_id == "hidden-overlap"][0]
        assert hidden.consolidation.keep == "VTI"
        assert hidden.consolidation.sell == ["XLK", "XLV", "XLF"]

    @pytest.mark.schema
    def test_kitchen_sink_capped_in_priority_order(self):
        holdings = build_holdings(parse_holdings(KITCHEN_SINK).weights)
        output = recommend(detect_overlaps(holdings), holdings)
        assert len(output.recommendations) == MAX_RECOMMENDATIONS
        assert [r.rule_id for r in output.recommendations] == [
            "same-category:broad-market",
            "same-category:nasdaq100-index",
            "hidden-overlap",
            "same-category:bond-aggregate-us",
            "international-underweight",
            "same-category:dividend-factor",
        ]
        keeps = [c.keep for c in output.consolidations]
        assert keeps == ["VTI", "QQQM", "VTI", "BND", "SCHD"]

    @pytest.mark.schema
    def test_deterministic(self):
        weights = {"VTI": 30.0, "ITOT": 30.0, "BND": 20.0, "AGG": 20.0}
        assert _recommend(weights) == _recommend(weights)


# ---------------------------------------------------------------------------
# Consistency Across Findings
# ---------------------------------------------------------------------------

SHARED_TICKER_PORTFOLIOS = [
    KITCHEN_SINK,
    "BND 30%, AGG 20%, BNDW 10%",
    "VTI 40%, XLK 10%, XLV 10%, XLF 10%, AAPL 10%",
]


class TestConsistency:

    @pytest.mark.behavior
    @pytest.mark.parametrize("text", SHARED_TICKER_PORTFOLIOS)
    def test_no_ticker_both_kept_and_sold(self, text):
        output = run_audit_pipeline(text)
        kept = {c.keep for c in output.consolidations}
        sold = {t for c in output.consolidations for t in c.sell}
        assert not kept & sold

    @pytest.mark.behavior
    @pytest.mark.parametrize("text", SHARED_TICKER_PORTFOLIOS)
    def test_sells_never_exceed_holding(self, text):
        output = run_audit_pipeline(text)
        held = {h.ticker: h.weight for h in output.holdings}
        totals: dict[str, float] = {}
        for a in output.rebalance_actions:
            if a.action == "Sell":
                totals[a.ticker] = totals.get(a.ticker, 0.0) - a.percentage
        for ticker, total in totals.items():
            assert total <= held[ticker] + 1e-9

    @pytest.mark.behavior
    def test_global_bond_overlap_defers_to_aggregate_keep(self):
        output = _recommend({"BND": 30.0, "AGG": 20.0, "BNDW": 10.0})
        assert [(c.keep, c.sell) for c in output.consolidations] == [("BND", ["AGG"])]
        assert _actions(output) == [("AGG", "Sell", -20.0), ("BND", "Buy", 20.0)]

    @pytest.mark.behavior
    def test_sector_etf_sold_by_hidden_overlap_not_kept_by_cluster(self):
        output = _recommend({"VTI": 40.0, "XLK": 10.0, "XLV": 10.0, "XLF": 10.0, "AAPL": 10.0})
        assert [r.rule_id for r in output.recommendations if r.consolidation] == ["hidden-overlap"]

    @pytest.mark.behavior
    def test_consolidate_skips_claimed_tickers(self):
        holdings = build_holdings({"BND": 30.0, "AGG": 20.0, "BNDW": 10.0})
        by_ticker = {h.ticker: h for h in holdings}
        bond_agg, bond_overlap = detect_overlaps(holdings)
        kept: set[str] = set()
        sold: set[str] = set()
        assert consolidate(bond_agg, by_ticker, DEFAULT_REGISTRY, kept, sold) is not None
        assert (kept, sold) == ({"BND"}, {"AGG"})
        assert consolidate(bond_overlap, by_ticker, DEFAULT_REGISTRY, kept, sold) is None
