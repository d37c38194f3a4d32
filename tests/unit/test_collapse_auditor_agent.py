"""
Collapse Auditor — Pipeline & Behavioral Tests
Level 2: Deterministic pipeline tests over holdings text.
Level 3: Behavioral boundary tests.
"""

from __future__ import annotations

import pytest

from collapse_auditor.agents.collapse_auditor import (
    HAS_CREWAI,
    analyze,
    build_auditor_agent,
    run_audit_pipeline,
)
from collapse_auditor.schemas.audit_output import (
    ACCEPTED_FORMATS,
    InsufficientData,
    PortfolioAnalysis,
)

from tests.fixtures.conftest import (
    KITCHEN_SINK,
    SCENARIO_CLEAN,
    SCENARIO_DUPLICATE_BROAD,
    SCENARIO_NO_TICKERS,
    SCENARIO_TECH_CLUSTER,
)


# Cache pipeline output per input; every run is pure so sharing is safe
_cache: dict[str, object] = {}


def _get_output(text: str):
    if text not in _cache:
        _cache[text] = run_audit_pipeline(text)
    return _cache[text]


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

class TestDuplicateBroadMarket:

    @pytest.mark.behavior
    def test_returns_analysis(self):
        assert isinstance(_get_output(SCENARIO_DUPLICATE_BROAD), PortfolioAnalysis)

    @pytest.mark.behavior
    def test_finding(self):
        output = _get_output(SCENARIO_DUPLICATE_BROAD)
        assert not output.no_redundancy_detected
        assert len(output.findings) == 1
        f = output.findings[0]
        assert f.rule_id == "same-category:broad-market"
        assert f.symbols == ["FZROX", "VTI"]
        assert f.combined_weight == 70.0

    @pytest.mark.behavior
    def test_scores(self):
        output = _get_output(SCENARIO_DUPLICATE_BROAD)
        assert output.risk_scores.overall_risk_score == 5
        assert output.risk_scores.bonds_concentration == 30.0
        assert output.simplification.score == 8.0

    @pytest.mark.behavior
    def test_keeps_cheapest_fund(self):
        output = _get_output(SCENARIO_DUPLICATE_BROAD)
        assert output.consolidations[0].keep == "FZROX"
        assert output.consolidations[0].sell == ["VTI"]


class TestTechCluster:

    @pytest.mark.behavior
    def test_finding(self):
        output = _get_output(SCENARIO_TECH_CLUSTER)
        assert [f.rule_id for f in output.findings] == ["sector-cluster:technology"]
        assert output.findings[0].combined_weight == 45.0

    @pytest.mark.behavior
    def test_high_risk(self):
        risk = _get_output(SCENARIO_TECH_CLUSTER).risk_scores
        assert risk.technology_concentration == 45.0
        assert risk.structure.score >= 7
        assert risk.overall_label == "High risk"

    @pytest.mark.behavior
    def test_classification(self):
        output = _get_output(SCENARIO_TECH_CLUSTER)
        assert output.holding("XLK").categories == ("sector-etf:technology",)
        assert output.holding("AAPL").categories == ("individual-stock",)
        assert output.holding("MSFT").sector == "Technology"


class TestNoTickers:

    @pytest.mark.behavior
    def test_insufficient_data(self):
        result = _get_output(SCENARIO_NO_TICKERS)
        assert isinstance(result, InsufficientData)
        assert result.accepted_formats == ACCEPTED_FORMATS

    @pytest.mark.behavior
    @pytest.mark.parametrize("text", ["", "please review", "50%, 50%"])
    def test_never_an_empty_analysis(self, text):
        assert isinstance(run_audit_pipeline(text), InsufficientData)


class TestCleanPortfolio:

    @pytest.mark.behavior
    def test_sentinel(self):
        output = _get_output(SCENARIO_CLEAN)
        assert output.no_redundancy_detected
        assert output.findings == []
        assert output.consolidations == []

    @pytest.mark.behavior
    def test_scores(self):
        output = _get_output(SCENARIO_CLEAN)
        assert output.simplification.score == 10.0
        assert output.risk_scores.overall_risk_score <= 4

    @pytest.mark.behavior
    def test_summary(self):
        assert "No redundancy detected" in _get_output(SCENARIO_CLEAN).summary


class TestKitchenSink:

    @pytest.mark.behavior
    def test_floor_and_cap(self):
        output = _get_output(KITCHEN_SINK)
        assert len(output.holdings) == 21
        assert output.simplification.score == 1.0
        assert len(output.consolidations) == 5

    @pytest.mark.behavior
    def test_findings_cite_held_tickers(self):
        output = _get_output(KITCHEN_SINK)
        held = {h.ticker for h in output.holdings}
        for f in output.findings:
            assert set(f.symbols) <= held


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

class TestProperties:

    @pytest.mark.behavior
    @pytest.mark.parametrize("text", [SCENARIO_DUPLICATE_BROAD, SCENARIO_TECH_CLUSTER, KITCHEN_SINK])
    def test_idempotent(self, text):
        assert run_audit_pipeline(text).model_dump_json() == run_audit_pipeline(text).model_dump_json()

    @pytest.mark.behavior
    def test_alias(self):
        assert analyze is run_audit_pipeline

    @pytest.mark.behavior
    def test_weights_preserved(self):
        output = _get_output("VTI 30%, BND 20%")
        assert output.total_weight == 50.0

    @pytest.mark.behavior
    def test_scores_bounded(self):
        output = _get_output(KITCHEN_SINK)
        for dim in output.risk_scores.dimensions():
            assert 0 <= dim.score <= 10
        assert 1.0 <= output.simplification.score <= 10.0


# ---------------------------------------------------------------------------
# Agent Builder
# ---------------------------------------------------------------------------

class TestAgentBuilder:

    @pytest.mark.behavior
    @pytest.mark.skipif(HAS_CREWAI, reason="crewai installed")
    def test_agent_requires_crewai(self):
        with pytest.raises(ImportError, match="crewai"):
            build_auditor_agent()
