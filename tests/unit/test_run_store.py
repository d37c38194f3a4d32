"""
Auditor Tool: Audit Run Store — Unit Tests
Level 1: File round trips in a temporary directory.
"""

from __future__ import annotations

import pytest

from collapse_auditor.agents.collapse_auditor import run_audit_pipeline
from collapse_auditor.exceptions import SchemaValidationError
from collapse_auditor.tools.run_store import AuditRunStore

from tests.fixtures.conftest import SCENARIO_DUPLICATE_BROAD, SCENARIO_TECH_CLUSTER


class TestAuditRunStore:

    @pytest.mark.integration
    def test_put_get_round_trip(self, tmp_path):
        store = AuditRunStore(tmp_path / "runs")
        analysis = run_audit_pipeline(SCENARIO_DUPLICATE_BROAD)
        path = store.put("ira-2026", analysis)
        assert path.exists()
        assert store.get("ira-2026") == analysis

    @pytest.mark.integration
    def test_missing_run(self, tmp_path):
        assert AuditRunStore(tmp_path).get("nope") is None

    @pytest.mark.integration
    def test_overwrite(self, tmp_path):
        store = AuditRunStore(tmp_path)
        store.put("run", run_audit_pipeline(SCENARIO_DUPLICATE_BROAD))
        tech = run_audit_pipeline(SCENARIO_TECH_CLUSTER)
        store.put("run", tech)
        assert store.get("run") == tech

    @pytest.mark.integration
    def test_list_runs(self, tmp_path):
        store = AuditRunStore(tmp_path / "never-created")
        assert store.list_runs() == []
        analysis = run_audit_pipeline(SCENARIO_DUPLICATE_BROAD)
        store.put("b-run", analysis)
        store.put("a-run", analysis)
        assert store.list_runs() == ["a-run", "b-run"]

    @pytest.mark.integration
    @pytest.mark.parametrize("run_id", ["../escape", "", "a/b", ".hidden"])
    def test_bad_run_id(self, tmp_path, run_id):
        with pytest.raises(ValueError):
            AuditRunStore(tmp_path).get(run_id)

    @pytest.mark.integration
    def test_corrupt_snapshot(self, tmp_path):
        (tmp_path / "broken.json").write_text('{"holdings": []}', encoding="utf-8")
        with pytest.raises(SchemaValidationError):
            AuditRunStore(tmp_path).get("broken")
