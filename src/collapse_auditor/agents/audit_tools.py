"""
CrewAI tool wrappers over the deterministic auditor tools.
Installed with the `agents` extra: pip install collapse-auditor[agents]
"""

from __future__ import annotations

from crewai.tools import BaseTool
from pydantic import BaseModel, Field

from collapse_auditor.agents.collapse_auditor import run_audit_pipeline
from collapse_auditor.exceptions import InsufficientDataError
from collapse_auditor.schemas.audit_output import InsufficientData
from collapse_auditor.tools.holdings_parser import parse_holdings
from collapse_auditor.tools.overlap_detector import detect_redundancy
from collapse_auditor.tools.ticker_classifier import classify_holdings


class HoldingsTextInput(BaseModel):
    holdings_text: str = Field(
        ..., description="Portfolio holdings, e.g. 'FZROX 40%, VTI 30%, BND 30%'",
    )


class PortfolioAuditTool(BaseTool):
    name: str = "audit_portfolio"
    description: str = (
        "Run the full collapse audit on free-form holdings text: classification, "
        "redundancy findings, risk and simplification scores, and consolidation "
        "suggestions. Returns JSON."
    )
    args_schema: type[BaseModel] = HoldingsTextInput

    def _run(self, holdings_text: str) -> str:
        result = run_audit_pipeline(holdings_text)
        return result.model_dump_json(indent=2)


class RedundancyCheckTool(BaseTool):
    name: str = "check_redundancy"
    description: str = (
        "List overlapping holdings (duplicate index funds, bond overlap, sector "
        "ETF + stock clusters, factor overlap) in free-form holdings text."
    )
    args_schema: type[BaseModel] = HoldingsTextInput

    def _run(self, holdings_text: str) -> str:
        try:
            parsed = parse_holdings(holdings_text)
        except InsufficientDataError:
            return InsufficientData().message
        report = detect_redundancy(classify_holdings(parsed.weights))
        if report.no_redundancy_detected:
            return report.message
        lines = [f"{len(report.findings)} redundancy finding(s):"]
        for f in report.findings:
            lines.append(f"  {f.category}: {', '.join(f.symbols)} ({f.combined_weight:.1f}%)")
        return "\n".join(lines)
