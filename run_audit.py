"""Run the Collapse Auditor on holdings text and write JSON + Excel output.

Usage:
    python run_audit.py "FZROX 40%, VTI 30%, BND 30%"
    python run_audit.py --file holdings.txt
    cat holdings.txt | python run_audit.py --output results --run-id ira-2026
    python run_audit.py --show ira-2026           # reload a saved run
"""

import argparse
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent / "src"))

from dotenv import load_dotenv
load_dotenv()

import pandas as pd
from openpyxl.styles import Font, PatternFill

from collapse_auditor.agents.collapse_auditor import run_audit_pipeline
from collapse_auditor.config.constants import EXCEL_COLORS, EXCEL_COLUMN_WIDTH_MAX
from collapse_auditor.exceptions import CollapseAuditorException, OutputWriteError
from collapse_auditor.schemas.audit_output import InsufficientData, PortfolioAnalysis
from collapse_auditor.tools.run_store import AuditRunStore


# ---------------------------------------------------------------------------
# CLI Argument Parsing
# ---------------------------------------------------------------------------

def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Portfolio Collapse Auditor: redundancy and risk audit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  python run_audit.py "SGOV 50%, VTI 30%, VXUS 10%, SCHD 10%"
  python run_audit.py --file holdings.txt --run-id roth-ira
  python run_audit.py --show roth-ira
""",
    )
    parser.add_argument(
        "holdings", nargs="?", default=None,
        help="Holdings text; read from --file or stdin when omitted",
    )
    parser.add_argument(
        "--file", dest="holdings_file", default=None,
        help="Read holdings text from this file",
    )
    parser.add_argument(
        "--output", default=os.getenv("AUDIT_OUTPUT_DIR", "output"),
        help="Output directory (default: $AUDIT_OUTPUT_DIR or 'output')",
    )
    parser.add_argument(
        "--run-id", default=None,
        help="Snapshot key (default: audit_<today>)",
    )
    parser.add_argument(
        "--show", metavar="RUN_ID", default=None,
        help="Print a saved run instead of auditing new holdings",
    )
    parser.add_argument(
        "--no-excel", action="store_true", default=False,
        help="Skip the Excel workbook",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=False,
        help="Debug logging",
    )
    return parser.parse_args(argv)


def _read_holdings(args: argparse.Namespace) -> str:
    if args.holdings is not None:
        return args.holdings
    if args.holdings_file:
        return Path(args.holdings_file).read_text(encoding="utf-8")
    return sys.stdin.read()


# ---------------------------------------------------------------------------
# Excel Output
# ---------------------------------------------------------------------------

_LABEL_FILLS = {
    "Low risk": PatternFill(
        start_color=EXCEL_COLORS["light_green"], end_color=EXCEL_COLORS["light_green"], fill_type="solid",
    ),
    "Moderate risk": PatternFill(
        start_color=EXCEL_COLORS["yellow"], end_color=EXCEL_COLORS["yellow"], fill_type="solid",
    ),
    "High risk": PatternFill(
        start_color=EXCEL_COLORS["red"], end_color=EXCEL_COLORS["red"], fill_type="solid",
    ),
}
_ACTION_FILLS = {
    "Buy": _LABEL_FILLS["Low risk"],
    "Sell": PatternFill(
        start_color=EXCEL_COLORS["orange"], end_color=EXCEL_COLORS["orange"], fill_type="solid",
    ),
}


def _autosize(ws) -> None:
    for column in ws.columns:
        width = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
        ws.column_dimensions[column[0].column_letter].width = min(width + 2, EXCEL_COLUMN_WIDTH_MAX)
    for cell in ws[1]:
        cell.font = Font(bold=True)


def _fill_column(ws, header: str, fills: dict) -> None:
    headers = [cell.value for cell in ws[1]]
    if header not in headers:
        return
    col = headers.index(header) + 1
    for row in range(2, ws.max_row + 1):
        cell = ws.cell(row=row, column=col)
        fill = fills.get(cell.value)
        if fill is not None:
            cell.fill = fill


def write_audit_excel(analysis: PortfolioAnalysis, filepath: Path) -> Path:
    """Write the analysis to a multi-sheet workbook."""
    risk = analysis.risk_scores
    simp = analysis.simplification

    # --- Summary ---
    summary_rows = [
        {"Field": "Holdings", "Value": len(analysis.holdings)},
        {"Field": "Total Weight %", "Value": analysis.total_weight},
        {"Field": "Findings", "Value": len(analysis.findings)},
        {"Field": "Overall Risk", "Value": f"{risk.overall_risk_score}/10 ({risk.overall_label})"},
        {"Field": "Technology %", "Value": risk.technology_concentration},
        {"Field": "Bonds %", "Value": risk.bonds_concentration},
        {"Field": "Simplification", "Value": f"{simp.score:.1f}/10"},
        {"Field": "Explanation", "Value": simp.explanation},
        {"Field": "Complexity Factors", "Value": "; ".join(simp.complexity_factors)},
        {"Field": "Simplicity Factors", "Value": "; ".join(simp.simplicity_factors)},
        {"Field": "", "Value": ""},
        {"Field": "Summary", "Value": analysis.summary},
    ]
    df_summary = pd.DataFrame(summary_rows)

    # --- Holdings ---
    df_holdings = pd.DataFrame([
        {
            "Ticker": h.ticker,
            "Weight %": h.weight,
            "Sector": h.sector,
            "Categories": ", ".join(h.categories),
        }
        for h in analysis.holdings
    ])

    # --- Findings ---
    df_findings = pd.DataFrame([
        {
            "Rule": f.rule_id,
            "Category": f.category,
            "Tickers": ", ".join(f"{t.ticker} ({t.weight:g}%)" for t in f.tickers),
            "Combined Weight %": f.combined_weight,
            "Reason": f.reason,
        }
        for f in analysis.findings
    ])

    # --- Risk Scores ---
    df_risk = pd.DataFrame([
        {"Dimension": s.dimension, "Score": s.score, "Label": s.label}
        for s in risk.dimensions()
    ] + [
        {"Dimension": "overall", "Score": risk.overall_risk_score, "Label": risk.overall_label},
    ])

    # --- Consolidation / Rebalance ---
    df_consolidation = pd.DataFrame([
        {
            "Category": c.category,
            "Keep": c.keep,
            "Sell": ", ".join(c.sell),
            "Savings": c.savings or "",
            "Reason": c.reason,
        }
        for c in analysis.consolidations
    ])
    df_rebalance = pd.DataFrame([
        {"Ticker": a.ticker, "Action": a.action, "Amount": a.amount, "Percentage": a.percentage}
        for a in analysis.rebalance_actions
    ])

    # --- Write ---
    try:
        with pd.ExcelWriter(filepath, engine="openpyxl") as writer:
            df_summary.to_excel(writer, sheet_name="Summary", index=False)
            df_holdings.to_excel(writer, sheet_name="Holdings", index=False)
            if not df_findings.empty:
                df_findings.to_excel(writer, sheet_name="Findings", index=False)
            df_risk.to_excel(writer, sheet_name="Risk Scores", index=False)
            if not df_consolidation.empty:
                df_consolidation.to_excel(writer, sheet_name="Consolidation", index=False)
            if not df_rebalance.empty:
                df_rebalance.to_excel(writer, sheet_name="Rebalance", index=False)

            _fill_column(writer.sheets["Risk Scores"], "Label", _LABEL_FILLS)
            if "Rebalance" in writer.sheets:
                _fill_column(writer.sheets["Rebalance"], "Action", _ACTION_FILLS)
            for ws in writer.sheets.values():
                _autosize(ws)
    except OSError as e:
        raise OutputWriteError(f"Cannot write {filepath}: {e}") from e

    return filepath


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def _print_insufficient(result: InsufficientData) -> None:
    print(result.message)
    print("Accepted formats:")
    for example in result.accepted_formats:
        print(f"  {example!r}")


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    out_path = Path(args.output)
    store = AuditRunStore(out_path / "runs")

    if args.show:
        saved = store.get(args.show)
        if saved is None:
            print(f"\nERROR: No saved run '{args.show}' in {store.root}")
            return 1
        print(saved.model_dump_json(indent=2))
        return 0

    result = run_audit_pipeline(_read_holdings(args))
    if isinstance(result, InsufficientData):
        _print_insufficient(result)
        return 2

    run_id = args.run_id or f"audit_{date.today().isoformat()}"
    try:
        snapshot = store.put(run_id, result)
        print(f"[Auditor] Saved snapshot: {snapshot}")
        if not args.no_excel:
            out_path.mkdir(parents=True, exist_ok=True)
            workbook = write_audit_excel(result, out_path / f"{run_id}.xlsx")
            print(f"[Auditor] Saved: {workbook}")
    except CollapseAuditorException as e:
        print(f"\nERROR: {e.message}")
        return 1

    print(result.summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
