"""
Shared test fixtures for Collapse Auditor tests.
Provides sample holdings texts and a helper that builds classified
holdings without going through the parser.
"""

from __future__ import annotations

from typing import Optional

from collapse_auditor.schemas.holdings_output import Holding
from collapse_auditor.tools.category_registry import CategoryRegistry
from collapse_auditor.tools.ticker_classifier import classify_holdings


# Duplicate total-market funds beside a bond fund
SCENARIO_DUPLICATE_BROAD = "FZROX 40%, VTI 30%, BND 30%"

# Technology sector ETF plus two Technology stocks
SCENARIO_TECH_CLUSTER = "XLK 20%, AAPL 15%, MSFT 10%"

# No ticker at all
SCENARIO_NO_TICKERS = "my retirement money"

# Two holdings, nothing overlapping
SCENARIO_CLEAN = "SGOV 50%, VTI 50%"

# 21 holdings tripping nearly every overlap rule
KITCHEN_SINK = (
    "VTI 15%, ITOT 10%, VOO 10%, QQQ 5%, QQQM 5%, XLK 8%, XLV 4%, XLF 4%, "
    "AAPL 12%, JNJ 3%, JPM 2%, BND 5%, AGG 3%, BNDW 2%, SCHD 4%, VYM 2%, "
    "QUAL 2%, GLD 1%, GLDM 1%, VNQ 1%, SCHH 1%"
)

# Every accepted input shape, all describing the same three holdings
EQUIVALENT_INPUTS = [
    "SGOV 50%, VTI 30%, BND 20%",
    "50% SGOV, 30% VTI, 20% BND",
    "SGOV:50%\nVTI:30%\nBND:20%",
    "SGOV ~50%\nVTI ~30%\nBND ~20%",
    "SGOV\t~50%\nVTI\t~30%\nBND\t~20%",
    '{"input": "SGOV 50%, VTI 30%, BND 20%"}',
]


def build_holdings(
    weights: dict[str, float],
    registry: Optional[CategoryRegistry] = None,
) -> list[Holding]:
    """Classified holdings straight from a ticker -> weight map."""
    return classify_holdings(weights, registry)
