"""
Auditor Tool: Ticker Classifier
Assigns category tags and a sector label to each parsed ticker using an
injected CategoryRegistry. Unknown tickers are valid: they carry no
categories and the default sector.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from collapse_auditor.schemas.holdings_output import Holding
from collapse_auditor.tools.category_registry import DEFAULT_REGISTRY, CategoryRegistry

logger = logging.getLogger(__name__)


def classify_ticker(
    ticker: str,
    registry: Optional[CategoryRegistry] = None,
) -> tuple[list[str], str]:
    """
    Classify one ticker.

    Table membership wins; fallback rules run only when no table matches.

    Returns:
        (sorted category tags, sector label)
    """
    registry = registry or DEFAULT_REGISTRY
    ticker = ticker.strip().upper()
    categories = registry.table_categories(ticker)
    if not categories:
        fallback = registry.fallback_category(ticker)
        if fallback:
            categories = [fallback]
    return categories, registry.sector_for(ticker)


def classify_holdings(
    weights: Mapping[str, float],
    registry: Optional[CategoryRegistry] = None,
) -> list[Holding]:
    """
    Build classified Holding records in input order.

    Args:
        weights: Ticker -> weight, as produced by the Holdings Parser.
        registry: Taxonomy to classify against; defaults to the built-in tables.
    """
    registry = registry or DEFAULT_REGISTRY
    holdings: list[Holding] = []
    for ticker, weight in weights.items():
        categories, sector = classify_ticker(ticker, registry)
        holdings.append(Holding(
            ticker=ticker,
            weight=weight,
            categories=categories,
            sector=sector,
        ))
        if not categories:
            logger.debug(f"{ticker}: no category match (sector={sector})")

    logger.info(
        f"Classified {len(holdings)} holdings, "
        f"{sum(1 for h in holdings if h.categories)} with known exposure"
    )
    return holdings
