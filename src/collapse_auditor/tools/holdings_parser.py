"""
Auditor Tool: Holdings Parser
Turns free-form portfolio text into a normalized ticker -> weight map.

Accepted shapes, in any mix:
  - "SGOV 50%, VTI 30%"          (weight after ticker)
  - "50% SGOV\n30% VTI"          (weight before ticker)
  - "FZROX\t~10.8%\nSCHD:14.2%"  (tabs, colons, approximation marker)
  - "VTI, VXUS, BND"             (no weights: equal weight imputed)
  - '{"input": "VTI 60%, BND 40%"}'  (JSON envelope with an "input" field)

Out-of-range weights are clamped, never rejected. An unweighted entry
that names several tickers is prose, not a holding, and is dropped. If the
structured pass finds nothing, a fallback pass scans the raw text for
ticker-shaped words. Only when both passes come up empty is
InsufficientDataError raised.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Optional

from collapse_auditor.config.constants import (
    APPROXIMATION_MARKER,
    ENTRY_SEPARATORS,
    FALLBACK_NOISE_WORDS,
    MAX_WEIGHT_PCT,
    MIN_WEIGHT_PCT,
    TICKER_PATTERN,
    WEIGHT_PATTERN,
)
from collapse_auditor.exceptions import ErrorSeverity, InsufficientDataError, ProcessingError
from collapse_auditor.schemas.holdings_output import ParsedHoldings

logger = logging.getLogger(__name__)

_SEPARATOR_RE = re.compile(ENTRY_SEPARATORS)
_WEIGHT_RE = re.compile(WEIGHT_PATTERN)
_TICKER_RE = re.compile(rf"\b({TICKER_PATTERN})\b")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def extract_portfolio_text(raw_text: str) -> str:
    """Unwrap a JSON object carrying an "input" string; otherwise return the text as-is."""
    stripped = raw_text.strip()
    if not stripped.startswith("{"):
        return raw_text
    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError:
        return raw_text
    if isinstance(payload, dict) and isinstance(payload.get("input"), str):
        logger.debug("Unwrapped holdings text from JSON 'input' field")
        return payload["input"]
    return raw_text


def split_entries(text: str) -> list[str]:
    """Split on commas, newlines and tabs; drop empty entries."""
    return [e.strip() for e in _SEPARATOR_RE.split(text) if e.strip()]


def clamp_weight(weight: float) -> float:
    return max(MIN_WEIGHT_PCT, min(MAX_WEIGHT_PCT, weight))


def find_ticker(entry: str, weighted: bool = True) -> str | None:
    """
    Ticker named by one entry.

    Noise words ("ETF", "IRA", "TOTAL") are never tickers, so an entry
    naming only noise words (a "TOTAL\\t100%" export row) yields None.
    A weighted entry names one position, so its first candidate wins. A
    weightless entry naming several tickers reads as prose ("I hold VTI
    and VXUS") and yields None, leaving it to the fallback pass.
    """
    candidates = ticker_candidates(entry)
    if weighted:
        return candidates[0] if candidates else None
    return candidates[0] if len(candidates) == 1 else None


def ticker_candidates(entry: str) -> list[str]:
    """Unique ticker-shaped words of an entry, noise words removed."""
    return list(dict.fromkeys(
        m for m in _TICKER_RE.findall(entry) if m not in FALLBACK_NOISE_WORDS
    ))


def find_weight(entry: str) -> float | None:
    m = _WEIGHT_RE.search(entry)
    return float(m.group(1)) if m else None


# ---------------------------------------------------------------------------
# Parsing Passes
# ---------------------------------------------------------------------------

def _checked_weight(
    ticker: str,
    weight: float,
    entry: str,
    issues: list[ProcessingError],
) -> float:
    """Clamp an out-of-range weight into (0, 100], recording a warning."""
    if 0 < weight <= MAX_WEIGHT_PCT:
        return weight
    clamped = clamp_weight(weight)
    logger.warning(f"{ticker}: weight {weight}% out of range, clamped to {clamped}%")
    issues.append(ProcessingError(
        token=entry,
        error_type="MALFORMED_WEIGHT",
        message=f"Weight {weight}% outside (0, {MAX_WEIGHT_PCT}]; clamped to {clamped}%",
        severity=ErrorSeverity.WARNING,
        context={"ticker": ticker, "original_weight": weight},
    ))
    return clamped


def _structured_pass(
    entries: list[str],
    issues: list[ProcessingError],
) -> tuple[dict[str, float], bool]:
    """
    Per-entry ticker/weight extraction. Returns (weights, any weight imputed).

    Tab-separated exports put the weight in its own cell ("FZROX\\t~10.8%"),
    so a weight-only entry is attached to the weightless ticker entry just
    before it. Tickers still without a weight share 100 / N equally, N being
    the number of holdings parsed.
    """
    weights: dict[str, Optional[float]] = {}
    pending: Optional[str] = None

    for entry in entries:
        cleaned = entry.lstrip(APPROXIMATION_MARKER).strip()
        weight = find_weight(cleaned)
        ticker = find_ticker(cleaned, weighted=weight is not None)

        if ticker is None and weight is not None and pending is not None:
            weights[pending] = _checked_weight(pending, weight, entry, issues)
            logger.debug(f"Paired weight {weights[pending]}% with preceding {pending}")
            pending = None
            continue

        if ticker is None:
            logger.debug(f"Dropped entry without a single ticker: {entry!r}")
            ambiguous = len(ticker_candidates(cleaned)) > 1
            issues.append(ProcessingError(
                token=entry,
                error_type="AMBIGUOUS_ENTRY" if ambiguous else "NO_TICKER",
                message=(
                    "Unweighted entry names more than one ticker-shaped symbol"
                    if ambiguous else "Entry contains no ticker symbol"
                ),
                severity=ErrorSeverity.INFO,
            ))
            pending = None
            continue

        # Repeated ticker: last weight wins, position of first mention kept
        if weight is None:
            weights[ticker] = None
            pending = ticker
        else:
            weights[ticker] = _checked_weight(ticker, weight, entry, issues)
            pending = None

    imputed = any(w is None for w in weights.values())
    equal_weight = clamp_weight(MAX_WEIGHT_PCT / max(1, len(weights)))
    resolved = {t: (equal_weight if w is None else w) for t, w in weights.items()}
    for ticker, weight in resolved.items():
        logger.debug(f"Parsed holding: {ticker} with weight {weight}%")
    return resolved, imputed


def _fallback_pass(text: str) -> dict[str, float]:
    """Every unique ticker-shaped word in the whole text, equal weighted."""
    seen = ticker_candidates(text)
    if not seen:
        return {}
    weight = clamp_weight(MAX_WEIGHT_PCT / len(seen))
    return {ticker: weight for ticker in seen}


# ---------------------------------------------------------------------------
# Public Entry Point
# ---------------------------------------------------------------------------

def parse_holdings(raw_text: str) -> ParsedHoldings:
    """
    Parse free-form holdings text.

    Args:
        raw_text: User-typed portfolio description.

    Returns:
        ParsedHoldings with weights in first-seen order.

    Raises:
        InsufficientDataError: Neither pass found a ticker.
    """
    text = extract_portfolio_text(raw_text or "")
    entries = split_entries(text)
    logger.info(f"[Auditor] Found {len(entries)} potential holdings entries")

    issues: list[ProcessingError] = []
    weights, imputed = _structured_pass(entries, issues)
    source = "structured"

    if not weights:
        logger.info("[Auditor] No holdings from structured parsing, attempting regex fallback")
        weights = _fallback_pass(raw_text or "")
        imputed = bool(weights)
        source = "fallback"

    if not weights:
        preview = text.strip()[:60]
        raise InsufficientDataError(
            f"No holdings found in {preview!r}",
            record=ProcessingError(
                token=preview,
                error_type="INSUFFICIENT_DATA",
                message="Neither parsing pass found a ticker",
                severity=ErrorSeverity.CRITICAL,
                context={"entries": len(entries), "dropped": len(issues)},
            ),
        )

    logger.info(f"[Auditor] Parsed {len(weights)} holdings via {source} pass")
    return ParsedHoldings(
        weights=weights,
        source=source,
        imputed_weights=imputed,
        warnings=[issue.to_dict() for issue in issues],
    )
