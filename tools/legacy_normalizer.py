"""Normalizer for archived analysis results.

Older backend versions stored the whole clause analysis as a single
string inside the ``summary`` or ``suggestion`` field, sometimes as JSON
and sometimes as the ``repr`` of a Python dict. This module expands
those payloads into the current item shape and coerces every risk level
into the fixed RiskLevel enum. It never raises on malformed input.
"""

import json
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from readgye.models import AnalysisItem, RiskLevel, RiskSummary


# Fields that may carry a legacy payload, in the order they are tried
LEGACY_FIELDS: Tuple[str, ...] = ("summary", "suggestion")

# Python literal spellings rewritten to JSON before the second parse attempt
LITERAL_SUBSTITUTIONS: Tuple[Tuple[str, str], ...] = (
    (r"\bTrue\b", "true"),
    (r"\bFalse\b", "false"),
    (r"\bNone\b", "null"),
    (r"'", '"'),
)

RISK_LEVEL_ALIASES: Dict[str, RiskLevel] = {
    "HIGH": RiskLevel.HIGH,
    "MEDIUM": RiskLevel.MEDIUM,
    "MODERATE": RiskLevel.MEDIUM,
    "LOW": RiskLevel.LOW,
}

AGGREGATE_CLAUSE_NUMBER = "종합 분석 결과"
UNTITLED_CLAUSE = "제목 없음"


def normalize_risk_level(level: Any) -> RiskLevel:
    """Coerce a raw risk level into the RiskLevel enum.

    MODERATE is an older backend spelling. It maps to MEDIUM, the same as
    on the analysis result screen. Anything unrecognized, including
    lowercase spellings, becomes UNKNOWN.
    """
    if isinstance(level, RiskLevel):
        return level
    if isinstance(level, str):
        return RISK_LEVEL_ALIASES.get(level, RiskLevel.UNKNOWN)
    return RiskLevel.UNKNOWN


def _to_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def apply_literal_substitutions(text: str) -> str:
    """Rewrite Python literal syntax into its JSON spelling."""
    for pattern, replacement in LITERAL_SUBSTITUTIONS:
        text = re.sub(pattern, replacement, text)
    return text


def _decode_json(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except ValueError:
        return None


def _decode_python_literal(text: str) -> Optional[Any]:
    return _decode_json(apply_literal_substitutions(text))


# Decode strategies, tried in order until one yields a value
LEGACY_DECODERS: Tuple[Callable[[str], Optional[Any]], ...] = (
    _decode_json,
    _decode_python_literal,
)


def parse_legacy_payload(raw: Any) -> Optional[Dict[str, Any]]:
    """Decode a legacy payload string.

    Returns the decoded dict, or None when ``raw`` does not look like a
    legacy payload or none of the decoders can read it.
    """
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text.startswith("{"):
        return None

    for decoder in LEGACY_DECODERS:
        payload = decoder(text)
        if payload is not None:
            return payload if isinstance(payload, dict) else None

    logger.debug("Legacy payload could not be decoded, keeping text verbatim")
    return None


def map_legacy_clauses(payload: Dict[str, Any]) -> List[AnalysisItem]:
    """Map the ``clauses`` array of a legacy payload to AnalysisItems."""
    clauses = payload.get("clauses")
    if not isinstance(clauses, list):
        return []

    items = []
    for index, clause in enumerate(clauses, start=1):
        if not isinstance(clause, dict):
            clause = {}
        items.append(AnalysisItem(
            clause_number=(
                _to_text(clause.get("clause_number") or clause.get("article_number"))
                or f"조항 {index}"
            ),
            title=_to_text(clause.get("title")) or UNTITLED_CLAUSE,
            risk_level=normalize_risk_level(clause.get("risk_level")),
            summary=_to_text(
                clause.get("summary") or clause.get("analysis") or clause.get("original_text")
            ),
            suggestion=_to_text(clause.get("suggestion")),
        ))
    return items


def _expand_legacy(item: Dict[str, Any]) -> Optional[List[AnalysisItem]]:
    for field in LEGACY_FIELDS:
        payload = parse_legacy_payload(item.get(field))
        if payload is None:
            continue
        expanded = map_legacy_clauses(payload)
        if expanded:
            return expanded
    return None


def _coerce_item(item: Dict[str, Any]) -> AnalysisItem:
    return AnalysisItem(
        clause_number=_stringify(item.get("clause_number")),
        title=_stringify(item.get("title")),
        risk_level=normalize_risk_level(item.get("risk_level")),
        summary=_stringify(item.get("summary")),
        suggestion=_stringify(item.get("suggestion")),
    )


def normalize_analysis(items: Iterable[Dict[str, Any]]) -> List[AnalysisItem]:
    """Normalize raw analysis items from the detail endpoint.

    Each item is either expanded from a legacy payload found in one of
    LEGACY_FIELDS or kept as-is with its risk level coerced. A legacy
    payload with an empty ``clauses`` array does not count, so the item
    is kept rather than dropped.

    Args:
        items: Raw ``analysis`` entries as decoded from JSON

    Returns:
        Normalized items in their original order
    """
    normalized: List[AnalysisItem] = []
    for item in items or []:
        if not isinstance(item, dict):
            logger.warning(f"Skipping non-object analysis entry of type {type(item).__name__}")
            continue
        expanded = _expand_legacy(item)
        if expanded:
            normalized.extend(expanded)
        else:
            normalized.append(_coerce_item(item))
    return normalized


def summarize_risks(items: Iterable[AnalysisItem]) -> RiskSummary:
    """Count clauses per risk level, ignoring the aggregate summary row."""
    summary = RiskSummary()
    for item in items:
        if item.clause_number == AGGREGATE_CLAUSE_NUMBER:
            continue
        if item.risk_level is RiskLevel.HIGH:
            summary.high += 1
        elif item.risk_level is RiskLevel.MEDIUM:
            summary.medium += 1
        elif item.risk_level is RiskLevel.LOW:
            summary.low += 1
    return summary
