import re
from typing import Dict, Any, List

from ..models.schemas import Classification


LABELS = ("scream", "noise", "talking", "silence")


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_classifier_response(payload: Dict[str, Any]) -> Classification:
    """Pull the four class scores out of a classifier JSON response.

    Accepts both ``{"results": [{"classification": {...}}]}`` and a bare
    ``{"classification": {...}}``. Labels are matched case-insensitively
    and missing ones score 0.
    """
    scores: Dict[str, Any] = {}
    results = payload.get("results") if isinstance(payload, dict) else None
    if isinstance(results, list) and results and isinstance(results[0], dict):
        scores = results[0].get("classification") or {}
    if not scores and isinstance(payload, dict):
        scores = payload.get("classification") or {}
    if not isinstance(scores, dict):
        scores = {}

    lowered = {str(k).strip().lower(): v for k, v in scores.items()}
    out = {label: _as_float(lowered.get(label, 0.0)) for label in LABELS}
    return Classification(**out)


_WORD = re.compile(r"[\w']+")


def extract_keywords(transcript: str) -> List[str]:
    """Split a transcript into word tokens, preserving order and casing."""
    return _WORD.findall(transcript or "")
