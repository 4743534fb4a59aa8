"""Feedback Parser: raw model text to validated, ID-tagged FeedbackItems.

Model output is treated as untrusted: it may be fenced in markdown, wrapped
in prose, or not JSON at all. Extraction attempts run in order and the first
one that yields a JSON array wins.
"""

from __future__ import annotations

import json
import logging
import re
import time
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from reviewer.errors import EmptyResponseError, ParseError

from .models import FeedbackItem, Severity, synthesize_feedback_id

logger = logging.getLogger(__name__)

# Characters of offending text kept on ParseError for diagnostics
EXCERPT_CHARS = 500

_LEADING_FENCE_RE = re.compile(r"^```(?:json|JSON)?[ \t]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\n?```\s*$")
_FENCED_BLOCK_RE = re.compile(r"```(?:json|JSON)?\s*\n?([\s\S]*?)\s*```")
_ARRAY_SPAN_RE = re.compile(r"\[[\s\S]*\]")
# Opening brackets tried when looking for the first decodable array
MAX_ARRAY_STARTS = 20
_DECODER = json.JSONDecoder()
_VALID_SEVERITIES = {s.value for s in Severity}


def strip_code_fence(text: str) -> str:
    """Remove a leading ```json / ``` marker and a trailing ``` marker."""
    text = text.strip()
    text = _LEADING_FENCE_RE.sub("", text, count=1)
    text = _TRAILING_FENCE_RE.sub("", text, count=1)
    return text.strip()


def extract_json_array_text(raw: str) -> List[str]:
    """Candidate spans that may hold a JSON array, most likely first.

    1. The fence-stripped text, when it starts with ``[``
    2. A fenced block anywhere in the text, when it starts with ``[``
    3. The first top-level array that decodes, ignoring trailing text
    4. The first ``[`` … last ``]`` span (kept for the error excerpt)
    """
    candidates: List[str] = []

    def add(candidate: str) -> None:
        if candidate and candidate not in candidates:
            candidates.append(candidate)

    stripped = strip_code_fence(raw)
    if stripped.startswith("["):
        add(stripped)

    for block in _FENCED_BLOCK_RE.findall(raw):
        if block.strip().startswith("["):
            add(block.strip())

    decoded = first_array_span(raw)
    if decoded:
        add(decoded)

    match = _ARRAY_SPAN_RE.search(raw)
    if match:
        add(match.group(0))
    return candidates


def first_array_span(text: str) -> Optional[str]:
    """Text of the first ``[`` that decodes as a JSON array of objects.

    Bare lists of scalars (``[notes]``, ``["a"]``) are passed over so a nested
    list inside a broken outer array is not mistaken for the answer.
    """
    start = text.find("[")
    tried = 0
    while start >= 0 and tried < MAX_ARRAY_STARTS:
        try:
            value, end = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, list) and (not value or any(isinstance(v, dict) for v in value)):
            return text[start:end]
        tried += 1
        start = text.find("[", start + 1)
    return None


def load_json_array(raw: Optional[str], caller: str = "FeedbackParser") -> List[Any]:
    """Recover a JSON array from model text or raise.

    Raises EmptyResponseError for blank input, ParseError otherwise.
    """
    if raw is None or not raw.strip():
        raise EmptyResponseError()

    candidates = extract_json_array_text(raw)
    if not candidates:
        logger.error("%s: no JSON array found, raw[:500]: %s", caller, raw[:EXCERPT_CHARS])
        raise ParseError("No JSON array found in AI response", excerpt=raw[:EXCERPT_CHARS])

    last_error: Optional[json.JSONDecodeError] = None
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
            continue
        if not isinstance(parsed, list):
            raise ParseError(
                "AI response is not an array of feedback items",
                excerpt=candidate[:EXCERPT_CHARS],
            )
        return parsed

    logger.error("%s: JSON parse error (%s), raw[:500]: %s", caller, last_error, raw[:EXCERPT_CHARS])
    raise ParseError(
        f"Failed to parse AI feedback: {last_error}",
        excerpt=candidates[-1][:EXCERPT_CHARS],
    )


def _normalize_severity(value: Any) -> str:
    severity = str(value or "").strip().lower()
    return severity if severity in _VALID_SEVERITIES else Severity.MEDIUM.value


def parse_feedback(
    raw: Optional[str],
    allowed_categories: Optional[Iterable[str]] = None,
    strict: bool = False,
    now_ms: Optional[int] = None,
) -> List[FeedbackItem]:
    """Parse model output into FeedbackItems with synthesized ids.

    Items outside ``allowed_categories`` are kept and logged unless ``strict``
    is set, in which case they are dropped.
    """
    elements = load_json_array(raw)
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    allowed = set(allowed_categories or [])

    items: List[FeedbackItem] = []
    off_category: List[str] = []
    for index, element in enumerate(elements):
        if not isinstance(element, dict):
            logger.warning("parse_feedback: skipping non-object element #%d: %r", index, element)
            continue
        item = FeedbackItem.from_dict(element)
        item.id = synthesize_feedback_id(index, now_ms)
        item.severity = _normalize_severity(element.get("severity"))
        if allowed and item.category not in allowed:
            off_category.append(item.category)
            if strict:
                continue
        items.append(item)

    if off_category:
        logger.warning(
            "parse_feedback: %d item(s) outside requested categories %s: %s%s",
            len(off_category), sorted(allowed), sorted(set(off_category)),
            " (dropped)" if strict else "",
        )
    logger.info("parse_feedback: %d feedback items parsed", len(items))
    return items


def summarize(items: Iterable[FeedbackItem]) -> Dict[str, Any]:
    """Severity/category distribution of a parsed batch."""
    items = list(items)
    severities = Counter(item.severity for item in items)
    return {
        "total": len(items),
        "high": severities.get(Severity.HIGH.value, 0),
        "medium": severities.get(Severity.MEDIUM.value, 0),
        "low": severities.get(Severity.LOW.value, 0),
        "by_category": dict(Counter(item.category for item in items)),
    }


def parse_solutions(raw: Optional[str]) -> List[Dict[str, Any]]:
    """Parse the solutions response: objects with solution + implementation_steps."""
    solutions = []
    for element in load_json_array(raw, caller="SolutionsParser"):
        if not isinstance(element, dict):
            continue
        steps = element.get("implementation_steps") or []
        if isinstance(steps, str):
            steps = [steps]
        element["implementation_steps"] = [str(s) for s in steps]
        element.setdefault("solution", "")
        solutions.append(element)
    return solutions
