"""Cleanup of model output into modules and questions.

Generative models wrap JSON in prose or markdown fences and drift from the
requested shape. These functions pull out the first JSON array and coerce
each item into the shape the course builder expects. They never raise on
bad model output.
"""

import re
from typing import Any

import orjson

from learnhub.courses.models import ContentType


JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")
CODE_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)

VALID_CONTENT_TYPES = frozenset(c.value for c in ContentType)

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 300
DEFAULT_DURATION_MINUTES = 60

MIN_OPTIONS = 2
MIN_POINTS = 1
MAX_POINTS = 10

FALLBACK_MODULE_NAME = "AI Generated Content"


def extract_json_array(text: str) -> list[Any] | None:
    """First JSON array in ``text``, or None when there is none."""
    if not text:
        return None
    stripped = CODE_FENCE_PATTERN.sub("", text)
    match = JSON_ARRAY_PATTERN.search(stripped)
    if not match:
        return None
    try:
        parsed = orjson.loads(match.group(0))
    except orjson.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, list) else None


def _int_or(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def _text_or(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def fallback_module(raw_text: str) -> dict[str, Any]:
    """Single placeholder module carrying the unparsed model output."""
    return {
        "module_name": FALLBACK_MODULE_NAME,
        "module_description": (
            "The AI generated content that needs to be structured into proper modules."
        ),
        "content_type": ContentType.TEXT.value,
        "estimated_duration_minutes": DEFAULT_DURATION_MINUTES,
        "learning_objectives": ["Review AI-generated content", "Structure into proper modules"],
        "suggested_activities": ["Manual review and editing"],
        "module_order": 1,
        "ai_raw_content": raw_text,
    }


def clean_module(item: Any, index: int) -> dict[str, Any]:
    data = item if isinstance(item, dict) else {}
    content_type = data.get("content_type")
    if content_type not in VALID_CONTENT_TYPES:
        content_type = ContentType.TEXT.value

    duration = _int_or(data.get("estimated_duration_minutes"), DEFAULT_DURATION_MINUTES)
    if duration <= 0:
        duration = DEFAULT_DURATION_MINUTES

    return {
        "module_name": _text_or(data.get("module_name"), f"Module {index + 1}"),
        "module_description": _text_or(
            data.get("module_description"), "AI-generated module description"
        ),
        "content_type": content_type,
        "estimated_duration_minutes": max(
            MIN_DURATION_MINUTES, min(MAX_DURATION_MINUTES, duration)
        ),
        "learning_objectives": _string_list(data.get("learning_objectives")),
        "suggested_activities": _string_list(data.get("suggested_activities")),
        "module_order": index + 1,
    }


def parse_modules(text: str) -> list[dict[str, Any]]:
    """Modules from raw model output, falling back to one placeholder."""
    items = extract_json_array(text)
    if not items:
        return [fallback_module(text)]
    return [clean_module(item, index) for index, item in enumerate(items)]


def clean_question(item: Any) -> dict[str, Any] | None:
    """Normalise one question; None when it cannot be used."""
    if not isinstance(item, dict):
        return None
    question_text = _text_or(item.get("question_text") or item.get("question"), "")
    options = _string_list(item.get("options"))
    if not question_text or len(options) < MIN_OPTIONS:
        return None

    correct = _int_or(item.get("correct_answer"), 0)
    correct = max(0, min(len(options) - 1, correct))
    points = max(MIN_POINTS, min(MAX_POINTS, _int_or(item.get("points"), MIN_POINTS)))

    return {
        "question_text": question_text,
        "options": options,
        "correct_answer": correct,
        "points": points,
        "explanation": _text_or(item.get("explanation"), "") or None,
    }


def parse_questions(text: str) -> list[dict[str, Any]]:
    """Usable questions from raw model output, numbered from 1."""
    questions = [q for q in map(clean_question, extract_json_array(text) or []) if q]
    for order, question in enumerate(questions, start=1):
        question["question_order"] = order
    return questions
