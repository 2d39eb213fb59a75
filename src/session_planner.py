"""
Study session planning: strategy dispatch, user_progress row conversion and category analytics.
Sits between the data providers and the spaced repetition engine.
"""
import logging
import math
import re
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from engine import DEFAULT_SESSION_SIZE, SESSION_TYPES
from src.spaced_repetition import QuestionPriority, SpacedRepetitionAlgorithm, default_spaced_repetition

logger = logging.getLogger(__name__)

SESSION_DESCRIPTIONS = {
    "adaptive": "Intelligent selection based on your performance and spaced repetition algorithm",
    "weak-areas": "Focus on categories where you need improvement",
    "mixed-difficulty": "Balanced mix of easy, medium, and hard questions",
    "category-focus": "Concentrated practice in a specific subject area",
}

# Postgres trims trailing zeros from fractional seconds; fromisoformat on 3.10 wants 3 or 6 digits
_FRACTION = re.compile(r"\.(\d{1,6})(?=[+-]\d\d:?\d\d$|$)")


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a datetime or ISO string (trailing 'Z' allowed). Returns None if missing or invalid."""
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        text = _FRACTION.sub(lambda m: "." + m.group(1).ljust(6, "0"), value.strip().replace("Z", "+00:00"))
        return datetime.fromisoformat(text)
    except ValueError:
        logger.warning(f"Unparseable timestamp {value!r}, treating as never attempted")
        return None


def build_user_progress(rows: Iterable[Mapping]) -> Dict[str, Dict]:
    """
    Convert user_progress rows into the engine's attempt history.

    Args:
        rows: Dicts with question_id, attempts, correct_attempts, last_attempted_at

    Returns:
        {question_id: {attempts, correct_attempts, last_attempted}}

    Negative counts are clamped to 0 and correct_attempts to attempts,
    so every accuracy lands in [0, 1].
    """
    progress = {}
    for row in rows:
        question_id = row.get("question_id")
        if not question_id:
            continue
        attempts = row.get("attempts") or 0
        correct = row.get("correct_attempts") or 0
        if attempts < 0:
            logger.warning(f"Question {question_id}: negative attempts ({attempts}), using 0")
            attempts = 0
        if correct < 0:
            logger.warning(f"Question {question_id}: negative correct_attempts ({correct}), using 0")
            correct = 0
        if correct > attempts:
            logger.warning(f"Question {question_id}: correct_attempts {correct} > attempts {attempts}, clamping")
            correct = attempts
        progress[str(question_id)] = {
            "attempts": attempts,
            "correct_attempts": correct,
            "last_attempted": parse_timestamp(row.get("last_attempted_at")),
        }
    return progress


def build_catalog(rows: Iterable[Mapping]) -> List[Dict]:
    """
    Normalise questions rows for the engine.

    Rows without an id, or whose difficulty_level is not a number
    (e.g. None or 'medium'), are skipped with a warning. Ids become strings
    and a missing category becomes ''.
    """
    catalog = []
    for row in rows:
        question_id = row.get("id")
        if question_id is None or question_id == "":
            logger.warning(f"Skipping question without id: {dict(row)!r}")
            continue
        difficulty = row.get("difficulty_level")
        if isinstance(difficulty, bool) or not isinstance(difficulty, (int, float)) or not math.isfinite(difficulty):
            logger.warning(f"Skipping question {question_id}: invalid difficulty_level {difficulty!r}")
            continue
        catalog.append({**row, "id": str(question_id), "category": row.get("category") or ""})
    return catalog


def available_categories(questions: Iterable[Mapping]) -> List[str]:
    return sorted({q["category"] for q in questions if q.get("category")})


def describe_session_type(session_type: str) -> str:
    return SESSION_DESCRIPTIONS.get(session_type, "")


def plan_session(
    questions: List[Mapping],
    user_progress: Optional[Mapping[str, Mapping]],
    session_type: str = "adaptive",
    category: Optional[str] = None,
    session_size: int = DEFAULT_SESSION_SIZE,
    algorithm: Optional[SpacedRepetitionAlgorithm] = None,
    now: Optional[datetime] = None,
) -> List[QuestionPriority]:
    """
    Build an ordered study session using one of the session strategies.

    weak-areas and category-focus need a category; without one they return [].
    Catalog rows go through build_catalog first, so malformed rows are dropped.
    Raises ValueError for an unknown session_type.
    """
    if session_type not in SESSION_TYPES:
        raise ValueError(f"Unknown session type {session_type!r}; expected one of {', '.join(SESSION_TYPES)}")

    questions = build_catalog(questions)
    algo = algorithm or default_spaced_repetition
    logger.info(f"Planning {session_type} session (size={session_size}, category={category or '-'})")

    if session_type == "adaptive":
        return algo.get_prioritized_questions(questions, user_progress, session_size, now=now)

    if session_type == "mixed-difficulty":
        return algo.get_mixed_difficulty_questions(questions, user_progress, session_size, now=now)

    if not category:
        logger.warning(f"{session_type} session needs a category; returning empty session")
        return []

    if session_type == "weak-areas":
        return algo.get_weak_area_questions(questions, user_progress, category, session_size, now=now)

    # category-focus
    category_questions = [q for q in questions if q.get("category") == category]
    return algo.get_prioritized_questions(category_questions, user_progress, session_size, now=now)


def category_performance(questions: Iterable[Mapping], user_progress: Mapping[str, Mapping]) -> List[Dict]:
    """
    Per-category accuracy over attempted questions, best first.

    Returns:
        List of {category, correct, total, accuracy}; accuracy is a percentage
    """
    stats: Dict[str, Dict[str, int]] = {}
    for question in questions:
        progress = user_progress.get(str(question.get("id")))
        if not progress or not progress.get("attempts"):
            continue
        cat = question.get("category") or "Unknown"
        bucket = stats.setdefault(cat, {"correct": 0, "total": 0})
        bucket["correct"] += progress.get("correct_attempts") or 0
        bucket["total"] += progress["attempts"]

    results = [
        {
            "category": cat,
            "correct": counts["correct"],
            "total": counts["total"],
            "accuracy": counts["correct"] / counts["total"] * 100,
        }
        for cat, counts in stats.items()
    ]
    results.sort(key=lambda x: x["accuracy"], reverse=True)
    return results


def weakest_category(questions: Iterable[Mapping], user_progress: Mapping[str, Mapping]) -> Optional[str]:
    ranked = category_performance(questions, user_progress)
    return ranked[-1]["category"] if ranked else None


def strongest_category(questions: Iterable[Mapping], user_progress: Mapping[str, Mapping]) -> Optional[str]:
    ranked = category_performance(questions, user_progress)
    return ranked[0]["category"] if ranked else None
