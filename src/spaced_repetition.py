"""
Spaced repetition engine: interval estimation, priority scoring and session selection.
Ranks a question catalog against a learner's attempt history. No I/O, no persistent state.
"""
import logging
import math
import os
from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Mapping, Optional

from engine import (
    ACCURACY_WEIGHT,
    ATTEMPT_WEIGHT,
    BASE_INTERVAL,
    CORRECT_MULTIPLIER,
    DEFAULT_SESSION_SIZE,
    DIFFICULTY_WEIGHT,
    EASY_MAX_LEVEL,
    EASY_SHARE,
    HARD_MIN_LEVEL,
    HARD_SHARE,
    HIGH_ACCURACY,
    INCORRECT_MULTIPLIER,
    LOW_ACCURACY,
    MAX_DIFFICULTY,
    MAX_INTERVAL,
    MEDIUM_LEVEL,
    MEDIUM_SHARE,
    MIN_INTERVAL,
    MODERATE_ACCURACY,
    MODERATE_MULTIPLIER,
    NEW_QUESTION_ATTEMPTS,
    URGENCY_SCALE_DAYS,
    URGENCY_WEIGHT,
    WEAK_AREA_ACCURACY,
)

logger = logging.getLogger(__name__)

# "Never attempted" sentinel
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_DAY = timedelta(days=1)
ENV_PREFIX = "SR_"


def _as_utc(value: Optional[datetime]) -> datetime:
    """Naive datetimes are UTC; None is the epoch sentinel."""
    if value is None:
        return EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _accuracy(attempts: int, correct_attempts: int) -> float:
    return correct_attempts / attempts if attempts > 0 else 0.0


@dataclass(frozen=True)
class SpacedRepetitionConfig:
    """Interval tuning, in days. Immutable for the lifetime of an engine."""
    base_interval: float = BASE_INTERVAL
    correct_multiplier: float = CORRECT_MULTIPLIER
    incorrect_multiplier: float = INCORRECT_MULTIPLIER
    max_interval: float = MAX_INTERVAL
    min_interval: float = MIN_INTERVAL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SpacedRepetitionConfig":
        """
        Build a config from SR_* environment variables (e.g. SR_MAX_INTERVAL=45).

        Unset variables keep their default. Values that are not positive
        finite numbers are logged and ignored.
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            name = ENV_PREFIX + f.name.upper()
            raw = environ.get(name)
            if raw is None or not raw.strip():
                continue
            try:
                value = float(raw)
            except ValueError:
                logger.warning(f"Ignoring {name}={raw!r}: not a number")
                continue
            if not math.isfinite(value) or value <= 0:
                logger.warning(f"Ignoring {name}={raw!r}: must be a positive number")
                continue
            overrides[f.name] = value
        return cls(**overrides)


@dataclass(frozen=True)
class QuestionPriority:
    """One scored question in a study session. Higher priority = study sooner."""
    question_id: str
    priority: float
    reason: str
    last_attempted: Optional[datetime]
    attempts: int
    correct_attempts: int
    accuracy: float
    difficulty: float

    def to_dict(self) -> Dict:
        return {
            "question_id": self.question_id,
            "priority": self.priority,
            "reason": self.reason,
            "last_attempted": self.last_attempted.isoformat() if self.last_attempted else None,
            "attempts": self.attempts,
            "correct_attempts": self.correct_attempts,
            "accuracy": self.accuracy,
            "difficulty": self.difficulty,
        }


class SpacedRepetitionAlgorithm:
    """
    Heuristic question prioritizer.

    Priority combines four factors:
        urgency    (days past the next review interval / 10) x 3
        accuracy   (1 - accuracy)                            x 2
        novelty    (max(0, 3 - attempts) / 3)                x 1.5
        difficulty (difficulty / 5)                          x 0.5

    Keyword overrides are applied on top of ``config`` (or the defaults):
        SpacedRepetitionAlgorithm(max_interval=60)
    """

    def __init__(self, config: Optional[SpacedRepetitionConfig] = None, **overrides):
        base = config or SpacedRepetitionConfig()
        self.config = replace(base, **overrides) if overrides else base

    def calculate_next_interval(
        self,
        attempts: int,
        correct_attempts: int,
        last_attempted: Optional[datetime],
        difficulty: float,
    ) -> float:
        """
        Days until the question should be reviewed again.

        High accuracy grows the interval by correct_multiplier per attempt,
        moderate accuracy by a fixed 1.5, low accuracy shrinks it by
        incorrect_multiplier. The result is clamped to [min_interval, max_interval].
        ``last_attempted`` does not affect the interval.
        """
        accuracy = _accuracy(attempts, correct_attempts)
        base_interval = self.config.base_interval * (difficulty / 2)

        if accuracy >= HIGH_ACCURACY:
            multiplier = self.config.correct_multiplier
        elif accuracy >= MODERATE_ACCURACY:
            multiplier = MODERATE_MULTIPLIER
        else:
            multiplier = self.config.incorrect_multiplier

        try:
            interval = base_interval * (multiplier ** attempts)
        except OverflowError:
            interval = math.inf

        return max(self.config.min_interval, min(self.config.max_interval, interval))

    def calculate_priority(
        self,
        question_id: str,
        attempts: int,
        correct_attempts: int,
        last_attempted: Optional[datetime],
        difficulty: float,
        category: str,
        now: Optional[datetime] = None,
    ) -> QuestionPriority:
        """
        Score a single question.

        Args:
            question_id: Catalog id
            attempts: Prior submissions
            correct_attempts: Prior correct submissions
            last_attempted: Most recent submission; None means never attempted
            difficulty: Difficulty level (1-5)
            category: Catalog category (not used in scoring)
            now: Scoring instant; defaults to the current UTC time

        Returns:
            QuestionPriority with priority score and reason
        """
        now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
        accuracy = _accuracy(attempts, correct_attempts)
        days_since = math.ceil(abs(now - _as_utc(last_attempted)) / ONE_DAY)
        next_interval = self.calculate_next_interval(attempts, correct_attempts, last_attempted, difficulty)

        urgency_factor = max(0, days_since - next_interval) / URGENCY_SCALE_DAYS
        accuracy_factor = 1 - accuracy
        attempt_factor = max(0, NEW_QUESTION_ATTEMPTS - attempts) / NEW_QUESTION_ATTEMPTS
        difficulty_factor = difficulty / MAX_DIFFICULTY

        priority = (
            urgency_factor * URGENCY_WEIGHT
            + accuracy_factor * ACCURACY_WEIGHT
            + attempt_factor * ATTEMPT_WEIGHT
            + difficulty_factor * DIFFICULTY_WEIGHT
        )

        # Overdue is checked first, so never-attempted questions (epoch sentinel) report as overdue.
        if days_since > next_interval:
            reason = f"Due for review ({math.floor(days_since)} days overdue)"
        elif accuracy < LOW_ACCURACY:
            reason = "Low accuracy - needs practice"
        elif attempts == 0:
            reason = "New question - first attempt"
        elif accuracy < HIGH_ACCURACY:
            reason = "Moderate accuracy - could improve"
        else:
            reason = "Good performance - maintenance review"

        return QuestionPriority(
            question_id=question_id,
            priority=priority,
            reason=reason,
            last_attempted=last_attempted,
            attempts=attempts,
            correct_attempts=correct_attempts,
            accuracy=accuracy,
            difficulty=difficulty,
        )

    def get_prioritized_questions(
        self,
        questions: Iterable[Mapping],
        user_progress: Optional[Mapping[str, Mapping]],
        session_size: int = DEFAULT_SESSION_SIZE,
        now: Optional[datetime] = None,
    ) -> List[QuestionPriority]:
        """
        Score every catalog question and return the top ``session_size``.

        Questions without a progress record count as never attempted.
        Ties keep catalog order (stable sort). A non-positive
        ``session_size`` returns an empty list.
        """
        now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
        user_progress = user_progress or {}

        priorities = []
        for question in questions:
            progress = user_progress.get(str(question["id"])) or {}
            priorities.append(
                self.calculate_priority(
                    question["id"],
                    progress.get("attempts") or 0,
                    progress.get("correct_attempts") or 0,
                    progress.get("last_attempted") or EPOCH,
                    question["difficulty_level"],
                    question.get("category"),
                    now=now,
                )
            )

        ranked = sorted(priorities, key=lambda p: p.priority, reverse=True)
        selected = ranked[: max(0, session_size)]
        logger.debug(f"Scored {len(ranked)} questions, returning top {len(selected)}")
        return selected

    def get_weak_area_questions(
        self,
        questions: Iterable[Mapping],
        user_progress: Optional[Mapping[str, Mapping]],
        category: str,
        session_size: int = DEFAULT_SESSION_SIZE,
        now: Optional[datetime] = None,
    ) -> List[QuestionPriority]:
        """
        Top questions of one category, keeping only those below 70% accuracy.

        The accuracy filter runs after truncation, so the result can be
        shorter than ``session_size``.
        """
        category_questions = [q for q in questions if q.get("category") == category]
        priorities = self.get_prioritized_questions(category_questions, user_progress, session_size, now=now)
        return [p for p in priorities if p.accuracy < WEAK_AREA_ACCURACY]

    def get_mixed_difficulty_questions(
        self,
        questions: Iterable[Mapping],
        user_progress: Optional[Mapping[str, Mapping]],
        session_size: int = DEFAULT_SESSION_SIZE,
        now: Optional[datetime] = None,
    ) -> List[QuestionPriority]:
        """
        Balanced session: up to 30% easy, 40% medium, 30% hard (each rounded up).

        Candidates come from the top ``2 * session_size`` questions. Bands are
        concatenated easy, medium, hard and then truncated, so the hard band
        is cut first when the rounded shares exceed ``session_size``.
        """
        if session_size <= 0:
            return []
        priorities = self.get_prioritized_questions(questions, user_progress, session_size * 2, now=now)

        easy = [p for p in priorities if p.difficulty <= EASY_MAX_LEVEL][: math.ceil(session_size * EASY_SHARE)]
        medium = [p for p in priorities if p.difficulty == MEDIUM_LEVEL][: math.ceil(session_size * MEDIUM_SHARE)]
        hard = [p for p in priorities if p.difficulty >= HARD_MIN_LEVEL][: math.ceil(session_size * HARD_SHARE)]

        return (easy + medium + hard)[:session_size]


# Default engine, shared by callers that don't need custom tuning
default_spaced_repetition = SpacedRepetitionAlgorithm()
