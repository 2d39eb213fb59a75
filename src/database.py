"""
Database operations for the study planner.
Supplies the question catalog and per-user attempt history, and records answered questions.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from supabase import Client

from db import fetch_all, get_supabase
from engine import DEFAULT_SESSION_SIZE
from src.session_planner import available_categories, build_catalog, build_user_progress, plan_session
from src.spaced_repetition import QuestionPriority, SpacedRepetitionAlgorithm

logger = logging.getLogger(__name__)

CATALOG_COLUMNS = "id, difficulty_level, category"


class DatabaseClient:
    """Wrapper around Supabase client with study-planner specific operations."""

    def __init__(self, client: Optional[Client] = None):
        self.client: Client = client or get_supabase()

    # ============= Questions =============

    def get_questions(self, category: Optional[str] = None) -> List[Dict]:
        """
        Fetch the question catalog (id, difficulty_level, category).

        Args:
            category: Optional exact category filter

        Returns:
            List of question rows, empty on error
        """
        try:
            filters = {"category": category} if category else None
            return build_catalog(fetch_all(self.client, "questions", CATALOG_COLUMNS, filters))
        except Exception as e:
            logger.error(f"Error fetching questions: {e}")
            return []

    def get_categories(self) -> List[str]:
        """Unique categories in the catalog, sorted."""
        try:
            rows = fetch_all(self.client, "questions", "category")
            return available_categories(rows)
        except Exception as e:
            logger.error(f"Error fetching categories: {e}")
            return []

    # ============= User Progress =============

    def get_progress_rows(self, user_id: UUID | str) -> List[Dict]:
        try:
            return fetch_all(self.client, "user_progress", "*", {"user_id": str(user_id)})
        except Exception as e:
            logger.error(f"Error fetching progress for user {user_id}: {e}")
            return []

    def get_user_progress(self, user_id: UUID | str) -> Dict[str, Dict]:
        """Attempt history keyed by question id, ready for the engine."""
        return build_user_progress(self.get_progress_rows(user_id))

    def record_attempt(
        self,
        user_id: UUID | str,
        question_id: UUID | str,
        is_correct: bool,
        selected_answer: Optional[str] = None,
    ) -> bool:
        """
        Record a submitted answer.
        Increments attempts (and correct_attempts when correct), updates last_attempted_at.

        Returns:
            True if successful
        """
        try:
            existing = (
                self.client.table("user_progress")
                .select("attempts, correct_attempts")
                .match({"user_id": str(user_id), "question_id": str(question_id)})
                .limit(1)
                .execute()
            )
            current = existing.data[0] if existing.data else {}
            attempts = current.get("attempts") or 0
            correct_attempts = current.get("correct_attempts") or 0

            row = {
                "user_id": str(user_id),
                "question_id": str(question_id),
                "selected_answer": selected_answer,
                "is_correct": is_correct,
                "submitted": True,
                "attempts": attempts + 1,
                "correct_attempts": correct_attempts + (1 if is_correct else 0),
                "last_attempted_at": datetime.now(timezone.utc).isoformat(),
            }
            self.client.table("user_progress").upsert(row, on_conflict="user_id,question_id").execute()
            logger.debug(f"Recorded attempt: Q={str(question_id)[:8]}, Correct={is_correct}, Attempts={row['attempts']}")
            return True
        except Exception as e:
            logger.error(f"Error recording attempt for question {question_id}: {e}")
            return False

    # ============= User Settings =============

    def get_user_settings(self, user_id: UUID | str) -> Dict:
        try:
            response = (
                self.client.table("user_settings")
                .select("settings")
                .eq("user_id", str(user_id))
                .limit(1)
                .execute()
            )
            if response.data:
                return response.data[0].get("settings") or {}
            return {}
        except Exception as e:
            logger.error(f"Error fetching settings for user {user_id}: {e}")
            return {}

    def get_default_session_size(self, user_id: UUID | str) -> int:
        """studyPreferences.defaultSessionSize from user settings, or the app default."""
        prefs = self.get_user_settings(user_id).get("studyPreferences") or {}
        size = prefs.get("defaultSessionSize")
        if isinstance(size, int) and not isinstance(size, bool) and size > 0:
            return size
        return DEFAULT_SESSION_SIZE

    # ============= Sessions =============

    def build_session(
        self,
        user_id: UUID | str,
        session_type: str = "adaptive",
        category: Optional[str] = None,
        session_size: Optional[int] = None,
        algorithm: Optional[SpacedRepetitionAlgorithm] = None,
    ) -> List[QuestionPriority]:
        """
        Load catalog and progress for a user and plan a study session.

        Args:
            user_id: UUID of the learner
            session_type: adaptive, weak-areas, mixed-difficulty or category-focus
            category: Required for weak-areas and category-focus
            session_size: Defaults to the user's saved preference

        Returns:
            Ordered QuestionPriority list
        """
        if session_size is None:
            session_size = self.get_default_session_size(user_id)
        questions = self.get_questions()
        progress = self.get_user_progress(user_id)
        logger.info(f"Loaded {len(questions)} questions and {len(progress)} progress records for user {user_id}")
        return plan_session(questions, progress, session_type, category, session_size, algorithm=algorithm)


# Singleton instance
_db_client: Optional[DatabaseClient] = None


def get_database() -> DatabaseClient:
    """Get or create database client singleton."""
    global _db_client
    if _db_client is None:
        _db_client = DatabaseClient()
    return _db_client
