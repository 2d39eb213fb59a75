"""
Build a study session from Supabase or a local JSON snapshot and print it.

Run: python plan_session.py --user-id <uuid> [--strategy weak-areas] [--category Ethics] [--size 10]
     python plan_session.py --snapshot progress.json --strategy mixed-difficulty

Snapshot format: {"questions": [{id, difficulty_level, category}, ...],
                  "progress": [{question_id, attempts, correct_attempts, last_attempted_at}, ...]}
"""
import argparse
import json
import logging
import sys
from pathlib import Path

path = Path(__file__).resolve().parent
if str(path) not in sys.path:
    sys.path.insert(0, str(path))

from dotenv import load_dotenv

from engine import DEFAULT_SESSION_SIZE, SESSION_TYPES
from src.session_planner import build_catalog, build_user_progress, describe_session_type, plan_session, weakest_category
from src.spaced_repetition import SpacedRepetitionAlgorithm, SpacedRepetitionConfig

logger = logging.getLogger(__name__)


def load_snapshot(snapshot: Path) -> tuple[list[dict], dict]:
    raw = json.loads(snapshot.read_text(encoding="utf-8"))
    questions = build_catalog(raw.get("questions") or [])
    progress = build_user_progress(raw.get("progress") or [])
    return questions, progress


def load_from_database(user_id: str) -> tuple[list[dict], dict, int]:
    from src.database import DatabaseClient

    db = DatabaseClient()
    return db.get_questions(), db.get_user_progress(user_id), db.get_default_session_size(user_id)


def print_session(session, strategy: str, category: str | None):
    print()
    print("=" * 78)
    print(f"STUDY SESSION: {strategy}" + (f" [{category}]" if category else ""))
    print(f"  {describe_session_type(strategy)}")
    print("=" * 78)
    if not session:
        print("  No questions match this session.")
        print()
        return
    for i, p in enumerate(session, 1):
        print(f"  {i:2d}. {str(p.question_id)[:12]:<12}  priority={p.priority:6.2f}  acc={p.accuracy:4.0%}  diff={p.difficulty}  {p.reason}")
    print()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Plan a spaced repetition study session.")
    parser.add_argument("--strategy", choices=SESSION_TYPES, default="adaptive", help="Session type (default adaptive)")
    parser.add_argument("--category", help="Category for weak-areas / category-focus (weak-areas defaults to weakest category)")
    parser.add_argument("--size", type=int, default=None, help="Questions in the session (default: user setting, else 5)")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--user-id", help="Load catalog and progress for this user from Supabase")
    source.add_argument("--snapshot", type=Path, help="Load catalog and progress from a JSON file")
    parser.add_argument("--json", action="store_true", help="Print the session as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    load_dotenv()

    size = args.size
    try:
        if args.snapshot:
            questions, progress = load_snapshot(args.snapshot)
        else:
            questions, progress, default_size = load_from_database(args.user_id)
            size = size if size is not None else default_size
    except (OSError, ValueError) as e:
        logger.error(f"Could not load study data: {e}")
        return 1
    if size is None:
        size = DEFAULT_SESSION_SIZE

    category = args.category
    if args.strategy == "weak-areas" and not category:
        category = weakest_category(questions, progress)
        if category:
            logger.info(f"No category given, using weakest category: {category}")

    algorithm = SpacedRepetitionAlgorithm(SpacedRepetitionConfig.from_env())
    session = plan_session(questions, progress, args.strategy, category, size, algorithm=algorithm)

    if args.json:
        print(json.dumps([p.to_dict() for p in session], indent=2))
    else:
        print_session(session, args.strategy, category)
    return 0


if __name__ == "__main__":
    sys.exit(main())
