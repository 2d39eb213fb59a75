"""Study planner constants: interval defaults, score weights, strategy names. No logic."""
# Priority = 3*urgency + 2*(1 - accuracy) + 1.5*novelty + 0.5*difficulty/5

# Interval defaults (days)
BASE_INTERVAL = 1.0
CORRECT_MULTIPLIER = 2.5
INCORRECT_MULTIPLIER = 0.5
MAX_INTERVAL = 30.0
MIN_INTERVAL = 0.5
MODERATE_MULTIPLIER = 1.5  # fixed, not configurable

# Accuracy bands for interval growth
HIGH_ACCURACY = 0.8
MODERATE_ACCURACY = 0.6
LOW_ACCURACY = 0.5
WEAK_AREA_ACCURACY = 0.7

# Score weights
URGENCY_WEIGHT = 3.0
ACCURACY_WEIGHT = 2.0
ATTEMPT_WEIGHT = 1.5
DIFFICULTY_WEIGHT = 0.5
URGENCY_SCALE_DAYS = 10
NEW_QUESTION_ATTEMPTS = 3
MAX_DIFFICULTY = 5

# Mixed difficulty session: 30% easy (<=2), 40% medium (3), 30% hard (>=4)
EASY_SHARE = 0.3
MEDIUM_SHARE = 0.4
HARD_SHARE = 0.3
EASY_MAX_LEVEL = 2
MEDIUM_LEVEL = 3
HARD_MIN_LEVEL = 4

DEFAULT_SESSION_SIZE = 5
SESSION_TYPES = ("adaptive", "weak-areas", "mixed-difficulty", "category-focus")
