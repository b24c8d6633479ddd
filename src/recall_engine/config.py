"""Engine defaults and environment overrides."""
import os
from pathlib import Path

DEFAULT_DB_PATH = os.environ.get(
    "RECALL_ENGINE_DB", str(Path.home() / ".recall_engine" / "recall.db")
)
LOG_LEVEL = os.environ.get("RECALL_ENGINE_LOG_LEVEL", "WARNING")

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
FAILED_EASE_PENALTY = 0.2
PASSING_QUALITY = 3
MIN_QUALITY = 0
MAX_QUALITY = 5

# A card counts as mastered once both thresholds are reached
MASTERED_MIN_REPETITIONS = 2
MASTERED_MIN_INTERVAL = 21

DEFAULT_SESSION_LIMIT = 20
SECONDS_PER_CARD = 10

# Keys in the user_settings table
SETTING_MASTERED_REPETITIONS = "mastered_min_repetitions"
SETTING_MASTERED_INTERVAL = "mastered_min_interval"
SETTING_SESSION_LIMIT = "session_limit"
