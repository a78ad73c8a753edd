"""Configuration settings for the course assessment engine."""

import os
import logging
from typing import Final, List, Optional

# Debug flag: 1 = debug mode (verbose logging), 0 = production mode
DEBUG: Final[int] = int(os.environ.get("ASSESS_DEBUG", "0"))

# --- Repository Hosting API Settings ---

GITHUB_API_URL: Final[str] = os.environ.get("GITHUB_API_URL", "https://api.github.com")
# Read-only token. Optional: without it the hosting API applies lower rate limits.
GITHUB_TOKEN: Final[Optional[str]] = os.environ.get("GITHUB_TOKEN") or None
# Fallback location for the token when the environment variable is not set
GITHUB_TOKEN_FILE: Final[str] = os.environ.get("GITHUB_TOKEN_FILE", "github_token.txt")
GITHUB_USER_AGENT: Final[str] = "course-assessment-engine-scorer"
GITHUB_TIMEOUT_SECONDS: Final[float] = float(os.environ.get("GITHUB_TIMEOUT_SECONDS", "5"))

# Transport retries (connection resets, timeouts). HTTP status failures are never retried.
RETRY_MAX_ATTEMPTS: int = int(os.environ.get("ASSESS_RETRY_ATTEMPTS", "2"))
RETRY_INITIAL_DELAY: float = float(os.environ.get("ASSESS_RETRY_DELAY_SECONDS", "0.5"))

if not GITHUB_TOKEN and DEBUG:
    logging.warning("GITHUB_TOKEN environment variable not set. Repository scoring will use anonymous rate limits.")

# --- Deadline & Quiz/Exam Policy ---

# Hour of day used for availability when an assignment gives none
DEFAULT_AVAILABLE_HOUR: Final[int] = 12
PASSING_THRESHOLD: Final[int] = int(os.environ.get("PASSING_THRESHOLD", "70"))
# Maximum percentage a submission inside the grace window can keep
LATE_SCORE_CEILING: Final[int] = int(os.environ.get("LATE_SCORE_CEILING", "60"))
DEFAULT_QUESTION_POINTS: Final[int] = 10

# --- Score Aggregation Weights ---

DAILY_QUIZ_WEIGHT: Final[float] = 0.4
DAILY_LAB_WEIGHT: Final[float] = 0.6
COURSE_LAB_WEIGHT: Final[float] = 0.42
COURSE_QUIZ_WEIGHT: Final[float] = 0.28
COURSE_EXAM_WEIGHT: Final[float] = 0.30
COURSE_PASSING_SCORE: Final[float] = 70.0
EXAM_SLOTS: Final[int] = 4

# --- Similarity Detection ---

SIMILARITY_FLAG_THRESHOLD: Final[float] = 70.0
BLOCK_MATCH_THRESHOLD: Final[float] = 80.0
# Blocks of this many characters or fewer are ignored
MIN_BLOCK_LENGTH: Final[int] = 10

# --- Integrity Signals & Lab Grading ---

LARGE_PASTE_CHARS: Final[int] = 80
BURST_KEY_INTERVAL_MS: Final[int] = 25
BURST_KEY_RUN: Final[int] = 30
INTEGRITY_FLAG_THRESHOLD: Final[int] = int(os.environ.get("INTEGRITY_FLAG_THRESHOLD", "3"))
LAB_PENALTY_FACTOR: Final[float] = float(os.environ.get("LAB_PENALTY_FACTOR", "0.5"))
LAB_DEFAULT_MAX_POINTS: Final[int] = 100
# Completion credit for sandbox labs when the caller supplies no base score
SANDBOX_BASE_SCORE: Final[float] = 100.0

# --- Repository Heuristic Rubric ---

SOURCE_EXTENSIONS: Final[List[str]] = [
    ".js", ".ts", ".jsx", ".tsx", ".py", ".html", ".css",
    ".vue", ".svelte", ".go", ".java", ".rb",
]
CODE_DIRECTORIES: Final[List[str]] = ["src", "app", "lib", "components", "pages", "public", "scripts"]
MAX_CODE_DIRECTORIES: Final[int] = 3
MAX_CODE_FILES: Final[int] = 5
MANIFEST_FILE: Final[str] = "package.json"

# --- Certificates ---

CERTIFICATE_PASSING_SCORE: Final[float] = 70.0
# Eligible only while the unresolved violation count stays below this
CERTIFICATE_VIOLATION_LIMIT: Final[int] = 3
CERTIFICATE_PREFIX: Final[str] = "DC"

# --- Logging Configuration ---

LOG_DIR: Final[str] = "logs"
# An empty ASSESS_LOG_FILE disables file logging
LOG_FILE: Final[str] = os.environ.get("ASSESS_LOG_FILE", os.path.join(LOG_DIR, "assessment.log"))
LOG_LEVEL = logging.DEBUG if DEBUG else logging.INFO
# Structured log format: timestamp, level, logger, module.function:line, message
LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(module)s.%(funcName)s:%(lineno)d | %(message)s'
