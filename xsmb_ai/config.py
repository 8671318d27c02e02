"""
Configuration for XSMB AI - v1.0
"""
import os
import logging
from pathlib import Path

# ============================================================================
# ENVIRONMENT DETECTION
# ============================================================================
IS_RAILWAY = os.getenv("RAILWAY_ENVIRONMENT") is not None
IS_CLOUD = IS_RAILWAY or os.getenv("CLOUD_ENV", "0") == "1"

# ============================================================================
# PATHS
# ============================================================================
BASE_DIR = Path("/app") if IS_RAILWAY else Path(__file__).parent.parent

if os.getenv("XSMB_DATA_DIR"):
    DATA_DIR = Path(os.getenv("XSMB_DATA_DIR"))
else:
    DATA_DIR = BASE_DIR / "data"

DATA_DIR.mkdir(parents=True, exist_ok=True)
DB_PATH = DATA_DIR / "xsmb.db"
DB_URL = os.getenv("XSMB_DB_URL", f"sqlite:///{DB_PATH}")

# ============================================================================
# LOTTERY CONFIGURATION - XSMB (MIEN BAC)
# ============================================================================
# Prize tiers in draw order; 'giai-db' is the special prize (one value)
PRIZE_TIERS = (
    'giai-db',
    'giai-nhat',
    'giai-nhi',
    'giai-ba',
    'giai-tu',
    'giai-nam',
    'giai-sau',
    'giai-bay',
)
SPECIAL_TIER = 'giai-db'
NUMBERS = [f"{i:02d}" for i in range(100)]
DIGITS = [str(i) for i in range(10)]

GAME_NAME = "Xo So Mien Bac"
GAME_CODE = "miba"
DATE_FORMAT = "%d/%m/%Y"

# ============================================================================
# RESULT SOURCE
# ============================================================================
API_ENDPOINT = "https://xoso188.net/api/front/open/lottery/history/list/game"
SCRAPING_ENABLED = os.getenv("XSMB_SCRAPING", "1") == "1"
DEFAULT_FETCH_LIMIT = 30
MAX_RETRIES = 3
TIMEOUT_SECONDS = 20

# ============================================================================
# RESULT STORE
# ============================================================================
MAX_STORED_RESULTS = 365
EXPORT_VERSION = "1.0.0"

# ============================================================================
# SCORING ENGINE
# ============================================================================
# Expected share of the 100 endings drawn per day (27 values across all tiers).
# Tunable approximation, not fitted to the data.
THEORETICAL_PROB = float(os.getenv("XSMB_THEORETICAL_PROB", 27 / 100))

MARKOV_SAMPLES = 365
COLD_MAX_DAYS = 100
POISSON_WINDOW_MULTIPLIER = 3
DEFAULT_BASE_DAYS = 30
DEFAULT_PREDICTION_LIMIT = 20

SCORE_WEIGHTS = {
    'markov': 0.35,
    'poisson': 0.25,
    'variance': 0.20,
    'cold': 0.20,
}

PREDICTION_METHODS = {
    'combined': SCORE_WEIGHTS,
    'markov': {'markov': 1.0, 'poisson': 0.0, 'variance': 0.0, 'cold': 0.0},
    'poisson': {'markov': 0.0, 'poisson': 1.0, 'variance': 0.0, 'cold': 0.0},
    'frequency': {'markov': 0.0, 'poisson': 0.0, 'variance': 1.0, 'cold': 0.0},
    'cold': {'markov': 0.0, 'poisson': 0.0, 'variance': 0.0, 'cold': 1.0},
}

MARKOV_SCALE = 40
VARIANCE_SCALE = 20
DIGIT_TREND_RATIO = 0.8
DIGIT_TREND_BONUS = 10

MARKOV_STRONG_THRESHOLD = 60
POISSON_HIGH_THRESHOLD = 25
HOT_STREAK_Z = 1.5
CYCLE_DUE_DAYS = 15
BALANCED_HIGH_SCORE = 50

REASON_LABELS = {
    'markov_strong': 'Chuỗi Markov mạnh',
    'poisson_high': 'Xác suất Poisson cao',
    'hot_streak': 'Đang dây đỏ',
    'cycle_due': 'Chu kỳ đẹp',
    'head_trend': 'Cầu đầu đẹp',
    'tail_trend': 'Cầu đuôi đẹp',
    'balanced_high': 'Chỉ số cân bằng',
}

# ============================================================================
# LOGGING
# ============================================================================
LOG_LEVEL = logging.DEBUG if not IS_CLOUD else logging.INFO
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logging.basicConfig(
    level=LOG_LEVEL,
    format=LOG_FORMAT,
    handlers=[logging.StreamHandler()]
)

logger = logging.getLogger("xsmb_ai.config")

logger.info(f"Environment: Cloud={IS_CLOUD}, Railway={IS_RAILWAY}")
logger.info(f"Data directory: {DATA_DIR}")
logger.info(f"Database URL: {DB_URL}")
logger.info(f"Theoretical per-draw probability: {THEORETICAL_PROB:.2f}")
if not SCRAPING_ENABLED:
    logger.warning("Scraping is DISABLED (XSMB_SCRAPING=0)")
