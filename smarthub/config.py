import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.environ.get("SMARTHUB_DATA_DIR", BASE_DIR / "data"))
UPLOADS_DIR = Path(os.environ.get("SMARTHUB_UPLOADS_DIR", BASE_DIR / "uploads"))
STATIC_DIR = BASE_DIR / "static"
TEMPLATES_DIR = BASE_DIR / "templates"
LOCAL_DB_FILE = DATA_DIR / "screensaver.sqlite3"
DISPLAY_SETTINGS_FILE = DATA_DIR / "display_settings.json"

PORT = int(os.environ.get("SMARTHUB_PORT", "3000"))
SERVER_URL = os.environ.get("SMARTHUB_SERVER_URL", f"http://localhost:{PORT}")
LOG_LEVEL = os.environ.get("SMARTHUB_LOG_LEVEL", "INFO").upper()

MAX_UPLOAD_BYTES = 50 * 1024 * 1024
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")

CLOCK_TICK_MS = 1000
TRANSITION_MS = 500
FORECAST_RETURN_MS = 60 * 1000

DEFAULT_INACTIVITY_TIMEOUT_MS = 5 * 60 * 1000
INACTIVITY_TIMEOUT_OPTIONS_MS = (5 * 60 * 1000, 10 * 60 * 1000, 15 * 60 * 1000)
DEFAULT_IMAGE_DURATION_MS = 15 * 1000
IMAGE_DURATION_OPTIONS_MS = (5 * 1000, 10 * 1000, 15 * 1000)
MIN_TIMING_MS = 1000

WEATHER_LATITUDE = float(os.environ.get("SMARTHUB_LATITUDE", "43.1457025"))
WEATHER_LONGITUDE = float(os.environ.get("SMARTHUB_LONGITUDE", "-86.196591"))
WEATHER_REFRESH_MS = 10 * 60 * 1000
FORECAST_CACHE_MS = 10 * 60 * 1000
