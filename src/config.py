"""
DyeTracker - Configuration
All tunable constants in one place.

Values marked (env) can be overridden through the environment or a .env file.
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

# ─────────────────────────────────────────────
# Version
# ─────────────────────────────────────────────
IS_FROZEN = getattr(sys, "frozen", False)
APP_DIR = Path(sys._MEIPASS) if IS_FROZEN else Path(__file__).resolve().parent.parent

_version_file = APP_DIR / "resources" / "VERSION"
APP_VERSION = _version_file.read_text().strip() if _version_file.exists() else "dev"

USER_AGENT = f"DyeTracker/{APP_VERSION}"

# ─────────────────────────────────────────────
# Local storage
# ─────────────────────────────────────────────
# (env) Root directory for settings, captured data and logs
DATA_DIR = Path(os.environ.get(
    "DYETRACKER_DATA_DIR",
    Path(os.path.expanduser("~")) / ".dyetracker",
))

SETTINGS_FILE_NAME = "config.json"
DATA_FILE_NAME = "data.json"

# ─────────────────────────────────────────────
# Backend API
# ─────────────────────────────────────────────
# (env) Backend base URL, used when the settings file has none
DEFAULT_API_URL = os.environ.get(
    "DYETRACKER_API_URL",
    "https://dye-tracker-api.seanwalsh4118-7a3.workers.dev",
)

API_TIMEOUT = 30          # seconds, verify + sync calls
API_ME_TIMEOUT = 15       # seconds, token check

# Session server used to prove account ownership during linking
SESSION_JOIN_URL = "https://sessionserver.mojang.com/session/minecraft/join"
SESSION_JOIN_TIMEOUT = 15

# Link codes shown on the website: 8 alphanumeric characters
LINK_CODE_LENGTH = 8

# ─────────────────────────────────────────────
# Persistence
# ─────────────────────────────────────────────
# Coalesce bursts of updates into one disk write
SAVE_DEBOUNCE_SECONDS = 2.0

# ─────────────────────────────────────────────
# Sync
# ─────────────────────────────────────────────
SYNC_DEBOUNCE_SECONDS = 30.0
SYNC_INITIAL_RETRY_DELAY = 5.0       # first retry after a failed sync
SYNC_MAX_RETRY_DELAY = 300.0         # backoff cap (5 minutes)
SYNC_MAX_RETRY_ATTEMPTS = 5

# ─────────────────────────────────────────────
# Observation
# ─────────────────────────────────────────────
# Host runs at 20 ticks per second
TICKS_PER_SECOND = 20

# Wait for the host to populate every container slot before scanning
INVENTORY_SCAN_DELAY_TICKS = 5
INVENTORY_SCAN_DELAY = INVENTORY_SCAN_DELAY_TICKS / TICKS_PER_SECOND

# Player list poll cadence (40 ticks = 2 seconds)
TABLIST_POLL_INTERVAL_TICKS = 40

# ─────────────────────────────────────────────
# Ingest server
# ─────────────────────────────────────────────
# (env) Local port the game mod posts observations to
SERVER_HOST = "127.0.0.1"
SERVER_PORT = int(os.environ.get("DYETRACKER_PORT", "8460"))

# ─────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────
LOG_LEVEL = "INFO"
LOG_FILE = DATA_DIR / "dyetracker.log"
