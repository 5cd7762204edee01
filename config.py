# config.py
# Simple centralized configuration values.
import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_FILE = os.getenv("DATABASE_FILE", "spotmatch.db")

AUTH_TOKEN = os.getenv("AUTH_TOKEN", "changeme")
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Daily like budget for non-premium accounts
DAILY_LIKES = 10
PREMIUM_LIKES_SENTINEL = 999  # reported instead of a count for premium users
# Calendar days for the like reset are counted in this fixed UTC offset
LIKE_RESET_UTC_OFFSET_HOURS = int(os.getenv("LIKE_RESET_UTC_OFFSET_HOURS", "0"))

# Feed defaults (Amsterdam centre when the viewer has no location)
DEFAULT_RADIUS_KM = 10.0
DEFAULT_LAT = 52.3676
DEFAULT_LNG = 4.9041
FEED_TIMEOUT_SECONDS = float(os.getenv("FEED_TIMEOUT_SECONDS", "5.0"))

# Push notifications; left empty, match notifications are only logged
PUSH_WEBHOOK_URL = os.getenv("PUSH_WEBHOOK_URL", "")
NOTIFY_TIMEOUT_SECONDS = 5.0
