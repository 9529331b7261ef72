"""Centralized configuration for the storefront package."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Determine project root (parent of 'storefront' directory)
_THIS_DIR = Path(__file__).parent
_PROJECT_ROOT = _THIS_DIR.parent

# Load environment variables from .env file (explicitly specify path)
load_dotenv(dotenv_path=_PROJECT_ROOT / ".env")

# Data - use absolute path for consistent loading
PRODUCTS_PATH = os.getenv("PRODUCTS_PATH", str(_PROJECT_ROOT / "data" / "products.json"))

# Paging (fixed contract, not configurable per request)
PAGE_SIZE = 20

# Flask app settings (allow env overrides; default debug off for safety)
# Hosting platforms set PORT; FLASK_PORT wins, 5000 for local.
FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.getenv("FLASK_PORT", os.getenv("PORT", "5000")))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "False").lower() == "true"

# Client settings
API_BASE_URL = os.getenv("API_BASE_URL", "http://127.0.0.1:5000")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "15"))

# Viewport triggers (pixels / intersection ratio)
NEAR_TRIGGER_MARGIN = int(os.getenv("NEAR_TRIGGER_MARGIN", "200"))
FAR_TRIGGER_MARGIN = int(os.getenv("FAR_TRIGGER_MARGIN", "400"))
TRIGGER_THRESHOLD = float(os.getenv("TRIGGER_THRESHOLD", "0.1"))

# Filter inputs
SEARCH_DEBOUNCE_SECONDS = float(os.getenv("SEARCH_DEBOUNCE_SECONDS", "0.3"))
SIZE_FILTER_VISIBLE_COUNT = int(os.getenv("SIZE_FILTER_VISIBLE_COUNT", "5"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = Path(os.getenv("LOG_DIR", str(_PROJECT_ROOT / "logs")))
