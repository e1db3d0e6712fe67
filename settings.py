"""
Configuration Settings for the NEST API

Environment variables are loaded from a .env file in the project root.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

APP_ROOT = Path(__file__).resolve().parent

load_dotenv(dotenv_path=os.path.join(APP_ROOT, ".env"))


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Database Settings
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")
MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))

# HTTP Settings
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "15"))

# AI Settings
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
AI_MIN_CONTENT_LENGTH = 10  # Shorter posts are not sent for analysis
AI_MAX_CONTENT_CHARS = 2000

# External Profiles
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")
GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"
LEETCODE_API_BASE = os.getenv("LEETCODE_API_BASE", "https://alfa-leetcode-api.onrender.com")
ACTIVITY_WINDOW_DAYS = 30

# Scraper
UNSTOP_URL = os.getenv("UNSTOP_URL", "https://unstop.com/all-opportunities")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = _flag("LOG_JSON")
LOG_DIR = os.getenv("LOG_DIR")

# Application Settings
SEED_DEMO_DATA = _flag("SEED_DEMO_DATA")
DEFAULT_PAGE_LIMIT = 10
MAX_REVISION_ATTEMPTS = 3
