"""Environment-driven settings for the work tracker.

Values are read once at import time. A ``.env`` file in the working
directory is loaded first so local development does not need exported
variables.
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


def _float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./worktracker.db")
DB_POOL_SIZE = _int("DB_POOL_SIZE", 5)
DB_MAX_OVERFLOW = _int("DB_MAX_OVERFLOW", 10)

JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = _int("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7)
MIN_PASSWORD_LENGTH = _int("MIN_PASSWORD_LENGTH", 6)

# Account that adopts rows created before per-user scoping existed
LEGACY_OWNER_EMAIL = os.environ.get("LEGACY_OWNER_EMAIL") or None
MIGRATION_DELAY_SECONDS = _float("MIGRATION_DELAY_SECONDS", 0.5)

CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

WORKTRACKER_API_URL = os.environ.get("WORKTRACKER_API_URL", "http://localhost:3002/api")

TEXT_GENERATION_URL = os.environ.get("TEXT_GENERATION_URL") or None
TEXT_GENERATION_API_KEY = os.environ.get("TEXT_GENERATION_API_KEY") or None
TEXT_GENERATION_MODEL = os.environ.get("TEXT_GENERATION_MODEL", "gemini-flash")
