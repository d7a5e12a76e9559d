# -*- coding: utf-8 -*-
import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


# Database
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = _env_int("DB_PORT", 5432)
DB_NAME = os.getenv("DB_NAME", "radsim")
DB_USER = os.getenv("DB_USER", "radsim")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_POOL_MIN = _env_int("DB_POOL_MIN", 1)
DB_POOL_MAX = _env_int("DB_POOL_MAX", 10)

# Tokens
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-access")
JWT_REFRESH_SECRET_KEY = os.getenv("JWT_REFRESH_SECRET_KEY", "change-me-refresh")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = _env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 120)
REFRESH_TOKEN_EXPIRE_DAYS = _env_int("REFRESH_TOKEN_EXPIRE_DAYS", 15)
PASSWORD_RESET_EXPIRE_MINUTES = _env_int("PASSWORD_RESET_EXPIRE_MINUTES", 30)

# Front-end
APP_ORIGIN = os.getenv("APP_ORIGIN", "http://localhost:5173")
CORS_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ORIGINS", APP_ORIGIN).split(",") if o.strip()
]
PASSWORD_RESET_URL = os.getenv("PASSWORD_RESET_URL", f"{APP_ORIGIN}/reset-password/update")
RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "120/minute")
AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "10/minute")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() not in ("0", "false", "no")

# Text generation (OpenRouter, OpenAI-compatible)
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "anthropic/claude-3-opus")
LLM_TEMPERATURE = _env_float("LLM_TEMPERATURE", 0.7)
LLM_MAX_TOKENS = _env_int("LLM_MAX_TOKENS", 400)
LLM_TIMEOUT_S = _env_float("LLM_TIMEOUT_S", 30.0)

# Server
HOST = os.getenv("HOST", "127.0.0.1")
PORT = _env_int("PORT", 8000)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "")
