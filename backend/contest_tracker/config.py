"""Application settings and validation."""

import os
import re
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

BASE = Path(__file__).resolve().parent.parent
DEFAULT_JWT_SECRET = "change_me_for_prod"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``24h``, ``1h30m``, ``90s`` or ``3600``.

    Bare numbers are read as seconds. Raises ValueError for anything else.
    """
    raw = value.strip().lower()
    if not raw:
        raise ValueError("empty duration")
    if re.fullmatch(r"\d+(?:\.\d+)?", raw):
        return timedelta(seconds=float(raw))
    pos = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(raw):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(raw):
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(seconds=seconds)


class Settings:
    ENV: str
    APP_PORT: int
    JWT_SECRET: str
    JWT_ALGORITHM: str
    ERROR_REPORTER_DSN: Optional[str]
    SESSION_LENGTH: timedelta
    DATABASE_URL: str
    DATABASE_MAX_IDLE_CONNS: int
    DATABASE_MAX_OPEN_CONNS: int
    CORS_ALLOWED_ORIGINS: List[str]
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.APP_PORT = self._int("APP_PORT", "8000")
        self.JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.ERROR_REPORTER_DSN = os.getenv("ERROR_REPORTER_DSN") or None
        try:
            self.SESSION_LENGTH = parse_duration(os.getenv("USER_SESSION_LENGTH", "24h"))
        except ValueError as e:
            raise RuntimeError(f"USER_SESSION_LENGTH is invalid: {e}") from e
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'app.db'}")
        self.DATABASE_MAX_IDLE_CONNS = self._int("DATABASE_MAX_IDLE_CONNS", "5")
        self.DATABASE_MAX_OPEN_CONNS = self._int("DATABASE_MAX_OPEN_CONNS", "10")
        origins = os.getenv("CORS_ALLOWED_ORIGINS", "*" if self.ENV == "dev" else "")
        self.CORS_ALLOWED_ORIGINS = [o.strip() for o in origins.split(",") if o.strip()]
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    @staticmethod
    def _int(name: str, default: str) -> int:
        raw = os.getenv(name, default)
        try:
            return int(raw)
        except ValueError:
            raise RuntimeError(f"{name} must be an integer, got {raw!r}")

    def _validate(self):
        if self.SESSION_LENGTH <= timedelta(0):
            raise RuntimeError("USER_SESSION_LENGTH must be positive")
        if self.DATABASE_MAX_IDLE_CONNS < 1 or self.DATABASE_MAX_OPEN_CONNS < self.DATABASE_MAX_IDLE_CONNS:
            raise RuntimeError("DATABASE_MAX_OPEN_CONNS must be >= DATABASE_MAX_IDLE_CONNS >= 1")
        if self.ENV == "dev":
            return
        if not self.JWT_SECRET or self.JWT_SECRET == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if not os.getenv("DATABASE_URL"):
            raise RuntimeError("DATABASE_URL must be set in non-dev environments")
        if not self.CORS_ALLOWED_ORIGINS:
            raise RuntimeError("CORS_ALLOWED_ORIGINS must be set in non-dev environments")
