# filmservice/config.py
from __future__ import annotations
import os
import re
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

APP_HOST = os.environ.get("APP_HOST", ":8080")
DB_CONNECTION_STRING = os.environ.get(
    "DB_CONNECTION_STRING", f"sqlite:///{os.path.join(BASE_DIR, 'filmservice.sqlite')}"
)
JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "supersecretkey")
JWT_EXPIRE_DURATION = os.environ.get("JWT_EXPIRE_DURATION", "24h")
IMAGES_DIR = os.environ.get("IMAGES_DIR", os.path.join(BASE_DIR, "images"))
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(h|ms|m|s)")
_DURATION_UNITS = {
    "h": "hours",
    "m": "minutes",
    "s": "seconds",
    "ms": "milliseconds",
}


def parse_duration(text: str) -> timedelta:
    """Parse a duration string such as '24h', '90m' or '1h30m15s'."""
    value = (text or "").strip().lower()
    if not value:
        raise ValueError("duration must be a non-empty string")
    pos = 0
    total = timedelta()
    for match in _DURATION_PART_RE.finditer(value):
        if match.start() != pos:
            break
        amount, unit = match.groups()
        total += timedelta(**{_DURATION_UNITS[unit]: float(amount)})
        pos = match.end()
    if pos != len(value):
        raise ValueError(f"invalid duration: {text!r}")
    return total


def parse_app_host(text: str) -> tuple[str, int]:
    """Split 'host:port' (or ':port') into a bindable (host, port) pair."""
    host, sep, port = (text or "").rpartition(":")
    if not sep:
        raise ValueError(f"APP_HOST must look like 'host:port', got {text!r}")
    return (host or "0.0.0.0", int(port))


def parse_origins(text: str) -> str | list[str]:
    """Turn a comma-separated CORS_ORIGINS value into what flask-cors expects."""
    origins = [o.strip() for o in (text or "").split(",") if o.strip()]
    if not origins or "*" in origins:
        return "*"
    return origins


JWT_EXPIRES_IN = parse_duration(JWT_EXPIRE_DURATION)
ALLOWED_ORIGINS = parse_origins(CORS_ORIGINS)
