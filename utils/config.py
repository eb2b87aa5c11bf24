from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_LABEL_NAME = "Vacation Auto-Reply"
DEFAULT_REPLY_BODY = (
    "Thank you for your email. I'm currently on vacation and will reply to you when I return."
)
DEFAULT_MIN_INTERVAL = 45
DEFAULT_MAX_INTERVAL = 120


@dataclass(slots=True)
class AppConfig:
    credentials_file: Path
    token_file: Path
    user_id: str
    log_dir: Path
    log_level: str
    stats_file: Path
    db_path: Path
    label_name: str
    reply_body: str
    min_interval: int
    max_interval: int


def _env_path(name: str, fallback: str) -> Path:
    """Path from the environment, relative paths anchored at the project root."""

    path = Path(os.getenv(name) or fallback)
    return path if path.is_absolute() else PROJECT_ROOT / path


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _materialise_secret(target: Path, prefix: str) -> None:
    """Write ``<prefix>_JSON`` or ``<prefix>_B64`` to ``target`` for hosts without a writable checkout."""

    inline = os.getenv(f"{prefix}_JSON")
    encoded = os.getenv(f"{prefix}_B64")
    if not inline and not encoded:
        return
    target.parent.mkdir(parents=True, exist_ok=True)
    if inline:
        target.write_text(inline, encoding="utf-8")
        return
    try:
        target.write_bytes(base64.b64decode(encoded, validate=True))
    except binascii.Error as exc:
        raise ValueError(f"{prefix}_B64 is not valid base64") from exc


def load_config(env_file: str | os.PathLike[str] | None = None) -> AppConfig:
    """Load configuration values from a .env file and environment variables."""

    if env_file:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)

    credentials_file = _env_path("GOOGLE_CLIENT_SECRETS", "credentials.json")
    token_file = _env_path("GOOGLE_TOKEN_PATH", "token.json")
    _materialise_secret(credentials_file, "GOOGLE_CLIENT_SECRETS")
    _materialise_secret(token_file, "GOOGLE_TOKEN")

    min_interval = _env_int("MIN_INTERVAL_SECONDS", DEFAULT_MIN_INTERVAL)
    max_interval = _env_int("MAX_INTERVAL_SECONDS", DEFAULT_MAX_INTERVAL)
    if not 0 < min_interval <= max_interval:
        raise ValueError(
            "Interval bounds must satisfy 0 < MIN_INTERVAL_SECONDS <= MAX_INTERVAL_SECONDS, "
            f"got {min_interval} and {max_interval}"
        )

    return AppConfig(
        credentials_file=credentials_file,
        token_file=token_file,
        user_id=os.getenv("GMAIL_USER_ID") or "me",
        log_dir=_env_path("LOG_DIR", "logs"),
        log_level=os.getenv("LOG_LEVEL") or "INFO",
        stats_file=_env_path("STATS_FILE", "data/stats.json"),
        db_path=_env_path("DB_PATH", "data/vacation_responder.db"),
        label_name=os.getenv("AUTO_REPLY_LABEL") or DEFAULT_LABEL_NAME,
        reply_body=os.getenv("AUTO_REPLY_BODY") or DEFAULT_REPLY_BODY,
        min_interval=min_interval,
        max_interval=max_interval,
    )
