"""Single source of truth for all configuration and secrets.

All modules import from here, never from os.environ directly.

Values come from secrets/internal.env (or the SOPS-encrypted
secrets/internal.env.enc when MIRROR_USE_SOPS=true). Process environment
variables take precedence over file values.
"""

import os
from pathlib import Path

from mirror.schemas.mail import MailboxConfig
from mirror.secrets import load_dotenv_fallback, load_secrets

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Toggle SOPS vs plain .env (default: plain .env)
USE_SOPS = os.environ.get("MIRROR_USE_SOPS", "false").lower() == "true"


def _load(scope: str) -> dict[str, str | None]:
    """Load secrets for a given scope (internal or external)."""
    if USE_SOPS:
        return load_secrets(PROJECT_ROOT / f"secrets/{scope}.env.enc")
    return load_dotenv_fallback(PROJECT_ROOT / f"secrets/{scope}.env")


_internal = _load("internal")


def _get(key: str, default: str = "") -> str:
    value = os.environ.get(key)
    if value is None:
        value = _internal.get(key)
    return value if value is not None else default


def _get_bool(key: str, default: bool) -> bool:
    return _get(key, "true" if default else "false").strip().lower() in ("1", "true", "yes", "on")


# --- Mailbox (list ingestion) ---
IMAP_HOST: str = _get("IMAP_HOST")
IMAP_PORT: int = int(_get("IMAP_PORT", "993"))
IMAP_USER: str = _get("IMAP_USER")
IMAP_PASSWORD: str = _get("IMAP_PASSWORD")
IMAP_SSL: bool = _get_bool("IMAP_SSL", True)
IMAP_FOLDER: str = _get("IMAP_FOLDER", "INBOX")
IMAP_TIMEOUT_SECONDS: float = float(_get("IMAP_TIMEOUT_SECONDS", "20"))

# --- Lists ---
LIST_DATA_DIR: str = _get("LIST_DATA_DIR", str(PROJECT_ROOT / "data"))
INGEST_AUDIT_LOG_PATH: str = _get(
    "INGEST_AUDIT_LOG_PATH", str(PROJECT_ROOT / "data" / "ingest_audit.jsonl")
)

# --- Polling ---
POLL_INTERVAL_SECONDS: float = float(_get("POLL_INTERVAL_SECONDS", "60"))
POLL_TIMEOUT_SECONDS: float = float(_get("POLL_TIMEOUT_SECONDS", "30"))

# --- HTTP API ---
API_HOST: str = _get("API_HOST", "0.0.0.0")
API_PORT: int = int(_get("API_PORT", "3001"))

# --- Google Calendar (fetched by the mirror UI; only reported here) ---
GOOGLE_SERVICE_ACCOUNT_EMAIL: str = _get("GOOGLE_SERVICE_ACCOUNT_EMAIL")
GOOGLE_PRIVATE_KEY: str = _get("GOOGLE_PRIVATE_KEY")
GOOGLE_CALENDAR_ID: str = _get("GOOGLE_CALENDAR_ID")


def mailbox_configured() -> bool:
    return bool(IMAP_HOST and IMAP_USER and IMAP_PASSWORD)


def google_calendar_configured() -> bool:
    return bool(GOOGLE_SERVICE_ACCOUNT_EMAIL and GOOGLE_PRIVATE_KEY and GOOGLE_CALENDAR_ID)


def mailbox_config() -> MailboxConfig:
    """Build the mailbox connection config from the loaded values."""
    return MailboxConfig(
        server=IMAP_HOST,
        email=IMAP_USER,
        password=IMAP_PASSWORD,
        port=IMAP_PORT,
        ssl=IMAP_SSL,
        folder=IMAP_FOLDER,
        timeout=IMAP_TIMEOUT_SECONDS,
    )
