"""Process settings for Herald.

All modules import from here — never from os.environ directly. Registration
behaviour itself lives in the property store (see herald.settings); this
module only covers where things are and how to reach the mail relay.

Values come from the environment, overridden by secrets/internal.env (or
secrets/internal.env.enc when HERALD_USE_SOPS=true).
"""

import os
from pathlib import Path

from herald.secrets import read_scope

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Toggle SOPS vs plain .env (default: plain .env)
USE_SOPS = os.environ.get("HERALD_USE_SOPS", "false").lower() == "true"


def _load(scope: str) -> dict[str, str]:
    """Load settings for a scope, layered over the process environment."""
    values = dict(os.environ)
    values.update(read_scope(PROJECT_ROOT, scope, use_sops=USE_SOPS))
    return values


_internal = _load("internal")


def _get(key: str, default: str) -> str:
    value = _internal.get(key)
    return default if value in (None, "") else value


# --- Storage ---
PROPERTIES_PATH: str = _get("HERALD_PROPERTIES_PATH", str(PROJECT_ROOT / "data" / "properties.json"))
AUDIT_LOG_PATH: str = _get(
    "HERALD_AUDIT_LOG_PATH", str(PROJECT_ROOT / "data" / "registration_audit.jsonl")
)

# --- Server identity ---
SERVER_DOMAIN: str = _get("HERALD_SERVER_DOMAIN", "localhost")
ADMIN_CONSOLE_PORT: int = int(_get("HERALD_ADMIN_CONSOLE_PORT", "9090"))
EMAIL_FROM_NAME: str = _get("HERALD_EMAIL_FROM_NAME", "Herald")

# --- SMTP relay ---
SMTP_HOST: str = _get("HERALD_SMTP_HOST", "localhost")
SMTP_PORT: int = int(_get("HERALD_SMTP_PORT", "25"))
SMTP_USERNAME: str = _get("HERALD_SMTP_USERNAME", "")
SMTP_PASSWORD: str = _get("HERALD_SMTP_PASSWORD", "")
SMTP_STARTTLS: bool = _get("HERALD_SMTP_STARTTLS", "false").lower() == "true"
SMTP_DEFAULT_SENDER: str = _get("HERALD_SMTP_DEFAULT_SENDER", "")
