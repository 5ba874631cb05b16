"""Herald secrets files.

Each scope has one file under ``secrets/``: ``<scope>.env`` for development,
``<scope>.env.enc`` (SOPS-encrypted) when HERALD_USE_SOPS=true. Only
``HERALD_*`` keys with a value are returned; other keys in a shared secrets
file are ignored.
"""

import logging
import subprocess
from io import StringIO
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

KEY_PREFIX = "HERALD_"


def scope_path(root: str | Path, scope: str, *, encrypted: bool) -> Path:
    suffix = ".env.enc" if encrypted else ".env"
    return Path(root) / "secrets" / f"{scope}{suffix}"


def read_scope(root: str | Path, scope: str, *, use_sops: bool) -> dict[str, str]:
    """Read the Herald settings for *scope*.

    A missing plain file is normal in development and yields no values. A
    missing encrypted file is an error, since SOPS was asked for explicitly.

    Raises:
        FileNotFoundError: If *use_sops* is set and the .env.enc file is absent.
        subprocess.CalledProcessError: If SOPS decryption fails.
    """
    path = scope_path(root, scope, encrypted=use_sops)
    if use_sops:
        values = _decrypt(path)
    elif path.exists():
        values = dotenv_values(path)
    else:
        logger.info("No %s found, using environment and defaults", path)
        return {}

    settings = {
        key: value
        for key, value in values.items()
        if key.startswith(KEY_PREFIX) and value is not None
    }
    logger.debug("Read %d setting(s) from %s", len(settings), path)
    return settings


def _decrypt(path: Path) -> dict[str, str | None]:
    if not path.exists():
        raise FileNotFoundError(f"Encrypted secrets file not found: {path}")

    result = subprocess.run(
        ["sops", "--decrypt", str(path)],
        capture_output=True,
        text=True,
        check=True,
    )
    return dotenv_values(stream=StringIO(result.stdout))
