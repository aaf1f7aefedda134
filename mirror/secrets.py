"""Reads the mirror's credentials file.

The IMAP login and the Google Calendar keys live in secrets/internal.env.
With MIRROR_USE_SOPS=true the file is kept encrypted as internal.env.enc
and decrypted through the ``sops`` binary at import time of mirror.config.
"""

import subprocess
from io import StringIO
from pathlib import Path

from dotenv import dotenv_values


def load_secrets(encrypted_path: str | Path) -> dict[str, str | None]:
    """Decrypt the SOPS-encrypted credentials file into a dict.

    Raises:
        FileNotFoundError: If the mirror was told to use SOPS but the
            ``.env.enc`` file is absent.
        subprocess.CalledProcessError: If ``sops --decrypt`` exits non-zero
            (wrong key, corrupt file).
    """
    path = Path(encrypted_path)
    if not path.exists():
        raise FileNotFoundError(f"Encrypted mirror credentials not found: {path}")

    result = subprocess.run(
        ["sops", "--decrypt", str(path)],
        capture_output=True,
        text=True,
        check=True,
    )
    return dict(dotenv_values(stream=StringIO(result.stdout)))


def load_dotenv_fallback(dotenv_path: str | Path) -> dict[str, str | None]:
    """Read the plaintext credentials file.

    A missing file yields an empty dict so the mirror can run purely from
    process environment variables (e.g. under systemd or docker).
    """
    path = Path(dotenv_path)
    if not path.exists():
        return {}

    return dict(dotenv_values(path))
