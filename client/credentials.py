"""Credentials saved by `mailpass login`."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError, field_validator

# Auth server used when neither --server nor MAILPASS_SERVER_URL is given
DEFAULT_SERVER_URL = "http://localhost:8083"
HOME_ENV_VAR = "MAILPASS_HOME"
CREDENTIALS_FILENAME = "credentials.json"


def credentials_path() -> Path:
    """Where credentials live: $MAILPASS_HOME, else ~/.mailpass."""
    home = os.environ.get(HOME_ENV_VAR)
    base = Path(home) if home else Path.home() / ".mailpass"
    return base / CREDENTIALS_FILENAME


def normalize_server_url(url: str) -> str:
    url = url.strip().rstrip("/")
    if not url.startswith(("http://", "https://")):
        raise ValueError(f"Server URL must start with http:// or https://: {url!r}")
    return url


class Credentials(BaseModel):
    """The session a login produced, and the server that issued it."""

    email: str
    token: str
    server_url: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Email must contain '@'")
        return v

    @field_validator("token")
    @classmethod
    def check_token(cls, v: str) -> str:
        if not v or any(c.isspace() for c in v):
            raise ValueError("Token must be a non-empty string without whitespace")
        return v

    @field_validator("server_url")
    @classmethod
    def check_server_url(cls, v: str) -> str:
        return normalize_server_url(v)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> Optional["Credentials"]:
        """
        Read saved credentials.

        Returns None when nothing is saved. A file that no longer parses is
        treated as logged out; the next login overwrites it.
        """
        path = path or credentials_path()
        try:
            return cls.model_validate_json(path.read_text())
        except (OSError, ValidationError):
            return None

    def save(self, path: Optional[Path] = None) -> Path:
        """Write credentials readable by the owner only."""
        path = path or credentials_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(self.model_dump_json())
        os.chmod(path, 0o600)
        return path

    @staticmethod
    def forget(path: Optional[Path] = None) -> None:
        (path or credentials_path()).unlink(missing_ok=True)
