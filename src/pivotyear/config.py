"""Configuration management for Pivot Year."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

PIVOT_HOME = Path(os.environ.get("PIVOT_HOME", Path.home() / ".pivotyear"))
CONFIG_FILE = PIVOT_HOME / "config" / "pivotyear.conf"
SESSION_FILE = PIVOT_HOME / "config" / ".session.json"
DATA_DIR = PIVOT_HOME / "data"


@dataclass
class Config:
    """Pivot Year configuration."""

    firebase_api_key: str = ""
    firebase_project_id: str = ""
    app_id: str = "default-app-id"
    autosave_delay_ms: int = 1500
    local_storage_file: str = ""
    export_file: str = "my-pivot-year-journal.txt"

    @property
    def local_storage_path(self) -> Path:
        if self.local_storage_file:
            return Path(self.local_storage_file).expanduser()
        return DATA_DIR / "local_storage.json"


@dataclass
class StoredSession:
    """Persisted Firebase Auth session."""

    user_id: str = ""
    id_token: str = ""
    refresh_token: str = ""
    expires_at: int = 0
    is_anonymous: bool = False
    email: str | None = None

    def save(self, path: Path = SESSION_FILE) -> None:
        """Save session to file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(
                {
                    "user_id": self.user_id,
                    "id_token": self.id_token,
                    "refresh_token": self.refresh_token,
                    "expires_at": self.expires_at,
                    "is_anonymous": self.is_anonymous,
                    "email": self.email,
                }
            )
        )
        path.chmod(0o600)

    @classmethod
    def load(cls, path: Path = SESSION_FILE) -> "StoredSession | None":
        """Load session from file. Returns None when signed out."""
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
            return cls(
                user_id=data["user_id"],
                id_token=data.get("id_token", ""),
                refresh_token=data.get("refresh_token", ""),
                expires_at=data.get("expires_at", 0),
                is_anonymous=data.get("is_anonymous", False),
                email=data.get("email"),
            )
        except (json.JSONDecodeError, KeyError):
            logger.warning(f"Ignoring unreadable session file {path}")
            return None

    @staticmethod
    def clear(path: Path = SESSION_FILE) -> None:
        path.unlink(missing_ok=True)


def _parse_value(value: str) -> str:
    """Strip quotes, or inline comments from unquoted values."""
    if value[:1] in ('"', "'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from pivotyear.conf."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _parse_value(value.strip())

        match key:
            case "firebase_api_key":
                config.firebase_api_key = value
            case "firebase_project_id":
                config.firebase_project_id = value
            case "app_id":
                config.app_id = value
            case "autosave_delay_ms":
                try:
                    config.autosave_delay_ms = int(value)
                except ValueError:
                    logger.warning(f"Invalid AUTOSAVE_DELAY_MS: {value!r}, using {config.autosave_delay_ms}")
            case "local_storage_file":
                config.local_storage_file = value
            case "export_file":
                config.export_file = value
            case _:
                logger.debug(f"Unknown config key: {key}")

    return config
