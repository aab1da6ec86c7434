"""
Application configuration using python-dotenv.

Environment variables (optionally from a .env file in the project root or the
current directory) are read into a Settings object. The .env file is not loaded
while pytest is running so tests see a predictable environment.
"""

import os
import pathlib
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from core.errors import ValidationError

BASE_DIR = pathlib.Path(__file__).resolve().parent.parent

BACKENDS = {"text", "sqlite"}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def load_env_file() -> None:
    if os.getenv("PYTEST_VERSION") is not None:
        return
    for env_path in (BASE_DIR / ".env", pathlib.Path.cwd() / ".env"):
        if env_path.exists():
            load_dotenv(env_path)
            break


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValidationError(f"{name} must be a boolean, got {raw!r}.")


@dataclass
class Settings:
    data_dir: pathlib.Path = field(default_factory=lambda: BASE_DIR / "data")
    backend: str = "text"
    database_url: Optional[str] = None
    field_separator: str = "|"

    # Re-resolve a doctor's patients when the doctor's specialization changes;
    # when off those patients are left unassigned.
    cascade_reassign: bool = False

    autosave: bool = False
    roster_file: Optional[pathlib.Path] = None
    log_level: str = "INFO"

    def __post_init__(self):
        self.data_dir = pathlib.Path(self.data_dir)
        if self.roster_file is not None:
            self.roster_file = pathlib.Path(self.roster_file)
        if self.backend not in BACKENDS:
            raise ValidationError(f"Unknown storage backend {self.backend!r}; expected one of {sorted(BACKENDS)}.")
        if len(self.field_separator) != 1 or self.field_separator in {"\n", "\r", '"'}:
            raise ValidationError(f"Field separator must be a single character, got {self.field_separator!r}.")
        if self.database_url is None:
            self.database_url = f"sqlite:///{self.data_dir / 'roster.db'}"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        kwargs = {}
        if env.get("ROSTER_DATA_DIR"):
            kwargs["data_dir"] = pathlib.Path(env["ROSTER_DATA_DIR"])
        if env.get("ROSTER_BACKEND"):
            kwargs["backend"] = env["ROSTER_BACKEND"].strip().lower()
        if env.get("ROSTER_DATABASE_URL"):
            kwargs["database_url"] = env["ROSTER_DATABASE_URL"]
        if "ROSTER_FIELD_SEPARATOR" in env:
            kwargs["field_separator"] = env["ROSTER_FIELD_SEPARATOR"]
        if "ROSTER_CASCADE_REASSIGN" in env:
            kwargs["cascade_reassign"] = _parse_bool("ROSTER_CASCADE_REASSIGN", env["ROSTER_CASCADE_REASSIGN"])
        if "ROSTER_AUTOSAVE" in env:
            kwargs["autosave"] = _parse_bool("ROSTER_AUTOSAVE", env["ROSTER_AUTOSAVE"])
        if env.get("ROSTER_FILE"):
            kwargs["roster_file"] = pathlib.Path(env["ROSTER_FILE"])
        if env.get("LOG_LEVEL"):
            kwargs["log_level"] = env["LOG_LEVEL"].strip().upper()
        return cls(**kwargs)


def get_settings() -> Settings:
    """Load .env (outside tests) and build Settings from the environment."""
    load_env_file()
    return Settings.from_env()
