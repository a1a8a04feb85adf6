"""Configuration management for accterm."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_UNIX_BIN_DIR = PACKAGE_DIR / "bin" / "unix"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="ACCTERM_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Shell configuration
    default_shell: str = Field(default="powershell", description="Interpreter selected at startup")
    command_timeout_seconds: float = Field(default=60, gt=0, description="Hard limit for one command")
    unix_bin_dir: Path = Field(default=DEFAULT_UNIX_BIN_DIR, description="Bundled POSIX toolset directory")
    posix_shell: Path | None = Field(default=None, description="Explicit path to the POSIX shell executable")

    # Transcript configuration
    fold_threshold: int = Field(default=50, ge=1, description="Line count above which a block is folded")
    max_transcript_chars: int = Field(default=500_000, ge=1)
    truncate_keep_chars: int = Field(default=250_000, ge=1)
    max_bookmarks: int = Field(default=100, ge=1)
    max_categorized_items: int = Field(default=500, ge=1)
    categorized_snippet_chars: int = Field(default=500, ge=1)
    max_history: int = Field(default=1000, ge=1)
    prompt: str = Field(default=">")

    # Logging configuration
    log_level: str = Field(default="INFO", description="Log level")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


def load_settings(workspace: Path | None = None) -> Settings:
    """Load settings, reading ``<workspace>/.env`` when it exists."""
    if workspace is None:
        return Settings()
    env_file = workspace / ".env"
    if not env_file.is_file():
        return Settings(_env_file=None)
    return Settings(_env_file=env_file)
