"""
Configuration for batch course restores.

Installation settings come from the environment (or a .env file) and
per-run options from the command line.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class RestoreSettings(BaseSettings):
    """Target installation settings, read from RESTOREALL_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="RESTOREALL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database: SQLAlchemy URL, or a SQLite file when empty
    database_url: str = ""
    database_path: str = "database/restoreall.db"

    # Scratch area; archives are extracted below <temp_dir>/backup
    temp_dir: str = "temp"

    # Category used for backups that carry no category name
    default_category_id: Optional[int] = None
    default_category_name: str = "Miscellaneous"

    # Identity recorded as the actor of each restore
    admin_user_id: int = 2

    archive_suffix: str = ".mbz"

    # Remove each scratch directory once its archive is processed
    cleanup_scratch: bool = False

    @property
    def backup_temp_dir(self) -> Path:
        """Directory holding the per-archive scratch directories."""
        return Path(self.temp_dir) / "backup"


@dataclass
class RestoreConfig:
    """Options for a single batch run."""
    source_dir: str
    remove_source: bool = False
    settings: RestoreSettings = field(default_factory=RestoreSettings)
