# src/migrator/core/utils/path_utils.py
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving important package and working paths.
    """

    # --- Package specific paths

    @staticmethod
    def get_package_root() -> Path:
        """Returns the directory of the installed 'migrator' package."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_package_root() / "settings.json"

    @staticmethod
    def get_cache_root() -> Path:
        """
        Returns the root directory for databases and exports.
        Honours the MIGRATOR_CACHE_DIR environment variable, otherwise
        uses '.migrator_cache' in the current working directory.
        """
        override = os.getenv("MIGRATOR_CACHE_DIR")
        if override:
            return Path(override).expanduser().resolve()
        return Path.cwd() / ".migrator_cache"

    # --- Helper methods ---

    @staticmethod
    def resolve(path_value: Optional[str], default_name: str) -> Path:
        """
        Resolves a configured path. Relative paths are placed under the cache root;
        an empty value falls back to `default_name` under the cache root.
        """
        if not path_value:
            return PathUtils.get_cache_root() / default_name
        path = Path(path_value).expanduser()
        if not path.is_absolute():
            path = PathUtils.get_cache_root() / path
        return path

    @staticmethod
    def get_db_path(path_value: Optional[str] = None) -> Path:
        """Returns the path to the SQLite database file, creating its directory."""
        db_path = PathUtils.resolve(path_value, "migration_data.db")
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return db_path

    @staticmethod
    def get_export_dir(path_value: Optional[str] = None) -> Path:
        """Returns the directory exported JSON trees are written to, creating it."""
        export_dir = PathUtils.resolve(path_value, "exports")
        export_dir.mkdir(parents=True, exist_ok=True)
        return export_dir
