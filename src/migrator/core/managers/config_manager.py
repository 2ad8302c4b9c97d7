# src/migrator/core/managers/config_manager.py
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from migrator.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Process-wide pipeline settings, read from the packaged settings.json.

    Values changed with set_nested() live in memory only; reset() goes back
    to what is on disk.
    """
    _instance: Optional["ConfigManager"] = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._config = {}
            instance.reset()
            cls._instance = instance
        return cls._instance

    @staticmethod
    def _load(path: Path) -> Dict[str, Any]:
        if not path.exists():
            logger.warning("No settings file at %s; running with an empty configuration.", path)
            return {}
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)

    def reset(self) -> None:
        path = PathUtils.get_settings_file()
        try:
            self._config = self._load(path)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not read settings from %s: %s", path, e, exc_info=True)
            self._config = {}
        else:
            logger.debug("Settings loaded from %s", path)

    def get_all(self) -> Dict[str, Any]:
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """Dotted lookup, e.g. 'components.target_ids'. Missing or null values give `default`."""
        node: Any = self._config
        for key in key_path.split("."):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return default if node is None else node

    def _parent_of(self, key_path: str) -> Tuple[Optional[Dict[str, Any]], str]:
        *parents, leaf = key_path.split(".")
        node = self._config
        for key in parents:
            node = node.setdefault(key, {})
            if not isinstance(node, dict):
                logger.error("Cannot set '%s': '%s' holds a %s, not a section.",
                             key_path, key, type(node).__name__)
                return None, leaf
        return node, leaf

    @staticmethod
    def _coerce(current: Any, value: Any, key_path: str) -> Any:
        """Casts `value` to the type of the scalar it replaces; sections and lists are stored as given."""
        if current is None or isinstance(current, (dict, list)) or isinstance(value, type(current)):
            return value
        try:
            return type(current)(value)
        except (TypeError, ValueError):
            logger.warning("'%s' expects %s; keeping %r as given.", key_path, type(current).__name__, value)
            return value

    def set_nested(self, key_path: str, value: Any) -> bool:
        """In-memory update, e.g. set_nested('shrink.provider', 'passthrough')."""
        parent, leaf = self._parent_of(key_path)
        if parent is None:
            return False
        parent[leaf] = self._coerce(parent.get(leaf), value, key_path)
        logger.info("Setting changed: %s = %r", key_path, parent[leaf])
        return True


# Shared instance used by the CLI, the server and open_pipeline().
config_manager = ConfigManager()
