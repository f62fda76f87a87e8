"""
ConfigManager: dot-notation access to tunable quest configuration.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable configuration values.
- Back configuration with YAML defaults from the `config/` directory.
- Allow in-process overrides for live balance changes and tests.

Responsibilities
----------------
- Load and deep-merge every YAML file under the configured directory.
- Serve reads from an in-memory cache, falling back to YAML defaults.
- Apply overrides on top of the defaults without mutating them.

Key Design Decisions
--------------------
- YAML is the single source for **defaults**; overrides live in memory only.
- Engine code never reads ConfigManager directly. Domain services receive an
  immutable settings object built from it (see `QuestSettings.from_config`).
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional

import yaml

from questline.core.config.config import Config

logger = logging.getLogger(__name__)


class ConfigManagerError(RuntimeError):
    """Base error type for ConfigManager-related failures."""


class ConfigWriteError(ConfigManagerError):
    """Raised when a configuration override cannot be applied."""


__all__ = ["ConfigManager", "ConfigManagerError", "ConfigWriteError"]


class ConfigManager:
    """
    Dynamic configuration access with YAML defaults and in-memory overrides.

    Examples
    --------
    >>> ConfigManager.initialize()
    >>> ConfigManager.get("daily_quests.quests_per_day", 5)
    5
    """

    _cache: Dict[str, Any] = {}
    _defaults: Dict[str, Any] = {}
    _initialized: bool = False
    _config_dir: Optional[Path] = None

    # =========================================================================
    # YAML LOADING & DEFAULTS
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = value

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path) -> None:
        """
        Recursively load all YAML config files from `config_dir` into `_defaults`.

        Files are merged in sorted path order so later files win on conflicts.
        """
        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return

        yaml_files = sorted(
            list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml"))
        )
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                loaded_count += 1
                logger.debug("Loaded YAML config", extra={"file": str(yaml_file)})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": str(yaml_file), "root_type": type(data).__name__},
                )

        logger.info(
            "YAML configs loaded",
            extra={
                "yaml_file_count": loaded_count,
                "config_dir": str(config_dir),
            },
        )

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """
        Load YAML defaults and prime the cache (idempotent per directory).

        Args:
            config_dir: Directory to scan; defaults to `Config.CONFIG_DIR`.
        """
        target = Path(config_dir) if config_dir is not None else Path(Config.CONFIG_DIR)
        if cls._initialized and cls._config_dir == target:
            return

        cls._defaults = {}
        cls._load_yaml_configs(target)
        cls._cache = copy.deepcopy(cls._defaults)
        cls._config_dir = target
        cls._initialized = True

    @classmethod
    def _lookup(cls, source: Dict[str, Any], key: str) -> Any:
        value: Any = source
        for part in key.split("."):
            if not isinstance(value, dict):
                return None
            value = value.get(part)
            if value is None:
                return None
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Examples
        --------
        >>> ConfigManager.get("daily_quests.base_rewards.coins")
        50
        >>> ConfigManager.get("daily_quests.missing", 0)
        0
        """
        if not cls._initialized:
            logger.warning(
                "ConfigManager accessed before explicit initialization; "
                "loading defaults now"
            )
            cls.initialize()

        value = cls._lookup(cls._cache, key)
        if value is None:
            value = cls._lookup(cls._defaults, key)
        return default if value is None else value

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        """
        Override a configuration value in memory.

        Raises:
            ConfigWriteError: If an intermediate path segment is not a mapping.
        """
        if not cls._initialized:
            cls.initialize()

        parts = key.split(".")
        node: Dict[str, Any] = cls._cache
        for part in parts[:-1]:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ConfigWriteError(
                    f"Cannot set '{key}': '{part}' is not a mapping"
                )
            node = child

        old_value = node.get(parts[-1])
        node[parts[-1]] = value
        logger.info(
            "Configuration override applied",
            extra={"config_key": key, "old_value": old_value, "new_value": value},
        )

    @classmethod
    def clear_cache(cls) -> None:
        """Drop overrides and cached defaults. Intended for tests."""
        cls._cache = {}
        cls._defaults = {}
        cls._config_dir = None
        cls._initialized = False
        logger.info("ConfigManager cache cleared")
