"""Configuration management.

Loads and merges configuration from multiple sources with proper precedence.
"""

import json
import os
from contextvars import ContextVar, Token
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .config_loader import deep_merge, load_config_file
from .config_schema import Config, LifecycleConfig, LoggingConfig
from .global_paths import GlobalPath
from ..util.log import Log

log = Log.create({"service": "config"})

__all__ = [
    "Config",
    "ConfigError",
    "ConfigManager",
    "LifecycleConfig",
    "LoggingConfig",
]

CONFIG_FILENAMES = ["disposables.json", "disposables.yaml", "disposables.yml"]
CONFIG_ENV = "DISPOSABLES_CONFIG_CONTENT"


class ConfigError(Exception):
    """Configuration error."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Config error in {path}: {message}")


_config_var: ContextVar['ConfigManager'] = ContextVar('_config_var')


class ConfigManager:
    """Configuration management.

    Instance-based with ContextVar for scoping. Class methods delegate
    to the current instance.

    Loads configuration from multiple sources with proper precedence:
    1. Global config (platform config dir, disposables.json or .yaml)
    2. Project config (disposables.json or .yaml found walking up from the directory)
    3. DISPOSABLES_CONFIG_CONTENT environment variable
    """

    def __init__(self) -> None:
        self._cache: Optional[Config] = None
        self._sources: List[str] = []

    # -- ContextVar plumbing --

    @classmethod
    def current(cls) -> 'ConfigManager':
        try:
            return _config_var.get()
        except LookupError:
            instance = cls()
            _config_var.set(instance)
            return instance

    @classmethod
    def provide(cls, instance: 'ConfigManager') -> Token['ConfigManager']:
        return _config_var.set(instance)

    @classmethod
    def restore(cls, token: Token['ConfigManager']) -> None:
        _config_var.reset(token)

    # -- Public API (class methods delegate to current instance) --

    @classmethod
    def reset(cls) -> None:
        """Reset cached configuration."""
        inst = cls.current()
        inst._cache = None
        inst._sources = []

    @classmethod
    async def load(cls, directory: str = ".") -> Config:
        return await cls.current()._load(directory)

    @classmethod
    async def get(cls) -> Config:
        inst = cls.current()
        if inst._cache is None:
            return await inst._load()
        return inst._cache

    @classmethod
    def sources(cls) -> List[str]:
        return cls.current()._sources.copy()

    # -- Instance methods --

    async def _load(self, directory: str = ".") -> Config:
        if self._cache is not None:
            return self._cache

        result: Dict[str, Any] = {}
        sources: List[str] = []

        # 1. Global config
        for filename in CONFIG_FILENAMES:
            filepath = os.path.join(GlobalPath.config(), filename)
            data = load_config_file(filepath)
            if data:
                _check_source(filepath, data)
                result = deep_merge(result, data)
                sources.append(filepath)
                log.info("loaded global config", {"path": filepath})

        # 2. Project config (search up from directory)
        current = Path(directory).resolve()
        project_configs = []

        while True:
            for filename in CONFIG_FILENAMES:
                filepath = current / filename
                if filepath.exists():
                    project_configs.append(str(filepath))
            if current == current.parent:
                break
            current = current.parent

        # Apply in reverse order (root first, then more specific)
        for filepath in reversed(project_configs):
            data = load_config_file(filepath)
            if data:
                _check_source(filepath, data)
                result = deep_merge(result, data)
                sources.append(filepath)
                log.info("loaded project config", {"path": filepath})

        # 3. Environment variable config
        env_config = os.environ.get(CONFIG_ENV)
        if env_config:
            try:
                data = json.loads(env_config)
            except json.JSONDecodeError:
                log.error("failed to parse config from environment", {"variable": CONFIG_ENV})
            else:
                _check_source(CONFIG_ENV, data)
                result = deep_merge(result, data)
                sources.append(CONFIG_ENV)
                log.info("loaded config from environment", {"variable": CONFIG_ENV})

        try:
            config = Config.model_validate(result)
        except ValidationError as e:
            raise ConfigError("<merged config>", str(e)) from e

        self._sources = sources
        self._cache = config
        return self._cache


def _check_source(source: str, data: Any) -> None:
    """Validate one source on its own so errors name the offending file."""
    try:
        Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(source, str(e)) from e
