"""
Config system - Typed settings with layered loading.

Merge order (later overrides earlier):
1. Dataclass defaults, or an existing settings object passed as ``base``
2. .env file (python-dotenv)
3. Environment variables (SWITCHYARD_* prefix)
4. Manual overrides
"""

from dataclasses import MISSING, asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional
import json
import os

from dotenv import dotenv_values


SILENT_COMPLETION_POLICIES = ("hold", "next")
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class SwitchyardSettings:
    """
    Settings consumed by the server builder and the host application.

    Attributes:
        root_path: Prefix prepended to every controller route
        silent_completion: What to do when an action finishes without
            writing a response or calling ``next``: "hold" leaves the
            request open, "next" falls through to the host's not-found stage
        debug: Include error details in the host's default error response
        host: Bind address for ``run()``
        port: Bind port for ``run()``
        log_level: Logging level used by ``run()`` and the CLI
    """
    root_path: str = ""
    silent_completion: str = "hold"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"

    def __post_init__(self):
        if self.silent_completion not in SILENT_COMPLETION_POLICIES:
            raise ConfigError(
                f"silent_completion must be one of {SILENT_COMPLETION_POLICIES}, "
                f"got {self.silent_completion!r}"
            )
        self.log_level = str(self.log_level).lower()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")
        if not isinstance(self.port, int) or not 0 < self.port < 65536:
            raise ConfigError(f"port must be an integer in 1..65535, got {self.port!r}")
        if self.root_path and not self.root_path.startswith("/"):
            self.root_path = "/" + self.root_path


class SettingsLoader:
    """
    Loads and merges settings from multiple sources.
    """

    def __init__(self, env_prefix: str = "SWITCHYARD_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        env_prefix: str = "SWITCHYARD_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        base: Optional[SwitchyardSettings] = None,
    ) -> SwitchyardSettings:
        """
        Build validated settings.

        Args:
            env_prefix: Prefix for environment variables
            env_file: Path to a .env file (ignored if missing)
            overrides: Manual overrides (highest precedence)
            base: Settings to start from instead of the dataclass defaults
        """
        loader = cls(env_prefix=env_prefix)
        if base is not None:
            loader.config_data.update(asdict(base))

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env(os.environ)

        if overrides:
            loader.config_data.update(overrides)

        return loader._instantiate()

    def _load_env_file(self, path: str):
        env_path = Path(path)
        if not env_path.exists():
            return
        self._load_from_env(dotenv_values(env_path))

    def _load_from_env(self, environ):
        for key, value in environ.items():
            if value is not None and key.startswith(self.env_prefix):
                name = key[len(self.env_prefix):].lower()
                self.config_data[name] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _instantiate(self) -> SwitchyardSettings:
        kwargs = {}
        for f in fields(SwitchyardSettings):
            if f.name not in self.config_data:
                continue
            value = self.config_data[f.name]
            default = f.default if f.default is not MISSING else None
            if isinstance(default, bool):
                value = value if isinstance(value, bool) else str(value).lower() in ("1", "true", "yes")
            elif isinstance(default, int):
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    raise ConfigError(f"{f.name} must be an integer, got {value!r}")
            elif isinstance(default, str):
                value = str(value)
            kwargs[f.name] = value
        return SwitchyardSettings(**kwargs)
