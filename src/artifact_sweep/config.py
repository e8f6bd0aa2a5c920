"""Configuration management for artifact-sweep."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

_TRUE_VALUES = frozenset({"true", "yes", "on", "1"})


class ConfigError(ValueError):
    """Raised when the configuration file holds an invalid value."""


def parse_bool(value: Any, default: bool) -> bool:
    """Parse a YAML value as a boolean.

    Args:
        value: Raw value (bool, int or string).
        default: Value returned when ``value`` is None.

    Returns:
        Parsed boolean.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class RuleSpec:
    """Raw rule definition read from the configuration file."""

    name: str
    files: tuple[str, ...] = ()
    dirs: tuple[str, ...] = ()
    verify: tuple[str, ...] = ()
    clean: tuple[str, ...] = ()


@dataclass
class SweepConfig:
    """Configuration for an artifact sweep."""

    # Seconds a command may run before it is sent SIGTERM
    command_timeout: float = 10.0

    # Seconds between SIGTERM and SIGKILL for a timed out command
    kill_grace: float = 5.0

    # Shell used to run verify/clean commands
    shell: str = "sh"

    # Defaults for the matching CLI flags
    dry_run: bool = False
    verbose: bool = False

    # Rules
    rules: list[RuleSpec] = field(default_factory=list)
    rules_disabled: list[str] = field(default_factory=list)

    # Logging
    log_file: Path | None = None
    log_level: str = "WARNING"

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
        return Path(base) / "artifact-sweep" / "config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> SweepConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration.

        Raises:
            ConfigError: If the file cannot be parsed or holds invalid values.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{config_path}: top level must be a mapping")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> SweepConfig:
        """Create config from dictionary."""
        config = cls()

        # Command policy
        if "command_timeout" in data:
            config.command_timeout = _positive_float(data["command_timeout"], "command_timeout")
        if "kill_grace" in data:
            config.kill_grace = _positive_float(data["kill_grace"], "kill_grace")
        if "shell" in data:
            config.shell = str(data["shell"])

        config.dry_run = parse_bool(data.get("dry_run"), config.dry_run)
        config.verbose = parse_bool(data.get("verbose"), config.verbose)

        # Rules
        if "rules" in data:
            config.rules = [_rule_from_dict(entry) for entry in _as_list(data["rules"], "rules")]
        if "rules_disabled" in data:
            config.rules_disabled = [str(name) for name in _as_list(data["rules_disabled"], "rules_disabled")]

        # Logging
        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if not isinstance(logging_cfg, dict):
                raise ConfigError(f"logging must be a mapping, got {logging_cfg!r}")
            if "file" in logging_cfg:
                config.log_file = Path(os.path.expanduser(logging_cfg["file"]))
            if "level" in logging_cfg:
                config.log_level = str(logging_cfg["level"]).upper()

        return config


def _positive_float(value: Any, key: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number, got {value!r}") from e
    if number <= 0:
        raise ConfigError(f"{key} must be positive, got {number}")
    return number


def _as_list(value: Any, key: str) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, list):
        raise ConfigError(f"{key} must be a list, got {value!r}")
    return value


def _rule_from_dict(entry: Any) -> RuleSpec:
    """Convert one ``rules`` entry into a RuleSpec."""
    if not isinstance(entry, dict) or not entry.get("name"):
        raise ConfigError(f"Each rule needs a name, got {entry!r}")

    name = str(entry["name"])
    return RuleSpec(
        name=name,
        files=tuple(str(p) for p in _as_list(entry.get("files"), f"{name}.files")),
        dirs=tuple(str(p) for p in _as_list(entry.get("dirs"), f"{name}.dirs")),
        verify=tuple(str(c) for c in _as_list(entry.get("verify"), f"{name}.verify")),
        clean=tuple(str(c) for c in _as_list(entry.get("clean"), f"{name}.clean")),
    )
