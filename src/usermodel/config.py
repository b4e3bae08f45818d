"""Configuration loading and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .types import FlagKind

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/usermodel/config.yaml")
DEFAULT_ROOT_DIR = Path("~/.local/lib/usermodel")
DEFAULT_LOG_LEVEL = "info"
DEFAULT_MIN_WORDS = 20
DEFAULT_MAX_WORDS = 1234
DEFAULT_HISTORY_CAPACITY = 288
DEFAULT_HALF_LIFE = 24.0
DEFAULT_MIN_INTERVAL_SECONDS = 3600.0
DEFAULT_SHOPPING_HOSTS: tuple[str, ...] = ("amazon.com",)
DEFAULT_SEARCH_HOSTS: tuple[str, ...] = ("google.com",)
AGGREGATIONS = ("sum", "decay")


class ConfigError(ValueError):
    """Raised when configuration is invalid or missing."""


@dataclass(frozen=True)
class LoggingConfig:
    """Logging-related configuration."""

    level: str = DEFAULT_LOG_LEVEL
    debug_file: bool = False
    events_file: bool = True


@dataclass(frozen=True)
class ModelPaths:
    """Locations of the category model and ad catalog files."""

    matrix: Path | None = None
    priors: Path | None = None
    catalog: Path | None = None

    @property
    def complete(self) -> bool:
        return self.matrix is not None and self.priors is not None


@dataclass(frozen=True)
class ClassifierConfig:
    min_words: int = DEFAULT_MIN_WORDS
    max_words: int = DEFAULT_MAX_WORDS


@dataclass(frozen=True)
class HistoryConfig:
    capacity: int = DEFAULT_HISTORY_CAPACITY
    aggregation: str = "sum"
    half_life: float = DEFAULT_HALF_LIFE


@dataclass(frozen=True)
class ThrottleConfig:
    min_interval_seconds: float = DEFAULT_MIN_INTERVAL_SECONDS
    required_flags: tuple[FlagKind, ...] = (FlagKind.SHOPPING,)


@dataclass(frozen=True)
class ContextConfig:
    shopping_hosts: tuple[str, ...] = DEFAULT_SHOPPING_HOSTS
    search_hosts: tuple[str, ...] = DEFAULT_SEARCH_HOSTS

    def hosts_for(self, kind: FlagKind) -> tuple[str, ...]:
        return self.shopping_hosts if kind is FlagKind.SHOPPING else self.search_hosts


@dataclass(frozen=True)
class Config:
    """Fully parsed configuration."""

    root_dir: Path = DEFAULT_ROOT_DIR
    model: ModelPaths = field(default_factory=ModelPaths)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Path | str | None = None) -> Config:
    """Load and validate configuration from YAML."""

    config_path = resolve_config_path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping.")

    return parse_config(raw, base_dir=config_path.parent)


def parse_config(raw: dict[str, Any], *, base_dir: Path | None = None) -> Config:
    """Build a Config from an already-decoded mapping."""

    root_dir = Path(raw.get("rootdir") or raw.get("root_dir") or DEFAULT_ROOT_DIR).expanduser()
    return Config(
        root_dir=root_dir,
        model=_parse_model(raw.get("model"), base_dir),
        classifier=_parse_classifier(raw.get("classifier")),
        history=_parse_history(raw.get("history")),
        throttle=_parse_throttle(raw.get("throttle")),
        context=_parse_context(raw.get("context")),
        logging=_parse_logging(raw.get("logging")),
    )


def resolve_config_path(explicit: Path | str | None) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    env_path = os.environ.get("USERMODEL_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def _section(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping.")
    return value


def _parse_model(value: Any, base_dir: Path | None) -> ModelPaths:
    section = _section(value, "model")

    def _path(key: str) -> Path | None:
        entry = section.get(key)
        if entry is None:
            return None
        if not isinstance(entry, (str, Path)):
            raise ConfigError(f"model.{key} must be a string path.")
        path = Path(entry).expanduser()
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        return path

    paths = ModelPaths(matrix=_path("matrix"), priors=_path("priors"), catalog=_path("catalog"))
    if (paths.matrix is None) != (paths.priors is None):
        raise ConfigError("model.matrix and model.priors must be configured together.")
    return paths


def _positive_int(value: Any, name: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{name} must be a positive integer.")
    return value


def _positive_float(value: Any, name: str, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{name} must be a positive number.")
    return float(value)


def _parse_classifier(value: Any) -> ClassifierConfig:
    section = _section(value, "classifier")
    min_words = _positive_int(section.get("min_words"), "classifier.min_words", DEFAULT_MIN_WORDS)
    max_words = _positive_int(section.get("max_words"), "classifier.max_words", DEFAULT_MAX_WORDS)
    if max_words < min_words:
        raise ConfigError("classifier.max_words cannot be smaller than classifier.min_words.")
    return ClassifierConfig(min_words=min_words, max_words=max_words)


def _parse_history(value: Any) -> HistoryConfig:
    section = _section(value, "history")
    capacity = _positive_int(section.get("capacity"), "history.capacity", DEFAULT_HISTORY_CAPACITY)
    aggregation = str(section.get("aggregation", "sum")).strip().lower()
    if aggregation not in AGGREGATIONS:
        raise ConfigError(
            f"history.aggregation must be one of {', '.join(AGGREGATIONS)} (got '{aggregation}')."
        )
    half_life = _positive_float(section.get("half_life"), "history.half_life", DEFAULT_HALF_LIFE)
    if aggregation == "sum" and "half_life" in section:
        LOGGER.warning("history.half_life is ignored unless history.aggregation is 'decay'.")
    return HistoryConfig(capacity=capacity, aggregation=aggregation, half_life=half_life)


def _parse_throttle(value: Any) -> ThrottleConfig:
    section = _section(value, "throttle")
    interval = _positive_float(
        section.get("min_interval_seconds"),
        "throttle.min_interval_seconds",
        DEFAULT_MIN_INTERVAL_SECONDS,
    )
    raw_flags = section.get("required_flags")
    if raw_flags is None:
        return ThrottleConfig(min_interval_seconds=interval)
    if not isinstance(raw_flags, list):
        raise ConfigError("throttle.required_flags must be a list.")
    flags: list[FlagKind] = []
    for idx, entry in enumerate(raw_flags, start=1):
        try:
            flags.append(FlagKind(str(entry).strip().lower()))
        except ValueError as exc:
            raise ConfigError(
                f"throttle.required_flags[{idx}] is not a known flag: {entry}"
            ) from exc
    return ThrottleConfig(min_interval_seconds=interval, required_flags=tuple(flags))


def _parse_hosts(value: Any, name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    if not isinstance(value, list) or not value:
        raise ConfigError(f"{name} must be a non-empty list of hostnames.")
    hosts: list[str] = []
    for idx, entry in enumerate(value, start=1):
        if not isinstance(entry, str) or not entry.strip():
            raise ConfigError(f"{name}[{idx}] must be a hostname string.")
        hosts.append(entry.strip().lower())
    return tuple(hosts)


def _parse_context(value: Any) -> ContextConfig:
    section = _section(value, "context")
    return ContextConfig(
        shopping_hosts=_parse_hosts(
            section.get("shopping_hosts"), "context.shopping_hosts", DEFAULT_SHOPPING_HOSTS
        ),
        search_hosts=_parse_hosts(
            section.get("search_hosts"), "context.search_hosts", DEFAULT_SEARCH_HOSTS
        ),
    )


def _parse_logging(value: Any) -> LoggingConfig:
    if value is None:
        return LoggingConfig()
    if not isinstance(value, dict):
        raise ConfigError("logging must be a mapping.")
    level = str(value.get("level", DEFAULT_LOG_LEVEL)).lower()
    debug_file = bool(value.get("debug_file", False))
    events_file = bool(value.get("events_file", True))
    return LoggingConfig(level=level, debug_file=debug_file, events_file=events_file)


__all__ = [
    "ClassifierConfig",
    "Config",
    "ConfigError",
    "ContextConfig",
    "HistoryConfig",
    "LoggingConfig",
    "ModelPaths",
    "ThrottleConfig",
    "load_config",
    "parse_config",
    "resolve_config_path",
]
