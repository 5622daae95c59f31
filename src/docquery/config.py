"""Configuration management for docquery.

Settings are loaded from three sources in order of priority:
1. Environment variables (highest priority)
2. Project-level config: .docquery/config.toml
3. Global config: ~/.config/docquery/config.toml (lowest priority)

Ranking weights live in a ``[weights]`` table in either TOML file.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from rich.console import Console

from docquery.exceptions import ConfigError
from docquery.matching.names import NameTier

console = Console(stderr=True)

_GLOBAL_CONFIG_DIR = Path.home() / ".config" / "docquery"
_GLOBAL_CONFIG_PATH = _GLOBAL_CONFIG_DIR / "config.toml"
_ENV_PREFIX = "DOCQUERY_"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class RankingWeights:
    """Score contributions used by the ranker.

    Attributes:
        exact: Name equals the query.
        path_suffix: Trailing path segments equal the query.
        prefix: Every query token prefixes an item token, in order.
        subsequence: Query characters appear in order in the item's tokens.
        description: Fallback match on the item description.
        quality_bonus: Fraction of a tier weight added for a perfect
            within-tier match.
        type_full: Signature match covering every declared input.
        type_partial: Base score for a signature match with missing inputs.
        type_coverage: Added to ``type_partial`` in proportion to coverage.
        deprecated_penalty: Subtracted from deprecated items.
    """

    exact: float = 1000.0
    path_suffix: float = 500.0
    prefix: float = 200.0
    subsequence: float = 50.0
    description: float = 10.0
    quality_bonus: float = 0.5
    type_full: float = 300.0
    type_partial: float = 100.0
    type_coverage: float = 100.0
    deprecated_penalty: float = 25.0

    def for_tier(self, tier: NameTier) -> float:
        return {
            NameTier.EXACT: self.exact,
            NameTier.PATH_SUFFIX: self.path_suffix,
            NameTier.PREFIX: self.prefix,
            NameTier.SUBSEQUENCE: self.subsequence,
            NameTier.DESCRIPTION: self.description,
        }[tier]

    def validate(self) -> None:
        """Check that weights are non-negative and tiers stay ordered.

        A tier's best score (weight plus full quality bonus) must stay below
        the next tier's worst score (weight minus the deprecation penalty),
        and the best type-only score must stay below an exact name match.

        Raises:
            ConfigError: If the weights break the tier ordering.
        """
        for f in fields(self):
            if getattr(self, f.name) < 0:
                raise ConfigError(f"Weight '{f.name}' must not be negative")

        ordered = list(NameTier)
        for higher, lower in zip(ordered, ordered[1:]):
            best_lower = self.for_tier(lower) * (1 + self.quality_bonus)
            worst_higher = self.for_tier(higher) - self.deprecated_penalty
            if best_lower >= worst_higher:
                raise ConfigError(
                    f"Weight for {lower.name.lower()} matches can reach "
                    f"{higher.name.lower()} matches ({best_lower} >= {worst_higher})"
                )

        best_type = max(self.type_full, self.type_partial + self.type_coverage)
        if best_type >= self.exact - self.deprecated_penalty:
            raise ConfigError(
                f"Type-only matches can reach exact name matches "
                f"({best_type} >= {self.exact - self.deprecated_penalty})"
            )
        if self.type_partial + self.type_coverage > self.type_full:
            raise ConfigError("Partial signature matches must not outscore full ones")


@dataclass
class SearchConfig:
    """docquery configuration.

    Attributes:
        project_dir: Directory whose .docquery/config.toml was consulted.
        max_results: Truncate result lists to this length. 0 = unlimited.
        yield_every: Items scored between event-loop yields in async queries.
        log_level: Diagnostic verbosity (DEBUG, INFO, WARNING, ERROR).
        weights: Ranking weights.
    """

    project_dir: Path = field(default_factory=Path.cwd)
    max_results: int = 0
    yield_every: int = 256
    log_level: str = "INFO"
    weights: RankingWeights = field(default_factory=RankingWeights)

    def validate(self) -> None:
        """Raise ConfigError for out-of-range settings."""
        if self.max_results < 0:
            raise ConfigError("max_results must be >= 0")
        if self.yield_every < 1:
            raise ConfigError("yield_every must be >= 1")
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(
                f"Unknown log_level '{self.log_level}'. Valid: {', '.join(_LOG_LEVELS)}"
            )
        self.weights.validate()


def load_config(project_dir: Path) -> SearchConfig:
    """Load configuration from env vars, project config, and global config.

    Priority: env vars > .docquery/config.toml > ~/.config/docquery/config.toml

    Args:
        project_dir: Root directory of the project.

    Returns:
        A fully resolved and validated SearchConfig instance.

    Raises:
        ConfigError: If a value has the wrong type or is out of range.
    """
    config = SearchConfig(project_dir=project_dir)

    # Layer 1: Global config (lowest priority)
    _apply_toml(config, _load_toml(_GLOBAL_CONFIG_PATH))

    # Layer 2: Project config
    _apply_toml(config, _load_toml(project_dir / ".docquery" / "config.toml"))

    # Layer 3: Environment variables (highest priority)
    _apply_env(config)

    config.validate()
    return config


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file, returning an empty dict if missing or invalid."""
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError) as exc:
        console.print(f"[yellow]Warning:[/yellow] Could not parse {path}: {exc}")
        return {}


def _apply_toml(config: SearchConfig, settings: dict[str, Any]) -> None:
    """Merge TOML settings into a SearchConfig."""
    if "max_results" in settings:
        config.max_results = _as_int("max_results", settings["max_results"])
    if "yield_every" in settings:
        config.yield_every = _as_int("yield_every", settings["yield_every"])
    if "log_level" in settings:
        config.log_level = str(settings["log_level"]).upper()

    weights = settings.get("weights", {})
    if not isinstance(weights, dict):
        raise ConfigError("[weights] must be a table")
    known = {f.name for f in fields(RankingWeights)}
    for key, value in weights.items():
        if key not in known:
            raise ConfigError(f"Unknown weight '{key}'. Valid: {', '.join(sorted(known))}")
        setattr(config.weights, key, _as_float(f"weights.{key}", value))


def _apply_env(config: SearchConfig) -> None:
    """Override config with environment variables where set."""
    if max_results := os.environ.get(f"{_ENV_PREFIX}MAX_RESULTS"):
        config.max_results = _as_int("max_results", max_results)
    if yield_every := os.environ.get(f"{_ENV_PREFIX}YIELD_EVERY"):
        config.yield_every = _as_int("yield_every", yield_every)
    if log_level := os.environ.get(f"{_ENV_PREFIX}LOG_LEVEL"):
        config.log_level = log_level.upper()
    for f in fields(RankingWeights):
        if value := os.environ.get(f"{_ENV_PREFIX}WEIGHT_{f.name.upper()}"):
            setattr(config.weights, f.name, _as_float(f"weights.{f.name}", value))


def _as_int(key: str, value: object) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be an integer, got {value!r}") from exc


def _as_float(key: str, value: object) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be a number, got {value!r}") from exc
