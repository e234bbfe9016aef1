"""
Typed configuration for an allocation pass.

Loads ``configs/portfolio_strategies.yml``: a ``default`` section plus one
section per trading environment (``paper``, ``live``), deep-merged and
validated into frozen dataclasses once at load time. Unknown or malformed
keys are rejected here rather than deep inside sizing.
"""

import logging
import math
import os
from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "configs" / "portfolio_strategies.yml"
DEFAULT_ENVIRONMENT = "paper"
MERGE_STRATEGIES = ("additive", "max", "average")


@dataclass(frozen=True)
class StrategyConfig:
    """One entry of the strategy table."""

    name: str
    enabled: bool = True
    weight: float = 0.0
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not math.isfinite(self.weight) or self.weight < 0:
            raise ConfigurationError(
                f"Strategy weight must be a non-negative number, got {self.weight}",
                {"strategy": self.name},
            )


@dataclass(frozen=True)
class RiskConfig:
    """Sizing and portfolio constraint parameters."""

    risk_target_pct: float = 0.01
    atr_period: int = 14
    default_volatility_fraction: float = 0.03
    stop_multiple: float = 2.0
    bar_window_days: int = 35
    max_position_pct: float = 0.15
    min_position_value: Decimal = Decimal("1000")
    merge_strategy: str = "additive"
    enable_shorts: bool = True
    block_expiry_days: int = 7

    def __post_init__(self):
        if not 0 < self.risk_target_pct <= 1:
            raise ConfigurationError(f"risk_target_pct must be in (0, 1], got {self.risk_target_pct}")
        if self.atr_period <= 0:
            raise ConfigurationError(f"atr_period must be positive, got {self.atr_period}")
        if not 0 < self.default_volatility_fraction < 1:
            raise ConfigurationError(
                f"default_volatility_fraction must be in (0, 1), got {self.default_volatility_fraction}"
            )
        if self.stop_multiple <= 0:
            raise ConfigurationError(f"stop_multiple must be positive, got {self.stop_multiple}")
        if self.bar_window_days <= self.atr_period:
            raise ConfigurationError(
                f"bar_window_days ({self.bar_window_days}) must exceed atr_period ({self.atr_period})"
            )
        if not 0 < self.max_position_pct <= 1:
            raise ConfigurationError(f"max_position_pct must be in (0, 1], got {self.max_position_pct}")
        if self.min_position_value < 0:
            raise ConfigurationError(f"min_position_value must be non-negative, got {self.min_position_value}")
        if self.merge_strategy not in MERGE_STRATEGIES:
            raise ConfigurationError(
                f"merge_strategy must be one of {', '.join(MERGE_STRATEGIES)}, got {self.merge_strategy}"
            )
        if self.block_expiry_days <= 0:
            raise ConfigurationError(f"block_expiry_days must be positive, got {self.block_expiry_days}")


@dataclass(frozen=True)
class ReferenceDataConfig:
    """Reference-data lookup limits."""

    cache_ttl_seconds: float = 30 * 24 * 3600
    cache_max_size: int = 5000
    daily_call_ceiling: int = 200
    requests_per_second: float = 10.0

    def __post_init__(self):
        if self.cache_ttl_seconds <= 0:
            raise ConfigurationError("cache_ttl_seconds must be positive")
        if self.cache_max_size <= 0:
            raise ConfigurationError("cache_max_size must be positive")
        if self.daily_call_ceiling < 0:
            raise ConfigurationError("daily_call_ceiling must be non-negative")
        if self.requests_per_second <= 0:
            raise ConfigurationError("requests_per_second must be positive")


@dataclass(frozen=True)
class AllocatorConfig:
    """Complete configuration for one environment."""

    environment: str = DEFAULT_ENVIRONMENT
    strategies: tuple[StrategyConfig, ...] = ()
    risk: RiskConfig = field(default_factory=RiskConfig)
    reference: ReferenceDataConfig = field(default_factory=ReferenceDataConfig)
    max_workers: int = 4

    def __post_init__(self):
        if self.max_workers <= 0:
            raise ConfigurationError(f"max_workers must be positive, got {self.max_workers}")
        names = [s.name for s in self.strategies]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate strategy entries: {', '.join(duplicates)}")

    @property
    def enabled_strategies(self) -> list[StrategyConfig]:
        """Strategies switched on for this environment."""
        return [s for s in self.strategies if s.enabled]

    def strategy_weights(self) -> dict[str, float]:
        """Weight table of enabled strategies."""
        return {s.name: s.weight for s in self.enabled_strategies}

    def validate_strategy_names(self, known: set[str]) -> None:
        """Reject strategies that have no registered producer."""
        unknown = sorted(s.name for s in self.strategies if s.name not in known)
        if unknown:
            raise ConfigurationError(
                f"Unknown strategies in configuration: {', '.join(unknown)}",
                {"known": ", ".join(sorted(known))},
            )

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], environment: str = DEFAULT_ENVIRONMENT) -> "AllocatorConfig":
        """Build and validate a config from a merged mapping."""
        allowed = {"strategies", "risk_management", "reference_data", "max_workers"}
        _reject_unknown(raw, allowed, "top level")

        strategies_raw = raw.get("strategies") or {}
        if not isinstance(strategies_raw, Mapping):
            raise ConfigurationError("'strategies' must be a mapping of name -> settings")
        if not strategies_raw:
            raise ConfigurationError("No strategies configured")

        strategies = tuple(
            _build_strategy(name, settings) for name, settings in strategies_raw.items()
        )
        if not any(s.enabled for s in strategies):
            raise ConfigurationError("No strategies are enabled")

        return cls(
            environment=environment,
            strategies=strategies,
            risk=_build_section(RiskConfig, raw.get("risk_management") or {}, "risk_management"),
            reference=_build_section(ReferenceDataConfig, raw.get("reference_data") or {}, "reference_data"),
            max_workers=_coerce(raw.get("max_workers", 4), int, "max_workers", "top level"),
        )


def load_config(
    path: Optional[Path] = None,
    environment: Optional[str] = None,
    override: Optional[Mapping[str, Any]] = None,
) -> AllocatorConfig:
    """
    Load the allocator config for an environment.

    Args:
        path: YAML file (defaults to configs/portfolio_strategies.yml)
        environment: Section to merge over ``default``; falls back to the
            TRADING_MODE environment variable, then ``paper``
        override: Mapping deep-merged last

    Returns:
        Validated AllocatorConfig
    """
    load_dotenv()
    env = environment or os.getenv("TRADING_MODE") or DEFAULT_ENVIRONMENT
    p = Path(path) if path else DEFAULT_CONFIG_PATH

    try:
        with open(p, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {p}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Config file is not valid YAML: {p}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {p}")

    if env not in raw:
        logger.warning(f"No '{env}' section in {p}, using defaults only")

    merged = deep_merge(raw.get("default") or {}, raw.get(env) or {})
    if override:
        merged = deep_merge(merged, override)

    config = AllocatorConfig.from_dict(merged, environment=env)
    logger.info(
        f"Loaded {env} config: {len(config.enabled_strategies)} enabled strategies, "
        f"risk_target_pct={config.risk.risk_target_pct}"
    )
    return config


def deep_merge(base: Mapping[str, Any], other: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``other`` over ``base`` without mutating either."""
    merged = dict(base)
    for key, value in other.items():
        if isinstance(merged.get(key), Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _build_strategy(name: Any, settings: Any) -> StrategyConfig:
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"Strategy names must be non-empty strings, got {name!r}")
    if settings is None:
        settings = {}
    if not isinstance(settings, Mapping):
        raise ConfigurationError(f"Settings for strategy '{name}' must be a mapping")

    section = f"strategies.{name}"
    _reject_unknown(settings, {"enabled", "weight", "params"}, section)

    params = settings.get("params") or {}
    if not isinstance(params, Mapping):
        raise ConfigurationError(f"'{section}.params' must be a mapping")

    return StrategyConfig(
        name=name,
        enabled=_coerce(settings.get("enabled", True), bool, "enabled", section),
        weight=_coerce(settings.get("weight", 0.0), float, "weight", section),
        params=dict(params),
    )


def _build_section(cls, raw: Any, section: str):
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"'{section}' must be a mapping")

    known = {f.name: f.type for f in fields(cls)}
    _reject_unknown(raw, set(known), section)

    kwargs = {key: _coerce(value, known[key], key, section) for key, value in raw.items()}
    return cls(**kwargs)


def _reject_unknown(raw: Mapping[str, Any], allowed: set[str], section: str) -> None:
    unknown = sorted(str(k) for k in raw if k not in allowed)
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in {section}: {', '.join(unknown)}",
            {"allowed": ", ".join(sorted(allowed))},
        )


def _coerce(value: Any, expected: type, key: str, section: str) -> Any:
    """Coerce a YAML scalar to the declared field type."""
    bad = ConfigurationError(
        f"{section}.{key} must be {expected.__name__}, got {value!r}"
    )

    if expected is bool:
        if not isinstance(value, bool):
            raise bad
        return value

    # bool is an int subclass; never accept it for numbers
    if isinstance(value, bool):
        raise bad

    if expected is int:
        if not isinstance(value, int):
            raise bad
        return value

    if expected is float:
        if not isinstance(value, (int, float)):
            raise bad
        return float(value)

    if expected is Decimal:
        if not isinstance(value, (int, float, str, Decimal)):
            raise bad
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise bad from None
        if not result.is_finite():
            raise bad
        return result

    if expected is str:
        if not isinstance(value, str):
            raise bad
        return value

    return value
