"""Tests for configuration loading and the error hierarchy."""

import pytest
from decimal import Decimal

from core.config import (
    AllocatorConfig,
    RiskConfig,
    StrategyConfig,
    deep_merge,
    load_config,
)
from core.exceptions import (
    ConfigurationError,
    EquityUnavailableError,
    ExternalServiceError,
    InvariantViolation,
    UnsupportedAssetClassError,
)


MINIMAL_YAML = """
default:
  strategies:
    congressional:
      weight: 0.5
    insider:
      weight: 0.5
  risk_management:
    risk_target_pct: 0.02
live:
  strategies:
    insider:
      enabled: false
  risk_management:
    enable_shorts: false
"""


def _write(tmp_path, text):
    path = tmp_path / "strategies.yml"
    path.write_text(text)
    return path


class TestLoadConfig:
    """Tests for the YAML loader."""

    def test_default_file_loads_paper(self):
        """Test the shipped config loads for the paper environment."""
        config = load_config(environment="paper")

        assert config.environment == "paper"
        assert [s.name for s in config.strategies] == ["congressional", "insider", "lobbying", "contracts"]
        assert config.strategy_weights()["congressional"] == pytest.approx(0.4)
        assert config.risk.risk_target_pct == pytest.approx(0.01)
        assert config.risk.min_position_value == Decimal("1000")
        assert config.risk.enable_shorts is True

    def test_live_section_overrides_default(self):
        """Test environment values are deep-merged over defaults."""
        config = load_config(environment="live")

        assert config.strategy_weights()["lobbying"] == pytest.approx(0.1)
        assert config.strategy_weights()["congressional"] == pytest.approx(0.4)
        assert config.risk.risk_target_pct == pytest.approx(0.005)
        assert config.risk.enable_shorts is False
        # untouched keys keep their defaults
        assert config.risk.atr_period == 14

    def test_trading_mode_env_var_selects_section(self, tmp_path, monkeypatch):
        """Test TRADING_MODE picks the environment when none is passed."""
        monkeypatch.setenv("TRADING_MODE", "live")
        config = load_config(path=_write(tmp_path, MINIMAL_YAML))

        assert config.environment == "live"
        assert config.strategy_weights() == {"congressional": 0.5}

    def test_override_is_merged_last(self, tmp_path):
        """Test an explicit override wins over file values."""
        config = load_config(
            path=_write(tmp_path, MINIMAL_YAML),
            environment="paper",
            override={"risk_management": {"max_position_pct": 0.05}},
        )

        assert config.risk.max_position_pct == pytest.approx(0.05)
        assert config.risk.risk_target_pct == pytest.approx(0.02)

    def test_missing_file_raises(self, tmp_path):
        """Test a missing file is a configuration error."""
        with pytest.raises(ConfigurationError):
            load_config(path=tmp_path / "nope.yml", environment="paper")

    def test_invalid_yaml_raises(self, tmp_path):
        """Test malformed YAML is a configuration error."""
        with pytest.raises(ConfigurationError):
            load_config(path=_write(tmp_path, "default: [unclosed"), environment="paper")

    def test_unknown_risk_key_rejected(self, tmp_path):
        """Test unknown keys are rejected at load time."""
        text = MINIMAL_YAML + "\npaper:\n  risk_management:\n    risk_target: 0.5\n"
        with pytest.raises(ConfigurationError, match="risk_target"):
            load_config(path=_write(tmp_path, text), environment="paper")

    def test_negative_weight_rejected(self, tmp_path):
        """Test negative strategy weights are rejected."""
        text = MINIMAL_YAML + "\npaper:\n  strategies:\n    insider:\n      weight: -0.1\n"
        with pytest.raises(ConfigurationError):
            load_config(path=_write(tmp_path, text), environment="paper")


class TestAllocatorConfig:
    """Tests for config validation."""

    def test_bool_rejected_for_numeric_field(self):
        """Test YAML booleans are not accepted as numbers."""
        raw = {"strategies": {"congressional": {"weight": 1.0}}, "risk_management": {"atr_period": True}}
        with pytest.raises(ConfigurationError):
            AllocatorConfig.from_dict(raw)

    def test_no_enabled_strategies_rejected(self):
        """Test at least one strategy must be enabled."""
        raw = {"strategies": {"congressional": {"enabled": False, "weight": 1.0}}}
        with pytest.raises(ConfigurationError):
            AllocatorConfig.from_dict(raw)

    def test_unknown_strategy_param_key_rejected(self):
        """Test strategy settings only accept enabled, weight and params."""
        raw = {"strategies": {"congressional": {"weight": 1.0, "lookback_days": 30}}}
        with pytest.raises(ConfigurationError):
            AllocatorConfig.from_dict(raw)

    def test_validate_strategy_names(self):
        """Test strategies without a producer are rejected."""
        config = AllocatorConfig(strategies=(StrategyConfig("astrology", weight=1.0),))
        with pytest.raises(ConfigurationError, match="astrology"):
            config.validate_strategy_names({"congressional"})

    def test_disabled_strategies_excluded_from_weights(self):
        """Test the weight table holds enabled strategies only."""
        config = AllocatorConfig(strategies=(
            StrategyConfig("congressional", weight=0.6),
            StrategyConfig("insider", enabled=False, weight=0.4),
        ))
        assert config.strategy_weights() == {"congressional": 0.6}

    def test_duplicate_strategies_rejected(self):
        """Test the same strategy cannot appear twice."""
        with pytest.raises(ConfigurationError):
            AllocatorConfig(strategies=(StrategyConfig("insider", weight=1.0), StrategyConfig("insider", weight=1.0)))

    @pytest.mark.parametrize("kwargs", [
        {"risk_target_pct": 0},
        {"risk_target_pct": 1.5},
        {"max_position_pct": 0},
        {"merge_strategy": "median"},
        {"bar_window_days": 10},
        {"min_position_value": Decimal("-1")},
    ])
    def test_risk_config_bounds(self, kwargs):
        """Test out-of-range risk parameters are rejected."""
        with pytest.raises(ConfigurationError):
            RiskConfig(**kwargs)


class TestDeepMerge:
    """Tests for deep_merge."""

    def test_nested_merge_does_not_mutate(self):
        """Test nested dicts merge and inputs stay untouched."""
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        other = {"a": {"y": 3}}
        merged = deep_merge(base, other)

        assert merged == {"a": {"x": 1, "y": 3}, "b": 1}
        assert base["a"]["y"] == 2


class TestExceptions:
    """Tests for the error hierarchy."""

    def test_configuration_errors_are_not_recoverable(self):
        """Test recoverability flags per family."""
        assert ConfigurationError("x").is_recoverable is False
        assert InvariantViolation("x").is_recoverable is False
        assert ExternalServiceError("x").is_recoverable is True

    def test_unsupported_asset_class_is_configuration_error(self):
        """Test asset-class errors are configuration errors."""
        assert issubclass(UnsupportedAssetClassError, ConfigurationError)

    def test_equity_unavailable_is_external(self):
        """Test equity errors keep the external-service fields."""
        error = EquityUnavailableError("down", service="broker", retryable=True)
        assert isinstance(error, ExternalServiceError)
        assert error.retryable is True
        assert "service=broker" in str(error)
