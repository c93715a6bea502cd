"""
Tests for policy settings and runtime configuration.
"""
import pytest

from config import AlertSettings, EngineConfig, ValidationAdminSettings


def test_defaults():
    settings = ValidationAdminSettings()

    assert settings.max_hours_variation == 40
    assert settings.target_hours_per_week == 32
    assert settings.equity_threshold == 60
    assert settings.min_rest_hours == 11
    assert settings.alert_settings.score_threshold == 50


def test_from_dict_ignores_unknown_and_falsy_values():
    settings = ValidationAdminSettings.from_dict({
        "max_hours_variation": 0,
        "equity_threshold": 70,
        "min_rest_hours": None,
        "colour": "blue",
    })

    assert settings.max_hours_variation == 40
    assert settings.equity_threshold == 70
    assert settings.min_rest_hours == 11


@pytest.mark.parametrize("data", [None, {}])
def test_from_dict_empty(data):
    assert ValidationAdminSettings.from_dict(data) == ValidationAdminSettings()


def test_alert_settings_from_mapping():
    settings = ValidationAdminSettings.from_dict({"alert_settings": {"score_threshold": 90}})

    assert isinstance(settings.alert_settings, AlertSettings)
    assert settings.alert_settings.score_threshold == 90


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_hours_variation": -5},
        {"target_hours_per_week": 0},
        {"min_shift_hours": 8, "max_shift_hours": 6},
    ],
)
def test_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        ValidationAdminSettings(**kwargs)


@pytest.mark.parametrize("threshold", [-1, 101])
def test_score_threshold_range(threshold):
    with pytest.raises(ValueError):
        AlertSettings(score_threshold=threshold)


def test_engine_config_from_environment(monkeypatch):
    monkeypatch.setenv("WORKLOAD_VERBOSE", "yes")
    monkeypatch.setenv("WORKLOAD_FILE_LOGGING", "0")
    monkeypatch.setenv("WORKLOAD_LOG_DIR", "/tmp/workload")

    config = EngineConfig.load()

    assert config.verbose
    assert not config.file_logging
    assert config.log_dir == "/tmp/workload"


def test_engine_config_defaults(monkeypatch):
    for name in ("WORKLOAD_VERBOSE", "WORKLOAD_FILE_LOGGING", "WORKLOAD_LOG_DIR"):
        monkeypatch.delenv(name, raising=False)

    config = EngineConfig.load()

    assert not config.verbose
    assert config.log_dir == "output"
    assert config.settings == ValidationAdminSettings()
