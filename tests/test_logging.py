import pytest

from geoattend import cli
from geoattend.config.settings import get_logging_config, get_settings
from geoattend.core.logging import build_logging_config, configure_logging


def _with_level(level):
    settings = get_settings()
    return settings.model_copy(update={"app": settings.app.model_copy(update={"log_level": level})})


def test_level_comes_from_settings_and_quiets_httpx():
    config = build_logging_config(_with_level("warning"))

    assert config["root"]["level"] == "WARNING"
    assert config["handlers"]["console"]["level"] == "WARNING"
    assert config["loggers"]["geoattend"]["level"] == "WARNING"
    assert config["loggers"]["httpx"]["level"] == "WARNING"


def test_debug_shows_backend_requests_without_touching_cached_yaml():
    config = build_logging_config(_with_level("INFO"), verbose=True)

    assert config["root"]["level"] == "DEBUG"
    assert config["loggers"]["httpx"]["level"] == "INFO"
    assert get_logging_config()["root"]["level"] == "INFO"
    assert "geoattend" not in get_logging_config()["loggers"]


def test_unknown_level_is_rejected():
    with pytest.raises(ValueError, match="Unknown log level"):
        build_logging_config(_with_level("chatty"))


def test_configure_logging_applies_config(monkeypatch):
    applied = []
    monkeypatch.setattr("logging.config.dictConfig", applied.append)

    configure_logging(_with_level("ERROR"))

    assert applied[0]["loggers"]["geoattend"]["level"] == "ERROR"


def test_cli_verbose_flag_enables_debug(monkeypatch):
    applied = []
    monkeypatch.setattr("logging.config.dictConfig", applied.append)

    code = cli.main(["-v", "distance", "--from", "25.2048", "55.2708", "--to", "25.2050", "55.2710"])

    assert code == 0
    assert applied[0]["root"]["level"] == "DEBUG"
