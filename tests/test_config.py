import logging

from report_assembly import config
from report_assembly.config import EngineSettings
from report_assembly.logging_conf import configure_logging


def test_settings_defaults(monkeypatch):
    for name in (config.ENV_RENDER_URL, config.ENV_RENDER_TIMEOUT, config.ENV_MAX_ARTIFACTS):
        monkeypatch.delenv(name, raising=False)

    settings = EngineSettings.from_env()

    assert settings.render_url == ""
    assert settings.remote_timeout == config.REMOTE_TIMEOUT_SECONDS
    assert settings.max_artifacts == config.MAX_ARTIFACTS
    assert settings.capture_scale == 3


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv(config.ENV_RENDER_URL, " http://render.local/generate-pdf ")
    monkeypatch.setenv(config.ENV_RENDER_TIMEOUT, "12.5")
    monkeypatch.setenv(config.ENV_MAX_ARTIFACTS, "5")

    settings = EngineSettings.from_env()

    assert settings.render_url == "http://render.local/generate-pdf"
    assert settings.remote_timeout == 12.5
    assert settings.max_artifacts == 5
    assert EngineSettings.from_env(render_url="").render_url == ""


def test_invalid_numbers_fall_back_to_defaults(monkeypatch, caplog):
    monkeypatch.setenv(config.ENV_RENDER_TIMEOUT, "soon")
    monkeypatch.setenv(config.ENV_MAX_ARTIFACTS, "-3")

    with caplog.at_level(logging.WARNING, logger="report_assembly.config"):
        settings = EngineSettings.from_env()

    assert settings.remote_timeout == config.REMOTE_TIMEOUT_SECONDS
    assert settings.max_artifacts == config.MAX_ARTIFACTS
    assert len(caplog.records) == 2


def test_configure_logging_is_idempotent(monkeypatch):
    monkeypatch.delenv(config.ENV_LOG_LEVEL, raising=False)
    logger = configure_logging("debug")
    configure_logging("warning")

    handlers = [h for h in logger.handlers if h.get_name() == "report_assembly.console"]
    assert len(handlers) == 1
    assert logger.level == logging.WARNING
    assert configure_logging("nonsense").level == logging.INFO
