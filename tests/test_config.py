import logging

from openmd.core.config import get_settings
from openmd.core.config_prod import ProductionSettings
from openmd.core.logging_config import setup_logging


def test_development_settings_by_default(monkeypatch):
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    settings = get_settings()

    assert not isinstance(settings, ProductionSettings)
    assert settings.ALLOW_OWNERLESS_MUTATION is True
    assert settings.SESSION_COOKIE_NAME == "openmd_session"


def test_production_settings_tighten_defaults(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    settings = get_settings()

    assert isinstance(settings, ProductionSettings)
    assert settings.ACCESS_TOKEN_EXPIRE_MINUTES == 30
    assert settings.LOG_LEVEL == "WARNING"


def test_environment_overrides(monkeypatch):
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.setenv("ALLOW_OWNERLESS_MUTATION", "false")
    monkeypatch.setenv("SHARE_CODE_BYTES", "9")
    settings = get_settings()

    assert settings.ALLOW_OWNERLESS_MUTATION is False
    assert settings.SHARE_CODE_BYTES == 9


def test_audit_logger_stays_at_info():
    setup_logging("ERROR")
    assert logging.getLogger("openmd.audit").getEffectiveLevel() == logging.INFO
