"""
Tests for environment-driven settings.
"""

from studyos_mcp.config import load_settings


def test_defaults(monkeypatch):
    for key in ("STUDYOS_BACKEND_URL", "STUDYOS_BACKEND_TIMEOUT", "HOST", "PORT", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("studyos_mcp.config.load_dotenv", lambda: False)

    settings = load_settings()

    assert settings.backend_url == ""
    assert settings.backend_timeout == 30.0
    assert settings.port == 10000
    assert settings.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setattr("studyos_mcp.config.load_dotenv", lambda: False)
    monkeypatch.setenv("STUDYOS_BACKEND_URL", " https://studyos.example.com ")
    monkeypatch.setenv("STUDYOS_BACKEND_TIMEOUT", "5")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.backend_url == "https://studyos.example.com"
    assert settings.backend_timeout == 5.0
    assert settings.port == 8080
    assert settings.log_level == "DEBUG"


def test_invalid_number_falls_back(monkeypatch):
    monkeypatch.setattr("studyos_mcp.config.load_dotenv", lambda: False)
    monkeypatch.setenv("PORT", "not-a-port")

    assert load_settings().port == 10000
