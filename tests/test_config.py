import pytest

from lecture_processor.config import ConfigManager


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ConfigManager.DEFAULTS:
        monkeypatch.delenv(key, raising=False)


def test_default_value() -> None:
    assert ConfigManager.get_display_value("LLM_MODEL") == ("gpt-4", "default")


def test_environment_overrides_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_MODEL", "gpt-4o-mini")

    assert ConfigManager.get_display_value("LLM_MODEL") == ("gpt-4o-mini", "env")


def test_explicit_override_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATA_DIR", "/srv/lectures")

    assert ConfigManager.get_display_value("DATA_DIR", "/tmp/data") == ("/tmp/data", "override")
    assert ConfigManager.get("DATA_DIR", "") == "/srv/lectures"


def test_empty_environment_value_is_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRANSCRIPTION_BACKEND", "")

    assert ConfigManager.get("TRANSCRIPTION_BACKEND") == "openai"


def test_numeric_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCAN_INTERVAL", "2.5")
    monkeypatch.setenv("SERVER_PORT", "not-a-port")

    assert ConfigManager.get_float("SCAN_INTERVAL") == 2.5
    assert ConfigManager.get_int("SERVER_PORT") == 5001
    assert ConfigManager.get_int("SERVER_PORT", 8080) == 8080
