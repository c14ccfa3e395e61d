import pytest

from app.core.config import Settings, clear_settings_cache, get_settings, parse_interval_minutes


@pytest.mark.parametrize(
    "value, expected",
    [
        ("10", 10),
        (" 3 ", 3),
        (7, 7),
        (None, 5),
        ("", 5),
        ("five", 5),
        ("0", 5),
        ("-1", 5),
        ("2.5", 5),
    ],
)
def test_parse_interval_minutes(value, expected):
    assert parse_interval_minutes(value) == expected


def test_interval_from_environment(monkeypatch):
    monkeypatch.setenv("BOL_SYNC_INTERVAL_MINUTES", "not-a-number")
    clear_settings_cache()

    assert get_settings().BOL_SYNC_INTERVAL_MINUTES == 5


def test_cors_origin_list(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:3000, https://dashboard.example.com,,")

    settings = Settings()

    assert settings.cors_origin_list == ["http://localhost:3000", "https://dashboard.example.com"]


def test_settings_are_cached():
    clear_settings_cache()
    assert get_settings() is get_settings()
