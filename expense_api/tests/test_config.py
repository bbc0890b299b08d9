from __future__ import annotations

from expense_api.config import DEFAULT_SQLITE_PATH, Settings


def test_defaults_without_environment():
    settings = Settings.from_env({})
    assert settings.database_url == f"sqlite:///{DEFAULT_SQLITE_PATH}"
    assert settings.log_level == "INFO"
    assert settings.json_logs is False
    assert settings.cors_origins == ("*",)
    assert settings.port == 8000


def test_environment_overrides():
    settings = Settings.from_env(
        {
            "EXPENSE_API_DATABASE_URL": "postgresql://app@db/expenses",
            "EXPENSE_API_LOG_LEVEL": "debug",
            "EXPENSE_API_JSON_LOGS": "true",
            "EXPENSE_API_CORS_ORIGINS": "http://localhost:3000, https://app.example.com",
            "EXPENSE_API_PORT": "9000",
        }
    )
    assert settings.database_url == "postgresql://app@db/expenses"
    assert settings.log_level == "DEBUG"
    assert settings.json_logs is True
    assert settings.cors_origins == ("http://localhost:3000", "https://app.example.com")
    assert settings.port == 9000


def test_blank_values_fall_back_to_defaults():
    settings = Settings.from_env({"EXPENSE_API_DATABASE_URL": "  ", "EXPENSE_API_CORS_ORIGINS": ","})
    assert settings.database_url == Settings().database_url
    assert settings.cors_origins == ("*",)


def test_log_file_override():
    assert Settings.from_env({}).log_file.endswith("expense_api.log")
    assert Settings.from_env({"EXPENSE_API_LOG_FILE": "/var/log/expenses.jsonl"}).log_file == "/var/log/expenses.jsonl"
