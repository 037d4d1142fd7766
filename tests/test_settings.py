import pytest

from pen_ai.hooks.observability import DEFAULT_MAX_EVENTS
from pen_ai.settings import DEFAULT_DB_PATH, Settings


def test_from_env_uses_defaults_for_missing_and_blank_values() -> None:
    settings = Settings.from_env(
        {
            "PEN_AI_LLM_REQUEST_TIMEOUT_SECONDS": "",
            "PEN_AI_STORAGE_TIMEOUT_SECONDS": "   ",
            "PEN_AI_EVENT_LOG_LIMIT": "",
        }
    )

    assert settings.db_path == DEFAULT_DB_PATH
    assert settings.request_timeout_seconds == 60.0
    assert settings.storage_timeout_seconds == 5.0
    assert settings.event_log_limit == DEFAULT_MAX_EVENTS
    assert settings.credentials_path is None


def test_from_env_reads_explicit_values() -> None:
    settings = Settings.from_env(
        {
            "PEN_AI_DB_PATH": "/tmp/pen-ai/providers.db",
            "PEN_AI_LLM_REQUEST_TIMEOUT_SECONDS": "12.5",
            "PEN_AI_STORAGE_TIMEOUT_SECONDS": "2",
            "PEN_AI_EVENT_LOG_LIMIT": "250",
            "PEN_AI_CREDENTIALS_ALLOW_WORKSPACE_PATH": "1",
        }
    )

    assert settings.db_path == "/tmp/pen-ai/providers.db"
    assert settings.request_timeout_seconds == 12.5
    assert settings.storage_timeout_seconds == 2.0
    assert settings.event_log_limit == 250
    assert settings.allow_workspace_credentials is True


@pytest.mark.parametrize(
    "environ",
    [
        {"PEN_AI_LLM_REQUEST_TIMEOUT_SECONDS": "0"},
        {"PEN_AI_STORAGE_TIMEOUT_SECONDS": "-1"},
        {"PEN_AI_EVENT_LOG_LIMIT": "0"},
    ],
)
def test_from_env_rejects_non_positive_limits(environ: dict[str, str]) -> None:
    with pytest.raises(ValueError):
        Settings.from_env(environ)
