import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from pen_ai.hooks.observability import EventLogger
from pen_ai.llm.credentials import EnvCredentialStore
from pen_ai.llm.errors import (
    MissingCredentialError,
    ProviderNotConfiguredError,
    RoutingConfigError,
    UnknownModelError,
)
from pen_ai.llm.models import Dialect, GenerateOptions, ModelRoute, RoutingConfig
from pen_ai.llm.provider_store import ProviderConfigStore
from pen_ai.llm.router import ProviderResolver
from pen_ai.settings import Settings, build_service
from pen_ai.storage.sqlite import SqliteProviderStore

CREDENTIALS = {
    "OPENAI_API_KEY": "openai-secret-key",
    "DEEPSEEK_API_KEY": "deepseek-secret-key",
    "ANTHROPIC_API_KEY": "anthropic-secret-key",
}


def _resolver(
    db_path: Path,
    *,
    config: RoutingConfig | None = None,
    environ: dict[str, str] | None = None,
    logger: EventLogger | None = None,
) -> ProviderResolver:
    store = ProviderConfigStore(SqliteProviderStore(str(db_path)))
    return ProviderResolver(
        config or RoutingConfig(),
        store,
        EnvCredentialStore(CREDENTIALS if environ is None else environ),
        logger=logger,
    )


def test_gpt_prefix_routes_to_openai_first_base_url(provider_db: Path) -> None:
    decision = _resolver(provider_db).resolve("gpt-4o-mini", "Fix my grammar")

    assert decision.provider == "openai"
    assert decision.dialect == Dialect.OPENAI_CHAT
    assert decision.model == "gpt-4o-mini"
    assert decision.endpoint == "https://openaiss.com/v1/chat/completions"
    assert decision.headers["Authorization"] == "Bearer openai-secret-key"
    assert decision.headers["Content-Type"] == "application/json"
    assert decision.request_body == {
        "model": "gpt-4o-mini",
        "messages": [
            {"role": "system", "content": "You are Pen AI, a helpful writing assistant."},
            {"role": "user", "content": "Fix my grammar"},
        ],
        "temperature": 0.7,
        "max_tokens": 1000,
    }


def test_options_override_defaults_and_user_is_openai_only(provider_db: Path) -> None:
    resolver = _resolver(provider_db)
    options = GenerateOptions(temperature=0.2, maxTokens=64, user="user-42")

    openai = resolver.resolve("gpt-4o", "hi", options)
    deepseek = resolver.resolve("deepseek-3.2", "hi", options)

    assert openai.request_body["temperature"] == 0.2
    assert openai.request_body["max_tokens"] == 64
    assert openai.request_body["user"] == "user-42"
    assert "user" not in deepseek.request_body
    assert deepseek.model == "deepseek-chat"
    assert deepseek.endpoint == "https://api.deepseek.com/v1/chat/completions"


@pytest.mark.parametrize(
    "options",
    [{"maxTokens": 0}, {"maxTokens": -5}, {"temperature": -0.1}, {"temperature": 2.5}],
)
def test_out_of_range_options_are_rejected(options: dict) -> None:
    with pytest.raises(ValidationError):
        GenerateOptions(**options)


def test_boundary_options_are_passed_through(provider_db: Path) -> None:
    decision = _resolver(provider_db).resolve(
        "gpt-4o", "hi", GenerateOptions(temperature=0, maxTokens=1)
    )

    assert decision.request_body["temperature"] == 0
    assert decision.request_body["max_tokens"] == 1

def test_bare_prefix_uses_default_model_and_full_url_is_not_extended(provider_db: Path) -> None:
    decision = _resolver(provider_db).resolve("qwen", "hi")

    assert decision.model == "qwen-plus"
    assert decision.endpoint == "https://api.tongyi.aliyun.com/v1/chat/completions"
    assert "Authorization" not in decision.headers


def test_non_bearer_auth_header_carries_raw_key(provider_db: Path) -> None:
    decision = _resolver(provider_db).resolve("claude-3-5-sonnet", "hi")

    assert decision.dialect == Dialect.ANTHROPIC_MESSAGES
    assert decision.endpoint == "https://api.anthropic.com/v1/messages"
    assert decision.headers["x-api-key"] == "anthropic-secret-key"
    assert decision.headers["anthropic-version"] == "2023-06-01"
    assert decision.request_body["system"] == "You are Pen AI, a helpful writing assistant."
    assert decision.request_body["messages"] == [{"role": "user", "content": "hi"}]


@pytest.mark.parametrize("model", ["unknown-model-xyz", "GPT-4o-mini", ""])
def test_unknown_model_is_rejected(provider_db: Path, model: str) -> None:
    logger = EventLogger()
    with pytest.raises(UnknownModelError):
        _resolver(provider_db, logger=logger).resolve(model)
    assert logger.list_events("routing")[-1].name == "unknown_model"


def test_missing_credential_fails_before_decision(provider_db: Path) -> None:
    with pytest.raises(MissingCredentialError, match="API key for deepseek is not configured"):
        _resolver(provider_db, environ={"OPENAI_API_KEY": "k"}).resolve("deepseek-3.2", "hi")


def test_provider_without_loaded_record(tmp_path: Path) -> None:
    resolver = _resolver(tmp_path / "empty.db")
    with pytest.raises(ProviderNotConfiguredError):
        resolver.resolve("gpt-4o-mini", "hi")


def test_longest_prefix_wins(provider_db: Path) -> None:
    config = RoutingConfig(
        routes=[
            ModelRoute(prefix="deepseek", provider="deepseek"),
            ModelRoute(prefix="deepseek-r", provider="openai"),
        ],
        dialects={"deepseek": Dialect.DEEPSEEK_CHAT, "openai": Dialect.OPENAI_CHAT},
    )
    resolver = _resolver(provider_db, config=config)

    assert resolver.resolve("deepseek-reasoner").provider == "openai"
    assert resolver.resolve("deepseek-chat").provider == "deepseek"


def test_duplicate_prefix_fails_at_construction(provider_db: Path) -> None:
    config = RoutingConfig(
        routes=[
            ModelRoute(prefix="gpt", provider="openai"),
            ModelRoute(prefix="gpt", provider="deepseek"),
        ]
    )
    with pytest.raises(RoutingConfigError, match="'gpt'"):
        _resolver(provider_db, config=config)


def test_route_without_dialect_fails_at_construction(provider_db: Path) -> None:
    config = RoutingConfig(routes=[ModelRoute(prefix="mistral", provider="mistral")])
    with pytest.raises(RoutingConfigError, match="no dialect"):
        _resolver(provider_db, config=config)


def test_routes_file_conflict_fails_when_service_is_built(tmp_path: Path) -> None:
    routes_path = tmp_path / "routes.json"
    routes_path.write_text(
        json.dumps(
            {
                "routes": [
                    {"prefix": "qwen", "provider": "qwen"},
                    {"prefix": "qwen", "provider": "openai"},
                ]
            }
        ),
        encoding="utf-8",
    )
    settings = Settings(db_path=str(tmp_path / "providers.db"), routes_path=str(routes_path))

    with pytest.raises(RoutingConfigError):
        build_service(settings, credentials=EnvCredentialStore({}))


def test_routing_config_validates_limits() -> None:
    with pytest.raises(ValueError):
        RoutingConfig(default_temperature=3.5)
    with pytest.raises(ValueError):
        RoutingConfig(request_timeout_seconds=0)
