from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Mapping

import httpx
from pydantic import BaseModel, model_validator

from pen_ai.hooks.observability import DEFAULT_MAX_EVENTS, EventLogger
from pen_ai.llm import (
    AIService,
    CallDispatcher,
    CredentialStore,
    EnvCredentialStore,
    FileCredentialStore,
    ProviderConfigStore,
    ProviderResolver,
    RoutingConfig,
)
from pen_ai.storage.sqlite import SqliteProviderStore

DEFAULT_DB_PATH = ".pen_ai/providers.db"


def _env_text(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _env_flag(environ: Mapping[str, str], name: str, default: str = "0") -> bool:
    return environ.get(name, default) == "1"


class Settings(BaseModel):
    db_path: str = DEFAULT_DB_PATH
    routes_path: str | None = None
    credentials_path: str | None = None
    request_timeout_seconds: float = 60.0
    storage_timeout_seconds: float = 5.0
    workspace_root: str = "."
    allow_workspace_credentials: bool = False
    event_log_limit: int = DEFAULT_MAX_EVENTS

    @model_validator(mode="after")
    def validate_timeouts(self) -> "Settings":
        if self.request_timeout_seconds <= 0 or self.storage_timeout_seconds <= 0:
            raise ValueError("timeouts must be positive")
        if self.event_log_limit < 1:
            raise ValueError("event_log_limit must be at least 1")
        return self

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            db_path=_env_text(env, "PEN_AI_DB_PATH") or DEFAULT_DB_PATH,
            routes_path=_env_text(env, "PEN_AI_ROUTES_PATH"),
            credentials_path=_env_text(env, "PEN_AI_CREDENTIALS_PATH"),
            request_timeout_seconds=float(_env_text(env, "PEN_AI_LLM_REQUEST_TIMEOUT_SECONDS") or "60"),
            storage_timeout_seconds=float(_env_text(env, "PEN_AI_STORAGE_TIMEOUT_SECONDS") or "5"),
            workspace_root=_env_text(env, "PEN_AI_WORKSPACE_ROOT") or ".",
            allow_workspace_credentials=_env_flag(env, "PEN_AI_CREDENTIALS_ALLOW_WORKSPACE_PATH"),
            event_log_limit=int(_env_text(env, "PEN_AI_EVENT_LOG_LIMIT") or DEFAULT_MAX_EVENTS),
        )

    def routing_config(self) -> RoutingConfig:
        overrides = {
            "request_timeout_seconds": self.request_timeout_seconds,
            "storage_timeout_seconds": self.storage_timeout_seconds,
        }
        if not self.routes_path:
            return RoutingConfig(**overrides)
        payload = json.loads(Path(self.routes_path).expanduser().read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"routes file must hold a JSON object: {self.routes_path}")
        # Timeouts from the file win over environment defaults.
        return RoutingConfig.model_validate({**overrides, **payload})

    def credential_store(self) -> CredentialStore:
        if self.credentials_path:
            return FileCredentialStore(
                self.credentials_path,
                workspace_root=self.workspace_root,
                allow_workspace_path=self.allow_workspace_credentials,
            )
        return EnvCredentialStore()


def build_service(
    settings: Settings,
    *,
    credentials: CredentialStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    logger: EventLogger | None = None,
) -> AIService:
    event_logger = logger or EventLogger(settings.event_log_limit)
    config = settings.routing_config()
    provider_store = ProviderConfigStore(
        SqliteProviderStore(settings.db_path, timeout_seconds=config.storage_timeout_seconds),
        logger=event_logger,
    )
    resolver = ProviderResolver(
        config,
        provider_store,
        credentials or settings.credential_store(),
        logger=event_logger,
    )
    dispatcher = CallDispatcher(
        request_timeout_seconds=config.request_timeout_seconds,
        transport=transport,
        logger=event_logger,
    )
    return AIService(
        store=provider_store,
        resolver=resolver,
        dispatcher=dispatcher,
        logger=event_logger,
    )
