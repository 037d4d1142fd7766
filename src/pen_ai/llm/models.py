from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PEN_AI_SYSTEM_PROMPT = "You are Pen AI, a helpful writing assistant."


class Dialect(str, Enum):
    OPENAI_CHAT = "openai-chat"
    DEEPSEEK_CHAT = "deepseek-chat"
    QWEN_CHAT = "qwen-chat"
    ANTHROPIC_MESSAGES = "anthropic-messages"


class ProviderRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int | str
    name: str
    base_urls: tuple[str, ...]
    default_model: str
    requires_auth: bool = True
    auth_header: str = "Authorization"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("base_urls")
    @classmethod
    def validate_base_urls(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("base_urls must not be empty")
        return value

    @property
    def preferred_base_url(self) -> str:
        return self.base_urls[0]


@dataclass(frozen=True)
class RejectedRecord:
    record_id: Any
    name: str | None
    raw_value: Any
    reason: str


@dataclass(frozen=True)
class ProviderSnapshot:
    records: tuple[ProviderRecord, ...] = ()
    rejected: tuple[RejectedRecord, ...] = ()
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    by_name: Mapping[str, ProviderRecord] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "by_name",
            MappingProxyType({record.name: record for record in self.records}),
        )

    def get(self, name: str) -> ProviderRecord | None:
        return self.by_name.get(name)


class GenerateOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temperature: float | None = Field(default=None, ge=0, le=2)
    max_tokens: int | None = Field(default=None, ge=1, alias="maxTokens")
    user: str | None = None
    system_prompt: str | None = Field(default=None, alias="systemPrompt")


class RoutingDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: str
    dialect: Dialect
    model: str
    endpoint: str
    headers: dict[str, str]
    request_body: dict[str, Any]


class ModelRoute(BaseModel):
    prefix: str
    provider: str
    models: dict[str, str] = Field(default_factory=dict)

    @field_validator("prefix", "provider")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("route prefix and provider must not be blank")
        return value


def _default_routes() -> list[ModelRoute]:
    return [
        ModelRoute(prefix="gpt", provider="openai", models={"gpt-4o-mini": "gpt-4o-mini"}),
        ModelRoute(prefix="deepseek", provider="deepseek", models={"deepseek-3.2": "deepseek-chat"}),
        ModelRoute(prefix="qwen", provider="qwen", models={"qwen-plus": "qwen-plus"}),
        ModelRoute(prefix="claude", provider="anthropic"),
    ]


def _default_dialects() -> dict[str, Dialect]:
    return {
        "openai": Dialect.OPENAI_CHAT,
        "deepseek": Dialect.DEEPSEEK_CHAT,
        "qwen": Dialect.QWEN_CHAT,
        "anthropic": Dialect.ANTHROPIC_MESSAGES,
    }


class RoutingConfig(BaseModel):
    routes: list[ModelRoute] = Field(default_factory=_default_routes)
    dialects: dict[str, Dialect] = Field(default_factory=_default_dialects)
    system_prompt: str = PEN_AI_SYSTEM_PROMPT
    default_temperature: float = 0.7
    default_max_tokens: int = 1000
    request_timeout_seconds: float = 60.0
    storage_timeout_seconds: float = 5.0

    @model_validator(mode="after")
    def validate_limits(self) -> "RoutingConfig":
        if not 0 <= self.default_temperature <= 2:
            raise ValueError("default_temperature must be within [0, 2]")
        if self.default_max_tokens < 1:
            raise ValueError("default_max_tokens must be >= 1")
        if self.request_timeout_seconds <= 0 or self.storage_timeout_seconds <= 0:
            raise ValueError("timeouts must be positive")
        return self


class ProviderModels(BaseModel):
    provider: str
    models: list[str] = Field(default_factory=list)


class ConnectionTestResult(BaseModel):
    provider: str
    ok: bool
    endpoint: str | None = None
    attempts: int = 0
    last_error: str | None = None
