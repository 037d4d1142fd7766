from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pen_ai.llm.models import GenerateOptions, ProviderRecord, RejectedRecord


class GenerateRequest(BaseModel):
    model: str
    prompt: str
    options: GenerateOptions | None = None


class GenerateResponse(BaseModel):
    generatedText: str


class ConnectionTestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str | None = Field(default=None, alias="apiKey")


class ProviderSummaryResponse(BaseModel):
    id: int | str
    name: str
    base_urls: list[str]
    default_model: str
    requires_auth: bool
    auth_header: str

    @classmethod
    def from_record(cls, record: ProviderRecord) -> "ProviderSummaryResponse":
        return cls(
            id=record.id,
            name=record.name,
            base_urls=list(record.base_urls),
            default_model=record.default_model,
            requires_auth=record.requires_auth,
            auth_header=record.auth_header,
        )


class RejectedProviderResponse(BaseModel):
    record_id: Any = None
    name: str | None = None
    raw_value: str | None = None
    reason: str

    @classmethod
    def from_rejected(cls, entry: RejectedRecord) -> "RejectedProviderResponse":
        return cls(
            record_id=entry.record_id,
            name=entry.name,
            raw_value=None if entry.raw_value is None else str(entry.raw_value),
            reason=entry.reason,
        )


class ProvidersSnapshotResponse(BaseModel):
    loaded_at: datetime
    providers: list[ProviderSummaryResponse] = Field(default_factory=list)
    rejected: list[RejectedProviderResponse] = Field(default_factory=list)


class HookEventResponse(BaseModel):
    at: datetime
    kind: str
    name: str
    payload: dict[str, Any] = Field(default_factory=dict)
