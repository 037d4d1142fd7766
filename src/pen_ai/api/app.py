from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import Body, FastAPI, HTTPException, Query

from pen_ai.api.schemas import (
    ConnectionTestRequest,
    GenerateRequest,
    GenerateResponse,
    HookEventResponse,
    ProviderSummaryResponse,
    ProvidersSnapshotResponse,
    RejectedProviderResponse,
)
from pen_ai.hooks.observability import EventLogger
from pen_ai.llm import (
    CallCancelledError,
    ConnectionTestResult,
    CredentialStore,
    MissingCredentialError,
    ProviderDispatchError,
    ProviderModels,
    ProviderNotConfiguredError,
    ProviderSnapshot,
    StorageError,
    UnknownModelError,
)
from pen_ai.settings import Settings, build_service


def _snapshot_response(snapshot: ProviderSnapshot) -> ProvidersSnapshotResponse:
    return ProvidersSnapshotResponse(
        loaded_at=snapshot.loaded_at,
        providers=[ProviderSummaryResponse.from_record(record) for record in snapshot.records],
        rejected=[RejectedProviderResponse.from_rejected(entry) for entry in snapshot.rejected],
    )


def create_app(
    db_path: str | None = None,
    *,
    settings: Settings | None = None,
    credentials: CredentialStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    resolved_settings = settings or Settings.from_env()
    if db_path:
        resolved_settings = resolved_settings.model_copy(update={"db_path": db_path})
    event_logger = EventLogger(resolved_settings.event_log_limit)
    service = build_service(
        resolved_settings,
        credentials=credentials,
        transport=transport,
        logger=event_logger,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        service.store.reload()
        yield

    app = FastAPI(title="Pen AI API", version="0.1.0", lifespan=lifespan)
    app.state.ai_service = service
    app.state.event_logger = event_logger

    @app.post("/ai/generate", response_model=GenerateResponse)
    async def generate_text(payload: GenerateRequest) -> GenerateResponse:
        try:
            text = await service.generate_text(payload.model, payload.prompt, payload.options)
        except UnknownModelError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except MissingCredentialError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except (ProviderNotConfiguredError, StorageError) as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except (ProviderDispatchError, CallCancelledError) as exc:
            raise HTTPException(
                status_code=502,
                detail=f"Failed to generate text with {payload.model}",
            ) from exc
        return GenerateResponse(generatedText=text)

    @app.get("/ai/models", response_model=list[ProviderModels])
    async def list_models() -> list[ProviderModels]:
        return service.list_models()

    @app.get("/ai/providers", response_model=ProvidersSnapshotResponse)
    async def list_providers() -> ProvidersSnapshotResponse:
        return _snapshot_response(service.store.snapshot())

    @app.post("/ai/providers/reload", response_model=ProvidersSnapshotResponse)
    async def reload_providers() -> ProvidersSnapshotResponse:
        try:
            snapshot = service.store.reload()
        except StorageError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return _snapshot_response(snapshot)

    @app.post("/ai/providers/{name}/test", response_model=ConnectionTestResult)
    async def test_provider_connection(
        name: str,
        payload: ConnectionTestRequest | None = Body(default=None),
    ) -> ConnectionTestResult:
        try:
            return await service.test_connection(name, api_key=payload.api_key if payload else None)
        except ProviderNotConfiguredError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except MissingCredentialError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.get("/ai/events", response_model=list[HookEventResponse])
    async def list_events(
        kind: str | None = None,
        drain: bool = Query(default=False),
    ) -> list[HookEventResponse]:
        events = event_logger.drain(kind) if drain else event_logger.list_events(kind)
        return [
            HookEventResponse(at=event.at, kind=event.kind, name=event.name, payload=event.payload)
            for event in events
        ]

    return app


app = create_app()
