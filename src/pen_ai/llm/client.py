from __future__ import annotations

import asyncio

from pen_ai.hooks.observability import EventLogger

from .dialects import build_auth_headers
from .dispatcher import CallDispatcher
from .errors import MissingCredentialError, ProviderDispatchError, ProviderNotConfiguredError
from .models import ConnectionTestResult, GenerateOptions, ProviderModels
from .provider_store import ProviderConfigStore
from .router import ProviderResolver

CONNECTION_TEST_PROMPT = (
    "Hello, this is a test to verify API connectivity. Please respond with 'API test successful'."
)
CONNECTION_TEST_MAX_TOKENS = 20


class AIService:
    """
    Service-facing facade: resolve a model, dispatch one call, return text.
    HTTP and CLI surfaces go through this class only.
    """

    def __init__(
        self,
        *,
        store: ProviderConfigStore,
        resolver: ProviderResolver,
        dispatcher: CallDispatcher,
        logger: EventLogger | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.logger = logger or EventLogger()

    async def generate_text(
        self,
        model: str,
        prompt: str,
        options: GenerateOptions | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        decision = self.resolver.resolve(model, prompt, options)
        return await self.dispatcher.dispatch(decision, cancel_event=cancel_event)

    def list_models(self) -> list[ProviderModels]:
        snapshot = self.store.snapshot()
        grouped: dict[str, list[str]] = {}
        for route in self.resolver.config.routes:
            models = grouped.setdefault(route.provider, [])
            for alias in route.models:
                if alias not in models:
                    models.append(alias)
            record = snapshot.get(route.provider)
            if record and record.default_model not in models:
                models.append(record.default_model)
        return [ProviderModels(provider=provider, models=models) for provider, models in grouped.items()]

    async def test_connection(
        self,
        provider_name: str,
        api_key: str | None = None,
    ) -> ConnectionTestResult:
        """Try every stored base URL in order until one returns a valid completion."""
        record = self.store.snapshot().get(provider_name)
        if record is None:
            raise ProviderNotConfiguredError(f"provider {provider_name!r} is not configured")
        if provider_name not in self.resolver.config.dialects:
            raise ProviderNotConfiguredError(f"provider {provider_name!r} has no dialect")

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if record.requires_auth:
            secret = api_key or self.resolver.credentials.get_credential(record.name)
            if not secret:
                raise MissingCredentialError(f"API key for {record.name} is not configured")
            headers.update(build_auth_headers(record.auth_header, secret))

        options = GenerateOptions(max_tokens=CONNECTION_TEST_MAX_TOKENS)
        attempts = 0
        last_error: str | None = None
        for base_url in record.base_urls:
            attempts += 1
            decision = self.resolver.build_decision(
                record=record,
                model=record.default_model,
                prompt=CONNECTION_TEST_PROMPT,
                options=options,
                base_url=base_url,
                headers=headers,
            )
            try:
                await self.dispatcher.dispatch(decision)
            except ProviderDispatchError as exc:
                last_error = str(exc)
                self.logger.record(
                    "connection_test",
                    "attempt_failed",
                    {"provider": record.name, "endpoint": decision.endpoint, "error": last_error},
                )
                continue
            return ConnectionTestResult(
                provider=record.name,
                ok=True,
                endpoint=decision.endpoint,
                attempts=attempts,
            )
        return ConnectionTestResult(
            provider=record.name,
            ok=False,
            attempts=attempts,
            last_error=last_error,
        )
