from __future__ import annotations

import asyncio

import httpx

from pen_ai.hooks.observability import EventLogger
from pen_ai.hooks.security import mask_sensitive_text

from .dialects import template_for
from .errors import CallCancelledError, ProviderCallError, ResponseParseError, TransportError
from .models import RoutingDecision

ERROR_BODY_LIMIT = 300


class CallDispatcher:
    """Issues one POST per routing decision; no retries."""

    def __init__(
        self,
        *,
        request_timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        self.request_timeout_seconds = request_timeout_seconds
        self.transport = transport
        self.logger = logger or EventLogger()
        self.calls = 0

    async def dispatch(
        self,
        decision: RoutingDecision,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        if cancel_event is not None and cancel_event.is_set():
            self.logger.on_llm_call(provider=decision.provider, model=decision.model, phase="cancelled")
            raise CallCancelledError("call cancelled before dispatch")

        self.logger.on_llm_call(provider=decision.provider, model=decision.model, phase="start")
        timeout = httpx.Timeout(self.request_timeout_seconds)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                self.calls += 1
                response = await client.post(
                    decision.endpoint,
                    headers=decision.headers,
                    json=decision.request_body,
                )
        except httpx.TimeoutException as exc:
            self.logger.on_llm_call(provider=decision.provider, model=decision.model, phase="timeout")
            raise TransportError(
                f"{decision.provider} call timed out after {self.request_timeout_seconds}s"
            ) from exc
        except httpx.HTTPError as exc:
            self.logger.on_llm_call(provider=decision.provider, model=decision.model, phase="transport_error")
            raise TransportError(f"{decision.provider} call failed: {type(exc).__name__}") from exc

        if not response.is_success:
            self.logger.on_llm_call(provider=decision.provider, model=decision.model, phase="http_error")
            body = mask_sensitive_text(response.text[:ERROR_BODY_LIMIT])
            raise ProviderCallError(response.status_code, body)

        try:
            payload = response.json()
        except ValueError as exc:
            self.logger.on_llm_call(provider=decision.provider, model=decision.model, phase="parse_error")
            raise ResponseParseError(f"{decision.provider} returned a non-JSON body") from exc

        try:
            text = template_for(decision.dialect).parse_response(payload)
        except ResponseParseError:
            self.logger.on_llm_call(provider=decision.provider, model=decision.model, phase="parse_error")
            raise

        self.logger.on_llm_call(provider=decision.provider, model=decision.model, phase="success")
        return text
