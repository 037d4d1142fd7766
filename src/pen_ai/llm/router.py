from __future__ import annotations

from pen_ai.hooks.observability import EventLogger

from .credentials import CredentialStore
from .dialects import ChatPayload, build_auth_headers, template_for
from .errors import (
    MissingCredentialError,
    ProviderNotConfiguredError,
    RoutingConfigError,
    UnknownModelError,
)
from .models import GenerateOptions, ModelRoute, ProviderRecord, RoutingConfig, RoutingDecision
from .provider_store import ProviderConfigStore


class ProviderResolver:
    def __init__(
        self,
        config: RoutingConfig,
        store: ProviderConfigStore,
        credentials: CredentialStore,
        *,
        logger: EventLogger | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.credentials = credentials
        self.logger = logger or EventLogger()
        self._routes = _build_route_table(config)

    @property
    def routes(self) -> tuple[ModelRoute, ...]:
        return self._routes

    def match_route(self, model: str) -> ModelRoute:
        # Longest prefix first; equal-length duplicates were rejected at construction.
        for route in self._routes:
            if model.startswith(route.prefix):
                return route
        self.logger.on_routing("unknown_model", model=model)
        raise UnknownModelError(f"Unsupported model: {model}")

    def resolve(
        self,
        model: str,
        prompt: str = "",
        options: GenerateOptions | None = None,
    ) -> RoutingDecision:
        route = self.match_route(model)
        record = self.store.snapshot().get(route.provider)
        if record is None:
            self.logger.on_routing("provider_not_configured", model=model, provider=route.provider)
            raise ProviderNotConfiguredError(
                f"provider {route.provider!r} for model {model!r} is not configured"
            )

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if record.requires_auth:
            secret = self.credentials.get_credential(record.name)
            if not secret:
                self.logger.on_routing("missing_credential", model=model, provider=record.name)
                raise MissingCredentialError(f"API key for {record.name} is not configured")
            headers.update(build_auth_headers(record.auth_header, secret))

        decision = self.build_decision(
            record=record,
            model=self.provider_model(route, record, model),
            prompt=prompt,
            options=options,
            base_url=record.preferred_base_url,
            headers=headers,
        )
        self.logger.on_routing("resolved", model=model, provider=record.name)
        return decision

    def build_decision(
        self,
        *,
        record: ProviderRecord,
        model: str,
        prompt: str,
        options: GenerateOptions | None,
        base_url: str,
        headers: dict[str, str],
    ) -> RoutingDecision:
        dialect = self.config.dialects[record.name]
        template = template_for(dialect)
        opts = options or GenerateOptions()
        payload = ChatPayload(
            model=model,
            prompt=prompt,
            system_prompt=opts.system_prompt or self.config.system_prompt,
            temperature=(
                opts.temperature if opts.temperature is not None else self.config.default_temperature
            ),
            max_tokens=(
                opts.max_tokens if opts.max_tokens is not None else self.config.default_max_tokens
            ),
            user=opts.user,
        )
        return RoutingDecision(
            provider=record.name,
            dialect=dialect,
            model=model,
            endpoint=template.endpoint_for(base_url),
            headers={**headers, **template.extra_headers},
            request_body=template.build_body(payload),
        )

    @staticmethod
    def provider_model(route: ModelRoute, record: ProviderRecord, model: str) -> str:
        if model in route.models:
            return route.models[model]
        if model == route.prefix:
            return record.default_model
        return model


def _build_route_table(config: RoutingConfig) -> tuple[ModelRoute, ...]:
    seen: dict[str, ModelRoute] = {}
    for route in config.routes:
        existing = seen.get(route.prefix)
        if existing is not None:
            raise RoutingConfigError(
                f"model prefix {route.prefix!r} is declared for both "
                f"{existing.provider!r} and {route.provider!r}"
            )
        if route.provider not in config.dialects:
            raise RoutingConfigError(
                f"provider {route.provider!r} (prefix {route.prefix!r}) has no dialect"
            )
        seen[route.prefix] = route
    return tuple(sorted(seen.values(), key=lambda route: len(route.prefix), reverse=True))
