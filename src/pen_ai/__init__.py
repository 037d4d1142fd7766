"""Provider routing core for the Pen writing assistant."""

from .llm import (
    AIService,
    CallDispatcher,
    GenerateOptions,
    ProviderConfigStore,
    ProviderRecord,
    ProviderResolver,
    RoutingConfig,
    RoutingDecision,
    normalize_base_urls,
)
from .settings import Settings, build_service

__all__ = [
    "AIService",
    "build_service",
    "CallDispatcher",
    "GenerateOptions",
    "normalize_base_urls",
    "ProviderConfigStore",
    "ProviderRecord",
    "ProviderResolver",
    "RoutingConfig",
    "RoutingDecision",
    "Settings",
]
