"""Provider configuration, model routing, and chat-completion dispatch."""

from .base_urls import extract_urls, normalize_base_urls
from .client import AIService
from .credentials import CredentialStore, EnvCredentialStore, FileCredentialStore, credential_env_var
from .dialects import DIALECT_TEMPLATES, DialectTemplate, build_auth_headers, template_for
from .dispatcher import CallDispatcher
from .errors import (
    CallCancelledError,
    MalformedConfigError,
    MissingCredentialError,
    ProviderCallError,
    ProviderDispatchError,
    ProviderNotConfiguredError,
    ProviderRoutingError,
    ResponseParseError,
    RoutingConfigError,
    StorageError,
    TransportError,
    UnknownModelError,
)
from .models import (
    ConnectionTestResult,
    Dialect,
    GenerateOptions,
    ModelRoute,
    ProviderModels,
    ProviderRecord,
    ProviderSnapshot,
    RejectedRecord,
    RoutingConfig,
    RoutingDecision,
)
from .provider_store import ProviderConfigStore, decode_provider_row
from .router import ProviderResolver

__all__ = [
    "AIService",
    "build_auth_headers",
    "CallCancelledError",
    "CallDispatcher",
    "ConnectionTestResult",
    "credential_env_var",
    "CredentialStore",
    "decode_provider_row",
    "Dialect",
    "DIALECT_TEMPLATES",
    "DialectTemplate",
    "EnvCredentialStore",
    "extract_urls",
    "FileCredentialStore",
    "GenerateOptions",
    "MalformedConfigError",
    "MissingCredentialError",
    "ModelRoute",
    "normalize_base_urls",
    "ProviderCallError",
    "ProviderConfigStore",
    "ProviderDispatchError",
    "ProviderModels",
    "ProviderNotConfiguredError",
    "ProviderRecord",
    "ProviderResolver",
    "ProviderRoutingError",
    "ProviderSnapshot",
    "RejectedRecord",
    "ResponseParseError",
    "RoutingConfig",
    "RoutingConfigError",
    "RoutingDecision",
    "StorageError",
    "template_for",
    "TransportError",
    "UnknownModelError",
]
