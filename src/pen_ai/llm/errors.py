from __future__ import annotations

from typing import Any


class ProviderRoutingError(RuntimeError):
    pass


class StorageError(ProviderRoutingError):
    pass


class MalformedConfigError(ProviderRoutingError):
    def __init__(
        self,
        reason: str,
        *,
        record_id: Any = None,
        name: str | None = None,
        raw_value: Any = None,
    ) -> None:
        self.reason = reason
        self.record_id = record_id
        self.name = name
        self.raw_value = raw_value
        if record_id is None and name is None:
            super().__init__(reason)
        else:
            super().__init__(f"provider id={record_id!r} name={name!r}: {reason}")


class RoutingConfigError(ProviderRoutingError):
    pass


class UnknownModelError(ProviderRoutingError):
    pass


class ProviderNotConfiguredError(ProviderRoutingError):
    pass


class MissingCredentialError(ProviderRoutingError):
    pass


class CallCancelledError(ProviderRoutingError):
    pass


class ProviderDispatchError(ProviderRoutingError):
    pass


class TransportError(ProviderDispatchError):
    pass


class ProviderCallError(ProviderDispatchError):
    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"provider call failed: HTTP {status_code}")


class ResponseParseError(ProviderDispatchError):
    pass
