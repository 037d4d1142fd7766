from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Mapping, Protocol

from pen_ai.hooks.observability import EventLogger

from .base_urls import normalize_base_urls
from .errors import MalformedConfigError
from .models import ProviderRecord, ProviderSnapshot, RejectedRecord

logger = logging.getLogger(__name__)

_TRUE_TEXT = {"1", "true", "yes", "y", "on"}
_FALSE_TEXT = {"0", "false", "no", "n", "off"}


class ProviderRowSource(Protocol):
    def fetch_rows(self) -> list[dict[str, Any]]: ...

    def fetch_row_by_name(self, name: str) -> dict[str, Any] | None: ...


def decode_provider_row(row: Mapping[str, Any]) -> ProviderRecord:
    record_id = row.get("id")
    raw_name = row.get("name")
    name = raw_name.strip() if isinstance(raw_name, str) else ""

    def malformed(reason: str, raw_value: Any) -> MalformedConfigError:
        return MalformedConfigError(
            reason,
            record_id=record_id,
            name=name or None,
            raw_value=raw_value,
        )

    if record_id is None or (isinstance(record_id, str) and not record_id.strip()):
        raise malformed("id is missing", record_id)
    if not name:
        raise malformed("name is missing", raw_name)

    raw_default_model = row.get("default_model")
    default_model = raw_default_model.strip() if isinstance(raw_default_model, str) else ""
    if not default_model:
        raise malformed("default_model is missing", raw_default_model)

    raw_base_urls = row.get("base_urls")
    try:
        base_urls = normalize_base_urls(raw_base_urls)
    except MalformedConfigError as exc:
        raise malformed(exc.reason, raw_base_urls) from exc

    raw_requires_auth = row.get("requires_auth", True)
    requires_auth = _coerce_bool(raw_requires_auth)
    if requires_auth is None:
        raise malformed("requires_auth is not a boolean", raw_requires_auth)

    raw_auth_header = row.get("auth_header")
    auth_header = raw_auth_header.strip() if isinstance(raw_auth_header, str) else ""

    return ProviderRecord(
        id=record_id,
        name=name,
        base_urls=tuple(base_urls),
        default_model=default_model,
        requires_auth=requires_auth,
        auth_header=auth_header or "Authorization",
        created_at=_coerce_datetime(row.get("created_at")),
        updated_at=_coerce_datetime(row.get("updated_at")),
    )


class ProviderConfigStore:
    """
    Immutable snapshot of provider records loaded from storage.
    reload() builds a fresh snapshot and swaps the reference; readers never see
    a partially built snapshot.
    """

    def __init__(self, source: ProviderRowSource, *, logger: EventLogger | None = None) -> None:
        self.source = source
        self.logger = logger or EventLogger()
        self._snapshot: ProviderSnapshot | None = None
        self._reload_lock = threading.Lock()

    def reload(self) -> ProviderSnapshot:
        with self._reload_lock:
            rows = self.source.fetch_rows()
            records: list[ProviderRecord] = []
            rejected: list[RejectedRecord] = []
            seen_names: set[str] = set()

            for row in rows:
                try:
                    record = decode_provider_row(row)
                except MalformedConfigError as exc:
                    rejected.append(
                        RejectedRecord(
                            record_id=exc.record_id if exc.record_id is not None else row.get("id"),
                            name=exc.name,
                            raw_value=exc.raw_value,
                            reason=exc.reason,
                        )
                    )
                    continue
                if record.name in seen_names:
                    rejected.append(
                        RejectedRecord(
                            record_id=record.id,
                            name=record.name,
                            raw_value=row.get("name"),
                            reason="duplicate provider name",
                        )
                    )
                    continue
                seen_names.add(record.name)
                records.append(record)

            snapshot = ProviderSnapshot(records=tuple(records), rejected=tuple(rejected))
            self._snapshot = snapshot

        for entry in snapshot.rejected:
            logger.warning(
                "rejected provider config id=%r name=%r: %s (raw=%r)",
                entry.record_id,
                entry.name,
                entry.reason,
                entry.raw_value,
            )
            self.logger.on_provider_config(
                "rejected",
                record_id=entry.record_id,
                name=entry.name,
                reason=entry.reason,
            )
        self.logger.on_provider_config(
            "loaded",
            loaded=len(snapshot.records),
            rejected=len(snapshot.rejected),
        )
        return snapshot

    def snapshot(self) -> ProviderSnapshot:
        current = self._snapshot
        if current is None:
            return self.reload()
        return current

    def load_all(self) -> tuple[ProviderRecord, ...]:
        return self.snapshot().records

    def load_by_name(self, name: str) -> ProviderRecord | None:
        row = self.source.fetch_row_by_name(name)
        if row is None:
            return None
        return decode_provider_row(row)

    def rejected(self) -> tuple[RejectedRecord, ...]:
        return self.snapshot().rejected


def _coerce_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if value is None:
        return True
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        return None
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_TEXT:
            return True
        if text in _FALSE_TEXT:
            return False
    return None


def _coerce_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
