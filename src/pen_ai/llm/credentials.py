from __future__ import annotations

import json
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Protocol


class CredentialStore(Protocol):
    def get_credential(self, provider_name: str) -> str | None: ...


def credential_env_var(provider_name: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", provider_name.strip()).strip("_").upper()
    return f"{slug}_API_KEY"


class EnvCredentialStore:
    """Reads provider keys from ``<PROVIDER>_API_KEY`` variables (e.g. ``OPENAI_API_KEY``)."""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        *,
        overrides: Mapping[str, str] | None = None,
    ) -> None:
        self.environ = environ if environ is not None else os.environ
        self.overrides = dict(overrides or {})

    def get_credential(self, provider_name: str) -> str | None:
        env_name = self.overrides.get(provider_name) or credential_env_var(provider_name)
        value = self.environ.get(env_name)
        if value is None:
            return None
        return value.strip() or None


class FileCredentialStore:
    """Provider keys kept in one JSON document outside the workspace.

    Layout: ``{"providers": {"openai": {"api_key": "...", "updated_at": "..."}}}``.
    Writes replace the whole document atomically (temp file + ``os.replace``).
    """

    def __init__(
        self,
        path: str,
        *,
        workspace_root: str = ".",
        allow_workspace_path: bool = False,
    ) -> None:
        self.path = Path(path).expanduser().resolve()
        if not allow_workspace_path:
            _ensure_outside_workspace(self.path, Path(workspace_root).expanduser().resolve())

    def get_credential(self, provider_name: str) -> str | None:
        entry = self._load().get(provider_name.strip())
        if entry is None:
            return None
        return str(entry.get("api_key") or "").strip() or None

    def save_credential(self, provider_name: str, secret: str) -> None:
        name = provider_name.strip()
        if not name or not secret.strip():
            raise ValueError("provider name and secret must not be blank")
        entries = self._load()
        entries[name] = {
            "api_key": secret.strip(),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        self._store(entries)

    def delete_credential(self, provider_name: str) -> bool:
        entries = self._load()
        if entries.pop(provider_name.strip(), None) is None:
            return False
        self._store(entries)
        return True

    def _load(self) -> dict[str, dict[str, Any]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        if not raw.strip():
            return {}
        document = json.loads(raw)
        providers = document.get("providers") if isinstance(document, dict) else None
        if not isinstance(providers, dict):
            raise ValueError(f"credential file has no 'providers' object: {self.path}")
        return {
            str(name): entry for name, entry in providers.items() if isinstance(entry, dict)
        }

    def _store(self, entries: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".credentials-", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump({"providers": entries}, handle, ensure_ascii=True, indent=2, sort_keys=True)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _ensure_outside_workspace(path: Path, workspace: Path) -> None:
    if path.is_relative_to(workspace):
        raise ValueError(
            f"Credential path must be outside workspace: {path} (workspace: {workspace})"
        )
