from __future__ import annotations

import argparse
import json
import os
from typing import Any

from pen_ai.hooks.security import mask_credential
from pen_ai.llm import (
    FileCredentialStore,
    MalformedConfigError,
    ProviderRoutingError,
    RoutingConfigError,
    normalize_base_urls,
)
from pen_ai.llm.client import AIService
from pen_ai.settings import Settings, build_service
from pen_ai.storage.sqlite import SqliteProviderStore

DEFAULT_PROVIDER_ROWS: list[dict[str, Any]] = [
    {
        "name": "openai",
        "base_urls": ["https://api.openai.com/v1"],
        "default_model": "gpt-4o-mini",
        "requires_auth": 1,
        "auth_header": "Authorization",
    },
    {
        "name": "deepseek",
        "base_urls": ["https://api.deepseek.com/v1"],
        "default_model": "deepseek-chat",
        "requires_auth": 1,
        "auth_header": "Authorization",
    },
    {
        "name": "qwen",
        "base_urls": ["https://api.tongyi.aliyun.com/v1"],
        "default_model": "qwen-plus",
        "requires_auth": 1,
        "auth_header": "Authorization",
    },
    {
        "name": "anthropic",
        "base_urls": ["https://api.anthropic.com/v1"],
        "default_model": "claude-3-opus-20240229",
        "requires_auth": 1,
        "auth_header": "x-api-key",
    },
]


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=True, indent=2, default=str))


def _settings_from_args(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env(os.environ)
    updates: dict[str, Any] = {}
    if args.db_path:
        updates["db_path"] = args.db_path
    if args.routes_path:
        updates["routes_path"] = args.routes_path
    return settings.model_copy(update=updates) if updates else settings


def _masked_headers(headers: dict[str, str], auth_header: str | None) -> dict[str, str]:
    masked: dict[str, str] = {}
    for key, value in headers.items():
        if auth_header and key.lower() == auth_header.lower():
            prefix = "Bearer " if value.startswith("Bearer ") else ""
            masked[key] = prefix + mask_credential(value[len(prefix):])
        else:
            masked[key] = value
    return masked


def _print_error(exc: Exception) -> int:
    _print_json({"ok": False, "error": type(exc).__name__, "detail": str(exc)})
    return 1


def _service_from_args(args: argparse.Namespace) -> AIService:
    # Bad routes files surface as ValueError (JSON or validation) or OSError.
    try:
        return build_service(_settings_from_args(args))
    except (ValueError, OSError) as exc:
        raise RoutingConfigError(f"invalid configuration: {exc}") from exc


def _credential_store_from_args(args: argparse.Namespace) -> FileCredentialStore:
    settings = _settings_from_args(args)
    if not settings.credentials_path:
        raise ValueError("PEN_AI_CREDENTIALS_PATH must be set to manage stored credentials")
    return FileCredentialStore(
        settings.credentials_path,
        workspace_root=settings.workspace_root,
        allow_workspace_path=settings.allow_workspace_credentials,
    )


def _cmd_list(args: argparse.Namespace) -> int:
    try:
        snapshot = _service_from_args(args).store.reload()
    except ProviderRoutingError as exc:
        return _print_error(exc)
    _print_json(
        {
            "loaded_at": snapshot.loaded_at.isoformat(),
            "providers": [record.model_dump(mode="json") for record in snapshot.records],
            "rejected": [
                {
                    "record_id": entry.record_id,
                    "name": entry.name,
                    "raw_value": entry.raw_value,
                    "reason": entry.reason,
                }
                for entry in snapshot.rejected
            ],
        }
    )
    return 0


def _cmd_parse_base_urls(args: argparse.Namespace) -> int:
    try:
        urls = normalize_base_urls(args.value)
    except MalformedConfigError as exc:
        _print_json({"ok": False, "reason": exc.reason, "raw_value": args.value})
        return 1
    _print_json({"ok": True, "base_urls": urls})
    return 0


def _cmd_resolve(args: argparse.Namespace) -> int:
    try:
        service = _service_from_args(args)
        decision = service.resolver.resolve(args.model, args.prompt)
    except ProviderRoutingError as exc:
        return _print_error(exc)
    record = service.store.snapshot().get(decision.provider)
    payload = decision.model_dump(mode="json")
    payload["headers"] = _masked_headers(decision.headers, record.auth_header if record else None)
    _print_json({"ok": True, "decision": payload})
    return 0


def _cmd_seed_defaults(args: argparse.Namespace) -> int:
    inserted: list[str] = []
    try:
        settings = _settings_from_args(args)
        store = SqliteProviderStore(settings.db_path, timeout_seconds=settings.storage_timeout_seconds)
        for row in DEFAULT_PROVIDER_ROWS:
            if store.has_provider(row["name"]):
                continue
            store.insert_row(**row)
            inserted.append(row["name"])
    except (ProviderRoutingError, ValueError) as exc:
        return _print_error(exc)
    _print_json({"db_path": str(store.db_path), "inserted": inserted})
    return 0


def _cmd_set_credential(args: argparse.Namespace) -> int:
    try:
        store = _credential_store_from_args(args)
        store.save_credential(args.name, args.api_key)
    except (ValueError, OSError) as exc:
        return _print_error(exc)
    _print_json({"ok": True, "provider": args.name, "api_key": mask_credential(args.api_key.strip())})
    return 0


def _cmd_delete_credential(args: argparse.Namespace) -> int:
    try:
        removed = _credential_store_from_args(args).delete_credential(args.name)
    except (ValueError, OSError) as exc:
        return _print_error(exc)
    _print_json({"ok": removed, "provider": args.name})
    return 0 if removed else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect and seed Pen AI provider configuration and credentials."
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="Provider database path (default: PEN_AI_DB_PATH or .pen_ai/providers.db).",
    )
    parser.add_argument(
        "--routes-path",
        default=None,
        help="JSON routing config overriding the built-in model prefix table.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="Load providers and show accepted/rejected rows.")
    list_parser.set_defaults(handler=_cmd_list)

    parse_parser = subparsers.add_parser(
        "parse-base-urls",
        help="Normalize a raw base_urls value the way the loader does.",
    )
    parse_parser.add_argument("value", help="Raw base_urls column value.")
    parse_parser.set_defaults(handler=_cmd_parse_base_urls)

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Show the routing decision for a model without calling the provider.",
    )
    resolve_parser.add_argument("model", help="Model identifier, e.g. gpt-4o-mini.")
    resolve_parser.add_argument("--prompt", default="", help="Prompt placed into the request body.")
    resolve_parser.set_defaults(handler=_cmd_resolve)

    seed_parser = subparsers.add_parser(
        "seed-defaults",
        help="Insert the built-in provider rows that are missing from the database.",
    )
    seed_parser.set_defaults(handler=_cmd_seed_defaults)

    set_parser = subparsers.add_parser(
        "set-credential",
        help="Store an API key in the credential file (PEN_AI_CREDENTIALS_PATH).",
    )
    set_parser.add_argument("name", help="Provider name, e.g. openai.")
    set_parser.add_argument("--api-key", required=True, help="API key to store.")
    set_parser.set_defaults(handler=_cmd_set_credential)

    delete_parser = subparsers.add_parser(
        "delete-credential",
        help="Remove a stored API key from the credential file.",
    )
    delete_parser.add_argument("name", help="Provider name, e.g. openai.")
    delete_parser.set_defaults(handler=_cmd_delete_credential)
    return parser


def run(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    return args.handler(args)


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
