from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from .errors import ResponseParseError
from .models import Dialect


@dataclass(frozen=True)
class ChatPayload:
    model: str
    prompt: str
    system_prompt: str
    temperature: float
    max_tokens: int
    user: str | None = None


@dataclass(frozen=True)
class DialectTemplate:
    dialect: Dialect
    path_suffix: str
    build_body: Callable[[ChatPayload], dict[str, Any]]
    parse_response: Callable[[Any], str]
    extra_headers: dict[str, str] = field(default_factory=dict)

    def endpoint_for(self, base_url: str) -> str:
        base = base_url.strip().rstrip("/")
        if base.endswith(self.path_suffix):
            return base
        return f"{base}{self.path_suffix}"


def _chat_completions_body(payload: ChatPayload, *, include_user: bool) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": payload.model,
        "messages": [
            {"role": "system", "content": payload.system_prompt},
            {"role": "user", "content": payload.prompt},
        ],
        "temperature": payload.temperature,
        "max_tokens": payload.max_tokens,
    }
    if include_user and payload.user:
        body["user"] = payload.user
    return body


def _anthropic_messages_body(payload: ChatPayload) -> dict[str, Any]:
    return {
        "model": payload.model,
        "system": payload.system_prompt,
        "messages": [{"role": "user", "content": payload.prompt}],
        "temperature": payload.temperature,
        "max_tokens": payload.max_tokens,
    }


def parse_chat_completion(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise ResponseParseError("chat completion response is not a JSON object")
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ResponseParseError("chat completion response has no choices")
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise ResponseParseError("chat completion response has no message content")
    return content


def parse_anthropic_message(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise ResponseParseError("messages response is not a JSON object")
    content = payload.get("content")
    if not isinstance(content, list):
        raise ResponseParseError("messages response has no content blocks")
    for block in content:
        if isinstance(block, dict) and block.get("type", "text") == "text":
            text = block.get("text")
            if isinstance(text, str):
                return text
    raise ResponseParseError("messages response has no text block")


DIALECT_TEMPLATES: dict[Dialect, DialectTemplate] = {
    Dialect.OPENAI_CHAT: DialectTemplate(
        dialect=Dialect.OPENAI_CHAT,
        path_suffix="/chat/completions",
        build_body=lambda payload: _chat_completions_body(payload, include_user=True),
        parse_response=parse_chat_completion,
    ),
    Dialect.DEEPSEEK_CHAT: DialectTemplate(
        dialect=Dialect.DEEPSEEK_CHAT,
        path_suffix="/chat/completions",
        build_body=lambda payload: _chat_completions_body(payload, include_user=False),
        parse_response=parse_chat_completion,
    ),
    Dialect.QWEN_CHAT: DialectTemplate(
        dialect=Dialect.QWEN_CHAT,
        path_suffix="/chat/completions",
        build_body=lambda payload: _chat_completions_body(payload, include_user=False),
        parse_response=parse_chat_completion,
    ),
    Dialect.ANTHROPIC_MESSAGES: DialectTemplate(
        dialect=Dialect.ANTHROPIC_MESSAGES,
        path_suffix="/messages",
        build_body=_anthropic_messages_body,
        parse_response=parse_anthropic_message,
        extra_headers={"anthropic-version": "2023-06-01"},
    ),
}


def template_for(dialect: Dialect) -> DialectTemplate:
    return DIALECT_TEMPLATES[dialect]


def build_auth_headers(auth_header: str, secret: str) -> dict[str, str]:
    key = secret.strip()
    if auth_header.lower() == "authorization":
        return {auth_header: f"Bearer {key}"}
    return {auth_header: key}
