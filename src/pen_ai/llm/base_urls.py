"""Normalization of the stored ``base_urls`` column.

Rows written over time hold clean JSON arrays, JSON maps (``{"completion": url}``)
and hand-edited pseudo arrays such as ``[" `https://a.com/v1` ", ...]``. Every
shape is reduced to an ordered list of plain URL strings here, so storage code
never has to look at the raw value.
"""

from __future__ import annotations

import json
import re
from typing import Any

from .errors import MalformedConfigError

# Free-text recovery stops at brackets so pseudo-array punctuation is not captured.
URL_PATTERN = re.compile(r"https?://[^\s\"'`<>\[\]{}]+", re.IGNORECASE)
# Structured elements may hold IPv6 literals or templated hosts.
CLEAN_URL_PATTERN = re.compile(r"^https?://[^\s\"'`]+$", re.IGNORECASE)
_TRAILING_PUNCTUATION = ",;"


def normalize_base_urls(value: Any) -> list[str]:
    """Return the URLs held by ``value`` in stored order.

    Raises ``MalformedConfigError`` when nothing URL-like can be recovered.
    """
    if value is None:
        raise MalformedConfigError("base_urls is empty", raw_value=value)

    if isinstance(value, (bytes, bytearray)):
        try:
            value = bytes(value).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedConfigError("base_urls is not valid utf-8", raw_value=value) from exc

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise MalformedConfigError("base_urls is empty", raw_value=value)
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            return _recover(text, raw_value=value)
        if isinstance(parsed, (list, dict)):
            return _from_structure(parsed, raw_value=value)
        return _recover(str(parsed), raw_value=value)

    if isinstance(value, (list, tuple, dict)):
        return _from_structure(value, raw_value=value)

    raise MalformedConfigError(
        f"unsupported base_urls type: {type(value).__name__}",
        raw_value=value,
    )


def extract_urls(text: str) -> list[str]:
    urls: list[str] = []
    for match in URL_PATTERN.findall(text):
        url = match.rstrip(_TRAILING_PUNCTUATION)
        if url and url not in urls:
            urls.append(url)
    return urls


def _from_structure(value: list | tuple | dict, *, raw_value: Any) -> list[str]:
    items = list(value.values()) if isinstance(value, dict) else list(value)
    if not items:
        raise MalformedConfigError("base_urls holds no entries", raw_value=raw_value)

    if all(isinstance(item, str) and CLEAN_URL_PATTERN.match(item) for item in items):
        return list(items)

    # Decorated entries: recover from every element, keeping element order.
    return _recover(" ".join(_flatten_text(item) for item in items), raw_value=raw_value)


def _flatten_text(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return " ".join(_flatten_text(value) for value in item.values())
    if isinstance(item, (list, tuple)):
        return " ".join(_flatten_text(value) for value in item)
    return str(item)


def _recover(text: str, *, raw_value: Any) -> list[str]:
    urls = extract_urls(text)
    if not urls:
        raise MalformedConfigError("no URL could be recovered from base_urls", raw_value=raw_value)
    return urls
