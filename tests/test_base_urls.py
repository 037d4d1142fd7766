import json

import pytest

from pen_ai.llm.base_urls import extract_urls, normalize_base_urls
from pen_ai.llm.errors import MalformedConfigError


def test_clean_json_array_is_returned_unchanged() -> None:
    urls = ["https://openaiss.com/v1", "https://openaiss.com", "https://api.openai.com/v1"]
    assert normalize_base_urls(json.dumps(urls)) == urls


@pytest.mark.parametrize(
    "urls",
    [
        ["http://[::1]:8080/v1"],
        ["https://{your-resource-name}.openai.azure.com/openai/deployments/{deployment-id}"],
        ["http://localhost:11434/v1", "https://proxy.example.com/v1?region=eu&tier=2"],
        ["https://[2001:db8::1]/v1", "https://api.example.com:8443/v1#chat"],
    ],
)
def test_well_formed_arrays_with_unusual_urls_are_unchanged(urls: list[str]) -> None:
    assert normalize_base_urls(json.dumps(urls)) == urls
    assert normalize_base_urls(urls) == urls


def test_native_list_is_used_directly() -> None:
    urls = ["https://b.example.com/v1", "https://a.example.com/v1"]
    assert normalize_base_urls(urls) == urls


def test_backtick_decorated_array_is_recovered() -> None:
    raw = '[" `https://a.com/v1` ", " `https://a.com` "]'
    assert normalize_base_urls(raw) == ["https://a.com/v1", "https://a.com"]


def test_stored_row_with_three_decorated_urls() -> None:
    raw = '[" `https://openaiss.com/v1` ", " `https://openaiss.com` ", " `https://api.openai.com/v1` "]'
    assert normalize_base_urls(raw) == [
        "https://openaiss.com/v1",
        "https://openaiss.com",
        "https://api.openai.com/v1",
    ]


def test_recovery_removes_duplicates_keeping_first_seen_order() -> None:
    raw = '[" `https://b.com` ", "`https://a.com`", " `https://b.com` "]'
    assert normalize_base_urls(raw) == ["https://b.com", "https://a.com"]


def test_map_values_are_used_in_order() -> None:
    raw = '{"completion": "https://api.openai.com/v1/chat/completions", "fallback": "https://proxy.example.com/v1"}'
    assert normalize_base_urls(raw) == [
        "https://api.openai.com/v1/chat/completions",
        "https://proxy.example.com/v1",
    ]
    assert normalize_base_urls({"completion": "https://a.com"}) == ["https://a.com"]


def test_unparseable_pseudo_array_is_recovered() -> None:
    raw = "[https://a.com/v1, 'https://b.com/v1']"
    assert normalize_base_urls(raw) == ["https://a.com/v1", "https://b.com/v1"]


def test_plain_url_text_and_bytes() -> None:
    assert normalize_base_urls("  https://api.deepseek.com/v1  ") == ["https://api.deepseek.com/v1"]
    assert normalize_base_urls(b'["https://a.com"]') == ["https://a.com"]


@pytest.mark.parametrize("raw", [None, "", "   ", "[]", "{}", "not a url", '["ftp://files.example.com"]', 42])
def test_unrecoverable_values_raise(raw: object) -> None:
    with pytest.raises(MalformedConfigError) as exc_info:
        normalize_base_urls(raw)
    assert exc_info.value.reason
    assert exc_info.value.raw_value == raw


def test_extract_urls_trims_trailing_separators() -> None:
    assert extract_urls("see https://a.com/v1; and https://b.com,") == ["https://a.com/v1", "https://b.com"]
