from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from pen_ai.storage.sqlite import SqliteProviderStore


def seed_providers(store: SqliteProviderStore) -> None:
    store.insert_row(
        name="openai",
        base_urls='[" `https://openaiss.com/v1` ", " `https://openaiss.com` ", " `https://api.openai.com/v1` "]',
        default_model="gpt-4o-mini",
        requires_auth=1,
        auth_header="Authorization",
    )
    store.insert_row(
        name="deepseek",
        base_urls=["https://api.deepseek.com/v1"],
        default_model="deepseek-chat",
        requires_auth=1,
        auth_header="Authorization",
    )
    store.insert_row(
        name="qwen",
        base_urls={"completion": "https://api.tongyi.aliyun.com/v1/chat/completions"},
        default_model="qwen-plus",
        requires_auth=0,
        auth_header=None,
    )
    store.insert_row(
        name="anthropic",
        base_urls=["https://api.anthropic.com/v1"],
        default_model="claude-3-opus-20240229",
        requires_auth=1,
        auth_header="x-api-key",
    )
    store.insert_row(
        name="broken",
        base_urls="",
        default_model="broken-model",
    )


@pytest.fixture
def provider_db(tmp_path: Path) -> Path:
    db_path = tmp_path / "providers.db"
    seed_providers(SqliteProviderStore(str(db_path)))
    return db_path
