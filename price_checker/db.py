"""Supabase によるバッチ状態の永続化モジュール.

全テーブルは price_checker スキーマに配置。
checker_state テーブルは key（主キー）と value（jsonb）の 2 列。
"""

from __future__ import annotations

import logging
from functools import lru_cache

from supabase import create_client

from price_checker.config import SUPABASE_SCHEMA, SUPABASE_SECRET_KEY, SUPABASE_URL
from price_checker.models import ResultRecord, Snapshot
from price_checker.state import LEGACY_RESULTS_KEY, STATE_KEY

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _client():
    if not SUPABASE_URL or not SUPABASE_SECRET_KEY:
        raise RuntimeError("SUPABASE_URL / SUPABASE_SECRET_KEY が未設定です")
    return create_client(SUPABASE_URL, SUPABASE_SECRET_KEY)


def _table(name: str):
    """price_checker スキーマのテーブルを参照する."""
    return _client().schema(SUPABASE_SCHEMA).table(name)


def get_value(key: str):
    """checker_state から key の値を取得する. なければ None."""
    resp = _table("checker_state").select("value").eq("key", key).limit(1).execute()
    if not resp.data:
        return None
    return resp.data[0].get("value")


def upsert_value(key: str, value) -> None:
    """checker_state の key に値を書き込む（上書き）."""
    _table("checker_state").upsert({"key": key, "value": value}).execute()
    logger.debug("checker_state を更新: key=%s", key)


class SupabaseStateStore:
    """checker_state テーブルにスナップショットを保存する."""

    def save(self, snapshot: Snapshot) -> None:
        upsert_value(STATE_KEY, snapshot.to_dict())

    def load(self) -> Snapshot | None:
        data = get_value(STATE_KEY)
        if not data:
            return None
        return Snapshot.from_dict(data)

    def save_results(self, results: list[ResultRecord]) -> None:
        upsert_value(LEGACY_RESULTS_KEY, [r.to_dict() for r in results])

    def load_results(self) -> list[ResultRecord]:
        return [ResultRecord.from_dict(r) for r in get_value(LEGACY_RESULTS_KEY) or []]
