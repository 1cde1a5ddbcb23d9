"""バッチ状態の永続化モジュール.

キー:
  price_checker_state — オーケストレータのスナップショット全体
  bulk_results        — 結果リストのみ（旧形式との互換用）
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from price_checker.config import STATE_BACKEND, STATE_FILE
from price_checker.models import ResultRecord, Snapshot

logger = logging.getLogger(__name__)

STATE_KEY = "price_checker_state"
LEGACY_RESULTS_KEY = "bulk_results"


class StateStore(Protocol):
    """スナップショットの保存先."""

    def save(self, snapshot: Snapshot) -> None: ...

    def load(self) -> Snapshot | None: ...

    def save_results(self, results: list[ResultRecord]) -> None: ...

    def load_results(self) -> list[ResultRecord]: ...


class JsonStateStore:
    """ローカルの JSON ファイルにキー単位で保存する."""

    def __init__(self, path: Path = STATE_FILE) -> None:
        self.path = Path(path)

    def save(self, snapshot: Snapshot) -> None:
        self._set(STATE_KEY, snapshot.to_dict())

    def load(self) -> Snapshot | None:
        data = self._read().get(STATE_KEY)
        if not data:
            return None
        return Snapshot.from_dict(data)

    def save_results(self, results: list[ResultRecord]) -> None:
        self._set(LEGACY_RESULTS_KEY, [r.to_dict() for r in results])

    def load_results(self) -> list[ResultRecord]:
        return [ResultRecord.from_dict(r) for r in self._read().get(LEGACY_RESULTS_KEY) or []]

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        return json.loads(self.path.read_text(encoding="utf-8"))

    def _set(self, key: str, value) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # 書き込み途中で落ちても既存ファイルを壊さないよう rename で置き換える
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise


def create_state_store(backend: str = STATE_BACKEND) -> StateStore:
    """設定に応じた保存先を返す."""
    if backend == "supabase":
        from price_checker.db import SupabaseStateStore

        return SupabaseStateStore()
    if backend == "file":
        return JsonStateStore()
    raise ValueError(f"未対応の STATE_BACKEND: {backend}")
