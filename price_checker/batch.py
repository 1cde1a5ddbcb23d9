"""バッチ処理のオーケストレーションモジュール.

処理フロー（1 商品ごと）:
  1. 結果レコードを processing にする
  2. ページ取得 → 項目抽出 → 価格比較
  3. 終了状態（success / blocked / error）を設定し、集計を更新
  4. スナップショットを保存
  5. 次の商品まで 1〜3 秒ランダムに待機（一時停止中は待たない）

状態遷移:
  idle → running → paused / completed
  paused → running（resume）

商品は 1 件ずつ順番に処理する。一時停止は商品の境目でのみ効き、
処理中の商品は最後まで実行される。
"""

from __future__ import annotations

import copy
import logging
import random
import threading
import time
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Protocol

from price_checker.analysis import analyze_price_change, compute_enhanced_stats
from price_checker.config import AUTOSAVE_INTERVAL, REQUEST_INTERVAL_MAX, REQUEST_INTERVAL_MIN
from price_checker.errors import (
    BatchStateError,
    BlockedError,
    StructuralParseError,
    TransportError,
)
from price_checker.extractor import FETCHED_PAGE_PROFILE, ExtractionProfile, parse_product_page
from price_checker.inputs import build_product_requests
from price_checker.models import (
    BatchStats,
    EnhancedStats,
    FetchedPage,
    ProductRequest,
    ResultRecord,
    ResultStatus,
    Snapshot,
)
from price_checker.state import StateStore

logger = logging.getLogger(__name__)

TRANSPORT_ERROR_MESSAGE = "Failed to fetch product data"
UNEXPECTED_ERROR_MESSAGE = "Processing failed"


class Fetcher(Protocol):
    def fetch_html(self, url: str) -> FetchedPage: ...


class BatchState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class PauseToken:
    """協調的な一時停止フラグ. 待機中でも一時停止要求で即座に起きる."""

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def paused(self) -> bool:
        return self._event.is_set()

    def request_pause(self) -> None:
        self._event.set()

    def clear(self) -> None:
        self._event.clear()

    def wait(self, seconds: float) -> bool:
        """最大 seconds 秒待機する. 一時停止が要求されたら True を返す."""
        return self._event.wait(timeout=max(0.0, seconds))


class BatchOrchestrator:
    """商品リストを順番に取得・解析し、結果と集計を保持する.

    結果レコードと集計はこのクラスだけが更新する。外部には snapshot() で
    独立したコピーを渡す。
    """

    def __init__(
        self,
        fetcher: Fetcher,
        store: StateStore,
        *,
        clock: Callable[[], datetime] = datetime.now,
        interval: tuple[float, float] = (REQUEST_INTERVAL_MIN, REQUEST_INTERVAL_MAX),
        profile: ExtractionProfile = FETCHED_PAGE_PROFILE,
        on_progress: Callable[[ResultRecord, BatchStats], None] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._clock = clock
        self._interval = interval
        self._profile = profile
        self._on_progress = on_progress

        self._lock = threading.RLock()
        # スナップショット取得から書き込み完了までを直列化する
        self._save_lock = threading.Lock()
        self._token = PauseToken()
        self._state = BatchState.IDLE
        # 配送日数の基準時刻. start / resume 時点で固定し、バッチ中は更新しない
        self._reference_now = clock()

        self._results: list[ResultRecord] = []
        self._stats = BatchStats()
        self._enhanced_stats = EnhancedStats()
        self._input_mode = "simple"
        self._input_text = ""
        self._spreadsheet_data: list[dict] = []

    @property
    def state(self) -> BatchState:
        return self._state

    @property
    def reference_now(self) -> datetime:
        return self._reference_now

    def start(
        self,
        products: list[ProductRequest],
        *,
        input_mode: str = "simple",
        input_text: str = "",
        spreadsheet_data: list[dict] | None = None,
    ) -> None:
        """新しいバッチを準備する. 処理ループは run() で開始する.

        Raises:
            ValidationError: 商品が 0 件または上限超過
            BatchStateError: 実行中のバッチがある
        """
        if self._state is BatchState.RUNNING:
            raise BatchStateError("バッチ実行中は新しいバッチを開始できません")
        products = build_product_requests(products)

        with self._lock:
            self._results = [
                ResultRecord(id=f"product-{i}", url=p.url, saved_price=p.saved_price)
                for i, p in enumerate(products)
            ]
            self._stats = BatchStats(total=len(products))
            self._enhanced_stats = EnhancedStats()
            self._input_mode = input_mode
            self._input_text = input_text
            self._spreadsheet_data = [dict(row) for row in spreadsheet_data or []]
            self._reference_now = self._clock()
            self._token.clear()
            self._state = BatchState.RUNNING

        logger.info("バッチ開始: %d 件", len(products))
        self.save()

    def run(self) -> BatchState:
        """pending の商品を順番に処理する. 一時停止か全件完了で戻る."""
        if self._state is not BatchState.RUNNING:
            raise BatchStateError(f"バッチが実行状態ではありません: {self._state.value}")

        records = list(self._results)
        for i, record in enumerate(records):
            if self._token.paused:
                break
            if record.status is not ResultStatus.PENDING:
                continue

            self._step(record)

            has_more = any(r.status is ResultStatus.PENDING for r in records[i + 1:])
            if has_more and not self._token.paused:
                self._token.wait(self._next_interval())

        with self._lock:
            if self._token.paused and self._has_pending():
                self._state = BatchState.PAUSED
                logger.info("バッチ一時停止: %d / %d 件処理済み",
                            self._stats.processed, self._stats.total)
            else:
                self._state = BatchState.COMPLETED
                logger.info(
                    "バッチ完了: 成功 %d 件, ブロック %d 件, 失敗 %d 件",
                    self._stats.success, self._stats.blocked, self._stats.failed,
                )
        self.save()
        if self._state is BatchState.COMPLETED:
            self._save_legacy_results()
        return self._state

    def pause(self) -> None:
        """次の商品に進む前に止まるよう要求する. 処理中の商品は最後まで実行される."""
        logger.info("一時停止を要求")
        self._token.request_pause()

    def resume(self) -> BatchState:
        """一時停止したバッチを再開し、残りの pending 商品を処理する."""
        if self._state is not BatchState.PAUSED:
            raise BatchStateError(f"一時停止中ではありません: {self._state.value}")
        with self._lock:
            self._token.clear()
            self._reference_now = self._clock()
            self._state = BatchState.RUNNING
        logger.info("バッチ再開: 残り %d 件", len(self._pending_urls()))
        self.save()
        return self.run()

    def restore(self, snapshot: Snapshot) -> None:
        """保存済みスナップショットから状態を復元する.

        processing のまま保存されたレコードは処理が完了していないため pending に戻す。
        """
        if self._state is BatchState.RUNNING:
            raise BatchStateError("バッチ実行中は復元できません")

        snapshot = copy.deepcopy(snapshot)
        with self._lock:
            for record in snapshot.results:
                if record.status is ResultStatus.PROCESSING:
                    record.status = ResultStatus.PENDING
            self._results = snapshot.results
            self._stats = snapshot.stats
            self._enhanced_stats = snapshot.enhanced_stats
            self._input_mode = snapshot.input_mode
            self._input_text = snapshot.input_text
            self._spreadsheet_data = snapshot.spreadsheet_data
            self._token.clear()

            if not self._results:
                self._state = BatchState.IDLE
            elif self._has_pending():
                self._state = BatchState.PAUSED
            else:
                self._state = BatchState.COMPLETED

        logger.info("状態を復元: %d 件中 %d 件処理済み (%s)",
                    self._stats.total, self._stats.processed, self._state.value)

    def snapshot(self) -> Snapshot:
        """現在の状態の独立したコピーを返す."""
        with self._lock:
            return copy.deepcopy(Snapshot(
                results=self._results,
                stats=self._stats,
                enhanced_stats=self._enhanced_stats,
                is_processing=self._state is BatchState.RUNNING,
                input_mode=self._input_mode,
                input_text=self._input_text,
                spreadsheet_data=self._spreadsheet_data,
                pending_urls=self._pending_urls(),
                timestamp=int(time.time() * 1000),
            ))

    def save(self) -> None:
        """スナップショットを保存する. 失敗してもメモリ上の状態を正とし、処理は続ける."""
        with self._save_lock:
            self._write_snapshot()

    def save_if_running(self) -> None:
        """実行中の場合だけ保存する. 定期保存用."""
        with self._save_lock:
            if self._state is BatchState.RUNNING:
                self._write_snapshot()

    def _write_snapshot(self) -> None:
        # 呼び出し側で _save_lock を保持していること
        try:
            self._store.save(self.snapshot())
        except Exception:
            logger.exception("状態の保存に失敗しました")

    def _step(self, record: ResultRecord) -> None:
        """1 商品を処理する. 例外はすべて結果レコードに記録する."""
        with self._lock:
            record.transition(ResultStatus.PROCESSING)
        logger.info("取得中: %s", record.url)

        status = ResultStatus.SUCCESS
        error_message = None
        fields = None
        try:
            page = self._fetcher.fetch_html(record.url)
            fields = parse_product_page(page.html, self._reference_now, self._profile)
        except BlockedError as e:
            status, error_message = ResultStatus.BLOCKED, str(e)
        except StructuralParseError as e:
            status, error_message = ResultStatus.ERROR, str(e)
        except TransportError as e:
            logger.warning("取得失敗: url=%s, error=%s", record.url, e)
            status, error_message = ResultStatus.ERROR, TRANSPORT_ERROR_MESSAGE
        except Exception:
            logger.exception("処理失敗: url=%s", record.url)
            status, error_message = ResultStatus.ERROR, UNEXPECTED_ERROR_MESSAGE

        with self._lock:
            if fields is not None:
                analysis = analyze_price_change(record.saved_price, fields.price)
                record.current_price = analysis.current_price
                record.price_change = analysis.price_change
                record.price_change_percent = analysis.price_change_percent
                record.availability = fields.availability
                record.delivery_date = fields.delivery_date
                record.title = fields.title
            record.error_message = error_message
            record.transition(status)

            self._stats.processed += 1
            if status is ResultStatus.SUCCESS:
                self._stats.success += 1
            elif status is ResultStatus.BLOCKED:
                self._stats.blocked += 1
            else:
                self._stats.failed += 1
            self._enhanced_stats = compute_enhanced_stats(self._results, self._reference_now)

            progress = (copy.deepcopy(record), copy.deepcopy(self._stats))

        logger.info("  %s → %s (%d / %d)", record.url, status.value,
                    self._stats.processed, self._stats.total)
        self.save()
        if self._on_progress is not None:
            self._on_progress(*progress)

    def _next_interval(self) -> float:
        low, high = self._interval
        return low + random.random() * (high - low)

    def _has_pending(self) -> bool:
        return any(r.status is ResultStatus.PENDING for r in self._results)

    def _pending_urls(self) -> list[dict]:
        return [
            {"url": r.url, "saved_price": r.saved_price}
            for r in self._results
            if r.status in (ResultStatus.PENDING, ResultStatus.PROCESSING)
        ]

    def _save_legacy_results(self) -> None:
        with self._save_lock:
            try:
                self._store.save_results(self.snapshot().results)
            except Exception:
                logger.exception("結果一覧の保存に失敗しました")


class AutoSaver:
    """実行中のオーケストレータを一定間隔で保存するバックグラウンドスレッド."""

    def __init__(self, orchestrator: BatchOrchestrator, interval: float = AUTOSAVE_INTERVAL) -> None:
        self._orchestrator = orchestrator
        self._interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, name="autosave", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        self._thread.join()

    def __enter__(self) -> AutoSaver:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            self._orchestrator.save_if_running()
