"""価格チェッカー — メインエントリーポイント.

処理フロー:
  1. 入力ファイルから商品 URL（と参照価格）を読み込む
  2. バッチを開始し、1 件ずつ取得・解析・保存する
  3. Ctrl+C で一時停止。resume で保存済みの状態から再開する
  4. export で TSV / CSV / HTML を書き出す
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import time
from datetime import datetime
from pathlib import Path

from price_checker.batch import AutoSaver, BatchOrchestrator, BatchState
from price_checker.config import LOG_DIR
from price_checker.errors import BatchStateError, ValidationError
from price_checker.inputs import (
    parse_csv_import,
    parse_grid_paste,
    parse_simple_input,
    parse_spreadsheet_rows,
)
from price_checker.models import BatchStats, ResultRecord
from price_checker.report import csv_filename, to_clipboard_text, to_csv, to_html_report
from price_checker.scraper import HttpFetcher
from price_checker.state import create_state_store

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """ロギングの初期設定."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / f"checker_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def _log_progress(record: ResultRecord, stats: BatchStats) -> None:
    pct = stats.processed / stats.total * 100 if stats.total else 0
    logger.info("進捗: %d / %d (%.0f%%) 成功=%d 失敗=%d ブロック=%d",
                stats.processed, stats.total, pct,
                stats.success, stats.failed, stats.blocked)


def _drive(orchestrator: BatchOrchestrator, action) -> BatchState:
    """Ctrl+C を一時停止要求に置き換えて action を実行する."""
    previous = signal.signal(signal.SIGINT, lambda signum, frame: orchestrator.pause())
    try:
        with AutoSaver(orchestrator):
            return action()
    finally:
        signal.signal(signal.SIGINT, previous)


def _read_products(path: Path, mode: str):
    """入力ファイルを読み、(商品リスト, 入力モード, 入力テキスト, 行データ) を返す."""
    text = path.read_text(encoding="utf-8")
    if mode == "simple":
        return parse_simple_input(text), "simple", text, []

    rows = parse_csv_import(text) if mode == "csv" else parse_grid_paste(text)
    return parse_spreadsheet_rows(rows), "spreadsheet", "", rows


def cmd_check(args: argparse.Namespace) -> int:
    store = create_state_store()
    orchestrator = BatchOrchestrator(HttpFetcher(), store, on_progress=_log_progress)

    products, input_mode, input_text, rows = _read_products(Path(args.file), args.mode)
    try:
        orchestrator.start(
            products,
            input_mode=input_mode,
            input_text=input_text,
            spreadsheet_data=rows,
        )
    except ValidationError as e:
        logger.error("入力エラー: %s", e)
        return 2

    start_time = time.time()
    state = _drive(orchestrator, orchestrator.run)
    _log_summary(orchestrator, state, time.time() - start_time)
    return 0


def cmd_resume(args: argparse.Namespace) -> int:
    store = create_state_store()
    snapshot = store.load()
    if snapshot is None:
        logger.warning("保存済みのバッチがありません。")
        return 1

    orchestrator = BatchOrchestrator(HttpFetcher(), store, on_progress=_log_progress)
    orchestrator.restore(snapshot)
    if orchestrator.state is not BatchState.PAUSED:
        logger.info("未処理の商品はありません (%s)", orchestrator.state.value)
        return 0

    start_time = time.time()
    try:
        state = _drive(orchestrator, orchestrator.resume)
    except BatchStateError as e:
        logger.error("%s", e)
        return 1
    _log_summary(orchestrator, state, time.time() - start_time)
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    snapshot = create_state_store().load()
    if snapshot is None:
        logger.warning("保存済みのバッチがありません。")
        return 1

    stats, enhanced = snapshot.stats, snapshot.enhanced_stats
    logger.info("処理済み: %d / %d (成功 %d, 失敗 %d, ブロック %d)",
                stats.processed, stats.total, stats.success, stats.failed, stats.blocked)
    logger.info("在庫切れ %d, 配送遅延 %d, 値上がり %d, 在庫僅少 %d",
                enhanced.out_of_stock, enhanced.late_delivery,
                enhanced.price_increased, enhanced.low_stock)
    logger.info("未処理: %d 件", len(snapshot.pending_urls))
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    snapshot = create_state_store().load()
    if snapshot is None:
        logger.warning("保存済みのバッチがありません。")
        return 1

    now = datetime.now()
    if not (args.csv or args.tsv or args.html):
        args.csv = csv_filename(now.date())

    if args.csv:
        Path(args.csv).write_text(to_csv(snapshot.results), encoding="utf-8")
        logger.info("CSV 出力: %s", args.csv)
    if args.tsv:
        Path(args.tsv).write_text(to_clipboard_text(snapshot.results, now), encoding="utf-8")
        logger.info("TSV 出力: %s", args.tsv)
    if args.html:
        Path(args.html).write_text(to_html_report(snapshot, now), encoding="utf-8")
        logger.info("HTML 出力: %s", args.html)
    return 0


def _log_summary(orchestrator: BatchOrchestrator, state: BatchState, elapsed: float) -> None:
    stats = orchestrator.snapshot().stats
    if state is BatchState.PAUSED:
        logger.info("=== 一時停止 === resume で再開できます")
    else:
        logger.info("=== 価格チェック 完了 ===")
    logger.info("処理: %d / %d 件, 成功: %d, 失敗: %d, ブロック: %d, 所要時間: %.1f 秒",
                stats.processed, stats.total, stats.success, stats.failed,
                stats.blocked, elapsed)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="price-checker", description="Amazon 商品の価格チェック")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="新しいバッチを開始する")
    check.add_argument("file", help="URL リスト / 貼り付けデータ / CSV")
    check.add_argument("--mode", choices=["simple", "grid", "csv"], default="simple")
    check.set_defaults(func=cmd_check)

    resume = sub.add_parser("resume", help="保存済みのバッチを再開する")
    resume.set_defaults(func=cmd_resume)

    status = sub.add_parser("status", help="保存済みのバッチの集計を表示する")
    status.set_defaults(func=cmd_status)

    export = sub.add_parser("export", help="結果を書き出す")
    export.add_argument("--csv")
    export.add_argument("--tsv")
    export.add_argument("--html")
    export.set_defaults(func=cmd_export)

    return parser


def run(argv: list[str] | None = None) -> int:
    """メイン処理."""
    setup_logging()
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(run())
