"""価格比較と派生シグナル判定のモジュール.

判定関数はすべて純粋関数。None や "N/A" に対しては False を返す。
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta

from price_checker.config import (
    LATE_DELIVERY_DAYS,
    LOW_STOCK_THRESHOLD,
    PRICE_INCREASE_PERCENT,
)
from price_checker.models import EnhancedStats, PriceAnalysis, ResultRecord, ResultStatus

_PRICE_NUMBER = re.compile(r"[\d.,]+")
_STOCK_COUNT = re.compile(r"(\d+)\s*(left|remaining|in stock)")

_OUT_OF_STOCK_PHRASES = (
    "unavailable",
    "out of stock",
    "currently unavailable",
    "not available",
)

NOT_AVAILABLE = "N/A"


def parse_price(price_str: str | None) -> float | None:
    """価格文字列から数値を取り出す. カンマは桁区切りとして除去する."""
    if not price_str:
        return None
    match = _PRICE_NUMBER.search(price_str)
    if not match:
        return None
    try:
        return float(match.group(0).replace(",", ""))
    except ValueError:
        # "." だけ等
        return None


def analyze_price_change(saved_price: float | None, current_price_str: str | None) -> PriceAnalysis:
    """参照価格と取得価格を比較する.

    参照価格が 0 の場合は変化率を定義できないため、変化額・変化率とも None とする。
    """
    current = parse_price(current_price_str)
    if saved_price is None or current is None or saved_price == 0:
        return PriceAnalysis(
            current_price=current_price_str,
            price_change=None,
            price_change_percent=None,
        )

    change = current - saved_price
    return PriceAnalysis(
        current_price=current_price_str,
        price_change=change,
        price_change_percent=change * 100 / saved_price,
    )


def _usable(text: str | None) -> bool:
    return bool(text) and text != NOT_AVAILABLE


def is_out_of_stock(availability: str | None) -> bool:
    if not _usable(availability):
        return False
    lower = availability.lower()
    return any(phrase in lower for phrase in _OUT_OF_STOCK_PHRASES)


def is_low_stock(availability: str | None) -> bool:
    """在庫僅少か判定する.

    "5 left in stock" / "Only 3 remaining" のように個数があればしきい値で判定し、
    個数がなければ "only" と "left"/"remaining" の組み合わせで判定する。
    """
    if not _usable(availability):
        return False
    lower = availability.lower()

    match = _STOCK_COUNT.search(lower)
    if match:
        return int(match.group(1)) < LOW_STOCK_THRESHOLD

    return "only" in lower and ("left" in lower or "remaining" in lower)


def days_until(delivery_date: str, reference_now: datetime) -> int | None:
    """基準日時から配送日（0 時）までの日数. 端数は切り上げ."""
    try:
        delivery = date.fromisoformat(delivery_date)
    except ValueError:
        return None
    diff = datetime.combine(delivery, time()) - reference_now.replace(tzinfo=None)
    return math.ceil(diff / timedelta(days=1))


def is_late_delivery(delivery_date: str | None, reference_now: datetime) -> bool:
    if not _usable(delivery_date):
        return False
    days = days_until(delivery_date, reference_now)
    return days is not None and days > LATE_DELIVERY_DAYS


def is_price_increase(price_change_percent: float | None) -> bool:
    return price_change_percent is not None and price_change_percent >= PRICE_INCREASE_PERCENT


def compute_enhanced_stats(results: Iterable[ResultRecord], reference_now: datetime) -> EnhancedStats:
    """成功レコード全件から派生シグナルを集計し直す."""
    stats = EnhancedStats()
    for r in results:
        if r.status is not ResultStatus.SUCCESS:
            continue
        if is_out_of_stock(r.availability):
            stats.out_of_stock += 1
        if is_late_delivery(r.delivery_date, reference_now):
            stats.late_delivery += 1
        if is_price_increase(r.price_change_percent):
            stats.price_increased += 1
        if is_low_stock(r.availability):
            stats.low_stock += 1
    return stats
