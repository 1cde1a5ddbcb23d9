"""配送日テキストの正規化モジュール.

"Monday, July 15" / "July 15" / "Jul 15" のような表記を YYYY-MM-DD に変換する。
年は基準日時から補完し、すでに過ぎた日付なら翌年とみなす。
"""

from __future__ import annotations

import re
from datetime import date, datetime

# 先頭の曜日トークン（"Monday, " など）
_WEEKDAY_PREFIX = re.compile(r"^\w+day,?\s+", re.IGNORECASE)

# 配送テキストから日付らしき部分を探す
DELIVERY_DATE_PATTERN = re.compile(r"(\w+day,?\s+)?(\w+\s+\d{1,2})", re.IGNORECASE)

_MONTH_FORMATS = ("%B %d %Y", "%b %d %Y")


def normalize_delivery_date(phrase: str, reference_now: datetime) -> str | None:
    """配送日テキストを ISO 形式の日付に変換する.

    Args:
        phrase: "Monday, July 15" のような配送日テキスト
        reference_now: 年の補完と過去日判定に使う基準日時

    Returns:
        "YYYY-MM-DD"。解釈できなければ None。
    """
    clean = _WEEKDAY_PREFIX.sub("", phrase.strip()).strip()
    if not clean:
        return None

    today = reference_now.date()
    parsed = _parse_month_day(clean, today.year)
    if parsed is None or parsed < today:
        parsed = _parse_month_day(clean, today.year + 1)

    if parsed is None:
        return None
    return parsed.isoformat()


def find_delivery_date(text: str, reference_now: datetime) -> str | None:
    """配送ブロックのテキストから日付部分を探して正規化する."""
    match = DELIVERY_DATE_PATTERN.search(text)
    if not match:
        return None
    return normalize_delivery_date(match.group(0), reference_now)


def _parse_month_day(text: str, year: int) -> date | None:
    """'<Month> <day>' を指定年の日付として解釈する."""
    candidate = f"{text.replace(',', ' ').strip()} {year}"
    candidate = " ".join(candidate.split())
    for fmt in _MONTH_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
    return None
