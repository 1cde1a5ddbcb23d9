"""入力の解析・URL 検証モジュール.

入力形式:
  simple      — 1 行 1 URL のテキスト
  spreadsheet — (URL, 参照価格) の行。貼り付けテキストはタブまたは 2 つ以上の空白で分割
  CSV         — 2 列の CSV。1 行目はヘッダとして読み飛ばす
"""

from __future__ import annotations

import csv
import io
import logging
import re
from urllib.parse import urlsplit

from price_checker.analysis import parse_price
from price_checker.config import MARKETPLACE_DOMAINS, MAX_PRODUCTS, PRODUCT_PATH_MARKERS
from price_checker.errors import ValidationError
from price_checker.models import ProductRequest

logger = logging.getLogger(__name__)

_CELL_SEPARATOR = re.compile(r"\t| {2,}")


def is_valid_product_url(url: str) -> bool:
    """対象マーケットプレイスの商品ページ URL か判定する."""
    try:
        parts = urlsplit(url.strip())
        hostname = (parts.hostname or "").lower()
    except ValueError:
        return False

    if parts.scheme not in ("http", "https"):
        return False
    return (
        any(domain in hostname for domain in MARKETPLACE_DOMAINS)
        and any(marker in parts.path for marker in PRODUCT_PATH_MARKERS)
    )


def canonicalize_url(url: str) -> str:
    """クエリ・フラグメントを除いた scheme://host/path を返す."""
    parts = urlsplit(url.strip())
    return f"{parts.scheme}://{parts.hostname}{parts.path}"


def parse_simple_input(text: str) -> list[ProductRequest]:
    """1 行 1 URL のテキストから有効な商品 URL を取り出す."""
    products = []
    for line in text.splitlines():
        line = line.strip()
        if line and is_valid_product_url(line):
            products.append(ProductRequest(url=canonicalize_url(line)))
    return products


def parse_grid_paste(text: str) -> list[dict]:
    """スプレッドシートから貼り付けたテキストを行データに分割する.

    Returns:
        [{"url": str, "price": str}, ...]
    """
    rows = []
    for line in text.splitlines():
        if not line.strip():
            continue
        cells = [cell.strip() for cell in _CELL_SEPARATOR.split(line.strip())]
        rows.append({
            "url": cells[0],
            "price": cells[1] if len(cells) > 1 else "",
        })
    return rows


def parse_csv_import(text: str) -> list[dict]:
    """2 列（URL, 価格）の CSV を行データに変換する. ヘッダ行は読み飛ばす.

    有効な商品 URL を持つ行だけを返す。
    """
    rows = []
    reader = csv.reader(io.StringIO(text))
    next(reader, None)
    for cells in reader:
        if not cells:
            continue
        url = cells[0].strip().replace('"', "")
        price = cells[1].strip().replace('"', "") if len(cells) > 1 else ""
        if url and is_valid_product_url(url):
            rows.append({"url": url, "price": price})

    logger.info("CSV から %d 件の商品を読み込み", len(rows))
    return rows


def parse_spreadsheet_rows(rows: list[dict]) -> list[ProductRequest]:
    """行データ（URL, 参照価格）を ProductRequest に変換する."""
    products = []
    for row in rows:
        url = (row.get("url") or "").strip()
        if url and is_valid_product_url(url):
            products.append(ProductRequest(
                url=canonicalize_url(url),
                saved_price=parse_price(row.get("price")),
            ))
    return products


def build_product_requests(products: list[ProductRequest]) -> list[ProductRequest]:
    """件数を検証する. 0 件または上限超過なら ValidationError."""
    if not products:
        raise ValidationError("No valid Amazon URLs found. Please check your input.")
    if len(products) > MAX_PRODUCTS:
        raise ValidationError(
            f"Maximum {MAX_PRODUCTS:,} URLs allowed. Please reduce your list."
        )
    return products
