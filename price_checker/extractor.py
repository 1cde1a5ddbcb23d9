"""商品ページの項目抽出モジュール.

抽出戦略:
  各項目ごとに CSS セレクタを優先順に試し、最初に条件を満たしたものを採用する。
  セレクタ一覧は ExtractionProfile（データ）として持ち、抽出ロジックとは分離する。

プロファイル:
  LIVE_PAGE_PROFILE    — 表示中ページ向けの短いセレクタ一覧。在庫テキストは 100 文字未満
  FETCHED_PAGE_PROFILE — 取得 HTML 向けの拡張セレクタ一覧。在庫テキストは 200 文字未満
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from bs4 import BeautifulSoup

from price_checker.delivery import find_delivery_date
from price_checker.errors import BlockedError, StructuralParseError
from price_checker.models import ExtractedFields

logger = logging.getLogger(__name__)

BLOCK_PAGE_PHRASES = (
    "Robot Check",
    "Enter the characters you see below",
    "Sorry, we just need to make sure you're not a robot",
)

# "Â£" / "â‚¬" は文字コード不一致のページで化けた £ / €
CURRENCY_SYMBOLS = ("$", "£", "€", "₹", "Â£", "â‚¬")


@dataclass(frozen=True)
class ExtractionProfile:
    """項目ごとのセレクタ一覧と採用条件."""

    name: str
    price_selectors: tuple[str, ...]
    availability_selectors: tuple[str, ...]
    delivery_selectors: tuple[str, ...]
    title_selectors: tuple[str, ...]
    availability_max_length: int


_PRICE_SELECTORS = (
    ".a-price-whole",
    ".a-price .a-offscreen",
    "#price_inside_buybox",
    ".a-price-range",
    "#priceblock_dealprice",
    "#priceblock_ourprice",
    ".a-price.a-text-price.a-size-medium.apexPriceToPay .a-offscreen",
    ".a-price.a-text-price.a-size-medium.apexPriceToPay",
    ".a-price-symbol + .a-price-whole",
)

_AVAILABILITY_SELECTORS = (
    "#availability span",
    "#availability .a-color-success",
    "#availability .a-color-state",
    ".a-color-success",
    ".a-color-state",
    "#availability .a-size-medium",
    '[data-feature-name="availability"] .a-size-medium',
)

_DELIVERY_SELECTORS = (
    "#mir-layout-DELIVERY_BLOCK-slot-PRIMARY_DELIVERY_MESSAGE_LARGE span[data-csa-c-content-id]",
    "#deliveryBlockMessage span",
    "#delivery-block span",
    ".a-color-secondary.a-text-bold",
    '[data-feature-name="delivery"] span',
    "#ddmMIRAsinTitle + div span",
    ".a-size-base.a-color-secondary",
)

_TITLE_SELECTORS = ("#productTitle", ".product-title", "h1.a-size-large")

LIVE_PAGE_PROFILE = ExtractionProfile(
    name="live",
    price_selectors=_PRICE_SELECTORS,
    availability_selectors=_AVAILABILITY_SELECTORS,
    delivery_selectors=_DELIVERY_SELECTORS,
    title_selectors=_TITLE_SELECTORS,
    availability_max_length=100,
)

FETCHED_PAGE_PROFILE = ExtractionProfile(
    name="fetched",
    price_selectors=_PRICE_SELECTORS + (
        "[data-a-price-amount]",
        ".a-price-symbol",
        "#apex_desktop .a-price .a-offscreen",
        ".a-price.a-text-price .a-offscreen",
    ),
    availability_selectors=_AVAILABILITY_SELECTORS + (
        "#availability .a-color-price",
        "#availability-brief",
        '.a-accordion-row-a11y[aria-label*="availability"]',
    ),
    delivery_selectors=_DELIVERY_SELECTORS,
    title_selectors=_TITLE_SELECTORS + ("h1 span",),
    availability_max_length=200,
)


def extract_product_fields(
    soup: BeautifulSoup,
    reference_now: datetime,
    profile: ExtractionProfile = FETCHED_PAGE_PROFILE,
) -> ExtractedFields:
    """パース済みドキュメントから価格・在庫・配送日・タイトルを抽出する.

    ブロックページの場合は blocked=True のみを返し、他の項目は試さない。
    見つからない項目は None のまま。
    """
    if is_block_page(soup):
        return ExtractedFields(blocked=True)

    return ExtractedFields(
        price=_extract_price(soup, profile.price_selectors),
        availability=_extract_availability(
            soup, profile.availability_selectors, profile.availability_max_length
        ),
        delivery_date=_extract_delivery_date(soup, profile.delivery_selectors, reference_now),
        title=_extract_title(soup, profile.title_selectors),
    )


def parse_product_page(
    html: str,
    reference_now: datetime,
    profile: ExtractionProfile = FETCHED_PAGE_PROFILE,
) -> ExtractedFields:
    """取得 HTML をパースして項目を抽出する.

    Raises:
        BlockedError: ボット確認ページだった
        StructuralParseError: タイトル・価格・在庫がすべて見つからない
    """
    soup = BeautifulSoup(html, "html.parser")
    fields = extract_product_fields(soup, reference_now, profile)

    if fields.blocked:
        raise BlockedError("Request blocked - retry later")
    if fields.is_empty:
        raise StructuralParseError("Product not found or page structure changed")
    return fields


def is_block_page(soup: BeautifulSoup) -> bool:
    """ボット確認ページかどうか判定する.

    <body> を持たない断片的な HTML は文書全体のテキストで判定する。
    """
    body = soup.body
    text = body.get_text() if body is not None else soup.get_text()
    return any(phrase in text for phrase in BLOCK_PAGE_PHRASES)


def _normalized_text(soup: BeautifulSoup, selector: str) -> str:
    """セレクタに最初に一致した要素のテキスト（空白を1つに詰める）."""
    element = soup.select_one(selector)
    if element is None:
        return ""
    return " ".join(element.get_text().split())


def _extract_price(soup: BeautifulSoup, selectors: tuple[str, ...]) -> str | None:
    # 通貨記号付きを優先し、なければ最後に見つかった候補を使う
    price = None
    for selector in selectors:
        text = _normalized_text(soup, selector)
        if not text:
            continue
        price = text
        if any(symbol in text for symbol in CURRENCY_SYMBOLS):
            break
    return price


def _extract_availability(
    soup: BeautifulSoup, selectors: tuple[str, ...], max_length: int
) -> str | None:
    for selector in selectors:
        text = _normalized_text(soup, selector)
        if 0 < len(text) < max_length:
            return text
    return None


def _extract_delivery_date(
    soup: BeautifulSoup, selectors: tuple[str, ...], reference_now: datetime
) -> str | None:
    for selector in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = element.get_text().strip()
        if not text:
            continue
        delivery_date = find_delivery_date(text, reference_now)
        if delivery_date:
            return delivery_date
    return None


def _extract_title(soup: BeautifulSoup, selectors: tuple[str, ...]) -> str | None:
    for selector in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        title = element.get_text().strip()
        if title:
            return title
    return None
