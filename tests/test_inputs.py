"""inputs モジュールのユニットテスト."""

import pytest

from price_checker.errors import ValidationError
from price_checker.inputs import (
    build_product_requests,
    canonicalize_url,
    is_valid_product_url,
    parse_csv_import,
    parse_grid_paste,
    parse_simple_input,
    parse_spreadsheet_rows,
)
from price_checker.models import ProductRequest


class TestIsValidProductUrl:
    """is_valid_product_url のテスト."""

    @pytest.mark.parametrize("url", [
        "https://www.amazon.com/dp/B08N5WRWNW",
        "https://www.amazon.co.uk/Some-Product/dp/B07XJ8C8F5/ref=sr_1_1",
        "https://amazon.de/gp/product/B01N5IB20Q?th=1",
        "https://www.amazon.com.au/dp/B0BSHF7WHW",
    ])
    def test_valid(self, url):
        assert is_valid_product_url(url)

    @pytest.mark.parametrize("url", [
        "https://www.amazon.com/s?k=earbuds",
        "https://www.ebay.com/dp/B08N5WRWNW",
        "ftp://www.amazon.com/dp/B08N5WRWNW",
        "not a url",
        "",
    ])
    def test_invalid(self, url):
        assert not is_valid_product_url(url)


class TestCanonicalizeUrl:
    """canonicalize_url のテスト."""

    def test_strip_query_and_fragment(self):
        url = "https://www.amazon.com/dp/B08N5WRWNW?psc=1&ref=abc#reviews"
        assert canonicalize_url(url) == "https://www.amazon.com/dp/B08N5WRWNW"

    def test_keep_path(self):
        url = "https://www.amazon.co.uk/Some-Product/dp/B07XJ8C8F5/ref=sr_1_1"
        assert canonicalize_url(url) == url


class TestParseSimpleInput:
    """parse_simple_input のテスト."""

    def test_filters_and_canonicalizes(self):
        text = (
            "https://www.amazon.com/dp/B000000001?th=1\n"
            "\n"
            "   https://www.amazon.de/gp/product/B000000002  \n"
            "https://example.com/dp/B000000003\n"
        )
        assert parse_simple_input(text) == [
            ProductRequest(url="https://www.amazon.com/dp/B000000001"),
            ProductRequest(url="https://www.amazon.de/gp/product/B000000002"),
        ]


class TestParseGridPaste:
    """parse_grid_paste のテスト."""

    def test_tab_separated(self):
        text = "https://www.amazon.com/dp/B000000001\t$19.99\nhttps://www.amazon.com/dp/B000000002\t25"
        assert parse_grid_paste(text) == [
            {"url": "https://www.amazon.com/dp/B000000001", "price": "$19.99"},
            {"url": "https://www.amazon.com/dp/B000000002", "price": "25"},
        ]

    def test_multi_space_separated(self):
        text = "https://www.amazon.com/dp/B000000001    19.99\n"
        assert parse_grid_paste(text) == [
            {"url": "https://www.amazon.com/dp/B000000001", "price": "19.99"},
        ]

    def test_single_column(self):
        assert parse_grid_paste("https://www.amazon.com/dp/B000000001\n\n") == [
            {"url": "https://www.amazon.com/dp/B000000001", "price": ""},
        ]


class TestParseCsvImport:
    """parse_csv_import のテスト."""

    def test_skip_header_and_invalid(self):
        text = (
            "URL,Price\n"
            '"https://www.amazon.com/dp/B000000001","19.99"\n'
            "https://www.amazon.com/s?k=socks,5.00\n"
            "https://www.amazon.ca/dp/B000000002,\n"
        )
        assert parse_csv_import(text) == [
            {"url": "https://www.amazon.com/dp/B000000001", "price": "19.99"},
            {"url": "https://www.amazon.ca/dp/B000000002", "price": ""},
        ]

    def test_header_only(self):
        assert parse_csv_import("URL,Price\n") == []


class TestParseSpreadsheetRows:
    """parse_spreadsheet_rows のテスト."""

    def test_saved_price(self):
        rows = [
            {"url": "https://www.amazon.com/dp/B000000001?x=1", "price": "$1,299.00"},
            {"url": "https://www.amazon.com/dp/B000000002", "price": ""},
            {"url": "", "price": "10"},
        ]
        assert parse_spreadsheet_rows(rows) == [
            ProductRequest(url="https://www.amazon.com/dp/B000000001", saved_price=1299.0),
            ProductRequest(url="https://www.amazon.com/dp/B000000002", saved_price=None),
        ]


class TestBuildProductRequests:
    """build_product_requests のテスト."""

    def _products(self, n: int) -> list[ProductRequest]:
        return [ProductRequest(url=f"https://www.amazon.com/dp/B{i:09d}") for i in range(n)]

    def test_empty(self):
        with pytest.raises(ValidationError, match="No valid Amazon URLs"):
            build_product_requests([])

    def test_over_limit(self):
        with pytest.raises(ValidationError, match="Maximum 1,000"):
            build_product_requests(self._products(1001))

    def test_exactly_limit(self):
        assert len(build_product_requests(self._products(1000))) == 1000
