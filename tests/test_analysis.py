"""analysis モジュールのユニットテスト."""

from datetime import datetime

import pytest

from price_checker.analysis import (
    analyze_price_change,
    compute_enhanced_stats,
    days_until,
    is_late_delivery,
    is_low_stock,
    is_out_of_stock,
    is_price_increase,
    parse_price,
)
from price_checker.models import ResultRecord, ResultStatus

NOW = datetime(2024, 7, 1, 9, 0)


class TestParsePrice:
    """parse_price のテスト."""

    def test_dollar(self):
        assert parse_price("$120.00") == 120.0

    def test_thousands_separator(self):
        assert parse_price("$1,234,567.89") == pytest.approx(1234567.89)

    def test_first_number_only(self):
        assert parse_price("$19.99 - $29.99") == 19.99

    def test_not_available(self):
        assert parse_price("N/A") is None
        assert parse_price(None) is None
        assert parse_price("") is None

    def test_dot_only(self):
        assert parse_price("See price in cart.") is None


class TestAnalyzePriceChange:
    """analyze_price_change のテスト."""

    def test_increase(self):
        result = analyze_price_change(100, "$120.00")

        assert result.current_price == "$120.00"
        assert result.price_change == pytest.approx(20)
        assert result.price_change_percent == pytest.approx(20)

    def test_decrease(self):
        result = analyze_price_change(50.0, "$40")

        assert result.price_change == pytest.approx(-10)
        assert result.price_change_percent == pytest.approx(-20)

    def test_no_saved_price(self):
        result = analyze_price_change(None, "$50")

        assert result.current_price == "$50"
        assert result.price_change is None
        assert result.price_change_percent is None

    def test_unparseable_current(self):
        result = analyze_price_change(100, "N/A")

        assert result.price_change is None
        assert result.price_change_percent is None

    def test_zero_saved_price(self):
        """参照価格 0 では変化額・変化率とも None になること."""
        result = analyze_price_change(0, "$10.00")

        assert result.price_change is None
        assert result.price_change_percent is None


class TestOutOfStock:
    """is_out_of_stock のテスト."""

    @pytest.mark.parametrize("text", [
        "Currently unavailable.",
        "Out of Stock",
        "This item is not available",
        "Temporarily UNAVAILABLE",
    ])
    def test_true(self, text):
        assert is_out_of_stock(text)

    @pytest.mark.parametrize("text", ["In Stock", "N/A", None, ""])
    def test_false(self, text):
        assert not is_out_of_stock(text)


class TestLowStock:
    """is_low_stock のテスト."""

    def test_only_left(self):
        assert is_low_stock("Only 5 left in stock")

    def test_in_stock(self):
        assert not is_low_stock("In Stock")

    def test_above_threshold(self):
        assert not is_low_stock("25 left in stock")

    def test_remaining(self):
        assert is_low_stock("3 remaining")

    def test_only_without_number(self):
        assert is_low_stock("Only a few left")

    def test_not_available(self):
        assert not is_low_stock("N/A")
        assert not is_low_stock(None)


class TestLateDelivery:
    """is_late_delivery のテスト."""

    def test_days_rounded_up(self):
        """日数は切り上げで数えること."""
        assert days_until("2024-07-11", NOW) == 10
        assert days_until("2024-07-12", NOW) == 11

    def test_boundary(self):
        assert not is_late_delivery("2024-07-11", NOW)
        assert is_late_delivery("2024-07-12", NOW)

    def test_invalid(self):
        assert not is_late_delivery(None, NOW)
        assert not is_late_delivery("N/A", NOW)
        assert not is_late_delivery("soon", NOW)


class TestPriceIncrease:
    """is_price_increase のテスト."""

    def test_threshold(self):
        assert is_price_increase(15.0)
        assert not is_price_increase(14.99)
        assert not is_price_increase(None)


class TestComputeEnhancedStats:
    """compute_enhanced_stats のテスト."""

    def test_counts_success_only(self):
        """成功レコードだけを集計すること."""
        results = [
            ResultRecord(
                id="product-0", url="u0", status=ResultStatus.SUCCESS,
                availability="Only 2 left in stock", price_change_percent=20.0,
                delivery_date="2024-07-30",
            ),
            ResultRecord(
                id="product-1", url="u1", status=ResultStatus.SUCCESS,
                availability="Currently unavailable.",
            ),
            ResultRecord(
                id="product-2", url="u2", status=ResultStatus.ERROR,
                availability="Out of Stock", price_change_percent=50.0,
            ),
            ResultRecord(id="product-3", url="u3"),
        ]
        stats = compute_enhanced_stats(results, NOW)

        assert stats.out_of_stock == 1
        assert stats.low_stock == 1
        assert stats.price_increased == 1
        assert stats.late_delivery == 1
