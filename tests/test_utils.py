import datetime as dt
from decimal import Decimal

from carry_checker.utils import (
    dedupe, format_currency, format_date_range, format_large_number, format_market_condition,
    format_number, format_percentage, format_risk_level, format_sensitivity, plain, to_date,
    to_decimal,
)


def test_to_decimal():
    assert to_decimal("3,050.25") == Decimal("3050.25")
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(5) == Decimal(5)
    assert to_decimal("") is None
    assert to_decimal("abc") is None
    assert to_decimal(float("nan")) is None
    assert to_decimal(True) is None


def test_to_date():
    assert to_date("2024-04-01") == dt.date(2024, 4, 1)
    assert to_date(dt.datetime(2024, 4, 1, 12)) == dt.date(2024, 4, 1)
    assert to_date("2024-02-30") is None
    assert to_date("2024-04-01xyz") is None
    assert to_date("2024-04-01T09:30:00") == dt.date(2024, 4, 1)
    assert to_date("") is None


def test_formatters():
    assert format_number(Decimal("1666.666")) == "1,666.67"
    assert format_percentage(Decimal("2.7839")) == "2.78%"
    assert format_currency(Decimal("872.6027")) == "¥872.60"
    assert format_large_number(Decimal("2500000")) == "2.5M"
    assert format_large_number(950) == "950.0"
    assert format_sensitivity(Decimal("0.0712")) == "+0.07%"
    assert format_sensitivity(Decimal("-1")) == "-1.00%"
    assert format_risk_level("MEDIUM") == "中等风险"
    assert format_market_condition("BACKWARDATION") == "期货贴水"
    assert format_date_range(dt.date(2024, 1, 1), dt.date(2024, 4, 1)) == "2024-01-01 至 2024-04-01 (91天)"


def test_plain_and_dedupe():
    assert plain(Decimal("50")) == "50"
    assert plain(Decimal("0.50")) == "0.5"
    assert dedupe(["a", "b", "a"]) == ["a", "b"]
