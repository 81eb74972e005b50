from __future__ import annotations
import datetime as dt
from decimal import Decimal, Context, DivisionByZero, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional, Union

# 全部金额/利率计算使用的 Decimal 上下文（28 位有效数字，四舍五入）
DECIMAL_CONTEXT = Context(prec=28, rounding=ROUND_HALF_UP)

# 校验用：极端输入溢出时得到 ±Infinity，而不是抛出 decimal.Overflow
CHECK_CONTEXT = Context(prec=28, rounding=ROUND_HALF_UP, traps=[InvalidOperation, DivisionByZero])

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)
DAYS_PER_YEAR = 365

Number = Union[Decimal, int, float, str]

RISK_LABELS = {
    "LOW": "低风险",
    "MEDIUM": "中等风险",
    "HIGH": "高风险",
}

RISK_COLORS = {
    "LOW": "#52c41a",
    "MEDIUM": "#faad14",
    "HIGH": "#f5222d",
}

MARKET_LABELS = {
    "CONTANGO": "期货升水",
    "BACKWARDATION": "期货贴水",
    "NEUTRAL": "价格中性",
}


def is_blank(x: Any) -> bool:
    if x is None:
        return True
    return isinstance(x, str) and x.strip() == ""


def to_decimal(x: Any) -> Optional[Decimal]:
    """把 str / int / float / Decimal 转成有限的 Decimal；空值或无法解析时返回 None。"""
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, Decimal):
        return x if x.is_finite() else None
    if isinstance(x, int):
        return Decimal(x)
    if isinstance(x, float):
        # 走 str 以避免二进制浮点的尾数
        x = repr(x)
    s = str(x).strip().replace(",", "")
    if not s:
        return None
    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    return d if d.is_finite() else None


def to_date(x: Any) -> Optional[dt.date]:
    """支持 date / datetime / ISO 字符串（YYYY-MM-DD）。"""
    if x is None:
        return None
    if isinstance(x, dt.datetime):
        return x.date()
    if isinstance(x, dt.date):
        return x
    s = str(x).strip()
    if not s:
        return None
    try:
        return dt.date.fromisoformat(s)
    except ValueError:
        pass
    try:
        # 允许带时间部分，如 2024-04-01T09:30:00
        return dt.datetime.fromisoformat(s).date()
    except ValueError:
        return None


def holding_days(current: dt.date, maturity: dt.date) -> int:
    return (maturity - current).days


def plain(d: Decimal) -> str:
    """Decimal 的无指数字符串表示，例如 Decimal('5E+1') -> '50'。"""
    return format(d.normalize(), "f")


def dedupe(messages: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for m in messages:
        if m not in seen:
            seen.add(m)
            out.append(m)
    return out


# ──────────────────────────────────────────────────────────────────────────────
# 展示格式化
# ──────────────────────────────────────────────────────────────────────────────

def _quantize(value: Number, places: int) -> Decimal:
    d = to_decimal(value)
    if d is None:
        d = ZERO
    return d.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_number(value: Number, places: int = 2) -> str:
    """千分位格式，例如 1666.666 -> '1,666.67'。"""
    return f"{_quantize(value, places):,f}"


def format_percentage(value: Number, places: int = 2) -> str:
    return f"{_quantize(value, places):f}%"


def format_currency(value: Number, places: int = 2, currency: str = "¥") -> str:
    return f"{currency}{format_number(value, places)}"


def format_large_number(value: Number, places: int = 1) -> str:
    d = to_decimal(value) or ZERO
    for unit, size in (("B", Decimal(10) ** 9), ("M", Decimal(10) ** 6), ("K", Decimal(10) ** 3)):
        if abs(d) >= size:
            return f"{_quantize(d / size, places):f}{unit}"
    return f"{_quantize(d, places):f}"


def format_sensitivity(value: Number, places: int = 2) -> str:
    d = _quantize(value, places)
    sign = "+" if d > 0 else ""
    return f"{sign}{d:f}%"


def format_risk_level(level: str) -> str:
    return RISK_LABELS[level]


def format_market_condition(condition: str) -> str:
    return MARKET_LABELS[condition]


def format_date_range(start: dt.date, end: dt.date) -> str:
    return f"{start.isoformat()} 至 {end.isoformat()} ({holding_days(start, end)}天)"
