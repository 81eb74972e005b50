from __future__ import annotations
import logging
from decimal import Decimal, localcontext
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .config import DEFAULT_THRESHOLDS, Thresholds
from .data_models import CalculationInput, FormData, ValidationResult
from .utils import (
    CHECK_CONTEXT, HUNDRED, dedupe, format_number, holding_days, is_blank, plain, to_date, to_decimal,
)

logger = logging.getLogger(__name__)

FIELD_NAMES = {
    "investment_amount": "投入资金",
    "future_price": "期货价格",
    "spot_price": "现货价格",
    "current_date": "当前日期",
    "maturity_date": "交割日期",
    "annual_interest_rate": "年化利率",
    "transaction_fee_rate": "交易手续费率",
    "deposit_loss_rate": "入金磨损率",
    "withdrawal_loss_rate": "出金磨损率",
    "leverage_ratio": "杠杆倍数",
}

REQUIRED_FIELDS = (
    "future_price",
    "spot_price",
    "current_date",
    "maturity_date",
    "annual_interest_rate",
    "transaction_fee_rate",
    "investment_amount",
)

# 原始表单使用的驼峰字段名
FIELD_ALIASES = {
    "investmentAmount": "investment_amount",
    "futurePrice": "future_price",
    "spotPrice": "spot_price",
    "currentDate": "current_date",
    "maturityDate": "maturity_date",
    "annualInterestRate": "annual_interest_rate",
    "transactionFeeRate": "transaction_fee_rate",
    "depositLossRate": "deposit_loss_rate",
    "withdrawalLossRate": "withdrawal_loss_rate",
    "leverageRatio": "leverage_ratio",
}


def field_message(field: str, rule: str, th: Thresholds = DEFAULT_THRESHOLDS) -> str:
    """每个 (字段, 规则) 对应唯一一条提示文字。"""
    name = FIELD_NAMES.get(field, field)
    messages = {
        "required": f"请输入{name}",
        "positive": f"{name}必须大于0",
        "non_negative": f"{name}不能为负数",
        "valid_price": f"{name}必须为有效价格（0-{format_number(th.max_price, 0)}）",
        "valid_rate": f"{name}必须在0-{plain(th.max_interest_rate)}%之间",
        "max_fee_rate": f"{name}不能超过{plain(th.max_fee_rate)}%",
        "percentage": f"{name}必须在0-{plain(th.max_loss_rate)}之间",
        "max_leverage": f"{name}不能超过{plain(th.max_leverage)}倍",
        "valid_date": f"请选择有效的{name}",
    }
    return messages[rule]


def _normalize(data: Union[CalculationInput, FormData, Mapping[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, FormData):
        return data.active_fields()
    if isinstance(data, CalculationInput):
        return data.model_dump()
    out = {}
    for k, v in dict(data).items():
        out[FIELD_ALIASES.get(k, k)] = v
    return out


class _Collector:
    def __init__(self, th: Thresholds):
        self.th = th
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def error(self, field: str, rule: str) -> None:
        self.errors.append(field_message(field, rule, self.th))


def _check_positive_price(c: _Collector, field: str, value: Optional[Decimal], price_cap: bool) -> None:
    if value is None or value <= 0:
        c.error(field, "positive")
    elif price_cap and value > c.th.max_price:
        c.error(field, "valid_price")


def _check_fields(c: _Collector, values: Dict[str, Any]) -> Tuple[Dict[str, Decimal], Dict[str, Any]]:
    """逐字段校验，返回解析成功的数值与日期供关联校验使用。"""
    th = c.th
    nums: Dict[str, Decimal] = {}
    dates: Dict[str, Any] = {}

    def present(field: str) -> bool:
        return not is_blank(values.get(field))

    def num(field: str) -> Optional[Decimal]:
        d = to_decimal(values.get(field))
        if d is not None:
            nums[field] = d
        return d

    if present("investment_amount"):
        amount = num("investment_amount")
        _check_positive_price(c, "investment_amount", amount, price_cap=False)
        if amount is not None and amount > 0:
            if amount < th.low_investment:
                c.warnings.append("投入资金较少，可能影响收益计算精度")
            elif amount > th.high_investment:
                c.warnings.append("投入资金较大，请确认输入正确")

    for field, label in (("future_price", "期货"), ("spot_price", "现货")):
        if present(field):
            price = num(field)
            _check_positive_price(c, field, price, price_cap=True)
            if price is not None and price > th.high_price:
                c.warnings.append(f"{label}价格较高，请确认输入正确")

    if present("annual_interest_rate"):
        rate = num("annual_interest_rate")
        if rate is None or rate < 0:
            c.error("annual_interest_rate", "non_negative")
        elif rate > th.max_interest_rate:
            c.error("annual_interest_rate", "valid_rate")
        if rate is not None and rate > th.high_interest_rate:
            c.warnings.append("年化利率较高，请确认输入正确")

    if present("transaction_fee_rate"):
        fee = num("transaction_fee_rate")
        if fee is None or fee < 0:
            c.error("transaction_fee_rate", "non_negative")
        elif fee > th.max_fee_rate:
            c.error("transaction_fee_rate", "max_fee_rate")
        if fee is not None and fee > th.high_fee_rate:
            c.warnings.append("交易手续费率较高，请确认输入正确")

    for field, label in (("deposit_loss_rate", "入金"), ("withdrawal_loss_rate", "出金")):
        if present(field):
            loss = num(field)
            if loss is None or loss < 0:
                c.error(field, "non_negative")
            elif loss > th.max_loss_rate:
                c.error(field, "percentage")
            if loss is not None and loss > th.high_loss_rate:
                c.warnings.append(f"{label}磨损率较高，请确认输入正确")

    if present("leverage_ratio"):
        ratio = num("leverage_ratio")
        if ratio is None or ratio <= 0:
            c.error("leverage_ratio", "positive")
        elif ratio > th.max_leverage:
            c.error("leverage_ratio", "max_leverage")
        elif ratio > th.high_leverage:
            c.warnings.append("高杠杆风险极大，请谨慎操作")
        elif ratio > th.moderate_leverage:
            c.warnings.append("杠杆倍数较高，请注意风险控制")

    for field in ("current_date", "maturity_date"):
        if present(field):
            d = to_date(values.get(field))
            if d is None:
                c.error(field, "valid_date")
            else:
                dates[field] = d

    return nums, dates


def _check_relationships(c: _Collector, nums: Dict[str, Decimal], dates: Dict[str, Any]) -> None:
    th = c.th
    if "current_date" in dates and "maturity_date" in dates:
        days = holding_days(dates["current_date"], dates["maturity_date"])
        if days <= 0:
            c.errors.append("交割日期必须晚于当前日期")
        if days > th.max_holding_days:
            c.errors.append(f"持有期不能超过{th.max_holding_days}天")
        if days < th.min_holding_days:
            c.errors.append(f"持有期至少为{th.min_holding_days}天")
        if th.min_holding_days <= days < th.short_holding_days:
            c.warnings.append("持有期较短，交易成本对收益率影响较大")
        elif th.long_holding_days < days <= th.max_holding_days:
            c.warnings.append("交割期较长，请注意市场风险")

    future, spot = nums.get("future_price"), nums.get("spot_price")
    if future is not None and spot is not None and spot > 0:
        with localcontext(CHECK_CONTEXT):
            divergence = abs((future - spot) / spot * HUNDRED)
        # 溢出为 Infinity 时同样视为差异过大
        if divergence > th.max_price_divergence_percent:
            c.errors.append(
                f"期货与现货价格差异过大（超过{plain(th.max_price_divergence_percent)}%），请检查输入")

    rate, fee = nums.get("annual_interest_rate"), nums.get("transaction_fee_rate")
    if rate is not None and fee is not None:
        with localcontext(CHECK_CONTEXT):
            total_cost_rate = rate + fee * 2
        if total_cost_rate > th.max_total_cost_rate:
            c.errors.append("总成本率（利率 + 双边手续费）过高，请检查输入")


def validate(data: Union[CalculationInput, FormData, Mapping[str, Any]],
             thresholds: Optional[Thresholds] = None) -> ValidationResult:
    """校验原始表单或结构化输入。

    所有规则都会执行，错误与警告一并收集（去重、保持首次出现的顺序）。
    错误阻止计算；警告只作提示。
    """
    c = _Collector(thresholds or DEFAULT_THRESHOLDS)
    values = _normalize(data)

    for field in REQUIRED_FIELDS:
        if is_blank(values.get(field)):
            c.error(field, "required")

    nums, dates = _check_fields(c, values)
    _check_relationships(c, nums, dates)

    errors = dedupe(c.errors)
    if errors:
        logger.info("validation failed with %d error(s)", len(errors))
    return ValidationResult(is_valid=not errors, errors=errors, warnings=dedupe(c.warnings))
