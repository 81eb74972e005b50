from __future__ import annotations
import datetime as dt
import logging
from decimal import Decimal, Overflow, localcontext
from typing import List, Optional

from .config import DEFAULT_THRESHOLDS, Thresholds
from .data_models import (
    AnalysisResult,
    BreakEven,
    Breakdown,
    CalculationInput,
    CalculationResult,
    LeverageInfo,
    MarketCondition,
    Sensitivity,
)
from .utils import DAYS_PER_YEAR, DECIMAL_CONTEXT, HUNDRED, ONE, ZERO

logger = logging.getLogger(__name__)

_SPOT_BUMP = Decimal("1.01")


class ComputationError(ValueError):
    """持有期不合法等无法完成计算的输入。"""


def holding_cost_rate(annual_interest_rate: Decimal, days: int) -> Decimal:
    # 资金占用成本率 = 年化利率 × 持有天数 / 365
    return annual_interest_rate / HUNDRED * days / DAYS_PER_YEAR


def round_trip_fee_rate(transaction_fee_rate: Decimal) -> Decimal:
    # 双边手续费：现货、期货两条腿按同一费率收取
    return transaction_fee_rate / HUNDRED * 2


def _loss(amount: Decimal, rate: Optional[Decimal]) -> Decimal:
    if rate is None:
        return ZERO
    return amount * (rate / HUNDRED)


def _risk_level(annualized_return: Decimal, days: int,
                leverage_ratio: Optional[Decimal], th: Thresholds) -> str:
    if leverage_ratio is not None and leverage_ratio > 1:
        return "HIGH"
    abs_return = abs(annualized_return)
    if abs_return < th.low_risk_return or days > th.low_risk_days:
        return "LOW"
    if abs_return < th.medium_risk_return or days > th.medium_risk_days:
        return "MEDIUM"
    return "HIGH"


def calculate_arbitrage_return(inp: CalculationInput,
                               thresholds: Optional[Thresholds] = None) -> CalculationResult:
    """期现套利：买入现货、卖出等值期货，持有至交割。

    杠杆模式下顶层收益按杠杆后净利润重算，但 breakdown 仍展示未加杠杆的价差，
    成本（资金占用、手续费、出入金磨损）始终按投入资金计算。
    """
    th = thresholds or DEFAULT_THRESHOLDS
    days = inp.holding_days
    if days <= 0:
        raise ComputationError("交割日期必须晚于当前日期")
    if days > th.max_holding_days:
        raise ComputationError(f"持有期不能超过{th.max_holding_days}天")

    amount = inp.investment_amount
    try:
        with localcontext(DECIMAL_CONTEXT):
            spot_quantity = amount / inp.spot_price
            diff_per_unit = inp.future_price - inp.spot_price
            total_price_difference = diff_per_unit * spot_quantity

            holding_cost = amount * holding_cost_rate(inp.annual_interest_rate, days)
            transaction_cost = amount * round_trip_fee_rate(inp.transaction_fee_rate)
            deposit_loss = _loss(amount, inp.deposit_loss_rate)
            withdrawal_loss = _loss(amount, inp.withdrawal_loss_rate)
            costs = holding_cost + transaction_cost + deposit_loss + withdrawal_loss

            net_profit = total_price_difference - costs

            leverage = None
            ratio = inp.leverage_ratio
            if ratio is not None and ratio > 0:
                contract_value = amount * ratio
                leveraged_quantity = contract_value / inp.spot_price
                net_profit = diff_per_unit * leveraged_quantity - costs
                leverage = LeverageInfo(
                    leverage_ratio=ratio,
                    margin_required=amount,
                    contract_value=contract_value,
                    # 亏损吃光保证金时的现货价格
                    liquidation_price=inp.spot_price - amount / leveraged_quantity,
                    leveraged_profit=net_profit,
                )

            net_profit_rate = net_profit / amount
            annualized_return = net_profit_rate * DAYS_PER_YEAR / days * HUNDRED
            total_return = net_profit_rate * HUNDRED
            annualized_profit = amount * (annualized_return / HUNDRED)
    except Overflow:
        # 极端价格（如 1e-999999）导致数值超出 Decimal 表示范围
        raise ComputationError("输入数值超出可计算范围，请检查输入") from None

    logger.debug("holding_days=%s net_profit=%s annualized=%s leveraged=%s",
                 days, net_profit, annualized_return, leverage is not None)

    breakdown = Breakdown(
        price_difference=total_price_difference,
        holding_cost=holding_cost,
        transaction_cost=transaction_cost,
        deposit_loss=deposit_loss if deposit_loss > 0 else None,
        withdrawal_loss=withdrawal_loss if withdrawal_loss > 0 else None,
    )
    return CalculationResult(
        annualized_return=annualized_return,
        holding_days=days,
        total_return=total_return,
        actual_profit=net_profit,
        annualized_profit=annualized_profit,
        risk_level=_risk_level(annualized_return, days, ratio, th),
        breakdown=breakdown,
        leverage=leverage,
    )


calculate = calculate_arbitrage_return


def calculate_break_even(inp: CalculationInput) -> BreakEven:
    """盈亏平衡价格，按未加杠杆的成本结构计算。"""
    with localcontext(DECIMAL_CONTEXT):
        factor = (ONE
                  + holding_cost_rate(inp.annual_interest_rate, inp.holding_days)
                  + round_trip_fee_rate(inp.transaction_fee_rate))
        return BreakEven(
            break_even_future_price=inp.spot_price * factor,
            break_even_spot_price=inp.spot_price / factor,
        )


def calculate_sensitivity(inp: CalculationInput,
                          thresholds: Optional[Thresholds] = None) -> Sensitivity:
    """单因素扰动后年化收益率相对基准的变化（百分点）。"""
    base = calculate_arbitrage_return(inp, thresholds).annualized_return

    def delta(**changes) -> Decimal:
        bumped = calculate_arbitrage_return(inp.model_copy(update=changes), thresholds)
        with localcontext(DECIMAL_CONTEXT):
            return bumped.annualized_return - base

    with localcontext(DECIMAL_CONTEXT):
        bumped_rate = inp.annual_interest_rate + 1
        bumped_spot = inp.spot_price * _SPOT_BUMP
    return Sensitivity(
        interest_rate_sensitivity=delta(annual_interest_rate=bumped_rate),
        time_sensitivity=delta(maturity_date=inp.maturity_date - dt.timedelta(days=1)),
        price_sensitivity=delta(spot_price=bumped_spot),
    )


def get_market_condition(future_price: Decimal, spot_price: Decimal,
                         thresholds: Optional[Thresholds] = None) -> MarketCondition:
    th = thresholds or DEFAULT_THRESHOLDS
    band = th.neutral_premium_percent
    with localcontext(DECIMAL_CONTEXT):
        premium = future_price - spot_price
        premium_percent = premium / spot_price * HUNDRED
    if premium_percent > band:
        condition = "CONTANGO"        # 期货升水
    elif premium_percent < -band:
        condition = "BACKWARDATION"   # 期货贴水
    else:
        condition = "NEUTRAL"
    return MarketCondition(condition=condition, premium=premium, premium_percent=premium_percent)


def analyze(inp: CalculationInput, thresholds: Optional[Thresholds] = None) -> AnalysisResult:
    result = calculate_arbitrage_return(inp, thresholds)
    return AnalysisResult(
        **dict(result),
        break_even=calculate_break_even(inp),
        sensitivity=calculate_sensitivity(inp, thresholds),
        market_condition=get_market_condition(inp.future_price, inp.spot_price, thresholds),
    )


def result_warnings(analysis: AnalysisResult, thresholds: Optional[Thresholds] = None) -> List[str]:
    """计算成功后基于结果给出的提示，不影响结果本身。"""
    th = thresholds or DEFAULT_THRESHOLDS
    warnings = []
    if abs(analysis.annualized_return) > th.abnormal_return:
        warnings.append("收益率异常高，请仔细检查输入参数")
    if analysis.holding_days < th.short_holding_days:
        warnings.append("持有期较短，交易成本对收益率影响较大")
    if abs(analysis.market_condition.premium_percent) > th.wide_premium_percent:
        warnings.append("期货与现货价差较大，请注意市场风险")
    return warnings
