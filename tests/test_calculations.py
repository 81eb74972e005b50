import datetime as dt
from decimal import Decimal

import pytest

from carry_checker.calculations import (
    ComputationError, analyze, calculate, calculate_arbitrage_return, calculate_break_even,
    calculate_sensitivity, get_market_condition, result_warnings,
)
from carry_checker.data_models import CalculationInput


def make_input(**overrides) -> CalculationInput:
    data = dict(
        investment_amount="100000",
        future_price="3050",
        spot_price="3000",
        current_date="2024-01-01",
        maturity_date="2024-04-01",
        annual_interest_rate="3.5",
        transaction_fee_rate="0.05",
    )
    data.update(overrides)
    return CalculationInput(**data)


def approx(x: Decimal, expected: float, tol: float = 0.01) -> bool:
    return abs(float(x) - expected) < tol


def test_unleveraged_scenario():
    r = calculate_arbitrage_return(make_input())
    assert r.holding_days == 91
    assert approx(r.breakdown.price_difference, 1666.67)
    assert approx(r.breakdown.holding_cost, 872.60)
    assert r.breakdown.transaction_cost == Decimal("100")
    assert approx(r.actual_profit, 694.06)
    assert round(float(r.annualized_return), 2) == 2.78
    assert approx(r.total_return, 0.694)
    assert r.leverage is None
    assert r.breakdown.deposit_loss is None and r.breakdown.withdrawal_loss is None
    assert r.risk_level == "LOW"


def test_actual_profit_equals_unleveraged_net_profit():
    r = calculate(make_input())
    b = r.breakdown
    assert abs(r.actual_profit - (b.price_difference - b.holding_cost - b.transaction_cost)) < Decimal("1e-10")


def test_leveraged_scenario_keeps_unleveraged_breakdown():
    r = calculate_arbitrage_return(make_input(leverage_ratio="3"))
    lev = r.leverage
    assert lev is not None
    assert lev.contract_value == Decimal("300000")
    assert lev.margin_required == Decimal("100000")
    assert approx(lev.leveraged_profit, 4027.40)
    assert lev.liquidation_price == Decimal("2000")
    assert r.actual_profit == lev.leveraged_profit
    assert round(float(r.annualized_return), 2) == 16.15
    # 拆解仍展示未加杠杆的价差
    assert approx(r.breakdown.price_difference, 1666.67)
    assert r.risk_level == "HIGH"


def test_leverage_above_one_is_always_high_risk():
    for ratio in ("1.5", "2", "10", "50"):
        assert calculate(make_input(leverage_ratio=ratio)).risk_level == "HIGH"


def test_leverage_of_one_matches_unleveraged_profit():
    plain = calculate(make_input())
    levered = calculate(make_input(leverage_ratio="1"))
    assert levered.leverage is not None
    assert levered.actual_profit == plain.actual_profit
    assert levered.risk_level == plain.risk_level


def test_deposit_and_withdrawal_losses():
    r = calculate(make_input(deposit_loss_rate="0.1", withdrawal_loss_rate="0.2"))
    assert r.breakdown.deposit_loss == Decimal("100")
    assert r.breakdown.withdrawal_loss == Decimal("200")
    base = calculate(make_input())
    assert abs(r.actual_profit - (base.actual_profit - Decimal("300"))) < Decimal("1e-10")


def test_zero_loss_rate_is_omitted_from_breakdown():
    r = calculate(make_input(deposit_loss_rate="0"))
    assert r.breakdown.deposit_loss is None


@pytest.mark.parametrize("maturity", ["2024-01-01", "2023-12-01", "2025-01-02"])
def test_invalid_holding_period_raises(maturity):
    with pytest.raises(ComputationError):
        calculate(make_input(maturity_date=maturity))


def test_holding_period_of_365_days_is_accepted():
    r = calculate(make_input(maturity_date="2024-12-31"))
    assert r.holding_days == 365


def test_calculation_is_pure():
    a = calculate(make_input(spot_price=Decimal("3000.00")))
    b = calculate(make_input(spot_price="3000"))
    assert a == b


def test_risk_levels_without_leverage():
    # 年化约 2.78% → LOW
    assert calculate(make_input()).risk_level == "LOW"
    # 30 天、价差 1% → 年化约 7% → MEDIUM
    medium = calculate(make_input(future_price="3030", maturity_date="2024-01-31"))
    assert 5 < float(medium.annualized_return) < 15
    assert medium.risk_level == "MEDIUM"
    # 30 天、价差 2% → 年化 > 15% → HIGH
    high = calculate(make_input(future_price="3060", maturity_date="2024-01-31"))
    assert float(high.annualized_return) > 15
    assert high.risk_level == "HIGH"
    # 持有超过 180 天一律 LOW
    long_hold = calculate(make_input(future_price="3600", maturity_date="2024-08-01"))
    assert long_hold.risk_level == "LOW"


def test_break_even_future_price_gives_zero_return():
    inp = make_input()
    be = calculate_break_even(inp)
    r = calculate(make_input(future_price=be.break_even_future_price))
    assert abs(float(r.annualized_return)) < 1e-9
    assert be.break_even_spot_price < inp.spot_price < be.break_even_future_price


def test_sensitivity_signs():
    s = calculate_sensitivity(make_input())
    assert float(s.interest_rate_sensitivity) == pytest.approx(-1.0, abs=1e-9)
    # 现货上涨 1% → 价差缩小 → 收益下降
    assert s.price_sensitivity < 0
    # 持有期缩短 1 天：年化放大正净收益
    assert s.time_sensitivity > 0


def test_sensitivity_on_one_day_holding_fails():
    with pytest.raises(ComputationError):
        calculate_sensitivity(make_input(maturity_date="2024-01-02"))


def test_market_condition_boundaries():
    spot = Decimal("1000")
    assert get_market_condition(Decimal("1005"), spot).condition == "NEUTRAL"
    assert get_market_condition(Decimal("1005.000001"), spot).condition == "CONTANGO"
    assert get_market_condition(Decimal("995"), spot).condition == "NEUTRAL"
    assert get_market_condition(Decimal("994.999999"), spot).condition == "BACKWARDATION"
    mc = get_market_condition(Decimal("3050"), Decimal("3000"))
    assert mc.premium == Decimal("50")
    assert approx(mc.premium_percent, 1.6667, tol=1e-4)


def test_analyze_combines_all_parts():
    inp = make_input(leverage_ratio="3")
    a = analyze(inp)
    base = calculate(inp)
    assert a.annualized_return == base.annualized_return
    assert a.leverage == base.leverage
    assert a.market_condition.condition == "CONTANGO"
    assert a.break_even == calculate_break_even(inp)
    assert a.sensitivity == calculate_sensitivity(inp)


def test_result_warnings():
    assert result_warnings(analyze(make_input())) == []
    short = analyze(make_input(future_price="3100", maturity_date="2024-01-04"))
    msgs = result_warnings(short)
    assert "收益率异常高，请仔细检查输入参数" in msgs
    assert "持有期较短，交易成本对收益率影响较大" in msgs
    wide = analyze(make_input(future_price="3400", maturity_date="2024-12-01"))
    assert "期货与现货价差较大，请注意市场风险" in result_warnings(wide)


def test_input_accepts_dates_and_floats():
    inp = CalculationInput(
        investment_amount=100000,
        future_price=3050.5,
        spot_price=Decimal("3000"),
        current_date=dt.date(2024, 1, 1),
        maturity_date=dt.datetime(2024, 4, 1, 9, 30),
        annual_interest_rate="3.5",
        transaction_fee_rate=0.05,
        leverage_ratio="",
    )
    assert inp.future_price == Decimal("3050.5")
    assert inp.transaction_fee_rate == Decimal("0.05")
    assert inp.leverage_ratio is None
    assert inp.holding_days == 91


def test_prices_outside_decimal_range_raise_computation_error():
    with pytest.raises(ComputationError):
        calculate(make_input(spot_price="1e-999999", future_price="1e-999999"))
