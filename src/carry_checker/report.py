from __future__ import annotations
import datetime as dt
from typing import Dict, Optional

import pandas as pd

from .data_models import AnalysisResult, CalculationInput, CalculationResult
from .utils import (
    format_currency,
    format_market_condition,
    format_number,
    format_percentage,
    format_risk_level,
    format_sensitivity,
)

# 结果字段说明（供界面 tooltip 使用）
TOOLTIPS = {
    "annualized_return": "年化收益率 = (净收益率 × 365 ÷ 持有天数) × 100%",
    "total_return": "总收益率 = 净收益率 × 100%",
    "holding_days": "持有天数 = 交割日期 - 当前日期",
    "risk_level": "风险等级基于杠杆、收益率大小和持有期长短综合评估",
    "price_difference": "价差收益 = (期货价格 - 现货价格) × 投入资金 ÷ 现货价格",
    "holding_cost": "持有成本 = 投入资金 × 年化利率 × 持有天数 ÷ 365",
    "transaction_cost": "交易成本 = 投入资金 × 手续费率 × 2（现货 + 期货）",
    "break_even_future_price": "盈亏平衡期货价格 = 现货价格 × (1 + 持有成本率 + 交易费率)",
    "market_condition": "升水/贴水根据期货与现货的价格关系判断",
}


def breakdown_frame(result: CalculationResult, investment_amount: Optional[float] = None) -> pd.DataFrame:
    """成本拆解表：收益为正，成本为负；可选给出占投入资金的百分比。"""
    b = result.breakdown
    rows = [
        ("价差收益", b.price_difference),
        ("持有成本", -b.holding_cost),
        ("交易成本", -b.transaction_cost),
    ]
    if b.deposit_loss is not None:
        rows.append(("入金磨损", -b.deposit_loss))
    if b.withdrawal_loss is not None:
        rows.append(("出金磨损", -b.withdrawal_loss))
    df = pd.DataFrame(rows, columns=["item", "amount"])
    # 仅用于展示
    df["amount"] = df["amount"].astype(float).round(2)
    if investment_amount:
        df["percent"] = (df["amount"] / float(investment_amount) * 100).round(4)
    return df


def sensitivity_frame(analysis: AnalysisResult) -> pd.DataFrame:
    s = analysis.sensitivity
    return pd.DataFrame(
        [
            ("利率 +1%", "interest_rate", s.interest_rate_sensitivity),
            ("交割日 -1 天", "time", s.time_sensitivity),
            ("现货价格 +1%", "price", s.price_sensitivity),
        ],
        columns=["scenario", "key", "delta"],
    ).assign(
        display=lambda d: d["delta"].map(format_sensitivity),
        delta=lambda d: d["delta"].astype(float),
    )


def summary(result: CalculationResult) -> Dict[str, str]:
    return {
        "annualized_return": format_percentage(result.annualized_return),
        "total_return": format_percentage(result.total_return),
        "holding_days": f"{result.holding_days}天",
        "actual_profit": format_currency(result.actual_profit),
        "annualized_profit": format_currency(result.annualized_profit),
        "risk_level": format_risk_level(result.risk_level),
    }


def export_record(inp: CalculationInput, analysis: AnalysisResult,
                  now: Optional[dt.datetime] = None) -> Dict[str, str]:
    """导出一条中文键名的计算记录。"""
    now = now or dt.datetime.now()
    record = {
        "计算时间": now.strftime("%Y-%m-%d %H:%M:%S"),
        "投入资金": format_currency(inp.investment_amount),
        "期货价格": format_number(inp.future_price, 4),
        "现货价格": format_number(inp.spot_price, 4),
        "当前日期": inp.current_date.isoformat(),
        "交割日期": inp.maturity_date.isoformat(),
        "持有天数": str(analysis.holding_days),
        "年化利率": f"{inp.annual_interest_rate}%",
        "交易手续费率": f"{inp.transaction_fee_rate}%",
        "年化收益率": format_percentage(analysis.annualized_return),
        "总收益率": format_percentage(analysis.total_return),
        "实际盈利": format_currency(analysis.actual_profit),
        "风险等级": format_risk_level(analysis.risk_level),
        "价差收益": format_currency(analysis.breakdown.price_difference),
        "持有成本": format_currency(analysis.breakdown.holding_cost),
        "交易成本": format_currency(analysis.breakdown.transaction_cost),
        "盈亏平衡期货价格": format_number(analysis.break_even.break_even_future_price, 4),
        "市场状态": format_market_condition(analysis.market_condition.condition),
        "升贴水率": format_percentage(analysis.market_condition.premium_percent),
    }
    if analysis.leverage is not None:
        lev = analysis.leverage
        record["杠杆倍数"] = f"{lev.leverage_ratio}倍"
        record["合约价值"] = format_currency(lev.contract_value)
        record["爆仓价格"] = format_number(lev.liquidation_price, 4)
    return record
