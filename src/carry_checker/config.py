from __future__ import annotations
from decimal import Decimal
from pydantic import BaseModel, ConfigDict


class Thresholds(BaseModel):
    """校验、风险分级和提示用到的全部阈值。"""

    model_config = ConfigDict(frozen=True)

    # 硬性校验（错误）
    max_price: Decimal = Decimal("1000000")
    max_interest_rate: Decimal = Decimal("50")
    max_fee_rate: Decimal = Decimal("10")
    max_loss_rate: Decimal = Decimal("100")
    max_leverage: Decimal = Decimal("100")
    min_holding_days: int = 1
    max_holding_days: int = 365
    max_price_divergence_percent: Decimal = Decimal("50")
    max_total_cost_rate: Decimal = Decimal("30")

    # 软性提示（警告）
    low_investment: Decimal = Decimal("1000")
    high_investment: Decimal = Decimal("10000000")
    high_price: Decimal = Decimal("100000")
    high_interest_rate: Decimal = Decimal("10")
    high_fee_rate: Decimal = Decimal("1")
    high_loss_rate: Decimal = Decimal("5")
    moderate_leverage: Decimal = Decimal("5")
    high_leverage: Decimal = Decimal("10")
    short_holding_days: int = 7
    long_holding_days: int = 180

    # 风险等级：|年化| < low_risk_return 或 持有 > low_risk_days → LOW
    low_risk_return: Decimal = Decimal("5")
    medium_risk_return: Decimal = Decimal("15")
    low_risk_days: int = 180
    medium_risk_days: int = 90

    # 升贴水中性区间（±0.5%，边界不含）
    neutral_premium_percent: Decimal = Decimal("0.5")

    # 结果提示
    abnormal_return: Decimal = Decimal("30")
    wide_premium_percent: Decimal = Decimal("10")


DEFAULT_THRESHOLDS = Thresholds()
