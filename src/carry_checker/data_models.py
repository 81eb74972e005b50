from __future__ import annotations
import datetime as dt
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .utils import holding_days, is_blank, to_date, to_decimal

RiskLevel = Literal["LOW", "MEDIUM", "HIGH"]
Condition = Literal["CONTANGO", "BACKWARDATION", "NEUTRAL"]

_REQUIRED_DECIMALS = (
    "future_price",
    "spot_price",
    "annual_interest_rate",
    "transaction_fee_rate",
    "investment_amount",
)
_OPTIONAL_DECIMALS = ("deposit_loss_rate", "withdrawal_loss_rate", "leverage_ratio")


class CalculationInput(BaseModel):
    """一次计算的完整输入。百分比字段均以百分数表示（3.5 表示 3.5%）。"""

    model_config = ConfigDict(frozen=True)

    future_price: Decimal
    spot_price: Decimal
    current_date: dt.date
    maturity_date: dt.date
    annual_interest_rate: Decimal
    transaction_fee_rate: Decimal
    investment_amount: Decimal          # 投入资金
    deposit_loss_rate: Optional[Decimal] = None     # 入金磨损率
    withdrawal_loss_rate: Optional[Decimal] = None  # 出金磨损率
    leverage_ratio: Optional[Decimal] = None        # 杠杆倍数

    @field_validator(*_REQUIRED_DECIMALS, mode="before")
    @classmethod
    def _coerce_required(cls, v):
        d = to_decimal(v)
        # 解析失败时原样交给 pydantic 报错
        return v if d is None else d

    @field_validator(*_OPTIONAL_DECIMALS, mode="before")
    @classmethod
    def _coerce_optional(cls, v):
        if is_blank(v):
            return None
        d = to_decimal(v)
        return v if d is None else d

    @field_validator("current_date", "maturity_date", mode="before")
    @classmethod
    def _coerce_date(cls, v):
        d = to_date(v)
        return v if d is None else d

    @property
    def holding_days(self) -> int:
        return holding_days(self.current_date, self.maturity_date)


class Breakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    price_difference: Decimal     # 价差收益（未加杠杆）
    holding_cost: Decimal
    transaction_cost: Decimal
    deposit_loss: Optional[Decimal] = None
    withdrawal_loss: Optional[Decimal] = None


class LeverageInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    leverage_ratio: Decimal
    margin_required: Decimal      # 所需保证金
    contract_value: Decimal       # 合约价值
    liquidation_price: Decimal    # 爆仓价格
    leveraged_profit: Decimal     # 杠杆后实际盈利


class CalculationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    annualized_return: Decimal    # %
    holding_days: int
    total_return: Decimal         # %
    actual_profit: Decimal        # 持有期实际盈利金额
    annualized_profit: Decimal    # 年化盈利金额
    risk_level: RiskLevel
    breakdown: Breakdown
    leverage: Optional[LeverageInfo] = None


class BreakEven(BaseModel):
    model_config = ConfigDict(frozen=True)

    break_even_future_price: Decimal
    break_even_spot_price: Decimal


class Sensitivity(BaseModel):
    model_config = ConfigDict(frozen=True)

    interest_rate_sensitivity: Decimal  # 利率 +1 个百分点
    time_sensitivity: Decimal           # 交割日提前 1 天
    price_sensitivity: Decimal          # 现货价格 +1%


class MarketCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    condition: Condition
    premium: Decimal
    premium_percent: Decimal


class AnalysisResult(CalculationResult):
    break_even: BreakEven
    sensitivity: Sensitivity
    market_condition: MarketCondition


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = []
    warnings: List[str] = []


class FormData(BaseModel):
    """表单原始输入（字符串），高级选项由开关控制是否参与计算。"""

    investment_amount: str = ""
    future_price: str = ""
    spot_price: str = ""
    current_date: str = ""
    maturity_date: str = ""
    annual_interest_rate: str = ""
    transaction_fee_rate: str = ""
    enable_deposit_withdrawal_loss: bool = False
    enable_leverage: bool = False
    deposit_loss_rate: str = ""
    withdrawal_loss_rate: str = ""
    leverage_ratio: str = ""

    def active_fields(self) -> dict:
        """参与校验/计算的字段；关闭的高级选项视为未填写。"""
        data = self.model_dump(exclude={"enable_deposit_withdrawal_loss", "enable_leverage"})
        if not self.enable_deposit_withdrawal_loss:
            data["deposit_loss_rate"] = ""
            data["withdrawal_loss_rate"] = ""
        if not self.enable_leverage:
            data["leverage_ratio"] = ""
        return data

    def to_calculation_input(self) -> Optional[CalculationInput]:
        """必填项缺失或无法解析时返回 None。"""
        data = self.active_fields()
        parsed = {}
        for name in _REQUIRED_DECIMALS:
            d = to_decimal(data[name])
            if d is None:
                return None
            parsed[name] = d
        for name in ("current_date", "maturity_date"):
            d = to_date(data[name])
            if d is None:
                return None
            parsed[name] = d
        for name in _OPTIONAL_DECIMALS:
            # 无法解析的可选项按未填写处理
            parsed[name] = None if is_blank(data[name]) else to_decimal(data[name])
        return CalculationInput(**parsed)
