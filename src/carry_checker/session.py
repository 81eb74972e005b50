from __future__ import annotations
import asyncio
import datetime as dt
import logging
from typing import Any, Callable, List, Mapping, Optional, Union

import pandas as pd
from pydantic import BaseModel

from .calculations import ComputationError, analyze, result_warnings
from .config import Thresholds
from .data_models import AnalysisResult, FormData
from .utils import dedupe
from .validation import FIELD_ALIASES, validate

logger = logging.getLogger(__name__)


class SessionOutcome(BaseModel):
    analysis: Optional[AnalysisResult] = None
    errors: List[str] = []
    warnings: List[str] = []

    @property
    def ok(self) -> bool:
        return self.analysis is not None


def example_form(today: Optional[dt.date] = None) -> FormData:
    """示例：10 万投入，3 个月后交割，启用出入金磨损与 3 倍杠杆。"""
    today = today or dt.date.today()
    maturity = (pd.Timestamp(today) + pd.DateOffset(months=3)).date()
    return FormData(
        investment_amount="100000",
        future_price="3050",
        spot_price="3000",
        current_date=today.isoformat(),
        maturity_date=maturity.isoformat(),
        annual_interest_rate="3.5",
        transaction_fee_rate="0.05",
        enable_deposit_withdrawal_loss=True,
        enable_leverage=True,
        deposit_loss_rate="0.1",
        withdrawal_loss_rate="0.1",
        leverage_ratio="3",
    )


def seed_widgets(state: Any, form: FormData) -> None:
    """把表单写入 st.session_state 中以字段名为 key 的控件值。"""
    for key, value in form.model_dump().items():
        state[key] = value


class CalculatorSession:
    """表单 → 校验 → 分析 的同步流程；每次调用都从头计算。"""

    def __init__(self, thresholds: Optional[Thresholds] = None):
        self.thresholds = thresholds

    def run(self, form: Union[FormData, Mapping[str, Any]]) -> SessionOutcome:
        if not isinstance(form, FormData):
            form = FormData(**{FIELD_ALIASES.get(k, k): v for k, v in dict(form).items()})

        validation = validate(form, self.thresholds)
        if not validation.is_valid:
            return SessionOutcome(errors=validation.errors, warnings=validation.warnings)

        inp = form.to_calculation_input()
        if inp is None:
            return SessionOutcome(errors=["请填写所有必填字段"], warnings=validation.warnings)

        try:
            analysis = analyze(inp, self.thresholds)
        except ComputationError as exc:
            logger.warning("calculation rejected: %s", exc)
            return SessionOutcome(errors=[str(exc)], warnings=validation.warnings)

        warnings = dedupe(validation.warnings + result_warnings(analysis, self.thresholds))
        return SessionOutcome(analysis=analysis, warnings=warnings)


class LatestOnlyRunner:
    """防抖 + 只保留最新请求的结果。

    每次 submit() 会取消上一个尚未完成的请求；被取代的请求返回 None。
    """

    def __init__(self, func: Callable[..., Any], delay: float = 0.5):
        self._func = func
        self._delay = delay
        self._task: Optional[asyncio.Future] = None
        self._generation = 0

    async def _run(self, args: tuple) -> Any:
        await asyncio.sleep(self._delay)
        return self._func(*args)

    async def submit(self, *args: Any) -> Any:
        self._generation += 1
        generation = self._generation
        if self._task is not None and not self._task.done():
            self._task.cancel()
        task = asyncio.ensure_future(self._run(args))
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if task.cancelled() and generation != self._generation:
                logger.debug("request %d superseded by %d", generation, self._generation)
                return None
            raise
        if generation != self._generation:
            return None
        return result
