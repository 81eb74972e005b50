from __future__ import annotations
import argparse
import datetime as dt
import json
import logging
import sys
from typing import List, Optional

from .report import export_record, sensitivity_frame, summary
from .session import CalculatorSession, SessionOutcome
from .data_models import FormData
from .utils import format_date_range, format_market_condition, format_number


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="carry-checker",
        description="期现套利年化收益计算 / Cash-and-carry arbitrage return calculator",
    )
    p.add_argument("--amount", required=True, help="投入资金")
    p.add_argument("--future", required=True, help="期货价格")
    p.add_argument("--spot", required=True, help="现货价格")
    p.add_argument("--current-date", default=dt.date.today().isoformat(), help="当前日期 YYYY-MM-DD")
    p.add_argument("--maturity-date", required=True, help="交割日期 YYYY-MM-DD")
    p.add_argument("--rate", required=True, help="年化利率（%%）")
    p.add_argument("--fee", required=True, help="单边交易手续费率（%%）")
    p.add_argument("--deposit-loss", default="", help="入金磨损率（%%）")
    p.add_argument("--withdrawal-loss", default="", help="出金磨损率（%%）")
    p.add_argument("--leverage", default="", help="杠杆倍数")
    p.add_argument("--json", action="store_true", help="以 JSON 输出完整分析结果")
    p.add_argument("--log-level", default="WARNING")
    return p


def form_from_args(args: argparse.Namespace) -> FormData:
    return FormData(
        investment_amount=args.amount,
        future_price=args.future,
        spot_price=args.spot,
        current_date=args.current_date,
        maturity_date=args.maturity_date,
        annual_interest_rate=args.rate,
        transaction_fee_rate=args.fee,
        enable_deposit_withdrawal_loss=bool(args.deposit_loss or args.withdrawal_loss),
        enable_leverage=bool(args.leverage),
        deposit_loss_rate=args.deposit_loss,
        withdrawal_loss_rate=args.withdrawal_loss,
        leverage_ratio=args.leverage,
    )


def render_text(form: FormData, outcome: SessionOutcome) -> str:
    a = outcome.analysis
    s = summary(a)
    inp = form.to_calculation_input()
    lines = [
        f"持有期: {format_date_range(inp.current_date, inp.maturity_date)}",
        f"年化收益率: {s['annualized_return']}    总收益率: {s['total_return']}",
        f"实际盈利: {s['actual_profit']}    年化盈利: {s['annualized_profit']}",
        f"风险等级: {s['risk_level']}",
        f"市场状态: {format_market_condition(a.market_condition.condition)}"
        f" ({format_number(a.market_condition.premium_percent)}%)",
        f"盈亏平衡期货价格: {format_number(a.break_even.break_even_future_price, 4)}"
        f"    盈亏平衡现货价格: {format_number(a.break_even.break_even_spot_price, 4)}",
    ]
    if a.leverage is not None:
        lines.append(
            f"杠杆: {a.leverage.leverage_ratio}倍  合约价值: {format_number(a.leverage.contract_value)}"
            f"  爆仓价格: {format_number(a.leverage.liquidation_price, 4)}"
        )
    lines.append("敏感性:")
    for _, row in sensitivity_frame(a).iterrows():
        lines.append(f"  {row['scenario']}: {row['display']}")
    for w in outcome.warnings:
        lines.append(f"⚠ {w}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    form = form_from_args(args)
    outcome = CalculatorSession().run(form)
    if not outcome.ok:
        for e in outcome.errors:
            print(f"✗ {e}", file=sys.stderr)
        return 1

    if args.json:
        payload = {
            "analysis": outcome.analysis.model_dump(mode="json"),
            "warnings": outcome.warnings,
            "record": export_record(form.to_calculation_input(), outcome.analysis),
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(render_text(form, outcome))
    return 0


if __name__ == "__main__":
    sys.exit(main())
