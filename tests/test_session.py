import asyncio
import datetime as dt
import json

from carry_checker.cli import main
from carry_checker.data_models import FormData
from carry_checker.report import breakdown_frame, export_record, sensitivity_frame
from carry_checker.session import CalculatorSession, LatestOnlyRunner, example_form, seed_widgets

FORM = dict(
    investment_amount="100000",
    future_price="3050",
    spot_price="3000",
    current_date="2024-01-01",
    maturity_date="2024-04-01",
    annual_interest_rate="3.5",
    transaction_fee_rate="0.05",
)


def test_session_runs_full_pipeline():
    out = CalculatorSession().run(FormData(**FORM))
    assert out.ok
    assert out.errors == []
    assert out.analysis.holding_days == 91
    assert out.analysis.market_condition.condition == "CONTANGO"


def test_session_reports_validation_errors():
    out = CalculatorSession().run(dict(FORM, maturity_date="2023-12-01"))
    assert not out.ok
    assert "交割日期必须晚于当前日期" in out.errors


def test_session_accepts_camel_case_mapping():
    out = CalculatorSession().run({"investmentAmount": "100000", "futurePrice": "3050"})
    assert not out.ok
    assert "请输入现货价格" in out.errors


def test_session_merges_result_warnings():
    out = CalculatorSession().run(FormData(**dict(FORM, maturity_date="2024-01-04", future_price="3100")))
    assert out.ok
    assert out.warnings.count("持有期较短，交易成本对收益率影响较大") == 1
    assert "收益率异常高，请仔细检查输入参数" in out.warnings


def test_example_form_is_three_months_out():
    f = example_form(dt.date(2024, 1, 31))
    assert f.maturity_date == "2024-04-30"
    out = CalculatorSession().run(f)
    assert out.ok
    assert out.analysis.leverage is not None
    assert out.analysis.breakdown.deposit_loss is not None


def test_report_frames():
    a = CalculatorSession().run(example_form(dt.date(2024, 1, 1))).analysis
    df = breakdown_frame(a, 100000)
    assert list(df["item"]) == ["价差收益", "持有成本", "交易成本", "入金磨损", "出金磨损"]
    assert (df["amount"].iloc[1:] < 0).all()
    sens = sensitivity_frame(a)
    assert list(sens["key"]) == ["interest_rate", "time", "price"]
    assert sens["display"].str.endswith("%").all()


def test_export_record_includes_leverage():
    f = example_form(dt.date(2024, 1, 1))
    a = CalculatorSession().run(f).analysis
    rec = export_record(f.to_calculation_input(), a, now=dt.datetime(2024, 1, 1, 9, 0))
    assert rec["计算时间"] == "2024-01-01 09:00:00"
    assert rec["杠杆倍数"] == "3倍"
    assert rec["风险等级"] == "高风险"


def test_latest_only_runner_discards_stale_requests():
    async def scenario():
        runner = LatestOnlyRunner(lambda x: x * 2, delay=0.01)
        first = asyncio.ensure_future(runner.submit(1))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(runner.submit(2))
        return await first, await second

    assert asyncio.run(scenario()) == (None, 4)


def test_latest_only_runner_single_request():
    async def scenario():
        runner = LatestOnlyRunner(CalculatorSession().run, delay=0)
        return await runner.submit(FormData(**FORM))

    out = asyncio.run(scenario())
    assert out.ok


def test_cli_json_output(capsys):
    code = main([
        "--amount", "100000", "--future", "3050", "--spot", "3000",
        "--current-date", "2024-01-01", "--maturity-date", "2024-04-01",
        "--rate", "3.5", "--fee", "0.05", "--leverage", "3", "--json",
    ])
    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["analysis"]["risk_level"] == "HIGH"
    assert payload["analysis"]["leverage"]["contract_value"] == "300000"


def test_cli_text_and_errors(capsys):
    args = ["--amount", "100000", "--future", "3050", "--spot", "3000",
            "--current-date", "2024-01-01", "--rate", "3.5", "--fee", "0.05"]
    assert main(args + ["--maturity-date", "2024-04-01"]) == 0
    assert "年化收益率: 2.78%" in capsys.readouterr().out
    assert main(args + ["--maturity-date", "2023-12-01"]) == 1
    assert "交割日期必须晚于当前日期" in capsys.readouterr().err


def test_session_reports_extreme_prices_as_errors():
    out = CalculatorSession().run(FormData(**dict(FORM, spot_price="1e-999999")))
    assert not out.ok
    assert "期货与现货价格差异过大（超过50%），请检查输入" in out.errors
    both = CalculatorSession().run(FormData(**dict(FORM, spot_price="1e-999999", future_price="1e-999999")))
    assert not both.ok
    assert both.errors == ["输入数值超出可计算范围，请检查输入"]


def test_seed_widgets_overwrites_every_form_key():
    state = {"investment_amount": "1", "enable_leverage": False, "outcome": "kept"}
    seed_widgets(state, example_form(dt.date(2024, 1, 1)))
    assert set(FormData.model_fields) <= set(state)
    assert state["investment_amount"] == "100000"
    assert state["enable_leverage"] is True
    assert state["outcome"] == "kept"
    seed_widgets(state, FormData(current_date="2024-01-01"))
    assert state["leverage_ratio"] == ""
    assert state["enable_leverage"] is False
    assert FormData(**{k: state[k] for k in FormData.model_fields}) == FormData(current_date="2024-01-01")
