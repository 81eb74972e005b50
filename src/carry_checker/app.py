import datetime as dt

import streamlit as st

from carry_checker.data_models import FormData
from carry_checker.report import TOOLTIPS, breakdown_frame, export_record, sensitivity_frame, summary
from carry_checker.session import CalculatorSession, example_form, seed_widgets
from carry_checker.utils import RISK_COLORS, format_currency, format_market_condition, format_number

st.set_page_config(page_title="Cash-and-Carry Calculator", layout="wide")

# Global language selector (stored in session state)
LANG_OPTIONS = ["English", "中文"]
if "lang_mode" not in st.session_state:
    st.session_state["lang_mode"] = LANG_OPTIONS[1]

st.sidebar.selectbox(
    "Language / 语言",
    LANG_OPTIONS,
    index=LANG_OPTIONS.index(st.session_state["lang_mode"]),
    key="lang_mode",
)


def tr(cn: str, en: str) -> str:
    return cn if st.session_state.get("lang_mode") == "中文" else en


st.title(tr("期现套利年化收益计算器", "Cash-and-Carry Arbitrage Calculator"))

# 控件以字段名为 key 保存在 session_state 中，仅在首次加载或点击按钮时写入
if "investment_amount" not in st.session_state:
    seed_widgets(st.session_state, FormData(current_date=dt.date.today().isoformat()))

if st.sidebar.button(tr("载入示例", "Load example")):
    seed_widgets(st.session_state, example_form())
if st.sidebar.button(tr("重置", "Reset")):
    seed_widgets(st.session_state, FormData(current_date=dt.date.today().isoformat()))
    st.session_state.pop("outcome", None)

col1, col2 = st.columns(2)
with col1:
    st.text_input(tr("投入资金", "Investment amount"), key="investment_amount")
    st.text_input(tr("期货价格", "Futures price"), key="future_price")
    st.text_input(tr("现货价格", "Spot price"), key="spot_price")
    st.text_input(tr("年化利率（%）", "Annual interest rate (%)"), key="annual_interest_rate")
with col2:
    st.text_input(tr("当前日期", "Current date"), key="current_date", help="YYYY-MM-DD")
    st.text_input(tr("交割日期", "Maturity date"), key="maturity_date", help="YYYY-MM-DD")
    st.text_input(tr("交易手续费率（%）", "Transaction fee rate (%)"), key="transaction_fee_rate")

with st.expander(tr("高级选项", "Advanced options")):
    enable_loss = st.checkbox(tr("计算出入金磨损", "Include deposit/withdrawal loss"),
                              key="enable_deposit_withdrawal_loss",
                              help=tr("考虑交易所出入金过程中可能产生的磨损费用",
                                      "Fees lost when moving funds in and out of the exchange"))
    st.text_input(tr("入金磨损率（%）", "Deposit loss rate (%)"), key="deposit_loss_rate",
                  disabled=not enable_loss)
    st.text_input(tr("出金磨损率（%）", "Withdrawal loss rate (%)"), key="withdrawal_loss_rate",
                  disabled=not enable_loss)
    enable_leverage = st.checkbox(tr("启用杠杆", "Enable leverage"), key="enable_leverage")
    st.text_input(tr("杠杆倍数", "Leverage ratio"), key="leverage_ratio", disabled=not enable_leverage)

form = FormData(**{field: st.session_state[field] for field in FormData.model_fields})

# Streamlit 每次交互都会整页重跑，结果总是对应当前输入
if st.button(tr("开始计算", "Calculate")) or "outcome" in st.session_state:
    st.session_state["outcome"] = CalculatorSession().run(form)

outcome = st.session_state.get("outcome")
if outcome is None:
    st.info(tr("填写参数后点击“开始计算”。", "Fill in the form and click Calculate."))
    st.stop()

for e in outcome.errors:
    st.error(e)
for w in outcome.warnings:
    st.warning(w)
if not outcome.ok:
    st.stop()

a = outcome.analysis
s = summary(a)
m1, m2, m3, m4 = st.columns(4)
m1.metric(tr("年化收益率", "Annualized return"), s["annualized_return"], help=TOOLTIPS["annualized_return"])
m2.metric(tr("总收益率", "Total return"), s["total_return"], help=TOOLTIPS["total_return"])
m3.metric(tr("持有天数", "Holding days"), s["holding_days"], help=TOOLTIPS["holding_days"])
m4.metric(tr("实际盈利", "Actual profit"), s["actual_profit"])
st.markdown(
    f"**{tr('风险等级', 'Risk level')}:** "
    f"<span style='color:{RISK_COLORS[a.risk_level]}'>{s['risk_level']}</span>",
    unsafe_allow_html=True,
)

st.subheader(tr("成本拆解", "Cost breakdown"))
st.dataframe(breakdown_frame(a, float(form.to_calculation_input().investment_amount)),
             use_container_width=True, hide_index=True)

if a.leverage is not None:
    st.subheader(tr("杠杆信息", "Leverage"))
    l1, l2, l3 = st.columns(3)
    l1.metric(tr("合约价值", "Contract value"), format_currency(a.leverage.contract_value))
    l2.metric(tr("所需保证金", "Margin required"), format_currency(a.leverage.margin_required))
    l3.metric(tr("爆仓价格", "Liquidation price"), format_number(a.leverage.liquidation_price, 4))

st.subheader(tr("分析", "Analysis"))
c1, c2 = st.columns(2)
c1.metric(tr("盈亏平衡期货价格", "Break-even futures price"),
          format_number(a.break_even.break_even_future_price, 4),
          help=TOOLTIPS["break_even_future_price"])
c2.metric(tr("市场状态", "Market condition"), format_market_condition(a.market_condition.condition),
          f"{format_number(a.market_condition.premium_percent)}%", help=TOOLTIPS["market_condition"])
st.dataframe(sensitivity_frame(a)[["scenario", "display"]], use_container_width=True, hide_index=True)

with st.expander(tr("导出记录", "Export record")):
    st.json(export_record(form.to_calculation_input(), a))
