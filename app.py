# app.py
from __future__ import annotations
import logging

import streamlit as st

from settings import APP_TITLE, APP_TAGLINE, BACKEND_URL, INPUT_STEPS, REFRESH_POLL
from state import DashboardState, refresh_dashboard, CONFIG_ERROR, ERROR
from ui_components import metric_card, metric_grid, error_view, decomposition_chart, headline_premium, data_health

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title=APP_TITLE, page_icon="📊", layout="wide")


def _get_state() -> DashboardState:
    # One state object per browser session
    if "dashboard" not in st.session_state:
        st.session_state["dashboard"] = DashboardState()
    return st.session_state["dashboard"]


def _refresh(state: DashboardState):
    with st.spinner("Loading Market Data..."):
        refresh_dashboard(state, BACKEND_URL)


def _retry():
    # Button callback; runs before the next script run renders the outcome
    refresh_dashboard(_get_state(), BACKEND_URL)


def _assumption_input(box, label: str, name: str, value: float) -> float:
    with box:
        return st.number_input(label, value=value, step=INPUT_STEPS[name], format="%.1f", key=name)


def _render_dashboard(state: DashboardState):
    left, right = st.columns(2)
    with left:
        market_box = st.container(border=True)
        params_box = st.container(border=True)
        growth_box = st.container(border=True)
        long_box = st.container(border=True)
    with right:
        hist_box = st.container(border=True)
        current_box = st.container(border=True)
        expect_box = st.container(border=True)

    params_box.subheader("Parameters")
    growth_box.subheader("Long-term Parameters")
    expect_box.subheader("Parameters & Expectations")

    a = state.assumptions
    state.set_estimated_inflation(_assumption_input(params_box, "Estimated Inflation (%)", "estimated_inflation", a.estimated_inflation))
    state.set_estimated_growth(_assumption_input(growth_box, "20-yr Real GDP Growth Estimate (%)", "estimated_growth", a.estimated_growth))
    state.set_payout_ratio(_assumption_input(expect_box, "Payout Ratio (%)", "payout_ratio", a.payout_ratio))

    derived = state.derived()
    bond, equity, display = derived["bond"], derived["equity"], derived["display"]

    with market_box:
        st.subheader("Current Market Data")
        metric_grid([
            {"title": "Current Inflation Rate", "value": display["inflation_rate"]},
            {"title": "Current T-Bill Rate", "value": display["tbill_rate"]},
        ])
    with params_box:
        metric_card("Effective Real T-Bill Yield", bond["effective_real_yield"])
    with long_box:
        st.subheader("Long-term Analysis")
        metric_card("20-year Bond Yield", display["bond_yield_20y"])
        metric_card("Horizon Premium (20yr TIPS yield)", display["tips_yield_20y"])
        metric_card("Market Implied Inflation", bond["market_implied_inflation"], caption="20-yr Bond Yield - 20-yr TIPS Yield")
        metric_card("Δ Inflation", bond["delta_inflation"], caption="Market Implied - Expected")
        metric_card("Δ Growth", bond["delta_growth"], caption="Market Implied - Expected")

    with hist_box:
        st.subheader("Historical Metrics")
        metric_grid([
            {"title": "Past Inflation", "value": display["past_inflation_cagr"]},
            {"title": "Past Dividend Yield", "value": display["avg_dividend_yield"]},
            {"title": "Past Earnings Growth", "value": display["past_earnings_cagr"]},
            {"title": "Past CAPE Change", "value": display["past_cape_cagr"]},
            {"title": "Past Market Returns", "value": display["past_returns_cagr"]},
            {"title": "Past ROE", "value": display["past_roe"]},
        ])
    with current_box:
        st.subheader("Current Metrics")
        metric_grid([
            {"title": "Current Inflation", "value": display["current_inflation_cagr"]},
            {"title": "Current Earnings Growth", "value": display["current_earnings_cagr"]},
            {"title": "Current CAPE Change", "value": display["current_cape_cagr"]},
            {"title": "Current Market Returns", "value": display["current_returns_cagr"]},
        ])
    with expect_box:
        metric_grid([
            {"title": "Current P/E", "value": equity["current_pe"], "suffix": ""},
            {"title": "Expected CAPE", "value": equity["expected_cape"], "suffix": ""},
            {"title": "Current Dividend Yield", "value": display["current_dividend_yield"]},
            {"title": "Expected Dividend Yield", "value": equity["expected_dividend_yield"]},
            {"title": "Current ROE", "value": display["current_roe"]},
            {"title": "Expected ROE", "value": equity["expected_roe"]},
            {"title": "Expected CAPE Change", "value": equity["expected_cape_change"]},
            {"title": "Expected Earnings Growth", "value": equity["expected_earnings_growth"]},
        ])

    st.divider()
    col1, col2 = st.columns(2)
    with col1:
        metric_card("Estimated Bond Return", bond["estimated_bond_return"],
                    caption="20-yr Bond Yield + Δ Inflation + Δ Growth", size="###")
    with col2:
        metric_card("Expected Market Return", equity["expected_market_return"],
                    caption="Expected Dividend Yield + Expected Earnings Growth + Expected CAPE Change", size="###")
    headline_premium(derived["expected_equity_risk_premium"])

    st.divider()
    st.subheader("Return Decomposition")
    decomposition_chart(equity, bond)
    data_health(state.snapshot)


@st.fragment(run_every=REFRESH_POLL)
def _refresh_timer():
    # Ticks on its own; the fetch happens in the full rerun once a refresh is due
    state = _get_state()
    if state.refresh_due():
        st.rerun()
    st.caption(f"Next refresh in {state.seconds_until_refresh():.0f}s")


def main() -> None:
    st.title(APP_TITLE)
    st.caption(APP_TAGLINE)

    state = _get_state()

    if state.refresh_due():
        _refresh(state)

    st.sidebar.header("Controls")
    auto_refresh = st.sidebar.toggle("Auto refresh", value=True)
    if st.sidebar.button("Refresh now", disabled=state.status == CONFIG_ERROR):
        _refresh(state)

    if state.last_attempt is not None:
        st.sidebar.caption(f"Last refresh: {state.last_attempt.strftime('%Y-%m-%d %H:%M:%S UTC')}")

    if state.status in (ERROR, CONFIG_ERROR):
        error_view(state.error, on_retry=_retry if state.retryable else None)
    else:
        _render_dashboard(state)

    st.markdown("---")
    st.caption("Educational use only · Built with Streamlit.")
    # Turning the toggle off drops the timer; a configuration error never schedules one
    if auto_refresh and state.status != CONFIG_ERROR:
        _refresh_timer()


if __name__ == "__main__":
    main()
