# ui_components.py
from __future__ import annotations
from dataclasses import astuple
from typing import Callable, Dict, Optional, List

import pandas as pd
import altair as alt
import streamlit as st

from settings import ENDPOINTS
from data_sources import MarketSnapshot
from metrics import available, format_value

COLOR_MAP = {
    "accent": "#2563EB",
    "positive": "#10B981",
    "negative": "#EF4444",
    "grey": "#9CA3AF",
}

# Components of the expected market return, in chart order
DECOMPOSITION = [
    ("Expected dividend yield", "expected_dividend_yield"),
    ("Expected earnings growth", "expected_earnings_growth"),
    ("Expected CAPE change", "expected_cape_change"),
]


def metric_card(title: str, value: Optional[float], suffix: str = "%", caption: Optional[str] = None, size: str = "####"):
    value_str = format_value(value, suffix)
    color = COLOR_MAP["accent"] if available(value) else COLOR_MAP["grey"]
    with st.container(border=True):
        st.markdown(f"{size} {title}")
        st.markdown(
            f"<div style='font-size:1.6rem;font-weight:700;color:{color};'>{value_str}</div>",
            unsafe_allow_html=True,
        )
        if caption:
            st.caption(caption)


def metric_grid(items: List[Dict], columns: int = 2):
    cols = st.columns(columns)
    for i, item in enumerate(items):
        with cols[i % columns]:
            metric_card(item["title"], item.get("value"), item.get("suffix", "%"), item.get("caption"))


def error_view(message: str, on_retry: Optional[Callable[[], None]] = None):
    """Render the error state. Without `on_retry` there is no Retry button."""
    st.error(f"**Error**  \n{message}")
    if on_retry is not None:
        st.button("Retry", type="primary", on_click=on_retry)


def decomposition_frame(equity: Dict[str, Optional[float]], bond: Dict[str, Optional[float]]) -> pd.DataFrame:
    rows = []
    for label, key in DECOMPOSITION + [("Expected market return", "expected_market_return")]:
        rows.append({"component": label, "value": equity.get(key), "group": "Equity"})
    rows.append({"component": "Estimated bond return", "value": bond.get("estimated_bond_return"), "group": "Bond"})
    df = pd.DataFrame(rows)
    return df.dropna(subset=["value"]).reset_index(drop=True)


def decomposition_chart(equity: Dict[str, Optional[float]], bond: Dict[str, Optional[float]]):
    df = decomposition_frame(equity, bond)
    if df.empty:
        st.info("Return decomposition: N/A")
        return
    chart = alt.Chart(df).mark_bar().encode(
        x=alt.X("value:Q", title="% per year"),
        y=alt.Y("component:N", sort=None, title=None),
        color=alt.condition(
            alt.datum.value >= 0,
            alt.value(COLOR_MAP["positive"]),
            alt.value(COLOR_MAP["negative"]),
        ),
        tooltip=["component", alt.Tooltip("value:Q", format=".2f")],
    ).properties(height=200)
    st.altair_chart(chart, width="stretch")


def headline_premium(value: Optional[float]):
    color = COLOR_MAP["accent"] if available(value) else COLOR_MAP["grey"]
    st.markdown(f"""
<div style="padding:18px 22px;border-radius:12px;text-align:center;background:linear-gradient(90deg, rgba(99,102,241,0.15), rgba(34,211,238,0.15));border:1px solid rgba(0,0,0,0.05)">
<h2 style="margin-bottom:6px;">Expected Equity Risk Premium</h2>
<div style="font-size:2.4rem;font-weight:700;color:{color};">{format_value(value, "%")}</div>
<div style="color:#4B5563;">Expected Market Return - Estimated Bond Return</div>
</div>
""", unsafe_allow_html=True)


def _status(values) -> str:
    flags = [available(v) for v in values]
    if all(flags):
        return "OK"
    return "Partial" if any(flags) else "Missing"


HEALTH_LABELS = {
    "inflation": "Inflation",
    "tbill": "T-Bill",
    "long_term_rates": "Long-term rates",
    "equity_metrics": "Equity metrics",
    "equity": "Equity",
}


def _endpoint_values(snapshot: MarketSnapshot) -> Dict[str, tuple]:
    # Keyed like settings.ENDPOINTS; a missing payload counts as one missing value
    def fields_of(obj):
        return astuple(obj) if obj is not None else (None,)
    return {
        "inflation": (snapshot.inflation_rate,),
        "tbill": (snapshot.tbill_rate,),
        "long_term_rates": fields_of(snapshot.long_term_rates),
        "equity_metrics": fields_of(snapshot.equity_metrics),
        "equity": fields_of(snapshot.equity),
    }


def data_health_rows(snapshot: Optional[MarketSnapshot]) -> List[Dict]:
    if snapshot is None:
        return []
    values = _endpoint_values(snapshot)
    return [
        {
            "Data": HEALTH_LABELS.get(name, name),
            "Endpoint": path,
            "Updated (UTC)": str(snapshot.fetched_at),
            "Status": _status(values.get(name, (None,))),
        }
        for name, path in ENDPOINTS.items()
    ]


def data_health(snapshot: Optional[MarketSnapshot]):
    st.subheader("Data Health")
    st.dataframe(pd.DataFrame(data_health_rows(snapshot)), hide_index=True)
