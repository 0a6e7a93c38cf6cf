import html

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from report_assembly import GeneratedHtmlCapture, ViewKey
from report_assembly.charts import apply_layout
from report_assembly.config import PLOTLY_CONFIG
from report_assembly.layout import (
    get_report_session,
    render_add_to_report_button,
    render_export_view_button,
    render_report_panel,
)
from report_assembly.logging_conf import configure_logging
from report_assembly.surfaces import Document, FigureSurface, HtmlSurface, PanelSurface, TableSurface

# =========================================================
# CONFIG
# =========================================================
st.set_page_config(page_title="Financial dashboards", layout="wide")
configure_logging()

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
BRANCHES = ["Sevilla", "Labranza"]
PERIODS = ["2024", "2025"]

APP_CSS = """
.block-container{ padding-top: 2rem; }
.small-muted{ color: #6b7280; font-size: 0.9rem; }
"""
st.markdown(f"<style>{APP_CSS}</style>", unsafe_allow_html=True)


# =========================================================
# SAMPLE DATA
# =========================================================
@st.cache_data(show_spinner=False)
def monthly_results(period: str) -> pd.DataFrame:
    rng = np.random.default_rng(int(period))
    rows = []
    for branch in BRANCHES:
        base = 120_000 if branch == "Sevilla" else 80_000
        sales = base + rng.normal(0, base * 0.08, len(MONTHS)).cumsum() / 4
        costs = sales * rng.uniform(0.62, 0.78, len(MONTHS))
        for month, s, c in zip(MONTHS, sales, costs):
            rows.append({"branch": branch, "month": month, "sales": round(s), "costs": round(c)})
    df = pd.DataFrame(rows)
    df["ebitda"] = df["sales"] - df["costs"]
    return df


def statement_table(df: pd.DataFrame) -> pd.DataFrame:
    wide = df.pivot_table(index="month", columns="branch", values=["sales", "costs", "ebitda"], aggfunc="sum")
    wide = wide.reindex(MONTHS)
    wide.columns = [f"{metric} {branch}" for metric, branch in wide.columns]
    return wide.T.reset_index().rename(columns={"index": "Item"})


def fmt_usd(x: float) -> str:
    return f"${x:,.0f}"


# =========================================================
# SIDEBAR
# =========================================================
session = get_report_session()
# Surfaces are rebuilt on every rerun, so the page document is too.
document = Document()
document.add_css(APP_CSS)
st.sidebar.header("Filters")
period = st.sidebar.selectbox("Period", PERIODS, index=len(PERIODS) - 1)
branch_filter = st.sidebar.multiselect("Branches", BRANCHES, default=BRANCHES)
view = st.sidebar.radio(
    "View",
    ["Sales charts", "Consolidated statement", "EBITDA combo"],
    index=0,
)
with st.sidebar:
    st.markdown("---")
    render_report_panel(session)

data = monthly_results(period)
if branch_filter:
    data = data[data["branch"].isin(branch_filter)]
filters = {"branches": ",".join(sorted(branch_filter))}

st.title(view)
st.markdown(f"<div class='small-muted'>Period {html.escape(period)}</div>", unsafe_allow_html=True)

# =========================================================
# VIEWS
# =========================================================
if view == "Sales charts":
    sales_fig = apply_layout(px.line(data, x="month", y="sales", color="branch", markers=True), showlegend=True)
    mix_fig = apply_layout(px.bar(data, x="month", y=["sales", "costs"], barmode="group"), showlegend=True)
    c1, c2 = st.columns(2)
    c1.plotly_chart(sales_fig, config=PLOTLY_CONFIG)
    c2.plotly_chart(mix_fig, config=PLOTLY_CONFIG)

    panel = document.mount(
        PanelSurface(
            [FigureSurface(sales_fig, "Monthly sales"), FigureSurface(mix_fig, "Sales vs costs")],
            title=f"Sales charts {period}",
        )
    )
    key = ViewKey.of("sales_charts", period, filters)
    a, b = st.columns(2)
    with a:
        render_add_to_report_button(session, panel, view_name="Sales charts", view_key=key)
    with b:
        render_export_view_button(session, panel, "sales_charts", period)

elif view == "Consolidated statement":
    table = statement_table(data)
    st.dataframe(table, hide_index=True, width="stretch")
    surface = document.mount(TableSurface(table, title=f"Consolidated statement {period}"))
    key = ViewKey.of("consolidated", period, filters)
    a, b = st.columns(2)
    with a:
        render_add_to_report_button(session, surface, view_name="Consolidated statement", view_key=key)
    with b:
        render_export_view_button(session, surface, "consolidated", period, total_columns=len(table.columns))

else:
    monthly = data.groupby("month", sort=False)[["sales", "ebitda"]].sum().reindex(MONTHS).reset_index()
    combo = go.Figure()
    combo.add_bar(x=monthly["month"], y=monthly["sales"], name="Sales")
    combo.add_scatter(x=monthly["month"], y=monthly["ebitda"], name="EBITDA", yaxis="y2", mode="lines+markers")
    combo.update_layout(yaxis2=dict(overlaying="y", side="right"))
    apply_layout(combo, height=380, showlegend=True)
    st.plotly_chart(combo, config=PLOTLY_CONFIG)

    margin = monthly["ebitda"].sum() / max(monthly["sales"].sum(), 1)
    notes = (
        f"<h3>Highlights</h3><p>Total sales {fmt_usd(monthly['sales'].sum())}, "
        f"EBITDA {fmt_usd(monthly['ebitda'].sum())} ({margin:.1%} margin).</p>"
    )
    st.markdown(notes, unsafe_allow_html=True)

    chart = FigureSurface(combo, "Sales and EBITDA")
    summary = HtmlSurface(notes)
    panel = document.mount(PanelSurface([chart, summary], title=f"EBITDA combo {period}"))

    async def combo_layout() -> str:
        # Chart and highlights side by side, the way the printed page should look.
        return (
            "<div style='display:grid;grid-template-columns:2fr 1fr;gap:12px'>"
            f"{chart.outer_html()}<div>{notes}</div></div>"
        )

    key = ViewKey.of("ebitda_combo", period, filters)
    a, b, c = st.columns(3)
    with a:
        render_add_to_report_button(
            session, panel, view_name="EBITDA combo (chart)", view_key=key, key="add_combo_image"
        )
    with b:
        render_add_to_report_button(
            session,
            panel,
            view_name="EBITDA combo (layout)",
            view_key=ViewKey.of("ebitda_combo_layout", period, filters),
            spec=GeneratedHtmlCapture(combo_layout),
            key="add_combo_html",
        )
    with c:
        render_export_view_button(session, panel, "ebitda_combo", period)
