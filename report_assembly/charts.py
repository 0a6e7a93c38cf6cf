import logging

import pandas as pd
import plotly.graph_objects as go
import plotly.io as pio

from .config import CAPTURE_BACKGROUND

logger = logging.getLogger(__name__)

HEADER_FILL = "#1e40af"
ROW_FILLS = ("#ffffff", "#f3f4f6")
TABLE_ROW_PX = 28
TABLE_HEADER_PX = 40


def apply_layout(fig: go.Figure, height: int = 320, showlegend: bool = False) -> go.Figure:
    """Centralize layout tweaks for consistent styling across dashboards."""
    fig.update_layout(
        height=height,
        margin=dict(l=24, r=24, t=24, b=24),
        showlegend=showlegend,
        template="plotly_white",
        font=dict(color="#1f2933"),
    )
    return fig


def print_layout(fig: go.Figure) -> go.Figure:
    """
    Return a copy of ``fig`` restyled for print. The live figure is never
    touched, so the dashboard keeps its own theme after an export.
    """
    printable = go.Figure(fig)
    printable.update_layout(
        font=dict(family="Helvetica", size=11, color="#1f2933"),
        paper_bgcolor=CAPTURE_BACKGROUND,
        plot_bgcolor=CAPTURE_BACKGROUND,
    )
    printable.update_xaxes(automargin=True)
    printable.update_yaxes(automargin=True)
    return printable


def configure_kaleido_scope() -> None:
    # Older kaleido releases expose a scope object; newer ones do not.
    scope = getattr(pio.kaleido, "scope", None)
    if scope is None:
        return
    try:
        scope.mathjax = None
        scope.default_format = "png"
    except AttributeError:
        logger.debug("Kaleido scope does not accept mathjax/default_format")


def figure_to_png(fig: go.Figure, width: int, height: int, scale: int) -> bytes:
    """Rasterize a figure through Kaleido. Raises when Kaleido is unavailable."""
    configure_kaleido_scope()
    return pio.to_image(
        print_layout(fig),
        format="png",
        width=width,
        height=height,
        scale=scale,
        engine="kaleido",
    )


def table_height(df: pd.DataFrame) -> int:
    return TABLE_HEADER_PX + TABLE_ROW_PX * max(len(df), 1)


def table_figure(df: pd.DataFrame, width: int, height: int) -> go.Figure:
    """Draw a DataFrame as a Plotly table so it can be rasterized like a chart."""
    columns = [str(c) for c in df.columns]
    cells = [df[c].astype(str).tolist() for c in df.columns]
    fills = [[ROW_FILLS[i % 2] for i in range(len(df))]] * max(len(columns), 1)
    fig = go.Figure(
        go.Table(
            header=dict(
                values=columns,
                fill_color=HEADER_FILL,
                font=dict(color="white", size=11),
                align="left",
                height=TABLE_HEADER_PX - 8,
            ),
            cells=dict(values=cells, fill_color=fills, align="left", height=TABLE_ROW_PX),
        )
    )
    fig.update_layout(width=width, height=height, margin=dict(l=4, r=4, t=4, b=4))
    return fig
