from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class TableDensity:
    item_width: str
    item_font: str
    item_padding: str
    numeric_width: str
    numeric_font: str
    numeric_padding: str
    header_font: str


# Wider tables get smaller type so a full year still fits one landscape page.
DENSITY_TIERS: Tuple[Tuple[int, TableDensity], ...] = (
    (9, TableDensity("170px", "9px", "5px 8px", "auto", "8px", "4px 3px", "8px")),
    (15, TableDensity("140px", "8px", "4px 6px", "48px", "7px", "3px 2px", "7px")),
    (21, TableDensity("110px", "7px", "3px 5px", "40px", "6px", "2px 2px", "6px")),
)
DENSEST = TableDensity("85px", "6.5px", "2px 4px", "34px", "5.5px", "1px 1px", "5.5px")


def table_density(total_columns: int) -> TableDensity:
    for limit, density in DENSITY_TIERS:
        if total_columns <= limit:
            return density
    return DENSEST


def table_density_css(total_columns: int) -> str:
    d = table_density(total_columns)
    return f"""
table {{ table-layout: fixed; font-size: {d.numeric_font} !important; }}
th, td {{ padding: {d.numeric_padding} !important; font-size: {d.numeric_font} !important;
  white-space: nowrap; overflow: hidden; text-overflow: ellipsis; text-align: center; }}
th {{ font-size: {d.header_font} !important; }}
th:first-child, td:first-child {{ width: {d.item_width}; min-width: {d.item_width};
  font-size: {d.item_font} !important; padding: {d.item_padding} !important; text-align: left; }}
th:not(:first-child), td:not(:first-child) {{ width: {d.numeric_width}; max-width: {d.numeric_width}; }}
"""


def header_band_css(color: str) -> str:
    return f"th {{ background: {color} !important; }}\n.header-band {{ background: {color}; }}\n"


@dataclass(frozen=True)
class ViewPreset:
    label: str
    slug: str
    css: str = ""
    accent: str = "#4f46e5"

    def overrides(self, total_columns: Optional[int] = None) -> str:
        """CSS handed to the single-view exporter for this view."""
        parts = [header_band_css(self.accent)]
        if total_columns:
            parts.append(table_density_css(total_columns))
        if self.css:
            parts.append(self.css)
        return "\n".join(parts)


CHART_GRID_CSS = """
.surface-panel { display: grid; grid-template-columns: repeat(2, 1fr); gap: 12px; }
.surface-panel > h2 { grid-column: 1 / -1; }
.surface-figure img { max-height: 280px; }
"""

VIEW_PRESETS: Dict[str, ViewPreset] = {
    "consolidated": ViewPreset(label="Consolidated statement", slug="consolidated", accent="#1e40af"),
    "branch": ViewPreset(label="Branch statement", slug="branch", accent="#4f46e5"),
    "sevilla": ViewPreset(label="Sevilla branch", slug="sucursal-sevilla", accent="#0f766e"),
    "labranza": ViewPreset(label="Labranza branch", slug="sucursal-labranza", accent="#b45309"),
    "sales_charts": ViewPreset(label="Sales charts", slug="graficos-ventas", css=CHART_GRID_CSS),
    "monthly_vs_annual": ViewPreset(
        label="Month vs annual comparison", slug="comparacion-mes-anual", css=CHART_GRID_CSS
    ),
    "ebitda_combo": ViewPreset(
        label="EBITDA combo",
        slug="combo-ebitda",
        accent="#047857",
        css=".surface-figure img { max-height: 320px; }\n",
    ),
    "ebitda_waterfall": ViewPreset(label="EBITDA waterfall", slug="comparativo-ebitda", accent="#047857"),
}


def get_preset(view_id: str) -> ViewPreset:
    preset = VIEW_PRESETS.get(view_id)
    if preset:
        return preset
    return ViewPreset(label=view_id.replace("_", " ").title(), slug=view_id)
