import pytest

from report_assembly.report_presets import (
    DENSEST,
    DENSITY_TIERS,
    VIEW_PRESETS,
    get_preset,
    table_density,
    table_density_css,
)


@pytest.mark.parametrize(
    "columns, tier",
    [(5, 0), (9, 0), (10, 1), (15, 1), (21, 2)],
)
def test_table_density_tiers(columns, tier):
    assert table_density(columns) == DENSITY_TIERS[tier][1]


def test_wide_tables_get_the_densest_tier():
    assert table_density(40) == DENSEST
    assert f"font-size: {DENSEST.numeric_font}" in table_density_css(40)


def test_preset_overrides_carry_accent_and_density():
    preset = VIEW_PRESETS["sevilla"]
    css = preset.overrides(total_columns=14)
    assert "#0f766e" in css
    assert DENSITY_TIERS[1][1].item_width in css

    assert "table-layout" not in preset.overrides()


def test_chart_presets_include_grid_css():
    assert "grid-template-columns" in VIEW_PRESETS["sales_charts"].overrides()


def test_unknown_view_gets_a_generic_preset():
    preset = get_preset("cash_flow")
    assert preset.slug == "cash_flow"
    assert preset.label == "Cash Flow"
