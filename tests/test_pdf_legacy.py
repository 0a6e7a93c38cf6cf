import re

import pytest
from PIL import Image

from report_assembly.pdf_legacy import PAGE_MARGIN_MM, FallbackPDF, pages_needed, tile_image, tile_pdf

# A4 portrait, 10mm margins: content is 190mm wide and 277mm tall.
CONTENT_W = 210 - 2 * PAGE_MARGIN_MM
CONTENT_H = 297 - 2 * PAGE_MARGIN_MM
PAGE_OBJECT = re.compile(rb"/Type\s*/Page(?!s)")


def image_for_height(mm_height, width_px=760):
    return Image.new("RGB", (width_px, round(width_px * mm_height / CONTENT_W)), "#1d4ed8")


@pytest.mark.parametrize(
    "mm_height, pages",
    [(100, 1), (CONTENT_H, 1), (CONTENT_H * 1.5, 2), (CONTENT_H * 3 - 5, 3)],
)
def test_pages_needed_follows_scaled_height(mm_height, pages):
    assert pages_needed(image_for_height(mm_height), 210, 297) == pages


def test_tile_image_adds_one_page_per_window():
    pdf = FallbackPDF("t", "now")
    pdf.set_auto_page_break(auto=False)
    image = image_for_height(CONTENT_H * 2.5)

    assert tile_image(pdf, image) == 3
    assert pdf.page_no() == 3
    assert pages_needed(image, pdf.w, pdf.h) == 3


def test_every_section_starts_on_a_new_page():
    """Two short sections and one spanning 1.2 pages take four pages, not two."""
    short = image_for_height(50)
    tall = image_for_height(CONTENT_H * 1.2)

    pdf_bytes = tile_pdf([short, short, tall], "report-2025-01-31", "2025-01-31 10:00")

    assert pdf_bytes.startswith(b"%PDF")
    assert len(PAGE_OBJECT.findall(pdf_bytes)) == 4


def test_tile_pdf_rejects_empty_input():
    with pytest.raises(ValueError):
        tile_pdf([], "empty")


def test_tile_pdf_flattens_transparency():
    rgba = Image.new("RGBA", (200, 100), (0, 0, 0, 0))
    assert tile_pdf([rgba], "transparent").startswith(b"%PDF")
