"""
Local fallback renderer: tile raster captures across A4 pages with FPDF.

Used only when the remote renderer is unavailable. Each section bitmap is
scaled to the content width and drawn again on every following page at a
decreasing vertical offset until its full height has been shown.
"""
import math
from typing import Sequence

from fpdf import FPDF, XPos, YPos
from PIL import Image

PAGE_MARGIN_MM = 10
FOOTER_NOTE = "Generated in compatibility mode"


def _pdf_safe_text(text: str) -> str:
    if text is None:
        return ""
    return str(text).encode("latin-1", "replace").decode("latin-1")


class FallbackPDF(FPDF):
    def __init__(self, title: str, generated: str):
        super().__init__(orientation="P", unit="mm", format="A4")
        self.report_title = title
        self.generated = generated

    def footer(self):
        self.set_y(-8)
        self.set_text_color(120, 120, 120)
        self.set_font("Helvetica", "", 7)
        w = self.w - self.l_margin - self.r_margin
        left = f"{self.report_title} | {FOOTER_NOTE} | {self.generated}"
        self.cell(w * 0.8, 4, _pdf_safe_text(left), new_x=XPos.RIGHT, new_y=YPos.TOP, align="L")
        self.cell(w * 0.2, 4, _pdf_safe_text(f"Page {self.page_no()}"), new_x=XPos.RIGHT, new_y=YPos.TOP, align="R")
        self.set_text_color(0, 0, 0)


def _mask_margins(pdf: FPDF, margin: float) -> None:
    # Hide the slices of the tile that spill into the top and bottom margins.
    pdf.set_fill_color(255, 255, 255)
    pdf.rect(0, 0, pdf.w, margin, "F")
    pdf.rect(0, pdf.h - margin, pdf.w, margin, "F")


def pages_needed(image: Image.Image, page_w: float, page_h: float, margin: float = PAGE_MARGIN_MM) -> int:
    img_w = page_w - 2 * margin
    img_h = image.height * img_w / image.width
    return max(1, math.ceil(round(img_h / (page_h - 2 * margin), 6)))


def tile_image(pdf: FPDF, image: Image.Image, margin: float = PAGE_MARGIN_MM) -> int:
    """Draw ``image`` over as many pages as its height needs. Returns the page count."""
    img_w = pdf.w - 2 * margin
    img_h = image.height * img_w / image.width
    window = pdf.h - 2 * margin
    pages = pages_needed(image, pdf.w, pdf.h, margin)
    for page in range(pages):
        pdf.add_page()
        pdf.image(image, x=margin, y=margin - page * window, w=img_w, h=img_h)
        _mask_margins(pdf, margin)
    return pages


def tile_pdf(sections: Sequence[Image.Image], title: str, generated: str = "") -> bytes:
    """Assemble a PDF where every section starts on a fresh page."""
    if not sections:
        raise ValueError("Nothing to render: no raster sections supplied.")
    pdf = FallbackPDF(title, generated)
    pdf.set_margins(PAGE_MARGIN_MM, PAGE_MARGIN_MM, PAGE_MARGIN_MM)
    pdf.set_auto_page_break(auto=False)
    pdf.set_title(_pdf_safe_text(title))
    pdf.set_author("report_assembly")
    for image in sections:
        if image.width <= 0 or image.height <= 0:
            raise ValueError("Cannot tile an empty bitmap.")
        tile_image(pdf, image.convert("RGB"))
    return bytes(pdf.output())
