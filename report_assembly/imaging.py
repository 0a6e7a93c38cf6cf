import base64
import textwrap
from io import BytesIO
from typing import Iterable, List

from PIL import Image, ImageColor, ImageDraw, ImageFont

from .config import CAPTURE_BACKGROUND

PNG_PREFIX = "data:image/png;base64,"


def flatten(image: Image.Image, background: str = CAPTURE_BACKGROUND) -> Image.Image:
    """Composite transparent pixels onto a solid fill so PDFs never show black."""
    fill = ImageColor.getrgb(background)
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        base = Image.new("RGB", rgba.size, fill)
        base.paste(rgba, mask=rgba.getchannel("A"))
        return base
    return image.convert("RGB")


def load_png(data: bytes, background: str = CAPTURE_BACKGROUND) -> Image.Image:
    with Image.open(BytesIO(data)) as img:
        img.load()
        return flatten(img, background)


def png_bytes(image: Image.Image) -> bytes:
    buf = BytesIO()
    image.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def to_data_uri(image: Image.Image) -> str:
    return PNG_PREFIX + base64.b64encode(png_bytes(image)).decode("ascii")


def from_data_uri(uri: str, background: str = CAPTURE_BACKGROUND) -> Image.Image:
    header, _, body = uri.partition(",")
    if not header.startswith("data:image/") or ";base64" not in header:
        raise ValueError("Expected a base64 image data URI")
    return load_png(base64.b64decode(body), background)


def stack_vertically(
    images: Iterable[Image.Image],
    width: int,
    gap: int = 0,
    background: str = CAPTURE_BACKGROUND,
) -> Image.Image:
    """Paste images top to bottom on one canvas ``width`` pixels wide."""
    parts: List[Image.Image] = list(images)
    height = sum(p.height for p in parts) + gap * max(len(parts) - 1, 0)
    canvas = Image.new("RGB", (max(width, 1), max(height, 1)), ImageColor.getrgb(background))
    y = 0
    for part in parts:
        canvas.paste(part, (0, y))
        y += part.height + gap
    return canvas


def text_image(
    text: str,
    width: int,
    height: int,
    scale: int = 1,
    background: str = CAPTURE_BACKGROUND,
) -> Image.Image:
    """
    Plain-text rendering of an HTML fragment for the local fallback. It
    keeps the words of a notes panel or custom layout readable when no
    browser engine is around to lay the markup out.
    """
    size = (max(width * scale, 1), max(height * scale, 1))
    canvas = Image.new("RGB", size, ImageColor.getrgb(background))
    draw = ImageDraw.Draw(canvas)
    font_px = 12 * scale
    font = ImageFont.load_default(size=font_px)
    line_h = int(font_px * 1.4)
    per_line = max(int(width * scale / (font_px * 0.6)), 10)
    y = 8 * scale
    for paragraph in text.splitlines() or [""]:
        for line in textwrap.wrap(paragraph, per_line) or [""]:
            if y + line_h > size[1]:
                return canvas
            draw.text((8 * scale, y), line, fill=(31, 41, 55), font=font)
            y += line_h
    return canvas
