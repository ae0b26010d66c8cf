# carousel/export.py
"""
Deck → PDF orchestration: pick a raster scale, render slides one at a time,
JPEG-encode each surface and hand the pages to the PDF writer.
"""
import io
import logging
import re
from typing import Iterator, Optional

from .config import DEFAULT_JPEG_QUALITY
from .editor import Branding, EditorDeck
from .pdf_builder import PdfPage, build_pdf
from .renderer import render_slide

logger = logging.getLogger(__name__)

MAX_FILENAME_CHARS = 60
DEFAULT_FILENAME = "carousel"


def pick_scale(deck: EditorDeck) -> float:
    """Raster scale from the total slide area of the deck."""
    total_pixels = sum(s.format.width * s.format.height for s in deck.slides)
    if total_pixels <= 6_000_000:
        return 2
    if total_pixels <= 12_000_000:
        return 1.5
    return 1


def encode_jpeg(image, quality: float) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=max(1, min(95, round(quality * 100))))
    return buf.getvalue()


def render_pages(deck: EditorDeck, branding: Branding, scale: float,
                 jpeg_quality: float = DEFAULT_JPEG_QUALITY) -> Iterator[PdfPage]:
    """Yield one encoded page per slide, in deck order, rendering lazily."""
    last = len(deck.slides) - 1
    for idx, slide in enumerate(deck.slides):
        surface = render_slide(slide, branding, scale, is_last=idx == last)
        yield PdfPage(
            jpeg=encode_jpeg(surface, jpeg_quality),
            page_width=slide.format.width,
            page_height=slide.format.height,
            image_width=surface.width,
            image_height=surface.height,
        )


def export_deck_to_pdf(deck: EditorDeck, branding: Branding, quality_scale: Optional[float] = None,
                       jpeg_quality: float = DEFAULT_JPEG_QUALITY) -> bytes:
    scale = quality_scale or pick_scale(deck)
    logger.info(f"Exporting {len(deck.slides)} slides at scale {scale}")
    # Every slide renders before assembly; a decode failure leaves no partial file.
    pages = list(render_pages(deck, branding, scale, jpeg_quality))
    return build_pdf(pages)


def safe_filename(title: str, extension: str) -> str:
    name = re.sub(r"[^\w\- ]", "", title or "", flags=re.ASCII)
    name = re.sub(r"\s+", " ", name).strip()[:MAX_FILENAME_CHARS].strip()
    return f"{name or DEFAULT_FILENAME}.{extension}"


def pdf_filename(title: str) -> str:
    return safe_filename(title, "pdf")
