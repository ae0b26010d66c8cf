# carousel/renderer.py
"""
Slide rasterizer. Draws one EditorSlide plus the branding footer onto a
Pillow surface.

Deterministic: the same slide, branding, scale and is_last flag always
produce the same pixels. All element geometry is in slide-format pixels and
is multiplied by `scale` at draw time, so a 1080x1350 slide at scale 2 is
a 2160x2700 image.
"""

import logging
import math
from functools import lru_cache
from typing import Callable, List, Sequence, Tuple

from PIL import Image, ImageChops, ImageColor, ImageDraw, ImageFont

from .config import MAX_CANVAS_PIXELS
from .editor import Branding, EditorSlide, ImageElement, TextElement
from .errors import ExportError, ImageDecodeError
from .image_utils import decode_image

logger = logging.getLogger(__name__)

# ── Geometry Constants (slide-format pixels) ──────────────────────

IMAGE_CORNER_RADIUS = 16
DEFAULT_LINE_HEIGHT = 1.25

FOOTER_PAD_X = 90
FOOTER_PAD_BOTTOM = 70
AVATAR_SIZE = 96
AVATAR_GAP = 26
AVATAR_PLACEHOLDER = (255, 255, 255, 15)
NAME_FONT_SIZE = 42
NAME_OFFSET_Y = 8
HANDLE_FONT_SIZE = 30
HANDLE_OFFSET_Y = 56
HANDLE_OPACITY = 0.9
ARROW_SIZE = 68
ARROW_OFFSET_Y = 28
ARROW_STROKE = 6

# Thumbs-up outline on a 24x24 grid, arcs flattened to a few points.
THUMBS_UP_OUTLINE = [
    (15, 5.88), (14, 10), (19.83, 10), (21.3, 10.8), (21.75, 12.56),
    (19.42, 20.56), (18.7, 21.6), (17.5, 22), (4, 22), (2.6, 21.4),
    (2, 20), (2, 12), (2.6, 10.6), (4, 10), (6.76, 10), (7.8, 9.7),
    (8.55, 8.89), (12, 2), (13.6, 2.5), (14.7, 3.9),
]
THUMBS_UP_STEM = [(7, 10), (7, 22)]

_REGULAR_FONTS = ("DejaVuSans.ttf", "LiberationSans-Regular.ttf", "Arial.ttf", "arial.ttf")
_BOLD_FONTS = ("DejaVuSans-Bold.ttf", "LiberationSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")


# ── Fonts & Colors ────────────────────────────────────────────────


@lru_cache(maxsize=64)
def load_font(size: int, weight: int = 400) -> ImageFont.FreeTypeFont:
    """System sans font at `size` px; 600 and up use the bold face."""
    names = _BOLD_FONTS if weight >= 600 else _REGULAR_FONTS
    for name in names:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    logger.debug(f"No system font for weight {weight}, using Pillow default")
    return ImageFont.load_default(size=size)


def resolve_color(color: str) -> Tuple[int, int, int, int]:
    try:
        rgb = ImageColor.getrgb(color)
    except ValueError as e:
        raise ExportError(f"Invalid color: {color}") from e
    if len(rgb) == 4:
        return rgb
    return rgb[0], rgb[1], rgb[2], 255


# ── Layout Helpers ────────────────────────────────────────────────


def wrap_text_lines(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    """
    Greedy word wrap. Explicit newlines always start a new line; within a
    paragraph a word moves to the next line once the line would exceed
    `max_width`. A single word wider than the box stays on its own line.
    """
    lines: List[str] = []
    for para in text.split("\n"):
        words = para.split()
        if not words:
            lines.append("")
            continue
        line = words[0]
        for word in words[1:]:
            candidate = f"{line} {word}"
            if measure(candidate) <= max_width:
                line = candidate
            else:
                lines.append(line)
                line = word
        lines.append(line)
    return lines


def cover_fit(img: Image.Image, box_w: int, box_h: int) -> Image.Image:
    """Scale uniformly until the box is covered, then crop the overflow around the center."""
    factor = max(box_w / img.width, box_h / img.height)
    w = max(box_w, math.ceil(img.width * factor))
    h = max(box_h, math.ceil(img.height * factor))
    resized = img.resize((w, h), Image.Resampling.LANCZOS)
    left = (w - box_w) // 2
    top = (h - box_h) // 2
    return resized.crop((left, top, left + box_w, top + box_h))


def _apply_opacity(layer: Image.Image, opacity: float) -> None:
    opacity = min(1.0, max(0.0, opacity))
    if opacity >= 1:
        return
    layer.putalpha(layer.getchannel("A").point(lambda v: round(v * opacity)))


def _composite(surface: Image.Image, layer: Image.Image, left: int, top: int) -> None:
    """alpha_composite that tolerates layers hanging off any edge of the surface."""
    crop_left, crop_top = max(0, -left), max(0, -top)
    if crop_left or crop_top:
        layer = layer.crop((crop_left, crop_top, layer.width, layer.height))
        left, top = max(0, left), max(0, top)
    if layer.width <= 0 or layer.height <= 0 or left >= surface.width or top >= surface.height:
        return
    surface.alpha_composite(layer, dest=(left, top))


def _layer_like(surface: Image.Image) -> Image.Image:
    return Image.new("RGBA", surface.size, (0, 0, 0, 0))


def _check_area(width: int, height: int) -> None:
    if width * height > MAX_CANVAS_PIXELS:
        raise ExportError(f"Surface of {width}x{height} pixels is too large to render.")


# ── Elements ──────────────────────────────────────────────────────


def _draw_text_element(surface: Image.Image, el: TextElement, scale: float) -> None:
    box_w, box_h = round(el.w * scale), round(el.h * scale)
    if box_w <= 0 or box_h <= 0:
        return
    _check_area(box_w, box_h)

    # The layer is exactly the element box, which clips anything outside it.
    layer = Image.new("RGBA", (box_w, box_h), (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    font = load_font(max(1, round(el.font_size * scale)), el.font_weight)
    fill = resolve_color(el.color)

    lines = wrap_text_lines(el.text, el.w * scale, font.getlength)
    line_height = round(el.font_size * (el.line_height or DEFAULT_LINE_HEIGHT))
    y = 0
    for line in lines:
        if y + line_height > el.h:
            break
        if line:
            if el.align == "center":
                draw.text((box_w / 2, y * scale), line, font=font, fill=fill, anchor="ma")
            else:
                draw.text((0, y * scale), line, font=font, fill=fill, anchor="la")
        y += line_height

    _apply_opacity(layer, el.opacity)
    _composite(surface, layer, round(el.x * scale), round(el.y * scale))


def _draw_image_element(surface: Image.Image, el: ImageElement, scale: float) -> None:
    img = decode_image(el.src)
    box_w, box_h = round(el.w * scale), round(el.h * scale)
    if box_w <= 0 or box_h <= 0:
        return
    _check_area(box_w, box_h)

    fitted = cover_fit(img, box_w, box_h)
    radius = min(IMAGE_CORNER_RADIUS * scale, min(box_w, box_h) / 2)
    mask = Image.new("L", (box_w, box_h), 0)
    ImageDraw.Draw(mask).rounded_rectangle((0, 0, box_w - 1, box_h - 1), radius=radius, fill=255)
    fitted.putalpha(ImageChops.multiply(fitted.getchannel("A"), mask))

    _apply_opacity(fitted, el.opacity)
    _composite(surface, fitted, round(el.x * scale), round(el.y * scale))


# ── Footer ────────────────────────────────────────────────────────


def _draw_avatar(surface: Image.Image, branding: Branding, left: float, top: float, scale: float) -> None:
    size = round(AVATAR_SIZE * scale)
    layer = Image.new("RGBA", (size, size), AVATAR_PLACEHOLDER)
    if branding.avatar_src:
        try:
            layer.alpha_composite(cover_fit(decode_image(branding.avatar_src), size, size))
        except ImageDecodeError:
            logger.warning("Avatar image could not be decoded, drawing placeholder")

    mask = Image.new("L", (size, size), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, size - 1, size - 1), fill=255)
    layer.putalpha(ImageChops.multiply(layer.getchannel("A"), mask))
    _composite(surface, layer, round(left * scale), round(top * scale))


def _draw_label(surface: Image.Image, text: str, xy: Tuple[float, float], size: int,
                weight: int, color: str, opacity: float, scale: float) -> None:
    if not text:
        return
    layer = _layer_like(surface)
    font = load_font(max(1, round(size * scale)), weight)
    ImageDraw.Draw(layer).text((xy[0] * scale, xy[1] * scale), text, font=font,
                               fill=resolve_color(color), anchor="la")
    _apply_opacity(layer, opacity)
    surface.alpha_composite(layer)


def _stroke(draw: ImageDraw.ImageDraw, points: Sequence[Tuple[float, float]], width: float, fill) -> None:
    """Polyline with round caps."""
    draw.line(points, fill=fill, width=max(1, round(width)), joint="curve")
    r = width / 2
    for x, y in (points[0], points[-1]):
        draw.ellipse((x - r, y - r, x + r, y + r), fill=fill)


def _draw_arrow(draw: ImageDraw.ImageDraw, x: float, y: float, color, scale: float) -> None:
    mid = y + ARROW_SIZE / 2
    tip = x + ARROW_SIZE

    def s(points):
        return [(px * scale, py * scale) for px, py in points]

    width = ARROW_STROKE * scale
    _stroke(draw, s([(x, mid), (tip, mid)]), width, color)
    _stroke(draw, s([(tip, mid), (tip - 20, mid - 18)]), width, color)
    _stroke(draw, s([(tip, mid), (tip - 20, mid + 18)]), width, color)


def _draw_thumbs_up(draw: ImageDraw.ImageDraw, x: float, y: float, color, scale: float) -> None:
    unit = ARROW_SIZE / 24

    def s(points):
        return [((x + px * unit) * scale, (y + py * unit) * scale) for px, py in points]

    outline = s(THUMBS_UP_OUTLINE)
    draw.polygon(outline, fill=color)
    width = 2 * unit * scale
    _stroke(draw, outline + [outline[0]], width, color)
    _stroke(draw, s(THUMBS_UP_STEM), width, color)


def _draw_footer(surface: Image.Image, width: float, height: float, branding: Branding,
                 scale: float, is_last: bool) -> None:
    base_y = height - FOOTER_PAD_BOTTOM - AVATAR_SIZE
    _draw_avatar(surface, branding, FOOTER_PAD_X, base_y, scale)

    text_x = FOOTER_PAD_X + AVATAR_SIZE + AVATAR_GAP
    _draw_label(surface, branding.name, (text_x, base_y + NAME_OFFSET_Y), NAME_FONT_SIZE,
                500, branding.name_color, 1, scale)
    _draw_label(surface, branding.handle, (text_x, base_y + HANDLE_OFFSET_Y), HANDLE_FONT_SIZE,
                400, branding.handle_color, HANDLE_OPACITY, scale)

    layer = _layer_like(surface)
    draw = ImageDraw.Draw(layer)
    color = resolve_color(branding.arrow_color)
    arrow_x = width - FOOTER_PAD_X - ARROW_SIZE
    arrow_y = base_y + ARROW_OFFSET_Y
    if is_last:
        _draw_thumbs_up(draw, arrow_x, arrow_y, color, scale)
    else:
        _draw_arrow(draw, arrow_x, arrow_y, color, scale)
    surface.alpha_composite(layer)


# ── Public API ────────────────────────────────────────────────────


def render_slide(slide: EditorSlide, branding: Branding, scale: float = 1.0, is_last: bool = False) -> Image.Image:
    """Rasterize one slide. Raises ImageDecodeError if an image element cannot be decoded."""
    if scale <= 0:
        raise ExportError("Scale must be positive.")
    width, height = slide.format.width, slide.format.height
    size = (round(width * scale), round(height * scale))
    if size[0] <= 0 or size[1] <= 0:
        raise ExportError("Slide format has no area.")
    _check_area(*size)

    surface = Image.new("RGBA", size, resolve_color(slide.background_color))

    for el in slide.elements:
        if el.type == "text":
            _draw_text_element(surface, el, scale)
        elif el.type == "image":
            _draw_image_element(surface, el, scale)
        else:
            raise ExportError(f"Unknown element type: {el.type}")

    _draw_footer(surface, width, height, branding, scale, is_last)
    return surface.convert("RGB")
