# carousel/editor.py
"""
Editable, absolutely-positioned deck model plus the pure operations the
editor UI performs on it. Every operation returns a new deck; the input is
never mutated.

Geometry is in slide-format pixels (1080x1350 for a LinkedIn portrait slide).
"""
import uuid
from typing import Annotated, List, Literal, Optional, Sequence, Tuple, TypeVar, Union

from pydantic import Field

from .config import MAX_ELEMENT_SIDE, MAX_SLIDE_SIDE, MIN_SLIDE_SIDE
from .schemas import CamelModel, Deck, Slide

T = TypeVar("T")

SlideSide = Annotated[float, Field(gt=0, le=MAX_SLIDE_SIDE)]
ElementSide = Annotated[float, Field(ge=0, le=MAX_ELEMENT_SIDE)]

SlideFormatPreset = Literal["linkedin_portrait", "linkedin_square", "custom"]
TextKind = Literal["title", "subtitle", "body"]

PRESET_SIZES = {
    "linkedin_portrait": (1080, 1350),
    "linkedin_square": (1080, 1080),
}

DEFAULT_BACKGROUND = "#000012"
ACCENT_COLOR = "#7c7cff"
MUTED_COLOR = "#c7c7d7"
CONTENT_LEFT = 90
CONTENT_WIDTH = 900


class SlideFormat(CamelModel):
    preset: SlideFormatPreset
    width: SlideSide
    height: SlideSide


class TextElement(CamelModel):
    id: str = Field(..., min_length=1)
    type: Literal["text"] = "text"
    kind: TextKind
    text: str
    x: float
    y: float
    w: ElementSide
    h: ElementSide
    color: str
    font_size: float = Field(..., gt=0, le=MAX_SLIDE_SIDE)
    line_height: float
    font_weight: Literal[400, 600, 700]
    align: Literal["left", "center"]
    opacity: float = Field(..., ge=0, le=1)


class ImageElement(CamelModel):
    id: str = Field(..., min_length=1)
    type: Literal["image"] = "image"
    src: str = Field(..., min_length=1)  # data URI
    x: float
    y: float
    w: ElementSide
    h: ElementSide
    opacity: float = Field(..., ge=0, le=1)


SlideElement = Annotated[Union[TextElement, ImageElement], Field(discriminator="type")]


class EditorSlide(CamelModel):
    id: str = Field(..., min_length=1)
    format: SlideFormat
    background_color: str
    elements: List[SlideElement] = Field(default_factory=list)


class EditorDeck(CamelModel):
    title: str
    slides: List[EditorSlide] = Field(..., min_length=1)


class Branding(CamelModel):
    avatar_src: Optional[str] = None  # data URI
    name: str
    handle: str
    name_color: str
    handle_color: str
    arrow_color: str


def default_branding() -> Branding:
    return Branding(
        name="Your Name",
        handle="yourhandle",
        name_color=MUTED_COLOR,
        handle_color="#9aa0b4",
        arrow_color=ACCENT_COLOR,
    )


# ── Helpers ───────────────────────────────────────────────────────


def create_id(prefix: str = "id") -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def clamp(n: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, n))


def reorder(items: Sequence[T], from_index: int, to_index: int) -> List[T]:
    """Move one item to `to_index`; everything else keeps its relative order."""
    result = list(items)
    item = result.pop(from_index)
    result.insert(to_index, item)
    return result


def format_from_preset(preset: str) -> SlideFormat:
    if preset == "linkedin_square":
        width, height = PRESET_SIZES["linkedin_square"]
        return SlideFormat(preset="linkedin_square", width=width, height=height)
    width, height = PRESET_SIZES["linkedin_portrait"]
    # custom starts at portrait size until resized
    return SlideFormat(preset="custom" if preset == "custom" else "linkedin_portrait", width=width, height=height)


def _text_styles(kind: str) -> dict:
    if kind == "title":
        return {"font_size": 112, "line_height": 1.05, "font_weight": 700, "color": ACCENT_COLOR, "w": CONTENT_WIDTH, "h": 420}
    if kind == "subtitle":
        return {"font_size": 54, "line_height": 1.2, "font_weight": 600, "color": ACCENT_COLOR, "w": CONTENT_WIDTH, "h": 160}
    return {"font_size": 46, "line_height": 1.35, "font_weight": 400, "color": MUTED_COLOR, "w": CONTENT_WIDTH, "h": 620}


# ── Generated deck → editor deck ──────────────────────────────────


def api_slide_to_editor(slide: Slide, index: int) -> EditorSlide:
    elements: List[Union[TextElement, ImageElement]] = [
        TextElement(
            id=create_id("el"),
            kind="title",
            text=slide.title or f"Slide {index + 1}",
            x=CONTENT_LEFT,
            y=160,
            align="left",
            opacity=1,
            **_text_styles("title"),
        )
    ]
    if slide.subtitle:
        elements.append(TextElement(
            id=create_id("el"),
            kind="subtitle",
            text=slide.subtitle,
            x=CONTENT_LEFT,
            y=520,
            align="left",
            opacity=0.9,
            **_text_styles("subtitle"),
        ))
    if slide.body:
        elements.append(TextElement(
            id=create_id("el"),
            kind="body",
            text=slide.body,
            x=CONTENT_LEFT,
            y=650 if slide.subtitle else 560,
            align="left",
            opacity=1,
            **_text_styles("body"),
        ))
    return EditorSlide(
        id=create_id("slide"),
        format=format_from_preset("linkedin_portrait"),
        background_color=DEFAULT_BACKGROUND,
        elements=elements,
    )


def api_deck_to_editor(deck: Deck) -> EditorDeck:
    return EditorDeck(
        title=deck.title,
        slides=[api_slide_to_editor(s, i) for i, s in enumerate(deck.slides)],
    )


def default_editor_deck() -> EditorDeck:
    deck = Deck(
        title="Coding in 2026",
        slides=[
            Slide(
                title="Coding in 2026: Beyond Syntax",
                subtitle="Why systems literacy matters more than memorizing code",
                body="AI tools have changed programming, but real value comes from modularity, "
                     "systems thinking, and intent, not just syntax.",
                bullets=None,
                footer=None,
            ),
            Slide(
                title="Syntax is Easy to Outsource",
                subtitle=None,
                body="Language rules aren't the bottleneck. LLMs wire features, fix typos, "
                     "and generate UI & backend code in seconds.",
                bullets=None,
                footer=None,
            ),
            Slide(
                title="Understanding the Machine",
                subtitle="What's happening behind the scenes?",
                body="When a feature \"looks fine\" but something's off, you need to grasp state, "
                     "flow, and what code does on every request.",
                bullets=None,
                footer=None,
            ),
            Slide(
                title="LLMs Suggest. Humans Decide.",
                subtitle=None,
                body="Patterns help you reason about tradeoffs, errors, and failure modes. "
                     "But humans spot intent and context.",
                bullets=None,
                footer=None,
            ),
        ],
    )
    return api_deck_to_editor(deck)


# ── Editing operations ────────────────────────────────────────────


def _replace_slide(deck: EditorDeck, index: int, slide: EditorSlide) -> EditorDeck:
    slides = list(deck.slides)
    slides[index] = slide
    return deck.model_copy(update={"slides": slides})


def update_slide(deck: EditorDeck, index: int, **changes) -> EditorDeck:
    slide = deck.slides[index]
    return _replace_slide(deck, index, slide.model_copy(update=changes))


def set_slide_format(deck: EditorDeck, index: int, preset: str) -> EditorDeck:
    return update_slide(deck, index, format=format_from_preset(preset))


def resize_slide(deck: EditorDeck, index: int, width: float, height: float) -> EditorDeck:
    """Switch a slide to a custom size; each side is truncated and kept within the supported range."""
    fmt = SlideFormat(
        preset="custom",
        width=clamp(int(width), MIN_SLIDE_SIDE, MAX_SLIDE_SIDE),
        height=clamp(int(height), MIN_SLIDE_SIDE, MAX_SLIDE_SIDE),
    )
    return update_slide(deck, index, format=fmt)


def update_element(deck: EditorDeck, index: int, element_id: str, **changes) -> EditorDeck:
    slide = deck.slides[index]
    elements = [e.model_copy(update=changes) if e.id == element_id else e for e in slide.elements]
    return _replace_slide(deck, index, slide.model_copy(update={"elements": elements}))


def delete_element(deck: EditorDeck, index: int, element_id: str) -> EditorDeck:
    slide = deck.slides[index]
    elements = [e for e in slide.elements if e.id != element_id]
    return _replace_slide(deck, index, slide.model_copy(update={"elements": elements}))


def _append_element(deck: EditorDeck, index: int, element) -> EditorDeck:
    slide = deck.slides[index]
    return _replace_slide(deck, index, slide.model_copy(update={"elements": [*slide.elements, element]}))


def add_text_element(deck: EditorDeck, index: int, kind: str) -> Tuple[EditorDeck, TextElement]:
    placeholder = {"title": "New title", "subtitle": "New subtitle"}.get(kind, "New body text")
    y = {"title": 140, "subtitle": 360}.get(kind, 440)
    styles = _text_styles(kind)
    el = TextElement(id=create_id("el"), kind=kind, text=placeholder, x=CONTENT_LEFT, y=y,
                     align="left", opacity=1, **styles)
    return _append_element(deck, index, el), el


def add_image_element(deck: EditorDeck, index: int, src: str) -> Tuple[EditorDeck, ImageElement]:
    """Place a square image in the middle of the slide, nudged up to clear the footer."""
    fmt = deck.slides[index].format
    side = min(700, round(fmt.width * 0.6))
    el = ImageElement(
        id=create_id("el"),
        src=src,
        x=round((fmt.width - side) / 2),
        y=round((fmt.height - side) / 2) - 80,
        w=side,
        h=side,
        opacity=1,
    )
    return _append_element(deck, index, el), el


def add_slide(deck: EditorDeck, reference_index: Optional[int] = None) -> EditorDeck:
    reference = deck.slides[reference_index] if reference_index is not None else None
    title = TextElement(
        id=create_id("el"),
        kind="title",
        text="New slide",
        x=CONTENT_LEFT,
        y=140,
        align="left",
        opacity=1,
        **_text_styles("title"),
    )
    slide = EditorSlide(
        id=create_id("slide"),
        format=format_from_preset("linkedin_portrait"),
        background_color=reference.background_color if reference else DEFAULT_BACKGROUND,
        elements=[title],
    )
    return deck.model_copy(update={"slides": [*deck.slides, slide]})


def duplicate_slide(deck: EditorDeck, index: int) -> EditorDeck:
    source = deck.slides[index]
    copy = source.model_copy(update={
        "id": create_id("slide"),
        "elements": [e.model_copy(update={"id": create_id("el")}) for e in source.elements],
    })
    slides = list(deck.slides)
    slides.insert(index + 1, copy)
    return deck.model_copy(update={"slides": slides})


def delete_slide(deck: EditorDeck, index: int) -> EditorDeck:
    if len(deck.slides) <= 1:
        return deck
    slides = list(deck.slides)
    del slides[index]
    return deck.model_copy(update={"slides": slides})


def move_slide(deck: EditorDeck, from_index: int, to_index: int, selected: int) -> Tuple[EditorDeck, int]:
    """Reorder slides and return the index the current selection moved to."""
    if from_index == to_index:
        return deck, selected
    moved = deck.model_copy(update={"slides": reorder(deck.slides, from_index, to_index)})
    if selected == from_index:
        return moved, to_index
    if from_index < selected <= to_index:
        return moved, selected - 1
    if to_index <= selected < from_index:
        return moved, selected + 1
    return moved, selected
