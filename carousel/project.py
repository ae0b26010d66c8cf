# carousel/project.py
"""
Project file (de)serialization.

A saved project is a versioned envelope around the editor deck and the
branding. Files written before the envelope existed are a bare generated
deck ({title, slides}); those are still accepted and expanded into an
editor deck on load.
"""
from datetime import datetime, timezone
from typing import Any, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from .editor import Branding, EditorDeck, api_deck_to_editor
from .schemas import CamelModel, Deck

PROJECT_TYPE = "sooft_carousel"
PROJECT_VERSION = 1


class ProjectBranding(CamelModel):
    """Branding as stored in a project file; the avatar is never saved."""

    name: str
    handle: str
    name_color: str
    handle_color: str
    arrow_color: str


class CarouselProject(CamelModel):
    type: Literal["sooft_carousel", "carousel_project"]  # second tag: files from earlier builds
    version: Literal[1]
    saved_at: str
    branding: ProjectBranding
    deck: EditorDeck


class ProjectMatch(BaseModel):
    kind: Literal["project"] = "project"
    project: CarouselProject


class LegacyMatch(BaseModel):
    kind: Literal["legacy"] = "legacy"
    deck: Deck


def serialize_project(deck: EditorDeck, branding: Branding) -> CarouselProject:
    kept = branding.model_dump(exclude={"avatar_src"})
    return CarouselProject(
        type=PROJECT_TYPE,
        version=PROJECT_VERSION,
        saved_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        branding=ProjectBranding(**kept),
        deck=deck,
    )


def parse_project_or_legacy(data: Any) -> Optional[Union[ProjectMatch, LegacyMatch]]:
    try:
        return ProjectMatch(project=CarouselProject.model_validate(data))
    except PydanticValidationError:
        pass
    try:
        return LegacyMatch(deck=Deck.model_validate(data))
    except PydanticValidationError:
        return None


def load_editor_state(data: Any) -> Optional[Tuple[EditorDeck, Optional[Branding]]]:
    """
    Resolve an imported JSON document into something the editor can use.
    Legacy decks carry no branding, so the second element is None for them.
    """
    match = parse_project_or_legacy(data)
    if match is None:
        return None
    if match.kind == "project":
        stored = match.project.branding
        return match.project.deck, Branding(**stored.model_dump())
    return api_deck_to_editor(match.deck), None
