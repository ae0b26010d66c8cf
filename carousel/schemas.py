# carousel/schemas.py
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .config import DEFAULT_SLIDE_COUNT, MAX_PROMPT_CHARS, MAX_SLIDES, MIN_SLIDES
from .errors import PromptTooLongError, ValidationError

INVALID_REQUEST = "Invalid request."
INVALID_DECK = "Invalid deck."


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire. Either spelling is accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class GenerateRequest(CamelModel):
    prompt: str = Field(..., min_length=1, max_length=MAX_PROMPT_CHARS)
    slide_count: int = Field(DEFAULT_SLIDE_COUNT, ge=MIN_SLIDES, le=MAX_SLIDES, strict=True)
    audience: Optional[str] = Field(None, max_length=200)
    tone: Optional[str] = Field(None, max_length=200)


BulletText = Annotated[str, Field(min_length=1, max_length=90)]


# Structured-output strict mode forbids optional properties, so every key is
# required and missing content is an explicit null.
class Slide(CamelModel):
    title: str = Field(..., min_length=1, max_length=90)
    subtitle: Optional[str] = Field(..., max_length=140)
    body: Optional[str] = Field(..., max_length=520)
    bullets: Optional[Annotated[List[BulletText], Field(max_length=8)]] = Field(...)
    footer: Optional[str] = Field(..., max_length=80)


class Deck(CamelModel):
    title: str = Field(..., min_length=1, max_length=120)
    slides: List[Slide] = Field(..., min_length=MIN_SLIDES, max_length=MAX_SLIDES)


def filler_slide() -> Slide:
    return Slide(title="New slide", subtitle=None, body=None, bullets=None, footer=None)


def issues_from(exc: PydanticValidationError) -> List[Dict[str, Any]]:
    issues = []
    for err in exc.errors(include_url=False, include_input=False):
        issue = {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
        if err.get("ctx"):
            issue["ctx"] = {k: v if isinstance(v, (int, float, str, bool)) else str(v)
                            for k, v in err["ctx"].items()}
        issues.append(issue)
    return issues


def describe_issues(issues: List[Dict[str, Any]]) -> str:
    parts = []
    for issue in issues:
        where = ".".join(str(p) for p in issue["loc"]) or "(root)"
        parts.append(f"{where}: {issue['msg']}")
    return "; ".join(parts)


def validate_request(body: Any) -> GenerateRequest:
    try:
        return GenerateRequest.model_validate(body)
    except PydanticValidationError as e:
        issues = issues_from(e)
        for issue in issues:
            if issue["loc"] == ["prompt"] and issue["type"] == "string_too_long":
                limit = issue.get("ctx", {}).get("max_length", MAX_PROMPT_CHARS)
                raise PromptTooLongError(
                    f"Prompt is too long (max {limit} characters).", issues
                ) from e
        raise ValidationError(INVALID_REQUEST, issues) from e


def validate_deck(candidate: Any) -> Deck:
    try:
        return Deck.model_validate(candidate)
    except PydanticValidationError as e:
        raise ValidationError(INVALID_DECK, issues_from(e)) from e


def deck_json_schema() -> Dict[str, Any]:
    """JSON Schema handed to the structured-output API (strict mode)."""
    nullable_string = {"type": ["string", "null"]}
    slide = {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "title": {"type": "string"},
            "subtitle": nullable_string,
            "body": nullable_string,
            "bullets": {"type": ["array", "null"], "items": {"type": "string"}, "maxItems": 8},
            "footer": nullable_string,
        },
        "required": ["title", "subtitle", "body", "bullets", "footer"],
    }
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "title": {"type": "string"},
            "slides": {
                "type": "array",
                "minItems": MIN_SLIDES,
                "maxItems": MAX_SLIDES,
                "items": slide,
            },
        },
        "required": ["title", "slides"],
    }
