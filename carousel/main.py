# carousel/main.py
"""
carousel backend - FastAPI server

Endpoints:
- Deck generation through the OpenAI Responses API
- PDF export of an edited deck
- Project file import/export
- Static hosting of the built editor UI
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response
from pydantic import Field
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from .config import DEFAULT_JPEG_QUALITY, Settings, get_settings, read_app_context
from .editor import Branding, EditorDeck, api_deck_to_editor, default_editor_deck
from .errors import (
    CarouselError,
    ConfigurationError,
    ExportError,
    PromptTooLongError,
    ValidationError,
)
from .export import export_deck_to_pdf, pdf_filename, safe_filename
from .llm_clients import generate_deck
from .project import parse_project_or_legacy, serialize_project
from .schemas import INVALID_REQUEST, CamelModel, issues_from, validate_deck, validate_request

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

ALLOWED_METHODS = "GET,POST,OPTIONS"
ALLOWED_HEADERS = "Content-Type,Authorization"

app = FastAPI(title="carousel", version="1.0.0", docs_url="/docs")


class ExportRequest(CamelModel):
    deck: EditorDeck
    branding: Branding
    quality_scale: Optional[float] = Field(None, gt=0, le=4)
    jpeg_quality: float = Field(DEFAULT_JPEG_QUALITY, gt=0, le=1)


class ProjectExportRequest(CamelModel):
    deck: EditorDeck
    branding: Branding


@app.middleware("http")
async def cors_and_cache_headers(request: Request, call_next):
    if request.method == "OPTIONS":
        response = Response(status_code=204)
    else:
        response = await call_next(request)
    response.headers["Access-Control-Allow-Origin"] = get_settings().cors_origin
    response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
    response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
    if request.url.path.startswith("/api/"):
        response.headers["Cache-Control"] = "no-store"
    return response


def _error(status: int, message: str, issues: Optional[List[Dict[str, Any]]] = None, **kwargs) -> JSONResponse:
    content: Dict[str, Any] = {"error": message}
    if issues:
        content["issues"] = issues
    return JSONResponse(status_code=status, content=content, **kwargs)


def _validation_error(exc: ValidationError) -> JSONResponse:
    if isinstance(exc, PromptTooLongError):
        return _error(400, exc.message)
    return _error(400, exc.message, exc.issues)


async def _read_json(request: Request) -> Any:
    """Request body as JSON, or None when it is empty or not JSON."""
    try:
        return await request.json()
    except ValueError:
        return None


async def _parse_body(request: Request, model):
    data = await _read_json(request)
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(INVALID_REQUEST, issues_from(e)) from e


def _require_api_key(settings: Settings) -> str:
    if not settings.openai_api_key:
        raise ConfigurationError("Missing OPENAI_API_KEY.")
    return settings.openai_api_key


@app.get("/api/health")
def health():
    return {"ok": True}


@app.post("/api/generate")
async def generate(request: Request, settings: Settings = Depends(get_settings)):
    try:
        api_key = _require_api_key(settings)
    except ConfigurationError as e:
        logger.error(e.message)
        return _error(500, e.message)

    try:
        gen_request = validate_request(await _read_json(request))
    except ValidationError as e:
        return _validation_error(e)

    try:
        deck = await run_in_threadpool(
            generate_deck,
            gen_request,
            api_key,
            settings.openai_model,
            read_app_context(settings.app_context_path),
            settings.openai_base_url,
        )
        deck = validate_deck(deck.to_json_dict())
    except CarouselError as e:
        logger.warning(f"Generation failed: {e.message}")
        return _error(500, e.message)
    except Exception:
        logger.exception("Unexpected error in generation")
        return _error(500, "Unknown error")

    logger.info(f"Generated deck '{deck.title}' with {len(deck.slides)} slides")
    return JSONResponse(deck.to_json_dict())


@app.api_route("/api/generate", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"], include_in_schema=False)
def generate_method_not_allowed():
    return _error(405, "Method not allowed.", headers={"Allow": "POST, OPTIONS"})


@app.get("/api/deck/default")
def default_deck():
    return default_editor_deck().to_json_dict()


@app.post("/api/deck/expand")
async def expand_deck(request: Request):
    """Lay out a generated deck as an editable deck."""
    try:
        deck = validate_deck(await _read_json(request))
    except ValidationError as e:
        return _validation_error(e)
    return api_deck_to_editor(deck).to_json_dict()


@app.post("/api/export")
async def export_pdf(request: Request):
    try:
        payload = await _parse_body(request, ExportRequest)
        pdf_bytes = await run_in_threadpool(
            export_deck_to_pdf,
            payload.deck,
            payload.branding,
            payload.quality_scale,
            payload.jpeg_quality,
        )
    except ValidationError as e:
        return _validation_error(e)
    except ExportError as e:
        logger.warning(f"Export failed: {e.message}")
        return _error(400, e.message)

    filename = pdf_filename(payload.deck.title)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/project/export")
async def export_project(request: Request):
    try:
        payload = await _parse_body(request, ProjectExportRequest)
    except ValidationError as e:
        return _validation_error(e)

    project = serialize_project(payload.deck, payload.branding)
    filename = safe_filename(payload.deck.title, "json")
    return JSONResponse(
        project.to_json_dict(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/project/import")
async def import_project(request: Request):
    data = await _read_json(request)
    match = parse_project_or_legacy(data)
    if match is None:
        return _error(400, "Unrecognized project file.")
    if match.kind == "project":
        return {
            "kind": "project",
            "deck": match.project.deck.to_json_dict(),
            "branding": match.project.branding.to_json_dict(),
        }
    return {"kind": "legacy", "deck": api_deck_to_editor(match.deck).to_json_dict()}


# Registered last so every /api route above wins.
@app.api_route("/{path:path}", methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
def static_fallback(path: str, request: Request, settings: Settings = Depends(get_settings)):
    if request.method not in ("GET", "HEAD"):
        return PlainTextResponse("Not found", status_code=404)

    root = settings.static_dir.resolve()
    candidate = (root / (path or "index.html")).resolve()
    if candidate.is_file() and candidate.is_relative_to(root):
        return FileResponse(candidate)

    index = root / "index.html"
    if index.is_file():
        return FileResponse(index)
    return PlainTextResponse("UI not built. Build the editor into the static directory first.", status_code=404)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
