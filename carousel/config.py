# carousel/config.py
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

MAX_PROMPT_CHARS = 20000
MIN_SLIDES = 4
MAX_SLIDES = 10
DEFAULT_SLIDE_COUNT = 5
MAX_UPSTREAM_ERROR_CHARS = 240
REQUEST_TIMEOUT_SECONDS = 60

DEFAULT_MODEL = "gpt-5-nano"
# Earlier placeholder value some .env files still carry.
LEGACY_MODEL_ALIASES = {"gpt-5.2-low": DEFAULT_MODEL}
DEFAULT_BASE_URL = "https://api.openai.com"

DEFAULT_JPEG_QUALITY = 0.92

MIN_SLIDE_SIDE = 200
MAX_SLIDE_SIDE = 4096
MAX_ELEMENT_SIDE = 2 * MAX_SLIDE_SIDE
# Upper bound for any single raster surface (slide canvas or element layer).
MAX_CANVAS_PIXELS = 64_000_000


def normalize_model(model: str) -> str:
    trimmed = (model or "").strip()
    if not trimmed:
        return DEFAULT_MODEL
    return LEGACY_MODEL_ALIASES.get(trimmed, trimmed)


@dataclass(frozen=True)
class Settings:
    openai_api_key: str
    openai_model: str
    openai_base_url: str
    cors_origin: str
    host: str
    port: int
    static_dir: Path
    app_context_path: Path
    log_level: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings from the environment (and .env) once per process."""
    load_dotenv()
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        openai_model=normalize_model(os.getenv("OPENAI_MODEL", DEFAULT_MODEL)),
        openai_base_url=os.getenv("OPENAI_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        cors_origin=os.getenv("CORS_ORIGIN", "*"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        static_dir=Path(os.getenv("STATIC_DIR", PROJECT_ROOT / "dist")),
        app_context_path=Path(os.getenv("APP_CONTEXT_PATH", PROJECT_ROOT / "prd.md")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def read_app_context(path: Path) -> str:
    """Optional product notes appended to the generation system prompt."""
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError:
        return ""
