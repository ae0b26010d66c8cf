"""Shared fixtures: generated-deck payloads, tiny images, isolated settings."""

import base64
import io

import pytest
from PIL import Image

from carousel.config import get_settings


def _slide(title, subtitle=None, body=None, bullets=None, footer=None):
    return {"title": title, "subtitle": subtitle, "body": body, "bullets": bullets, "footer": footer}


@pytest.fixture
def make_slide():
    return _slide


@pytest.fixture
def api_deck_dict():
    return {
        "title": "Launching a new CLI",
        "slides": [
            _slide("Why another CLI?", subtitle="Because the old one is slow"),
            _slide("Install in one line", body="pipx install it and you are done."),
            _slide("Fast by default", subtitle="Cold start under 50ms", body="No plugins load until used."),
            _slide("Try it today", bullets=["Docs", "Changelog"], footer="link in comments"),
        ],
    }


@pytest.fixture
def png_data_uri():
    """Factory: solid-color PNG (or any PIL image) as a data URI."""

    def make(color=(255, 0, 0), size=(40, 40), image=None):
        img = image or Image.new("RGB", size, color)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")

    return make


@pytest.fixture
def settings_env(monkeypatch, tmp_path):
    """Isolated environment; values are set (possibly empty) so a local .env can't leak in."""
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-5-nano")
    monkeypatch.setenv("OPENAI_BASE_URL", "https://api.example.test")
    monkeypatch.setenv("CORS_ORIGIN", "*")
    monkeypatch.setenv("STATIC_DIR", str(tmp_path / "dist"))
    monkeypatch.setenv("APP_CONTEXT_PATH", str(tmp_path / "missing-prd.md"))
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()
