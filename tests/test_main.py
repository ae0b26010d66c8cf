"""
tests/test_main.py — HTTP surface

Runs the FastAPI app in-process with TestClient. The upstream model call is
patched at carousel.llm_clients.requests.post, so the tests also assert when
it must NOT be reached.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from carousel.config import get_settings
from carousel.editor import default_branding, default_editor_deck
from carousel.main import app
from carousel.project import serialize_project

UPSTREAM = "carousel.llm_clients.requests.post"


def _upstream(status=200, body=None, content_type="application/json", text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = {"content-type": content_type}
    if body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = body
    resp.text = text
    return resp


@pytest.fixture
def client(settings_env):
    return TestClient(app)


def _single_slide_deck_json():
    data = default_editor_deck().to_json_dict()
    data["slides"] = data["slides"][:1]
    return data


# ═══════════════════════════════════════════════════════════════════════
# Cross-cutting headers
# ═══════════════════════════════════════════════════════════════════════


class TestHeaders:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}
        assert resp.headers["cache-control"] == "no-store"

    def test_cors_on_every_response(self, client):
        resp = client.get("/api/health")
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "POST" in resp.headers["access-control-allow-methods"]

    def test_configured_origin(self, client, settings_env):
        settings_env.setenv("CORS_ORIGIN", "https://editor.example.test")
        get_settings.cache_clear()
        resp = client.get("/api/health")
        assert resp.headers["access-control-allow-origin"] == "https://editor.example.test"

    def test_preflight(self, client):
        with patch(UPSTREAM) as post:
            resp = client.options("/api/generate")
        assert resp.status_code == 204
        assert resp.content == b""
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "Content-Type" in resp.headers["access-control-allow-headers"]
        assert post.call_count == 0


# ═══════════════════════════════════════════════════════════════════════
# /api/generate
# ═══════════════════════════════════════════════════════════════════════


class TestGenerate:
    def test_end_to_end(self, client, api_deck_dict):
        with patch(UPSTREAM, return_value=_upstream(body={"output_text": json.dumps(api_deck_dict)})) as post:
            resp = client.post("/api/generate", json={"prompt": "launch a new CLI", "slideCount": 4})
        assert resp.status_code == 200
        deck = resp.json()
        assert len(deck["slides"]) == 4
        assert all(len(s["title"]) <= 90 for s in deck["slides"])
        assert set(deck["slides"][0]) == {"title", "subtitle", "body", "bullets", "footer"}
        assert post.call_args.args[0] == "https://api.example.test/v1/responses"
        assert resp.headers["cache-control"] == "no-store"

    def test_slide_count_repaired(self, client, api_deck_dict):
        with patch(UPSTREAM, return_value=_upstream(body={"output_text": json.dumps(api_deck_dict)})):
            resp = client.post("/api/generate", json={"prompt": "x", "slideCount": 5})
        assert resp.status_code == 200
        assert len(resp.json()["slides"]) == 5

    def test_get_not_allowed(self, client):
        with patch(UPSTREAM) as post:
            resp = client.get("/api/generate")
        assert resp.status_code == 405
        assert resp.json() == {"error": "Method not allowed."}
        assert post.call_count == 0

    def test_missing_api_key(self, client, settings_env):
        settings_env.setenv("OPENAI_API_KEY", "")
        get_settings.cache_clear()
        with patch(UPSTREAM) as post:
            resp = client.post("/api/generate", json={"prompt": "x"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Missing OPENAI_API_KEY."}
        assert post.call_count == 0

    def test_missing_key_checked_before_body(self, client, settings_env):
        settings_env.setenv("OPENAI_API_KEY", "")
        get_settings.cache_clear()
        resp = client.post("/api/generate", content=b"not json")
        assert resp.status_code == 500

    def test_invalid_json_body(self, client):
        with patch(UPSTREAM) as post:
            resp = client.post("/api/generate", content=b"{oops", headers={"content-type": "application/json"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Invalid request."
        assert body["issues"]
        assert post.call_count == 0

    def test_invalid_fields_list_issues(self, client):
        resp = client.post("/api/generate", json={"prompt": "", "slideCount": 11})
        assert resp.status_code == 400
        locs = [issue["loc"] for issue in resp.json()["issues"]]
        assert ["prompt"] in locs and ["slideCount"] in locs

    def test_string_slide_count_rejected(self, client):
        with patch(UPSTREAM) as post:
            resp = client.post("/api/generate", json={"prompt": "x", "slideCount": "5"})
        assert resp.status_code == 400
        assert post.call_count == 0

    def test_prompt_too_long(self, client):
        with patch(UPSTREAM) as post:
            resp = client.post("/api/generate", json={"prompt": "a" * 20001})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Prompt is too long (max 20000 characters)."}
        assert post.call_count == 0

    def test_upstream_html_error(self, client):
        html = "<html><body><h1>502 Bad Gateway</h1>" + "<p>" + "x" * 1000 + "</p></body></html>"
        with patch(UPSTREAM, return_value=_upstream(502, content_type="text/html", text=html)):
            resp = client.post("/api/generate", json={"prompt": "x"})
        assert resp.status_code == 500
        message = resp.json()["error"]
        assert message.startswith("OpenAI error (502): 502 Bad Gateway")
        assert "<" not in message
        assert len(message) == len("OpenAI error (502): ") + 240

    def test_upstream_invalid_deck(self, client, api_deck_dict):
        api_deck_dict["slides"][0]["title"] = "t" * 120
        with patch(UPSTREAM, return_value=_upstream(body={"output_text": json.dumps(api_deck_dict)})):
            resp = client.post("/api/generate", json={"prompt": "x"})
        assert resp.status_code == 500
        assert resp.json()["error"].startswith("Invalid deck JSON:")

    def test_unexpected_error_is_generic(self, client):
        with patch(UPSTREAM, side_effect=RuntimeError("boom")):
            resp = client.post("/api/generate", json={"prompt": "x"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Unknown error"}

    def test_app_context_reaches_prompt(self, client, settings_env, tmp_path, api_deck_dict):
        prd = tmp_path / "prd.md"
        prd.write_text("Rocket company.", encoding="utf-8")
        settings_env.setenv("APP_CONTEXT_PATH", str(prd))
        get_settings.cache_clear()
        with patch(UPSTREAM, return_value=_upstream(body={"output_text": json.dumps(api_deck_dict)})) as post:
            client.post("/api/generate", json={"prompt": "x", "slideCount": 4})
        system_text = post.call_args.kwargs["json"]["input"][0]["content"][0]["text"]
        assert "Rocket company." in system_text


# ═══════════════════════════════════════════════════════════════════════
# Decks, export, projects
# ═══════════════════════════════════════════════════════════════════════


class TestDeckEndpoints:
    def test_default_deck(self, client):
        deck = client.get("/api/deck/default").json()
        assert deck["title"] == "Coding in 2026"
        assert deck["slides"][0]["format"] == {"preset": "linkedin_portrait", "width": 1080, "height": 1350}

    def test_expand(self, client, api_deck_dict):
        resp = client.post("/api/deck/expand", json=api_deck_dict)
        assert resp.status_code == 200
        slides = resp.json()["slides"]
        assert len(slides) == 4
        assert slides[0]["elements"][0]["text"] == "Why another CLI?"

    def test_expand_rejects_bad_deck(self, client):
        resp = client.post("/api/deck/expand", json={"title": "x", "slides": []})
        assert resp.status_code == 400


class TestExportPdf:
    def test_pdf_response(self, client):
        body = {
            "deck": _single_slide_deck_json(),
            "branding": default_branding().to_json_dict(),
            "qualityScale": 0.5,
        }
        resp = client.post("/api/export", json=body)
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.headers["content-disposition"] == 'attachment; filename="Coding in 2026.pdf"'
        assert resp.content.startswith(b"%PDF-1.4")
        assert b"/Width 540 /Height 675" in resp.content

    def test_bad_image(self, client):
        deck = _single_slide_deck_json()
        deck["slides"][0]["elements"].append(
            {"type": "image", "id": "img", "src": "data:image/png;base64,bm9wZQ==", "x": 0, "y": 0, "w": 10,
             "h": 10, "opacity": 1}
        )
        resp = client.post("/api/export", json={"deck": deck, "branding": default_branding().to_json_dict()})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Failed to load image."}

    def test_invalid_payload(self, client):
        resp = client.post("/api/export", json={"deck": {"title": "x", "slides": []}})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request."

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_geometry_rejected(self, client, value):
        deck = _single_slide_deck_json()
        deck["slides"][0]["elements"][0]["x"] = value
        # json.dumps writes Infinity/NaN literals, which the server's JSON parser accepts.
        body = json.dumps({"deck": deck, "branding": default_branding().to_json_dict()})
        resp = client.post("/api/export", content=body.encode(), headers={"content-type": "application/json"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Invalid request."
        assert ["deck", "slides", 0, "elements", 0, "text", "x"] in [issue["loc"] for issue in body["issues"]]

    def test_oversized_format_rejected(self, client):
        deck = _single_slide_deck_json()
        deck["slides"][0]["format"] = {"preset": "custom", "width": 1_000_000, "height": 1_000_000}
        with patch("carousel.main.export_deck_to_pdf") as export:
            resp = client.post("/api/export", json={"deck": deck, "branding": default_branding().to_json_dict()})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request."
        export.assert_not_called()

    def test_oversized_element_rejected(self, client):
        deck = _single_slide_deck_json()
        deck["slides"][0]["elements"][0]["w"] = 1_000_000
        resp = client.post("/api/export", json={"deck": deck, "branding": default_branding().to_json_dict()})
        assert resp.status_code == 400


class TestProjects:
    def test_export_project(self, client, png_data_uri):
        branding = default_branding().to_json_dict()
        branding["avatarSrc"] = png_data_uri()
        resp = client.post("/api/project/export", json={"deck": default_editor_deck().to_json_dict(), "branding": branding})
        assert resp.status_code == 200
        assert resp.headers["content-disposition"] == 'attachment; filename="Coding in 2026.json"'
        data = resp.json()
        assert data["type"] == "sooft_carousel" and data["version"] == 1
        assert "avatarSrc" not in data["branding"]

    def test_import_project(self, client):
        project = serialize_project(default_editor_deck(), default_branding()).to_json_dict()
        resp = client.post("/api/project/import", json=project)
        assert resp.status_code == 200
        body = resp.json()
        assert body["kind"] == "project"
        assert body["deck"] == project["deck"]
        assert body["branding"]["name"] == "Your Name"

    def test_import_legacy(self, client, api_deck_dict):
        body = client.post("/api/project/import", json=api_deck_dict).json()
        assert body["kind"] == "legacy"
        assert len(body["deck"]["slides"]) == 4
        assert "branding" not in body

    def test_import_unrecognized(self, client):
        resp = client.post("/api/project/import", json={"hello": "world"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Unrecognized project file."}


# ═══════════════════════════════════════════════════════════════════════
# Static UI
# ═══════════════════════════════════════════════════════════════════════


class TestStatic:
    def test_ui_not_built(self, client):
        resp = client.get("/")
        assert resp.status_code == 404
        assert "UI not built" in resp.text

    def test_serves_files_and_spa_fallback(self, client, tmp_path):
        dist = tmp_path / "dist"
        (dist / "assets").mkdir(parents=True)
        (dist / "index.html").write_text("<html>editor</html>", encoding="utf-8")
        (dist / "assets" / "app.js").write_text("console.log(1)", encoding="utf-8")

        assert client.get("/").text == "<html>editor</html>"
        assert client.get("/assets/app.js").text == "console.log(1)"
        assert client.get("/some/editor/route").text == "<html>editor</html>"

    def test_post_to_unknown_path(self, client):
        resp = client.post("/nowhere", json={})
        assert resp.status_code == 404
        assert resp.text == "Not found"

    def test_traversal_falls_back_to_index(self, client, tmp_path):
        dist = tmp_path / "dist"
        dist.mkdir()
        (dist / "index.html").write_text("index", encoding="utf-8")
        (tmp_path / "secret.txt").write_text("secret", encoding="utf-8")
        assert client.get("/..%2Fsecret.txt").text == "index"
