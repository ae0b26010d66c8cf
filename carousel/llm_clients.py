# carousel/llm_clients.py
"""
OpenAI Responses API wrapper that turns a GenerateRequest into a validated Deck.
We never persist or log API keys. All requests are made in-memory.
"""
import json
import logging
import re
from typing import Any, Dict, Optional

import requests

from .config import DEFAULT_BASE_URL, MAX_UPSTREAM_ERROR_CHARS, REQUEST_TIMEOUT_SECONDS
from .errors import (
    GenerationError,
    InvalidDeckError,
    UpstreamHttpError,
    UpstreamResponseError,
    ValidationError,
)
from .schemas import Deck, GenerateRequest, deck_json_schema, describe_issues, filler_slide, validate_deck

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def build_system_prompt(context: str = "") -> str:
    lines = [
        "You generate a LinkedIn carousel deck as JSON.",
        "Return concise, punchy copy that fits a 1080x1350 (4:5) slide.",
        "Avoid markdown; keep lines short; no hashtags unless asked.",
        "Ensure each slide is coherent and the deck flows.",
        "",
        "JSON rules:",
        "- Output must match the provided JSON Schema exactly.",
        "- Every slide must include: title, subtitle, body, bullets, footer.",
        "- If a field has no content, set it to null (not an empty string).",
        "- Titles are short; subtitle/body/bullets/footer can be null.",
    ]
    if context:
        lines += ["", f"App context (PRD):\n{context}"]
    return "\n".join(lines)


def _task_input(request: GenerateRequest) -> str:
    task = {
        "prompt": request.prompt,
        "slideCount": request.slide_count,
        "audience": request.audience,
        "tone": request.tone,
    }
    return json.dumps({k: v for k, v in task.items() if v is not None})


def extract_output_text(result: Any) -> Optional[str]:
    """
    Pull the generated text out of a response body. The API has returned
    three shapes over time: a flat `output_text`, an `output` list of items
    whose `content` chunks carry `text`, and chat-completions `choices`.
    The first non-empty string wins.
    """
    if not isinstance(result, dict):
        return None

    text = result.get("output_text")
    if isinstance(text, str) and text:
        return text

    output = result.get("output")
    if isinstance(output, list):
        for item in output:
            if not isinstance(item, dict):
                continue
            for chunk in item.get("content") or []:
                if isinstance(chunk, dict) and isinstance(chunk.get("text"), str) and chunk["text"]:
                    return chunk["text"]

    choices = result.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message")
        if isinstance(message, dict):
            legacy = message.get("content")
            if isinstance(legacy, str) and legacy:
                return legacy
    return None


def upstream_error_message(resp: requests.Response) -> str:
    content_type = resp.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            data = resp.json()
        except ValueError:
            data = None
        msg = None
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and isinstance(error.get("message"), str):
                msg = error["message"]
            elif isinstance(data.get("message"), str):
                msg = data["message"]
        return (msg or "Request failed")[:MAX_UPSTREAM_ERROR_CHARS]

    clean = _WS_RE.sub(" ", _TAG_RE.sub(" ", resp.text or "")).strip()
    return clean[:MAX_UPSTREAM_ERROR_CHARS]


def repair_slide_count(deck: Deck, slide_count: int) -> Deck:
    """Trim or pad with filler slides so the deck has exactly `slide_count` slides."""
    if len(deck.slides) == slide_count:
        return deck
    slides = list(deck.slides[:slide_count])
    while len(slides) < slide_count:
        slides.append(filler_slide())
    return deck.model_copy(update={"slides": slides})


def generate_deck(
    request: GenerateRequest,
    api_key: str,
    model: str,
    context: str = "",
    base_url: Optional[str] = None,
) -> Deck:
    payload = {
        "model": model,
        "input": [
            {"role": "system", "content": [{"type": "input_text", "text": build_system_prompt(context)}]},
            {"role": "user", "content": [{"type": "input_text", "text": _task_input(request)}]},
        ],
        "text": {
            "format": {
                "type": "json_schema",
                "name": "deck",
                "strict": True,
                "schema": deck_json_schema(),
            }
        },
    }
    data = _openai_responses_json(payload, api_key, base_url)

    out = extract_output_text(data)
    if not out:
        raise UpstreamResponseError("OpenAI response missing output text.")

    try:
        candidate = json.loads(out)
    except ValueError as e:
        raise InvalidDeckError(str(e)) from e
    try:
        deck = validate_deck(candidate)
    except ValidationError as e:
        raise InvalidDeckError(describe_issues(e.issues)) from e

    if len(deck.slides) != request.slide_count:
        logger.info(f"Model returned {len(deck.slides)} slides, repairing to {request.slide_count}")
        deck = repair_slide_count(deck, request.slide_count)
    return deck


# ---------------- OpenAI Responses API ----------------
def _openai_responses_json(payload: Dict[str, Any], api_key: str, base_url: Optional[str] = None) -> Dict[str, Any]:
    url = (base_url or DEFAULT_BASE_URL).rstrip("/") + "/v1/responses"
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    try:
        resp = requests.post(url, headers=headers, json=payload, timeout=REQUEST_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        raise GenerationError(f"OpenAI request failed: {e}"[:MAX_UPSTREAM_ERROR_CHARS]) from e

    if not 200 <= resp.status_code < 300:
        message = upstream_error_message(resp)
        logger.warning(f"OpenAI returned {resp.status_code}: {message}")
        raise UpstreamHttpError(resp.status_code, message)

    try:
        return resp.json()
    except ValueError as e:
        raise UpstreamResponseError("OpenAI response was not JSON.") from e
