# carousel/cli.py
"""
carousel command line.

Usage:
    carousel serve [--host HOST] [--port PORT]
    carousel generate "launch a new CLI" --slides 6 -o deck.json
    carousel export deck.json -o deck.pdf [--scale 2] [--quality 0.92] [--avatar me.png]

`export` accepts a saved project file or a bare {title, slides} deck.
Branding flags override whatever the project file carries.
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from PIL import Image

from .config import DEFAULT_JPEG_QUALITY, get_settings, read_app_context
from .editor import api_deck_to_editor, default_branding
from .errors import CarouselError, ConfigurationError
from .export import export_deck_to_pdf
from .image_utils import to_data_uri
from .llm_clients import generate_deck
from .project import load_editor_state, serialize_project
from .schemas import validate_request

logger = logging.getLogger("carousel")


def _cmd_serve(args) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run("carousel.main:app", host=args.host or settings.host, port=args.port or settings.port)
    return 0


def _cmd_generate(args) -> int:
    settings = get_settings()
    if not settings.openai_api_key:
        raise ConfigurationError("Missing OPENAI_API_KEY.")
    request = validate_request({
        "prompt": args.prompt,
        "slideCount": args.slides,
        "audience": args.audience,
        "tone": args.tone,
    })
    deck = generate_deck(
        request,
        settings.openai_api_key,
        settings.openai_model,
        read_app_context(settings.app_context_path),
        settings.openai_base_url,
    )
    project = serialize_project(api_deck_to_editor(deck), default_branding())
    Path(args.output).write_text(json.dumps(project.to_json_dict(), indent=2), encoding="utf-8")
    print(f"Wrote {len(deck.slides)} slides to {args.output}")
    return 0


def _cmd_export(args) -> int:
    try:
        data = json.loads(Path(args.project).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"Could not read {args.project}: {e}", file=sys.stderr)
        return 1

    state = load_editor_state(data)
    if state is None:
        print(f"{args.project} is neither a project file nor a deck.", file=sys.stderr)
        return 1
    deck, branding = state
    branding = branding or default_branding()

    overrides = {k: v for k, v in {"name": args.name, "handle": args.handle}.items() if v is not None}
    if args.avatar:
        try:
            with Image.open(args.avatar) as img:
                overrides["avatar_src"] = to_data_uri(img.convert("RGBA"))
        except (OSError, Image.DecompressionBombError) as e:
            print(f"Could not read {args.avatar}: {e}", file=sys.stderr)
            return 1
    if overrides:
        branding = branding.model_copy(update=overrides)

    pdf_bytes = export_deck_to_pdf(deck, branding, args.scale, args.quality)
    Path(args.output).write_bytes(pdf_bytes)
    print(f"Wrote {len(deck.slides)} pages to {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="carousel",
        description="Generate, edit and export carousel decks.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    ap.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=_cmd_serve)

    gen = sub.add_parser("generate", help="Generate a deck and save it as a project file")
    gen.add_argument("prompt", help="What the carousel should be about")
    gen.add_argument("--slides", type=int, default=5, help="Slide count, 4-10 (default: 5)")
    gen.add_argument("--audience", default=None)
    gen.add_argument("--tone", default=None)
    gen.add_argument("-o", "--output", default="deck.json", help="Output project file (default: deck.json)")
    gen.set_defaults(func=_cmd_generate)

    exp = sub.add_parser("export", help="Render a project or deck file to PDF")
    exp.add_argument("project", help="Project JSON or legacy deck JSON")
    exp.add_argument("-o", "--output", default="carousel.pdf", help="Output PDF (default: carousel.pdf)")
    exp.add_argument("--scale", type=float, default=None, help="Raster scale (default: by deck size)")
    exp.add_argument("--quality", type=float, default=DEFAULT_JPEG_QUALITY, help="JPEG quality 0-1")
    exp.add_argument("--avatar", default=None, help="Avatar image file for the footer")
    exp.add_argument("--name", default=None)
    exp.add_argument("--handle", default=None)
    exp.set_defaults(func=_cmd_export)
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else get_settings().log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except CarouselError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
