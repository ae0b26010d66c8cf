# carousel/errors.py
"""
Error taxonomy. Every error carries a message that is safe to show to the
caller; handlers at the HTTP and CLI boundary turn them into one line.
"""
from typing import Any, Dict, List, Optional


class CarouselError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CarouselError):
    """Malformed or out-of-bounds input (request body, deck, project file)."""

    def __init__(self, message: str, issues: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.issues = issues or []


class PromptTooLongError(ValidationError):
    """Reported to the caller as its message alone, without the issue list."""


class ConfigurationError(CarouselError):
    pass


class GenerationError(CarouselError):
    """Base for everything that goes wrong talking to the text generation API."""


class UpstreamHttpError(GenerationError):
    def __init__(self, status: int, message: str):
        super().__init__(f"OpenAI error ({status}): {message}")
        self.status = status


class UpstreamResponseError(GenerationError):
    pass


class InvalidDeckError(GenerationError):
    def __init__(self, detail: str):
        super().__init__(f"Invalid deck JSON: {detail}")
        self.detail = detail


class ExportError(CarouselError):
    pass


class ImageDecodeError(ExportError):
    pass
