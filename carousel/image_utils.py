# carousel/image_utils.py
import base64
import binascii
import io
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

from .errors import ImageDecodeError


def data_uri_bytes(src: str) -> bytes:
    """
    Return the payload of a `data:` URI. Bare base64 (no `data:` prefix) is
    accepted too, since some clients strip the header.
    """
    if src.startswith("data:"):
        header, sep, payload = src.partition(",")
        if not sep:
            raise ImageDecodeError("Failed to load image.")
        if header.endswith(";base64"):
            return _b64(payload)
        return unquote_to_bytes(payload)
    return _b64(src)


def _b64(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError("Failed to load image.") from e


def decode_image(src: str) -> Image.Image:
    """Decode a data URI into a fully loaded RGBA image."""
    raw = data_uri_bytes(src)
    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageDecodeError("Failed to load image.") from e


def to_data_uri(img: Image.Image, fmt: str = "PNG") -> str:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    mime = "image/jpeg" if fmt.upper() in ("JPEG", "JPG") else f"image/{fmt.lower()}"
    return f"data:{mime};base64," + base64.b64encode(buf.getvalue()).decode("ascii")
