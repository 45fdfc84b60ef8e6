"""Image helpers: data URLs and canvas fitting."""

import base64
import binascii
import io
import re

from PIL import Image

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]+)*),(?P<data>.*)$", re.DOTALL)

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


def is_data_url(value: str) -> bool:
    return value.startswith("data:")


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(url: str) -> tuple[str, bytes]:
    """Split a base64 data URL into (mime type, raw bytes).

    Raises:
        ValueError: If the URL is not a base64 data URL.
    """
    match = _DATA_URL_RE.match(url.strip())
    if not match or ";base64" not in (match.group("params") or ""):
        raise ValueError("Not a base64 data URL")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e
    return match.group("mime") or "application/octet-stream", data


def extension_for(mime_type: str) -> str:
    return _EXTENSIONS.get(mime_type, "png")


def open_image(data: bytes) -> Image.Image:
    """Open image bytes fully into memory.

    Raises:
        ValueError: If the bytes are not a readable image.
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (OSError, Image.DecompressionBombError) as e:
        raise ValueError(f"Unreadable image data: {e}") from e
    return img


def stretch_to_canvas(img: Image.Image, width: int, height: int) -> Image.Image:
    """Stretch an image to exactly width x height, flattened onto white RGB."""
    if img.mode in ("RGBA", "LA", "P"):
        img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        img = background
    elif img.mode != "RGB":
        img = img.convert("RGB")
    if img.size != (width, height):
        img = img.resize((width, height), Image.Resampling.LANCZOS)
    return img
