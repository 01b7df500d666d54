"""
Image Utilities for the Image Proxy
===================================

Provides:
- "WxH" size parsing
- Data URI encoding
- Recursive extraction of image references from arbitrary provider payloads
"""

import re
import json
import base64
from typing import Any, List, NamedTuple, Optional

from .errors import UnknownResponseFormatError

# ═══════════════════════════════════════════════════════════════════════════════
# SECTION 1: SIZE PARSING
# ═══════════════════════════════════════════════════════════════════════════════

SIZE_PATTERN = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


class ImageSize(NamedTuple):
    width: int
    height: int


def parse_size(value: Optional[str]) -> Optional[ImageSize]:
    """
    Parse a "WxH" string such as "1024x768" or "512 X 512".

    Returns:
        ImageSize, or None for anything that is not two positive integers
        separated by x. Never raises.
    """
    if not isinstance(value, str):
        return None

    match = SIZE_PATTERN.match(value)
    if not match:
        return None

    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        return None
    return ImageSize(width, height)


# ═══════════════════════════════════════════════════════════════════════════════
# SECTION 2: DATA URIS
# ═══════════════════════════════════════════════════════════════════════════════

def to_data_uri(data: bytes, mime_type: str) -> str:
    """Encode raw bytes as data:<mime>;base64,<...>"""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def json_debug_uri(payload: Any) -> str:
    """Encode an unrecognized JSON payload so callers can inspect it"""
    text = json.dumps(payload, ensure_ascii=False, default=str)
    return to_data_uri(text.encode("utf-8"), "application/json")


# ═══════════════════════════════════════════════════════════════════════════════
# SECTION 3: RESPONSE NORMALIZATION
# ═══════════════════════════════════════════════════════════════════════════════

# Heuristic: a long run of base64 alphabet is taken to be image content.
# Long opaque tokens (hashes, ids) can be false positives; base64 with line
# breaks or the URL-safe alphabet is missed.
BASE64_PATTERN = re.compile(r"[A-Za-z0-9+/]+={0,2}")
BASE64_MIN_LENGTH = 100

# Heuristic: bare base64 carries no format, so PNG is assumed without sniffing.
ASSUMED_BASE64_MIME = "image/png"

# Heuristic: any http(s) string is taken to be a direct image URL. Links that
# are not images (model cards, docs, callbacks) are false positives, and a
# payload holding only such a link yields that link instead of the JSON debug
# entry.
URL_PREFIXES = ("http://", "https://")


def looks_like_base64(value: str) -> bool:
    return len(value) > BASE64_MIN_LENGTH and BASE64_PATTERN.fullmatch(value) is not None


def _normalize_string(value: str) -> Optional[str]:
    if value.startswith("data:image"):
        return value
    if looks_like_base64(value):
        return f"data:{ASSUMED_BASE64_MIME};base64,{value}"
    if value.startswith(URL_PREFIXES):
        return value
    return None


def _collect(value: Any, found: List[str]):
    if isinstance(value, str):
        image = _normalize_string(value)
        if image is not None:
            found.append(image)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _collect(item, found)
    elif isinstance(value, dict):
        # Key names carry no meaning; only values are searched
        for item in value.values():
            _collect(item, found)


def normalize_images(value: Any) -> List[str]:
    """
    Recursively extract image references from an arbitrary JSON value.

    Strings are checked in order:
        1. "data:image..." strings are kept as-is
        2. base64-looking strings over 100 chars become PNG data URIs
        3. http(s) URLs are kept as-is

    Lists are walked in order, dicts over their values. Anything else is
    ignored.

    Returns:
        List of image references in traversal order (possibly empty)
    """
    found: List[str] = []
    _collect(value, found)
    return found


def normalize_payload(body: bytes, content_type: str = "") -> List[str]:
    """
    Classify a raw provider body and extract images from it.

    - image/* content: exactly one data URI of the bytes
    - JSON (declared, or parseable despite another content type): the result
      of normalize_images, or a single application/json debug data URI when
      nothing was recognized

    Raises:
        UnknownResponseFormatError: body is neither an image nor JSON
    """
    content_type = content_type or ""
    mime = content_type.split(";")[0].strip().lower()

    if mime.startswith("image/"):
        return [to_data_uri(body, mime)]

    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise UnknownResponseFormatError(content_type)

    images = normalize_images(payload)
    if not images:
        return [json_debug_uri(payload)]
    return images
