"""File validation — image type checking and CSV encoding detection.

Uses `filetype` for magic-byte validation of uploaded images (don't trust
extensions or the browser's content type) and `charset-normalizer` for
CSV exports from spreadsheet tools that are not always UTF-8 (Excel on
Windows writes cp1252).
"""
import logging

import filetype
from charset_normalizer import from_bytes

from ..config import settings

log = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

MAX_CSV_SIZE = 2 * 1024 * 1024


def max_image_size() -> int:
    return settings.max_image_size_mb * 1024 * 1024


def validate_image(content: bytes) -> tuple[bool, str]:
    """Check an uploaded image.

    Returns (True, extension) or (False, German error message).
    """
    if not content:
        return False, "Die Datei ist leer."
    if len(content) > max_image_size():
        return False, f"Das Bild darf maximal {settings.max_image_size_mb} MB groß sein."
    kind = filetype.guess(content)
    if kind is None or kind.mime not in ALLOWED_IMAGE_TYPES:
        detected = kind.mime if kind else "unbekannt"
        log.info(f"Rejected image upload, detected type: {detected}")
        return False, "Nur JPEG, PNG und WebP Bilder sind erlaubt."
    return True, ALLOWED_IMAGE_TYPES[kind.mime]


def validate_csv_upload(content: bytes, filename: str) -> tuple[bool, str]:
    """Check a CSV upload before decoding.

    Returns (True, "csv") or (False, German error message).
    """
    if _get_extension(filename) != ".csv":
        return False, "Bitte lade eine CSV-Datei hoch."
    if not content.strip():
        return False, "Die CSV-Datei ist leer oder enthält keine Daten."
    if len(content) > MAX_CSV_SIZE:
        return False, "Die CSV-Datei ist zu groß (max. 2 MB)."
    return True, "csv"


def detect_encoding(content: bytes) -> str:
    """Detect text encoding using charset-normalizer, utf-8-sig otherwise."""
    # A UTF-8 BOM is unambiguous; skip detection
    if content.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    try:
        content.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        pass
    best = from_bytes(content).best()
    if best:
        log.debug(f"Detected encoding: {best.encoding}")
        return best.encoding
    return "utf-8-sig"


def decode_text(content: bytes, encoding: str | None = None) -> str:
    """Decode bytes to string using detected or specified encoding."""
    enc = encoding or detect_encoding(content)
    text = content.decode(enc, errors="replace")
    return text.lstrip("\ufeff")


def _get_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if not filename:
        return ""
    parts = filename.lower().rsplit(".", 1)
    return f".{parts[-1]}" if len(parts) > 1 else ""
