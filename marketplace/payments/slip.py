"""
Contrôles d'un justificatif de virement avant tout envoi au stockage.

Ordre: taille, type déclaré et extension, signature binaire, décodage (Pillow),
format détecté vs type déclaré, dimensions.
"""
from io import BytesIO
from pathlib import PurePosixPath
from typing import Dict, Tuple

from PIL import Image, UnidentifiedImageError

from marketplace import config
from marketplace.errors import ErrorCode
from marketplace.outcome import Outcome
from .models import SlipFile

JPEG_SIGNATURE = b"\xff\xd8\xff"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# type MIME -> (signature attendue, format Pillow)
ALLOWED_TYPES: Dict[str, Tuple[bytes, str]] = {
    "image/jpeg": (JPEG_SIGNATURE, "JPEG"),
    "image/png": (PNG_SIGNATURE, "PNG"),
}
ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})

_MIME_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}


def normalize_content_type(content_type: str) -> str:
    base = (content_type or "").split(";")[0].strip().lower()
    return _MIME_ALIASES.get(base, base)


def validate_slip(slip: SlipFile) -> Outcome:
    """Outcome.ok({"format", "width", "height"}) ou le premier motif de rejet."""
    if slip.size == 0:
        return Outcome.fail(ErrorCode.UNSUPPORTED_TYPE, reason="empty_file")
    if slip.size > config.SLIP_MAX_BYTES:
        return Outcome.fail(ErrorCode.FILE_TOO_LARGE, size=slip.size, max_size=config.SLIP_MAX_BYTES)

    content_type = normalize_content_type(slip.content_type)
    extension = PurePosixPath(slip.filename or "").suffix.lower()
    if content_type not in ALLOWED_TYPES or extension not in ALLOWED_EXTENSIONS:
        return Outcome.fail(ErrorCode.UNSUPPORTED_TYPE, content_type=content_type, extension=extension)

    signature, expected_format = ALLOWED_TYPES[content_type]
    if not slip.data.startswith(signature):
        return Outcome.fail(ErrorCode.SIGNATURE_MISMATCH, content_type=content_type)

    try:
        with Image.open(BytesIO(slip.data)) as img:
            detected_format = img.format
            width, height = img.size
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError):
        return Outcome.fail(ErrorCode.UNREADABLE_IMAGE, content_type=content_type)

    if detected_format != expected_format:
        return Outcome.fail(ErrorCode.SIGNATURE_MISMATCH, content_type=content_type, detected_format=detected_format)

    low, high = config.SLIP_MIN_DIMENSION, config.SLIP_MAX_DIMENSION
    if not (low <= width <= high and low <= height <= high):
        return Outcome.fail(ErrorCode.DIMENSION_OUT_OF_RANGE, width=width, height=height)

    return Outcome.ok({"format": detected_format, "width": width, "height": height})
