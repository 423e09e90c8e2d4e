"""Validation of signature images captured from the attendee's drawing canvas."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from attendance.errors import ValidationFailedError

logger = logging.getLogger("attendance.signature")

_DATA_URL_RE = re.compile(r"^data:(?P<mime>image/[A-Za-z0-9.+-]+)?(?:;[^,]*)?;base64,(?P<payload>.*)$", re.S)


@dataclass
class SignatureLimits:
    min_bytes: int = 64
    max_bytes: int = 10 * 1024 * 1024
    min_side: int = 16
    max_pixels: int = 4096 * 4096


@dataclass
class DecodedSignature:
    mime: str
    data: bytes
    width: int
    height: int


def split_data_url(value: str) -> tuple[Optional[str], str]:
    """Return (mime, base64 payload) for a data URL, or (None, value) for bare base64."""
    match = _DATA_URL_RE.match(value.strip())
    if match is None:
        return None, value.strip()
    return match.group("mime"), match.group("payload")


def decode_signature(value: Optional[str], limits: SignatureLimits | None = None) -> DecodedSignature:
    """Decode and sanity-check a signature payload.

    Rejects empty, oversized or undersized payloads, images with more than
    ``limits.max_pixels`` pixels (read from the header before decoding),
    anything Pillow cannot open as an image, images smaller than
    ``limits.min_side`` on either side, and blank canvases (fully transparent
    or a single flat colour).

    Raises:
        ValidationFailedError: if any check fails.
    """
    limits = limits or SignatureLimits()
    if not value or not value.strip():
        raise ValidationFailedError("Signature is required")

    mime, payload = split_data_url(value)
    # Cheap upper bound before decoding: base64 inflates by 4/3
    if len(payload) > (limits.max_bytes * 4) // 3 + 4:
        raise ValidationFailedError("Signature image is too large")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationFailedError("Signature is not valid base64")

    if len(data) < limits.min_bytes:
        raise ValidationFailedError("Signature image is too small")
    if len(data) > limits.max_bytes:
        raise ValidationFailedError("Signature image is too large")

    try:
        with Image.open(io.BytesIO(data)) as header:
            # Header only; nothing is decoded before the pixel bound holds
            if header.width * header.height > limits.max_pixels:
                raise ValidationFailedError("Signature image is too large")
            header.verify()
        # verify() leaves the image unusable; reopen to inspect pixels
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            width, height = img.size
            image_format = (img.format or "").lower()
            blank = _is_blank(img)
    except Image.DecompressionBombError as exc:
        logger.info("Rejected oversized signature: %s", exc)
        raise ValidationFailedError("Signature image is too large")
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        logger.info("Rejected undecodable signature: %s", exc)
        raise ValidationFailedError("Signature is not a readable image")

    if width < limits.min_side or height < limits.min_side:
        raise ValidationFailedError("Signature image is too small")
    if blank:
        raise ValidationFailedError("Signature is empty")

    return DecodedSignature(
        mime=mime or (f"image/{image_format}" if image_format else "application/octet-stream"),
        data=data,
        width=width,
        height=height,
    )


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)


def _is_blank(img: Image.Image) -> bool:
    if _has_alpha(img):
        alpha = img.convert("RGBA").getchannel("A")
        if alpha.getbbox() is None:
            return True
        low, high = alpha.getextrema()
        if low != high:
            # strokes over a transparent background
            return False
    low, high = img.convert("L").getextrema()
    return low == high


def load_signature_image(value: str) -> Optional[Image.Image]:
    """Open a stored signature for rendering. Returns None when it cannot be decoded."""
    _, payload = split_data_url(value or "")
    try:
        data = base64.b64decode(payload, validate=True)
        img = Image.open(io.BytesIO(data))
        img.load()
        return img
    except (binascii.Error, ValueError, UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
        logger.warning("Stored signature could not be decoded: %s", exc)
        return None
