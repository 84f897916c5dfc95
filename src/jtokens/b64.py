"""Base64url helpers for token segments.

Tokens travel with the url-safe alphabet and without ``=`` padding. Decoding
accepts either alphabet and restores padding from the text length.
"""

from __future__ import annotations

import base64
import binascii

from jtokens.errors import TokenFormatError

_TO_URL_SAFE = str.maketrans("+/", "-_")
_FROM_URL_SAFE = str.maketrans("-_", "+/")


def to_url_safe(text: str) -> str:
    """Translate standard base64 text to the url-safe, unpadded alphabet."""

    return text.replace("=", "").translate(_TO_URL_SAFE)


def encode(data: bytes, *, url_safe: bool = True) -> str:
    text = base64.b64encode(data).decode("ascii")
    return to_url_safe(text) if url_safe else text


def _repad(text: str) -> str:
    text = text.replace("=", "").translate(_FROM_URL_SAFE)

    rem = len(text) % 4
    if rem == 0:
        return text
    if rem == 2:
        return text + "=="
    if rem == 3:
        return text + "="
    raise TokenFormatError("The string is not base64url encoded (invalid length).")


def decode(text: str) -> bytes:
    """Decode url-safe (or standard) base64 text, repairing stripped padding."""

    padded = _repad(text)
    try:
        return base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise TokenFormatError(f"The string is not base64url encoded: {e}") from e
