"""Token verification.

`validate_token` is an ordered state machine. Malformed input and
resolver/key-id mismatches raise; every other rejection (unknown key,
revoked or expired key, expired claim, missing secret, bad signature)
returns ``False`` without saying which stage rejected the token.

A signature is accepted in exactly two spellings: url-safe without padding,
or the standard alphabet with its padding (tokens issued with
``set_url_safe(False)``). Any other spelling of the same bytes is rejected.
"""

from __future__ import annotations

import hmac
import json
import logging
import math
import time
from typing import Any

from jtokens import b64
from jtokens.builder import sign
from jtokens.enums import AlgorithmType
from jtokens.errors import MissingKeyIdError, MissingResolverError, TokenFormatError
from jtokens.keys import Key, KeyResolver

logger = logging.getLogger("jtokens.validator")


def split_token(token: str) -> tuple[str, str, str]:
    """Split ``header.payload.signature``; all three parts must be non-empty."""

    if not isinstance(token, str):
        raise TokenFormatError("Wrong token format: expected a str")

    parts = token.strip().split(".")
    if len(parts) != 3 or not all(parts):
        raise TokenFormatError("Wrong token format")
    return parts[0], parts[1], parts[2]


def _decode_payload(segment: str) -> dict[str, Any]:
    raw = b64.decode(segment)
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise TokenFormatError(f"Wrong token format: payload is not JSON ({e})") from e

    if not isinstance(payload, dict):
        raise TokenFormatError("Wrong token format: payload is not a JSON object")
    return payload


def get_token_payload(token: str) -> dict[str, Any]:
    """Return the token's claims without verifying anything."""

    _, payload, _ = split_token(token)
    return _decode_payload(payload)


def _claim_expired(exp: object, now: float) -> bool:
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        # Unusable expiry claims can never be honoured.
        return True
    if not math.isfinite(exp):
        return True
    return exp <= now


def validate_token(
    token: str,
    secret: str | None = None,
    algorithm: AlgorithmType | None = None,
    key_resolver: KeyResolver | None = None,
    *,
    now: float | None = None,
) -> bool:
    """Verify ``token`` against ``secret`` or against a key from ``key_resolver``.

    Raises:
        TokenFormatError: the token is not three base64url segments with a
            JSON object payload.
        MissingResolverError: the payload names a ``key_id`` but no resolver
            was given.
        MissingKeyIdError: a resolver was given but the payload has no
            ``key_id``.
    """

    header, payload_segment, signature = split_token(token)
    payload = _decode_payload(payload_segment)

    if now is None:
        now = time.time()

    key_id = payload.get("key_id")
    if key_id is not None and key_resolver is None:
        raise MissingResolverError("Token carries a key_id but no key resolver was given")
    if key_resolver is not None and key_id is None:
        raise MissingKeyIdError("A key resolver was given but the token has no key_id")

    key: Key | None = None
    if key_resolver is not None:
        try:
            key = key_resolver.get_key_by_id(str(key_id))
        except Exception as e:  # noqa: BLE001 - resolver failures are a rejection
            logger.debug("Rejected token: key lookup failed (%s)", type(e).__name__)
            return False
        if not isinstance(key, Key):
            logger.debug("Rejected token: resolver returned no key for %r", key_id)
            return False

    if key is not None and (key.is_revoked() or key.is_expired(now)):
        logger.debug("Rejected token: key %r is revoked or expired", key.id)
        return False

    if "exp" in payload and _claim_expired(payload["exp"], now):
        logger.debug("Rejected token: exp claim has passed")
        return False

    effective_secret = key.value if key is not None else secret
    if not effective_secret:
        logger.debug("Rejected token: no secret to verify with")
        return False

    digest = sign(f"{header}.{payload_segment}", effective_secret, algorithm or AlgorithmType.HS256)
    given = signature.encode("utf-8")
    ok_url_safe = hmac.compare_digest(given, b64.encode(digest).encode("ascii"))
    ok_standard = hmac.compare_digest(given, b64.encode(digest, url_safe=False).encode("ascii"))
    ok = ok_url_safe or ok_standard
    if not ok:
        logger.debug("Rejected token: signature mismatch")
    return ok
