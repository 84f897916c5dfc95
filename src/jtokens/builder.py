"""Token issuance."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import math
import time
from typing import Any

from jtokens import b64
from jtokens.enums import AlgorithmType, ExpireMode, SupportedType
from jtokens.errors import ConfigurationError, MissingSecretError, SecretTypeError
from jtokens.expiry import Period, parse_period, resolve_expires
from jtokens.keys import Key

logger = logging.getLogger("jtokens.builder")


def _dumps(obj: object) -> str:
    return json.dumps(obj, separators=(",", ":"), allow_nan=False)


def sign(signing_input: str, secret: str, algorithm: AlgorithmType) -> bytes:
    """HMAC digest of the ``header.payload`` text (ASCII for well-formed tokens)."""

    return hmac.new(
        secret.encode("utf-8"),
        signing_input.encode("utf-8"),
        getattr(hashlib, algorithm.digest_name),
    ).digest()


class TokenBuilder:
    """Fluent configuration for one signed token.

    Every setter returns the builder. ``make_token`` leaves the builder
    unchanged, so it can be called again (each call reads the clock afresh).
    """

    def __init__(
        self,
        algorithm: AlgorithmType = AlgorithmType.HS256,
        type: SupportedType = SupportedType.JWT,
        expire_mode: ExpireMode | None = ExpireMode.LOW,
    ) -> None:
        self._algorithm = algorithm
        self._type = type
        self._expire_mode = expire_mode
        self._secret: str | Key | None = None
        self._payload: dict[str, Any] = {}
        self._expires_period: Period | None = None
        self._expires_ts: int | float | None = None
        self._url_safe = True

    @property
    def algorithm(self) -> AlgorithmType:
        return self._algorithm

    def get_algorithm(self) -> AlgorithmType:
        return self._algorithm

    def set_secret(self, secret: str | Key) -> TokenBuilder:
        """Sign with a raw secret, or with a registry key (adds ``key_id``)."""

        if not isinstance(secret, (str, Key)):
            raise SecretTypeError(
                f"Secret must be a str or a Key, got {type(secret).__name__}"
            )
        self._secret = secret
        return self

    def set_payload(self, payload: dict[str, Any] | None = None) -> TokenBuilder:
        self._payload = dict(payload or {})
        return self

    def set_algorithm(self, algorithm: AlgorithmType) -> TokenBuilder:
        self._algorithm = algorithm
        return self

    def set_expire_mode(self, mode: ExpireMode | None) -> TokenBuilder:
        self._expire_mode = mode
        return self

    def set_expires_period(self, period: str) -> TokenBuilder:
        """Expire relative to issuance, e.g. ``"+ 10 minutes"`` or ``"+2 hours"``."""

        self._expires_period = parse_period(period)
        return self

    def set_expires_ts(self, ts: int | float | None) -> TokenBuilder:
        if ts is not None and (
            isinstance(ts, bool) or not isinstance(ts, (int, float)) or not math.isfinite(ts)
        ):
            raise ConfigurationError(f"Expiry timestamp must be a finite number, got {ts!r}")
        self._expires_ts = ts
        return self

    def set_url_safe(self, safe: bool) -> TokenBuilder:
        self._url_safe = safe
        return self

    def _secret_value(self) -> str:
        if isinstance(self._secret, Key):
            return self._secret.value
        return self._secret or ""

    def _encode(self, text: str) -> str:
        return b64.encode(text.encode("utf-8"), url_safe=self._url_safe)

    def _make_header(self) -> str:
        return self._encode(_dumps({"alg": self._algorithm.name, "typ": self._type.value}))

    def _make_payload(self, now: float) -> str:
        claims = dict(self._payload)
        if isinstance(self._secret, Key):
            claims["key_id"] = self._secret.id
        claims["exp"] = resolve_expires(
            self._expires_ts, self._expires_period, self._expire_mode, now
        )
        try:
            text = _dumps(claims)
        except ValueError as e:
            raise ConfigurationError(f"Claims are not valid JSON: {e}") from e
        return self._encode(text)

    def make_token(self, *, now: float | None = None) -> str:
        secret = self._secret_value()
        if not secret:
            raise MissingSecretError("The secret key is empty. Can not make a token")

        if now is None:
            now = time.time()

        header = self._make_header()
        payload = self._make_payload(now)
        signature = b64.encode(
            sign(f"{header}.{payload}", secret, self._algorithm), url_safe=self._url_safe
        )

        logger.debug("Issued %s token (alg=%s)", self._type.value, self._algorithm.name)
        return f"{header}.{payload}.{signature}"
