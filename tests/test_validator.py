from __future__ import annotations

import hashlib
import hmac
import json
from datetime import UTC, datetime

import pytest

from jtokens import b64
from jtokens.builder import TokenBuilder
from jtokens.enums import AlgorithmType, ExpireMode
from jtokens.errors import (
    KeyNotFoundError,
    MissingKeyIdError,
    MissingResolverError,
    TokenFormatError,
)
from jtokens.keys import Key, KeyResolver
from jtokens.keystore import KeyStore
from jtokens.validator import get_token_payload, split_token, validate_token

NOW = 1_700_000_000
DAY = 86400


class _DictResolver(KeyResolver):
    def __init__(self, *keys: Key) -> None:
        self.keys = {k.id: k for k in keys}
        self.calls: list[str] = []

    def get_key_by_id(self, key_id: str) -> Key:
        self.calls.append(key_id)
        try:
            return self.keys[key_id]
        except KeyError:
            raise KeyNotFoundError(key_id) from None


class _BrokenResolver(KeyResolver):
    def get_key_by_id(self, key_id: str) -> Key:
        raise RuntimeError("registry offline")


class _EmptyResolver(KeyResolver):
    def get_key_by_id(self, key_id: str) -> Key:
        return None  # type: ignore[return-value]


def _token(secret: str | Key = "k", **kwargs: object) -> str:
    builder = TokenBuilder(
        algorithm=kwargs.pop("algorithm", AlgorithmType.HS256),  # type: ignore[arg-type]
        expire_mode=kwargs.pop("expire_mode", ExpireMode.STRICT),  # type: ignore[arg-type]
    )
    builder.set_secret(secret).set_payload(kwargs.pop("payload", {"sub": "42"}))  # type: ignore[arg-type]
    if "exp" in kwargs:
        builder.set_expires_ts(kwargs.pop("exp"))  # type: ignore[arg-type]
    if "url_safe" in kwargs:
        builder.set_url_safe(kwargs.pop("url_safe"))  # type: ignore[arg-type]
    return builder.make_token(now=NOW)


def _raw_token(payload: object, secret: str = "k") -> str:
    header = b64.encode(b'{"alg":"HS256","typ":"JWT"}')
    body = b64.encode(json.dumps(payload).encode("utf-8"))
    sig = hmac.new(secret.encode(), f"{header}.{body}".encode(), hashlib.sha256).digest()
    return f"{header}.{body}.{b64.encode(sig)}"


def test_round_trip_validates() -> None:
    assert validate_token(_token(), "k", now=NOW) is True
    assert validate_token(_token(payload={}), "k", now=NOW) is True


def test_strict_token_expires_after_a_day() -> None:
    token = _token(algorithm=AlgorithmType.HS256, expire_mode=ExpireMode.STRICT)
    assert validate_token(token, "k", AlgorithmType.HS256, now=NOW + DAY - 1) is True
    assert validate_token(token, "k", AlgorithmType.HS256, now=NOW + 2 * DAY) is False


def test_wrong_secret_is_rejected() -> None:
    assert validate_token(_token(), "other", now=NOW) is False


@pytest.mark.parametrize("secret", [None, ""])
def test_missing_secret_is_rejected(secret: str | None) -> None:
    assert validate_token(_token(), secret, now=NOW) is False


def test_flipping_any_signature_bit_is_rejected() -> None:
    token = _token()
    header, payload, signature = token.split(".")
    raw = bytearray(b64.decode(signature))

    for bit in range(len(raw) * 8):
        tampered = bytearray(raw)
        tampered[bit // 8] ^= 1 << (bit % 8)
        forged = f"{header}.{payload}.{b64.encode(bytes(tampered))}"
        assert validate_token(forged, "k", now=NOW) is False


def test_tampered_payload_is_rejected() -> None:
    header, _, signature = _token().split(".")
    body = b64.encode(json.dumps({"sub": "admin", "exp": NOW + DAY}).encode())
    assert validate_token(f"{header}.{body}.{signature}", "k", now=NOW) is False


def test_algorithm_must_match() -> None:
    token = _token(algorithm=AlgorithmType.HS512)
    assert validate_token(token, "k", now=NOW) is False
    assert validate_token(token, "k", AlgorithmType.HS384, now=NOW) is False
    assert validate_token(token, "k", AlgorithmType.HS512, now=NOW) is True


def test_expired_claim_is_rejected_even_with_valid_signature() -> None:
    assert validate_token(_token(exp=NOW - 10), "k", now=NOW) is False


def test_exp_boundary_is_inclusive() -> None:
    token = _token(exp=NOW + 5)
    assert validate_token(token, "k", now=NOW + 4) is True
    assert validate_token(token, "k", now=NOW + 5) is False


def test_token_without_exp_does_not_expire() -> None:
    assert validate_token(_raw_token({"sub": "42"}), "k", now=NOW) is True


@pytest.mark.parametrize("exp", ["tomorrow", None, True, [1]])
def test_non_numeric_exp_is_rejected(exp: object) -> None:
    assert validate_token(_raw_token({"sub": "42", "exp": exp}), "k", now=NOW) is False


@pytest.mark.parametrize("exp", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_exp_is_rejected(exp: float) -> None:
    token = _raw_token({"sub": "42", "exp": exp})
    assert validate_token(token, "k", now=NOW) is False
    assert validate_token(token, "k", now=NOW + 10**9) is False


def test_standard_base64_tokens_validate() -> None:
    token = _token(url_safe=False, payload={"d": "ÿÿÿ?>"})
    assert validate_token(token, "k", now=NOW) is True


def test_surrounding_whitespace_is_ignored() -> None:
    assert validate_token(f"  {_token()}\n", "k", now=NOW) is True


def test_only_canonical_signature_spellings_validate() -> None:
    header, payload, signature = _token().split(".")
    for variant in (f"{signature}=", f"{signature[:10]}={signature[10:]}", f"={signature}"):
        assert validate_token(f"{header}.{payload}.{variant}", "k", now=NOW) is False


@pytest.mark.parametrize(
    "token",
    ["", "abc", "a.b", "a.b.c.d", "a..c", ".b.c", "a.b.", "..."],
)
def test_wrong_segment_count_is_a_format_error(token: str) -> None:
    with pytest.raises(TokenFormatError):
        validate_token(token, "k")


def test_bad_payload_segments_are_format_errors() -> None:
    header, _, signature = _token().split(".")

    with pytest.raises(TokenFormatError):
        validate_token(f"{header}.YWJjZ.{signature}", "k")  # length % 4 == 1
    with pytest.raises(TokenFormatError):
        validate_token(f"{header}.{b64.encode(b'not json')}.{signature}", "k")
    with pytest.raises(TokenFormatError):
        validate_token(f"{header}.{b64.encode(b'[1, 2]')}.{signature}", "k")
    with pytest.raises(TokenFormatError):
        validate_token(f"{header}.{b64.encode(bytes([0xFF, 0xFE]))}.{signature}", "k")


def test_deeply_nested_payload_is_a_format_error() -> None:
    header, _, signature = _token().split(".")
    body = b64.encode(b"[" * 100_000 + b"]" * 100_000)
    with pytest.raises(TokenFormatError):
        validate_token(f"{header}.{body}.{signature}", "k")


def test_key_id_without_resolver_is_an_error() -> None:
    token = _token(Key(id="k1", expires=None, value="s"))
    with pytest.raises(MissingResolverError):
        validate_token(token, "s", now=NOW)


def test_resolver_without_key_id_is_an_error() -> None:
    resolver = _DictResolver(Key(id="k1", expires=None, value="k"))
    with pytest.raises(MissingKeyIdError):
        validate_token(_token(), "k", key_resolver=resolver, now=NOW)
    assert resolver.calls == []


def test_resolved_key_value_is_the_secret() -> None:
    key = Key(id="k1", expires=None, value="key-secret")
    resolver = _DictResolver(key)
    token = _token(key)

    assert validate_token(token, key_resolver=resolver, now=NOW) is True
    assert validate_token(token, "ignored", key_resolver=resolver, now=NOW) is True
    assert resolver.calls == ["k1", "k1"]


def test_revoked_key_is_rejected_even_with_matching_signature() -> None:
    token = _token(Key(id="k1", expires=None, value="s"))
    resolver = _DictResolver(Key(id="k1", expires=None, value="s", revoked=True))
    assert validate_token(token, key_resolver=resolver, now=NOW) is False


def test_expired_key_is_rejected_using_the_validation_clock() -> None:
    expires = datetime.fromtimestamp(NOW + 60, tz=UTC)
    key = Key(id="k1", expires=expires, value="s")
    token = _token(key)
    resolver = _DictResolver(key)

    assert validate_token(token, key_resolver=resolver, now=NOW) is True
    assert validate_token(token, key_resolver=resolver, now=NOW + 60) is False


def test_unknown_key_is_rejected() -> None:
    token = _token(Key(id="gone", expires=None, value="s"))
    assert validate_token(token, key_resolver=_DictResolver(), now=NOW) is False


def test_resolver_failures_are_rejections_not_errors() -> None:
    token = _token(Key(id="k1", expires=None, value="s"))
    assert validate_token(token, key_resolver=_BrokenResolver(), now=NOW) is False


def test_resolver_returning_no_key_never_falls_back_to_the_secret() -> None:
    token = _token(Key(id="k1", expires=None, value="k"))
    assert validate_token(token, "k", key_resolver=_EmptyResolver(), now=NOW) is False


def test_key_with_empty_value_is_rejected() -> None:
    token = _token(Key(id="k1", expires=None, value="s"))
    resolver = _DictResolver(Key(id="k1", expires=None, value=""))
    assert validate_token(token, "s", key_resolver=resolver, now=NOW) is False


def test_key_store_end_to_end() -> None:
    store = KeyStore(
        [
            {"id": "k1", "key": "one", "revoked": False},
            {"id": "k2", "key": "two", "revoked": True},
        ]
    )
    good = _token(store.get_key_by_id("k1"))
    revoked = _token(store.get_key_by_id("k2"))

    assert validate_token(good, key_resolver=store, now=NOW) is True
    assert validate_token(revoked, key_resolver=store, now=NOW) is False


def test_split_token_and_get_token_payload() -> None:
    token = _token(exp=NOW + 5)
    header, payload, signature = split_token(token)
    assert f"{header}.{payload}.{signature}" == token
    assert get_token_payload(token) == {"sub": "42", "exp": NOW + 5}


def test_split_token_rejects_non_strings() -> None:
    with pytest.raises(TokenFormatError):
        split_token(None)  # type: ignore[arg-type]
