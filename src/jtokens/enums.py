"""Closed value sets used in token headers and expiry policy."""

from __future__ import annotations

from enum import Enum


class AlgorithmType(Enum):
    """HMAC algorithm. The member name is the header ``alg``; the value is the
    ``hashlib`` digest name."""

    HS256 = "sha256"
    HS384 = "sha384"
    HS512 = "sha512"

    @property
    def digest_name(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> AlgorithmType:
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unsupported algorithm: {name!r}") from None


class SupportedType(Enum):
    JWT = "JWT"

    @classmethod
    def from_name(cls, name: str) -> SupportedType:
        try:
            return cls(name.strip().upper())
        except ValueError:
            raise ValueError(f"Unsupported token type: {name!r}") from None


class ExpireMode(Enum):
    """Named token lifetimes: LOW is one month, MIDDLE one week, STRICT one day."""

    LOW = "low"
    MIDDLE = "middle"
    STRICT = "strict"

    @classmethod
    def from_name(cls, name: str) -> ExpireMode:
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise ValueError(f"Unsupported expire mode: {name!r}") from None
