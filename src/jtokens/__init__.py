from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from jtokens.builder import TokenBuilder
from jtokens.enums import AlgorithmType, ExpireMode, SupportedType
from jtokens.errors import (
    ConfigurationError,
    InvalidPeriodError,
    JTokensConfigError,
    JTokensError,
    KeyNotFoundError,
    KeyStoreError,
    MissingKeyIdError,
    MissingResolverError,
    MissingSecretError,
    ResolutionMismatchError,
    SecretTypeError,
    TokenFormatError,
)
from jtokens.hashing import generate_hash
from jtokens.keys import Key, KeyResolver
from jtokens.keystore import KeyStore
from jtokens.validator import get_token_payload, split_token, validate_token


def _package_version() -> str:
    try:
        return version("jtokens")
    except PackageNotFoundError:
        # Running from a source checkout, or otherwise not installed.
        return "0.0.0"


__version__ = _package_version()

__all__ = [
    "AlgorithmType",
    "ConfigurationError",
    "ExpireMode",
    "InvalidPeriodError",
    "JTokensConfigError",
    "JTokensError",
    "Key",
    "KeyNotFoundError",
    "KeyResolver",
    "KeyStore",
    "KeyStoreError",
    "MissingKeyIdError",
    "MissingResolverError",
    "MissingSecretError",
    "ResolutionMismatchError",
    "SecretTypeError",
    "SupportedType",
    "TokenBuilder",
    "TokenFormatError",
    "__version__",
    "generate_hash",
    "get_token_payload",
    "split_token",
    "validate_token",
]
