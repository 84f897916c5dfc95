"""jtokens exception hierarchy.

Keep this module small and dependency-free: it is imported broadly across the
package and by tests.

Verification failures (bad signature, expired claim, revoked key, resolver
miss) are never exceptions; `validate_token` reports them as ``False``.
"""


class JTokensError(Exception):
    """Base exception for all jtokens errors."""


class TokenFormatError(JTokensError):
    """Raised when a token or one of its segments is malformed."""


class ConfigurationError(JTokensError):
    """Raised for build-time misuse of the API."""


class MissingSecretError(ConfigurationError):
    """Raised when a token is requested before a secret was set."""


class InvalidPeriodError(ConfigurationError):
    """Raised when a relative expiry period cannot be parsed."""


class SecretTypeError(ConfigurationError, TypeError):
    """Raised when the secret is neither a string nor a Key."""


class JTokensConfigError(ConfigurationError):
    """Raised for invalid jtokens.toml or CLI configuration."""


class KeyStoreError(ConfigurationError):
    """Raised when a key registry file cannot be loaded at all."""


class ResolutionMismatchError(JTokensError):
    """Raised when the token's key id and the supplied resolver disagree."""


class MissingResolverError(ResolutionMismatchError):
    """Raised when a token carries a key id but no resolver was supplied."""


class MissingKeyIdError(ResolutionMismatchError):
    """Raised when a resolver was supplied but the token has no key id."""


class KeyNotFoundError(JTokensError, KeyError):
    """Raised by key resolvers when no key has the requested id."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""
