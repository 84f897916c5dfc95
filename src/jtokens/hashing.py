"""Random hashes for ids, nonces and fresh secrets."""

from __future__ import annotations

import hashlib
import secrets

from jtokens.enums import AlgorithmType


def generate_hash(
    prefix: str = "",
    num_bytes: int = 10000,
    algorithm: AlgorithmType = AlgorithmType.HS256,
) -> str:
    """Return ``prefix`` followed by the hex digest of fresh random bytes."""

    if num_bytes < 1:
        raise ValueError("num_bytes must be >= 1")

    h = hashlib.new(algorithm.digest_name)
    h.update(secrets.token_bytes(num_bytes))
    h.update(secrets.token_bytes(num_bytes))
    return prefix + h.hexdigest()
