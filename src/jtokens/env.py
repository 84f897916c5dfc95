"""Secrets from the environment or a project ``.env`` file.

The process environment always wins. Values read from ``.env`` are returned
to the caller and never copied into ``os.environ``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path


def read_dotenv(path: Path) -> dict[str, str]:
    """Parse KEY=VALUE lines (``export`` prefix and simple quotes allowed)."""

    out: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        line = line.removeprefix("export ").lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue

        value = value.strip()
        if len(value) >= 2 and value[0] in ("'", '"') and value[-1] == value[0]:
            value = value[1:-1]
        out[key] = value
    return out


def lookup_secret(
    name: str,
    *,
    dotenv_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> str | None:
    """Return the secret named ``name``, or None when it is unset or empty."""

    env = os.environ if environ is None else environ
    value = env.get(name)
    if value:
        return value

    if dotenv_path is None or not dotenv_path.is_file():
        return None
    try:
        value = read_dotenv(dotenv_path).get(name)
    except OSError:
        return None
    return value or None
