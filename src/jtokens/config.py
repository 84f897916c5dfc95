"""Project configuration loading for jtokens.

Reads an optional `jtokens.toml` and performs light validation. Everything has
a default, so a missing file means `default_config()`.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jtokens.enums import AlgorithmType, ExpireMode, SupportedType
from jtokens.errors import JTokensConfigError

CONFIG_FILENAME = "jtokens.toml"


@dataclass(frozen=True)
class TokenConfig:
    algorithm: AlgorithmType
    type: SupportedType
    expire_mode: ExpireMode
    url_safe: bool


@dataclass(frozen=True)
class SecretsConfig:
    secret_env: str
    keys_file: str | None


@dataclass(frozen=True)
class JTokensConfig:
    version: int
    token: TokenConfig
    secrets: SecretsConfig

    def keys_path(self, root: Path) -> Path | None:
        if self.secrets.keys_file is None:
            return None
        return root / self.secrets.keys_file


def default_config() -> JTokensConfig:
    return JTokensConfig(
        version=1,
        token=TokenConfig(
            algorithm=AlgorithmType.HS256,
            type=SupportedType.JWT,
            expire_mode=ExpireMode.LOW,
            url_safe=True,
        ),
        secrets=SecretsConfig(secret_env="JTOKENS_SECRET", keys_file=None),
    )


def find_config(start: Path) -> Path | None:
    """Walk upward from `start` (file or directory) looking for `jtokens.toml`."""

    cur = start
    try:
        if cur.is_file():
            cur = cur.parent
    except OSError:
        cur = cur.parent

    cur = cur.resolve()
    while True:
        candidate = cur / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if cur.parent == cur:
            return None
        cur = cur.parent


def _as_table(value: Any, *, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise JTokensConfigError(f"Expected [{name}] to be a table.")
    return value


def _as_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise JTokensConfigError(f"Expected {name} to be a boolean.")
    return value


def _as_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise JTokensConfigError(f"Expected {name} to be an integer.")
    return value


def _as_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str):
        raise JTokensConfigError(f"Expected {name} to be a string.")
    return value


def _as_enum(value: Any, parse: Any, *, name: str) -> Any:
    try:
        return parse(_as_str(value, name=name))
    except ValueError as e:
        raise JTokensConfigError(f"Invalid {name}: {e}") from e


def load_config(*, root: Path | None = None, config_path: Path | None = None) -> JTokensConfig:
    """Load and validate `jtokens.toml` from `config_path` or `<root>/jtokens.toml`."""

    if config_path is None:
        if root is None:
            root = Path.cwd()
        config_path = root / CONFIG_FILENAME

    try:
        raw = config_path.read_bytes()
    except FileNotFoundError as e:
        raise JTokensConfigError(f"Missing {CONFIG_FILENAME} at: {config_path}") from e
    except OSError as e:
        raise JTokensConfigError(f"Failed reading config file: {config_path}") from e

    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise JTokensConfigError(f"Config is not valid UTF-8: {config_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise JTokensConfigError(f"Invalid TOML in {config_path}: {e}") from e

    defaults = default_config()

    version_i = _as_int(data.get("version", 1), name="version")
    if version_i != 1:
        raise JTokensConfigError(f"Unsupported config version: {version_i} (expected 1).")

    token_tbl = _as_table(data.get("token"), name="token")
    secrets_tbl = _as_table(data.get("secrets"), name="secrets")

    if "algorithm" in token_tbl:
        algorithm = _as_enum(
            token_tbl["algorithm"], AlgorithmType.from_name, name="token.algorithm"
        )
    else:
        algorithm = defaults.token.algorithm

    if "type" in token_tbl:
        token_type = _as_enum(token_tbl["type"], SupportedType.from_name, name="token.type")
    else:
        token_type = defaults.token.type

    if "expire_mode" in token_tbl:
        expire_mode = _as_enum(
            token_tbl["expire_mode"], ExpireMode.from_name, name="token.expire_mode"
        )
    else:
        expire_mode = defaults.token.expire_mode

    if "url_safe" in token_tbl:
        url_safe = _as_bool(token_tbl["url_safe"], name="token.url_safe")
    else:
        url_safe = defaults.token.url_safe

    if "secret_env" in secrets_tbl:
        secret_env = _as_str(secrets_tbl["secret_env"], name="secrets.secret_env")
    else:
        secret_env = defaults.secrets.secret_env

    keys_file = None
    if "keys_file" in secrets_tbl:
        keys_file = _as_str(secrets_tbl["keys_file"], name="secrets.keys_file")

    # Validation
    if not secret_env:
        raise JTokensConfigError("Invalid config: secrets.secret_env must be non-empty.")

    if keys_file is not None and not keys_file.strip():
        raise JTokensConfigError("Invalid config: secrets.keys_file must be non-empty.")

    return JTokensConfig(
        version=version_i,
        token=TokenConfig(
            algorithm=algorithm,
            type=token_type,
            expire_mode=expire_mode,
            url_safe=url_safe,
        ),
        secrets=SecretsConfig(secret_env=secret_env, keys_file=keys_file),
    )
