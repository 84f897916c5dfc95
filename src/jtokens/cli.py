from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from jtokens import __version__
from jtokens.config import JTokensConfig, default_config, find_config, load_config
from jtokens.enums import AlgorithmType, ExpireMode
from jtokens.env import lookup_secret
from jtokens.errors import (
    ConfigurationError,
    KeyNotFoundError,
    ResolutionMismatchError,
    TokenFormatError,
)

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_CONFIG = 2
EXIT_FORMAT = 3

_LOG_LEVELS = ("debug", "info", "warning", "error")


def _add_common_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--root",
        type=str,
        default=None,
        help="Project root (defaults to searching upward from cwd for jtokens.toml).",
    )
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to jtokens.toml (defaults to <root>/jtokens.toml).",
    )
    p.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Print a machine readable JSON result.",
    )
    p.add_argument(
        "--log-level",
        choices=_LOG_LEVELS,
        default="warning",
        help="Logging level for diagnostics on stderr.",
    )


def _add_alg_flag(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--alg",
        choices=[a.name for a in AlgorithmType],
        default=None,
        help="HMAC algorithm (defaults to token.algorithm from config).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jtokens")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    make_p = subparsers.add_parser("make", help="Issue a signed token.")
    _add_common_flags(make_p)
    _add_alg_flag(make_p)
    make_p.add_argument("--payload", default="{}", help="Claims as a JSON object.")
    make_p.add_argument(
        "--mode",
        choices=[m.value for m in ExpireMode],
        default=None,
        help="Expire mode (defaults to token.expire_mode from config).",
    )
    make_p.add_argument("--period", default=None, help='Relative expiry, e.g. "+2 hours".')
    make_p.add_argument("--ts", type=int, default=None, help="Absolute expiry timestamp.")
    make_p.add_argument(
        "--key-id",
        default=None,
        help="Sign with this key from the keys file instead of the secret.",
    )
    make_p.add_argument(
        "--no-url-safe",
        action="store_true",
        help="Use the standard base64 alphabet with padding.",
    )

    verify_p = subparsers.add_parser("verify", help="Verify a token.")
    _add_common_flags(verify_p)
    _add_alg_flag(verify_p)
    verify_p.add_argument("token", help="The token to verify.")

    inspect_p = subparsers.add_parser("inspect", help="Print a token's claims without verifying.")
    _add_common_flags(inspect_p)
    inspect_p.add_argument("token", help="The token to decode.")

    hash_p = subparsers.add_parser("hash", help="Print a random hash.")
    _add_common_flags(hash_p)
    _add_alg_flag(hash_p)
    hash_p.add_argument("--prefix", default="", help="Prepended to the hex digest.")
    hash_p.add_argument("--bytes", dest="num_bytes", type=int, default=10000)

    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def _is_json_mode(args: argparse.Namespace) -> bool:
    return bool(getattr(args, "json_output", False))


def _configure_logging(args: argparse.Namespace) -> None:
    level = getattr(args, "log_level", "warning")
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )


def _load_config(args: argparse.Namespace) -> tuple[Path, JTokensConfig]:
    root = Path(args.root).resolve() if args.root else None
    config_path = Path(args.config).resolve() if args.config else None

    if config_path is not None:
        return (root or config_path.parent), load_config(config_path=config_path)

    found = find_config(root or Path.cwd())
    if root is not None and found is not None and found.parent != root:
        # Only honour a config that sits in the explicit root.
        found = None
    if found is None:
        return (root or Path.cwd()), default_config()
    return found.parent, load_config(config_path=found)


def _algorithm(args: argparse.Namespace, cfg: JTokensConfig) -> AlgorithmType:
    if getattr(args, "alg", None):
        return AlgorithmType[args.alg]
    return cfg.token.algorithm


def _load_key_store(root: Path, cfg: JTokensConfig):
    keys_path = cfg.keys_path(root)
    if keys_path is None:
        return None
    from jtokens.keystore import KeyStore

    return KeyStore.from_file(keys_path)


def _require_secret(root: Path, cfg: JTokensConfig) -> str:
    name = cfg.secrets.secret_env
    secret = lookup_secret(name, dotenv_path=root / ".env")
    if secret is None:
        raise KeyError(name)
    return secret


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _print_error(e: BaseException) -> None:
    if isinstance(e, KeyError) and not isinstance(e, KeyNotFoundError) and e.args:
        name = e.args[0]
        if isinstance(name, str) and name:
            _eprint(
                f"error: missing environment variable {name}. "
                f"Set it in the environment or add it to <project_root>/.env."
            )
            return
    msg = (str(e) or repr(e)).strip()
    _eprint(f"error: {msg}")


def _emit(args: argparse.Namespace, result: dict[str, Any], text: str) -> None:
    if _is_json_mode(args):
        print(json.dumps(result, sort_keys=True))
    else:
        print(text)


def cmd_make(args: argparse.Namespace) -> int:
    from jtokens.builder import TokenBuilder

    try:
        root, cfg = _load_config(args)

        try:
            claims = json.loads(args.payload)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"--payload is not valid JSON: {e}") from e
        if not isinstance(claims, dict):
            raise ConfigurationError("--payload must be a JSON object")

        builder = TokenBuilder(
            algorithm=_algorithm(args, cfg),
            type=cfg.token.type,
            expire_mode=ExpireMode(args.mode) if args.mode else cfg.token.expire_mode,
        )
        builder.set_payload(claims).set_url_safe(cfg.token.url_safe and not args.no_url_safe)

        if args.key_id is not None:
            store = _load_key_store(root, cfg)
            if store is None:
                raise ConfigurationError("--key-id needs secrets.keys_file in jtokens.toml")
            builder.set_secret(store.get_key_by_id(args.key_id))
        else:
            builder.set_secret(_require_secret(root, cfg))

        if args.period is not None:
            builder.set_expires_period(args.period)
        if args.ts is not None:
            builder.set_expires_ts(args.ts)

        token = builder.make_token()
    except (ConfigurationError, KeyError) as e:
        _print_error(e)
        return EXIT_CONFIG

    _emit(args, {"command": "make", "ok": True, "token": token}, token)
    return EXIT_OK


def cmd_verify(args: argparse.Namespace) -> int:
    from jtokens.validator import get_token_payload, validate_token

    try:
        root, cfg = _load_config(args)
        payload = get_token_payload(args.token)

        resolver = None
        secret = None
        if "key_id" in payload:
            resolver = _load_key_store(root, cfg)
        else:
            secret = _require_secret(root, cfg)

        ok = validate_token(args.token, secret, _algorithm(args, cfg), resolver)
    except TokenFormatError as e:
        _print_error(e)
        return EXIT_FORMAT
    except (ConfigurationError, ResolutionMismatchError, KeyError) as e:
        _print_error(e)
        return EXIT_CONFIG

    _emit(args, {"command": "verify", "ok": ok}, "valid" if ok else "invalid")
    return EXIT_OK if ok else EXIT_REJECTED


def cmd_inspect(args: argparse.Namespace) -> int:
    from jtokens.validator import get_token_payload

    try:
        payload = get_token_payload(args.token)
    except TokenFormatError as e:
        _print_error(e)
        return EXIT_FORMAT

    _emit(
        args,
        {"command": "inspect", "ok": True, "payload": payload},
        json.dumps(payload, indent=2, sort_keys=True),
    )
    return EXIT_OK


def cmd_hash(args: argparse.Namespace) -> int:
    from jtokens.hashing import generate_hash

    try:
        _, cfg = _load_config(args)
        digest = generate_hash(args.prefix, args.num_bytes, _algorithm(args, cfg))
    except (ConfigurationError, ValueError) as e:
        _print_error(e)
        return EXIT_CONFIG

    _emit(args, {"command": "hash", "ok": True, "hash": digest}, digest)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(list(sys.argv[1:] if argv is None else argv))
    except SystemExit as e:
        # argparse uses SystemExit for --help/--version and parse errors.
        code = e.code
        return int(code) if isinstance(code, int) else EXIT_CONFIG

    _configure_logging(args)

    if args.command == "make":
        return cmd_make(args)
    if args.command == "verify":
        return cmd_verify(args)
    if args.command == "inspect":
        return cmd_inspect(args)
    if args.command == "hash":
        return cmd_hash(args)

    return EXIT_CONFIG


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
