"""Reload a file backed KeyStore when its file changes (optional ``watch`` extra)."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jtokens.keystore import KeyStore


@dataclass(frozen=True, slots=True)
class ReloadResult:
    """Outcome of one reload triggered by a file change."""

    path: Path
    key_count: int
    timestamp: float


def check_watchfiles_available() -> None:
    """Raise ImportError with a helpful message if watchfiles is not installed."""
    import importlib

    try:
        importlib.import_module("watchfiles")
    except ImportError:
        raise ImportError(
            "watchfiles is required to watch key files. "
            "Install it with: pip install jtokens[watch]"
        ) from None


def touches(changed: set[tuple[Any, str]], target: Path) -> bool:
    """True if any changed path in a watchfiles batch is ``target``."""
    resolved = target.resolve()
    return any(Path(p).resolve() == resolved for _, p in changed)


async def run_reload_loop(
    *,
    changes_iter: AsyncIterator[set[tuple[Any, str]]],
    store: KeyStore,
    on_reload: Callable[[ReloadResult], None],
    on_error: Callable[[BaseException], None],
) -> None:
    """Consume ``changes_iter`` and reload ``store`` when its file changed.

    A failed reload keeps the previous snapshot and is reported via
    ``on_error``; the loop keeps running.
    """
    if store.path is None:
        raise ValueError("Only a KeyStore loaded from a file can be watched")

    async for raw_changes in changes_iter:
        if not touches(raw_changes, store.path):
            continue

        try:
            count = store.reload()
        except Exception as exc:
            on_error(exc)
            continue

        on_reload(ReloadResult(path=store.path, key_count=count, timestamp=time.monotonic()))


def make_watchfiles_iter(path: Path) -> AsyncIterator[set[tuple[Any, str]]]:
    """Create an async iterator using watchfiles.awatch() on the file's directory."""
    import watchfiles  # type: ignore[import-untyped]

    # Editors often replace files; watch the parent so renames are seen.
    return watchfiles.awatch(path.resolve().parent, debounce=200)
