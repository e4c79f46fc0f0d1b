"""Invariant markers for paramdup."""

from __future__ import annotations

from typing import NoReturn

from paramdup.exceptions import NeverThrown


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The optional env payload is metadata only; it is attached to the raised
    exception for diagnostics.
    """
    raise NeverThrown(reason or "never() marker reached", env=env)
