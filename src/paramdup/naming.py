from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from paramdup.invariants import never

# Keys are lowercase; values keep the casing they are returned with.
_SEMANTIC_SUGGESTIONS: Mapping[str, str] = MappingProxyType(
    {
        "value": "newValue",
        "item": "otherItem",
        "data": "additionalData",
        "input": "secondInput",
        "output": "secondOutput",
        "source": "destination",
        "text": "otherText",
        "name": "displayName",
        "id": "secondId",
        "key": "secondaryKey",
        "count": "maxCount",
        "size": "preferredSize",
        "index": "startIndex",
        "length": "maxLength",
    }
)

_PREFIX_REWRITES: tuple[tuple[str, str], ...] = (
    ("is", "shouldBe"),
    ("has", "includes"),
)

_SHORT_NAME_LIMIT = 3


def suggestion_table() -> Mapping[str, str]:
    return _SEMANTIC_SUGGESTIONS


def _semantic(name: str) -> str | None:
    return _SEMANTIC_SUGGESTIONS.get(name.lower())


def _split_trailing_digits(name: str) -> tuple[str, str]:
    end = len(name)
    while end > 0 and name[end - 1].isdigit():
        end -= 1
    return name[:end], name[end:]


def _increment_suffix(name: str) -> str | None:
    prefix, digits = _split_trailing_digits(name)
    if not digits:
        return None
    # isdigit() accepts characters such as superscripts that int() rejects.
    try:
        number = int(digits)
    except ValueError:
        return None
    return f"{prefix}{number + 1}"


def _rewrite_prefix(name: str) -> str | None:
    lowered = name.lower()
    for prefix, replacement in _PREFIX_REWRITES:
        if lowered.startswith(prefix) and len(name) > len(prefix):
            return replacement + name[len(prefix):]
    return None


def _capitalize_first(name: str) -> str:
    return name[:1].upper() + name[1:]


def suggest_name(name: str) -> str:
    """Derive a second parameter name from an existing one.

    Strategies are tried in order and the first hit wins: the semantic
    table, trailing number increment, ``is``/``has`` prefix rewrite, the
    short-name ``2`` suffix, and finally ``alternative`` + capitalized name.
    """
    if not name:
        never("empty parameter name")
    suggestion = (
        _semantic(name)
        or _increment_suffix(name)
        or _rewrite_prefix(name)
    )
    if suggestion is None:
        if len(name) <= _SHORT_NAME_LIMIT:
            suggestion = f"{name}2"
        else:
            suggestion = "alternative" + _capitalize_first(name)
    if suggestion == name:
        never("suggested name collides with original", name=name)
    return suggestion
