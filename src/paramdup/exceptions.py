"""Exception protocol markers for paramdup."""

from __future__ import annotations


class NeverRaise(RuntimeError):
    """Sentinel exception that should be statically unreachable.

    Raising this exception signals that a code path the rewriter relies on
    being impossible (an empty parameter name, a suggestion equal to its
    input) was reached anyway.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.reason = message
        self.env = dict(env or {})

    @property
    def marker_payload_dict(self) -> dict[str, object]:
        return {
            "reason": self.reason,
            "env": {key: str(value) for key, value in self.env.items()},
        }


class NeverThrown(NeverRaise):
    """Alias for NeverRaise used by the explicit never() marker."""
