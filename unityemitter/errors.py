"""Error types raised by the emitter."""

from __future__ import annotations


class EmitterTypeError(TypeError):
    """Raised when an argument or option has the wrong type.

    ``field`` names the offending argument (``name``, ``callback``) or the
    dotted option path (``options.limits.store``).
    """

    def __init__(self, field: str, expected: str) -> None:
        super().__init__(f"'{field}' is not {expected}.")
        self.field = field
        self.expected = expected


__all__ = ["EmitterTypeError"]
