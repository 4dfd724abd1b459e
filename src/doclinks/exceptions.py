"""Exception types raised by doclinks surfaces."""

from __future__ import annotations


class DoclinksError(RuntimeError):
    pass


class NeverThrown(DoclinksError):
    """Raised by ``never()`` when a path believed unreachable is reached.

    ``env`` carries the keyword context given at the call site so the failure
    can be reported without re-deriving it.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.env = dict(env or {})

    def __str__(self) -> str:
        if not self.env:
            return super().__str__()
        details = ", ".join(f"{key}={value!r}" for key, value in sorted(self.env.items()))
        return f"{super().__str__()} ({details})"
