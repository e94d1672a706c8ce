"""Error taxonomy.

- ConfigurationError: bad handler configuration, raised before any document is processed
- HandlerExecutionError: a handler body failed; aborts the current document only
- ScriptExecutionError / ScriptTimeoutError: scripting failures (subtypes of the above)

A filter excluding a document is *not* an error; see pipeline.context.OutcomeKind.
"""

from __future__ import annotations
from typing import Optional


class DocEnricherError(Exception):
    """Root of all errors raised by doc_enricher."""


class ConfigurationError(DocEnricherError, ValueError):
    pass


class HandlerExecutionError(DocEnricherError):
    """Wraps a failure raised while a handler processed one document."""

    def __init__(
        self,
        message: str,
        *,
        reference: Optional[str] = None,
        handler: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.reference = reference
        self.handler = handler
        self.cause = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.handler:
            parts.append(f"handler={self.handler}")
        if self.reference:
            parts.append(f"reference={self.reference}")
        if self.cause is not None and str(self.cause) not in self.message:
            parts.append(f"cause={type(self.cause).__name__}: {self.cause}")
        return " | ".join(parts)


class ScriptExecutionError(HandlerExecutionError):
    """Engine not found, compile error or runtime error in a user script."""

    def __init__(self, message: str, *, engine: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.engine = engine

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} | engine={self.engine}" if self.engine else base


class ScriptTimeoutError(ScriptExecutionError):
    """The script was cancelled or ran past its deadline."""
