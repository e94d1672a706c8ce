"""Cancellation tokens.

Handler bodies are synchronous. Long-running ones (user scripts) poll a token and
abort when it was cancelled or its deadline passed.

A token may have a parent: it then also stops when the parent stops, so a handler's
own deadline and the caller's deadline both apply, whichever comes first.
"""

from __future__ import annotations
from typing import Optional
import threading
import time


class CancellationToken:
    def __init__(self, timeout: Optional[float] = None, parent: Optional["CancellationToken"] = None):
        self._event = threading.Event()
        self.timeout = timeout
        self.parent = parent
        self.deadline = time.monotonic() + timeout if timeout is not None else None

    def child(self, timeout: Optional[float] = None) -> "CancellationToken":
        return CancellationToken(timeout, parent=self)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or (self.parent is not None and self.parent.cancelled)

    @property
    def expired(self) -> bool:
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return True
        return self.parent is not None and self.parent.expired

    def should_stop(self) -> bool:
        return self.cancelled or self.expired

    def reason(self) -> str:
        if self.cancelled:
            return "cancelled"
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return f"timed out after {self.timeout}s"
        if self.parent is not None:
            return self.parent.reason()
        return ""
