"""Script runner: the boundary between handlers and scripting engines.

Responsibilities (kept out of the engines themselves):
- bound how much content is materialized for the script (`max_read_size`, in characters)
- bind `content`, `metadata` and `reference` (plus handler extras such as `output`)
- honor a CancellationToken (explicit cancel or deadline) while the script runs, together
  with the handler's own `timeout`
- turn any engine failure into a ScriptExecutionError naming the engine

Cancellation is enforced with a line-level trace function installed in the running
thread, so it fires whenever the engine runs Python code. Engines embedding another
interpreter call back into Python periodically for this. The interrupt derives from
BaseException so a script's `except Exception:` does not swallow it.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional
import logging
import sys

from ..errors import ConfigurationError, ScriptExecutionError, ScriptTimeoutError
from ..pipeline.cancel import CancellationToken
from ..pipeline.context import ContentStream, Metadata
from ..utils.text import is_blank
from .base import MetadataBinding
from .registry import DEFAULT_SCRIPT_ENGINE, get_engine

log = logging.getLogger("doc_enricher.scripting")

DEFAULT_MAX_READ_SIZE = 10 * 1024 * 1024


class _Interrupted(BaseException):
    pass


@contextmanager
def watchdog(token: Optional[CancellationToken]) -> Iterator[None]:
    if token is None:
        yield
        return
    if token.should_stop():
        raise _Interrupted(token.reason())

    def local_trace(frame, event, arg):
        if token.should_stop():
            raise _Interrupted(token.reason())
        return local_trace

    def global_trace(frame, event, arg):
        if token.should_stop():
            raise _Interrupted(token.reason())
        return local_trace

    previous = sys.gettrace()
    sys.settrace(global_trace)
    try:
        yield
    finally:
        sys.settrace(previous)


@dataclass
class ScriptResult:
    value: Any
    bindings: Dict[str, Any]
    truncated: bool = False


class ScriptRunner:
    def __init__(
        self,
        engine_name: Optional[str] = None,
        script: Optional[str] = None,
        max_read_size: int = DEFAULT_MAX_READ_SIZE,
        timeout: Optional[float] = None,
    ):
        if is_blank(script):
            raise ConfigurationError("'script' cannot be blank.")
        if max_read_size is not None and int(max_read_size) <= 0:
            raise ConfigurationError(f"max_read_size must be positive, got {max_read_size}")
        if timeout is not None and float(timeout) <= 0:
            raise ConfigurationError(f"timeout must be positive, got {timeout}")
        self.engine_name = engine_name or DEFAULT_SCRIPT_ENGINE
        self.script = script
        self.max_read_size = int(max_read_size) if max_read_size is not None else DEFAULT_MAX_READ_SIZE
        self.timeout = float(timeout) if timeout is not None else None

    def run(
        self,
        reference: str,
        content: ContentStream,
        metadata: Metadata,
        charset: str,
        *,
        extra_bindings: Optional[Dict[str, Any]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ScriptResult:
        engine = get_engine(self.engine_name)

        # one extra char tells us whether the content went past the bound
        text = content.read_text(charset, max_chars=self.max_read_size + 1)
        truncated = len(text) > self.max_read_size
        if truncated:
            log.debug(f"{reference}: content truncated to {self.max_read_size} chars for script")
            text = text[: self.max_read_size]

        bindings: Dict[str, Any] = {
            "content": text,
            "metadata": MetadataBinding(metadata),
            "reference": reference,
        }
        bindings.update(extra_bindings or {})

        token = cancel
        if self.timeout is not None:
            # the handler deadline and the caller token both apply
            token = cancel.child(self.timeout) if cancel is not None else CancellationToken(self.timeout)

        try:
            with watchdog(token):
                value = engine.evaluate(self.script, bindings)
        except _Interrupted as e:
            raise ScriptTimeoutError(
                f"Script execution {e}", engine=self.engine_name, reference=reference
            ) from None
        except ScriptExecutionError:
            raise
        except SyntaxError as e:
            raise ScriptExecutionError(
                f"Script compile error: {e}", engine=self.engine_name, reference=reference, cause=e
            ) from e
        except Exception as e:
            if token is not None and token.should_stop():
                # the interrupt surfaced through a foreign runtime as its own error type
                raise ScriptTimeoutError(
                    f"Script execution {token.reason()}", engine=self.engine_name, reference=reference
                ) from e
            raise ScriptExecutionError(
                f"Script execution failed: {type(e).__name__}: {e}",
                engine=self.engine_name, reference=reference, cause=e,
            ) from e
        return ScriptResult(value=value, bindings=bindings, truncated=truncated)

    def to_config(self) -> Dict[str, Any]:
        cfg: Dict[str, Any] = {
            "engine_name": self.engine_name,
            "script": self.script,
            "max_read_size": self.max_read_size,
        }
        if self.timeout is not None:
            cfg["timeout"] = self.timeout
        return cfg
