"""Script handlers: tag, filter or transform documents with a user script.

```yaml
- type: script_tagger
  engine_name: python          # default engine when omitted
  max_read_size: 10485760      # characters of content bound to `content`
  timeout: 5                   # seconds, optional
  script: |
    metadata.add_string("test", "success")
    story = content.replace("Alice", "Roger")
    metadata.add_string("story", story)
```

Bindings available to every script: `content` (decoded text, possibly truncated),
`metadata` (see scripting.base.MetadataBinding) and `reference`.

- script_filter: the script's result decides. Truthy includes, falsy excludes,
  no result (None) means no opinion.
- script_transformer: whatever the script writes to the `output` buffer replaces the
  content; when nothing is written, a string result is used instead; otherwise the
  content is left unchanged. Text the resolved charset cannot encode is written as
  UTF-8 and `document.contentEncoding` is updated to match.
"""

from __future__ import annotations
from typing import Any, Dict, Optional
import io
import logging

from ..charset.detector import UTF_8
from ..pipeline.context import DOC_CONTENT_ENCODING, Verdict
from ..scripting.runner import DEFAULT_MAX_READ_SIZE, ScriptRunner
from .base import DocumentFilter, DocumentTagger, DocumentTransformer

log = logging.getLogger("doc_enricher.handlers.script")


class _ScriptMixin:
    runner: ScriptRunner

    def _init_runner(self, engine_name, script, max_read_size, timeout) -> None:
        self.runner = ScriptRunner(
            engine_name=engine_name, script=script, max_read_size=max_read_size, timeout=timeout
        )

    @property
    def engine_name(self) -> str:
        return self.runner.engine_name

    @property
    def script(self) -> str:
        return self.runner.script

    @property
    def max_read_size(self) -> int:
        return self.runner.max_read_size

    def options_to_config(self) -> Dict[str, Any]:
        return self.runner.to_config()

    @classmethod
    def options_from_config(cls, cfg: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "engine_name": cfg.get("engine_name"),
            "script": cfg.get("script"),
            "max_read_size": cfg.get("max_read_size", DEFAULT_MAX_READ_SIZE),
            "timeout": cfg.get("timeout"),
        }


class ScriptTagger(_ScriptMixin, DocumentTagger):
    name = "script_tagger"

    def __init__(self, script: Optional[str] = None, *, engine_name: Optional[str] = None,
                 max_read_size: int = DEFAULT_MAX_READ_SIZE, timeout: Optional[float] = None,
                 **kwargs):
        super().__init__(**kwargs)
        self._init_runner(engine_name, script, max_read_size, timeout)

    def tag(self, reference, content, metadata, charset, parsed, cancel=None):
        self.runner.run(
            reference, content, metadata, charset,
            extra_bindings={"parsed": parsed}, cancel=cancel,
        )


class ScriptFilter(_ScriptMixin, DocumentFilter):
    name = "script_filter"

    def __init__(self, script: Optional[str] = None, *, engine_name: Optional[str] = None,
                 max_read_size: int = DEFAULT_MAX_READ_SIZE, timeout: Optional[float] = None,
                 **kwargs):
        super().__init__(**kwargs)
        self._init_runner(engine_name, script, max_read_size, timeout)

    def accept(self, reference, content, metadata, charset, parsed, cancel=None):
        result = self.runner.run(
            reference, content, metadata, charset,
            extra_bindings={"parsed": parsed}, cancel=cancel,
        )
        if result.value is None:
            return Verdict.NO_OPINION
        return Verdict.INCLUDE if result.value else Verdict.EXCLUDE


class ScriptTransformer(_ScriptMixin, DocumentTransformer):
    name = "script_transformer"

    def __init__(self, script: Optional[str] = None, *, engine_name: Optional[str] = None,
                 max_read_size: int = DEFAULT_MAX_READ_SIZE, timeout: Optional[float] = None,
                 **kwargs):
        super().__init__(**kwargs)
        self._init_runner(engine_name, script, max_read_size, timeout)

    def transform(self, reference, content, metadata, charset, parsed, cancel=None):
        output = io.StringIO()
        result = self.runner.run(
            reference, content, metadata, charset,
            extra_bindings={"parsed": parsed, "output": output}, cancel=cancel,
        )
        text = output.getvalue()
        if not text and isinstance(result.value, str):
            text = result.value
        if not text:
            return None
        return _encode_replacement(reference, text, charset, metadata)


def _encode_replacement(reference: str, text: str, charset: Optional[str], metadata) -> bytes:
    charset = charset or UTF_8
    try:
        return text.encode(charset)
    except UnicodeEncodeError as e:
        log.warning(f"{reference}: transformed content not representable in {charset} ({e.reason}); "
                    f"writing it as {UTF_8}")
        metadata.set_string(DOC_CONTENT_ENCODING, UTF_8)
        return text.encode(UTF_8)
