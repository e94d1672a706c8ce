"""Handler interface.

Every handler:
- declares zero or more restrictions (no restrictions = applies to every document)
- resolves the charset to read content with (explicit source_charset, else UTF-8 for
  parsed content, else the charset detector)
- runs its body and returns an Outcome (continue / exclude / replace)
- round-trips through a plain dict config (see handlers.registry)

Taggers mutate metadata, filters return a Verdict, transformers return replacement
bytes. Body failures surface as HandlerExecutionError carrying the document reference
and the handler id.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ..charset.detector import CharsetDetector, UTF_8, default_detector
from ..errors import HandlerExecutionError
from ..pipeline.cancel import CancellationToken
from ..pipeline.context import (
    ContentStream, Document, DOC_CONTENT_ENCODING, Metadata, Outcome, Verdict,
)
from .restrictions import Restriction, applies, parse_restrictions

TAGGER = "tagger"
FILTER = "filter"
TRANSFORMER = "transformer"


class Handler(ABC):
    name: str = "handler"
    kind: str = TAGGER

    def __init__(
        self,
        *,
        restrictions: Optional[Iterable[Any]] = None,
        source_charset: Optional[str] = None,
        handler_id: Optional[str] = None,
        charset_detector: Optional[CharsetDetector] = None,
    ):
        if restrictions is None:
            restrictions = self.default_restrictions()
        self.restrictions: List[Restriction] = parse_restrictions(restrictions)
        self.source_charset = source_charset or None
        self.id = handler_id or self.name
        self.charset_detector = charset_detector or default_detector()

    def default_restrictions(self) -> List[Restriction]:
        return []

    def applies(self, metadata: Metadata) -> bool:
        return applies(self.restrictions, metadata)

    def resolve_charset(self, doc: Document, parsed: bool) -> str:
        if self.source_charset:
            return self.source_charset
        if parsed:
            return UTF_8
        with doc.content.open() as stream:
            return self.charset_detector.detect(
                stream, doc.metadata.get_string(DOC_CONTENT_ENCODING), parsed
            )

    def execute(self, doc: Document, parsed: bool, cancel: Optional[CancellationToken] = None) -> Outcome:
        try:
            charset = self.resolve_charset(doc, parsed)
            return self._execute(doc, charset, parsed, cancel)
        except HandlerExecutionError as e:
            if e.reference is None:
                e.reference = doc.reference
            if e.handler is None:
                e.handler = self.id
            raise
        except Exception as e:
            raise HandlerExecutionError(
                f"{self.name} failed: {e}", reference=doc.reference, handler=self.id, cause=e
            ) from e

    @abstractmethod
    def _execute(self, doc: Document, charset: str, parsed: bool,
                 cancel: Optional[CancellationToken]) -> Outcome:
        ...

    # configuration

    def options_to_config(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def options_from_config(cls, cfg: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    def to_config(self) -> Dict[str, Any]:
        cfg: Dict[str, Any] = {"type": self.name}
        if self.id != self.name:
            cfg["id"] = self.id
        cfg["restrictions"] = [r.to_config() for r in self.restrictions]
        if self.source_charset:
            cfg["source_charset"] = self.source_charset
        cfg.update(self.options_to_config())
        return cfg

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Handler":
        return cls(
            restrictions=cfg.get("restrictions"),
            source_charset=cfg.get("source_charset"),
            handler_id=cfg.get("id"),
            **cls.options_from_config(cfg),
        )

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.to_config() == other.to_config()

    def __hash__(self):
        return hash((type(self), self.id))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_config()!r})"


class DocumentTagger(Handler):
    kind = TAGGER

    def _execute(self, doc, charset, parsed, cancel):
        self.tag(doc.reference, doc.content, doc.metadata, charset, parsed, cancel=cancel)
        return Outcome.proceed(self.id)

    @abstractmethod
    def tag(self, reference: str, content: ContentStream, metadata: Metadata,
            charset: str, parsed: bool, cancel: Optional[CancellationToken] = None) -> None:
        ...


class DocumentFilter(Handler):
    kind = FILTER

    def _execute(self, doc, charset, parsed, cancel):
        verdict = self.accept(doc.reference, doc.content, doc.metadata, charset, parsed, cancel=cancel)
        if verdict == Verdict.EXCLUDE:
            return Outcome.exclude(self.id, "filter_exclude")
        return Outcome.proceed(self.id)

    @abstractmethod
    def accept(self, reference: str, content: ContentStream, metadata: Metadata,
               charset: str, parsed: bool, cancel: Optional[CancellationToken] = None) -> Verdict:
        ...


class DocumentTransformer(Handler):
    kind = TRANSFORMER

    def _execute(self, doc, charset, parsed, cancel):
        new_content = self.transform(doc.reference, doc.content, doc.metadata, charset, parsed, cancel=cancel)
        if new_content is None:
            return Outcome.proceed(self.id)
        return Outcome.replace(self.id, new_content)

    @abstractmethod
    def transform(self, reference: str, content: ContentStream, metadata: Metadata,
                  charset: str, parsed: bool, cancel: Optional[CancellationToken] = None) -> Optional[bytes]:
        """Return replacement content bytes, or None to leave content untouched."""
