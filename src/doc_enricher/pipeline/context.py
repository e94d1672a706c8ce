"""Core pipeline data model.

Document is what flows through the handler chain:
- a reference (URL, path, or any identifier the ingestion side chose)
- a re-readable ContentStream (handlers may each read it from the start)
- a Metadata map, mutated in place by handlers

Design goal:
- one Document, one owner: the in-flight pipeline execution. Nothing here is shared
  across documents, which is what makes running pipelines in parallel safe.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Iterable, Iterator, List, Optional, Union
import codecs
import io
import os
import shutil
import tempfile

DOC_REFERENCE = "document.reference"
DOC_CONTENT_TYPE = "document.contentType"
DOC_CONTENT_ENCODING = "document.contentEncoding"
DOC_LANGUAGE = "document.language"

# Content below this size stays in memory; above it spills to a temp file.
DEFAULT_MEMORY_THRESHOLD = 10 * 1024 * 1024
_READ_CHUNK = 64 * 1024


class Metadata(dict):
    """Ordered multi-valued field map: field name -> list of string values."""

    def __init__(self, *args, **kwargs):
        super().__init__()
        for k, v in dict(*args, **kwargs).items():
            self.set_string(k, *_as_values(v))

    def add_string(self, field_name: str, *values: str) -> None:
        self.setdefault(field_name, []).extend(str(v) for v in values)

    def set_string(self, field_name: str, *values: str) -> None:
        self[field_name] = [str(v) for v in values]

    def get_string(self, field_name: str) -> Optional[str]:
        values = self.get(field_name)
        return values[0] if values else None

    def get_strings(self, field_name: str) -> List[str]:
        return list(self.get(field_name) or [])

    def remove(self, field_name: str) -> List[str]:
        return self.pop(field_name, [])

    @property
    def content_type(self) -> Optional[str]:
        return self.get_string(DOC_CONTENT_TYPE)

    @property
    def language(self) -> Optional[str]:
        return self.get_string(DOC_LANGUAGE)

    def to_dict(self) -> dict:
        return {k: list(v) for k, v in self.items()}


def _as_values(v) -> Iterable[str]:
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return v
    return [v]


class ContentStream:
    """Re-readable byte content.

    Seekable inputs are used as-is. Anything else is spooled into a
    SpooledTemporaryFile so large documents never need to fit in memory.
    """

    def __init__(self, fh: BinaryIO, *, memory_threshold: int = DEFAULT_MEMORY_THRESHOLD):
        self.memory_threshold = memory_threshold
        self._fh = self._make_seekable(fh)
        self._closed = False

    @classmethod
    def from_bytes(cls, data: bytes, **kwargs) -> "ContentStream":
        return cls(io.BytesIO(data), **kwargs)

    @classmethod
    def from_text(cls, text: str, charset: str = "utf-8", **kwargs) -> "ContentStream":
        return cls(io.BytesIO(text.encode(charset)), **kwargs)

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike], **kwargs) -> "ContentStream":
        return cls(open(path, "rb"), **kwargs)

    def _make_seekable(self, fh: BinaryIO) -> BinaryIO:
        seekable = getattr(fh, "seekable", None)
        if seekable is not None and seekable():
            return fh
        spool = tempfile.SpooledTemporaryFile(max_size=self.memory_threshold)
        shutil.copyfileobj(fh, spool)
        spool.seek(0)
        return spool

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("content stream already released")

    @contextmanager
    def open(self) -> Iterator[BinaryIO]:
        """Yield the underlying stream positioned at its start; rewinds on exit."""
        self._check_open()
        self._fh.seek(0)
        try:
            yield self._fh
        finally:
            if not self._closed:
                self._fh.seek(0)

    def read_bytes(self, max_bytes: Optional[int] = None) -> bytes:
        with self.open() as fh:
            return fh.read() if max_bytes is None else fh.read(max_bytes)

    def read_text(self, charset: str = "utf-8", max_chars: Optional[int] = None) -> str:
        """Decode at most `max_chars` characters from the start of the content."""
        decoder = codecs.getincrementaldecoder(charset or "utf-8")(errors="replace")
        parts: List[str] = []
        size = 0
        with self.open() as fh:
            while max_chars is None or size < max_chars:
                chunk = fh.read(_READ_CHUNK)
                text = decoder.decode(chunk, final=not chunk)
                parts.append(text)
                size += len(text)
                if not chunk:
                    break
        out = "".join(parts)
        return out if max_chars is None else out[:max_chars]

    def replace(self, data: Union[bytes, BinaryIO]) -> None:
        """Swap the content for new bytes (used by transformers)."""
        self._check_open()
        new_fh = io.BytesIO(data) if isinstance(data, (bytes, bytearray)) else self._make_seekable(data)
        self._fh.close()
        self._fh = new_fh

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._fh.close()


@dataclass
class Document:
    reference: str
    content: ContentStream
    metadata: Metadata = field(default_factory=Metadata)

    def __post_init__(self):
        if not isinstance(self.metadata, Metadata):
            self.metadata = Metadata(self.metadata)

    @classmethod
    def from_text(cls, reference: str, text: str, metadata: Optional[dict] = None) -> "Document":
        return cls(reference, ContentStream.from_text(text), Metadata(metadata or {}))

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike], metadata: Optional[dict] = None) -> "Document":
        return cls(os.fspath(path), ContentStream.from_path(path), Metadata(metadata or {}))

    def release(self) -> None:
        self.content.close()

    def __enter__(self) -> "Document":
        return self

    def __exit__(self, *exc) -> None:
        self.release()


class OutcomeKind(str, Enum):
    CONTINUE = "continue"
    EXCLUDE = "exclude"
    REPLACE = "replace"


class Verdict(str, Enum):
    """Filter answer. NO_OPINION lets the document through untouched."""
    INCLUDE = "include"
    EXCLUDE = "exclude"
    NO_OPINION = "no_opinion"


@dataclass
class Outcome:
    kind: OutcomeKind
    handler: str
    reason: str = ""
    content: Optional[bytes] = None

    @classmethod
    def proceed(cls, handler: str) -> "Outcome":
        return cls(OutcomeKind.CONTINUE, handler)

    @classmethod
    def exclude(cls, handler: str, reason: str = "") -> "Outcome":
        return cls(OutcomeKind.EXCLUDE, handler, reason)

    @classmethod
    def replace(cls, handler: str, content: bytes) -> "Outcome":
        return cls(OutcomeKind.REPLACE, handler, content=content)
