"""Character encoding detection.

Handlers that read raw (pre-parse) content need a best-guess charset. Post-parse
content is always UTF-8, so detection is skipped for it.

The default detector reuses the encoding sniffing that ships with BeautifulSoup
(`bs4.dammit.EncodingDetector`): declared charset first, then BOM, then any
<meta charset> / XML declaration, then chardet/charset_normalizer when installed.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional
import codecs
import logging

from bs4.dammit import EncodingDetector

log = logging.getLogger("doc_enricher.charset")

UTF_8 = "utf-8"
DEFAULT_SAMPLE_SIZE = 64 * 1024


class CharsetDetector(ABC):
    @abstractmethod
    def detect(self, stream: BinaryIO, declared_charset: Optional[str], parsed: bool) -> str:
        """Return a charset name. Must leave `stream` rewound to where it started."""
        raise NotImplementedError


class SoupCharsetDetector(CharsetDetector):
    def __init__(self, sample_size: int = DEFAULT_SAMPLE_SIZE):
        self.sample_size = sample_size

    def detect(self, stream: BinaryIO, declared_charset: Optional[str], parsed: bool) -> str:
        if parsed:
            return UTF_8
        start = stream.tell()
        try:
            sample = stream.read(self.sample_size)
        finally:
            stream.seek(start)
        if not sample:
            return _normalize(declared_charset) or UTF_8

        truncated = len(sample) >= self.sample_size
        # a multi-byte sequence may be cut at the end of the sample
        probe = sample[:-4] if truncated else sample
        known = [declared_charset] if declared_charset else []
        detector = EncodingDetector(sample, known, is_html=True)
        for candidate in detector.encodings:
            name = _normalize(candidate)
            if not name:
                continue
            try:
                probe.decode(name)
            except (UnicodeDecodeError, LookupError):
                continue
            log.debug(f"charset detected={name} declared={declared_charset}")
            return name
        return UTF_8


def _normalize(charset: Optional[str]) -> Optional[str]:
    if not charset:
        return None
    try:
        return codecs.lookup(charset.strip()).name
    except LookupError:
        log.warning(f"Unknown charset ignored: {charset}")
        return None


_default = SoupCharsetDetector()


def default_detector() -> CharsetDetector:
    return _default
