"""Charset detection collaborator (see charset.detector)."""

from .detector import CharsetDetector, SoupCharsetDetector, default_detector

__all__ = ["CharsetDetector", "SoupCharsetDetector", "default_detector"]
