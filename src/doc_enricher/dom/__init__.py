"""Pluggable DOM access for extraction handlers."""

from .base import DomDocument, DomNode, DomParser
from .soup import SoupDomParser

__all__ = ["DomDocument", "DomNode", "DomParser", "SoupDomParser"]
