"""BeautifulSoup-backed DOM (CSS selection through soupsieve)."""

from __future__ import annotations
from typing import BinaryIO, List
import logging

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from ..utils.text import collapse_whitespace
from .base import DomDocument, DomNode, DomParser

log = logging.getLogger("doc_enricher.dom")


class SoupNode(DomNode):
    __slots__ = ("_tag",)

    def __init__(self, tag: Tag):
        self._tag = tag

    @property
    def text(self) -> str:
        return collapse_whitespace(self._tag.get_text())

    @property
    def html(self) -> str:
        return self._tag.decode_contents()

    @property
    def outer_html(self) -> str:
        return str(self._tag)


class SoupDocument(DomDocument):
    def __init__(self, soup: BeautifulSoup, reference: str):
        self.soup = soup
        self.reference = reference

    def select(self, selector: str) -> List[DomNode]:
        try:
            tags = self.soup.select(selector)
        except SelectorSyntaxError as e:
            # invalid selectors behave like selectors matching nothing
            log.debug(f"Invalid selector {selector!r} on {self.reference}: {e}")
            return []
        return [SoupNode(t) for t in tags]


class SoupDomParser(DomParser):
    def __init__(self, features: str = "html.parser"):
        self.features = features

    def parse(self, stream: BinaryIO, charset: str, reference: str) -> DomDocument:
        soup = BeautifulSoup(stream.read(), self.features, from_encoding=charset)
        return SoupDocument(soup, reference)
