"""DOM parser interface.

Extraction handlers only need:
- parse(stream, charset, reference) -> DomDocument
- DomDocument.select(css_selector) -> [DomNode]
- DomNode.text / html / outer_html

Any HTML/XML library able to answer those can replace the default soup parser.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import BinaryIO, List


class DomNode(ABC):
    @property
    @abstractmethod
    def text(self) -> str:
        """Visible text of the node and its descendants, whitespace collapsed."""

    @property
    @abstractmethod
    def html(self) -> str:
        """Inner markup."""

    @property
    @abstractmethod
    def outer_html(self) -> str:
        """Markup including the node's own tag."""


class DomDocument(ABC):
    @abstractmethod
    def select(self, selector: str) -> List[DomNode]:
        raise NotImplementedError


class DomParser(ABC):
    @abstractmethod
    def parse(self, stream: BinaryIO, charset: str, reference: str) -> DomDocument:
        raise NotImplementedError
