"""DOM extraction tagger.

Parses the document once into a DOM and applies an ordered list of extraction rules:

```yaml
- type: dom_tagger
  source_charset: utf-8        # optional, detected when absent
  extractions:
    - selector: "div.author"
      to_field: author
      overwrite: false         # append to existing values (default)
      extract: text            # text | html | outerHtml
```

Rules run in order against the same DOM. When a rule selects no element, or every
selected element yields a blank value, the remaining rules are not applied for that
document.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional
import logging

from ..dom.base import DomNode, DomParser
from ..dom.soup import SoupDomParser
from ..errors import ConfigurationError
from ..utils.merge import merge_field
from ..utils.text import is_blank
from .base import DocumentTagger
from .restrictions import Restriction, dom_content_types

log = logging.getLogger("doc_enricher.handlers.dom")

EXTRACT_TEXT = "text"
EXTRACT_HTML = "html"
EXTRACT_OUTER_HTML = "outerHtml"


@dataclass(frozen=True)
class DOMExtractDetails:
    selector: str
    to_field: str
    overwrite: bool = False
    extract: str = EXTRACT_TEXT

    def __post_init__(self):
        if is_blank(self.selector):
            raise ConfigurationError("'selector' argument cannot be blank.")
        if is_blank(self.to_field):
            raise ConfigurationError("'to_field' argument cannot be blank.")

    def to_config(self) -> Dict[str, Any]:
        return {
            "selector": self.selector,
            "to_field": self.to_field,
            "overwrite": self.overwrite,
            "extract": self.extract,
        }

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "DOMExtractDetails":
        return cls(
            selector=cfg.get("selector"),
            to_field=cfg.get("to_field"),
            overwrite=bool(cfg.get("overwrite", False)),
            extract=cfg.get("extract") or EXTRACT_TEXT,
        )


def element_value(node: DomNode, extract: Optional[str]) -> str:
    mode = (extract or EXTRACT_TEXT).lower()
    if mode == "html":
        return node.html
    if mode == "outerhtml":
        return node.outer_html
    if mode != "text":
        log.warning(
            f'"{extract}" is not a supported extract type. "text" will be used '
            f'(other options are "html" and "outerHtml").'
        )
    return node.text


class DOMTagger(DocumentTagger):
    name = "dom_tagger"

    def __init__(
        self,
        extractions: Optional[Iterable[Any]] = None,
        *,
        parser: Optional[DomParser] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.extractions: List[DOMExtractDetails] = []
        for e in extractions or []:
            if isinstance(e, DOMExtractDetails):
                self.extractions.append(e)
            else:
                self.extractions.append(DOMExtractDetails.from_config(e))
        self.parser = parser or SoupDomParser()

    def default_restrictions(self) -> List[Restriction]:
        return dom_content_types()

    def add_extraction(self, selector: str, to_field: str, overwrite: bool = False,
                       extract: str = EXTRACT_TEXT) -> None:
        self.extractions.append(DOMExtractDetails(selector, to_field, overwrite, extract))

    def tag(self, reference, content, metadata, charset, parsed, cancel=None):
        if not self.extractions:
            return
        with content.open() as stream:
            dom = self.parser.parse(stream, charset, reference)

        for details in self.extractions:
            nodes = dom.select(details.selector)
            if not nodes:
                log.debug(f"{reference}: selector {details.selector!r} matched nothing; "
                          f"skipping remaining extractions")
                return
            values = []
            for node in nodes:
                value = element_value(node, details.extract)
                if not is_blank(value):
                    values.append(value)
            if not values:
                return
            merge_field(metadata, details.to_field, values, details.overwrite)

    def options_to_config(self) -> Dict[str, Any]:
        return {"extractions": [e.to_config() for e in self.extractions]}

    @classmethod
    def options_from_config(cls, cfg: Dict[str, Any]) -> Dict[str, Any]:
        return {"extractions": cfg.get("extractions") or []}
