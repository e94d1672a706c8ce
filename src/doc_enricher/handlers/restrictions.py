"""Restriction engine.

A restriction is a (field, pattern, case_sensitive) triple. A handler applies to a
document when it has no restrictions at all, or when at least one restriction's
pattern fully matches at least one value stored under that restriction's field.

Patterns are compiled when the Restriction is built, so a bad regex is reported while
the pipeline is being configured instead of halfway through a batch.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Sequence
import re

from ..errors import ConfigurationError
from ..pipeline.context import DOC_CONTENT_TYPE


@dataclass(frozen=True)
class Restriction:
    field: str
    pattern: str
    case_sensitive: bool = False
    _regex: Optional[Pattern] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.field or not str(self.field).strip():
            raise ConfigurationError("Restriction 'field' cannot be blank.")
        if self.pattern is None:
            raise ConfigurationError(f"Restriction on '{self.field}' has no pattern.")
        flags = 0 if self.case_sensitive else re.IGNORECASE
        try:
            regex = re.compile(self.pattern, flags)
        except re.error as e:
            raise ConfigurationError(
                f"Invalid restriction pattern for field '{self.field}': {self.pattern!r} ({e})"
            ) from e
        object.__setattr__(self, "_regex", regex)

    def matches(self, metadata: Mapping[str, Sequence[str]]) -> bool:
        for value in metadata.get(self.field) or ():
            if value is not None and self._regex.fullmatch(value):
                return True
        return False

    def to_config(self) -> Dict[str, Any]:
        return {"field": self.field, "pattern": self.pattern, "case_sensitive": self.case_sensitive}

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "Restriction":
        if "field" not in cfg:
            raise ConfigurationError(f"Restriction is missing 'field': {dict(cfg)}")
        return cls(
            field=cfg["field"],
            pattern=cfg.get("pattern"),
            case_sensitive=bool(cfg.get("case_sensitive", False)),
        )


def applies(restrictions: Iterable[Restriction], metadata: Mapping[str, Sequence[str]]) -> bool:
    """True when `restrictions` is empty or any restriction matches any of its field's values."""
    restrictions = list(restrictions)
    if not restrictions:
        return True
    return any(r.matches(metadata) for r in restrictions)


def parse_restrictions(cfgs: Optional[Iterable[Any]]) -> List[Restriction]:
    out: List[Restriction] = []
    for c in cfgs or []:
        out.append(c if isinstance(c, Restriction) else Restriction.from_config(c))
    return out


DOM_CONTENT_TYPES = (
    "text/html",
    "application/xhtml\\+xml",
    "application/vnd\\.wap\\.xhtml\\+xml",
    "application/x-asp",
    "application/xml",
    "text/xml",
    "application/.*\\+xml",
)


def dom_content_types(field_name: str = DOC_CONTENT_TYPE) -> List[Restriction]:
    """Default restrictions for handlers that need an HTML/XML DOM."""
    return [Restriction(field_name, pattern) for pattern in DOM_CONTENT_TYPES]
