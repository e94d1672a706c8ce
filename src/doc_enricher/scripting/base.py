"""Scripting engine interface and script bindings.

An engine only has to evaluate a script against a dict of named bindings and return
whatever the script produced. Read-size bounds, timeouts and error wrapping are the
runner's job (scripting.runner), not the engine's.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..pipeline.context import Metadata


class ScriptEngine(ABC):
    name: str = "engine"

    @abstractmethod
    def evaluate(self, script: str, bindings: Dict[str, Any]) -> Any:
        raise NotImplementedError


class MetadataBinding:
    """What scripts see as `metadata`. Writes go straight to the document's Metadata.

    Both `add_string(...)` and `addString(...)` spellings are accepted.
    """

    __slots__ = ("_metadata",)

    def __init__(self, metadata: Metadata):
        self._metadata = metadata

    def add_string(self, field_name: str, *values: Any) -> None:
        self._metadata.add_string(field_name, *_flatten(values))

    def set_string(self, field_name: str, *values: Any) -> None:
        self._metadata.set_string(field_name, *_flatten(values))

    def get_string(self, field_name: str) -> Optional[str]:
        return self._metadata.get_string(field_name)

    def get_strings(self, field_name: str) -> List[str]:
        return self._metadata.get_strings(field_name)

    def remove(self, field_name: str) -> List[str]:
        return self._metadata.remove(field_name)

    def fields(self) -> List[str]:
        return list(self._metadata.keys())

    # camelCase spellings, as scripts written for other engines use them
    addString = add_string
    setString = set_string
    getString = get_string
    getStrings = get_strings

    def __contains__(self, field_name: str) -> bool:
        return field_name in self._metadata

    def __repr__(self) -> str:
        return f"MetadataBinding({self._metadata.to_dict()!r})"


def _flatten(values) -> List[Any]:
    out: List[Any] = []
    for v in values:
        if isinstance(v, (list, tuple)):
            out.extend(v)
        else:
            out.append(v)
    return out
