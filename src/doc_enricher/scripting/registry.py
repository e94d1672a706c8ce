"""Scripting engine registry.

Teams can add engines by:
1) implementing ScriptEngine (in doc_enricher.scripting.* or an external package)
2) calling `register_engine(name, factory)` at startup

Built-in engines are auto-registered on import via doc_enricher.scripting.__init__
"""

from __future__ import annotations
from typing import Callable, Dict, List

from ..errors import ScriptExecutionError
from .base import ScriptEngine

DEFAULT_SCRIPT_ENGINE = "python"

_ENGINES: Dict[str, Callable[[], ScriptEngine]] = {}


def register_engine(name: str, factory: Callable[[], ScriptEngine]) -> None:
    """Register an engine factory. Re-registering a name replaces it."""
    _ENGINES[name.lower()] = factory


def list_engines() -> List[str]:
    return sorted(_ENGINES)


def get_engine(name: str = DEFAULT_SCRIPT_ENGINE) -> ScriptEngine:
    key = (name or DEFAULT_SCRIPT_ENGINE).lower()
    factory = _ENGINES.get(key)
    if factory is None:
        raise ScriptExecutionError(
            f"Script engine not found: {name}. Registered: {list_engines()}", engine=name
        )
    return factory()
