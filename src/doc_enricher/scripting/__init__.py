"""Scripting engines for script handlers.

Built-in engines are registered on import so they are available to every handler.
"""

from .base import ScriptEngine
from .registry import DEFAULT_SCRIPT_ENGINE, get_engine, list_engines, register_engine
from .runner import ScriptRunner


def _auto_register_engines():
    from .lua_engine import LuaScriptEngine
    from .python_engine import PythonScriptEngine

    if "python" not in list_engines():
        register_engine("python", PythonScriptEngine)
    if "lua" not in list_engines():
        register_engine("lua", LuaScriptEngine)


_auto_register_engines()

__all__ = [
    "DEFAULT_SCRIPT_ENGINE",
    "ScriptEngine",
    "ScriptRunner",
    "get_engine",
    "list_engines",
    "register_engine",
]
