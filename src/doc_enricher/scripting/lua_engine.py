"""Lua scripting engine (lupa).

Scripts see the same bindings as Python scripts, with Lua method-call syntax:

    metadata:addString("test", "success")
    local story = content:gsub("Alice", "Roger")
    metadata:addString("story", story)
    return not content:find("DRAFT")     -- result

- a fresh LuaRuntime per evaluation; nothing leaks between documents
- scripts run in an environment holding only the pure libraries (string, table,
  math, utf8) and basic functions; no io, os, require, load or debug
- an instruction-count hook calls back into Python so the runner's cancellation
  watchdog can interrupt runaway loops
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional

from lupa import LuaRuntime, lua_type

from .base import MetadataBinding, ScriptEngine

HOOK_INSTRUCTION_COUNT = 1000

_LUA_SANDBOX = """
local load, sethook, ipairs, pairs, select, tostring = load, debug.sethook, ipairs, pairs, select, tostring
local SAFE = {
  "assert", "error", "ipairs", "next", "pairs", "pcall", "print", "rawequal", "rawget",
  "rawlen", "rawset", "select", "tonumber", "tostring", "type", "xpcall",
  "math", "string", "table", "utf8",
}
local G = _G

return function(script, values, metadata, output, tick, hook_count)
  local env = {}
  for _, name in ipairs(SAFE) do env[name] = G[name] end
  for k, v in pairs(values) do env[k] = v end

  if metadata then
    local m = {}
    function m:addString(field, ...) metadata.add_string(field, ...) end
    function m:setString(field, ...) metadata.set_string(field, ...) end
    function m:getString(field) return metadata.get_string(field) end
    function m:getStrings(field) return metadata.get_strings(field) end
    function m:remove(field) return metadata.remove(field) end
    m.add_string, m.set_string = m.addString, m.setString
    m.get_string, m.get_strings = m.getString, m.getStrings
    env.metadata = m
  end
  if output then
    env.output = {
      write = function(self, ...)
        for i = 1, select("#", ...) do output.write(tostring((select(i, ...)))) end
      end,
    }
  end

  local chunk, err = load(script, "=script", "t", env)
  if not chunk then
    return false, err, env
  end
  sethook(function() tick() end, "", hook_count)
  local result = chunk()
  sethook()
  return true, result, env
end
"""


def _from_lua(value: Any) -> Any:
    if lua_type(value) == "table":
        return [_from_lua(v) for v in value.values()]
    return value


def _flatten_lua(values) -> List[Any]:
    out: List[Any] = []
    for v in values:
        v = _from_lua(v)
        if isinstance(v, list):
            out.extend(v)
        else:
            out.append(v)
    return out


class _LuaMetadata:
    """Python side of the Lua `metadata` table."""

    def __init__(self, lua: LuaRuntime, binding: MetadataBinding):
        self._lua = lua
        self._binding = binding

    def add_string(self, field_name, *values):
        self._binding.add_string(field_name, *_flatten_lua(values))

    def set_string(self, field_name, *values):
        self._binding.set_string(field_name, *_flatten_lua(values))

    def get_string(self, field_name) -> Optional[str]:
        return self._binding.get_string(field_name)

    def get_strings(self, field_name):
        return self._lua.table_from(self._binding.get_strings(field_name))

    def remove(self, field_name):
        return self._lua.table_from(self._binding.remove(field_name))


def _tick(*args) -> None:
    # no-op; being a Python call is what lets the cancellation watchdog run
    return None


class LuaScriptEngine(ScriptEngine):
    name = "lua"

    def evaluate(self, script: str, bindings: Dict[str, Any]) -> Any:
        lua = LuaRuntime(register_eval=False)
        run = lua.execute(_LUA_SANDBOX)

        metadata = bindings.get("metadata")
        output = bindings.get("output")
        values = {
            k: v for k, v in bindings.items()
            if k not in ("metadata", "output") and isinstance(v, (str, int, float, bool))
        }
        lua_metadata = _LuaMetadata(lua, metadata) if isinstance(metadata, MetadataBinding) else None

        ok, result, env = run(script, lua.table_from(values), lua_metadata, output, _tick,
                              HOOK_INSTRUCTION_COUNT)
        if not ok:
            raise SyntaxError(str(result))
        # read back rebound plain values (e.g. `content = ...`)
        for key in values:
            bindings[key] = env[key]
        return _from_lua(result)
