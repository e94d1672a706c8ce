"""Python scripting engine.

The script runs with the bindings as its globals. When the last statement is an
expression, its value is the script's result (as with a JavaScript `eval`):

    metadata.add_string("title", content.split("\\n", 1)[0])
    "draft" not in content        # result

Scripts get a reduced set of builtins (no `__import__`, `open`, `eval`, `exec`,
`compile`, `getattr`, ...). Import statements and dunder names/attributes are rejected
when the script is compiled.
"""

from __future__ import annotations
from typing import Any, Dict
import ast
import builtins

from .base import ScriptEngine

SCRIPT_FILENAME = "<script>"

SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "bytes", "callable", "chr", "dict", "divmod",
    "enumerate", "filter", "float", "format", "frozenset", "hash", "hex", "int",
    "isinstance", "len", "list", "map", "max", "min", "next", "oct", "ord", "pow",
    "print", "range", "repr", "reversed", "round", "set", "slice", "sorted", "str",
    "sum", "tuple", "zip",
    "ArithmeticError", "AttributeError", "Exception", "IndexError", "KeyError",
    "LookupError", "RuntimeError", "StopIteration", "TypeError", "ValueError",
    "ZeroDivisionError",
)

SAFE_BUILTINS = {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}


def _check_node(node: ast.AST) -> None:
    if isinstance(node, (ast.Import, ast.ImportFrom)):
        raise SyntaxError(
            "import statements are not allowed in scripts",
            (SCRIPT_FILENAME, node.lineno, node.col_offset + 1, None),
        )
    name = None
    if isinstance(node, ast.Attribute):
        name = node.attr
    elif isinstance(node, ast.Name):
        name = node.id
    if name is not None and name.startswith("__"):
        raise SyntaxError(
            f"access to '{name}' is not allowed in scripts",
            (SCRIPT_FILENAME, node.lineno, node.col_offset + 1, None),
        )


class PythonScriptEngine(ScriptEngine):
    name = "python"

    def compile(self, script: str):
        """Return (body_code, result_code or None). Raises SyntaxError."""
        tree = ast.parse(script, filename=SCRIPT_FILENAME, mode="exec")
        for node in ast.walk(tree):
            _check_node(node)
        result_code = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            last = tree.body.pop()
            result_code = compile(ast.Expression(last.value), SCRIPT_FILENAME, "eval")
        body_code = compile(tree, SCRIPT_FILENAME, "exec")
        return body_code, result_code

    def evaluate(self, script: str, bindings: Dict[str, Any]) -> Any:
        body_code, result_code = self.compile(script)
        namespace: Dict[str, Any] = {"__name__": "__script__", "__builtins__": dict(SAFE_BUILTINS)}
        namespace.update(bindings)
        exec(body_code, namespace)
        result = eval(result_code, namespace) if result_code is not None else None
        # let callers read back rebound names (e.g. `content = ...`)
        for key in bindings:
            bindings[key] = namespace.get(key)
        return result
