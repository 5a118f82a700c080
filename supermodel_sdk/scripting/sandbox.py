"""
Restricted execution of skill pre-/postprocessing scripts.

A script is the body of a Python function that receives a single string
(``prompt`` when preprocessing, ``response`` when postprocessing) and must
``return`` a string. Scripts are checked with ``ast`` before they run, see a
curated set of builtins plus narrow ``re``/``json`` namespaces, and by default
execute in a separate spawned process with a wall-clock budget.
"""

import ast
import json
import logging
import multiprocessing
import re
import textwrap
from types import SimpleNamespace
from typing import Any, Dict, Optional

from ..config import get_script_timeout
from ..errors import ScriptError


logger = logging.getLogger(__name__)

SCRIPT_FUNCTION_NAME = "_skill_script"

FORBIDDEN_CALLS = frozenset({
    "open", "exec", "eval", "compile", "__import__", "input", "globals",
    "locals", "vars", "getattr", "setattr", "delattr", "breakpoint",
})

SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "chr", "dict", "divmod", "enumerate",
    "filter", "float", "format", "frozenset", "int", "isinstance", "len",
    "list", "map", "max", "min", "ord", "pow", "range", "repr", "reversed",
    "round", "set", "slice", "sorted", "str", "sum", "tuple", "zip",
    "Exception", "ValueError", "TypeError", "KeyError", "IndexError",
    "ZeroDivisionError",
)

# Anything not listed here (imports, class/async defs, yield, with, global,
# match, ...) is rejected.
_ALLOWED_NODES = (
    # statements
    ast.FunctionDef, ast.Return, ast.Assign, ast.AugAssign, ast.AnnAssign,
    ast.For, ast.While, ast.If, ast.Expr, ast.Pass, ast.Break, ast.Continue,
    ast.Try, ast.ExceptHandler, ast.Raise, ast.Assert, ast.Delete,
    # expressions
    ast.BoolOp, ast.BinOp, ast.UnaryOp, ast.Lambda, ast.IfExp, ast.NamedExpr,
    ast.Dict, ast.Set, ast.List, ast.Tuple, ast.ListComp, ast.SetComp,
    ast.DictComp, ast.GeneratorExp, ast.Compare, ast.Call, ast.keyword,
    ast.JoinedStr, ast.FormattedValue, ast.Constant, ast.Attribute,
    ast.Subscript, ast.Slice, ast.Starred, ast.Name, ast.comprehension,
    ast.arguments, ast.arg,
    # operators and contexts
    ast.operator, ast.boolop, ast.unaryop, ast.cmpop, ast.expr_context,
)

# Methods of str/list/dict/set, regex patterns and matches, the ``re``/``json``
# namespaces, and exception ``args``. Frame, code and generator attributes
# (``gi_frame``, ``f_back``, ``f_globals``, ...) are not reachable.
ALLOWED_ATTRIBUTES = frozenset({
    # str
    "capitalize", "casefold", "center", "count", "endswith", "expandtabs",
    "find", "index", "isalnum", "isalpha", "isascii", "isdecimal",
    "isdigit", "isidentifier", "islower", "isnumeric", "isprintable",
    "isspace", "istitle", "isupper", "join", "ljust", "lower", "lstrip",
    "maketrans", "partition", "removeprefix", "removesuffix", "replace",
    "rfind", "rindex", "rjust", "rpartition", "rsplit", "rstrip", "split",
    "splitlines", "startswith", "strip", "swapcase", "title", "translate",
    "upper", "zfill",
    # list / dict / set
    "append", "clear", "copy", "extend", "insert", "pop", "remove",
    "reverse", "sort", "get", "items", "keys", "values", "setdefault",
    "update", "popitem", "fromkeys", "add", "discard", "union",
    "intersection", "difference", "symmetric_difference", "issubset",
    "issuperset", "isdisjoint",
    # numbers
    "is_integer", "bit_length",
    # re namespace, Pattern and Match
    "compile", "search", "match", "fullmatch", "sub", "subn", "findall",
    "finditer", "escape", "IGNORECASE", "I", "MULTILINE", "M", "DOTALL", "S",
    "error", "pattern", "flags", "groups", "group", "groupdict", "start",
    "end", "span", "expand", "lastgroup", "lastindex",
    # json namespace
    "loads", "dumps", "JSONDecodeError",
    # exceptions
    "args",
})


class ScriptRejected(ValueError):
    """Script uses a construct the sandbox does not allow."""


class _ScriptValidator(ast.NodeVisitor):

    def generic_visit(self, node):
        if not isinstance(node, _ALLOWED_NODES):
            raise ScriptRejected(f"'{type(node).__name__.lower()}' is not allowed")
        super().generic_visit(node)

    def visit_Name(self, node: ast.Name):
        if node.id.startswith("__"):
            raise ScriptRejected(f"name '{node.id}' is not allowed")
        if node.id in FORBIDDEN_CALLS:
            raise ScriptRejected(f"'{node.id}' is not allowed")
        self.generic_visit(node)

    def visit_FunctionDef(self, node: ast.FunctionDef):
        if node.name.startswith("__"):
            raise ScriptRejected(f"name '{node.name}' is not allowed")
        self.generic_visit(node)

    def visit_Attribute(self, node: ast.Attribute):
        if node.attr not in ALLOWED_ATTRIBUTES:
            raise ScriptRejected(f"attribute '{node.attr}' is not allowed")
        self.generic_visit(node)

    def visit_Subscript(self, node: ast.Subscript):
        key = node.slice
        if isinstance(key, ast.Constant) and isinstance(key.value, str) and key.value.startswith("__"):
            raise ScriptRejected(f"key '{key.value}' is not allowed")
        self.generic_visit(node)


def _safe_globals() -> Dict[str, Any]:
    import builtins

    safe_builtins = {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}
    return {
        "__builtins__": safe_builtins,
        "re": SimpleNamespace(
            compile=re.compile, search=re.search, match=re.match,
            fullmatch=re.fullmatch, sub=re.sub, subn=re.subn, split=re.split,
            findall=re.findall, finditer=re.finditer, escape=re.escape,
            IGNORECASE=re.IGNORECASE, I=re.I, MULTILINE=re.MULTILINE, M=re.M,
            DOTALL=re.DOTALL, S=re.S, error=re.error,
        ),
        "json": SimpleNamespace(
            loads=json.loads, dumps=json.dumps, JSONDecodeError=json.JSONDecodeError,
        ),
    }


def wrap_script(code: str, input_name: str) -> str:
    body = textwrap.indent(textwrap.dedent(code or ""), "    ")
    if not body.strip():
        body = "    pass"
    return f"def {SCRIPT_FUNCTION_NAME}({input_name}):\n{body}\n"


def compile_script(code: str, input_name: str):
    """Parse, validate and compile a script body.

    Raises:
        ScriptRejected: Disallowed construct
        SyntaxError: Body does not parse (line numbers refer to the body)
    """
    if not input_name.isidentifier() or input_name.startswith("_"):
        raise ScriptRejected(f"invalid input name {input_name!r}")
    source = wrap_script(code, input_name)
    try:
        tree = ast.parse(source, filename="<skill-script>")
    except SyntaxError as e:
        if e.lineno:
            e.lineno -= 1
        raise
    function = tree.body[0]
    validator = _ScriptValidator()
    for statement in function.body:
        validator.visit(statement)
    return compile(tree, "<skill-script>", "exec")


def execute_script(code: str, input_name: str, input_value: str) -> Any:
    """Run a script in the current process and return whatever it returns."""
    compiled = compile_script(code, input_name)
    namespace = _safe_globals()
    exec(compiled, namespace)
    return namespace[SCRIPT_FUNCTION_NAME](input_value)


def _describe(error: BaseException) -> str:
    if isinstance(error, SyntaxError):
        return f"SyntaxError: {error.msg} (line {error.lineno})"
    message = str(error)
    if isinstance(error, ScriptRejected):
        return message
    return f"{type(error).__name__}: {message}" if message else type(error).__name__


def _run_in_child(conn, code: str, input_name: str, input_value: str) -> None:
    """Child process entry point.

    Sends ("ready", None) once the interpreter is up, then ("ok", result) or
    ("error", message).
    """
    conn.send(("ready", None))
    try:
        result = execute_script(code, input_name, input_value)
        if isinstance(result, str):
            conn.send(("ok", result))
        else:
            conn.send(("error", "script did not return a string"))
    except BaseException as e:
        conn.send(("error", _describe(e)))
    finally:
        conn.close()


class ScriptSandbox:
    """
    Runs skill scripts.

    Args:
        isolation: ``"process"`` (default) runs each script in a spawned
            process that is killed when it exceeds ``timeout``; ``"inline"``
            runs in the calling process with the same static checks, for
            tests and trusted skills
        timeout: Wall-clock budget in seconds (process isolation only)
    """

    PROCESS = "process"
    INLINE = "inline"

    def __init__(self, isolation: str = PROCESS, timeout: Optional[float] = None,
                 startup_timeout: float = 30.0):
        if isolation not in (self.PROCESS, self.INLINE):
            raise ValueError(f"Unknown isolation mode: {isolation}")
        self.isolation = isolation
        self.timeout = timeout if timeout is not None else get_script_timeout()
        self.startup_timeout = startup_timeout

    def run(self, code: str, input_name: str, input_value: str, phase: str) -> str:
        """
        Execute ``code`` with ``input_name`` bound to ``input_value``.

        Raises:
            ScriptError: The script was rejected, raised, timed out or did
                not return a string; tagged with ``phase``
        """
        if self.isolation == self.INLINE:
            return self._run_inline(code, input_name, input_value, phase)
        return self._run_isolated(code, input_name, input_value, phase)

    def _run_inline(self, code: str, input_name: str, input_value: str, phase: str) -> str:
        try:
            result = execute_script(code, input_name, input_value)
        except Exception as e:
            logger.error("Error executing %s code: %s", phase, e)
            raise ScriptError(phase, _describe(e)) from e
        if not isinstance(result, str):
            raise ScriptError(phase, "script did not return a string")
        return result

    def _run_isolated(self, code: str, input_name: str, input_value: str, phase: str) -> str:
        # Reject early without paying for a process
        try:
            compile_script(code, input_name)
        except (ScriptRejected, SyntaxError) as e:
            raise ScriptError(phase, _describe(e)) from e

        ctx = multiprocessing.get_context("spawn")
        parent_conn, child_conn = ctx.Pipe(duplex=False)
        process = ctx.Process(
            target=_run_in_child,
            args=(child_conn, code, input_name, input_value),
            daemon=True,
        )
        process.start()
        child_conn.close()
        try:
            # The budget covers the script, not interpreter start-up
            self._receive(parent_conn, self.startup_timeout, phase)
            if not parent_conn.poll(self.timeout):
                logger.warning("%s script exceeded %.1fs budget; terminating", phase, self.timeout)
                raise ScriptError(phase, f"script timed out after {self.timeout:g} seconds")
            status, payload = self._receive(parent_conn, 0, phase)
        finally:
            if process.is_alive():
                process.kill()
            process.join()
            parent_conn.close()

        if status != "ok":
            logger.error("Error executing %s code: %s", phase, payload)
            raise ScriptError(phase, payload)
        return payload

    @staticmethod
    def _receive(conn, timeout: float, phase: str):
        if timeout and not conn.poll(timeout):
            raise ScriptError(phase, "script process did not start")
        try:
            return conn.recv()
        except EOFError:
            raise ScriptError(phase, "script process exited unexpectedly")
