"""Sandboxed execution of skill pre-/postprocessing scripts."""

from .hooks import postprocess, preprocess
from .sandbox import ScriptRejected, ScriptSandbox, compile_script

__all__ = [
    "ScriptSandbox",
    "ScriptRejected",
    "compile_script",
    "preprocess",
    "postprocess",
]
