from __future__ import annotations
from typing import Dict, Mapping, Protocol
from functools import lru_cache
import math
import re
import threading

from py_expression_eval import Parser
from .exceptions import ScriptEvaluationError
from .values import I32_MAX, I32_MIN, StaticNumber, StaticValueType


class ScriptEvaluator(Protocol):
    """
    Evaluates a script body against its already-resolved dependencies.
    Raises ScriptEvaluationError with a user-facing message on failure.
    """
    def __call__(self, script: str, dependencies: Mapping[str, StaticValueType]) -> StaticValueType: ...


def _as_number(value: int, script: str) -> StaticNumber:
    if value > I32_MAX:
        raise ScriptEvaluationError(f"number too large to fit in target type: {script!r}")
    if value < I32_MIN:
        raise ScriptEvaluationError(f"number too small to fit in target type: {script!r}")
    return StaticNumber(number=value)


_INT_LITERAL = re.compile(r"\s*[+-]?[0-9]+\s*")

class LiteralIntegerEvaluator:
    """The reference rule language: the whole body must be a decimal integer."""

    def __call__(self, script: str, dependencies: Mapping[str, StaticValueType]) -> StaticValueType:
        if not script.strip():
            raise ScriptEvaluationError("cannot parse integer from empty string")
        if not _INT_LITERAL.fullmatch(script):
            raise ScriptEvaluationError(f"invalid digit found in string: {script!r}")
        return _as_number(int(script), script)


# Single shared parser; function table mirrors what rule authors may call
_parser = Parser()
_parser.functions["min"] = min
_parser.functions["max"] = max
_parser.functions["floor"] = math.floor
_parser.functions["ceil"] = math.ceil
# Parser.parse keeps its cursor on the instance; one parse at a time
_parse_lock = threading.Lock()

_DOLLAR_REF = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")

def _normalize(script: str) -> str:
    # "$speed + $resilience" and "speed + resilience" are the same script
    return _DOLLAR_REF.sub(r"\1", script).strip()

@lru_cache(maxsize=4096)
def _compile_expr(text: str):
    with _parse_lock:
        return _parser.parse(text)

class ExpressionEvaluator:
    """
    Arithmetic over declared dependencies (py_expression_eval syntax).
    Dice values pass through only when the script is a bare reference to one dependency.
    """

    def __call__(self, script: str, dependencies: Mapping[str, StaticValueType]) -> StaticValueType:
        text = _normalize(script)
        if text in dependencies:
            return dependencies[text]
        try:
            ast = _compile_expr(text)
        except Exception as e:
            raise ScriptEvaluationError(f"invalid expression {script!r}: {e}") from e
        names = [n for n in ast.variables() if n not in _parser.functions]
        undeclared = sorted(set(names) - set(dependencies))
        if undeclared:
            raise ScriptEvaluationError(f"undeclared dependencies {undeclared} in {script!r}")
        variables: Dict[str, int] = {}
        for name in names:
            value = dependencies[name]
            if not isinstance(value, StaticNumber):
                raise ScriptEvaluationError(f"dice value '{name}' cannot be used in arithmetic: {script!r}")
            variables[name] = value.number
        try:
            result = ast.evaluate(variables)
        except Exception as e:
            raise ScriptEvaluationError(f"evaluation of {script!r} failed: {e}") from e
        try:
            f = float(result)
        except (TypeError, ValueError):
            raise ScriptEvaluationError(f"{script!r} did not produce a number: {result!r}")
        if not f.is_integer():
            raise ScriptEvaluationError(f"{script!r} produced {f}; use floor() or ceil()")
        return _as_number(int(f), script)


EVALUATORS = {
    "literal": LiteralIntegerEvaluator,
    "expression": ExpressionEvaluator,
}

def get_evaluator(name: str) -> ScriptEvaluator:
    try:
        return EVALUATORS[name]()
    except KeyError:
        raise ValueError(f"unknown evaluator {name!r}; choose from {sorted(EVALUATORS)}") from None
