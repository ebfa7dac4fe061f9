import re
from functools import lru_cache
from typing import Protocol

import sympy
from sympy.logic.boolalg import BooleanFunction
from sympy.parsing.sympy_parser import parse_expr

from .type_aliases import EvaluationResult, FeatureSet, Predicate

_IDENTIFIER = re.compile(r"[A-Za-z_]\w*")
_WORD_OPERATORS = {"and": "&", "or": "|", "not": "~"}


class ConditionEvaluator(Protocol):
    def evaluate(self, expression: str, features: FeatureSet) -> EvaluationResult: ...


def _to_sympy_syntax(expression: str):
    """
    Converts template condition syntax to sympy boolean syntax:
    `&&` -> `&`, `||` -> `|`, `!` -> `~`, as well as `and`, `or`, `not` words.
    """
    expression = expression.replace("&&", "&").replace("||", "|")
    expression = re.sub(r"!(?!=)", "~", expression)
    return _IDENTIFIER.sub(
        lambda m: _WORD_OPERATORS.get(m.group(0), m.group(0)), expression
    )


@lru_cache(maxsize=4096)
def parse_condition(expression: str) -> sympy.Basic:
    """
    Parses a condition expression into a sympy boolean expression.
    Every identifier is a feature symbol, including names sympy defines itself (`E`, `I`, `S`...).
    """
    text = _to_sympy_syntax(expression)
    names = {
        name: sympy.Symbol(name)
        for name in _IDENTIFIER.findall(text)
        if name not in ("True", "False")
    }
    parsed = sympy.sympify(parse_expr(text, local_dict=names))
    if not isinstance(parsed, sympy.logic.boolalg.Boolean):
        raise Exception(f'"{expression}" is not a boolean expression')
    return parsed


def _compile(expr: sympy.Basic) -> Predicate:
    """
    Builds a plain Python predicate over a feature set from a sympy boolean expression.
    """
    if expr is sympy.true:
        return lambda features: True
    if expr is sympy.false:
        return lambda features: False
    if isinstance(expr, sympy.Symbol):
        name = expr.name
        return lambda features: name in features
    if isinstance(expr, sympy.Not):
        inner = _compile(expr.args[0])
        return lambda features: not inner(features)
    if isinstance(expr, sympy.And):
        parts = [_compile(arg) for arg in expr.args]
        return lambda features: all(part(features) for part in parts)
    if isinstance(expr, sympy.Or):
        parts = [_compile(arg) for arg in expr.args]
        return lambda features: any(part(features) for part in parts)

    # Xor, Implies, Equivalent and ITE.
    normal = expr.to_nnf() if isinstance(expr, BooleanFunction) else expr
    if normal == expr:
        raise Exception(f'Unsupported condition "{expr}"')
    return _compile(normal)


@lru_cache(maxsize=4096)
def compile_condition(expression: str) -> Predicate:
    return _compile(parse_condition(expression))


class SympyConditionEvaluator:
    """
    Evaluates template conditions such as `FEATURE_A && !(FEATURE_B || FEATURE_C)`
    against a set of enabled features.
    """

    def evaluate(self, expression: str, features: FeatureSet) -> EvaluationResult:
        expression = expression.strip()
        if not expression:
            return False, "Empty condition"

        try:
            predicate = compile_condition(expression)
        except Exception as e:
            return False, f'Invalid condition "{expression}": {e}'

        return bool(predicate(features)), None

    def features_in(self, expression: str):
        "Names of the features a condition depends on"
        return {str(s) for s in parse_condition(expression.strip()).free_symbols}
