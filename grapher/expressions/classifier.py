# grapher/expressions/classifier.py
"""
Classification of expression text into renderable variants.

The classifier decides the rendering strategy, so its shortcuts are exact:
an equation is only treated as an explicit function when one side is the
single token `y` and the other side depends on nothing but `x` and library
constants (and likewise `r` / `theta` for polar functions). Anything else
falls back to an implicit relation, which is always correct but needs a full
2D scan to draw.

Examples:
    "y == x^2"          -> ExplicitFunction(x -> x^2)
    "r == 2"            -> PolarFunction(theta -> 2)
    "x^2 + y^2 == 1"    -> ImplicitRelation(c -> x^2 + y^2 - 1)
    "x^2 + y^2 <= 1"    -> Predicate(c -> x^2 + y^2 <= 1)
    "sin(x) * y"        -> ImplicitRelation(c -> sin(x) * y)
"""
import math
from typing import Callable, FrozenSet, Tuple, Union

from ..core import Coord, EqualityCountError, EvaluationFailure, ParseError
from .base import FunctionLibrary
from .parser import Expression, parse_expression
from .variants import ExplicitFunction, ImplicitRelation, PolarFunction, Predicate, Variant

RECOGNIZED_VARIABLES = frozenset({"x", "y", "r", "theta"})
_POLAR_VARIABLES = frozenset({"r", "theta"})


def split_equation(text: str) -> Tuple[str, str]:
    """
    Splits an equation into its left and right side text.

    Raises:
        EqualityCountError: If the text does not contain exactly one '=='
    """
    count = text.count("==")
    if count != 1:
        raise EqualityCountError(f"Expected exactly one '==' in '{text}', found {count}")
    left, right = text.split("==")
    return left, right


def _parse_side(text: str, library: FunctionLibrary) -> Expression:
    expr = parse_expression(text, library)
    unknown = expr.variables - RECOGNIZED_VARIABLES - set(library.constants)
    if unknown:
        raise ParseError(f"Unknown variable(s) {sorted(unknown)} in '{text.strip()}'")
    return expr


def _free_variables(expr: Expression, library: FunctionLibrary) -> FrozenSet[str]:
    return expr.variables - set(library.constants)


def _is_bare(expr: Expression, name: str) -> bool:
    return expr.token_count == 1 and expr.variables == {name}


def _finite(value: Union[float, bool], expr: Expression) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise EvaluationFailure(f"'{expr.text.strip()}' is not finite here ({value})")
    return value


def _at_coord(expr: Expression) -> Callable[[Coord], Union[float, bool]]:
    """Binds an expression to coordinates, computing polar values only when referenced."""
    evaluate = expr.evaluate
    if expr.variables & _POLAR_VARIABLES:
        def at(c: Coord):
            r, theta = c.polar()
            return evaluate({"x": c.x, "y": c.y, "r": r, "theta": theta})
    else:
        def at(c: Coord):
            return evaluate({"x": c.x, "y": c.y})
    return at


def _of_one(expr: Expression, name: str) -> Callable[[float], float]:
    evaluate = expr.evaluate

    def fn(value: float) -> float:
        return _finite(evaluate({name: value}), expr)
    return fn


def _single_expression(text: str, library: FunctionLibrary) -> Variant:
    expr = _parse_side(text, library)
    at = _at_coord(expr)
    if expr.returns_bool:
        return Predicate(lambda c: bool(at(c)))
    return ImplicitRelation(lambda c: _finite(at(c), expr))


def classify(text: str, library: FunctionLibrary) -> Variant:
    """
    Parses expression text and classifies it into a renderable variant.

    Args:
        text: Expression text, with at most one '=='
        library: Functions and constants the text may use

    Returns:
        A Predicate, ImplicitRelation, ExplicitFunction or PolarFunction

    Raises:
        ParseError: If either side is malformed or uses an unknown name
        EqualityCountError: If the text contains more than one '=='
    """
    if "==" not in text:
        return _single_expression(text, library)

    left_text, right_text = split_equation(text)
    left, right = _parse_side(left_text, library), _parse_side(right_text, library)

    for bare, other in ((left, right), (right, left)):
        if _is_bare(bare, "y") and _free_variables(other, library) <= {"x"}:
            return ExplicitFunction(_of_one(other, "x"))
    for bare, other in ((left, right), (right, left)):
        if _is_bare(bare, "r") and _free_variables(other, library) <= {"theta"}:
            return PolarFunction(_of_one(other, "theta"))

    left_at, right_at = _at_coord(left), _at_coord(right)

    def difference(c: Coord) -> float:
        return _finite(_finite(left_at(c), left) - _finite(right_at(c), right), left)
    return ImplicitRelation(difference)
