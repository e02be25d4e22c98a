# grapher/expressions/base.py
"""
The function and constant library available to expressions.

A FunctionLibrary is an immutable value built once and handed explicitly to
the parser and classifier. Nothing reads it as hidden global state, so two
libraries with different vocabularies can be used side by side.
"""
import math
from types import MappingProxyType
from typing import Callable, Dict, Mapping, NamedTuple


class LibraryFunction(NamedTuple):
    """A callable registered under a name, with the number of arguments it takes."""
    fn: Callable[..., float]
    arity: int = 1


class FunctionLibrary:
    """
    Named functions and constants usable inside expression text.

    Attributes:
        functions (Mapping[str, LibraryFunction]): read-only function table
        constants (Mapping[str, float]): read-only constant table

    Examples:
        >>> library = default_library()
        >>> library.constants["tau"] == 2 * math.pi
        True
        >>> library.with_constants(g=9.81).constants["g"]
        9.81
    """
    def __init__(self, functions: Mapping[str, LibraryFunction], constants: Mapping[str, float]):
        overlap = set(functions) & set(constants)
        if overlap:
            raise ValueError(f"Names registered as both function and constant: {sorted(overlap)}")
        self.functions = MappingProxyType(dict(functions))
        self.constants = MappingProxyType({name: float(value) for name, value in constants.items()})

    def __repr__(self):
        return f"FunctionLibrary(functions={sorted(self.functions)}, constants={sorted(self.constants)})"

    def with_functions(self, **functions: LibraryFunction) -> "FunctionLibrary":
        return FunctionLibrary({**self.functions, **functions}, self.constants)

    def with_constants(self, **constants: float) -> "FunctionLibrary":
        return FunctionLibrary(self.functions, {**self.constants, **constants})


def _register_shared() -> Dict[str, LibraryFunction]:
    """
    Registers the trigonometric, hyperbolic, exponential and rounding functions.

    Registered implementations:
        - sin, cos, tan and their inverses (asin, acos, atan, atan2)
        - sinh, cosh, tanh and their inverses
        - exp, ln (natural log), log (base 10), sqrt, abs, ceil, floor, gamma
    """
    unary = {
        "abs": abs, "ceil": math.ceil, "floor": math.floor,
        "sqrt": math.sqrt, "exp": math.exp, "ln": math.log, "log": math.log10,
        "gamma": math.gamma,
        "sin": math.sin, "cos": math.cos, "tan": math.tan,
        "asin": math.asin, "acos": math.acos, "atan": math.atan,
        "sinh": math.sinh, "cosh": math.cosh, "tanh": math.tanh,
        "asinh": math.asinh, "acosh": math.acosh, "atanh": math.atanh,
    }
    functions = {name: LibraryFunction(fn) for name, fn in unary.items()}
    functions["atan2"] = LibraryFunction(math.atan2, 2)
    return functions


def default_library() -> FunctionLibrary:
    """Builds the standard library: the shared functions plus pi, tau, e and phi."""
    constants = {
        "pi": math.pi,
        "tau": 2 * math.pi,
        "e": math.e,
        "phi": (1 + math.sqrt(5)) / 2,
    }
    return FunctionLibrary(_register_shared(), constants)
