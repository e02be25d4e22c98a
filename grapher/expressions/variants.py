# grapher/expressions/variants.py
"""
Renderable expression variants.

Every relation the system can draw is one of five kinds, and each kind has
its own rendering strategy:

- Predicate: Coord -> bool, pixels where it holds are filled
- ImplicitRelation: Coord -> float, drawn where the value changes sign
- ExplicitFunction: x -> y, traced column by column
- PolarFunction: theta -> r, traced angle by angle
- ComplexMap: complex -> complex, remaps the whole image

Implicit, explicit and polar callables may raise EvaluationFailure for a
sample they cannot compute; renderers skip that sample. All variants wrap
pure functions and are safe to call from many drawing tasks at once.

DifferentialFunction (Coord -> slope) sits outside the union: it is the
input of the differential tracer and is never produced from text.
"""
from dataclasses import dataclass
from typing import Callable, Union

from ..core import Coord


@dataclass(frozen=True)
class Predicate:
    fn: Callable[[Coord], bool]

    def __call__(self, c: Coord) -> bool:
        return self.fn(c)


@dataclass(frozen=True)
class ImplicitRelation:
    fn: Callable[[Coord], float]

    def __call__(self, c: Coord) -> float:
        return self.fn(c)


@dataclass(frozen=True)
class ExplicitFunction:
    fn: Callable[[float], float]

    def __call__(self, x: float) -> float:
        return self.fn(x)

    def to_relation(self) -> ImplicitRelation:
        """The equivalent implicit form y - f(x)."""
        fn = self.fn
        return ImplicitRelation(lambda c: c.y - fn(c.x))


@dataclass(frozen=True)
class PolarFunction:
    fn: Callable[[float], float]

    def __call__(self, theta: float) -> float:
        return self.fn(theta)

    def to_relation(self) -> ImplicitRelation:
        """The equivalent implicit form r - f(theta)."""
        fn = self.fn

        def relation(c: Coord) -> float:
            r, theta = c.polar()
            return r - fn(theta)
        return ImplicitRelation(relation)


@dataclass(frozen=True)
class ComplexMap:
    fn: Callable[[complex], complex]

    def __call__(self, z: complex) -> complex:
        return self.fn(z)


@dataclass(frozen=True)
class DifferentialFunction:
    fn: Callable[[Coord], float]

    def __call__(self, c: Coord) -> float:
        return self.fn(c)


Variant = Union[Predicate, ImplicitRelation, ExplicitFunction, PolarFunction, ComplexMap]
VARIANT_TYPES = (Predicate, ImplicitRelation, ExplicitFunction, PolarFunction, ComplexMap)
