# grapher/expressions/transforms.py
"""
Transform combinators and derived shapes.

Combinators wrap an existing variant into a new one without touching its
classification: offset, scale (uniform, per axis, about a pivot), rotate
(about the origin or a pivot) and invert (swap x and y). Coordinate based
variants are transformed by pre-applying the inverse transform to the point
being tested, complex maps are conjugated by the transform, and explicit or
polar functions are rewritten directly when the result is still a function
of the same kind. When it isn't (rotating y = f(x), offsetting r = f(theta)),
the function is converted to its implicit relation first.

Derived shapes are canonical unit forms plus a transform:
    circle(r)        = scale(unit_circle(), r)
    ellipse(a, b)    = scale(unit_circle(), a, b)
    circle_at(r, c)  = offset(circle(r), c)
"""
import cmath
import math
from typing import Callable, Optional

from ..core import Coord
from .variants import (
    ComplexMap, ExplicitFunction, ImplicitRelation, PolarFunction, Predicate, Variant,
)

MAX_ITERATIONS = 200  # Mandelbrot iterations before a point counts as bounded
DIFFERENTIATE_DX = 0.01  # Step of the numeric derivative and integral


## --- Generic plumbing ---
def _pre_transform(variant, to_source: Callable[[Coord], Coord]):
    """Rebuilds a coordinate-based variant so it is evaluated at `to_source(c)`."""
    fn = variant.fn
    return type(variant)(lambda c: fn(to_source(c)))


def _conjugate(variant: ComplexMap, forward: Callable[[complex], complex],
               backward: Callable[[complex], complex]) -> ComplexMap:
    """Returns the complex map forward(f(backward(z)))."""
    fn = variant.fn
    return ComplexMap(lambda z: forward(fn(backward(z))))


def _as_relation(variant):
    if isinstance(variant, (ExplicitFunction, PolarFunction)):
        return variant.to_relation()
    return variant


def _check_variant(variant):
    if not isinstance(variant, (Predicate, ImplicitRelation, ExplicitFunction, PolarFunction, ComplexMap)):
        raise TypeError(f"Cannot transform {type(variant).__name__}")


## --- Combinators ---
def offset(variant: Variant, off: Coord) -> Variant:
    """
    Translates a variant by `off`.

    Examples:
        >>> shifted = offset(unit_circle(), Coord(2, 0))
        >>> shifted(Coord(3, 0))
        0.0
    """
    _check_variant(variant)
    off = Coord(*off)
    if isinstance(variant, ExplicitFunction):
        fn = variant.fn
        return ExplicitFunction(lambda x: fn(x - off.x) + off.y)
    if isinstance(variant, ComplexMap):
        o = off.to_complex()
        return _conjugate(variant, lambda z: z + o, lambda z: z - o)
    return _pre_transform(_as_relation(variant), lambda c: c - off)


def scale(variant: Variant, scale_x: float, scale_y: Optional[float] = None,
          pivot: Optional[Coord] = None) -> Variant:
    """
    Scales a variant by `scale_x` horizontally and `scale_y` vertically.

    With `scale_y` omitted the scale is uniform. The scaling is about the
    origin unless a `pivot` is given.

    Raises:
        ValueError: If a scale factor is zero or not finite
    """
    _check_variant(variant)
    if scale_y is None:
        scale_y = scale_x
    for factor in (scale_x, scale_y):
        if factor == 0 or not math.isfinite(factor):
            raise ValueError(f"Scale factors must be finite and non-zero, got {factor}")
    uniform = scale_x == scale_y

    if pivot is None:
        if isinstance(variant, ExplicitFunction):
            fn = variant.fn
            return ExplicitFunction(lambda x: scale_y * fn(x / scale_x))
        if isinstance(variant, PolarFunction) and uniform and scale_x > 0:
            fn = variant.fn
            return PolarFunction(lambda theta: scale_x * fn(theta))
        if isinstance(variant, ComplexMap) and uniform:
            return _conjugate(variant, lambda z: z * scale_x, lambda z: z / scale_x)
        pivot = Coord(0, 0)
    pivot = Coord(*pivot)

    def to_source(c: Coord) -> Coord:
        return Coord((c.x - pivot.x) / scale_x + pivot.x, (c.y - pivot.y) / scale_y + pivot.y)

    if isinstance(variant, ComplexMap):
        def to_target(z: complex) -> complex:
            return complex((z.real - pivot.x) * scale_x + pivot.x, (z.imag - pivot.y) * scale_y + pivot.y)
        return _conjugate(variant, to_target, lambda z: to_source(Coord.from_complex(z)).to_complex())
    return _pre_transform(_as_relation(variant), to_source)


def rotate(variant: Variant, theta: float, pivot: Optional[Coord] = None) -> Variant:
    """
    Rotates a variant counter-clockwise by `theta` radians.

    The rotation is about the origin unless a `pivot` is given. Points are
    pre-rotated by -theta before the wrapped variant sees them.
    """
    _check_variant(variant)
    if pivot is None:
        if isinstance(variant, PolarFunction):
            fn = variant.fn
            return PolarFunction(lambda t: fn(t - theta))
        if isinstance(variant, ComplexMap):
            turn = cmath.exp(1j * theta)
            return _conjugate(variant, lambda z: z * turn, lambda z: z / turn)
        return _pre_transform(_as_relation(variant), lambda c: c.rotate(-theta))

    pivot = Coord(*pivot)
    if isinstance(variant, ComplexMap):
        return _conjugate(
            variant,
            lambda z: Coord.from_complex(z).rotate_around(theta, pivot).to_complex(),
            lambda z: Coord.from_complex(z).rotate_around(-theta, pivot).to_complex(),
        )
    return _pre_transform(_as_relation(variant), lambda c: c.rotate_around(-theta, pivot))


def invert(variant: Variant) -> Variant:
    """
    Swaps the roles of x and y, reflecting the variant across the line y = x.

    An explicit function y = f(x) becomes the implicit relation x = f(y).
    """
    _check_variant(variant)
    if isinstance(variant, ComplexMap):
        def swap(z: complex) -> complex:
            return complex(z.imag, z.real)
        return _conjugate(variant, swap, swap)
    return _pre_transform(_as_relation(variant), lambda c: Coord(c.y, c.x))


## --- Derived Shapes ---
def unit_circle() -> ImplicitRelation:
    return ImplicitRelation(lambda c: c.x * c.x + c.y * c.y - 1)


def circle(r: float) -> ImplicitRelation:
    return scale(unit_circle(), r)


def circle_at(r: float, center: Coord) -> ImplicitRelation:
    return offset(circle(r), center)


def ellipse(a: float, b: float) -> ImplicitRelation:
    return scale(unit_circle(), a, b)


def ellipse_at(a: float, b: float, center: Coord) -> ImplicitRelation:
    return offset(ellipse(a, b), center)


def mandelbrot(max_iterations: int = MAX_ITERATIONS) -> Predicate:
    """
    The Mandelbrot set as a predicate: c is in the set when z -> z^2 + c,
    started at 0, stays within radius 2 for `max_iterations` steps.
    """
    def contains(c: Coord) -> bool:
        seed = c.to_complex()
        z = 0j
        for _ in range(max_iterations):
            z = z * z + seed
            if abs(z) >= 2:
                return False
        return True
    return Predicate(contains)


def complex_power(n: float) -> ComplexMap:
    """The complex-plane map z -> z^n."""
    return ComplexMap(lambda z: z ** n)


## --- Numeric Calculus ---
def differentiate(f: ExplicitFunction, dx: float = DIFFERENTIATE_DX) -> ExplicitFunction:
    """Forward-difference derivative of an explicit function."""
    fn = f.fn
    return ExplicitFunction(lambda x: (fn(x + dx) - fn(x)) / dx)


def integrate(f: ExplicitFunction, a: float, b: float, dx: float = DIFFERENTIATE_DX) -> float:
    """
    Left Riemann sum of f from a to b with step dx.

    Integrating backwards (b < a) negates the result, so
    integrate(f, a, b) == -integrate(f, b, a) up to discretization error.
    """
    direction = 1.0 if b >= a else -1.0
    steps = math.ceil(abs(b - a) / dx)
    total = 0.0
    for k in range(steps):
        total += f(a + direction * k * dx) * dx
    return direction * total


def antidifferentiate(f: ExplicitFunction, a: float, dx: float = DIFFERENTIATE_DX) -> ExplicitFunction:
    """The antiderivative F(x) = integral of f from a to x."""
    return ExplicitFunction(lambda x: integrate(f, a, x, dx))
