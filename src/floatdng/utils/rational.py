from __future__ import annotations

from fractions import Fraction
import math
from typing import Iterator


DEFAULT_TOLERANCE = 1e-4
DEFAULT_MAX_DENOMINATOR = 1000000


def _convergents(value: Fraction, max_denominator: int) -> Iterator[Fraction]:
    h_prev, h = 0, 1
    k_prev, k = 1, 0
    x = value
    while True:
        a = math.floor(x)
        h_prev, h = h, a * h + h_prev
        k_prev, k = k, a * k + k_prev
        if k > max_denominator:
            return
        yield Fraction(h, k)
        if x == a:
            return
        x = 1 / (x - a)


def approximate_rational(
    value: float,
    tolerance: float = DEFAULT_TOLERANCE,
    max_denominator: int = DEFAULT_MAX_DENOMINATOR,
) -> tuple[int, int]:
    """Approximate ``value`` by ``num / den`` with ``den >= 1``.

    Walks the continued-fraction convergents of ``|value|`` and returns the
    first with a non-zero numerator where ``den * |value|`` lies within
    ``tolerance`` of ``num``, so ``|num / den - value| < tolerance / den``.
    The walk stops at ``max_denominator``; if nothing qualified by then the
    best approximation under that bound is returned; a non-zero value that
    would come out as 0 raises ``ValueError``.
    """
    if not math.isfinite(value):
        raise ValueError(f"cannot approximate non-finite value {value!r}")
    if max_denominator < 1:
        raise ValueError("max_denominator must be >= 1")

    sign = -1 if value < 0 else 1
    target = Fraction(abs(float(value)))
    if target == 0:
        return 0, 1

    for frac in _convergents(target, max_denominator):
        if frac.numerator == 0:
            continue
        if abs(frac.denominator * target - frac.numerator) < tolerance:
            return sign * frac.numerator, frac.denominator

    best = target.limit_denominator(max_denominator)
    if best.numerator == 0:
        raise ValueError(f"{value!r} rounds to zero with denominators up to {max_denominator}")
    return sign * best.numerator, best.denominator
