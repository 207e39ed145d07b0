"""Small numeric helpers shared by the simulation managers."""

from __future__ import annotations

import math


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp ``value`` into ``[lower, upper]``."""
    return max(lower, min(upper, value))


def percentage(total: float, value: float) -> float:
    """``value`` as a percentage of ``total`` (0 when total is 0)."""
    if total == 0:
        return 0.0
    return (value / total) * 100.0


def round_to(value: float, decimals: int) -> float:
    if math.isinf(value) or math.isnan(value):
        return value
    return round(value, decimals)


class Vector2:
    """A 2D tank-relative vector (position or per-tick velocity)."""

    __slots__ = ("x", "y")

    def __init__(self, x: float = 0.0, y: float = 0.0) -> None:
        self.x: float = float(x)
        self.y: float = float(y)

    def __sub__(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x - other.x, self.y - other.y)

    def copy(self) -> "Vector2":
        return Vector2(self.x, self.y)

    def clamped(self, left: float, right: float, top: float, bottom: float) -> "Vector2":
        """Return a copy constrained to the given box."""
        return Vector2(clamp(self.x, left, right), clamp(self.y, top, bottom))

    def __eq__(self, other: object) -> bool:
        if other.__class__ is not Vector2:
            return False
        return abs(self.x - other.x) < 1e-9 and abs(self.y - other.y) < 1e-9

    def __repr__(self) -> str:
        return f"Vector2({self.x}, {self.y})"
