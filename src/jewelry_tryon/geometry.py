from __future__ import annotations

import math

from .types import ORIGIN, Point3D


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def distance(a: Point3D, b: Point3D) -> float:
    return math.sqrt((b.x - a.x) ** 2 + (b.y - a.y) ** 2 + (b.z - a.z) ** 2)


def magnitude(v: Point3D) -> float:
    return math.sqrt(v.x * v.x + v.y * v.y + v.z * v.z)


def normalize(v: Point3D) -> Point3D:
    """Unit vector along `v`; the zero vector maps to the zero vector."""
    m = magnitude(v)
    if m == 0.0 or not math.isfinite(m):
        return ORIGIN
    return Point3D(v.x / m, v.y / m, v.z / m)


def dot(a: Point3D, b: Point3D) -> float:
    return a.x * b.x + a.y * b.y + a.z * b.z


def cross(a: Point3D, b: Point3D) -> Point3D:
    return Point3D(
        a.y * b.z - a.z * b.y,
        a.z * b.x - a.x * b.z,
        a.x * b.y - a.y * b.x,
    )


def wrap_degrees(angle: float) -> float:
    """Wrap to (-180, 180]."""
    wrapped = math.fmod(angle, 360.0)
    if wrapped <= -180.0:
        wrapped += 360.0
    elif wrapped > 180.0:
        wrapped -= 360.0
    return wrapped


def angle_degrees(start: Point3D, end: Point3D) -> float:
    """Angle of the 2D vector start -> end in image coordinates, in (-180, 180]."""
    deg = math.degrees(math.atan2(end.y - start.y, end.x - start.x))
    # atan2 yields -180 for (-x, -0.0); fold it onto +180.
    return 180.0 if deg == -180.0 else deg


def weighted_blend(a: Point3D, wa: float, b: Point3D, wb: float) -> Point3D:
    return Point3D(a.x * wa + b.x * wb, a.y * wa + b.y * wb, a.z * wa + b.z * wb)


def midpoint(a: Point3D, b: Point3D) -> Point3D:
    return weighted_blend(a, 0.5, b, 0.5)


def blend_angle(previous: float, current: float, alpha: float) -> float:
    """
    Exponentially blend two angles (degrees) along the shorter arc.

    `alpha` is the weight kept from `previous`.
    """

    delta = wrap_degrees(current - previous)
    return wrap_degrees(previous + delta * (1.0 - alpha))
