import math

import pytest

from jewelry_tryon.geometry import (
    angle_degrees,
    blend_angle,
    cross,
    distance,
    dot,
    midpoint,
    normalize,
    wrap_degrees,
)
from jewelry_tryon.types import Point3D


def test_normalize_zero_vector_is_zero():
    n = normalize(Point3D(0.0, 0.0, 0.0))
    assert n == Point3D(0.0, 0.0, 0.0)
    assert all(math.isfinite(v) for v in n.as_tuple())


def test_normalize_unit_length():
    n = normalize(Point3D(3.0, 4.0, 0.0))
    assert n.x == pytest.approx(0.6)
    assert n.y == pytest.approx(0.8)
    assert n.z == 0.0


def test_distance_dot_cross():
    a = Point3D(1.0, 0.0, 0.0)
    b = Point3D(0.0, 1.0, 0.0)
    assert distance(a, b) == pytest.approx(math.sqrt(2.0))
    assert dot(a, b) == 0.0
    assert cross(a, b) == Point3D(0.0, 0.0, 1.0)
    assert cross(b, a) == Point3D(0.0, 0.0, -1.0)


def test_angle_degrees_axes():
    o = Point3D(0.0, 0.0)
    assert angle_degrees(o, Point3D(10.0, 0.0)) == 0.0
    assert angle_degrees(o, Point3D(0.0, 1.0)) == pytest.approx(90.0)
    assert angle_degrees(o, Point3D(0.0, -1.0)) == pytest.approx(-90.0)
    assert angle_degrees(o, Point3D(-1.0, 0.0)) == 180.0


def test_angle_degrees_never_returns_minus_180():
    assert angle_degrees(Point3D(0.0, 0.0), Point3D(-1.0, -0.0)) == 180.0


@pytest.mark.parametrize(
    "angle, expected",
    [(0.0, 0.0), (190.0, -170.0), (-180.0, 180.0), (180.0, 180.0), (540.0, 180.0), (-190.0, 170.0)],
)
def test_wrap_degrees(angle, expected):
    assert wrap_degrees(angle) == pytest.approx(expected)


def test_blend_angle_takes_short_arc():
    # 170 and -170 are 20 degrees apart across the +/-180 seam.
    assert blend_angle(170.0, -170.0, 0.5) == pytest.approx(180.0)
    assert blend_angle(10.0, 20.0, 0.7) == pytest.approx(13.0)


def test_midpoint():
    a = Point3D(0.0, 0.0, 0.0)
    b = Point3D(10.0, 20.0, 30.0)
    assert midpoint(a, b) == Point3D(5.0, 10.0, 15.0)
