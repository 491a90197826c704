import math
import random

import numpy as np
import pytest

from toyrender.accelerate import BBox, BVH
from toyrender.intersect import IntersectInfo


class Sphere:
    def __init__(self, center, radius, name=""):
        self.center = np.asarray(center, dtype=np.float64)
        self.radius = float(radius)
        self.name = name
        self.times = []

    def bounding_box(self):
        return BBox(self.center - self.radius, self.center + self.radius)

    def intersect(self, origin, direction, time=0.0):
        self.times.append(time)
        oc = np.asarray(origin) - self.center
        d = np.asarray(direction)
        a = float(np.dot(d, d))
        b = 2.0 * float(np.dot(oc, d))
        c = float(np.dot(oc, oc)) - self.radius * self.radius
        disc = b * b - 4 * a * c
        if disc < 0:
            return None
        sq = math.sqrt(disc)
        for t in ((-b - sq) / (2 * a), (-b + sq) / (2 * a)):
            if t > 1e-9:
                info = IntersectInfo(t=t, coord=np.asarray(origin) + t * d, time=time)
                info.primitive = self
                return info
        return None


def brute_force(spheres, origin, direction):
    hits = [h for h in (s.intersect(origin, direction) for s in spheres) if h is not None]
    return min(hits, key=lambda h: h.t) if hits else None


def unit_cube():
    return BBox((0, 0, 0), (1, 1, 1))


def test_center_and_diagonal():
    box = BBox((0, 0, 0), (2, 4, 6))
    assert np.allclose(box.center(), [1, 2, 3])
    assert np.allclose(box.diagonal(), [2, 4, 6])


def test_surface_area_unit_cube():
    assert unit_cube().surface_area() == pytest.approx(6.0)


@pytest.mark.parametrize(
    "pmax,axis", [((3, 1, 1), 0), ((1, 3, 2), 1), ((1, 2, 3), 2), ((1, 1, 1), 0)]
)
def test_longest_axis(pmax, axis):
    assert BBox((0, 0, 0), pmax).longest_axis() == axis


def test_union_encloses_both():
    a = BBox((0, 0, 0), (1, 1, 1))
    b = BBox((-1, 0.5, 2), (0.5, 3, 4))
    a.union(b)
    assert np.allclose(a.pmin, [-1, 0, 0])
    assert np.allclose(a.pmax, [1, 3, 4])


def test_include_point_into_default_box():
    box = BBox()
    box.include((1, 2, 3))
    assert np.allclose(box.pmin, [1, 2, 3])
    assert np.allclose(box.pmax, [1, 2, 3])


def test_offset_corners_and_degenerate_axis():
    box = BBox((1, 1, 1), (3, 5, 1))
    assert np.allclose(box.offset((1, 1, 1)), [0, 0, 0])
    assert np.allclose(box.offset((3, 5, 1)), [1, 1, 0])
    assert np.allclose(box.offset((2, 2, 4)), [0.5, 0.25, 3])


def test_intersect_from_outside():
    hit = unit_cube().intersect((-5, 0.5, 0.5), (1, 0, 0))
    assert hit is not None
    t, t_exit = hit
    assert t == pytest.approx(5.0)
    assert t_exit == pytest.approx(6.0)


def test_intersect_from_inside_returns_exit():
    t, t_exit = unit_cube().intersect((0.5, 0.5, 0.5), (0, 0, 1))
    assert t == pytest.approx(0.5)
    assert t_exit == pytest.approx(0.5)


@pytest.mark.parametrize(
    "origin,direction",
    [((-5, 3, 0.5), (1, 0, 0)), ((5, 0.5, 0.5), (1, 0, 0))],
)
def test_intersect_miss(origin, direction):
    assert unit_cube().intersect(origin, direction) is None


def test_empty_bvh_misses():
    bvh = BVH([])
    bvh.build()
    assert bvh.intersect((0, 0, 0), (0, 0, 1)) is None


def test_single_object():
    s = Sphere((0, 0, 5), 1)
    bvh = BVH([s])
    bvh.build()
    hit = bvh.intersect((0, 0, 0), (0, 0, 1))
    assert hit is not None
    assert hit.primitive is s
    assert hit.t == pytest.approx(4.0)


def test_closest_of_two_along_ray():
    near = Sphere((0, 0, 3), 1, "near")
    far = Sphere((0, 0, 10), 1, "far")
    bvh = BVH([far, near])
    bvh.build()
    hit = bvh.intersect((0, 0, 0), (0, 0, 1))
    assert hit.primitive is near


def test_time_is_forwarded():
    s = Sphere((0, 0, 5), 1)
    bvh = BVH([s])
    bvh.build()
    hit = bvh.intersect((0, 0, 0), (0, 0, 1), time=0.75)
    assert hit.time == 0.75
    assert s.times[-1] == 0.75


def test_identical_centers_form_one_leaf():
    spheres = [Sphere((0, 0, 5), r) for r in (0.5, 1.0, 1.5)]
    bvh = BVH(spheres)
    bvh.build()
    root = bvh.nodes[-1]
    assert root.is_leaf
    assert (root.first_primitive, root.last_primitive) == (0, 2)
    hit = bvh.intersect((0, 0, 0), (0, 0, 1))
    assert hit.primitive.radius == 1.5


def test_build_keeps_all_objects():
    rng = random.Random(3)
    spheres = [Sphere([rng.uniform(-10, 10) for _ in range(3)], 0.5) for _ in range(40)]
    bvh = BVH(spheres)
    bvh.build()
    assert sorted(map(id, bvh.objects)) == sorted(map(id, spheres))


@pytest.mark.parametrize("count,seed", [(5, 1), (12, 2), (60, 3), (150, 4)])
def test_matches_brute_force(count, seed):
    rng = random.Random(seed)
    spheres = [
        Sphere([rng.uniform(-10, 10) for _ in range(3)], rng.uniform(0.2, 1.5))
        for _ in range(count)
    ]
    bvh = BVH(spheres)
    bvh.build()
    hits = 0
    for _ in range(200):
        origin = np.array([rng.uniform(-15, 15) for _ in range(3)])
        target = np.array([rng.uniform(-8, 8) for _ in range(3)])
        direction = target - origin
        direction /= np.linalg.norm(direction)
        expected = brute_force(spheres, origin, direction)
        got = bvh.intersect(origin, direction)
        if expected is None:
            assert got is None
        else:
            hits += 1
            assert got is not None
            assert got.t == pytest.approx(expected.t)
    assert hits > 0