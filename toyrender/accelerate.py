"""Axis-aligned bounding boxes and a bounding volume hierarchy built with SAH."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

import numpy as np

from .intersect import IntersectInfo

_FLOAT_MAX = float(np.finfo(np.float32).max)
_FLOAT_MIN = float(np.finfo(np.float32).tiny)

_N_BUCKETS = 24
_N_SPLITS = _N_BUCKETS - 1
_MAX_LEAF_PRIMITIVES = 16


class BBox:
    """Axis-aligned box spanned by the corners pmin and pmax."""

    def __init__(
        self,
        pmin: Sequence[float] = (_FLOAT_MAX, _FLOAT_MAX, _FLOAT_MAX),
        pmax: Sequence[float] = (_FLOAT_MIN, _FLOAT_MIN, _FLOAT_MIN),
    ) -> None:
        self.pmin = np.array(pmin, dtype=np.float64).reshape(3)
        self.pmax = np.array(pmax, dtype=np.float64).reshape(3)

    def __repr__(self) -> str:
        return f"BBox(pmin={self.pmin.tolist()}, pmax={self.pmax.tolist()})"

    def copy(self) -> "BBox":
        return BBox(self.pmin, self.pmax)

    def intersect(self, origin, direction) -> Optional[tuple[float, float]]:
        """Slab test; return (hit distance, exit distance) or None on a miss.

        The hit distance is the entry distance, or the exit distance when the
        origin lies inside the box.
        """
        origin = np.asarray(origin, dtype=np.float64)
        direction = np.asarray(direction, dtype=np.float64)
        with np.errstate(divide="ignore", invalid="ignore"):
            inv_direction = 1.0 / direction
            t1 = (self.pmin - origin) * inv_direction
            t2 = (self.pmax - origin) * inv_direction
        t_enter = float(np.minimum(t1, t2).max())
        t_exit = float(np.maximum(t1, t2).min())
        if t_exit >= t_enter and t_exit >= 0.0:
            return (t_exit if t_enter < 0.0 else t_enter), t_exit
        return None

    def center(self) -> np.ndarray:
        return (self.pmin + self.pmax) * 0.5

    def union(self, other: "BBox") -> None:
        """Grow this box to enclose other."""
        self.pmin = np.minimum(self.pmin, other.pmin)
        self.pmax = np.maximum(self.pmax, other.pmax)

    def include(self, point) -> None:
        """Grow this box to enclose point."""
        point = np.asarray(point, dtype=np.float64)
        self.pmin = np.minimum(self.pmin, point)
        self.pmax = np.maximum(self.pmax, point)

    def longest_axis(self) -> int:
        """Index of the axis along which the box is widest (first on ties)."""
        diagonal = self.diagonal()
        best = 0
        for axis in (1, 2):
            if diagonal[axis] > diagonal[best]:
                best = axis
        return best

    def diagonal(self) -> np.ndarray:
        return self.pmax - self.pmin

    def surface_area(self) -> float:
        dx, dy, dz = (float(v) for v in self.diagonal())
        return 2.0 * (dx * dy + dx * dz + dy * dz)

    def offset(self, point) -> np.ndarray:
        """Position of point relative to the box, 0 at pmin and 1 at pmax per axis."""
        o = np.asarray(point, dtype=np.float64) - self.pmin
        extent = self.pmax - self.pmin
        return np.where(self.pmax > self.pmin, o / np.where(extent > 0, extent, 1.0), o)


class Accelerable(Protocol):
    """What an object needs to be stored in a BVH."""

    def bounding_box(self) -> BBox: ...

    def intersect(self, origin, direction, time: float = 0.0) -> Optional[IntersectInfo]: ...


@dataclass
class BVHNode:
    """A hierarchy node; a leaf holding several primitives has no children."""

    bbox: BBox = field(default_factory=BBox)
    left: int = -1
    right: int = -1
    first_primitive: int = -1
    last_primitive: int = -1

    @property
    def is_leaf(self) -> bool:
        return self.left == -1 and self.right == -1


@dataclass
class _SplitBucket:
    count: int = 0
    bounds: BBox = field(default_factory=BBox)


class BVH:
    """Bounding volume hierarchy over objects that expose a bounding box.

    The first len(objects) nodes stand for single objects at the same index;
    interior nodes and multi-primitive leaves follow, and the root is last.
    """

    def __init__(self, objects=()) -> None:
        self.objects: list = list(objects)
        self._nodes: list[BVHNode] = []
        self._boxes: dict[int, BBox] = {}

    @property
    def nodes(self) -> list[BVHNode]:
        return self._nodes

    def _box(self, obj) -> BBox:
        return self._boxes[id(obj)]

    def _center(self, obj) -> np.ndarray:
        return self._box(obj).center()

    def build(self) -> None:
        """(Re)build the hierarchy; reorders self.objects."""
        self._nodes = []
        if not self.objects:
            return
        self._boxes = {id(obj): obj.bounding_box() for obj in self.objects}
        self._nodes = [BVHNode() for _ in self.objects]
        self._build_range(0, len(self.objects))

    def _leaf(self, bbox: BBox, begin: int, end: int) -> int:
        self._nodes.append(BVHNode(bbox, -1, -1, begin, end - 1))
        return len(self._nodes) - 1

    def _bucket_of(self, obj, centroid_bbox: BBox, dim: int) -> int:
        b = int(_N_BUCKETS * centroid_bbox.offset(self._center(obj))[dim])
        return _N_BUCKETS - 1 if b == _N_BUCKETS else b

    def _build_range(self, begin: int, end: int) -> int:
        objects = self.objects
        count = end - begin
        if count == 1:
            self._nodes[begin].bbox = self._box(objects[begin]).copy()
            return begin

        overall = self._box(objects[begin]).copy()
        for obj in objects[begin:end]:
            overall.union(self._box(obj))

        first_center = self._center(objects[begin])
        centroid_bbox = BBox(first_center, first_center)
        for obj in objects[begin:end]:
            centroid_bbox.include(self._center(obj))
        dim = centroid_bbox.longest_axis()

        if centroid_bbox.pmax[dim] == centroid_bbox.pmin[dim]:
            return self._leaf(overall, begin, end)

        objects[begin:end] = sorted(objects[begin:end], key=lambda o: float(self._center(o)[dim]))

        if count <= 2:
            mid = begin + count // 2
        else:
            split = self._best_split(begin, end, centroid_bbox, dim, overall)
            if split is None:
                return self._leaf(overall, begin, end)
            below = [o for o in objects[begin:end] if self._bucket_of(o, centroid_bbox, dim) <= split]
            above = [o for o in objects[begin:end] if self._bucket_of(o, centroid_bbox, dim) > split]
            if not below or not above:
                return self._leaf(overall, begin, end)
            objects[begin:end] = below + above
            mid = begin + len(below)

        left = self._build_range(begin, mid)
        right = self._build_range(mid, end)
        self._nodes.append(BVHNode(overall, left, right, begin, end - 1))
        return len(self._nodes) - 1

    def _best_split(self, begin: int, end: int, centroid_bbox: BBox, dim: int, overall: BBox) -> Optional[int]:
        """Bucket index to split after, or None when a leaf is cheaper."""
        buckets = [_SplitBucket() for _ in range(_N_BUCKETS)]
        for obj in self.objects[begin:end]:
            bucket = buckets[self._bucket_of(obj, centroid_bbox, dim)]
            bucket.count += 1
            bucket.bounds.union(self._box(obj))

        costs = [0.0] * _N_SPLITS
        count_below = 0
        bound_below = buckets[0].bounds.copy()
        for i, bucket in enumerate(buckets[:_N_SPLITS]):
            bound_below.union(bucket.bounds)
            count_below += bucket.count
            costs[i] += count_below * bound_below.surface_area()

        count_above = 0
        bound_above = buckets[_N_SPLITS].bounds.copy()
        for i in range(_N_SPLITS, 0, -1):
            bound_above.union(buckets[i].bounds)
            count_above += buckets[i].count
            costs[i - 1] += count_above * bound_above.surface_area()

        split = -1
        min_cost = math.inf
        for i, cost in enumerate(costs):
            if cost < min_cost:
                min_cost = cost
                split = i
        if split == -1:
            return None

        leaf_cost = float(end - begin)
        min_cost = 0.5 + min_cost / overall.surface_area()
        if end - begin > _MAX_LEAF_PRIMITIVES or min_cost < leaf_cost:
            return split
        return None

    def intersect(self, origin, direction, time: float = 0.0) -> Optional[IntersectInfo]:
        """Closest hit along the ray, or None."""
        if not self._nodes:
            return None
        origin = np.asarray(origin, dtype=np.float64)
        direction = np.asarray(direction, dtype=np.float64)
        n_objects = len(self.objects)
        best: Optional[IntersectInfo] = None

        def consider(obj) -> None:
            nonlocal best
            hit = obj.intersect(origin, direction, time)
            if hit is not None and (best is None or hit.t < best.t):
                best = hit

        stack = [len(self._nodes) - 1]
        while stack:
            index = stack.pop()
            if index < n_objects:
                consider(self.objects[index])
                continue
            node = self._nodes[index]
            if node.is_leaf:
                for obj in self.objects[node.first_primitive:node.last_primitive + 1]:
                    consider(obj)
                continue
            hit_l = hit_r = None
            if node.left != -1:
                hit_l = self._nodes[node.left].bbox.intersect(origin, direction)
            if node.right != -1:
                hit_r = self._nodes[node.right].bbox.intersect(origin, direction)
            if hit_l is not None and hit_r is not None:
                if hit_l[0] < hit_r[0]:
                    stack.extend((node.right, node.left))
                else:
                    stack.extend((node.left, node.right))
            elif hit_l is not None:
                stack.append(node.left)
            elif hit_r is not None:
                stack.append(node.right)
        return best