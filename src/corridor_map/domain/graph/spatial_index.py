# corridor_map/domain/graph/spatial_index.py
import math

from rtree import index

from corridor_map.domain.entities.geography import BoundingBox, Point


class RangeIndex:
    """Boxes keyed by integer id; R-tree backed."""

    def __init__(self):
        self.idx = index.Index()
        self._bounds: dict[int, tuple[float, float, float, float]] = {}

    def __len__(self) -> int:
        return len(self._bounds)

    def __contains__(self, item_id: int) -> bool:
        return item_id in self._bounds

    def insert(self, item_id: int, bbox: BoundingBox):
        if item_id in self._bounds:
            self.delete(item_id)
        b = bbox.as_tuple()
        self._bounds[item_id] = b
        self.idx.insert(item_id, b)

    def delete(self, item_id: int):
        b = self._bounds.pop(item_id, None)
        if b is not None:
            self.idx.delete(item_id, b)

    def search(self, bbox: BoundingBox) -> list[int]:
        return sorted(self.idx.intersection(bbox.as_tuple()))


class NearestPointIndex:
    def __init__(self):
        self.idx = index.Index()
        self._points: dict[int, Point] = {}

    def __len__(self) -> int:
        return len(self._points)

    def __contains__(self, key: int) -> bool:
        return key in self._points

    def insert(self, key: int, p: Point):
        if key in self._points:
            self.remove(key)
        self._points[key] = p
        self.idx.insert(key, (p.x, p.y, p.x, p.y))

    def remove(self, key: int):
        p = self._points.pop(key, None)
        if p is not None:
            self.idx.delete(key, (p.x, p.y, p.x, p.y))

    def nearest(self, p: Point, k: int = 1) -> list[int]:
        """k closest keys ordered by (distance, key)."""
        if not self._points or k <= 0:
            return []
        # rtree returns every tie at the k-th distance, so the slice below is stable
        found = self.idx.nearest((p.x, p.y, p.x, p.y), num_results=k)
        ranked = sorted(
            found,
            key=lambda key: (math.hypot(self._points[key].x - p.x, self._points[key].y - p.y), key),
        )
        return ranked[:k]

    def within(self, p: Point, radius: float) -> list[int]:
        hits = self.idx.intersection((p.x - radius, p.y - radius, p.x + radius, p.y + radius))
        out = []
        for key in hits:
            q = self._points[key]
            if math.hypot(q.x - p.x, q.y - p.y) <= radius:
                out.append(key)
        return sorted(out, key=lambda key: (math.hypot(self._points[key].x - p.x, self._points[key].y - p.y), key))
