"""PathCatalog — named waypoint routes that enemies walk toward the base.

Architecture
------------
A path is an ordered polyline of at least two ``(x, y)`` points.  Paths are
stored as immutable tuples and handed out as fresh lists, so a caller can
never mutate the catalog through a returned route.

The catalog also tracks a *current* route.  Wave entries that do not name a
route spawn on it.  Several named routes let a wave split its pressure
across lanes (see ``WaveConfig.routes``).

Geometry helpers live here because every consumer of a path needs them:
tower placement measures exact point-to-segment clearance, and spawning
with a start offset walks the polyline by arc length.

``load_paths()`` is the asset-provider boundary: it reads routes from a
JSON file and raises ``PathLoadError`` when the file cannot be used.
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Iterable, Sequence

from loguru import logger

Point = tuple[float, float]

DEFAULT_ROUTE = "route1"

# Default lanes.  Both share the spawn point and the base.
_DEFAULT_PATHS: dict[str, list[Point]] = {
    "route1": [
        (0.0, 130.0), (175.0, 123.0), (240.0, 350.0), (400.0, 455.0),
        (600.0, 347.0), (660.0, 245.0), (716.0, 226.0),
    ],
    "route2": [
        (0.0, 130.0), (101.0, 123.0), (203.0, 175.0), (425.0, 128.0),
        (610.0, 245.0), (716.0, 226.0),
    ],
}


class PathLoadError(Exception):
    """Raised when a path asset file is missing or malformed."""


def to_point(raw) -> Point:
    """Coerce ``(x, y)`` or ``{"x": .., "y": ..}`` into a float tuple."""
    if isinstance(raw, dict):
        return (float(raw["x"]), float(raw["y"]))
    x, y = raw
    return (float(x), float(y))


# -- Geometry ---------------------------------------------------------------

def point_segment_distance(p: Point, a: Point, b: Point) -> float:
    """Exact distance from *p* to the segment *a*-*b*."""
    abx = b[0] - a[0]
    aby = b[1] - a[1]
    length_sq = abx * abx + aby * aby
    if length_sq == 0:
        return math.hypot(p[0] - a[0], p[1] - a[1])
    t = ((p[0] - a[0]) * abx + (p[1] - a[1]) * aby) / length_sq
    t = max(0.0, min(1.0, t))
    cx = a[0] + abx * t
    cy = a[1] + aby * t
    return math.hypot(p[0] - cx, p[1] - cy)


def distance_to_polyline(p: Point, points: Sequence[Point]) -> float:
    """Smallest distance from *p* to any segment of *points*.

    Returns ``inf`` for an empty polyline.
    """
    if not points:
        return float("inf")
    if len(points) == 1:
        return math.hypot(p[0] - points[0][0], p[1] - points[0][1])
    return min(
        point_segment_distance(p, points[i], points[i + 1])
        for i in range(len(points) - 1)
    )


def path_length(points: Sequence[Point]) -> float:
    total = 0.0
    for i in range(len(points) - 1):
        total += math.dist(points[i], points[i + 1])
    return total


def point_at_distance(points: Sequence[Point], offset: float) -> tuple[Point, int, float]:
    """Locate the point *offset* units along the polyline.

    Returns ``(point, segment_index, t)`` where *t* is the fraction along
    that segment.  Offsets past the end clamp to the final waypoint.
    """
    remaining = max(0.0, offset)
    for i in range(len(points) - 1):
        a, b = points[i], points[i + 1]
        seg = math.dist(a, b)
        if remaining <= seg:
            t = 0.0 if seg == 0 else remaining / seg
            return ((a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t), i, t)
        remaining -= seg
    last = points[-1]
    return ((last[0], last[1]), max(0, len(points) - 2), 1.0)


# -- Catalog ----------------------------------------------------------------

class PathCatalog:
    """Named routes plus the current default selection."""

    def __init__(self, include_defaults: bool = True) -> None:
        self._paths: dict[str, tuple[Point, ...]] = {}
        self.current: str = DEFAULT_ROUTE
        if include_defaults:
            for name, points in _DEFAULT_PATHS.items():
                self.add_path(name, points)

    def add_path(self, name: str, points: Iterable) -> bool:
        """Add (or replace) a route.  Fewer than two points is rejected."""
        try:
            coerced = tuple(to_point(p) for p in points)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Path '{name}' has malformed points: {e}")
            return False
        if len(coerced) < 2:
            logger.warning(f"Path '{name}' needs at least 2 points, got {len(coerced)}")
            return False
        if name in self._paths:
            logger.info(f"Replacing path '{name}'")
        self._paths[name] = coerced
        return True

    def get_path(self, name: str) -> list[Point] | None:
        points = self._paths.get(name)
        return list(points) if points is not None else None

    def has_path(self, name: str) -> bool:
        return name in self._paths

    def set_current(self, name: str) -> bool:
        if name not in self._paths:
            logger.warning(f"Unknown path '{name}', keeping '{self.current}'")
            return False
        self.current = name
        return True

    def get_current_path(self) -> list[Point]:
        """Current route, else the first valid route, else an empty list."""
        current = self.get_path(self.current)
        if current:
            return current
        for name in self._paths:
            return self.get_path(name) or []
        return []

    def path_names(self) -> list[str]:
        return list(self._paths)

    def export_paths(self) -> dict[str, list[dict]]:
        """Plain JSON-ready copy: ``{name: [{"x": .., "y": ..}, ...]}``."""
        return {
            name: [{"x": x, "y": y} for x, y in points]
            for name, points in self._paths.items()
        }

    def clear(self) -> None:
        self._paths.clear()

    def __len__(self) -> int:
        return len(self._paths)


def load_paths(path: str | Path, catalog: PathCatalog) -> int:
    """Read a JSON path asset into *catalog*.  Returns the number of routes added.

    Format::

        {"paths": {"lane_a": [{"x": 0, "y": 10}, ...], ...}, "current": "lane_a"}

    Raises PathLoadError if the file is missing, unreadable, or yields no
    valid route.  Individual invalid routes are skipped with a warning.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise PathLoadError(f"Path file not found: {file_path}")
    try:
        with open(file_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise PathLoadError(f"Cannot read path file {file_path}: {e}") from e

    routes = data.get("paths") if isinstance(data, dict) else None
    if not isinstance(routes, dict):
        raise PathLoadError(f"Path file {file_path} has no 'paths' object")

    added: list[str] = []
    for name, points in routes.items():
        if catalog.add_path(name, points if isinstance(points, list) else []):
            added.append(name)
    if not added:
        raise PathLoadError(f"Path file {file_path} contains no valid paths")

    current = data.get("current")
    if not (current and catalog.set_current(current)):
        if not catalog.has_path(catalog.current):
            catalog.set_current(added[0])

    logger.info(f"Loaded {len(added)} paths from {file_path}")
    return len(added)
