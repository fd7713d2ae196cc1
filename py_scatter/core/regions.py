"""
Region model for scatter placement.

Regions are immutable 2D shapes on the (x, z) ground plane:
- Axis-aligned boxes
- Circles
- Simple polygons (even-odd rule)

Each shape answers three questions: its bounding rectangle, whether a point
lies inside it, and its area. The distribution algorithms only know about
rectangles, so they generate inside ``bounds()`` and filter with
``contains()``.
"""

import math
from typing import Annotated, List, Literal, NamedTuple, Tuple, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

Point2D = Tuple[float, float]


class Bounds(NamedTuple):
    """Axis-aligned bounding rectangle."""

    min_x: float
    max_x: float
    min_z: float
    max_z: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def depth(self) -> float:
        return self.max_z - self.min_z


class BoxRegion(BaseModel):
    """Axis-aligned rectangle, inclusive on every edge."""

    model_config = ConfigDict(frozen=True)

    type: Literal["box"] = "box"
    min_x: float = Field(description="Western edge")
    max_x: float = Field(description="Eastern edge")
    min_z: float = Field(description="Southern edge")
    max_z: float = Field(description="Northern edge")

    @model_validator(mode="after")
    def _check_extent(self):
        if self.min_x > self.max_x or self.min_z > self.max_z:
            raise ValueError("box region requires min <= max on both axes")
        return self

    def bounds(self) -> Bounds:
        return Bounds(self.min_x, self.max_x, self.min_z, self.max_z)

    def contains(self, x: float, z: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_z <= z <= self.max_z

    def contains_points(self, points: np.ndarray) -> np.ndarray:
        x, z = points[:, 0], points[:, 1]
        return (x >= self.min_x) & (x <= self.max_x) & (z >= self.min_z) & (z <= self.max_z)

    def area(self) -> float:
        return (self.max_x - self.min_x) * (self.max_z - self.min_z)


class CircleRegion(BaseModel):
    """Disk around a center point, boundary included."""

    model_config = ConfigDict(frozen=True)

    type: Literal["circle"] = "circle"
    center_x: float = Field(description="Center X coordinate")
    center_z: float = Field(description="Center Z coordinate")
    radius: float = Field(ge=0, description="Disk radius")

    def bounds(self) -> Bounds:
        r = self.radius
        return Bounds(
            self.center_x - r, self.center_x + r, self.center_z - r, self.center_z + r
        )

    def contains(self, x: float, z: float) -> bool:
        dx = x - self.center_x
        dz = z - self.center_z
        return dx * dx + dz * dz <= self.radius * self.radius

    def contains_points(self, points: np.ndarray) -> np.ndarray:
        dx = points[:, 0] - self.center_x
        dz = points[:, 1] - self.center_z
        return dx * dx + dz * dz <= self.radius * self.radius

    def area(self) -> float:
        return math.pi * self.radius * self.radius


class PolygonRegion(BaseModel):
    """
    Simple polygon given as an ordered vertex ring.

    The ring is implicitly closed (last vertex connects back to the first).
    Self-intersecting rings are accepted and follow the even-odd rule.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["polygon"] = "polygon"
    points: List[Point2D] = Field(min_length=3, description="Ordered (x, z) vertices")

    def bounds(self) -> Bounds:
        xs = [p[0] for p in self.points]
        zs = [p[1] for p in self.points]
        return Bounds(min(xs), max(xs), min(zs), max(zs))

    def contains(self, x: float, z: float) -> bool:
        # Ray cast along +X, toggle on every edge that straddles z
        inside = False
        pts = self.points
        j = len(pts) - 1
        for i in range(len(pts)):
            xi, zi = pts[i]
            xj, zj = pts[j]
            if (zi > z) != (zj > z) and x < (xj - xi) * (z - zi) / (zj - zi) + xi:
                inside = not inside
            j = i
        return inside

    def contains_points(self, points: np.ndarray) -> np.ndarray:
        x, z = points[:, 0], points[:, 1]
        inside = np.zeros(len(points), dtype=bool)
        pts = self.points
        j = len(pts) - 1
        for i in range(len(pts)):
            xi, zi = pts[i]
            xj, zj = pts[j]
            straddles = (zi > z) != (zj > z)
            if zj != zi:
                crossing_x = (xj - xi) * (z - zi) / (zj - zi) + xi
                inside ^= straddles & (x < crossing_x)
            j = i
        return inside

    def area(self) -> float:
        # Shoelace formula over successive vertex pairs, wrapping last -> first
        ring = np.asarray(self.points, dtype=np.float64)
        x, z = ring[:, 0], ring[:, 1]
        x_prev, z_prev = np.roll(x, 1), np.roll(z, 1)
        return float(abs(np.sum((x_prev + x) * (z_prev - z)) / 2))


Region = Annotated[
    Union[BoxRegion, CircleRegion, PolygonRegion], Field(discriminator="type")
]

_REGION_TYPES = (BoxRegion, CircleRegion, PolygonRegion)


def _check_region(region) -> None:
    if not isinstance(region, _REGION_TYPES):
        raise TypeError(f"Unknown region type: {type(region).__name__}")


def region_bounds(region: Region) -> Bounds:
    """Axis-aligned bounding rectangle of any region."""
    _check_region(region)
    return region.bounds()


def is_point_in_region(x: float, z: float, region: Region) -> bool:
    """Test whether (x, z) lies inside the region."""
    _check_region(region)
    return region.contains(x, z)


def region_area(region: Region) -> float:
    """Area in square world units."""
    _check_region(region)
    return region.area()


def filter_to_region(points: List[Point2D], region: Region) -> List[Point2D]:
    """Keep the points that lie inside the region, preserving order."""
    _check_region(region)
    if not points:
        return []
    mask = region.contains_points(np.asarray(points, dtype=np.float64))
    return [p for p, keep in zip(points, mask) if keep]
