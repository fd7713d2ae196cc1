"""
Cross-layer exclusion.

Removes candidate points that fall too close to points already placed by
higher-priority layers. Prior points are bucketed in a uniform spatial
hash whose cell size equals the exclusion distance, so each candidate only
has to look at the 3 x 3 block of cells around its own.
"""

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

import structlog

logger = structlog.get_logger()

Point2D = Tuple[float, float]
CellKey = Tuple[int, int]

# Layer id -> surviving (x, z) points of that layer
PlacedPoints = Mapping[str, Sequence[Point2D]]


class SpatialHash:
    """Uniform grid of point buckets keyed by (floor(x / cell), floor(z / cell))."""

    def __init__(self, cell_size: float):
        if cell_size <= 0:
            raise ValueError(f"Spatial hash cell size must be positive, got {cell_size}")
        self.cell_size = cell_size
        self.cells: Dict[CellKey, List[Point2D]] = defaultdict(list)

    def key(self, x: float, z: float) -> CellKey:
        return math.floor(x / self.cell_size), math.floor(z / self.cell_size)

    def insert(self, x: float, z: float) -> None:
        self.cells[self.key(x, z)].append((x, z))

    def extend(self, points: Iterable[Point2D]) -> None:
        for x, z in points:
            self.insert(x, z)

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self.cells.values())

    def has_point_within(self, x: float, z: float, distance: float) -> bool:
        """
        True if any stored point lies strictly closer than ``distance``.

        Only the 3 x 3 neighborhood is searched, so ``distance`` must not
        exceed the cell size.
        """
        gx, gz = self.key(x, z)
        limit = distance * distance
        for dx in (-1, 0, 1):
            for dz in (-1, 0, 1):
                bucket = self.cells.get((gx + dx, gz + dz))
                if not bucket:
                    continue
                for px, pz in bucket:
                    ddx = x - px
                    ddz = z - pz
                    if ddx * ddx + ddz * ddz < limit:
                        return True
        return False


def apply_cross_layer_exclusion(
    candidates: List[Point2D],
    excluded_layer_ids: Sequence[str],
    placed: PlacedPoints,
    min_distance: float,
) -> List[Point2D]:
    """
    Drop candidates within ``min_distance`` of any point of the named layers.

    Args:
        candidates: Candidate (x, z) points of the current layer
        excluded_layer_ids: Layers whose placed points must be avoided
        placed: Points placed so far, keyed by layer id
        min_distance: Exclusion distance, also the hash cell size

    Returns:
        Surviving candidates in their original order. The input list is
        returned unchanged when no named layer has placed points yet.
    """
    if not excluded_layer_ids:
        return candidates

    index = SpatialHash(min_distance)
    for layer_id in excluded_layer_ids:
        index.extend(placed.get(layer_id, ()))

    if not index.cells:
        return candidates

    survivors = [
        (x, z)
        for x, z in candidates
        if not index.has_point_within(x, z, min_distance)
    ]

    logger.debug(
        "Cross-layer exclusion applied",
        excluded_layers=list(excluded_layer_ids),
        prior_points=len(index),
        candidates=len(candidates),
        survivors=len(survivors),
    )
    return survivors
