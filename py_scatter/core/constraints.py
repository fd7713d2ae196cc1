"""
Placement constraints.

A layer carries a list of constraints and a candidate point survives only
if it passes all of them. Evaluation is stateless, so points can be checked
in any order or in parallel.

Constraint kinds:
- slope: terrain slope at the point must not exceed ``max_degrees``
- exclusion: the point must lie outside a disk
- height: terrain height must lie inside ``[min_height, max_height]``
- density_falloff: read by the density algorithm only, always passes here
"""

import math
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .terrain import TerrainSampler

Point2D = Tuple[float, float]

DEFAULT_MAX_SLOPE = 45.0


class SlopeConstraint(BaseModel):
    """Reject points on terrain steeper than ``max_degrees``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["slope"] = "slope"
    max_degrees: float = Field(
        default=DEFAULT_MAX_SLOPE, ge=0, le=90, description="Steepest accepted slope"
    )


class ExclusionConstraint(BaseModel):
    """Reject points inside a disk (boundary included)."""

    model_config = ConfigDict(frozen=True)

    type: Literal["exclusion"] = "exclusion"
    center: Point2D = Field(description="Disk center (x, z)")
    radius: float = Field(ge=0, description="Disk radius")


class HeightBandConstraint(BaseModel):
    """Reject points whose terrain height falls outside the band."""

    model_config = ConfigDict(frozen=True)

    type: Literal["height"] = "height"
    min_height: Optional[float] = Field(default=None, description="Lowest accepted height")
    max_height: Optional[float] = Field(default=None, description="Highest accepted height")

    @model_validator(mode="after")
    def _check_band(self):
        if (
            self.min_height is not None
            and self.max_height is not None
            and self.min_height > self.max_height
        ):
            raise ValueError("height band requires min_height <= max_height")
        return self


class DensityFalloffConstraint(BaseModel):
    """Linear density falloff around a center, consumed by the density algorithm."""

    model_config = ConfigDict(frozen=True)

    type: Literal["density_falloff"] = "density_falloff"
    center: Point2D = Field(description="Point of full density (x, z)")
    radius: float = Field(gt=0, description="Distance at which density reaches zero")

    def density_at(self, x: float, z: float) -> float:
        """Clamped linear falloff, 1 at the center and 0 at the radius."""
        dist = math.hypot(x - self.center[0], z - self.center[1])
        return max(0.0, 1.0 - dist / self.radius)


Constraint = Annotated[
    Union[
        SlopeConstraint,
        ExclusionConstraint,
        HeightBandConstraint,
        DensityFalloffConstraint,
    ],
    Field(discriminator="type"),
]


def evaluate_one(
    x: float, z: float, constraint: Constraint, terrain: TerrainSampler
) -> bool:
    """Check a single constraint against a point."""
    if isinstance(constraint, SlopeConstraint):
        return terrain.slope(x, z) <= constraint.max_degrees

    if isinstance(constraint, ExclusionConstraint):
        dx = x - constraint.center[0]
        dz = z - constraint.center[1]
        return dx * dx + dz * dz > constraint.radius * constraint.radius

    if isinstance(constraint, HeightBandConstraint):
        height = terrain.height(x, z)
        low = constraint.min_height if constraint.min_height is not None else -math.inf
        high = constraint.max_height if constraint.max_height is not None else math.inf
        return low <= height <= high

    if isinstance(constraint, DensityFalloffConstraint):
        return True

    raise TypeError(f"Unknown constraint type: {type(constraint).__name__}")


def evaluate_all(
    x: float, z: float, constraints: List[Constraint], terrain: TerrainSampler
) -> bool:
    """Return True if the point passes every constraint."""
    return all(evaluate_one(x, z, c, terrain) for c in constraints)


def apply_constraints(
    points: List[Point2D], constraints: List[Constraint], terrain: TerrainSampler
) -> List[Point2D]:
    """
    Filter points, keeping only those that pass all constraints.

    Args:
        points: Candidate (x, z) points
        constraints: Constraint list (AND semantics)
        terrain: Terrain sampler used by slope and height checks

    Returns:
        Surviving points in their original order
    """
    if not constraints:
        return points
    return [p for p in points if evaluate_all(p[0], p[1], constraints, terrain)]


def find_density_falloff(
    constraints: List[Constraint],
) -> Optional[DensityFalloffConstraint]:
    """First density falloff constraint in the list, if any."""
    for constraint in constraints:
        if isinstance(constraint, DensityFalloffConstraint):
            return constraint
    return None
