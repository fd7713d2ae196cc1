"""
Decoration layer configuration and placement output records.

A DecorationLayer is pure configuration (what to place, how many, with which
algorithm, under which constraints) and can be reused across scatter calls.
PlacedInstance and DistributionManifest are what the orchestrator returns.
"""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constraints import Constraint
from .regions import Region


class DistributionAlgorithm(str, Enum):
    """Point distribution algorithm used by a layer."""

    POISSON = "poisson"
    CLUSTERED = "clustered"
    DENSITY = "density"
    GRID = "grid"


class Vector3(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    z: float


class InstanceType(BaseModel):
    """One weighted entry in a layer's asset pool."""

    model_config = ConfigDict(frozen=True)

    species_id: Optional[str] = Field(default=None, description="Species id for generator lookup")
    generator: Optional[str] = Field(default=None, description="Procedural generator id")
    asset_path: Optional[str] = Field(default=None, description="Pre-made asset path")
    weight: float = Field(ge=0, description="Selection weight, normalized across the pool")
    scale_min: float = Field(default=0.8, gt=0, description="Smallest uniform scale")
    scale_max: float = Field(default=1.2, gt=0, description="Largest uniform scale")
    rotation_random_y: bool = Field(default=True, description="Randomize yaw")
    y_offset: float = Field(default=0.0, description="Vertical offset from the terrain")

    @model_validator(mode="after")
    def _check_scale(self):
        if self.scale_min > self.scale_max:
            raise ValueError("instance type requires scale_min <= scale_max")
        return self

    @property
    def resolved_id(self) -> str:
        """Id written to placed instances."""
        return self.species_id or self.generator or "unknown"


class AnimationConfig(BaseModel):
    """Behavior tag carried through to consumers; the engine never reads it."""

    model_config = ConfigDict(frozen=True)

    type: Literal["wind", "patrol", "particle", "boids"]
    wind_strength: Optional[float] = Field(default=None, ge=0, le=1)
    wind_direction: Optional[float] = Field(default=None, description="Radians")
    waypoints: Optional[List[Vector3]] = None
    loop: Optional[bool] = None


class DecorationLayer(BaseModel):
    """Configuration for one decoration layer."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Unique layer id")
    name: str = Field(default="", description="Display name")
    instance_types: List[InstanceType] = Field(min_length=1, description="Weighted asset pool")
    algorithm: DistributionAlgorithm = Field(description="Point distribution algorithm")
    count: int = Field(ge=0, description="Target instance count")
    min_distance: float = Field(gt=0, description="Minimum spacing between instances")
    constraints: List[Constraint] = Field(default_factory=list)
    priority: int = Field(default=0, description="Higher priority layers place first")
    excludes_layers: List[str] = Field(
        default_factory=list, description="Layers whose placed points this layer avoids"
    )
    animate: Optional[AnimationConfig] = None


class PlacedInstance(BaseModel):
    """A single placed object."""

    model_config = ConfigDict(frozen=True)

    id: str
    species_id: str
    position: Vector3
    rotation: Vector3
    scale: Vector3


class DistributionManifest(BaseModel):
    """Placed instances of one layer plus provenance."""

    model_config = ConfigDict(frozen=True)

    id: str
    layer_id: str
    instances: List[PlacedInstance]
    algorithm: DistributionAlgorithm
    region: Region
    created_at: datetime

