"""
Species registry.

Maps species ids and OpenSim tree state ids to species definitions, and
turns a definition into scatter inputs: a weighted instance type and the
placement constraints implied by its elevation and slope preferences.
Mesh generation for a species happens elsewhere; the engine only needs the
id and the placement envelope.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from .constraints import Constraint, HeightBandConstraint, SlopeConstraint
from .layers import InstanceType

logger = structlog.get_logger()

GeneratorType = Literal["ez-tree", "palm", "bush", "fern", "billboard"]

# Hex string or packed integer; None means bare (no foliage)
TintColor = Optional[Union[str, int]]


class SeasonalTint(BaseModel):
    """Leaf tint per season."""

    model_config = ConfigDict(frozen=True)

    spring: TintColor = None
    summer: TintColor = None
    autumn: TintColor = None
    winter: TintColor = None


class SpacingRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float = Field(gt=0)
    max: float = Field(gt=0)


class SpeciesDefinition(BaseModel):
    """Placement-relevant description of one species."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Unique species id")
    display_name: str = Field(description="Human-readable name")
    opensim_state: int = Field(ge=0, description="OpenSim tree state id")
    generator: GeneratorType = Field(description="Mesh generator kind")
    preset: Dict[str, Any] = Field(default_factory=dict, description="Generator parameters")
    lod_distances: Tuple[float, float, float, float] = Field(
        description="LOD switch distances, increasing"
    )
    billboard_texture: Optional[str] = None
    leaf_tint: SeasonalTint = Field(default_factory=SeasonalTint)
    biomes: List[str] = Field(default_factory=list)
    min_elevation: float = Field(description="Lowest elevation in world units")
    max_elevation: float = Field(description="Highest elevation in world units")
    preferred_slope: Tuple[float, float] = Field(description="Slope range in degrees")
    spacing: SpacingRange

    @field_validator("lod_distances")
    @classmethod
    def _check_lods(cls, value):
        if any(b <= a for a, b in zip(value, value[1:])):
            raise ValueError("lod_distances must be strictly increasing")
        return value

    @model_validator(mode="after")
    def _check_ranges(self):
        if self.min_elevation > self.max_elevation:
            raise ValueError("min_elevation must not exceed max_elevation")
        low, high = self.preferred_slope
        if not 0 <= low <= high <= 90:
            raise ValueError("preferred_slope must satisfy 0 <= low <= high <= 90")
        if self.spacing.min > self.spacing.max:
            raise ValueError("spacing.min must not exceed spacing.max")
        return self


_SPECIES_LIST = TypeAdapter(List[SpeciesDefinition])


class SpeciesRegistry:
    """Lookup of species definitions by id and by OpenSim state."""

    def __init__(self, species: Optional[List[SpeciesDefinition]] = None):
        self._by_id: Dict[str, SpeciesDefinition] = {}
        self._by_state: Dict[int, SpeciesDefinition] = {}
        for definition in species or []:
            self.register(definition)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "SpeciesRegistry":
        """Load a registry from a JSON array of species definitions."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        registry = cls(_SPECIES_LIST.validate_python(raw))
        logger.info("Loaded species registry", path=str(path), count=registry.count)
        return registry

    def register(self, species: SpeciesDefinition) -> None:
        """Register a species, replacing any entry with the same id or state."""
        previous = self._by_id.get(species.id)
        if previous is not None and self._by_state.get(previous.opensim_state) is previous:
            del self._by_state[previous.opensim_state]
        self._by_id[species.id] = species
        self._by_state[species.opensim_state] = species

    def get_by_id(self, species_id: str) -> Optional[SpeciesDefinition]:
        return self._by_id.get(species_id)

    def get_by_state(self, state: int) -> Optional[SpeciesDefinition]:
        return self._by_state.get(state)

    def get_all(self) -> List[SpeciesDefinition]:
        return list(self._by_id.values())

    def get_by_generator(self, generator: str) -> List[SpeciesDefinition]:
        return [s for s in self._by_id.values() if s.generator == generator]

    def get_by_biome(self, biome: str) -> List[SpeciesDefinition]:
        return [s for s in self._by_id.values() if biome in s.biomes]

    @property
    def count(self) -> int:
        return len(self._by_id)


def species_constraints(species: SpeciesDefinition) -> List[Constraint]:
    """Height band from the elevation range plus a slope ceiling."""
    return [
        HeightBandConstraint(
            min_height=species.min_elevation, max_height=species.max_elevation
        ),
        SlopeConstraint(max_degrees=species.preferred_slope[1]),
    ]


def species_instance_type(
    species: SpeciesDefinition,
    weight: float = 1.0,
    scale_min: float = 0.8,
    scale_max: float = 1.2,
) -> InstanceType:
    """Instance type that places this species."""
    return InstanceType(
        species_id=species.id,
        generator=species.generator,
        weight=weight,
        scale_min=scale_min,
        scale_max=scale_max,
    )
