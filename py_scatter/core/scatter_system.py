"""
Scatter orchestration.

Turns decoration layers into placed instances over a region.

Pipeline per layer:
1. Generate candidate (x, z) points with the layer's algorithm
2. Drop candidates near points of excluded, higher-priority layers
3. Apply the layer's constraints (slope, height, exclusion disks)
4. Sample terrain height, pick an instance type, randomize scale and yaw
5. Wrap the instances in a manifest

Multi-layer runs go highest priority first. The points each layer keeps
are threaded through as an explicit accumulator, so any single step can be
run and tested in isolation.
"""

import math
from datetime import datetime, timezone
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, Field

from ..config import Settings
from ..config import settings as default_settings
from ..utils.random import derive_layer_seed, random_base_seed
from .constraints import apply_constraints
from .distribution import clustered, density_function, jittered_grid, poisson_disk
from .exclusion import PlacedPoints, apply_cross_layer_exclusion
from .layers import (
    DecorationLayer,
    DistributionAlgorithm,
    DistributionManifest,
    InstanceType,
    PlacedInstance,
    Vector3,
)
from .regions import Region
from .scatter_prng import ScatterPRNG
from .terrain import TerrainSampler

logger = structlog.get_logger()

Point2D = Tuple[float, float]


class ScatterOptions(BaseModel):
    """Inputs shared by every layer of a scatter call."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    terrain: TerrainSampler = Field(description="Height and slope source")
    region: Region = Field(description="Region to scatter within")
    seed: Optional[int] = Field(default=None, description="Base seed for reproducible results")


class ScatterResult(NamedTuple):
    """Placed instances of one layer and their manifest."""

    instances: List[PlacedInstance]
    manifest: DistributionManifest


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScatterSystem:
    """Runs decoration layers against a region and terrain."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize the scatter system.

        Args:
            settings: Engine settings, defaults to the module singleton
            clock: Timestamp source for manifests, defaults to UTC now
        """
        self.settings = settings or default_settings
        self.clock = clock or _utc_now

    def scatter(self, layer: DecorationLayer, options: ScatterOptions) -> ScatterResult:
        """
        Scatter a single layer.

        Cross-layer exclusion does not apply here; use scatter_layers for
        that.

        Args:
            layer: Layer configuration
            options: Region, terrain and seed

        Returns:
            ScatterResult with instances and manifest
        """
        seed = self._resolve_seed(options.seed)
        rng = ScatterPRNG(seed)

        candidates = self.generate_points(layer, options.region, rng)
        filtered = apply_constraints(candidates, layer.constraints, options.terrain)
        instances = self.build_instances(filtered, layer, options.terrain, rng)

        logger.info(
            "Layer scattered",
            layer_id=layer.id,
            algorithm=layer.algorithm.value,
            seed=seed,
            candidates=len(candidates),
            placed=len(instances),
        )
        return ScatterResult(instances, self._manifest(layer, instances, options.region, rng))

    def scatter_layers(
        self, layers: Sequence[DecorationLayer], options: ScatterOptions
    ) -> Dict[str, ScatterResult]:
        """
        Scatter several layers in priority order with cross-layer exclusion.

        Layers are sorted by priority, highest first; equal priorities keep
        their input order. Each layer gets its own random stream seeded from
        the base seed and its id.

        Args:
            layers: Layer configurations with unique ids
            options: Region, terrain and base seed

        Returns:
            Results keyed by layer id
        """
        ids = [layer.id for layer in layers]
        duplicates = sorted({layer_id for layer_id in ids if ids.count(layer_id) > 1})
        if duplicates:
            raise ValueError(f"Duplicate layer ids: {', '.join(duplicates)}")

        options = options.model_copy(update={"seed": self._resolve_seed(options.seed)})
        ordered = sorted(layers, key=lambda layer: layer.priority, reverse=True)

        logger.info(
            "Starting multi-layer scatter",
            layers=[layer.id for layer in ordered],
            seed=options.seed,
        )

        results: Dict[str, ScatterResult] = {}
        placed: PlacedPoints = {}
        for layer in ordered:
            results[layer.id], placed = self.scatter_layer(layer, options, placed)

        logger.info(
            "Multi-layer scatter complete",
            placed={layer_id: len(r.instances) for layer_id, r in results.items()},
        )
        return results

    def scatter_layer(
        self,
        layer: DecorationLayer,
        options: ScatterOptions,
        placed: Optional[PlacedPoints] = None,
    ) -> Tuple[ScatterResult, Dict[str, List[Point2D]]]:
        """
        Run one step of a multi-layer scatter.

        Args:
            layer: Layer configuration
            options: Region, terrain and base seed
            placed: Points kept by previously processed layers

        Returns:
            Tuple of (result, placed points including this layer's)
        """
        placed = placed or {}
        base_seed = self._resolve_seed(options.seed)
        rng = ScatterPRNG(derive_layer_seed(base_seed, layer.id))

        candidates = self.generate_points(layer, options.region, rng)
        generated = len(candidates)

        if layer.excludes_layers:
            missing = [layer_id for layer_id in layer.excludes_layers if layer_id not in placed]
            if missing:
                logger.debug(
                    "Excluded layers not placed yet", layer_id=layer.id, missing=missing
                )
            candidates = apply_cross_layer_exclusion(
                candidates, layer.excludes_layers, placed, layer.min_distance
            )

        filtered = apply_constraints(candidates, layer.constraints, options.terrain)
        instances = self.build_instances(filtered, layer, options.terrain, rng)

        logger.info(
            "Layer scattered",
            layer_id=layer.id,
            algorithm=layer.algorithm.value,
            priority=layer.priority,
            candidates=generated,
            after_exclusion=len(candidates),
            placed=len(instances),
        )
        if len(instances) < layer.count:
            logger.debug(
                "Layer placed fewer instances than requested",
                layer_id=layer.id,
                requested=layer.count,
                placed=len(instances),
            )

        result = ScatterResult(instances, self._manifest(layer, instances, options.region, rng))
        updated = dict(placed)
        updated[layer.id] = filtered
        return result, updated

    def generate_points(
        self, layer: DecorationLayer, region: Region, rng: ScatterPRNG
    ) -> List[Point2D]:
        """Generate candidate points with the layer's algorithm."""
        algorithm = layer.algorithm

        if algorithm == DistributionAlgorithm.POISSON:
            return poisson_disk(
                region, layer.min_distance, layer.count, rng, self.settings.poisson_tries
            )
        if algorithm == DistributionAlgorithm.CLUSTERED:
            return clustered(region, layer.count, rng)
        if algorithm == DistributionAlgorithm.DENSITY:
            return density_function(
                region,
                layer.count,
                rng,
                min_distance=layer.min_distance,
                constraints=layer.constraints,
                tries=self.settings.poisson_tries,
            )
        if algorithm == DistributionAlgorithm.GRID:
            return jittered_grid(
                region,
                layer.min_distance,
                rng,
                max_points=layer.count,
                jitter=self.settings.grid_jitter,
            )

        raise ValueError(f"Unknown distribution algorithm: {algorithm}")

    def build_instances(
        self,
        points: List[Point2D],
        layer: DecorationLayer,
        terrain: TerrainSampler,
        rng: ScatterPRNG,
    ) -> List[PlacedInstance]:
        """
        Turn surviving points into placed instances.

        Per point the stream is consumed in a fixed order: instance type
        (only for pools of more than one), scale, yaw (unless disabled), id.
        """
        instances = []
        for x, z in points:
            y = terrain.height(x, z)
            instance_type = self.select_instance_type(layer.instance_types, rng)

            scale = instance_type.scale_min + rng.random() * (
                instance_type.scale_max - instance_type.scale_min
            )
            yaw = rng.random() * 2 * math.pi if instance_type.rotation_random_y else 0.0

            instances.append(
                PlacedInstance(
                    id=rng.hex_id(),
                    species_id=instance_type.resolved_id,
                    position=Vector3(x=x, y=y + instance_type.y_offset, z=z),
                    rotation=Vector3(x=0.0, y=yaw, z=0.0),
                    scale=Vector3(x=scale, y=scale, z=scale),
                )
            )
        return instances

    @staticmethod
    def select_instance_type(
        types: Sequence[InstanceType], rng: ScatterPRNG
    ) -> InstanceType:
        """
        Weighted random choice over an instance-type pool.

        Subtracts each weight from a roll scaled by the total weight and
        returns the first entry that drives it to zero or below. The last
        entry catches floating-point leftovers.
        """
        if len(types) == 1:
            return types[0]

        total_weight = sum(t.weight for t in types)
        roll = rng.random() * total_weight

        for instance_type in types:
            roll -= instance_type.weight
            if roll <= 0:
                return instance_type

        return types[-1]

    def _manifest(
        self,
        layer: DecorationLayer,
        instances: List[PlacedInstance],
        region: Region,
        rng: ScatterPRNG,
    ) -> DistributionManifest:
        return DistributionManifest(
            id=rng.hex_id(),
            layer_id=layer.id,
            instances=instances,
            algorithm=layer.algorithm,
            region=region,
            created_at=self.clock(),
        )

    def _resolve_seed(self, seed: Optional[int]) -> int:
        if seed is not None:
            return seed
        if self.settings.default_seed is not None:
            return self.settings.default_seed

        seed = random_base_seed()
        logger.info("No seed supplied, drew a random base seed", seed=seed)
        return seed
