"""
Core scatter engine functionality.
"""

from .regions import Bounds, BoxRegion, CircleRegion, PolygonRegion, Region
from .terrain import (
    TerrainSampler,
    FlatTerrainSampler,
    ProceduralTerrainSampler,
    HeightmapTerrainSampler,
)
from .constraints import (
    Constraint,
    SlopeConstraint,
    ExclusionConstraint,
    HeightBandConstraint,
    DensityFalloffConstraint,
    apply_constraints,
    evaluate_all,
    evaluate_one,
)
from .layers import (
    DistributionAlgorithm,
    InstanceType,
    AnimationConfig,
    DecorationLayer,
    PlacedInstance,
    DistributionManifest,
)
from .scatter_prng import ScatterPRNG
from .scatter_system import ScatterSystem, ScatterOptions, ScatterResult
from .species import SpeciesDefinition, SpeciesRegistry

__all__ = ['Bounds', 'BoxRegion', 'CircleRegion', 'PolygonRegion', 'Region',
           'TerrainSampler', 'FlatTerrainSampler', 'ProceduralTerrainSampler',
           'HeightmapTerrainSampler', 'Constraint', 'SlopeConstraint',
           'ExclusionConstraint', 'HeightBandConstraint', 'DensityFalloffConstraint',
           'apply_constraints', 'evaluate_all', 'evaluate_one',
           'DistributionAlgorithm', 'InstanceType', 'AnimationConfig',
           'DecorationLayer', 'PlacedInstance', 'DistributionManifest',
           'ScatterPRNG', 'ScatterSystem', 'ScatterOptions', 'ScatterResult',
           'SpeciesDefinition', 'SpeciesRegistry']
