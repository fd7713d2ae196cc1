"""
Shared fixtures for scatter engine tests.
"""

from datetime import datetime, timezone

import pytest

from py_scatter.core.layers import DecorationLayer
from py_scatter.core.regions import BoxRegion
from py_scatter.core.terrain import FlatTerrainSampler

FIXED_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def box_region():
    """100 x 100 box centered on the origin."""
    return BoxRegion(min_x=-50, max_x=50, min_z=-50, max_z=50)


@pytest.fixture
def flat_terrain():
    return FlatTerrainSampler()


@pytest.fixture
def fixed_clock():
    """Clock that always returns the same instant."""
    return lambda: FIXED_TIME


@pytest.fixture
def make_layer():
    """Factory for layers with sensible defaults."""

    def _make_layer(**overrides):
        config = {
            "id": "test",
            "name": "Test Layer",
            "instance_types": [
                {"species_id": "oak", "weight": 1.0, "scale_min": 0.8, "scale_max": 1.2}
            ],
            "algorithm": "poisson",
            "count": 30,
            "min_distance": 5,
            "constraints": [],
            "priority": 10,
        }
        config.update(overrides)
        return DecorationLayer.model_validate(config)

    return _make_layer
