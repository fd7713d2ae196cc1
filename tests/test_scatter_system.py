"""Tests for scatter orchestration."""

import math
import re

import pytest

from py_scatter.config import Settings
from py_scatter.core.constraints import (
    DensityFalloffConstraint,
    ExclusionConstraint,
    SlopeConstraint,
    evaluate_all,
)
from py_scatter.core.layers import DistributionAlgorithm, InstanceType
from py_scatter.core.regions import BoxRegion, CircleRegion
from py_scatter.core.scatter_prng import ScatterPRNG
from py_scatter.core.scatter_system import ScatterOptions, ScatterResult, ScatterSystem
from py_scatter.core.terrain import FlatTerrainSampler, ProceduralTerrainSampler
from py_scatter.utils.random import derive_layer_seed


class StubRNG:
    """Returns queued values and records how many were drawn."""

    def __init__(self, *values):
        self.values = list(values)
        self.drawn = 0

    def random(self):
        self.drawn += 1
        return self.values.pop(0)


@pytest.fixture
def system(fixed_clock):
    return ScatterSystem(settings=Settings(), clock=fixed_clock)


@pytest.fixture
def options(box_region, flat_terrain):
    return ScatterOptions(terrain=flat_terrain, region=box_region, seed=42)


@pytest.fixture
def ruins_and_trees(make_layer):
    ruins = make_layer(id="ruins", priority=15, min_distance=10, count=20)
    trees = make_layer(
        id="trees", priority=5, min_distance=5, count=50, excludes_layers=["ruins"]
    )
    return ruins, trees


class TestSingleLayer:
    """Test scatter() on one layer."""

    def test_basic_scatter(self, system, options, make_layer):
        result = system.scatter(make_layer(), options)

        assert isinstance(result, ScatterResult)
        assert 0 < len(result.instances) <= 30
        assert result.manifest.instances == result.instances

    def test_instances_sit_on_terrain(self, system, box_region, make_layer):
        layer = make_layer(
            instance_types=[{"species_id": "rock", "weight": 1, "y_offset": 0.5}]
        )
        options = ScatterOptions(terrain=FlatTerrainSampler(10), region=box_region, seed=1)

        for instance in system.scatter(layer, options).instances:
            assert instance.position.y == pytest.approx(10.5)
            assert box_region.contains(instance.position.x, instance.position.z)

    def test_uniform_scale_in_range(self, system, options, make_layer):
        layer = make_layer(
            instance_types=[{"species_id": "oak", "weight": 1, "scale_min": 0.5, "scale_max": 2}]
        )
        for instance in system.scatter(layer, options).instances:
            scale = instance.scale
            assert scale.x == scale.y == scale.z
            assert 0.5 <= scale.x <= 2

    def test_yaw_range(self, system, options, make_layer):
        for instance in system.scatter(make_layer(), options).instances:
            assert instance.rotation.x == 0
            assert instance.rotation.z == 0
            assert 0 <= instance.rotation.y < 2 * math.pi

    def test_rotation_disabled(self, system, options, make_layer):
        layer = make_layer(
            instance_types=[{"species_id": "lamp", "weight": 1, "rotation_random_y": False}]
        )
        instances = system.scatter(layer, options).instances
        assert instances
        assert all(instance.rotation.y == 0 for instance in instances)

    def test_slope_constraint_respected(self, system, box_region, make_layer):
        hills = ProceduralTerrainSampler()
        layer = make_layer(count=200, constraints=[{"type": "slope", "max_degrees": 2}])

        steep_free = system.scatter(
            make_layer(count=200), ScatterOptions(terrain=hills, region=box_region, seed=3)
        )
        filtered = system.scatter(layer, ScatterOptions(terrain=hills, region=box_region, seed=3))

        assert len(filtered.instances) < len(steep_free.instances)
        for instance in filtered.instances:
            assert hills.slope(instance.position.x, instance.position.z) <= 2

    def test_deterministic(self, system, options, make_layer):
        layer = make_layer()
        assert system.scatter(layer, options) == system.scatter(layer, options)

    def test_seed_changes_result(self, system, box_region, flat_terrain, make_layer):
        layer = make_layer()
        a = system.scatter(layer, ScatterOptions(terrain=flat_terrain, region=box_region, seed=1))
        b = system.scatter(layer, ScatterOptions(terrain=flat_terrain, region=box_region, seed=2))
        assert a.instances != b.instances

    def test_manifest_metadata(self, system, options, make_layer, box_region, fixed_clock):
        manifest = system.scatter(make_layer(algorithm="grid", count=25), options).manifest

        assert manifest.layer_id == "test"
        assert manifest.algorithm == DistributionAlgorithm.GRID
        assert manifest.region == box_region
        assert manifest.created_at == fixed_clock()
        assert re.fullmatch(r"[0-9a-f]{8}", manifest.id)

    def test_zero_count(self, system, options, make_layer):
        result = system.scatter(make_layer(count=0), options)
        assert result.instances == []
        assert result.manifest.layer_id == "test"

    def test_default_seed_from_settings(self, fixed_clock, box_region, flat_terrain, make_layer):
        system = ScatterSystem(settings=Settings(default_seed=7), clock=fixed_clock)
        unseeded = ScatterOptions(terrain=flat_terrain, region=box_region)
        seeded = ScatterOptions(terrain=flat_terrain, region=box_region, seed=7)

        layer = make_layer()
        assert system.scatter(layer, unseeded) == system.scatter(layer, seeded)

    def test_random_seed_when_unseeded(
        self, system, box_region, flat_terrain, make_layer, monkeypatch
    ):
        monkeypatch.setattr(
            "py_scatter.core.scatter_system.random_base_seed", lambda: 1234
        )
        unseeded = ScatterOptions(terrain=flat_terrain, region=box_region)
        seeded = ScatterOptions(terrain=flat_terrain, region=box_region, seed=1234)

        layer = make_layer()
        assert system.scatter(layer, unseeded) == system.scatter(layer, seeded)


class TestAlgorithms:
    """Every algorithm runs through the orchestrator and honours the region."""

    @pytest.mark.parametrize("algorithm", ["poisson", "clustered", "density", "grid"])
    def test_within_region_and_count(self, system, make_layer, flat_terrain, algorithm):
        region = CircleRegion(center_x=0, center_z=0, radius=40)
        options = ScatterOptions(terrain=flat_terrain, region=region, seed=9)
        layer = make_layer(algorithm=algorithm, count=60, min_distance=4)

        instances = system.scatter(layer, options).instances

        assert instances
        assert len(instances) <= 60
        assert all(region.contains(i.position.x, i.position.z) for i in instances)

    def test_density_uses_falloff(self, system, options, make_layer):
        layer = make_layer(
            algorithm="density",
            count=500,
            min_distance=3,
            constraints=[{"type": "density_falloff", "center": [0, 0], "radius": 30}],
        )
        instances = system.scatter(layer, options).instances

        assert instances
        assert all(math.hypot(i.position.x, i.position.z) < 30 for i in instances)

    def test_grid_caps_count(self, system, options, make_layer):
        layer = make_layer(algorithm="grid", count=25, min_distance=1)
        assert len(system.scatter(layer, options).instances) <= 25


class TestInstanceTypeSelection:
    """Test weighted instance type choice."""

    @pytest.fixture
    def pool(self):
        return [
            InstanceType(species_id="a", weight=1),
            InstanceType(species_id="b", weight=1),
            InstanceType(species_id="c", weight=2),
        ]

    def test_roll_walks_cumulative_weights(self, pool):
        assert ScatterSystem.select_instance_type(pool, StubRNG(0.1)).species_id == "a"
        assert ScatterSystem.select_instance_type(pool, StubRNG(0.5)).species_id == "b"
        assert ScatterSystem.select_instance_type(pool, StubRNG(0.99)).species_id == "c"

    def test_last_entry_is_fallback(self):
        pool = [InstanceType(species_id="a", weight=0.1), InstanceType(species_id="b", weight=0.2)]
        assert ScatterSystem.select_instance_type(pool, StubRNG(1.0)).species_id == "b"

    def test_single_entry_draws_nothing(self):
        rng = StubRNG()
        only = InstanceType(species_id="solo", weight=0)

        assert ScatterSystem.select_instance_type([only], rng) is only
        assert rng.drawn == 0

    def test_weighted_frequencies(self):
        pool = [InstanceType(species_id="common", weight=3), InstanceType(species_id="rare", weight=1)]
        rng = ScatterPRNG(17)
        picks = [ScatterSystem.select_instance_type(pool, rng).species_id for _ in range(4000)]

        assert picks.count("common") / len(picks) == pytest.approx(0.75, abs=0.03)

    def test_resolved_id_fallbacks(self, system, options, make_layer):
        layer = make_layer(
            instance_types=[
                {"generator": "palm", "weight": 1},
                {"asset_path": "rock.glb", "weight": 1},
            ],
            count=40,
        )
        ids = {i.species_id for i in system.scatter(layer, options).instances}
        assert ids == {"palm", "unknown"}

    def test_inverted_scale_rejected(self):
        with pytest.raises(ValueError):
            InstanceType(species_id="a", weight=1, scale_min=2, scale_max=1)


class TestMultiLayer:
    """Test scatter_layers() and scatter_layer()."""

    def test_results_keyed_by_id(self, system, options, ruins_and_trees):
        results = system.scatter_layers(list(ruins_and_trees), options)
        assert set(results) == {"ruins", "trees"}

    def test_cross_layer_exclusion(self, system, options, ruins_and_trees):
        results = system.scatter_layers(list(ruins_and_trees), options)

        ruins = results["ruins"].instances
        trees = results["trees"].instances
        assert ruins and trees
        for tree in trees:
            for ruin in ruins:
                distance = math.hypot(
                    tree.position.x - ruin.position.x, tree.position.z - ruin.position.z
                )
                assert distance >= 5 - 1e-9

    def test_input_order_irrelevant(self, system, options, ruins_and_trees):
        ruins, trees = ruins_and_trees
        assert system.scatter_layers([ruins, trees], options) == system.scatter_layers(
            [trees, ruins], options
        )

    def test_equal_priorities_keep_input_order(self, system, make_layer):
        """Between equal priorities the layer listed first places first."""
        region = BoxRegion(min_x=-30, max_x=30, min_z=-30, max_z=30)
        options = ScatterOptions(terrain=FlatTerrainSampler(), region=region, seed=3)
        a = make_layer(id="a", priority=5, count=100, excludes_layers=["b"])
        b = make_layer(id="b", priority=5, count=100, excludes_layers=["a"])

        solo_a = system.scatter_layers([a], options)["a"]
        solo_b = system.scatter_layers([b], options)["b"]

        a_first = system.scatter_layers([a, b], options)
        assert a_first["a"] == solo_a
        assert len(a_first["b"].instances) < len(solo_b.instances)

        b_first = system.scatter_layers([b, a], options)
        assert b_first["b"] == solo_b
        assert len(b_first["a"].instances) < len(solo_a.instances)

    def test_duplicate_ids_rejected(self, system, options, make_layer):
        with pytest.raises(ValueError, match="Duplicate layer ids"):
            system.scatter_layers([make_layer(id="a"), make_layer(id="a")], options)

    def test_single_layer_matches_derived_seed(
        self, system, options, box_region, flat_terrain, make_layer
    ):
        """Without exclusions a layer step equals scatter() on its derived seed."""
        layer = make_layer(id="grass")
        multi = system.scatter_layers([layer], options)["grass"]
        single = system.scatter(
            layer,
            ScatterOptions(
                terrain=flat_terrain, region=box_region, seed=derive_layer_seed(42, "grass")
            ),
        )
        assert multi == single

    def test_layer_seeds_differ(self, system, options, make_layer):
        results = system.scatter_layers(
            [make_layer(id="a", priority=2), make_layer(id="b", priority=1)], options
        )
        assert [i.position for i in results["a"].instances] != [
            i.position for i in results["b"].instances
        ]

    def test_accumulator_not_mutated(self, system, options, ruins_and_trees):
        ruins, trees = ruins_and_trees
        _, placed = system.scatter_layer(ruins, options)
        snapshot = {k: list(v) for k, v in placed.items()}

        result, updated = system.scatter_layer(trees, options, placed)

        assert placed == snapshot
        assert set(updated) == {"ruins", "trees"}
        assert len(updated["trees"]) == len(result.instances)

    def test_exclusion_before_placement_is_noop(self, system, options, ruins_and_trees):
        """A layer excluding a lower-priority layer sees nothing to avoid."""
        _, trees = ruins_and_trees
        alone, _ = system.scatter_layer(trees, options)
        with_empty, _ = system.scatter_layer(trees, options, {})
        assert alone == with_empty

    def test_base_seed_drawn_once(
        self, system, box_region, flat_terrain, ruins_and_trees, monkeypatch
    ):
        calls = []

        def fake_seed():
            calls.append(1)
            return 555

        monkeypatch.setattr("py_scatter.core.scatter_system.random_base_seed", fake_seed)
        options = ScatterOptions(terrain=flat_terrain, region=box_region)
        system.scatter_layers(list(ruins_and_trees), options)

        assert len(calls) == 1

    def test_placed_instances_satisfy_invariants(self, system, make_layer):
        region = CircleRegion(center_x=10, center_z=10, radius=45)
        hills = ProceduralTerrainSampler()
        options = ScatterOptions(terrain=hills, region=region, seed=2024)
        layers = [
            make_layer(
                id="boulders",
                priority=20,
                min_distance=8,
                count=15,
                constraints=[{"type": "exclusion", "center": [10, 10], "radius": 12}],
            ),
            make_layer(
                id="shrubs",
                algorithm="clustered",
                priority=1,
                count=120,
                min_distance=3,
                excludes_layers=["boulders"],
                constraints=[{"type": "slope", "max_degrees": 3}],
            ),
        ]

        results = system.scatter_layers(layers, options)

        for layer in layers:
            for instance in results[layer.id].instances:
                x, z = instance.position.x, instance.position.z
                assert region.contains(x, z)
                assert evaluate_all(x, z, layer.constraints, hills)
                assert instance.position.y == pytest.approx(hills.height(x, z))


def test_constraint_models_are_accepted_directly(system, options, make_layer):
    layer = make_layer(
        constraints=[
            SlopeConstraint(max_degrees=30),
            ExclusionConstraint(center=(0, 0), radius=10),
            DensityFalloffConstraint(center=(0, 0), radius=20),
        ]
    )
    for instance in system.scatter(layer, options).instances:
        assert math.hypot(instance.position.x, instance.position.z) > 10
