"""
Point distribution algorithms.

Four ways of laying out candidate (x, z) points inside a region:
- poisson_disk: blue noise with a minimum pairwise distance (trees, rocks)
- clustered: Gaussian groups of odd sizes (groves, ruins, flower patches)
- density_function: blue noise thinned by a linear falloff (grass near water)
- jittered_grid: a perturbed lattice (orchards, fences, lanterns)

Every algorithm draws from an injected ScatterPRNG and nothing else, so
output depends only on its arguments. Counts and spacings are targets:
when a region is too small or too crowded the result is shorter, never an
error.
"""

import math
from typing import Iterator, List, Optional, Tuple

import structlog

from .constraints import Constraint, find_density_falloff
from .regions import Region, filter_to_region, region_area, region_bounds
from .scatter_prng import ScatterPRNG

logger = structlog.get_logger()

Point2D = Tuple[float, float]

# Candidates tried around an active sample before it is retired
POISSON_TRIES = 30

# Odd sizes avoid visually symmetric pairings
ODD_CLUSTER_SIZES = [3, 5, 7, 9, 11, 13, 17, 21]
MIN_CLUSTERS = 20
MAX_CLUSTERS = 80
POINTS_PER_CLUSTER = 15
CLUSTER_CENTER_ATTEMPTS = 100

DENSITY_OVERSAMPLE = 3
DENSITY_MIN_DISTANCE = 3.0

GRID_JITTER = 0.2


def _bridson_samples(
    width: float,
    depth: float,
    min_distance: float,
    tries: int,
    rng: ScatterPRNG,
) -> Iterator[Point2D]:
    """
    Yield blue-noise samples in [0, width) x [0, depth), in generation order.

    Bridson's algorithm: start from one random sample, then repeatedly pick
    a random active sample and try up to ``tries`` candidates in the annulus
    between ``min_distance`` and twice that. A candidate is accepted when no
    existing sample lies closer than ``min_distance``; an active sample with
    no accepted candidate is retired.
    """
    r2 = min_distance * min_distance
    outer2 = 4.0 * r2
    cell = min_distance / math.sqrt(2)
    cols = max(1, math.ceil(width / cell))
    rows = max(1, math.ceil(depth / cell))

    # Each background cell holds at most one sample index
    grid: List[List[int]] = [[-1] * rows for _ in range(cols)]
    samples: List[Point2D] = []
    active: List[int] = []

    def cell_of(px: float, pz: float) -> Tuple[int, int]:
        return min(int(px / cell), cols - 1), min(int(pz / cell), rows - 1)

    def fits(px: float, pz: float) -> bool:
        gx, gz = cell_of(px, pz)
        for i in range(max(gx - 2, 0), min(gx + 3, cols)):
            column = grid[i]
            for j in range(max(gz - 2, 0), min(gz + 3, rows)):
                idx = column[j]
                if idx < 0:
                    continue
                sx, sz = samples[idx]
                dx = sx - px
                dz = sz - pz
                if dx * dx + dz * dz < r2:
                    return False
        return True

    def add(px: float, pz: float) -> Point2D:
        gx, gz = cell_of(px, pz)
        grid[gx][gz] = len(samples)
        active.append(len(samples))
        samples.append((px, pz))
        return px, pz

    yield add(rng.random() * width, rng.random() * depth)

    while active:
        k = int(rng.random() * len(active))
        ax, az = samples[active[k]]
        for _ in range(tries):
            angle = rng.random() * 2 * math.pi
            dist = math.sqrt(r2 + rng.random() * (outer2 - r2))
            px = ax + math.cos(angle) * dist
            pz = az + math.sin(angle) * dist
            if 0 <= px < width and 0 <= pz < depth and fits(px, pz):
                yield add(px, pz)
                break
        else:
            active.pop(k)


def poisson_disk(
    region: Region,
    min_distance: float,
    max_points: int,
    rng: ScatterPRNG,
    tries: int = POISSON_TRIES,
) -> List[Point2D]:
    """
    Generate blue-noise points within a region.

    Points are sampled in the region's bounding rectangle, moved into world
    space and filtered to the true region shape, keeping the first
    ``max_points`` survivors in generation order.

    Args:
        region: Region to fill
        min_distance: Minimum distance between any two points
        max_points: Upper bound on returned points
        rng: Random source
        tries: Candidates per active sample

    Returns:
        List of (x, z) world positions
    """
    if max_points <= 0 or min_distance <= 0:
        return []

    bounds = region_bounds(region)
    if bounds.width <= 0 or bounds.depth <= 0:
        logger.debug("Degenerate region bounds, no poisson samples", bounds=bounds)
        return []

    points: List[Point2D] = []
    for lx, lz in _bridson_samples(bounds.width, bounds.depth, min_distance, tries, rng):
        wx = lx + bounds.min_x
        wz = lz + bounds.min_z
        if region.contains(wx, wz):
            points.append((wx, wz))
            if len(points) >= max_points:
                break

    return points


def clustered(region: Region, total_count: int, rng: ScatterPRNG) -> List[Point2D]:
    """
    Generate grouped points with Gaussian spread around cluster centers.

    1. Cluster count is total_count / 15, clamped to [20, 80]
    2. Base spread radius is half the side of one cluster's share of the area
    3. Each cluster picks a center inside the region (100 attempts, else the
       cluster is skipped), an odd member count and a radius factor in
       [0.5, 1.5)
    4. Members sit at |N(0, 1)| * radius from the center at a uniform angle;
       members landing outside the region are dropped, not replaced

    Returns:
        List of (x, z) world positions, at most total_count long
    """
    if total_count <= 0:
        return []

    bounds = region_bounds(region)
    area = region_area(region)

    cluster_count = max(MIN_CLUSTERS, min(MAX_CLUSTERS, total_count // POINTS_PER_CLUSTER))
    base_radius = math.sqrt(area / cluster_count) * 0.5

    points: List[Point2D] = []
    remaining = total_count
    skipped = 0

    for _ in range(cluster_count):
        if remaining <= 0:
            break

        for _attempt in range(CLUSTER_CENTER_ATTEMPTS):
            cx = bounds.min_x + rng.random() * bounds.width
            cz = bounds.min_z + rng.random() * bounds.depth
            if region.contains(cx, cz):
                break
        else:
            skipped += 1
            continue

        cluster_size = min(remaining, rng.choice(ODD_CLUSTER_SIZES))
        cluster_radius = base_radius * (0.5 + rng.random())

        for _member in range(cluster_size):
            dist = abs(rng.gaussian()) * cluster_radius
            angle = rng.random() * 2 * math.pi
            px = cx + math.cos(angle) * dist
            pz = cz + math.sin(angle) * dist

            if region.contains(px, pz):
                points.append((px, pz))
                remaining -= 1

    if skipped:
        logger.debug("Skipped clusters without a center in region", skipped=skipped)

    return points


def density_function(
    region: Region,
    target_count: int,
    rng: ScatterPRNG,
    min_distance: float = DENSITY_MIN_DISTANCE,
    constraints: Optional[List[Constraint]] = None,
    tries: int = POISSON_TRIES,
) -> List[Point2D]:
    """
    Blue-noise candidates thinned by a density falloff.

    Oversamples with poisson_disk at three times the target, then accepts
    each candidate with probability ``max(0, 1 - d / radius)`` where d is
    its distance to the falloff center. Without a density_falloff
    constraint every candidate is accepted, up to the target count.

    Args:
        region: Region to fill
        target_count: Upper bound on returned points
        rng: Random source
        min_distance: Spacing of the oversampled candidates
        constraints: Layer constraints, searched for a density falloff
        tries: Candidates per active poisson sample

    Returns:
        List of (x, z) world positions
    """
    falloff = find_density_falloff(constraints or [])

    candidates = poisson_disk(
        region, min_distance, target_count * DENSITY_OVERSAMPLE, rng, tries
    )

    points: List[Point2D] = []
    for x, z in candidates:
        if len(points) >= target_count:
            break

        if falloff is None:
            points.append((x, z))
        elif rng.random() < falloff.density_at(x, z):
            points.append((x, z))

    return points


def _lattice(start: float, stop: float, step: float) -> Iterator[float]:
    i = 0
    value = start
    while value <= stop:
        yield value
        i += 1
        value = start + i * step


def jittered_grid(
    region: Region,
    spacing: float,
    rng: ScatterPRNG,
    max_points: Optional[int] = None,
    jitter: float = GRID_JITTER,
) -> List[Point2D]:
    """
    Generate a regular lattice with random jitter.

    Lattice points start at the region's minimum corner and step by
    ``spacing``. Each is offset by up to +/- spacing * jitter / 2 per axis and
    dropped if it leaves the region. With ``max_points`` set, spacing grows
    to at least sqrt(area / max_points), then the points are shuffled and
    cut to the cap.

    Args:
        region: Region to fill
        spacing: Lattice step
        rng: Random source
        max_points: Optional cap on returned points
        jitter: Jitter as a fraction of spacing

    Returns:
        List of (x, z) world positions
    """
    if max_points is not None:
        if max_points <= 0:
            return []
        spacing = max(spacing, math.sqrt(region_area(region) / max_points))

    if spacing <= 0:
        logger.debug("Non-positive grid spacing, no grid points", spacing=spacing)
        return []

    bounds = region_bounds(region)
    amplitude = spacing * jitter
    points: List[Point2D] = []

    for x in _lattice(bounds.min_x, bounds.max_x, spacing):
        for z in _lattice(bounds.min_z, bounds.max_z, spacing):
            jx = x + (rng.random() - 0.5) * amplitude
            jz = z + (rng.random() - 0.5) * amplitude
            points.append((jx, jz))

    points = filter_to_region(points, region)

    if max_points is not None and len(points) > max_points:
        rng.shuffle(points)
        del points[max_points:]

    return points
