"""
Terrain queries for the scatter engine.

The engine only needs two answers from the ground it decorates: the height
at (x, z) and the slope there in degrees. Any source that can answer
``height`` gets ``slope`` for free from forward differences, so a new
terrain source only has to implement one method.

Samplers provided:
- FlatTerrainSampler: constant height, zero slope
- ProceduralTerrainSampler: sin/cos rolling hills
- HeightmapTerrainSampler: bilinear lookups into a square height grid
"""

import math
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

import numpy as np
import structlog

logger = structlog.get_logger()

# Offset used by the forward-difference slope estimate
SLOPE_SAMPLE_DISTANCE = 1.0


def slope_from_samples(
    sampler: "TerrainSampler",
    x: float,
    z: float,
    sample_distance: float = SLOPE_SAMPLE_DISTANCE,
) -> float:
    """
    Estimate slope in degrees from three height samples.

    Samples (x, z), (x + d, z) and (x, z + d), takes the forward-difference
    gradient on each axis and converts its magnitude to an angle.

    Args:
        sampler: Any terrain sampler
        x: World X coordinate
        z: World Z coordinate
        sample_distance: Offset between samples

    Returns:
        Slope in degrees, 0 (flat) to 90 (vertical)
    """
    h0 = sampler.height(x, z)
    h_x = sampler.height(x + sample_distance, z)
    h_z = sampler.height(x, z + sample_distance)

    dx = (h_x - h0) / sample_distance
    dz = (h_z - h0) / sample_distance

    return math.degrees(math.atan(math.sqrt(dx * dx + dz * dz)))


class TerrainSampler(ABC):
    """Height and slope lookup at world (x, z)."""

    slope_sample_distance: float = SLOPE_SAMPLE_DISTANCE

    @abstractmethod
    def height(self, x: float, z: float) -> float:
        """Terrain height at world position (x, z)."""

    def slope(self, x: float, z: float) -> float:
        """Terrain slope at world position (x, z), in degrees."""
        return slope_from_samples(self, x, z, self.slope_sample_distance)


class FlatTerrainSampler(TerrainSampler):
    """Constant height, zero slope. Used for tests and empty sandboxes."""

    def __init__(self, height: float = 0.0):
        self._height = float(height)

    def height(self, x: float, z: float) -> float:
        return self._height

    def slope(self, x: float, z: float) -> float:
        return 0.0


class ProceduralTerrainSampler(TerrainSampler):
    """Rolling hills: ``sin(x * f) * cos(z * f) * a``."""

    def __init__(self, amplitude: float = 1.5, frequency: float = 0.05):
        self.amplitude = amplitude
        self.frequency = frequency

    def height(self, x: float, z: float) -> float:
        f = self.frequency
        return math.sin(x * f) * math.cos(z * f) * self.amplitude


class HeightmapTerrainSampler(TerrainSampler):
    """
    Bilinear sampling over a square grid of heights.

    The grid holds ``resolution x resolution`` samples in row-major order
    (row = Z, column = X) and spans ``region_size`` world units on each
    axis, starting at (offset_x, offset_z).
    """

    def __init__(
        self,
        data: np.ndarray,
        resolution: int = 256,
        region_size: float = 256.0,
        offset_x: float = 0.0,
        offset_z: float = 0.0,
    ):
        """
        Initialize the heightmap sampler.

        Args:
            data: Heights, flat or 2D, holding resolution**2 values
            resolution: Samples per axis
            region_size: World extent covered on each axis
            offset_x: World X of the first column
            offset_z: World Z of the first row
        """
        if resolution < 2:
            raise ValueError(f"Heightmap resolution must be >= 2, got {resolution}")
        if region_size <= 0:
            raise ValueError(f"Heightmap region size must be positive, got {region_size}")

        data = np.asarray(data, dtype=np.float32).ravel()
        if data.size != resolution * resolution:
            raise ValueError(
                f"Heightmap holds {data.size} samples, expected {resolution * resolution}"
            )

        self.data = data
        self.resolution = resolution
        self.region_size = region_size
        self.offset_x = offset_x
        self.offset_z = offset_z
        self.cell_size = region_size / resolution

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        resolution: int = 256,
        region_size: float = 256.0,
        offset_x: float = 0.0,
        offset_z: float = 0.0,
    ) -> "HeightmapTerrainSampler":
        """
        Load heights from disk.

        ``.npy`` files are read with NumPy; anything else is treated as raw
        little-endian float32 (the ``.r32`` layout).
        """
        path = Path(path)
        if path.suffix == ".npy":
            data = np.load(path)
        else:
            data = np.fromfile(path, dtype="<f4")

        logger.info("Loaded heightmap", path=str(path), samples=int(np.size(data)))
        return cls(data, resolution, region_size, offset_x, offset_z)

    def height(self, x: float, z: float) -> float:
        gx = (x - self.offset_x) / self.cell_size
        gz = (z - self.offset_z) / self.cell_size

        # Clamp so all four corners stay inside the grid
        last = self.resolution - 2
        x0 = max(0, min(last, math.floor(gx)))
        z0 = max(0, min(last, math.floor(gz)))
        x1 = x0 + 1
        z1 = z0 + 1

        fx = gx - x0
        fz = gz - z0

        res = self.resolution
        h00 = float(self.data[z0 * res + x0])
        h10 = float(self.data[z0 * res + x1])
        h01 = float(self.data[z1 * res + x0])
        h11 = float(self.data[z1 * res + x1])

        h0 = h00 + (h10 - h00) * fx
        h1 = h01 + (h11 - h01) * fx
        return h0 + (h1 - h0) * fz
