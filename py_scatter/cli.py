#!/usr/bin/env python3
"""
Command-line driver for the scatter engine.

Usage:
    py-scatter run scene.json [--seed N] [--output manifests.json]
    py-scatter validate scene.json

A scene file holds a region, a terrain description and a list of layers:

    {
      "seed": 42,
      "region": {"type": "box", "min_x": -50, "max_x": 50, "min_z": -50, "max_z": 50},
      "terrain": {"type": "procedural", "amplitude": 1.5, "frequency": 0.05},
      "layers": [
        {"id": "trees", "algorithm": "poisson", "count": 50, "min_distance": 5,
         "instance_types": [{"species_id": "oak", "weight": 1.0}]}
      ]
    }

Output is a JSON object of manifests keyed by layer id.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Annotated, List, Literal, Optional, Union

import structlog
from pydantic import BaseModel, Field, ValidationError

from .config import settings
from .core.layers import DecorationLayer
from .core.regions import Region
from .core.scatter_system import ScatterOptions, ScatterSystem
from .core.terrain import (
    FlatTerrainSampler,
    HeightmapTerrainSampler,
    ProceduralTerrainSampler,
    TerrainSampler,
)
from .utils.log_config import configure_logging

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_IO_ERROR = 1
EXIT_INVALID_SCENE = 2


class FlatTerrainConfig(BaseModel):
    type: Literal["flat"] = "flat"
    height: float = 0.0


class ProceduralTerrainConfig(BaseModel):
    type: Literal["procedural"] = "procedural"
    amplitude: float = 1.5
    frequency: float = 0.05


class HeightmapTerrainConfig(BaseModel):
    type: Literal["heightmap"] = "heightmap"
    path: str = Field(description="Raw float32 (.r32) or .npy file, relative to the scene")
    resolution: int = Field(default=256, ge=2)
    region_size: float = Field(default=256.0, gt=0)
    offset_x: float = 0.0
    offset_z: float = 0.0


TerrainConfig = Annotated[
    Union[FlatTerrainConfig, ProceduralTerrainConfig, HeightmapTerrainConfig],
    Field(discriminator="type"),
]


class SceneConfig(BaseModel):
    """A complete scatter job."""

    region: Region
    terrain: TerrainConfig = Field(default_factory=FlatTerrainConfig)
    layers: List[DecorationLayer] = Field(min_length=1)
    seed: Optional[int] = None


def build_terrain(config: TerrainConfig, base_dir: Path) -> TerrainSampler:
    """Instantiate the sampler a scene asks for."""
    if isinstance(config, FlatTerrainConfig):
        return FlatTerrainSampler(config.height)
    if isinstance(config, ProceduralTerrainConfig):
        return ProceduralTerrainSampler(config.amplitude, config.frequency)
    return HeightmapTerrainSampler.from_file(
        base_dir / config.path,
        resolution=config.resolution,
        region_size=config.region_size,
        offset_x=config.offset_x,
        offset_z=config.offset_z,
    )


def load_scene(path: Path) -> SceneConfig:
    """Read and validate a scene file."""
    return SceneConfig.model_validate_json(path.read_text(encoding="utf-8"))


def run_scene(scene: SceneConfig, base_dir: Path, seed: Optional[int] = None) -> dict:
    """
    Scatter every layer of a scene.

    Args:
        scene: Validated scene
        base_dir: Directory that relative terrain paths resolve against
        seed: Overrides the scene seed when given

    Returns:
        JSON-ready dict of manifests keyed by layer id
    """
    options = ScatterOptions(
        terrain=build_terrain(scene.terrain, base_dir),
        region=scene.region,
        seed=seed if seed is not None else scene.seed,
    )
    results = ScatterSystem().scatter_layers(scene.layers, options)
    return {
        layer_id: result.manifest.model_dump(mode="json")
        for layer_id, result in results.items()
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="py-scatter", description="Scatter decoration layers over a region"
    )
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        default=settings.log_format,
        help="Log output format",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Scatter a scene and write manifests")
    run.add_argument("scene", type=Path, help="Scene JSON file")
    run.add_argument("--seed", type=int, default=None, help="Override the scene seed")
    run.add_argument("--output", "-o", type=Path, default=None, help="Output file (default stdout)")

    validate = subparsers.add_parser("validate", help="Validate a scene without scattering")
    validate.add_argument("scene", type=Path, help="Scene JSON file")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main function."""
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    try:
        scene = load_scene(args.scene)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Could not read scene", path=str(args.scene), error=str(exc))
        return EXIT_IO_ERROR
    except ValidationError as exc:
        logger.error(
            "Invalid scene", path=str(args.scene), errors=exc.error_count(), detail=str(exc)
        )
        return EXIT_INVALID_SCENE

    if args.command == "validate":
        logger.info("Scene is valid", path=str(args.scene), layers=len(scene.layers))
        return EXIT_OK

    try:
        manifests = run_scene(scene, args.scene.parent, seed=args.seed)
    except ValueError as exc:
        logger.error("Scene could not be scattered", path=str(args.scene), error=str(exc))
        return EXIT_INVALID_SCENE
    except OSError as exc:
        logger.error("Could not read terrain", path=str(args.scene), error=str(exc))
        return EXIT_IO_ERROR

    text = json.dumps(manifests, indent=2)
    if args.output is None:
        sys.stdout.write(text + "\n")
    else:
        args.output.write_text(text + "\n", encoding="utf-8")
        logger.info("Wrote manifests", path=str(args.output), layers=len(manifests))

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
