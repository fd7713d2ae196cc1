"""
Seed and logging helpers.
"""

from .random import derive_layer_seed, hash_string, random_base_seed
from .log_config import configure_logging

__all__ = [
    "derive_layer_seed",
    "hash_string",
    "random_base_seed",
    "configure_logging",
]
