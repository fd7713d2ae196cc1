"""
Seed utilities.

Layer seeds are derived from a base seed plus a hash of the layer id, so
the order layers are processed in never changes another layer's stream.
"""

import random

# Upper bound for seeds drawn when the caller supplies none
DEFAULT_SEED_RANGE = 100000


def _int32(n: int) -> int:
    """Wrap to a signed 32-bit integer."""
    n &= 0xFFFFFFFF
    return n - 0x100000000 if n & 0x80000000 else n


def hash_string(text: str) -> int:
    """
    Java-style string hash (h * 31 + c) wrapped to signed 32 bits.

    Iterates UTF-16 code units so ids outside the BMP hash the same way
    they do in other runtimes that use UTF-16 strings.
    """
    data = text.encode("utf-16-le")

    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = _int32((h << 5) - h + unit)
    return h


def derive_layer_seed(base_seed: int, layer_id: str) -> int:
    """Seed for one layer of a multi-layer scatter."""
    return _int32(base_seed + hash_string(layer_id))


def random_base_seed() -> int:
    """Draw a base seed from the process RNG for unseeded calls."""
    return random.randrange(DEFAULT_SEED_RANGE)
