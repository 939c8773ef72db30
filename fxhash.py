"""
fxhash seed handling and the fxrand pseudo-random generator.

A run is identified by its fxhash: "oo" followed by a base58 body. The body is
cut into (up to) four chunks, each chunk is decoded into a signed 32-bit integer, and
those four integers seed an sfc32 generator. The arithmetic wraps exactly like
the JavaScript reference so the same hash yields the same sequence everywhere.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)

ALPHABET = '123456789abcdefghijkmnopqrstuvwxyzABCDEFGHJKLMNPQRSTUVWXYZ'
HASH_PREFIX = 'oo'
HASH_BODY_LENGTH = 49

_MASK32 = 0xFFFFFFFF
_INDEX = {c: i for i, c in enumerate(ALPHABET)}


def _to_int32(value):
    """Wrap an integer to signed 32 bits (JavaScript ``x | 0``)."""
    value &= _MASK32
    return value - 0x100000000 if value & 0x80000000 else value


def generate_hash(seed=None):
    """
    Generate a new fxhash.

    Args:
        seed: Optional seed for the underlying numpy RandomState (tests use it)

    Returns:
        String of the form "oo" + 49 base58 characters
    """
    rng = np.random.RandomState(seed)
    indices = rng.randint(0, len(ALPHABET), HASH_BODY_LENGTH)
    return HASH_PREFIX + ''.join(ALPHABET[i] for i in indices)


def validate_hash(fxhash):
    """Return ``fxhash`` unchanged, or raise ValueError if it is malformed."""
    if not isinstance(fxhash, str):
        raise ValueError(f"fxhash must be a string, got {type(fxhash).__name__}")
    if not fxhash.startswith(HASH_PREFIX):
        raise ValueError(f"fxhash must start with '{HASH_PREFIX}': {fxhash!r}")

    body = fxhash[len(HASH_PREFIX):]
    if len(body) < 4:
        raise ValueError(f"fxhash body is too short ({len(body)} characters, need at least 4)")

    bad = sorted(set(c for c in body if c not in _INDEX))
    if bad:
        raise ValueError(f"fxhash contains non-base58 characters: {''.join(bad)!r}")

    return fxhash


def b58dec(chunk):
    """Decode a base58 chunk, wrapping to int32 after every digit."""
    acc = 0
    for c in chunk:
        acc = _to_int32(acc * len(ALPHABET) + _INDEX[c])
    return acc


def hash_seeds(fxhash):
    """
    Split an fxhash into the four int32 seeds used by sfc32.

    The chunk size is a quarter of the full hash length, prefix included, and
    is applied to the body; a trailing remainder is ignored. Short hashes
    yield fewer than four chunks and the missing seeds are 0.
    """
    body = validate_hash(fxhash)[len(HASH_PREFIX):]
    size = len(fxhash) // 4
    chunks = [body[i:i + size] for i in range(0, len(body) - size + 1, size)]
    seeds = [b58dec(chunk) for chunk in chunks[:4]]
    return seeds + [0] * (4 - len(seeds))


class FxRandom:
    """sfc32 generator seeded from an fxhash (the fxrand() of a token)."""

    def __init__(self, fxhash):
        self.fxhash = validate_hash(fxhash)
        a, b, c, d = (s & _MASK32 for s in hash_seeds(fxhash))
        self._state = [a, b, c, d]
        self.calls = 0

    def fxrand(self):
        """Next float in [0, 1)."""
        a, b, c, d = self._state
        t = (a + b + d) & _MASK32
        d = (d + 1) & _MASK32
        a = b ^ (b >> 9)
        b = (c + (c << 3)) & _MASK32
        c = ((c << 21) | (c >> 11)) & _MASK32
        c = (c + t) & _MASK32
        self._state = [a, b, c, d]
        self.calls += 1
        return t / 4294967296.0

    random = fxrand

    def uniform(self, low, high):
        return low + (high - low) * self.fxrand()

    def randint(self, low, high):
        """Integer in [low, high], both inclusive."""
        if high < low:
            raise ValueError(f"randint range is empty: [{low}, {high}]")
        return low + int(self.fxrand() * (high - low + 1))

    def choice(self, options):
        if not options:
            raise ValueError("Cannot choose from an empty sequence")
        return options[int(self.fxrand() * len(options))]

    def weighted_choice(self, pairs):
        """
        Pick a value from (value, weight) pairs.

        Args:
            pairs: Sequence of (value, weight) with non-negative weights

        Returns:
            The selected value
        """
        total = float(sum(weight for _, weight in pairs))
        if total <= 0:
            raise ValueError("weighted_choice needs at least one positive weight")

        target = self.fxrand() * total
        for value, weight in pairs:
            if target < weight:
                return value
            target -= weight
        # Float rounding can leave target marginally above the last bucket
        return pairs[-1][0]

    def chance(self, probability):
        return self.fxrand() < probability

    def derive_seed(self, bits=31):
        """Integer seed for libraries that want one (numpy, noise bases)."""
        return int(self.fxrand() * (1 << bits))

    def __repr__(self):
        return f"FxRandom({self.fxhash!r}, calls={self.calls})"
