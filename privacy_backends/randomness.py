"""
Randomness Source

Synthetic transaction hashes, commitments, ciphertexts and one-time addresses
all come from a ``RandomSource``. Production code uses the OS CSPRNG; tests
pass a seed to get reproducible output.
"""

import random
import secrets
import threading
from typing import Optional

import base58


class RandomSource:
    """
    Injectable randomness for adapters

    Features:
    - OS CSPRNG by default (``secrets.SystemRandom``)
    - Seedable for deterministic tests
    - Thread-safe: a seeded generator is shared state, so draws are locked
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize random source

        Args:
            seed: Optional seed; ``None`` uses the OS CSPRNG
        """
        self.seeded = seed is not None
        self._rng = random.Random(seed) if self.seeded else secrets.SystemRandom()
        self._lock = threading.Lock()

    def random(self) -> float:
        """Uniform float in [0, 1)"""
        with self._lock:
            return self._rng.random()

    def randbelow(self, upper: int) -> int:
        """Uniform int in [0, upper)"""
        with self._lock:
            return self._rng.randrange(upper)

    def token_bytes(self, nbytes: int) -> bytes:
        with self._lock:
            return self._rng.getrandbits(nbytes * 8).to_bytes(nbytes, 'big')

    def token_hex(self, length: int = 64) -> str:
        """
        Random lowercase hex string

        Args:
            length: Number of hex characters (must be even)

        Returns:
            Hex string of exactly ``length`` characters
        """
        if length % 2:
            raise ValueError("Hex length must be even")
        return self.token_bytes(length // 2).hex()

    def base58_address(self, nbytes: int = 32) -> str:
        """Random base58-encoded Solana-style address"""
        return base58.b58encode(self.token_bytes(nbytes)).decode('ascii')


default_random = RandomSource()
