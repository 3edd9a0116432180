"""Bloom filter sized from capacity and false-positive rate.

Uses FNV-1a and CRC-32 as the two base hash functions by default and derives
the remaining probes with the Kirsch-Mitzenmacher double hashing scheme
("Less Hashing, Same Performance: Building a Better Bloom Filter").

A negative answer is authoritative: the value was never added. A positive
answer may be a false positive.
"""
from __future__ import annotations

import logging
import math
import struct
from typing import Iterable, Iterator, Union

from bloomflt.hash_functions import DEFAULT_HASH_PAIR, HashPair, probe_positions

logger = logging.getLogger(__name__)

# Probe positions are 32-bit, so the bit array never exceeds this many bits.
MAX_BITS = 2**31 - 1

_UINT32 = struct.Struct("<I")
_UINT64 = struct.Struct("<Q")

BytesLike = Union[bytes, bytearray, memoryview]


def calc_optimal_mk(n: int, false_positive_rate: float) -> tuple[int, int]:
    """Return optimal ``(m, k)`` for ``n`` elements at ``false_positive_rate``.

    ``m = -n * ln(p) / ln(2)^2`` and ``k = m / n * ln(2)``, each rounded by
    adding 0.5 and truncating. No clamping is done here: ``n == 0`` yields
    ``(0, 0)`` and a rate of 1 or more yields a non-positive ``m``.
    """
    m = -1 * n * math.log(false_positive_rate) / math.log(2) ** 2
    if n == 0:
        return int(m + 0.5), 0
    k = m / n * math.log(2)
    return int(m + 0.5), int(k + 0.5)


class BloomFilter:
    """Bloom filter backed by a bytearray bitset of ``m`` bits and ``k`` probes."""

    def __init__(self, m: int, k: int, *, hashes: HashPair = DEFAULT_HASH_PAIR) -> None:
        """Create an empty filter.

        Args:
            m: Number of bits in the filter.
            k: Number of probes per value.
            hashes: Base hash pair for double hashing.

        No validation is done; use :meth:`new_mk_checked` for untrusted values.
        """
        self.m = m
        self.k = k
        self.hashes = hashes
        self._bit_array = bytearray((m + 7) // 8)

    @classmethod
    def new_mk(cls, m: int, k: int, *, hashes: HashPair = DEFAULT_HASH_PAIR) -> BloomFilter:
        """Create a filter with exactly ``m`` bits and ``k`` probes."""
        return cls(m, k, hashes=hashes)

    @classmethod
    def new_mk_checked(
        cls, m: int, k: int, *, hashes: HashPair = DEFAULT_HASH_PAIR
    ) -> BloomFilter:
        """Like :meth:`new_mk` but reject out-of-range parameters.

        Raises:
            ValueError: If ``m`` is not in ``[1, MAX_BITS]`` or ``k`` is not positive.
        """
        if m < 1:
            raise ValueError("m must be positive")
        if m > MAX_BITS:
            raise ValueError(f"m must not exceed {MAX_BITS}")
        if k < 1:
            raise ValueError("k must be positive")
        return cls(m, k, hashes=hashes)

    @classmethod
    def new(
        cls, n: int, false_positive_rate: float, *, hashes: HashPair = DEFAULT_HASH_PAIR
    ) -> BloomFilter:
        """Create a filter sized for ``n`` elements at ``false_positive_rate``.

        The derived ``m`` is clamped to ``[1, MAX_BITS]`` and ``k`` to at
        least 1, so degenerate capacities still give a usable filter.
        """
        m, k = calc_optimal_mk(n, false_positive_rate)
        if m < 1:
            logger.debug("m=%d for n=%d raised to 1", m, n)
            m = 1
        if m > MAX_BITS:
            logger.debug("m=%d for n=%d capped at %d", m, n, MAX_BITS)
            m = MAX_BITS
        if k < 1:
            logger.debug("k=%d for n=%d raised to 1", k, n)
            k = 1
        logger.debug("bloom filter n=%d p=%g -> m=%d k=%d", n, false_positive_rate, m, k)
        return cls.new_mk(m, k, hashes=hashes)

    def _hashes(self, value: BytesLike) -> Iterator[int]:
        h1, h2 = self.hashes.digests(value)
        return probe_positions(h1, h2, self.k, self.m)

    def add(self, value: BytesLike) -> None:
        """Insert ``value`` into the filter."""
        for bit_index in self._hashes(value):
            self._bit_array[bit_index >> 3] |= 1 << (bit_index & 7)

    def add_string(self, value: str) -> None:
        self.add(value.encode("utf-8"))

    def add_uint32(self, value: int) -> None:
        self.add(_UINT32.pack(value))

    def add_uint64(self, value: int) -> None:
        self.add(_UINT64.pack(value))

    def update(self, items: Iterable[BytesLike]) -> None:
        """Insert all ``items`` into the filter."""
        for item in items:
            self.add(item)

    def contains(self, value: BytesLike) -> bool:
        """Return False if ``value`` was definitely never added."""
        for bit_index in self._hashes(value):
            if not (self._bit_array[bit_index >> 3] & (1 << (bit_index & 7))):
                return False
        return True

    def contains_string(self, value: str) -> bool:
        return self.contains(value.encode("utf-8"))

    def contains_uint32(self, value: int) -> bool:
        return self.contains(_UINT32.pack(value))

    def contains_uint64(self, value: int) -> bool:
        return self.contains(_UINT64.pack(value))

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return self.contains_string(item)
        if isinstance(item, (bytes, bytearray, memoryview)):
            return self.contains(item)
        raise TypeError(f"unsupported item type: {type(item).__name__}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(m={self.m}, k={self.k})"

    @property
    def size(self) -> int:
        return self.m

    @property
    def num_hashes(self) -> int:
        return self.k

    @property
    def bit_array(self) -> bytearray:
        """Expose the underlying bit array for inspection."""
        return self._bit_array

    @property
    def bits_set(self) -> int:
        return sum(bin(byte).count("1") for byte in self._bit_array)

    @property
    def fill_rate(self) -> float:
        """Proportion of the ``m`` bits currently set."""
        return self.bits_set / self.m

    @property
    def estimated_false_positive_rate(self) -> float:
        """Chance that all ``k`` probes of an absent value hit set bits."""
        return self.fill_rate ** self.k
