"""32-bit base hash functions for double hashing.

Two independent 32-bit digests are combined Kirsch-Mitzenmacher style to
derive the k probe positions of a filter. The default pair is FNV-1a and
CRC-32 (IEEE); a MurmurHash3 (mmh3) + xxHash32 pair is also provided.
"""
from __future__ import annotations

import zlib
from typing import Callable, Iterator, NamedTuple

import mmh3
import xxhash

MASK32 = 0xFFFFFFFF

FNV32_OFFSET_BASIS = 0x811C9DC5
FNV32_PRIME = 0x01000193


def fnv1a_32(data: bytes) -> int:
    """FNV-1a 32-bit hash of ``data``."""
    hash_val = FNV32_OFFSET_BASIS
    for byte in data:
        hash_val ^= byte
        hash_val = (hash_val * FNV32_PRIME) & MASK32
    return hash_val


def crc32_ieee(data: bytes) -> int:
    """CRC-32 (IEEE 802.3 polynomial) of ``data``."""
    return zlib.crc32(data) & MASK32


def murmur3_32(data: bytes) -> int:
    return mmh3.hash(data, 0, signed=False)


def xxh32(data: bytes) -> int:
    return xxhash.xxh32(data, seed=0).intdigest()


class HashPair(NamedTuple):
    """The two base hashes feeding the double hashing scheme."""

    first: Callable[[bytes], int]
    second: Callable[[bytes], int]

    def digests(self, data: bytes) -> tuple[int, int]:
        return self.first(data), self.second(data)


DEFAULT_HASH_PAIR = HashPair(fnv1a_32, crc32_ieee)
MURMUR_XXHASH_PAIR = HashPair(murmur3_32, xxh32)


def probe_positions(h1: int, h2: int, num_hashes: int, size: int) -> Iterator[int]:
    """Yield ``num_hashes`` bit positions in ``[0, size)``.

    Position i is ``(h1 + i * h2) mod 2**32 mod size``. The sum wraps at 32
    bits so positions match any implementation using unsigned 32-bit math.
    """
    for i in range(num_hashes):
        yield ((h1 + i * h2) & MASK32) % size
