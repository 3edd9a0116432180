"""Empirical validation of the Bloom filter.

Performs a deterministic 80/20 split of unique tokens, builds a filter sized
for the 80% training set with ``BloomFilter.new`` and runs five checks:

1. Membership on the training set (should be all present)
2. False positive rate on the held-out set (tokens not inserted)
3. Collision analysis using simple modifications of held-out tokens
4. Filter properties and memory usage
5. Insertion and query throughput

Both hash pairs (FNV-1a + CRC-32 and MurmurHash3 + xxHash32) are run over the
same split and compared. Run with:

    python -m bloomflt.empirical [--items N] [--rate P] [--words FILE]
"""
from __future__ import annotations

import argparse
import random
import time
import uuid
from pathlib import Path
from typing import Optional, Sequence

from bloomflt.bloom_filter import BloomFilter
from bloomflt.hash_functions import DEFAULT_HASH_PAIR, MURMUR_XXHASH_PAIR, HashPair

DEFAULT_ITEMS = 100_000
DEFAULT_FALSE_POSITIVE_RATE = 0.01
TRAIN_FRACTION = 0.8
QUERY_OPS = 1_000_000


def load_words(path: Path) -> list[str]:
    """Load unique tokens from a text file and normalize them.

    Returns a sorted list of unique, lowercased tokens that contain at least
    one alphanumeric character.
    """
    if not path.exists():
        raise FileNotFoundError(f"Word file not found: {path}")

    words = set()
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            for token in line.split():
                normalized = token.lower()
                if any(c.isalnum() for c in normalized):
                    words.add(normalized)
    return sorted(words)


def generate_synthetic_data(n: int = DEFAULT_ITEMS, seed: int = 0) -> list[str]:
    """Generate n unique random strings, reproducible for a given seed."""
    rng = random.Random(seed)
    # Random 128-bit UUIDs; duplicates are practically impossible
    return [str(uuid.UUID(int=rng.getrandbits(128), version=4)) for _ in range(n)]


def build_split(
    words: Sequence[str],
    false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE,
    hashes: HashPair = DEFAULT_HASH_PAIR,
) -> tuple[BloomFilter, list[str], list[str]]:
    """Create deterministic 80/20 split and build the bloom filter.

    Returns (bloom_filter, training_words, test_words).
    """
    split = int(len(words) * TRAIN_FRACTION)
    train = list(words[:split])
    test = list(words[split:])

    bloom = BloomFilter.new(len(train), false_positive_rate, hashes=hashes)
    for word in train:
        bloom.add_string(word)

    return bloom, train, test


def check_membership(bloom: BloomFilter, train: list[str]) -> list[str]:
    """Verify all training items are present. Returns the missing ones."""
    print("CHECK A: Membership on training set")
    missing = [w for w in train if not bloom.contains_string(w)]
    print(f"  Training items: {len(train)}")
    print(f"  Missing after insertion: {len(missing)} (expected 0)")
    if missing:
        print(f"  Example missing: {missing[:5]}")
    print()
    return missing


def check_false_positive_on_heldout(
    bloom: BloomFilter, train: list[str], test: list[str]
) -> Optional[float]:
    """Measure empirical false positive rate on the held-out set."""
    print("CHECK B: False positive rate on held-out items")
    train_set = set(train)
    test_filtered = [w for w in test if w not in train_set]

    if not test_filtered:
        print("  No held-out items available for testing.")
        print()
        return None

    false_positives = sum(1 for w in test_filtered if bloom.contains_string(w))
    fpr = false_positives / len(test_filtered)

    print(f"  Held-out items: {len(test_filtered)}")
    print(f"  False positives: {false_positives}")
    print(f"  Empirical FPR: {fpr:.6f} ({fpr*100:.4f}%)")
    print(f"  Estimated FPR from fill: {bloom.estimated_false_positive_rate:.6f}")
    print()
    return fpr


def check_collision_analysis(
    bloom: BloomFilter, train: list[str], test: list[str]
) -> Optional[float]:
    """Measure the positive rate on small edits of held-out items."""
    print("CHECK C: Collision analysis with simple modifications of held-out items")
    modifications = []
    for word in test[:500]:
        modifications.append(word + "x")
        if len(word) > 1:
            modifications.append(word[:-1] + "z")
        modifications.append("x" + word)

    # Drop variants that happen to be real items
    known = set(train) | set(test)
    modifications = [m for m in modifications if m not in known]

    if not modifications:
        print("  No modifications available for testing.")
        print()
        return None

    false_positives = sum(1 for m in modifications if bloom.contains_string(m))
    rate = false_positives / len(modifications)

    print(f"  Variants tested: {len(modifications)}")
    print(f"  False positives from variants: {false_positives}")
    print(f"  Collision rate: {rate:.6f} ({rate*100:.4f}%)")
    print()
    return rate


def show_properties(bloom: BloomFilter, train: list[str]) -> dict:
    """Display filter memory and configuration properties."""
    print("CHECK D: Filter properties")
    bytes_len = len(bloom.bit_array)
    per_item = bytes_len / len(train) if train else 0.0

    print(f"  Filter size (bits): {bloom.size}")
    print(f"  Filter size (bytes): {bytes_len}")
    print(f"  Filter size (MB): {bytes_len / (1024 * 1024):.2f}")
    print(f"  Number of hash functions: {bloom.num_hashes}")
    print(f"  Fill rate: {bloom.fill_rate:.4f}")
    print(f"  Items inserted: {len(train)}")
    print(f"  Bytes per item: {per_item:.4f}")
    print()

    return {
        "bits": bloom.size,
        "bytes": bytes_len,
        "num_hashes": bloom.num_hashes,
        "fill_rate": bloom.fill_rate,
        "bytes_per_item": per_item,
    }


def benchmark_performance(
    bloom: BloomFilter, train: list[str], test: list[str], query_ops: int = QUERY_OPS
) -> dict:
    """Measure insertion and query throughput (ops/sec) on a fresh filter."""
    print("CHECK E: Performance benchmarking")

    bench_filter = BloomFilter.new_mk(bloom.size, bloom.num_hashes, hashes=bloom.hashes)
    encoded_train = [w.encode("utf-8") for w in train]

    start_time = time.perf_counter()
    for value in encoded_train:
        bench_filter.add(value)
    insert_time = time.perf_counter() - start_time
    insert_ops = len(encoded_train) / insert_time if insert_time > 0 else float("inf")
    print(f"    - Inserted {len(encoded_train)} items in {insert_time:.4f} sec")
    print(f"    - Insertion throughput: {insert_ops:,.0f} ops/sec")

    queries = [w.encode("utf-8") for w in test] or encoded_train
    repeats = (query_ops // len(queries)) + 1 if queries else 0
    large_query_set = (queries * repeats)[:query_ops]

    start_time = time.perf_counter()
    for value in large_query_set:
        bench_filter.contains(value)
    query_time = time.perf_counter() - start_time
    query_ops_per_sec = len(large_query_set) / query_time if query_time > 0 else float("inf")
    print(f"    - Performed {len(large_query_set)} queries in {query_time:.4f} sec")
    print(f"    - Query throughput: {query_ops_per_sec:,.0f} ops/sec")
    print()

    return {
        "insert_count": len(encoded_train),
        "insert_time": insert_time,
        "insert_ops_per_sec": insert_ops,
        "query_count": len(large_query_set),
        "query_time": query_time,
        "query_ops_per_sec": query_ops_per_sec,
    }


def compare_hash_pairs(fnv_metrics: dict, murmur_metrics: dict) -> None:
    """Print a compact side-by-side comparison of two metric dicts."""

    def fmt(val):
        if val is None:
            return "N/A"
        if isinstance(val, float):
            if val == float("inf"):
                return "inf"
            if abs(val) >= 1000:
                return f"{val:,.0f}"
            return f"{val:,.4f}"
        return str(val)

    def pct_change(a, b):
        if a is None or b is None or a == 0 or a == float("inf"):
            return None
        return (b - a) / a * 100

    print(f"{'Metric':<36}{'FNV-1a/CRC-32':>18}{'Murmur3/xxHash':>18}{'Diff (%)':>14}")
    print("-" * 86)

    rows = [
        ("Empirical FPR", "fpr"),
        ("Collision rate", "collision_rate"),
        ("Insertion Throughput (ops/sec)", "insert_ops_per_sec"),
        ("Query Throughput (ops/sec)", "query_ops_per_sec"),
    ]
    for name, key in rows:
        a, b = fnv_metrics.get(key), murmur_metrics.get(key)
        diff = pct_change(a, b)
        diff_str = f"{diff:+.2f}%" if diff is not None else "N/A"
        print(f"{name:<36}{fmt(a):>18}{fmt(b):>18}{diff_str:>14}")
    print()


def run_suite(
    words: Sequence[str],
    false_positive_rate: float,
    hashes: HashPair,
    benchmark: bool = True,
    query_ops: int = QUERY_OPS,
) -> dict:
    """Run all checks for one hash pair and return the collected metrics."""
    bloom, train, test = build_split(words, false_positive_rate, hashes)

    metrics = {"missing": len(check_membership(bloom, train))}
    metrics["fpr"] = check_false_positive_on_heldout(bloom, train, test)
    metrics["collision_rate"] = check_collision_analysis(bloom, train, test)
    metrics.update(show_properties(bloom, train))
    if benchmark:
        metrics.update(benchmark_performance(bloom, train, test, query_ops))
    return metrics


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Empirical Bloom filter validation")
    parser.add_argument("--items", type=int, default=DEFAULT_ITEMS,
                        help="number of synthetic items to generate")
    parser.add_argument("--rate", type=float, default=DEFAULT_FALSE_POSITIVE_RATE,
                        help="target false positive rate")
    parser.add_argument("--words", type=Path, default=None,
                        help="text file of tokens to use instead of synthetic data")
    parser.add_argument("--seed", type=int, default=0,
                        help="seed for synthetic data")
    parser.add_argument("--no-benchmark", action="store_true",
                        help="skip throughput measurements")
    return parser.parse_args(argv)


def run_all(argv: Optional[Sequence[str]] = None) -> dict:
    """Run the suite for both hash pairs and print a comparison."""
    args = parse_args(argv)

    if args.words is not None:
        words = load_words(args.words)
    else:
        print(f"Generating {args.items} synthetic items...")
        words = generate_synthetic_data(args.items, args.seed)
    print(f"Full dataset unique items: {len(words)}")
    print()

    results = {}
    for label, hashes in (("FNV-1a/CRC-32", DEFAULT_HASH_PAIR),
                          ("Murmur3/xxHash", MURMUR_XXHASH_PAIR)):
        print("=" * 60)
        print(f"Running {label} Bloom filter suite (80/20 split, p={args.rate})")
        print("=" * 60)
        print()
        results[label] = run_suite(words, args.rate, hashes, benchmark=not args.no_benchmark)

    print("=" * 60)
    print("COMPARISON: Hash pair summary")
    print("=" * 60)
    compare_hash_pairs(results["FNV-1a/CRC-32"], results["Murmur3/xxHash"])
    return results


if __name__ == "__main__":
    run_all()
