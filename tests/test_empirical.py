"""Tests for the empirical validation harness and example script."""

import pytest

from bloomflt import empirical, examples
from bloomflt.bloom_filter import calc_optimal_mk
from bloomflt.hash_functions import MURMUR_XXHASH_PAIR


@pytest.fixture
def words():
    return empirical.generate_synthetic_data(2000, seed=7)


def test_generate_synthetic_data_is_unique_and_reproducible(words):
    assert len(set(words)) == 2000
    assert empirical.generate_synthetic_data(2000, seed=7) == words
    assert empirical.generate_synthetic_data(2000, seed=8) != words


def test_load_words_normalizes_and_deduplicates(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("Apple banana\napple -- CHERRY\n\n", encoding="utf-8")

    assert empirical.load_words(path) == ["apple", "banana", "cherry"]


def test_load_words_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        empirical.load_words(tmp_path / "missing.txt")


def test_build_split(words):
    bloom, train, test = empirical.build_split(words, 0.01)

    assert len(train) == 1600
    assert len(test) == 400
    assert train + test == words
    assert (bloom.m, bloom.k) == calc_optimal_mk(1600, 0.01)
    assert all(bloom.contains_string(w) for w in train)


def test_build_split_with_alternate_hashes(words):
    bloom, _, _ = empirical.build_split(words, 0.01, MURMUR_XXHASH_PAIR)
    assert bloom.hashes is MURMUR_XXHASH_PAIR


def test_checks_report_metrics(words, capsys):
    bloom, train, test = empirical.build_split(words, 0.01)

    assert empirical.check_membership(bloom, train) == []
    fpr = empirical.check_false_positive_on_heldout(bloom, train, test)
    assert 0.0 <= fpr <= 0.05
    rate = empirical.check_collision_analysis(bloom, train, test)
    assert 0.0 <= rate <= 0.05
    props = empirical.show_properties(bloom, train)
    assert props["bits"] == bloom.m
    assert props["num_hashes"] == bloom.k

    out = capsys.readouterr().out
    assert "Missing after insertion: 0 (expected 0)" in out
    assert "Empirical FPR" in out


def test_heldout_check_without_test_items(words):
    bloom, train, _ = empirical.build_split(words, 0.01)
    assert empirical.check_false_positive_on_heldout(bloom, train, []) is None
    assert empirical.check_collision_analysis(bloom, train, []) is None


def test_benchmark_performance(words):
    bloom, train, test = empirical.build_split(words, 0.01)
    metrics = empirical.benchmark_performance(bloom, train, test, query_ops=1000)

    assert metrics["insert_count"] == len(train)
    assert metrics["query_count"] == 1000
    assert metrics["insert_ops_per_sec"] > 0
    assert metrics["query_ops_per_sec"] > 0


def test_compare_hash_pairs_prints_table(capsys):
    empirical.compare_hash_pairs(
        {"fpr": 0.01, "insert_ops_per_sec": 2000.0},
        {"fpr": 0.02, "insert_ops_per_sec": float("inf")},
    )
    out = capsys.readouterr().out
    assert "Empirical FPR" in out
    assert "+100.00%" in out
    assert "inf" in out


def test_run_all(capsys):
    results = empirical.run_all(["--items", "1000", "--seed", "3", "--no-benchmark"])

    assert set(results) == {"FNV-1a/CRC-32", "Murmur3/xxHash"}
    for metrics in results.values():
        assert metrics["missing"] == 0
        assert "query_ops_per_sec" not in metrics
    assert "COMPARISON" in capsys.readouterr().out


def test_run_all_with_word_file(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("\n".join(f"word{i}" for i in range(200)), encoding="utf-8")

    results = empirical.run_all(["--words", str(path), "--no-benchmark"])
    assert results["FNV-1a/CRC-32"]["missing"] == 0


def test_example_output(capsys):
    examples.main()
    assert capsys.readouterr().out == "The set now has 'value1'.\nThe set now has ID 123.\n"
