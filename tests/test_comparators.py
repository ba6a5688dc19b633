import pytest

from evaluator.comparators import (
    available_comparators,
    exact_match,
    get_comparator,
    normalized_whitespace,
    numeric_close,
)


def test_exact_match_trims_outer_whitespace_only():
    assert exact_match("Result: 15\n", "Result: 15") is True
    assert exact_match("Result:15", "Result: 15") is False
    assert exact_match("result: 15", "Result: 15") is False


def test_normalized_whitespace_collapses_runs_per_line():
    assert normalized_whitespace("1  2\t3 \n4 5", "1 2 3\n4 5") is True
    assert normalized_whitespace("1 2\n3", "1 2 3") is False


def test_numeric_close_tolerates_float_noise():
    assert numeric_close("0.15000000000000002", "0.15") is True
    assert numeric_close("mean 2.5", "mean 2.50") is True
    assert numeric_close("0.2", "0.15") is False
    assert numeric_close("1 2", "1") is False
    assert numeric_close("mean 2.5", "avg 2.5") is False


def test_numeric_close_compares_non_finite_tokens_as_text():
    assert numeric_close("nan", "nan") is True
    assert numeric_close("nan", "1.0") is False


def test_registry_lookup():
    assert get_comparator("exact") is exact_match
    assert get_comparator("NUMERIC") is numeric_close
    assert available_comparators() == ["exact", "normalized_whitespace", "numeric"]
    with pytest.raises(ValueError, match="Unknown comparator 'fuzzy'"):
        _ = get_comparator("fuzzy")
