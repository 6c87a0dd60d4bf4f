"""Tests for linear trend calculation."""

import pytest

from fragment_mirror.analysis.trend import calculate_trend


def test_strictly_increasing():
    trend = calculate_trend([1, 2, 3, 4, 5, 6])

    assert trend.slope == pytest.approx(1.0)
    assert trend.correlation == pytest.approx(1.0)


def test_constant_sequence():
    """Zero variance gives slope 0 and correlation 0 rather than NaN."""
    trend = calculate_trend([5, 5, 5, 5, 5])

    assert trend.slope == 0.0
    assert trend.correlation == 0.0


def test_decreasing_correlation_is_magnitude():
    trend = calculate_trend([9, 7, 5, 3])

    assert trend.slope == pytest.approx(-2.0)
    assert trend.correlation == pytest.approx(1.0)


def test_too_few_values():
    assert calculate_trend([]).slope == 0.0
    assert calculate_trend([4]).correlation == 0.0


def test_clarity_example():
    trend = calculate_trend([3, 4, 5, 7, 9])

    assert trend.slope == pytest.approx(1.5)
    assert 0.9 < trend.correlation <= 1.0
