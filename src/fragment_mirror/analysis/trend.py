"""
Linear trend calculation for growth detection.

Fits an ordinary least-squares line of a metric over fragment index.
"""

import logging
import math
from dataclasses import dataclass
from typing import Sequence

logger = logging.getLogger(__name__)


@dataclass
class Trend:
    """
    Attributes:
        slope: Least-squares slope of value over index
        correlation: Absolute Pearson correlation (0 when undefined)
    """

    slope: float
    correlation: float


def calculate_trend(values: Sequence[float]) -> Trend:
    """
    Calculate the slope and correlation magnitude of values over their index.

    Args:
        values: Metric values in time order

    Returns:
        Trend with slope 0 and correlation 0 for fewer than two values, and
        correlation 0 whenever either variance term is zero
    """
    n = len(values)
    if n < 2:
        return Trend(slope=0.0, correlation=0.0)

    mean_x = (n - 1) / 2
    mean_y = sum(values) / n

    numerator = 0.0
    denominator_x = 0.0
    denominator_y = 0.0
    for i, value in enumerate(values):
        delta_x = i - mean_x
        delta_y = value - mean_y
        numerator += delta_x * delta_y
        denominator_x += delta_x * delta_x
        denominator_y += delta_y * delta_y

    slope = numerator / denominator_x if denominator_x else 0.0

    denominator = math.sqrt(denominator_x * denominator_y)
    correlation = abs(numerator / denominator) if denominator else 0.0

    logger.debug(f"Trend over {n} values: slope={slope:.3f}, correlation={correlation:.3f}")

    return Trend(slope=slope, correlation=correlation)
