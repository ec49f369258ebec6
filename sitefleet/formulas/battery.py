"""Single battery block formulas."""

from collections.abc import Sequence

# Ambient temperature bands in °C: (low, high) inclusive
NOMINAL_TEMPERATURE_BAND = (10.0, 30.0)
WARNING_TEMPERATURE_BAND = (0.0, 40.0)


def calc_capacity(
    conductance_health: float | None,
    capacity_table: Sequence[Sequence[float]],
) -> float | None:
    """Estimate remaining capacity (%) from conductance health (%).

    ``capacity_table`` holds ``[health, capacity]`` points ascending by health.
    Values between points are linearly interpolated and values outside the
    table are clamped to its ends.
    """
    if conductance_health is None or not capacity_table:
        return None

    points = sorted((float(h), float(c)) for h, c in capacity_table)
    if conductance_health <= points[0][0]:
        return points[0][1]
    if conductance_health >= points[-1][0]:
        return points[-1][1]

    for (h0, c0), (h1, c1) in zip(points, points[1:]):
        if h0 <= conductance_health <= h1:
            if h1 == h0:
                return c1
            return c0 + (c1 - c0) * (conductance_health - h0) / (h1 - h0)
    return points[-1][1]


def find_temp_status(temperature: float | None) -> int:
    """Classify ambient temperature: 0 nominal, 1 warning, 2 critical."""
    if temperature is None:
        return 0
    low, high = NOMINAL_TEMPERATURE_BAND
    if low <= temperature <= high:
        return 0
    low, high = WARNING_TEMPERATURE_BAND
    if low <= temperature <= high:
        return 1
    return 2
