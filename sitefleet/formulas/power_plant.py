"""Rectifier utilization formulas."""

from collections.abc import Sequence


def calc_utilization(
    load: float | None,
    voltage: float | None,
    rectifier_powers: Sequence[float],
) -> float:
    """Percent of installed rectifier power drawn by the plant load.

    ``load`` is in amps, ``voltage`` in volts and ``rectifier_powers`` in watts.
    """
    total_power = sum(power for power in rectifier_powers if power)
    if not total_power or load is None or voltage is None:
        return 0.0
    return load * voltage / total_power * 100


def find_utilization_status(utilization: float | None, thresholds: Sequence[float]) -> int:
    """Count the ascending thresholds that ``utilization`` has reached."""
    if utilization is None:
        return 0
    return sum(1 for threshold in thresholds if utilization >= threshold)
