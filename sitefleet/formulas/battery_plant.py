"""Battery plant formulas: capacity, runtime and float voltage."""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

# Lead-acid cells are nominally 2 V each
CELL_VOLTAGE = 2.0
# Reference temperature for float voltage compensation (°C)
COMPENSATION_REFERENCE_TEMP = 25.0
# Half-width of the nominal float band as a fraction of the target
FLOAT_TOLERANCE = 0.01

# Site attributes each runtime threshold function matches on
RUNTIME_THRESHOLD_KEYS: dict[str, tuple[str, ...]] = {
    "standard": ("has_generator", "location_type"),
    "transmission": ("has_generator", "location_type", "transmission_config"),
}


@dataclass(frozen=True)
class FloatVoltageRanges:
    """Acceptable plant float voltage bands."""

    target: float
    nominal_low: float
    nominal_high: float
    critical_low: float
    critical_high: float


def calc_capacity(string_capacities: Iterable[float | None]) -> float:
    """Parallel strings add: plant capacity is the sum of string capacities."""
    return float(sum(capacity for capacity in string_capacities if capacity))


def calc_runtime(
    actual_capacity: float | None,
    reference_voltage: float,
    load: float | None,
    voltage: float | None,
    degradation_multiplier: float = 1.0,
) -> float:
    """Estimated backup time in hours.

    Stored energy is ``actual_capacity`` amp-hours at ``reference_voltage``;
    the draw is ``load`` amps at the measured ``voltage``. An idle plant runs
    indefinitely.
    """
    if not actual_capacity:
        return 0.0
    if not load or not voltage or load <= 0:
        return math.inf
    return actual_capacity * reference_voltage / (load * voltage) * degradation_multiplier


def find_runtime_status(runtime: float | None, thresholds: Sequence[float] | None) -> int:
    """Count the minimum-runtime thresholds that ``runtime`` falls short of."""
    if runtime is None or not thresholds:
        return 0
    return sum(1 for threshold in thresholds if runtime < threshold)


def find_runtime_thresholds(
    function_name: str,
    threshold_table: Sequence[Mapping[str, Any]],
    site_info: Mapping[str, Any],
) -> list[float]:
    """Pick the runtime thresholds row matching the site's attributes.

    Raises:
        ValueError: unknown threshold function.
        LookupError: no row matches.
    """
    keys = RUNTIME_THRESHOLD_KEYS.get(function_name)
    if keys is None:
        raise ValueError(f"Unknown runtime threshold function: {function_name}")

    for row in threshold_table:
        if all(row.get(key) == site_info.get(key) for key in keys):
            return [float(t) for t in row.get("thresholds", [])]

    raise LookupError(
        f"No runtime thresholds for {', '.join(f'{k}={site_info.get(k)!r}' for k in keys)}"
    )


def calc_float_voltage_per_jar(
    temperature: float | None,
    thermal_probe: bool,
    nominal_vpc_voltage: float,
    comp_volt_per_celsius: float,
    block_voltage: float | None,
) -> float:
    """Target float voltage for one battery block.

    With a thermal probe the rectifiers compensate the per-cell float voltage
    by ``comp_volt_per_celsius`` for every degree away from 25 °C.
    """
    cells = (block_voltage or CELL_VOLTAGE) / CELL_VOLTAGE
    vpc = nominal_vpc_voltage
    if thermal_probe and temperature is not None:
        vpc += comp_volt_per_celsius * (temperature - COMPENSATION_REFERENCE_TEMP)
    return vpc * cells


def calc_nominal_float_voltage_ranges(
    float_voltage_per_block: float,
    block_voltage: float | None,
    plant_voltage: float,
    critical_float_mod: float = 1.0,
) -> FloatVoltageRanges:
    """Scale the per-block target to the plant bus and build the bands."""
    blocks = max(round(plant_voltage / (block_voltage or CELL_VOLTAGE)), 1)
    target = float_voltage_per_block * blocks
    nominal = target * FLOAT_TOLERANCE
    critical = target * FLOAT_TOLERANCE * (1 + critical_float_mod)
    return FloatVoltageRanges(
        target=target,
        nominal_low=target - nominal,
        nominal_high=target + nominal,
        critical_low=target - critical,
        critical_high=target + critical,
    )


def find_float_voltage_status(ranges: FloatVoltageRanges, voltage: float | None) -> int:
    """0 inside the nominal band, 1 inside the critical band, 2 outside."""
    if voltage is None:
        return 0
    if ranges.nominal_low <= voltage <= ranges.nominal_high:
        return 0
    if ranges.critical_low <= voltage <= ranges.critical_high:
        return 1
    return 2


def find_primary_battery_type_id(
    strings: Sequence[Mapping[str, Any]],
    batteries: Sequence[Any],
) -> str | None:
    """The battery type most blocks in ``strings`` belong to.

    A block's own ``battery_type_id`` wins over its string's ``batteryType``.
    Ties go to the type with the most recently manufactured block.
    """
    by_id = {battery.id: battery for battery in batteries}
    counts: Counter[str] = Counter()
    newest: dict[str, datetime] = {}

    for string in strings:
        for battery_id in string.get("batteries", []):
            battery = by_id.get(battery_id)
            type_id = (battery.battery_type_id if battery else None) or string.get("batteryType")
            if not type_id:
                continue
            counts[type_id] += 1
            made = battery.manufacturing_date if battery else None
            if made is not None and (type_id not in newest or made > newest[type_id]):
                newest[type_id] = made

    if not counts:
        return None

    return max(
        counts,
        key=lambda type_id: (
            counts[type_id],
            newest[type_id].timestamp() if type_id in newest else float("-inf"),
        ),
    )
