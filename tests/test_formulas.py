"""Tests for the plant and battery formulas."""

import math
from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

from sitefleet.formulas.battery import calc_capacity as calc_block_capacity
from sitefleet.formulas.battery import find_temp_status
from sitefleet.formulas.battery_plant import (
    calc_capacity,
    calc_float_voltage_per_jar,
    calc_nominal_float_voltage_ranges,
    calc_runtime,
    find_float_voltage_status,
    find_primary_battery_type_id,
    find_runtime_status,
    find_runtime_thresholds,
)
from sitefleet.formulas.battery_string import calc_actual_capacity
from sitefleet.formulas.power_plant import calc_utilization, find_utilization_status
from sitefleet.formulas.serial_number import (
    SN_STATUS_DUPLICATE,
    SN_STATUS_MISSING,
    SN_STATUS_OK,
    get_sn_status,
    get_sns,
)
from sitefleet.formulas.utils import calc_percent, precision_round

CAPACITY_TABLE = [[0, 0], [50, 40], [100, 100]]


class TestPrecisionRound:
    """Tests for half-up rounding."""

    def test_rounds_half_up(self):
        """Halves round away from zero rather than to even."""
        assert precision_round(2.25, 1) == 2.3
        assert precision_round(0.5) == 1.0

    def test_passes_through_non_finite(self):
        """None and infinity are returned unchanged."""
        assert precision_round(None, 1) is None
        assert precision_round(math.inf, 1) == math.inf

    def test_percent_of_zero_total(self):
        """A zero total yields 0 instead of dividing by zero."""
        assert calc_percent(5, 0) == 0.0
        assert calc_percent(700, 1000) == pytest.approx(70.0)


class TestUtilization:
    """Tests for rectifier utilization."""

    def test_load_over_installed_power(self):
        """Utilization is load times voltage over total rectifier power."""
        assert calc_utilization(100, 54, [2000, 2000, 2000]) == pytest.approx(90.0)

    def test_no_rectifier_power(self):
        """No installed power yields zero utilization."""
        assert calc_utilization(100, 54, []) == 0.0

    def test_missing_load(self):
        """Missing load yields zero utilization."""
        assert calc_utilization(None, 54, [2000]) == 0.0

    def test_status_counts_reached_thresholds(self):
        """Each threshold reached raises the status by one."""
        assert find_utilization_status(72.0, [80, 90]) == 0
        assert find_utilization_status(80.0, [80, 90]) == 1
        assert find_utilization_status(90.0, [80, 90]) == 2
        assert find_utilization_status(None, [80, 90]) == 0


class TestBatteryFormulas:
    """Tests for block capacity and temperature status."""

    def test_capacity_interpolates(self):
        """Capacity is linearly interpolated between table points."""
        assert calc_block_capacity(70, CAPACITY_TABLE) == pytest.approx(64.0)

    def test_capacity_clamps(self):
        """Health outside the table is clamped to its ends."""
        assert calc_block_capacity(120, CAPACITY_TABLE) == 100.0
        assert calc_block_capacity(-5, CAPACITY_TABLE) == 0.0

    def test_capacity_without_table(self):
        """No table yields no estimate."""
        assert calc_block_capacity(70, []) is None

    def test_string_actual_capacity(self):
        """String capacity scales the rated capacity by the percentage."""
        assert calc_actual_capacity(64.0, 100.0) == pytest.approx(64.0)

    @pytest.mark.parametrize(
        ("temperature", "status"),
        [(None, 0), (22, 0), (5, 1), (35, 1), (-3, 2), (45, 2)],
    )
    def test_temperature_status(self, temperature, status):
        """Temperature bands map to nominal, warning and critical."""
        assert find_temp_status(temperature) == status


class TestRuntime:
    """Tests for runtime estimation and classification."""

    def test_runtime_hours(self):
        """Runtime is stored energy over drawn power."""
        assert calc_runtime(400, 48, 100, 54) == pytest.approx(3.5556, rel=1e-3)

    def test_runtime_degradation(self):
        """The degradation multiplier scales runtime."""
        assert calc_runtime(400, 48, 100, 54, 0.5) == pytest.approx(1.7778, rel=1e-3)

    def test_runtime_without_capacity(self):
        """No capacity means no runtime."""
        assert calc_runtime(0, 48, 100, 54) == 0.0

    def test_runtime_without_load(self):
        """An idle plant runs indefinitely."""
        assert calc_runtime(400, 48, 0, 54) == math.inf

    def test_runtime_status(self):
        """Each threshold the runtime falls short of raises the status."""
        assert find_runtime_status(4.4, [4, 2]) == 0
        assert find_runtime_status(3.6, [4, 2]) == 1
        assert find_runtime_status(0.6, [4, 2]) == 2
        assert find_runtime_status(math.inf, [4, 2]) == 0

    def test_plant_capacity_sums_strings(self):
        """Parallel strings add up, ignoring empty estimates."""
        assert calc_capacity([64.0, None, 36.0]) == 100.0


class TestRuntimeThresholds:
    """Tests for runtime threshold lookup."""

    TABLE = [
        {"has_generator": False, "location_type": "urban", "thresholds": [4, 2]},
        {"has_generator": True, "location_type": "urban", "thresholds": [2, 1]},
        {
            "has_generator": False,
            "location_type": "urban",
            "transmission_config": "fiber",
            "thresholds": [6, 3],
        },
    ]

    def test_standard_matches_generator_and_location(self):
        """The standard function ignores transmission."""
        site = {"has_generator": True, "location_type": "urban", "transmission_config": "fiber"}
        assert find_runtime_thresholds("standard", self.TABLE, site) == [2.0, 1.0]

    def test_transmission_matches_transmission_config(self):
        """The transmission function also matches transmission config."""
        site = {"has_generator": False, "location_type": "urban", "transmission_config": "fiber"}
        assert find_runtime_thresholds("transmission", self.TABLE, site) == [6.0, 3.0]

    def test_unknown_function(self):
        """Unknown function names raise ValueError."""
        with pytest.raises(ValueError, match="Unknown runtime threshold function"):
            find_runtime_thresholds("bogus", self.TABLE, {})

    def test_no_matching_row(self):
        """A site no row matches raises LookupError."""
        with pytest.raises(LookupError):
            find_runtime_thresholds(
                "standard", self.TABLE, {"has_generator": False, "location_type": "rural"}
            )


class TestFloatVoltage:
    """Tests for float voltage targets and bands."""

    def test_uncompensated_target(self):
        """Without a probe the target is the nominal per-cell voltage."""
        per_block = calc_float_voltage_per_jar(35, False, 2.25, -0.003, 12)
        assert per_block == pytest.approx(13.5)

    def test_compensated_target(self):
        """With a probe the per-cell voltage follows temperature."""
        per_block = calc_float_voltage_per_jar(35, True, 2.25, -0.003, 12)
        assert per_block == pytest.approx((2.25 - 0.03) * 6)

    def test_ranges_scale_to_plant(self):
        """Blocks in series scale the target to the plant bus."""
        ranges = calc_nominal_float_voltage_ranges(13.5, 12, 48, 1.0)
        assert ranges.target == pytest.approx(54.0)
        assert ranges.nominal_low == pytest.approx(53.46)
        assert ranges.critical_low == pytest.approx(52.92)

    def test_status_bands(self):
        """Voltage inside nominal, critical and outside both."""
        ranges = calc_nominal_float_voltage_ranges(13.5, 12, 48, 1.0)
        assert find_float_voltage_status(ranges, 54.0) == 0
        assert find_float_voltage_status(ranges, 53.0) == 1
        assert find_float_voltage_status(ranges, 52.0) == 2
        assert find_float_voltage_status(ranges, None) == 0


class TestPrimaryBatteryType:
    """Tests for picking a plant's primary battery type."""

    @staticmethod
    def _battery(battery_id, type_id, year):
        return SimpleNamespace(
            id=battery_id,
            battery_type_id=type_id,
            manufacturing_date=datetime(year, 1, 1, tzinfo=UTC),
        )

    def test_majority_type(self):
        """The type with the most blocks wins."""
        batteries = [
            self._battery("a", "old", 2020),
            self._battery("b", "old", 2020),
            self._battery("c", "new", 2023),
        ]
        strings = [{"batteryType": "old", "batteries": ["a", "b", "c"]}]
        assert find_primary_battery_type_id(strings, batteries) == "old"

    def test_tie_goes_to_newest(self):
        """On a tie the most recently manufactured type wins."""
        batteries = [self._battery("a", "old", 2020), self._battery("b", "new", 2023)]
        strings = [{"batteryType": "old", "batteries": ["a", "b"]}]
        assert find_primary_battery_type_id(strings, batteries) == "new"

    def test_falls_back_to_string_type(self):
        """Blocks without a type count toward their string's type."""
        strings = [{"batteryType": "bt", "batteries": ["x"]}]
        assert find_primary_battery_type_id(strings, []) == "bt"

    def test_no_blocks(self):
        """Empty strings yield no type."""
        assert find_primary_battery_type_id([], []) is None


class TestSerialNumbers:
    """Tests for serial number status."""

    def test_all_present_and_unique(self):
        assert get_sn_status(["SN1", "SN2"]) == SN_STATUS_OK

    def test_missing(self):
        """Blank or absent serial numbers are missing."""
        assert get_sn_status(["SN1", None]) == SN_STATUS_MISSING
        assert get_sn_status(["SN1", "  "]) == SN_STATUS_MISSING

    def test_duplicates_ignore_case_and_whitespace(self):
        """Duplicates are detected after normalization and outrank missing."""
        assert get_sn_status(["sn1 ", "SN1", None]) == SN_STATUS_DUPLICATE

    def test_get_sns(self):
        batteries = [SimpleNamespace(serial_number="A"), SimpleNamespace(serial_number=None)]
        assert get_sns(batteries) == ["A", None]
