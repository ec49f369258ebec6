"""Plant operating condition: battery string health and the condition classifier."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sitefleet.database import as_utc
from sitefleet.formulas.battery import calc_capacity as calc_block_capacity, find_temp_status
from sitefleet.formulas.battery_plant import (
    calc_capacity as calc_plant_capacity,
    calc_float_voltage_per_jar,
    calc_nominal_float_voltage_ranges,
    calc_runtime,
    find_float_voltage_status,
    find_primary_battery_type_id,
    find_runtime_status,
    find_runtime_thresholds,
)
from sitefleet.formulas.battery_string import calc_actual_capacity
from sitefleet.formulas.power_plant import find_utilization_status
from sitefleet.formulas.utils import calc_percent, precision_round
from sitefleet.models import (
    Battery,
    BatteryRecord,
    BatteryType,
    PlantConfig,
    PowerPlantType,
    Routine,
    RoutineUpload,
    Site,
    SiteConfig,
)
from sitefleet.schemas.updates import CompanyConfigSchema
from sitefleet.transactions.base import Transaction
from sitefleet.transactions.errors import ConditionEvaluationError, TransactionError

logger = logging.getLogger(__name__)

OVERRIDE_WARN = 1
OVERRIDE_CRITICAL = 2


@dataclass(frozen=True)
class ReadingValues:
    """The six scalar metrics the classifier consumes."""

    load: float | None = None
    voltage: float | None = None
    temperature: float | None = None
    utilization: float | None = None
    actual_capacity: float | None = None
    worst_block_conductance_health: float | None = None

    @classmethod
    def from_mapping(cls, reading: Mapping[str, Any]) -> "ReadingValues":
        return cls(
            load=reading.get("load"),
            voltage=reading.get("voltage"),
            temperature=reading.get("temperature"),
            utilization=reading.get("utilization"),
            actual_capacity=reading.get("actual_capacity"),
            worst_block_conductance_health=reading.get("worst_block_conductance_health"),
        )


@dataclass(frozen=True)
class StringHealth:
    actual_capacity: float
    worst_block_conductance_health: float | None


async def compute_string_health(
    tx: Transaction,
    plant_config: PlantConfig,
    company_config: CompanyConfigSchema,
) -> StringHealth:
    """Capacity and worst block health from each block's latest conductance.

    A string is as healthy as its weakest block: its remaining capacity comes
    from the lowest block conductance health in it. Plant capacity is the sum
    over strings.
    """
    string_capacities: list[float] = []
    worst_health: float | None = None

    for string in plant_config.strings or []:
        battery_type = await tx.read_strict(BatteryType, string["batteryType"])
        string_worst: float | None = None

        for battery_id in string.get("batteries", []):
            battery = await tx.read_strict(Battery, battery_id)
            if not battery.current_record_id:
                continue
            record = await tx.read_strict(BatteryRecord, battery.current_record_id)
            if not record.conductance:
                continue
            conductance = record.conductance[-1]["reading"]
            health = (
                calc_percent(conductance, battery_type.conductance)
                if battery_type.conductance
                else 0.0
            )
            if string_worst is None or health < string_worst:
                string_worst = health

        if string_worst is None:
            continue
        if worst_health is None or string_worst < worst_health:
            worst_health = string_worst

        capacity_pct = calc_block_capacity(string_worst, company_config.battery_capacity_table)
        if capacity_pct is not None and battery_type.capacity:
            string_capacities.append(calc_actual_capacity(capacity_pct, battery_type.capacity))

    return StringHealth(
        actual_capacity=calc_plant_capacity(string_capacities),
        worst_block_conductance_health=worst_health,
    )


class ConditionEvaluator:
    """Classifies a plant's operating condition for one reading.

    The condition is the worst of the manual override, runtime, utilization,
    float voltage and temperature statuses: 0 is nominal, higher is worse.
    """

    def __init__(self, tx: Transaction):
        self.tx = tx

    async def safe_evaluate(self, **kwargs: Any) -> int | None:
        """``evaluate``, returning None when the condition cannot be computed."""
        try:
            return await self.evaluate(**kwargs)
        except TransactionError as e:
            logger.error(f"Could not evaluate plant condition: {e}")
            return None

    async def evaluate(
        self,
        *,
        site: Site,
        date: datetime,
        routine: Routine,
        plant_config: PlantConfig,
        company_config: CompanyConfigSchema,
        reading: ReadingValues,
    ) -> int:
        site_config = await self._site_config_at(site, date)

        if not plant_config.power_plant_type_id:
            raise ConditionEvaluationError(f"Plant config {plant_config.id} has no power plant type")
        plant_type = await self.tx.read_strict(PowerPlantType, plant_config.power_plant_type_id)

        runtime = calc_runtime(
            reading.actual_capacity,
            plant_type.voltage,
            reading.load,
            reading.voltage,
            company_config.runtime_degradation_multiplier,
        )
        override = await self._override(routine)

        float_voltage_status = 0
        battery_type = await self._primary_battery_type(routine, plant_config)
        if (
            plant_config.thermal_probe is not None
            and battery_type is not None
            and battery_type.nominal_vpc_voltage is not None
            and battery_type.comp_volt_per_celsius is not None
        ):
            per_block = calc_float_voltage_per_jar(
                reading.temperature,
                plant_config.thermal_probe,
                battery_type.nominal_vpc_voltage,
                battery_type.comp_volt_per_celsius,
                battery_type.voltage,
            )
            ranges = calc_nominal_float_voltage_ranges(
                per_block,
                battery_type.voltage,
                plant_type.voltage,
                company_config.critical_float_mod,
            )
            float_voltage_status = find_float_voltage_status(ranges, reading.voltage)

        thresholds = self._runtime_thresholds(site, site_config, plant_config, company_config)
        runtime_status = find_runtime_status(
            precision_round(runtime, company_config.runtime_precision),
            thresholds,
        )

        utilization_thresholds = (
            company_config.utilization_threshold_table[0]
            if company_config.utilization_threshold_table
            else []
        )
        utilization_status = find_utilization_status(
            precision_round(reading.utilization, company_config.utilization_precision),
            utilization_thresholds,
        )
        temperature_status = find_temp_status(reading.temperature)

        condition = max(
            override,
            runtime_status,
            utilization_status,
            float_voltage_status,
            temperature_status,
        )
        logger.debug(
            f"Condition {condition} for plant config {plant_config.id}: override={override} "
            f"runtime={runtime_status} utilization={utilization_status} "
            f"float={float_voltage_status} temperature={temperature_status}"
        )
        return condition

    async def _site_config_at(self, site: Site, date: datetime) -> SiteConfig:
        ids = await self.tx.query_ids(SiteConfig, {"site_id": site.id})
        configs = [await self.tx.read_strict(SiteConfig, config_id) for config_id in ids]
        configs.sort(key=lambda config: as_utc(config.date), reverse=True)
        target = as_utc(date)
        for config in configs:
            if as_utc(config.date) <= target:
                return config
        raise ConditionEvaluationError(f"No site config found for site {site.site_num}")

    async def _override(self, routine: Routine) -> int:
        if not routine.routine_upload_id:
            return 0
        upload = await self.tx.read_strict(RoutineUpload, routine.routine_upload_id)
        if not upload.condition_override:
            return 0
        return OVERRIDE_WARN if upload.condition_override == "warn" else OVERRIDE_CRITICAL

    async def _primary_battery_type(
        self, routine: Routine, plant_config: PlantConfig
    ) -> BatteryType | None:
        if not (plant_config.strings or plant_config.snmp_strings):
            return None

        # Manual routines were read off the standard strings; live plants report via SNMP
        if routine.routine_type == "routine" or plant_config.connection_status != "live":
            strings = plant_config.strings or []
        else:
            strings = plant_config.snmp_strings or []

        battery_ids = [battery_id for string in strings for battery_id in string.get("batteries", [])]
        batteries = [await self.tx.read_strict(Battery, battery_id) for battery_id in battery_ids]
        type_id = find_primary_battery_type_id(strings, batteries)
        if not type_id:
            return None
        return await self.tx.get_strict(BatteryType, type_id)

    @staticmethod
    def _runtime_thresholds(
        site: Site,
        site_config: SiteConfig,
        plant_config: PlantConfig,
        company_config: CompanyConfigSchema,
    ) -> list[float]:
        if plant_config.optimal_runtime_thresholds_override:
            return list(plant_config.optimal_runtime_thresholds_override)
        try:
            return find_runtime_thresholds(
                company_config.optimal_runtime_function_name,
                company_config.runtime_threshold_table,
                {
                    "has_generator": bool(site_config.generator_id),
                    "location_type": site.location_type,
                    "transmission_config": plant_config.transmission_config,
                },
            )
        except (LookupError, ValueError) as e:
            raise ConditionEvaluationError(str(e)) from e
