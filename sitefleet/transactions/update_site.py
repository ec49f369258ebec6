"""The update-site transaction.

One request may touch a site, one of its plants and a routine reading, battery
serial numbers, the backup generator and the site config history. The
transaction stages every entity it may need, evaluates the plant condition on
the routine reading before and after the change, applies the requested updates
through an ordered pipeline of steps and records audit log items.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from sitefleet.config import get_settings
from sitefleet.database import utc_now
from sitefleet.formulas.power_plant import calc_utilization
from sitefleet.formulas.serial_number import get_sn_status, get_sns
from sitefleet.models import (
    Battery,
    CompanyConfig,
    Generator,
    LogItem,
    PlantBatteryInfo,
    PlantConfig,
    PlantRecord,
    PowerPlant,
    RectifierType,
    Routine,
    Site,
    SiteConfig,
    SiteUserAssociation,
    SiteUserAssociationType,
)
from sitefleet.models.log_item import SERIAL_NUMBER_LOG_TYPE
from sitefleet.models.site import LOCATION_TYPES
from sitefleet.schemas.updates import CommentUpdate, CompanyConfigSchema, UpdateSiteRequest
from sitefleet.transactions.base import Transaction, clone_version
from sitefleet.transactions.condition import (
    ConditionEvaluator,
    ReadingValues,
    compute_string_health,
)
from sitefleet.transactions.errors import ConditionEvaluationError, ResolutionError
from sitefleet.transactions.records import (
    amend_record_at_date,
    parse_timestamp,
    routine_reading,
    routine_reading_attr,
)

logger = logging.getLogger(__name__)

# Reading fields a technician enters directly; utilization is always derived
MANUAL_READING_TYPES = ("load", "voltage", "temperature")


@dataclass
class UpdateSiteData:
    """Entities staged for one update-site transaction."""

    site: Site
    site_power_plants: list[PowerPlant] = field(default_factory=list)
    site_plant_battery_infos: list[PlantBatteryInfo] = field(default_factory=list)
    site_plant_configs: list[PlantConfig] = field(default_factory=list)
    site_config: SiteConfig | None = None
    generator: Generator | None = None
    association_type: SiteUserAssociationType | None = None
    primary_techs: list[SiteUserAssociation] = field(default_factory=list)
    power_plant: PowerPlant | None = None
    plant_config: PlantConfig | None = None
    plant_record: PlantRecord | None = None
    routine: Routine | None = None
    batteries: list[Battery] = field(default_factory=list)


@dataclass(frozen=True)
class StepResult:
    """What a pipeline step contributes to the audit log."""

    comment_updates: tuple[CommentUpdate, ...] = ()
    serial_number_status: int | None = None


@dataclass
class UpdateContext:
    tx: "UpdateSiteTransaction"
    request: UpdateSiteRequest
    data: UpdateSiteData


Step = Callable[[UpdateContext], Awaitable[StepResult]]


# ----------------------------------------------------------------------
# Pipeline steps, applied in order
# ----------------------------------------------------------------------


async def apply_site_fields(ctx: UpdateContext) -> StepResult:
    """Overwrite the site's display fields that the request sets."""
    site = ctx.data.site
    updates = ctx.request.site_updates

    if updates.location_type in LOCATION_TYPES:
        site.location_type = updates.location_type
    if updates.name:
        site.name = updates.name
    if updates.coords:
        site.location = {"type": "point", "coordinates": list(updates.coords)}
        # Point coordinates are [longitude, latitude]
        if len(updates.coords) >= 2:
            site.longitude, site.latitude = updates.coords[0], updates.coords[1]
    if updates.address:
        site.address = updates.address
    if updates.access_instructions:
        site.access_instructions = updates.access_instructions
    if updates.notes:
        site.notes = updates.notes
    return StepResult()


async def assign_primary_tech(ctx: UpdateContext) -> StepResult:
    """Replace the site's primary technician with the requested user."""
    general = ctx.request.general_updates
    if not general or not general.primary_tech:
        return StepResult()

    data = ctx.data
    for association in data.primary_techs:
        await ctx.tx.remove(association)

    ctx.tx.create(
        SiteUserAssociation,
        user_id=general.primary_tech,
        site_id=data.site.id,
        association_type_id=data.association_type.id,
    )
    logger.info(f"Assigned primary technician {general.primary_tech} to site {data.site.site_num}")
    return StepResult()


async def resolve_rectifier_powers(tx: Transaction, plant_config: PlantConfig) -> list[float]:
    if not plant_config.rectifier_types:
        raise TypeError("rectifiers are required when adding readings")

    powers = []
    for rectifier_type_id in plant_config.rectifier_types:
        if rectifier_type_id:
            rectifier_type = await tx.get_strict(RectifierType, str(rectifier_type_id))
            powers.append(rectifier_type.power)
    return powers


async def apply_plant_and_routine(ctx: UpdateContext) -> StepResult:
    """Amend the reading history, the routine reading and the plant config."""
    data = ctx.data
    plant = data.power_plant
    plant_updates = ctx.request.plant_updates
    routine_updates = ctx.request.routine_updates
    if plant is None or plant_updates is None:
        return StepResult()

    plant_config = data.plant_config
    routine = data.routine
    comments: list[CommentUpdate] = []
    merged: dict[str, Any] | None = None

    reading_update = plant_updates.latest_reading or (
        routine_updates.latest_reading if routine_updates else None
    )
    if routine_updates and reading_update and plant_config and data.plant_record:
        supplied = reading_update.model_dump(exclude_unset=True)
        current = dict(routine_reading(routine) or {})
        effective = {**current, **supplied}

        rectifier_powers = await resolve_rectifier_powers(ctx.tx, plant_config)
        utilization = calc_utilization(effective.get("load"), effective.get("voltage"), rectifier_powers)

        amendments = {key: supplied[key] for key in MANUAL_READING_TYPES if key in supplied}
        amendments["utilization"] = utilization
        for reading_type, value in amendments.items():
            prev = amend_record_at_date(data.plant_record, reading_type, routine_updates.date, value)
            if value != prev:
                comments.append(
                    CommentUpdate(
                        reading_type=reading_type,
                        prev=prev,
                        new=value,
                        manual=reading_type in supplied,
                    )
                )

        merged = {**effective, "utilization": utilization}
    elif routine_updates and reading_update and not data.plant_record:
        logger.warning(f"Plant {plant.name} has no reading record; history left unchanged")

    if plant_config is not None:
        if plant_updates.transmission:
            plant_config.transmission_config = plant_updates.transmission
        if plant_updates.service_level:
            plant_config.service_level = plant_updates.service_level
        if plant_updates.technology_flags:
            plant_config.technology_flags = list(plant_updates.technology_flags)

    # The plant mirrors its newest reading; only touch it when this routine is that reading
    latest = plant.latest_reading or {}
    if (
        routine_updates
        and latest.get("date")
        and parse_timestamp(latest["date"]) == routine_updates.date
    ):
        if merged is not None:
            plant.latest_reading = {**latest, **merged, "date": latest["date"]}
        if plant_updates.transmission:
            plant.transmission = plant_updates.transmission
        if plant_updates.technology_flags:
            plant.technology_flags = list(plant_updates.technology_flags)

    if routine is not None and merged is not None:
        setattr(routine, routine_reading_attr(routine), merged)
        routine.edit_date = utc_now()

    return StepResult(comment_updates=tuple(comments))


async def apply_generator_lifecycle(ctx: UpdateContext) -> StepResult:
    """Add or retire the site's generator and start a new site config version."""
    action = ctx.request.site_updates.generator_action
    if not action:
        return StepResult()

    data = ctx.data
    site = data.site
    now = utc_now()
    generator_id: str | None = None

    if action == "remove":
        if data.generator is not None:
            data.generator.removal_date = now
        else:
            logger.warning(f"Site {site.site_num} has no generator to remove")
    elif action == "add":
        generator = ctx.tx.create(Generator, site_id=site.id, install_date=now)
        generator_id = generator.id
        # The new config version references the generator row
        await ctx.tx.session.flush()

    site.generator_id = generator_id

    previous = data.site_config
    if previous is not None:
        previous.is_current = False
        values = clone_version(previous, date=now, is_current=True, generator_id=generator_id)
    else:
        values = {"site_id": site.id, "date": now, "is_current": True, "generator_id": generator_id}
    ctx.tx.create(SiteConfig, **values)

    logger.info(f"Generator {action} on site {site.site_num}")
    return StepResult()


async def apply_battery_serials(ctx: UpdateContext) -> StepResult:
    """Overwrite serial numbers and score the resulting serial number set."""
    updates = ctx.request.battery_updates
    batteries = ctx.data.batteries
    if not batteries or updates is None or not updates.serial_numbers:
        return StepResult()

    by_id = {battery.id: battery for battery in batteries}
    for update in updates.serial_numbers:
        battery = by_id.get(update.battery_id)
        if battery is not None:
            battery.serial_number = update.serial_number

    supplemental = [
        await ctx.tx.read_strict(Battery, battery_id)
        for battery_id in dict.fromkeys(updates.batteries_ids_supplemental)
        if battery_id not in by_id
    ]
    status = get_sn_status(get_sns([*batteries, *supplemental]))
    return StepResult(serial_number_status=status)


async def propagate_region(ctx: UpdateContext) -> StepResult:
    """Copy the site's region onto every plant, battery info and plant config."""
    region = ctx.request.site_updates.region
    if not region:
        return StepResult()

    data = ctx.data
    data.site.region = region
    siblings = [
        *data.site_power_plants,
        *data.site_plant_battery_infos,
        *data.site_plant_configs,
    ]
    if data.power_plant is not None:
        siblings.append(data.power_plant)
    if data.plant_config is not None:
        siblings.append(data.plant_config)
    for entity in siblings:
        entity.region = region
    return StepResult()


PIPELINE: tuple[Step, ...] = (
    apply_site_fields,
    assign_primary_tech,
    apply_plant_and_routine,
    apply_generator_lifecycle,
    apply_battery_serials,
    propagate_region,
)


# ----------------------------------------------------------------------
# Transaction
# ----------------------------------------------------------------------


class UpdateSiteTransaction(Transaction[UpdateSiteRequest, UpdateSiteData, str]):
    """Applies one update-site request. Returns an empty string on success."""

    def __init__(
        self,
        session: AsyncSession,
        company_config: CompanyConfigSchema | None = None,
        steps: tuple[Step, ...] = PIPELINE,
    ):
        super().__init__(session)
        self._company_config = company_config
        self.steps = steps

    async def stage(self, request: UpdateSiteRequest) -> UpdateSiteData:
        site_updates = request.site_updates
        site_ids = await self.query_ids(Site, {"site_num": site_updates.site_num}, limit=1)
        if not site_ids:
            raise ResolutionError(
                f"Update Site Transaction: no site id found for {site_updates.site_num}"
            )

        site = await self.checkout(Site, site_ids[0])
        data = UpdateSiteData(site=site)

        plant_ids = await self.query_ids(PowerPlant, {"site_id": site.id})
        data.site_power_plants = [await self.checkout(PowerPlant, plant_id) for plant_id in plant_ids]

        if site_updates.generator_action:
            current = await self.find_by_date(
                SiteConfig, utc_now(), {"site_id": site.id, "is_current": True}
            )
            if current is not None:
                data.site_config = await self.checkout(SiteConfig, current.id)
            if (
                site_updates.generator_action == "remove"
                and data.site_config is not None
                and data.site_config.generator_id
            ):
                data.generator = await self.checkout(Generator, data.site_config.generator_id)

        if plant_ids:
            info_ids = await self.query_ids(PlantBatteryInfo, {"power_plant_id": plant_ids})
            data.site_plant_battery_infos = [
                await self.checkout(PlantBatteryInfo, info_id) for info_id in info_ids
            ]
            config_ids = await self.query_ids(PlantConfig, {"power_plant_id": plant_ids})
            data.site_plant_configs = [
                await self.checkout(PlantConfig, config_id) for config_id in config_ids
            ]

        general = request.general_updates
        if general and general.primary_tech:
            await self._stage_primary_techs(data)

        if request.plant_updates:
            await self._stage_plant(request, data)

        battery_updates = request.battery_updates
        if battery_updates and battery_updates.serial_numbers:
            battery_ids = dict.fromkeys(update.battery_id for update in battery_updates.serial_numbers)
            data.batteries = [await self.checkout(Battery, battery_id) for battery_id in battery_ids]

        return data

    async def _stage_primary_techs(self, data: UpdateSiteData) -> None:
        role = get_settings().primary_tech_association
        type_ids = await self.query_ids(SiteUserAssociationType, {"name": role}, limit=1)
        if not type_ids:
            raise ResolutionError(f'No association type "{role}" found.')

        data.association_type = await self.read_strict(SiteUserAssociationType, type_ids[0])
        tech_ids = await self.query_ids(
            SiteUserAssociation,
            {"site_id": data.site.id, "association_type_id": type_ids[0]},
        )
        data.primary_techs = [
            await self.checkout(SiteUserAssociation, tech_id) for tech_id in tech_ids
        ]

    async def _stage_plant(self, request: UpdateSiteRequest, data: UpdateSiteData) -> None:
        plant_num = request.plant_updates.plant_num
        plant_ids = await self.query_ids(
            PowerPlant, {"site_id": data.site.id, "name": plant_num}, limit=1
        )
        if not plant_ids:
            logger.warning(f"Site {data.site.site_num} has no plant {plant_num}")
            return

        plant_id = plant_ids[0]
        staged_plants = {plant.id: plant for plant in data.site_power_plants}
        data.power_plant = staged_plants.get(plant_id) or await self.checkout(PowerPlant, plant_id)

        routine_updates = request.routine_updates
        if routine_updates:
            selected = await self.find_by_date(
                PlantConfig, routine_updates.date, {"power_plant_id": plant_id}
            )
            config_id = selected.id if selected is not None else None
        else:
            config_ids = await self.query_ids(
                PlantConfig, {"power_plant_id": plant_id, "is_current": True}, limit=1
            )
            config_id = config_ids[0] if config_ids else None

        if config_id:
            staged_configs = {config.id: config for config in data.site_plant_configs}
            data.plant_config = staged_configs.get(config_id) or await self.checkout(
                PlantConfig, config_id
            )

        record_ids = await self.query_ids(PlantRecord, {"power_plant_id": plant_id}, limit=1)
        if record_ids:
            data.plant_record = await self.checkout(PlantRecord, record_ids[0])

        if routine_updates:
            routine = await self.find_by_date(
                Routine, routine_updates.date, {"power_plant_id": plant_id}
            )
            if routine is None:
                raise ResolutionError(
                    f"Update Site: no routine for plant {plant_num} on "
                    f"{routine_updates.date.isoformat()}"
                )
            data.routine = await self.checkout(Routine, routine.id)

    async def operation(self, request: UpdateSiteRequest, data: UpdateSiteData) -> str:
        ctx = UpdateContext(tx=self, request=request, data=data)
        evaluator = ConditionEvaluator(self)
        evaluates = bool(data.routine and request.routine_updates and data.plant_config)

        company_config = None
        if evaluates:
            try:
                company_config = await self.resolve_company_config(request)
            except ConditionEvaluationError as e:
                logger.warning(f"Skipping condition evaluation on site {data.site.site_num}: {e}")
                evaluates = False
            else:
                await self._backfill_capacity(data, company_config)

        prev_condition = await self._evaluate(evaluator, ctx, company_config) if evaluates else None

        comments: list[CommentUpdate] = []
        serial_number_status: int | None = None
        for step in self.steps:
            result = await step(ctx)
            comments.extend(result.comment_updates)
            if result.serial_number_status is not None:
                serial_number_status = result.serial_number_status

        new_condition = await self._evaluate(evaluator, ctx, company_config) if evaluates else None
        if prev_condition is not None and new_condition is not None and new_condition != prev_condition:
            comments.append(
                CommentUpdate(
                    reading_type="condition",
                    prev=str(prev_condition),
                    new=str(new_condition),
                    manual=False,
                )
            )

        self._emit_audit_log(request, data, comments, serial_number_status)
        return ""

    async def resolve_company_config(self, request: UpdateSiteRequest) -> CompanyConfigSchema:
        """Request-supplied config, else the injected one, else the current stored row."""
        if request.company_config is not None:
            return request.company_config
        if self._company_config is not None:
            return self._company_config

        config_ids = await self.query_ids(CompanyConfig, {"is_current": True}, limit=1)
        if not config_ids:
            raise ConditionEvaluationError("No current company config found")
        return CompanyConfigSchema.from_row(await self.read_strict(CompanyConfig, config_ids[0]))

    async def _backfill_capacity(
        self, data: UpdateSiteData, company_config: CompanyConfigSchema
    ) -> None:
        """Fill a routine reading that was saved without a capacity estimate."""
        reading = routine_reading(data.routine)
        if not reading or reading.get("actual_capacity") != 0:
            return

        health = await compute_string_health(self, data.plant_config, company_config)
        if health.actual_capacity:
            setattr(
                data.routine,
                routine_reading_attr(data.routine),
                {
                    **reading,
                    "actual_capacity": health.actual_capacity,
                    "worst_block_conductance_health": health.worst_block_conductance_health,
                },
            )

    async def _evaluate(
        self,
        evaluator: ConditionEvaluator,
        ctx: UpdateContext,
        company_config: CompanyConfigSchema,
    ) -> int | None:
        reading = routine_reading(ctx.data.routine)
        if not reading:
            return None
        return await evaluator.safe_evaluate(
            site=ctx.data.site,
            date=ctx.request.routine_updates.date,
            routine=ctx.data.routine,
            plant_config=ctx.data.plant_config,
            company_config=company_config,
            reading=ReadingValues.from_mapping(reading),
        )

    def _emit_audit_log(
        self,
        request: UpdateSiteRequest,
        data: UpdateSiteData,
        comments: list[CommentUpdate],
        serial_number_status: int | None,
    ) -> None:
        submitter = request.submitter or get_settings().default_submitter
        plant_id = data.power_plant.id if data.power_plant is not None else None

        if comments:
            date = data.routine.edit_date if data.routine and data.routine.edit_date else utc_now()
            self.create(
                LogItem,
                submitter=submitter,
                date=date,
                site_id=data.site.id,
                power_plant_id=plant_id,
                comment_updates=[comment.to_log() for comment in comments],
            )
            logger.info(f"Logged {len(comments)} change(s) on site {data.site.site_num}")

        if serial_number_status is not None:
            self.create(
                LogItem,
                submitter=submitter,
                date=utc_now(),
                site_id=data.site.id,
                power_plant_id=plant_id,
                type=SERIAL_NUMBER_LOG_TYPE,
                comment_updates=[
                    CommentUpdate(reading_type=SERIAL_NUMBER_LOG_TYPE, new=serial_number_status).to_log()
                ],
            )
            logger.info(f"Logged serial number update on site {data.site.site_num}")
