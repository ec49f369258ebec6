"""Shared fixtures: an in-memory database seeded with one small fleet."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import UTC, datetime  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from sitefleet.database import Base  # noqa: E402
from sitefleet.models import (  # noqa: E402
    Battery,
    BatteryRecord,
    BatteryType,
    CompanyConfig,
    PlantBatteryInfo,
    PlantConfig,
    PlantRecord,
    PowerPlant,
    PowerPlantType,
    RectifierType,
    Routine,
    Site,
    SiteConfig,
    SiteUserAssociation,
    SiteUserAssociationType,
)

CONFIG_DATE = datetime(2024, 1, 1, tzinfo=UTC)
ROUTINE_DATE = datetime(2024, 3, 1, tzinfo=UTC)
SITE_CONFIG_DATE = datetime(2023, 1, 1, tzinfo=UTC)


@pytest.fixture
async def engine():
    """A fresh in-memory SQLite engine with the full schema."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def fleet(session):
    """Seed and commit one urban site with two plants.

    Plant P1 draws 100 A at 54 V from 6 kW of rectifiers (90% utilization)
    with 400 Ah of batteries, which rates as condition 2.
    """
    company = CompanyConfig(
        id="company-1",
        date=CONFIG_DATE,
        is_current=True,
        runtime_degradation_multiplier=1.0,
        critical_float_mod=1.0,
        optimal_runtime_function_name="standard",
        runtime_threshold_table=[
            {"has_generator": False, "location_type": "urban", "thresholds": [4, 2]},
            {"has_generator": True, "location_type": "urban", "thresholds": [2, 1]},
            {"has_generator": False, "location_type": "rural", "thresholds": [8, 4]},
            {"has_generator": True, "location_type": "rural", "thresholds": [4, 2]},
        ],
        runtime_precision=1,
        utilization_precision=1,
        utilization_threshold_table=[[80, 90]],
        battery_capacity_table=[[0, 0], [50, 40], [100, 100]],
    )
    plant_type = PowerPlantType(id="ppt-48", name="48V plant", voltage=48.0, model="PS48")
    rectifier = RectifierType(id="rect-2k", name="R48-2000", power=2000.0)
    battery_type = BatteryType(
        id="bt-100",
        name="12V 100Ah",
        conductance=1000.0,
        capacity=100.0,
        nominal_vpc_voltage=2.25,
        comp_volt_per_celsius=-0.003,
        voltage=12.0,
    )

    site = Site(id="site-1", site_num="S-100", name="Hilltop", location_type="urban", region="north")
    site_config = SiteConfig(id="sc-1", site_id="site-1", date=SITE_CONFIG_DATE, is_current=True)
    association_type = SiteUserAssociationType(id="role-pt", name="primary-technician")
    old_tech = SiteUserAssociation(
        id="assoc-1", user_id="user-old", site_id="site-1", association_type_id="role-pt"
    )

    reading = {
        "load": 100.0,
        "voltage": 54.0,
        "temperature": 22.0,
        "utilization": 90.0,
        "actual_capacity": 400.0,
        "worst_block_conductance_health": 90.0,
    }
    plant = PowerPlant(
        id="plant-1",
        site_id="site-1",
        name="P1",
        region="north",
        latest_reading={**reading, "date": ROUTINE_DATE.isoformat()},
    )
    other_plant = PowerPlant(id="plant-2", site_id="site-1", name="P2", region="north")

    records = [
        BatteryRecord(id="rec-b1", conductance=[{"date": "2024-03-01T00:00:00+00:00", "reading": 900.0}]),
        BatteryRecord(id="rec-b2", conductance=[{"date": "2024-03-01T00:00:00+00:00", "reading": 700.0}]),
        BatteryRecord(id="rec-b3", conductance=[{"date": "2024-03-01T00:00:00+00:00", "reading": 950.0}]),
    ]
    batteries = [
        Battery(
            id=f"b{i}",
            serial_number=f"SN{i}",
            manufacturing_date=datetime(2022, i, 1, tzinfo=UTC),
            battery_type_id="bt-100",
            current_record_id=f"rec-b{i}",
        )
        for i in (1, 2, 3)
    ]

    old_config = PlantConfig(
        id="pc-old",
        power_plant_id="plant-1",
        power_plant_type_id="ppt-48",
        date=SITE_CONFIG_DATE,
        is_current=False,
        region="north",
        strings=[],
        snmp_strings=[],
        rectifier_types=["rect-2k"],
    )
    plant_config = PlantConfig(
        id="pc-1",
        power_plant_id="plant-1",
        power_plant_type_id="ppt-48",
        date=CONFIG_DATE,
        is_current=True,
        region="north",
        strings=[{"batteryType": "bt-100", "batteries": ["b1", "b2"]}],
        snmp_strings=[],
        rectifier_types=["rect-2k", "rect-2k", "rect-2k"],
        transmission_config="fiber",
        service_level="gold",
    )
    other_config = PlantConfig(
        id="pc-2",
        power_plant_id="plant-2",
        power_plant_type_id="ppt-48",
        date=CONFIG_DATE,
        is_current=True,
        region="north",
        strings=[],
        snmp_strings=[],
        rectifier_types=["rect-2k"],
    )
    battery_infos = [
        PlantBatteryInfo(id="pbi-1", power_plant_id="plant-1", region="north"),
        PlantBatteryInfo(id="pbi-2", power_plant_id="plant-2", region="north"),
    ]
    plant_record = PlantRecord(
        id="pr-1",
        power_plant_id="plant-1",
        load=[["2024-01-01T00:00:00+00:00", 95.0], ["2024-03-01T00:00:00+00:00", 100.0]],
        voltage=[["2024-01-01T00:00:00+00:00", 54.0], ["2024-03-01T00:00:00+00:00", 54.0]],
        temperature=[["2024-01-01T00:00:00+00:00", 21.0], ["2024-03-01T00:00:00+00:00", 22.0]],
        utilization=[["2024-01-01T00:00:00+00:00", 85.5], ["2024-03-01T00:00:00+00:00", 90.0]],
    )
    routine = Routine(
        id="routine-1",
        power_plant_id="plant-1",
        date=ROUTINE_DATE,
        routine_type="routine",
        plant_reading=dict(reading),
    )

    session.add_all(
        [
            company,
            plant_type,
            rectifier,
            battery_type,
            site,
            site_config,
            association_type,
            old_tech,
            plant,
            other_plant,
            *records,
            *batteries,
            old_config,
            plant_config,
            other_config,
            *battery_infos,
            plant_record,
            routine,
        ]
    )
    await session.commit()

    return SimpleNamespace(
        company=company,
        plant_type=plant_type,
        battery_type=battery_type,
        site=site,
        site_config=site_config,
        association_type=association_type,
        old_tech=old_tech,
        plant=plant,
        other_plant=other_plant,
        batteries=batteries,
        old_config=old_config,
        plant_config=plant_config,
        other_config=other_config,
        battery_infos=battery_infos,
        plant_record=plant_record,
        routine=routine,
    )
