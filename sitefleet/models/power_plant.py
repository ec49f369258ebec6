"""Power plant models: plants, their types, versioned configs and reading history."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from sitefleet.database import Base, utc_now


class PowerPlantType(Base):
    """A plant model with its reference (nominal bus) voltage."""

    __tablename__ = "power_plant_types"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    voltage: Mapped[float] = mapped_column(Float, nullable=False)
    model: Mapped[str | None] = mapped_column(String(100))


class RectifierType(Base):
    """A rectifier model and its rated output power in watts."""

    __tablename__ = "rectifier_types"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    power: Mapped[float] = mapped_column(Float, nullable=False)


class PowerPlant(Base):
    """A DC power plant installed at a site."""

    __tablename__ = "power_plants"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    site_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # The plant number technicians use, unique within a site
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    region: Mapped[str | None] = mapped_column(String(100))

    # Mirrored from the current PlantConfig for fast reads
    transmission: Mapped[str | None] = mapped_column(String(100))
    technology_flags: Mapped[list | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))

    # Embedded PlantReading, "date" stored as an ISO string
    latest_reading: Mapped[dict | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
    )


class PlantConfig(Base):
    """A dated version of a power plant's configuration.

    ``strings`` and ``snmp_strings`` hold the battery string topology as a list
    of ``{"batteryType": <id>, "batteries": [<battery id>, ...]}`` entries.
    """

    __tablename__ = "plant_configs"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    power_plant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("power_plants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    power_plant_type_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("power_plant_types.id", ondelete="SET NULL"),
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    is_current: Mapped[bool] = mapped_column(Boolean, default=False)
    region: Mapped[str | None] = mapped_column(String(100))

    strings: Mapped[list] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=list)
    snmp_strings: Mapped[list] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=list)
    rectifier_types: Mapped[list | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))

    transmission_config: Mapped[str | None] = mapped_column(String(100))
    service_level: Mapped[str | None] = mapped_column(String(100))
    technology_flags: Mapped[list | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))
    thermal_probe: Mapped[bool | None] = mapped_column(Boolean)
    optimal_runtime_thresholds_override: Mapped[list | None] = mapped_column(
        JSON().with_variant(JSONB, "postgresql")
    )
    connection_status: Mapped[str | None] = mapped_column(String(20))  # e.g. "live"


class PlantBatteryInfo(Base):
    """Per-plant battery summary, carrying the fleet-wide region field."""

    __tablename__ = "plant_battery_infos"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    power_plant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("power_plants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    region: Mapped[str | None] = mapped_column(String(100))
    date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class PlantRecord(Base):
    """Reading history for a plant.

    Each series is a list of ``[iso_timestamp, value]`` pairs with at most one
    value per timestamp.
    """

    __tablename__ = "plant_records"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    power_plant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("power_plants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    load: Mapped[list | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))
    voltage: Mapped[list | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))
    temperature: Mapped[list | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))
    utilization: Mapped[list | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))
