"""Battery models: blocks, their types and conductance history."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Float, ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from sitefleet.database import Base


class BatteryType(Base):
    """Nominal ratings for a battery block model."""

    __tablename__ = "battery_types"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    conductance: Mapped[float | None] = mapped_column(Float)  # Siemens, rated
    capacity: Mapped[float | None] = mapped_column(Float)  # Ah, rated
    nominal_vpc_voltage: Mapped[float | None] = mapped_column(Float)  # float volts per cell
    comp_volt_per_celsius: Mapped[float | None] = mapped_column(Float)  # V/°C per cell
    voltage: Mapped[float | None] = mapped_column(Float)  # block voltage


class BatteryRecord(Base):
    """Conductance readings for a battery, ``[{"date": iso, "reading": float}, ...]``."""

    __tablename__ = "battery_records"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    conductance: Mapped[list] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=list)


class Battery(Base):
    """A single battery block."""

    __tablename__ = "batteries"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    serial_number: Mapped[str | None] = mapped_column(String(100), index=True)
    manufacturing_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    battery_type_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("battery_types.id", ondelete="SET NULL"),
    )
    current_record_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("battery_records.id", ondelete="SET NULL"),
    )
