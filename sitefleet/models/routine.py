"""Routine models for maintenance reading events."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from sitefleet.database import Base


class RoutineUpload(Base):
    """An uploaded routine sheet; may carry a manual condition override."""

    __tablename__ = "routine_uploads"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    condition_override: Mapped[str | None] = mapped_column(String(20))  # "warn" or other


class Routine(Base):
    """A maintenance or reading event for a plant on a date."""

    __tablename__ = "routines"

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
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    routine_type: Mapped[str | None] = mapped_column(String(50))  # "routine", "snmp", ...

    plant_reading: Mapped[dict | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))
    # Older routines stored their reading under this name
    latest_reading: Mapped[dict | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))

    edit_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    routine_upload_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("routine_uploads.id", ondelete="SET NULL"),
    )
