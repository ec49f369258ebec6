"""Audit log item model."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from sitefleet.database import Base, utc_now

SERIAL_NUMBER_LOG_TYPE = "serial-number"


class LogItem(Base):
    """A human-readable audit comment attached to a site and plant.

    ``comment_updates`` is a list of ``{"readingType", "prev", "new", "manual"}``.
    """

    __tablename__ = "log_items"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    submitter: Mapped[str | None] = mapped_column(String(255))
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, index=True)
    site_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    power_plant_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("power_plants.id", ondelete="SET NULL"),
    )
    type: Mapped[str | None] = mapped_column(String(50))
    comment_updates: Mapped[list] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=list)
