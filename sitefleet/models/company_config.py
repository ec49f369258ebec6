"""Company-wide threshold and formula configuration."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from sitefleet.database import Base, utc_now


class CompanyConfig(Base):
    """A dated version of the company configuration; one row is current."""

    __tablename__ = "company_configs"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    is_current: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    runtime_degradation_multiplier: Mapped[float] = mapped_column(Float, default=1.0)
    critical_float_mod: Mapped[float] = mapped_column(Float, default=1.0)
    optimal_runtime_function_name: Mapped[str] = mapped_column(String(50), default="standard")
    # Rows of {"hasGenerator", "locationType", "transmissionConfig"?, "thresholds": [...]}
    runtime_threshold_table: Mapped[list] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=list)
    runtime_precision: Mapped[int] = mapped_column(Integer, default=1)
    utilization_precision: Mapped[int] = mapped_column(Integer, default=1)
    # List of ascending threshold lists; the first applies to plant utilization
    utilization_threshold_table: Mapped[list] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=list)
    # [[conductance health %, capacity %], ...] ascending by health
    battery_capacity_table: Mapped[list] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=list)
