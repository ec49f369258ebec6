"""Site models: sites, their versioned configs, generators and user roles."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Double, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from sitefleet.database import Base, utc_now

LOCATION_TYPES = ("urban", "rural")


class Site(Base):
    """A physical site hosting one or more power plants."""

    __tablename__ = "sites"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    # External identifier used by field technicians
    site_num: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)

    # Display fields
    name: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(String(500))
    notes: Mapped[str | None] = mapped_column(Text)
    access_instructions: Mapped[str | None] = mapped_column(Text)

    # Geography
    location_type: Mapped[str | None] = mapped_column(String(20))  # urban or rural
    location: Mapped[dict | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"))
    latitude: Mapped[float | None] = mapped_column(Double)
    longitude: Mapped[float | None] = mapped_column(Double)
    region: Mapped[str | None] = mapped_column(String(100), index=True)

    # Denormalized pointer to the installed generator (no FK: generators reference sites)
    generator_id: Mapped[str | None] = mapped_column(String(36))

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
    )


class Generator(Base):
    """A backup generator. Removal stamps ``removal_date``; rows are never deleted."""

    __tablename__ = "generators"

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
    install_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    removal_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class SiteConfig(Base):
    """A dated version of a site's configuration."""

    __tablename__ = "site_configs"

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
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    is_current: Mapped[bool] = mapped_column(Boolean, default=False)
    generator_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("generators.id", ondelete="SET NULL"),
    )


class SiteUserAssociationType(Base):
    """A named role a user can hold on a site (e.g. primary-technician)."""

    __tablename__ = "site_user_association_types"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class SiteUserAssociation(Base):
    """Links a user to a site under a role."""

    __tablename__ = "site_user_associations"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    site_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    association_type_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("site_user_association_types.id", ondelete="CASCADE"),
        nullable=False,
    )
