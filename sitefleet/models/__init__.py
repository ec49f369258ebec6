"""SQLAlchemy ORM models."""

from sitefleet.models.battery import Battery, BatteryRecord, BatteryType
from sitefleet.models.company_config import CompanyConfig
from sitefleet.models.log_item import LogItem
from sitefleet.models.power_plant import (
    PlantBatteryInfo,
    PlantConfig,
    PlantRecord,
    PowerPlant,
    PowerPlantType,
    RectifierType,
)
from sitefleet.models.routine import Routine, RoutineUpload
from sitefleet.models.site import (
    Generator,
    Site,
    SiteConfig,
    SiteUserAssociation,
    SiteUserAssociationType,
)

__all__ = [
    "Battery",
    "BatteryRecord",
    "BatteryType",
    "CompanyConfig",
    "Generator",
    "LogItem",
    "PlantBatteryInfo",
    "PlantConfig",
    "PlantRecord",
    "PowerPlant",
    "PowerPlantType",
    "RectifierType",
    "Routine",
    "RoutineUpload",
    "Site",
    "SiteConfig",
    "SiteUserAssociation",
    "SiteUserAssociationType",
]
