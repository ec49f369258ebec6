"""Schemas for the update-site request and its audit comments."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts both camelCase (client payloads) and snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SiteUpdates(CamelModel):
    """Site fields to change. Only truthy fields are applied."""

    site_num: str = Field(..., min_length=1)
    location_type: str | None = None
    name: str | None = None
    region: str | None = None
    coords: list[float] | None = None
    address: str | None = None
    generator_action: Literal["add", "remove"] | None = None
    access_instructions: str | None = None
    notes: str | None = None


class ReadingUpdate(CamelModel):
    """Instantaneous plant metrics supplied by a technician."""

    load: float | None = None
    voltage: float | None = None
    temperature: float | None = None
    utilization: float | None = None
    actual_capacity: float | None = None
    worst_block_conductance_health: float | None = None


class PlantUpdates(CamelModel):
    """Changes to one plant of the site, identified by its plant number."""

    plant_num: str = Field(..., min_length=1)
    latest_reading: ReadingUpdate | None = None
    transmission: str | None = None
    technology_flags: list[str] | None = None
    service_level: str | None = None


class RoutineUpdates(CamelModel):
    """Which routine (by date) the reading change amends."""

    date: datetime
    latest_reading: ReadingUpdate | None = None

    @field_validator("date")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Treat naive dates as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)


class SerialNumberUpdate(CamelModel):
    battery_id: str = Field(..., min_length=1)
    serial_number: str


class BatteryUpdates(CamelModel):
    """Serial number edits plus extra batteries to include in the status check."""

    serial_numbers: list[SerialNumberUpdate] = Field(default_factory=list)
    batteries_ids_supplemental: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "batteriesIdsSupplimental",
            "batteriesIdsSupplemental",
            "batteries_ids_supplemental",
        ),
    )


class GeneralUpdates(CamelModel):
    primary_tech: str | None = None


class CompanyConfigSchema(CamelModel):
    """Company-wide thresholds consumed by the condition evaluator."""

    runtime_degradation_multiplier: float = 1.0
    critical_float_mod: float = 1.0
    optimal_runtime_function_name: str = "standard"
    runtime_threshold_table: list[dict] = Field(default_factory=list)
    runtime_precision: int = 1
    utilization_precision: int = 1
    utilization_threshold_table: list[list[float]] = Field(default_factory=list)
    battery_capacity_table: list[list[float]] = Field(default_factory=list)

    @classmethod
    def from_row(cls, row) -> "CompanyConfigSchema":
        """Build from a CompanyConfig ORM row, keeping defaults for unset columns."""
        values = {name: getattr(row, name, None) for name in cls.model_fields}
        return cls(**{name: value for name, value in values.items() if value is not None})


class UpdateSiteRequest(CamelModel):
    """A user-submitted change set for one site."""

    site_updates: SiteUpdates
    plant_updates: PlantUpdates | None = None
    routine_updates: RoutineUpdates | None = None
    battery_updates: BatteryUpdates | None = None
    general_updates: GeneralUpdates | None = None
    company_config: CompanyConfigSchema | None = None
    submitter: str | None = None


class CommentUpdate(CamelModel):
    """One line of an audit log item."""

    reading_type: str
    prev: str | float | int | None = None
    new: str | float | int | None = None
    manual: bool | None = None

    def to_log(self) -> dict:
        """Serialize for storage on a LogItem."""
        return self.model_dump(by_alias=True, exclude_none=True)
