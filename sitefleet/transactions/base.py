"""Checkout-based transaction primitives over an async SQLAlchemy session."""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import uuid4

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from sitefleet.database import Base, as_utc
from sitefleet.transactions.errors import ResolutionError, TransactionError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
InputT = TypeVar("InputT")
DataT = TypeVar("DataT")
OutputT = TypeVar("OutputT")


class Transaction(Generic[InputT, DataT, OutputT]):
    """A unit of work that stages the entities it needs, then mutates them.

    Subclasses implement ``stage`` (check out everything the operation may
    touch) and ``operation`` (apply changes to the staged entities). Nothing
    is committed here: the session owner commits on success and rolls back
    when ``run`` raises.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._checked_out: dict[tuple[str, str], Base] = {}
        self.created: list[Base] = []
        self.removed: list[Base] = []

    @property
    def checked_out(self) -> list[tuple[str, str]]:
        """(table, id) pairs in checkout order."""
        return list(self._checked_out)

    async def run(self, request: InputT) -> OutputT:
        data = await self.stage(request)
        result = await self.operation(request, data)
        await self.session.flush()
        return result

    async def stage(self, request: InputT) -> DataT:
        raise NotImplementedError

    async def operation(self, request: InputT, data: DataT) -> OutputT:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    async def checkout(self, model: type[ModelT], entity_id: str) -> ModelT:
        """Lock and stage an entity for mutation. Each id may be checked out once."""
        key = (model.__tablename__, entity_id)
        if key in self._checked_out:
            raise TransactionError(f"{model.__tablename__} {entity_id} is already checked out")

        entity = await self.session.get(model, entity_id, with_for_update=True)
        if entity is None:
            raise ResolutionError(f"{model.__tablename__} {entity_id} not found")

        self._checked_out[key] = entity
        logger.debug(f"Checked out {model.__tablename__} {entity_id}")
        return entity

    async def query_ids(
        self,
        model: type[ModelT],
        filter: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[str]:
        """Ids of rows matching ``filter``; list values match any member."""
        stmt = select(model.id)
        for column, value in (filter or {}).items():
            attr = getattr(model, column)
            if isinstance(value, (list, tuple, set)):
                stmt = stmt.where(attr.in_(list(value)))
            else:
                stmt = stmt.where(attr == value)
        stmt = stmt.order_by(model.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def read_strict(self, model: type[ModelT], entity_id: str) -> ModelT:
        """Read an entity without staging it; raise if it does not exist."""
        entity = await self.session.get(model, entity_id)
        if entity is None:
            raise ResolutionError(f"{model.__tablename__} {entity_id} not found")
        return entity

    get_strict = read_strict

    async def find_by_date(
        self,
        model: type[ModelT],
        date: datetime,
        filter: Mapping[str, Any] | None = None,
    ) -> ModelT | None:
        """The version in effect at ``date``: latest ``model.date`` not after it."""
        stmt = (
            select(model)
            .filter_by(**(filter or {}))
            .where(model.date <= as_utc(date))
            .order_by(model.date.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar()

    def create(self, model: type[ModelT], **data: Any) -> ModelT:
        """Add a new entity; its id is assigned immediately."""
        data.setdefault("id", str(uuid4()))
        entity = model(**data)
        self.session.add(entity)
        self.created.append(entity)
        return entity

    async def remove(self, entity: Base) -> None:
        await self.session.delete(entity)
        self.removed.append(entity)


def clone_version(entity: ModelT, **overrides: Any) -> dict[str, Any]:
    """Column values of ``entity`` minus its primary key, with ``overrides`` applied.

    Used to start a new dated version of a versioned config row.
    """
    mapper = inspect(type(entity))
    values = {
        column.key: getattr(entity, column.key)
        for column in mapper.column_attrs
        if not any(c.primary_key for c in column.columns)
    }
    values.update(overrides)
    return values
