from typing import Any, Generic, Sequence, Type, TypeVar

from sqlalchemy import and_, delete, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.core.diagnostics import track_db
from swipematch.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base class for data access layer.

    Implements the document-store contract the protocols rely on: get, put
    (upsert), delete and equality queries. Every write commits on its own;
    no caller may assume several writes are applied atomically.
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def _pk_clause(self, pk: Any):
        columns = inspect(self.model).primary_key
        values = pk if isinstance(pk, tuple) else (pk,)
        return and_(*(column == value for column, value in zip(columns, values)))

    @track_db
    async def get(self, session: AsyncSession, pk: Any) -> ModelType | None:
        """Get a single record by primary key (a tuple for composite keys)."""
        return await session.get(self.model, pk, populate_existing=True)

    @track_db
    async def query(self, session: AsyncSession, *expressions: Any, order_by: Any = None, **filters: Any) -> Sequence[ModelType]:
        """Get all records matching equality filters and optional extra expressions."""
        stmt = select(self.model).filter_by(**filters).execution_options(populate_existing=True)
        if expressions:
            stmt = stmt.where(*expressions)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        result = await session.execute(stmt)
        return result.scalars().all()

    @track_db
    async def get_by_attribute(self, session: AsyncSession, attribute: str | None = None, value: Any = None, expression: Any | None = None) -> ModelType | None:
        """Get a single record by an attribute or a complex expression."""
        if expression is not None:
            stmt = select(self.model).where(expression)
        elif attribute is not None:
            stmt = select(self.model).where(getattr(self.model, attribute) == value)
        else:
            raise ValueError("Either attribute/value or expression must be provided")
        result = await session.execute(stmt.limit(1))
        return result.scalars().first()

    @track_db
    async def create(self, session: AsyncSession, data: dict) -> ModelType:
        """Create a new record."""
        instance = self.model(**data)
        session.add(instance)
        try:
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        return instance

    @track_db
    async def create_if_absent(self, session: AsyncSession, pk: Any, data: dict) -> tuple[ModelType, bool]:
        """Write a record only if no record with this primary key exists.

        Returns the stored record and whether this call created it. A key
        collision with a concurrent writer counts as "already exists".
        """
        existing = await session.get(self.model, pk, populate_existing=True)
        if existing is not None:
            return existing, False

        instance = self.model(**data)
        session.add(instance)
        try:
            await session.commit()
            return instance, True
        except IntegrityError as e:
            await session.rollback()
            collision = e
        except Exception:
            await session.rollback()
            raise

        existing = await session.get(self.model, pk, populate_existing=True)
        if existing is None:
            # The collision was on another constraint, not the primary key
            raise collision
        return existing, False

    @track_db
    async def put(self, session: AsyncSession, data: dict) -> ModelType:
        """Insert or overwrite a record (last write wins)."""
        try:
            instance = await session.merge(self.model(**data))
            await session.commit()
            return instance
        except IntegrityError:
            # A concurrent insert of the same key won the race; overwrite it
            await session.rollback()
            instance = await session.merge(self.model(**data))
            await session.commit()
            return instance
        except Exception:
            await session.rollback()
            raise

    @track_db
    async def update(self, session: AsyncSession, pk: Any, data: dict) -> ModelType | None:
        """Update fields of a record by primary key."""
        instance = await session.get(self.model, pk, populate_existing=True)
        if instance is None:
            return None
        for key, value in data.items():
            setattr(instance, key, value)
        try:
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        return instance

    @track_db
    async def delete(self, session: AsyncSession, pk: Any) -> bool:
        """Delete a record by primary key. Deleting a missing record is not an error."""
        try:
            result = await session.execute(delete(self.model).where(self._pk_clause(pk)))
            await session.commit()
            return result.rowcount > 0
        except Exception:
            await session.rollback()
            raise
