"""
Campus Portal Backend — Generic Repository
============================================

What:  Thin persistence collaborator over an AsyncSession.
How:   `find_by_id`, `query`, `save`, `delete` and `count` work for any mapped
       model. SQLAlchemy failures are logged and wrapped in DatabaseError so
       the exception boundary reports them as upstream failures without
       leaking SQL text.
Who:   Services use `Repository` with the request's session. Filters that run
       before the handler (location gates) use `ScopedLookup`, which opens a
       short-lived session of its own.

Transactions:
    `save` and `delete` only flush. The commit belongs to `get_db_session`,
    so every write in one request lands or rolls back together.
"""

import logging
from typing import Any, Callable, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campus.database import async_session_factory
from campus.exceptions import DatabaseError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class Repository:
    """Generic CRUD over one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, model: Type[ModelT], entity_id: Any) -> Optional[ModelT]:
        try:
            return await self.session.get(model, entity_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load %s %s: %s", model.__name__, entity_id, e)
            raise DatabaseError(context={"model": model.__name__, "id": entity_id}) from e

    async def query(self, model: Type[ModelT], *criteria: Any, order_by: Any = None) -> Sequence[ModelT]:
        """All rows of `model` matching every criterion, optionally ordered."""
        statement = select(model).where(*criteria) if criteria else select(model)
        if order_by is not None:
            statement = statement.order_by(order_by)
        try:
            result = await self.session.execute(statement)
            return result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to query %s: %s", model.__name__, e)
            raise DatabaseError(context={"model": model.__name__}) from e

    async def save(self, entity: ModelT) -> ModelT:
        """Insert or update `entity`; primary keys are assigned on flush."""
        try:
            self.session.add(entity)
            await self.session.flush()
            await self.session.refresh(entity)
            return entity
        except SQLAlchemyError as e:
            logger.error("Failed to save %s: %s", type(entity).__name__, e)
            raise DatabaseError(context={"model": type(entity).__name__}) from e

    async def delete(self, entity: Any) -> None:
        try:
            await self.session.delete(entity)
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete %s: %s", type(entity).__name__, e)
            raise DatabaseError(context={"model": type(entity).__name__}) from e

    async def exists(self, model: Type[ModelT], entity_id: Any) -> bool:
        return await self.find_by_id(model, entity_id) is not None

    async def count(self, model: Type[ModelT]) -> int:
        try:
            result = await self.session.execute(select(func.count()).select_from(model))
            return int(result.scalar_one())
        except SQLAlchemyError as e:
            logger.error("Failed to count %s: %s", model.__name__, e)
            raise DatabaseError(context={"model": model.__name__}) from e


class ScopedLookup:
    """
    Read-only `find_by_id` that opens and closes its own session.

    Args:
        session_factory: zero-argument callable returning an AsyncSession
                         context manager; defaults to the application's
                         `async_session_factory`.
    """

    def __init__(self, session_factory: Optional[Callable[[], Any]] = None):
        self._session_factory = session_factory

    async def find_by_id(self, model: Type[ModelT], entity_id: Any) -> Optional[ModelT]:
        factory = self._session_factory or async_session_factory
        async with factory() as session:
            return await Repository(session).find_by_id(model, entity_id)
