"""Base repository with common CRUD operations."""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Base repository providing common database operations.

    Repositories handle data access only. Transaction control (commit)
    should be done in the service layer.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID | str) -> ModelType | None:
        """Get a record by its primary key."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    async def delete(self, entity: ModelType) -> None:
        """Mark entity for deletion (no flush/commit)."""
        await self.session.delete(entity)

    async def paginate(
        self,
        query: Any,  # SelectOfScalar or Select - SQLModel/SQLAlchemy query
        limit: int,
        offset: int,
        order_by: Any,
    ) -> tuple[list[ModelType], int]:
        """Execute offset-based pagination on a query.

        Args:
            query: The filtered base query, without ordering or limits
            limit: Maximum number of items to return
            offset: Number of matching items to skip
            order_by: One ordering clause or a tuple of them

        Returns:
            Tuple of (items, total)
            - items: List of results for this page
            - total: Number of rows matching the filters, ignoring limit/offset
        """
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (await self.session.execute(count_query)).scalar_one()

        ordering = order_by if isinstance(order_by, tuple) else (order_by,)
        page_query = query.order_by(*ordering).limit(limit).offset(offset)
        result = await self.session.execute(page_query)
        return list(result.scalars().all()), int(total)
