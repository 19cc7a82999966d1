"""
Base repository implementing common CRUD operations using SQLAlchemy 2.0.

This module provides a generic repository pattern that is extended by the
model-specific repositories. Inserts run inside a SAVEPOINT so that a unique
constraint violation only discards the failed row; the caller's session and
any writes it already flushed stay intact.
"""

from __future__ import annotations
from typing import Generic, TypeVar, Type, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

logger = logging.getLogger(__name__)

# Generic type variable for the model
T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Generic base repository for CRUD operations.

    Type Parameters:
        T: The SQLAlchemy model type this repository manages

    Example:
        class SwipeRepository(BaseRepository[Swipe]):
            def __init__(self):
                super().__init__(Swipe)
    """

    def __init__(self, model: Type[T]):
        """
        Initialize the repository with a model class.

        Args:
            model: The SQLAlchemy model class to manage
        """
        self.model = model

    async def get(
        self,
        db: AsyncSession,
        id: UUID
    ) -> Optional[T]:
        """
        Retrieve a single record by ID.

        Args:
            db: Active database session
            id: UUID of the record to retrieve

        Returns:
            Model instance if found, None otherwise
        """
        try:
            stmt = select(self.model).where(self.model.id == id)
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching {self.model.__name__} by id {id}: {e}")
            raise

    async def create(
        self,
        db: AsyncSession,
        obj_in: dict
    ) -> T:
        """
        Insert a new record inside a savepoint.

        Args:
            db: Active database session
            obj_in: Dictionary of field values for the new record

        Returns:
            Created model instance

        Raises:
            IntegrityError: If a unique constraint rejects the row. Only the
                savepoint is rolled back; the session remains usable.

        Example:
            swipe = await repo.create(db, {"user_id": uid, "deal_id": did, "direction": "right"})
            await db.commit()
        """
        db_obj = self.model(**obj_in)
        try:
            async with db.begin_nested():
                db.add(db_obj)
                await db.flush()
            await db.refresh(db_obj)
            return db_obj
        except IntegrityError as e:
            logger.info(f"Integrity conflict creating {self.model.__name__}: {e.orig}")
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model.__name__}: {e}")
            raise
