"""
SQLAlchemy implementation of the Base Repository.

Writes are flushed, not committed: the calling service owns the unit of work
and commits once every change of an operation is staged. Conditional bulk
statements bypass the identity map, so subclasses expire the cached row
after running one.
"""

from typing import Any, Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy.orm import Query, Session

from app.domain.repositories.base import BaseRepository
from app.infrastructure.database import Base

ModelType = TypeVar("ModelType", bound=Base)


def _as_values(obj_in: Any) -> dict:
    if hasattr(obj_in, "model_dump"):
        return obj_in.model_dump(exclude_unset=True)
    return dict(obj_in)


class SQLAlchemyRepository(BaseRepository[ModelType], Generic[ModelType]):
    """Generic repository implementation for SQLAlchemy models."""

    def __init__(self, db: Session, model: Type[ModelType]):
        self.db = db
        self.model = model

    def get_by_id(self, id: int) -> Optional[ModelType]:
        return self.db.get(self.model, id)

    def get_for_update(self, id: int) -> Optional[ModelType]:
        """Load the row and hold a write lock on it until commit (no-op on SQLite)."""
        return (
            self.db.query(self.model)
            .filter(self.model.id == id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def add(self, obj_in: Any) -> ModelType:
        db_obj = self.model(**_as_values(obj_in))
        self.db.add(db_obj)
        self.db.flush()
        return db_obj

    def update(self, db_obj: ModelType, obj_in: Any) -> ModelType:
        for field, value in _as_values(obj_in).items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)
        self.db.flush()
        return db_obj

    def refresh(self, db_obj: ModelType) -> ModelType:
        self.db.refresh(db_obj)
        return db_obj

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def paginate(self, query: Query, skip: int, limit: int, *order_by) -> Tuple[List[ModelType], int]:
        """Return one page of ``query`` plus the unpaged total."""
        total = query.count()
        items = query.order_by(*order_by).offset(skip).limit(limit).all()
        return items, total

    def _cached(self, id: int) -> Optional[ModelType]:
        return self.db.identity_map.get(self.db.identity_key(self.model, id))

    def _expire_cached(self, id: int) -> None:
        obj = self._cached(id)
        if obj is not None:
            self.db.expire(obj)

    def _expunge_cached(self, id: int) -> None:
        obj = self._cached(id)
        if obj is not None:
            # cascades to loaded children
            self.db.expunge(obj)
