"""
Base Repository Interface.
Defines the standard contract for data access operations.
"""

from typing import Any, Optional, Protocol, TypeVar

T = TypeVar("T")


class BaseRepository(Protocol[T]):
    """Interface for generic CRUD operations."""

    def get_by_id(self, id: int) -> Optional[T]:
        """Get a single entity by ID."""
        ...

    def get_for_update(self, id: int) -> Optional[T]:
        """Get an entity and lock its row for the rest of the transaction."""
        ...

    def add(self, obj_in: Any) -> T:
        """Stage a new entity in the current unit of work (flushed, not committed)."""
        ...

    def update(self, db_obj: T, obj_in: Any) -> T:
        """Apply a partial field set to an entity (flushed, not committed)."""
        ...

    def refresh(self, db_obj: T) -> T:
        """Reload an entity's state from the store."""
        ...

    def commit(self) -> None:
        """Commit the current unit of work."""
        ...

    def rollback(self) -> None:
        """Roll back the current unit of work."""
        ...
