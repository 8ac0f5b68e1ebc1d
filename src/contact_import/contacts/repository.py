"""
Contact repository for database operations.
"""

from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from contact_import.contacts.models import Contact


class ContactRepositoryProtocol(Protocol):
    """Protocol for contact repository operations."""

    async def create_bulk(self, contacts: list[Contact]) -> list[Contact]:
        """Create multiple contacts in bulk."""
        ...

    async def count(self) -> int:
        """Count stored contacts."""
        ...


class ContactRepository:
    """Repository for contact database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def count(self) -> int:
        """Count stored contacts.

        Returns:
            Number of contacts.
        """
        result = await self._session.execute(select(func.count(Contact.id)))
        count = result.scalar()
        return count if count is not None else 0

    async def create_bulk(self, contacts: list[Contact]) -> list[Contact]:
        """Create multiple contacts in bulk.

        Args:
            contacts: List of contacts to create.

        Returns:
            List of created contacts with IDs.
        """
        if not contacts:
            return []

        self._session.add_all(contacts)
        await self._session.flush()
        return contacts
