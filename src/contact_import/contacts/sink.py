"""
Persistence sink handing confirmed import rows to the contact store.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from contact_import.contacts.models import Contact
from contact_import.contacts.repository import ContactRepository, ContactRepositoryProtocol
from contact_import.shared.logging import get_logger

logger = get_logger(__name__)

CONTACT_FIELDS = ("phone_number", "name", "email", "company", "location")


def row_to_contact(row: dict[str, str]) -> Contact:
    """Map one validated row to a Contact; unknown columns are ignored."""
    values = {field: (row.get(field) or "").strip() or None for field in CONTACT_FIELDS}
    return Contact(**values)


class ContactImportSink:
    """RowSink writing confirmed rows as contact records."""

    def __init__(
        self,
        session: AsyncSession,
        contact_repository: ContactRepositoryProtocol | None = None,
    ) -> None:
        """Initialize sink.

        Args:
            session: Async database session.
            contact_repository: Optional contact repository (for DI).
        """
        self._session = session
        self._contact_repo = contact_repository or ContactRepository(session)

    async def commit(self, rows: list[dict[str, str]]) -> int:
        """Insert rows as contacts in one transaction.

        Args:
            rows: Rows that passed validation.

        Returns:
            Number of contacts created.
        """
        contacts = [row_to_contact(row) for row in rows]
        try:
            created = await self._contact_repo.create_bulk(contacts)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            logger.exception("Contact import commit failed", extra={"row_count": len(rows)})
            raise

        logger.info("Contacts imported", extra={"created_count": len(created)})
        return len(created)
