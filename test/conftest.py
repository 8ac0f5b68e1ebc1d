"""
Pytest configuration and fixtures for the import pipeline tests.
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from contact_import.config import ImportSettings
from contact_import.shared.database import Base
from contact_import.validation.rules import FieldType, ValidationRule

import contact_import.contacts.models  # noqa: F401


@pytest.fixture
def test_settings() -> ImportSettings:
    """Create test settings."""
    return ImportSettings(
        default_country_code="91",
        max_text_length=100,
        classify_defer_seconds=0.0,
        csv_delimiter=",",
        csv_encoding="utf-8",
        has_header=True,
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
def phone_rule() -> ValidationRule:
    return ValidationRule(field="phone", required=True, type=FieldType.PHONE)


@pytest.fixture
def email_rule() -> ValidationRule:
    return ValidationRule(field="email", required=True, type=FieldType.EMAIL)


@pytest.fixture
def name_rule() -> ValidationRule:
    return ValidationRule(field="name", required=True, type=FieldType.TEXT)


@pytest.fixture
def sample_csv_content() -> str:
    """Five rows: two valid, two fixable phones, one missing name."""
    return (
        "Name,Phone\n"
        "Asha,+919876543210\n"
        "Ravi,98765 43211\n"
        "Meera,+919876543212\n"
        "Kiran,(987) 654-3213\n"
        ",+919876543214\n"
    )


class RecordingSink:
    """RowSink that keeps every committed batch."""

    def __init__(self) -> None:
        self.batches: list[list[dict[str, str]]] = []

    async def commit(self, rows: list[dict[str, str]]) -> int:
        self.batches.append(rows)
        return len(rows)


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest_asyncio.fixture
async def db_engine(test_settings: ImportSettings) -> AsyncGenerator[Any, None]:
    """Create test database engine."""
    engine = create_async_engine(
        test_settings.database_url,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: Any) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
