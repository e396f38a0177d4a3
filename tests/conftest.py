"""Shared pytest fixtures for the serial_preference test suite."""

from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from tests.models import Base, Company


@pytest.fixture()
def company() -> Company:
    return Company()


@pytest.fixture()
def valid_company() -> Company:
    """A company that passes every generated rule."""
    return Company(taxable=True, required_number=3)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    """Provide a session on a fresh in-memory SQLite database.

    Tables are created before the test and dropped afterwards.
    """
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()
