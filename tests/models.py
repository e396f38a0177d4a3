"""Host classes used across the test suite."""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from serial_preference import HasPreferences, group, preference, preference_map
from serial_preference.orm import preference_column


class Company(HasPreferences):
    """Plain host whose preferences live in ``self.preferences``."""

    __preferences__ = preference_map(
        preference("taxable", "boolean", required=True),
        preference("vat_no", "string"),
        group(
            "Invoicing",
            preference("max_invoice_items", "integer"),
            preference("required_number", "integer", required=True),
        ),
        group("Ledgers", preference("income_ledger_id", "integer")),
        preference("currency", "string", default="EUR"),
    )

    def __init__(self, **preferences):
        self.preferences = dict(preferences)


class Base(DeclarativeBase):
    """Base class for the test models."""

    pass


class Account(HasPreferences, Base):
    """ORM host using the default ``preferences`` column."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    preferences = preference_column()

    __preferences__ = preference_map(
        preference("taxable", "boolean", required=True),
        preference("max_invoice_items", "integer", default=25),
        preference("vat_no", "string"),
    )

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, name='{self.name}')>"


class Workspace(HasPreferences, Base):
    """ORM host storing its preferences in a ``settings`` column."""

    __tablename__ = "workspaces"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    settings = preference_column()

    __preferences__ = preference_map(
        preference("dark_mode", "boolean", default=False),
        preference("page_size", "integer", required=True),
        attribute="settings",
    )
