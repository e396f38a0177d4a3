#!/usr/bin/env python3
"""
serial_preference demo: an invoicing company with a preference map stored in
one JSON column of a SQLAlchemy model.
"""

import logging

from sqlalchemy import Integer, String, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from serial_preference import (
    HasPreferences,
    group,
    preference,
    preference_map,
    validator,
)
from serial_preference.orm import preference_column


class Base(DeclarativeBase):
    pass


class Company(HasPreferences, Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    preferences = preference_column()

    __preferences__ = preference_map(
        preference("taxable", "boolean", required=True),
        preference("vat_no", "string", label="VAT number"),
        group(
            "Invoicing",
            preference("max_invoice_items", "integer", default=25),
            preference("invoice_prefix", "string", default="INV"),
        ),
        group(
            "Ledgers",
            preference("income_ledger_id", "integer"),
            preference("expense_ledger_id", "integer"),
        ),
    )

    @validator("vat_no")
    def check_vat_no(self, value):
        if self.taxable and not value:
            raise ValueError("is required for taxable companies")


def main():
    logging.basicConfig(level=logging.WARNING, format="%(name)s: %(message)s")
    logging.getLogger("serial_preference").setLevel(logging.DEBUG)

    print("=== Schema ===")
    for grp in Company.preference_groups():
        print(f"{grp.label}: {', '.join(p.label for p in grp)}")

    company = Company(name="Acme")
    print("\n=== Defaults ===")
    print(f"max_invoice_items = {company.max_invoice_items}")
    print(f"invoice_prefix    = {company.invoice_prefix}")

    print("\n=== Validation ===")
    company.taxable = True
    company.max_invoice_items = "lots"
    if not company.is_valid():
        labels = {p.name: p.label for p in Company.preference_schema()}
        for message in company.preference_errors.full_messages(labels):
            print(f"  - {message}")

    company.vat_no = "EU123456"
    company.max_invoice_items = 40
    print(f"valid: {company.is_valid()}, taxable: {company.is_taxable}")

    print("\n=== Persistence ===")
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        session.add(company)
        session.commit()
        session.expunge_all()
        loaded = session.scalars(select(Company)).one()
        print(f"stored column: {dict(loaded.preferences)}")
        print(f"all values:    {loaded.preference_store().to_dict()}")


if __name__ == "__main__":
    main()
