"""Tests for preference maps on SQLAlchemy models.

Uses the ``db_session`` fixture from conftest.py, an in-memory SQLite
database with the test schema.
"""

from sqlalchemy import select
from sqlalchemy.ext.mutable import MutableDict

from serial_preference import preference_map
from tests.models import Account, Workspace


class TestAccountModel:
    """Tests for a model using the default ``preferences`` column."""

    def test_new_instance_reads_defaults(self):
        """Before the first flush the column is unset and defaults apply."""
        account = Account(name="Acme")
        assert account.preferences is None
        assert account.max_invoice_items == 25
        assert account.taxable is None
        assert account.is_taxable is False

    def test_constructor_accepts_preferences(self):
        """The declarative constructor goes through the generated writers."""
        account = Account(name="Acme", taxable=True, vat_no="EU1")
        assert account.preferences == {"taxable": True, "vat_no": "EU1"}
        assert account.is_taxable is True

    def test_persist_and_reload(self, db_session):
        """Preferences round-trip through the JSON column."""
        account = Account(name="Acme")
        account.taxable = True
        account.max_invoice_items = 40
        db_session.add(account)
        db_session.commit()

        db_session.expunge_all()
        loaded = db_session.scalars(select(Account).where(Account.name == "Acme")).one()

        assert loaded.taxable is True
        assert loaded.max_invoice_items == 40
        assert loaded.vat_no is None
        assert isinstance(loaded.preferences, MutableDict)

    def test_empty_column_after_flush(self, db_session):
        """The column default is an empty mapping."""
        account = Account(name="Empty")
        db_session.add(account)
        db_session.commit()

        assert account.preferences == {}
        assert account.max_invoice_items == 25

    def test_writes_after_load_are_tracked(self, db_session):
        """Writing a preference on a loaded row marks it dirty."""
        db_session.add(Account(name="Acme", taxable=False))
        db_session.commit()

        account = db_session.scalars(select(Account)).one()
        account.taxable = True
        assert account in db_session.dirty
        db_session.commit()

        db_session.expunge_all()
        assert db_session.scalars(select(Account)).one().taxable is True

    def test_in_place_edits_are_tracked(self, db_session):
        """Direct edits of the mutable column are persisted too."""
        db_session.add(Account(name="Acme", taxable=True))
        db_session.commit()

        account = db_session.scalars(select(Account)).one()
        account.preferences["vat_no"] = "EU9"
        db_session.commit()

        db_session.expunge_all()
        assert db_session.scalars(select(Account)).one().vat_no == "EU9"

    def test_validation(self):
        """Generated rules work on model instances."""
        account = Account(name="Acme")
        assert not account.is_valid()
        assert account.preference_errors["taxable"] == ["can't be blank"]

        account.taxable = True
        account.max_invoice_items = "many"
        assert account.is_valid()
        assert account.preference_errors.to_dict() == {}

        account.taxable = False
        assert account.preference_errors.to_dict() == {}
        assert not account.is_valid()
        assert account.preference_errors.to_dict() == {"taxable": ["can't be blank"]}

    def test_class_queries(self):
        assert Account.preferences_attribute() == "preferences"
        assert Account.preference_schema().names == [
            "taxable",
            "max_invoice_items",
            "vat_no",
        ]
        assert Account.preference_groups() == ()


class TestWorkspaceModel:
    """Tests for a model storing preferences in ``settings``."""

    def test_attribute_override(self):
        """Class queries and accessors use the ``settings`` column."""
        assert Workspace._preferences_attribute == "settings"
        assert Workspace.preferences_attribute() == "settings"

        workspace = Workspace(title="Docs")
        workspace.page_size = 50
        workspace.dark_mode = True
        assert workspace.settings == {"page_size": 50, "dark_mode": True}
        assert workspace.is_dark_mode is True

    def test_persist_settings(self, db_session):
        workspace = Workspace(title="Docs", page_size=20)
        db_session.add(workspace)
        db_session.commit()

        db_session.expunge_all()
        loaded = db_session.scalars(select(Workspace)).one()
        assert loaded.settings == {"page_size": 20}
        assert loaded.page_size == 20
        assert loaded.dark_mode is False
        assert loaded.is_valid()

    def test_schema_registered_per_attribute(self):
        """The registry keeps the attribute the map was declared for."""
        schema = Workspace.preference_schema()
        assert schema.attribute == "settings"
        assert schema == preference_map(*schema, attribute="settings")
