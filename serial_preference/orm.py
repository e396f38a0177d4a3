"""SQLAlchemy column helper for preference maps."""

from typing import Any

from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import MappedColumn, mapped_column
from sqlalchemy.types import JSON


def preference_column(**kwargs: Any) -> MappedColumn:
    """Return a JSON column suitable as a preference store.

    The value is wrapped in ``MutableDict`` so in-place edits of the mapping
    are tracked too. Extra keyword arguments go to ``mapped_column``.
    """
    kwargs.setdefault("default", dict)
    kwargs.setdefault("nullable", True)
    return mapped_column(MutableDict.as_mutable(JSON), **kwargs)
