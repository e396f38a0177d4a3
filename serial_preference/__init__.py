"""
serial_preference - typed preference maps serialized into a single attribute

Declare the preferences of a host class once; readers, writers, boolean query
accessors and presence/numericality validations are generated from the
declaration and all operate on one mapping attribute.

Example:
    from serial_preference import HasPreferences, group, preference, preference_map

    class Company(HasPreferences):
        __preferences__ = preference_map(
            preference("taxable", "boolean", required=True),
            preference("vat_no", "string"),
            group(
                "Invoicing",
                preference("max_invoice_items", "integer", default=25),
            ),
        )

        def __init__(self):
            self.preferences = {}

    company = Company()
    company.max_invoice_items      # 25
    company.taxable = True
    company.is_taxable             # True
    company.is_valid()             # True
"""

__version__ = "0.3.0"
__author__ = "Your Name"
__email__ = "your.email@example.com"
__license__ = "MIT"

from .accessors import HasPreferences, PreferenceStore, install_preferences, validator
from .core import (
    DEFAULT_ATTRIBUTE,
    NOTHING,
    Preference,
    PreferenceGroup,
    PreferenceMapBuilder,
    PreferenceSchema,
    PreferenceType,
    group,
    lookup_schema,
    preference,
    preference_map,
)
from .errors import (
    DuplicatePreferenceError,
    PreferenceDefinitionError,
    PreferenceError,
    UnknownPreferenceError,
)
from .validation import (
    NumericalityRule,
    PreferenceErrors,
    PresenceRule,
    is_blank,
    is_numeric,
    rules_for,
    validate,
)

__all__ = [
    "DEFAULT_ATTRIBUTE",
    "NOTHING",
    "HasPreferences",
    "PreferenceStore",
    "install_preferences",
    "validator",
    "Preference",
    "PreferenceGroup",
    "PreferenceMapBuilder",
    "PreferenceSchema",
    "PreferenceType",
    "group",
    "lookup_schema",
    "preference",
    "preference_map",
    "PreferenceError",
    "PreferenceDefinitionError",
    "DuplicatePreferenceError",
    "UnknownPreferenceError",
    "NumericalityRule",
    "PresenceRule",
    "PreferenceErrors",
    "is_blank",
    "is_numeric",
    "rules_for",
    "validate",
]
