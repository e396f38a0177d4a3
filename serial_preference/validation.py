"""Presence and numericality rules evaluated against a preference store.

Validation never raises: failures are collected as ``(name, message)`` pairs
that the host merges with its own errors.
"""

import logging
import math
import re
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from .core import Preference, PreferenceSchema

logger = logging.getLogger(__name__)

BLANK_MESSAGE = "can't be blank"
NOT_A_NUMBER_MESSAGE = "is not a number"

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def is_blank(value: Any) -> bool:
    """None, False, whitespace-only strings and empty collections are blank."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False


def is_numeric(value: Any) -> bool:
    """True for finite numbers and strings holding a numeric literal."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, str):
        return bool(_NUMBER_RE.match(value.strip()))
    return False


# --- Rules ---
class ValidationRule:
    """A check bound to one preference name."""

    message = ""

    def __init__(self, name: str) -> None:
        self.name = name

    def check(self, value: Any) -> Optional[str]:
        """Return an error message, or None when ``value`` passes."""
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationRule):
            return NotImplemented
        return type(self) is type(other) and self.name == other.name

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.name))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class PresenceRule(ValidationRule):
    message = BLANK_MESSAGE

    def check(self, value: Any) -> Optional[str]:
        return self.message if is_blank(value) else None


class NumericalityRule(ValidationRule):
    """Fails on present, non-numeric values; blank always passes."""

    message = NOT_A_NUMBER_MESSAGE

    def check(self, value: Any) -> Optional[str]:
        if is_blank(value) or is_numeric(value):
            return None
        return self.message


def rules_for(pref: "Preference") -> List[ValidationRule]:
    """Rules attached to one preference: presence if required, numericality if numeric."""
    rules: List[ValidationRule] = []
    if pref.required:
        rules.append(PresenceRule(pref.name))
    if pref.is_numeric:
        rules.append(NumericalityRule(pref.name))
    return rules


def validate(
    schema: "PreferenceSchema", store: Optional[Mapping[str, Any]]
) -> List[Tuple[str, str]]:
    """Run the generated rules of ``schema`` against ``store``.

    Numericality is only enforced here for required preferences; on optional
    ones it is reported solely by calling the rule directly.
    """
    failures: List[Tuple[str, str]] = []
    for pref in schema:
        value = pref.value_from(store)
        for rule in rules_for(pref):
            if isinstance(rule, NumericalityRule) and not pref.required:
                continue
            message = rule.check(value)
            if message is not None:
                failures.append((pref.name, message))
    return failures


# --- Error Collection ---
class PreferenceErrors:
    """Per-field validation messages for one host instance."""

    def __init__(self, failures: Optional[List[Tuple[str, str]]] = None) -> None:
        self._messages: Dict[str, List[str]] = {}
        for name, message in failures or []:
            self.add(name, message)

    def add(self, name: str, message: str) -> None:
        self._messages.setdefault(name, []).append(message)

    def on(self, name: str) -> List[str]:
        return list(self._messages.get(name, []))

    def __getitem__(self, name: str) -> List[str]:
        return self.on(name)

    def __contains__(self, name: object) -> bool:
        return name in self._messages

    def __iter__(self) -> Iterator[str]:
        return iter(self._messages)

    def __len__(self) -> int:
        return sum(len(messages) for messages in self._messages.values())

    def __bool__(self) -> bool:
        return bool(self._messages)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PreferenceErrors):
            return self._messages == other._messages
        if isinstance(other, dict):
            return self._messages == other
        return NotImplemented

    def as_list(self) -> List[Tuple[str, str]]:
        return [
            (name, message)
            for name, messages in self._messages.items()
            for message in messages
        ]

    def full_messages(self, labels: Optional[Mapping[str, str]] = None) -> List[str]:
        """Messages prefixed with the field label, e.g. ``Taxable can't be blank``."""
        labels = labels or {}
        return [
            f"{labels.get(name, name)} {message}" for name, message in self.as_list()
        ]

    def to_dict(self) -> Dict[str, List[str]]:
        return {name: list(messages) for name, messages in self._messages.items()}

    def __repr__(self) -> str:
        return f"PreferenceErrors({self._messages!r})"
