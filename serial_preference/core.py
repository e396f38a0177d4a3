import keyword
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from .errors import (
    DuplicatePreferenceError,
    PreferenceDefinitionError,
    UnknownPreferenceError,
)
from .validation import is_numeric, validate

logger = logging.getLogger(__name__)

DEFAULT_ATTRIBUTE = "preferences"


# --- Sentinel for "no default declared" ---
class _Nothing:
    """Marker for a preference declared without a default."""

    _instance = None

    def __new__(cls) -> "_Nothing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOTHING"

    def __bool__(self) -> bool:
        return False


NOTHING: Any = _Nothing()


# --- Preference Types ---
class PreferenceType(Enum):
    """Kind of value a preference holds."""

    BOOLEAN = "boolean"
    NUMERIC = "numeric"
    STRING = "string"
    OTHER = "other"

    @classmethod
    def from_token(cls, token: Any) -> "PreferenceType":
        """Resolve a declared type token (enum, Python type or string)."""
        if token is None:
            return cls.OTHER
        if isinstance(token, cls):
            return token
        if isinstance(token, type):
            # bool first: bool is a subclass of int
            if issubclass(token, bool):
                return cls.BOOLEAN
            if issubclass(token, (int, float, Decimal)):
                return cls.NUMERIC
            if issubclass(token, str):
                return cls.STRING
            raise PreferenceDefinitionError(
                f"Unsupported preference type {token.__name__}"
            )
        if isinstance(token, str):
            resolved = _TYPE_TOKENS.get(token.strip().lower())
            if resolved is not None:
                return resolved
        raise PreferenceDefinitionError(
            f"Unknown preference type {token!r}. "
            f"Valid types are: {', '.join(sorted(_TYPE_TOKENS))}."
        )


_TYPE_TOKENS: Dict[str, PreferenceType] = {
    "boolean": PreferenceType.BOOLEAN,
    "bool": PreferenceType.BOOLEAN,
    "integer": PreferenceType.NUMERIC,
    "int": PreferenceType.NUMERIC,
    "float": PreferenceType.NUMERIC,
    "decimal": PreferenceType.NUMERIC,
    "number": PreferenceType.NUMERIC,
    "numeric": PreferenceType.NUMERIC,
    "string": PreferenceType.STRING,
    "str": PreferenceType.STRING,
    "text": PreferenceType.STRING,
    "other": PreferenceType.OTHER,
    "any": PreferenceType.OTHER,
}


def humanize(name: str) -> str:
    """Turn an identifier into a label: ``income_ledger_id`` -> ``Income ledger``."""
    if name.endswith("_id") and len(name) > 3:
        name = name[:-3]
    words = name.replace("_", " ").strip()
    return words[:1].upper() + words[1:]


# --- Preference Descriptor ---
@dataclass(frozen=True)
class Preference:
    """A single named, typed preference declared on a host type."""

    name: str
    data_type: PreferenceType = PreferenceType.OTHER
    required: bool = False
    default: Any = NOTHING
    group: Optional[str] = None
    label: str = ""
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.label:
            object.__setattr__(self, "label", humanize(self.name))

    @property
    def is_boolean(self) -> bool:
        return self.data_type is PreferenceType.BOOLEAN

    @property
    def is_numeric(self) -> bool:
        return self.data_type is PreferenceType.NUMERIC

    @property
    def has_default(self) -> bool:
        return self.default is not NOTHING

    @property
    def query_name(self) -> Optional[str]:
        """Name of the generated query accessor, or None for non-booleans."""
        return f"is_{self.name}" if self.is_boolean else None

    def resolve_default(self) -> Any:
        """Return the declared default (calling factories), or None."""
        if not self.has_default:
            return None
        return self.default() if callable(self.default) else self.default

    def value_from(self, store: Optional[Mapping[str, Any]]) -> Any:
        """Read this preference from a store mapping, falling back to the default."""
        if store is not None and self.name in store:
            return store[self.name]
        return self.resolve_default()


@dataclass(frozen=True)
class PreferenceGroup:
    """Named subset of a schema's preferences sharing a group tag."""

    name: str
    preferences: Tuple[Preference, ...] = field(default_factory=tuple)

    @property
    def label(self) -> str:
        return humanize(self.name)

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.preferences]

    def __iter__(self) -> Iterator[Preference]:
        return iter(self.preferences)

    def __len__(self) -> int:
        return len(self.preferences)


# --- Schema ---
class PreferenceSchema:
    """Immutable, ordered collection of preferences bound to one attribute."""

    __slots__ = ("_preferences", "_by_name", "_attribute")

    def __init__(
        self, preferences: Tuple[Preference, ...] = (), attribute: str = DEFAULT_ATTRIBUTE
    ) -> None:
        by_name: Dict[str, Preference] = {}
        for pref in preferences:
            if pref.name in by_name:
                raise DuplicatePreferenceError(pref.name)
            by_name[pref.name] = pref
        self._preferences = tuple(preferences)
        self._by_name = MappingProxyType(by_name)
        self._attribute = attribute

    @property
    def attribute(self) -> str:
        return self._attribute

    @property
    def names(self) -> List[str]:
        return [p.name for p in self._preferences]

    def __iter__(self) -> Iterator[Preference]:
        return iter(self._preferences)

    def __len__(self) -> int:
        return len(self._preferences)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __getitem__(self, name: str) -> Preference:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownPreferenceError(name, tuple(self._by_name)) from None

    def get(self, name: str) -> Optional[Preference]:
        return self._by_name.get(name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PreferenceSchema):
            return NotImplemented
        return (
            self._attribute == other._attribute
            and self._preferences == other._preferences
        )

    def __hash__(self) -> int:
        return hash((self._attribute, tuple(self.names)))

    def __repr__(self) -> str:
        return (
            f"PreferenceSchema(attribute={self._attribute!r}, "
            f"preferences={self.names!r})"
        )

    # --- Filtered views ---
    @property
    def required(self) -> Tuple[Preference, ...]:
        return tuple(p for p in self._preferences if p.required)

    @property
    def numeric(self) -> Tuple[Preference, ...]:
        return tuple(p for p in self._preferences if p.is_numeric)

    @property
    def boolean(self) -> Tuple[Preference, ...]:
        return tuple(p for p in self._preferences if p.is_boolean)

    @property
    def ungrouped(self) -> Tuple[Preference, ...]:
        return tuple(p for p in self._preferences if p.group is None)

    @property
    def groups(self) -> Tuple[PreferenceGroup, ...]:
        """Named groups, ordered by the first declaration that uses each."""
        members: Dict[str, List[Preference]] = {}
        for pref in self._preferences:
            if pref.group is not None:
                members.setdefault(pref.group, []).append(pref)
        return tuple(
            PreferenceGroup(name, tuple(prefs)) for name, prefs in members.items()
        )

    def group(self, name: str) -> PreferenceGroup:
        for grp in self.groups:
            if grp.name == name:
                return grp
        raise KeyError(f"Unknown preference group '{name}'")

    # --- Store helpers ---
    def read(self, store: Optional[Mapping[str, Any]], name: str) -> Any:
        return self[name].value_from(store)

    def validate(self, store: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
        return validate(self, store)


# --- Declarations ---
def _check_name(name: Any) -> str:
    if not isinstance(name, str):
        raise PreferenceDefinitionError(
            f"Preference names must be strings, got {type(name).__name__}"
        )
    if not name.isidentifier() or keyword.iskeyword(name):
        raise PreferenceDefinitionError(
            f"Preference name '{name}' is not a valid identifier"
        )
    return name


def _check_default(name: str, data_type: PreferenceType, default: Any) -> None:
    if default is NOTHING or default is None or callable(default):
        return
    if data_type is PreferenceType.BOOLEAN:
        ok = isinstance(default, bool)
    elif data_type is PreferenceType.NUMERIC:
        ok = is_numeric(default)
    elif data_type is PreferenceType.STRING:
        ok = isinstance(default, str)
    else:
        ok = True
    if not ok:
        raise PreferenceDefinitionError(
            f"Default for preference '{name}' expects {data_type.value}, "
            f"got {type(default).__name__}"
        )


def preference(
    name: str,
    data_type: Any = None,
    *,
    required: bool = False,
    default: Any = NOTHING,
    group: Optional[str] = None,
    label: Optional[str] = None,
    description: Optional[str] = None,
) -> Preference:
    """Declare one preference.

    ``data_type`` accepts a :class:`PreferenceType`, a Python type or a
    token such as ``"boolean"`` or ``"integer"``; omitted means untyped.
    ``default`` may be a zero-argument callable, evaluated on each read.
    """
    name = _check_name(name)
    resolved = PreferenceType.from_token(data_type)
    _check_default(name, resolved, default)
    return Preference(
        name=name,
        data_type=resolved,
        required=bool(required),
        default=default,
        group=group,
        label=label or "",
        description=description,
    )


def group(name: str, *declarations: Preference) -> List[Preference]:
    """Tag a run of declarations with a group name."""
    if not isinstance(name, str) or not name:
        raise PreferenceDefinitionError("Group names must be non-empty strings")
    return [_with_group(decl, name) for decl in declarations]


def _with_group(decl: Preference, name: str) -> Preference:
    if not isinstance(decl, Preference):
        raise PreferenceDefinitionError(
            f"Expected a preference declaration, got {type(decl).__name__}"
        )
    return Preference(
        name=decl.name,
        data_type=decl.data_type,
        required=decl.required,
        default=decl.default,
        group=name,
        label=decl.label,
        description=decl.description,
    )


def _flatten(
    declarations: Tuple[Union[Preference, List[Preference]], ...]
) -> Iterator[Preference]:
    for decl in declarations:
        if isinstance(decl, (list, tuple)):
            yield from _flatten(tuple(decl))
        elif isinstance(decl, Preference):
            yield decl
        else:
            raise PreferenceDefinitionError(
                f"Expected a preference declaration, got {type(decl).__name__}"
            )


def preference_map(
    *declarations: Union[Preference, List[Preference]],
    attribute: str = DEFAULT_ATTRIBUTE,
) -> PreferenceSchema:
    """Build an immutable schema from preference declarations.

    Example:
        __preferences__ = preference_map(
            preference("taxable", "boolean", required=True),
            preference("vat_no", "string"),
            group("Ledgers", preference("income_ledger_id", "integer")),
        )
    """
    if not isinstance(attribute, str) or not attribute.isidentifier():
        raise PreferenceDefinitionError(
            f"Preference attribute must be an identifier, got {attribute!r}"
        )
    schema = PreferenceSchema(tuple(_flatten(declarations)), attribute=attribute)
    logger.debug(
        "Built preference schema on %r with %d preference(s)",
        attribute,
        len(schema),
    )
    return schema


# --- Fluent Builder ---
class PreferenceMapBuilder:
    """Fluent interface for assembling a schema one declaration at a time."""

    def __init__(self, attribute: str = DEFAULT_ATTRIBUTE) -> None:
        self._attribute = attribute
        self._declarations: List[Preference] = []
        self._names: set[str] = set()
        self._group: Optional[str] = None

    def preference(self, name: str, data_type: Any = None, **options: Any) -> "PreferenceMapBuilder":
        """Add a declaration; duplicates fail here rather than at build()."""
        if name in self._names:
            raise DuplicatePreferenceError(name)
        options.setdefault("group", self._group)
        self._declarations.append(preference(name, data_type, **options))
        self._names.add(name)
        return self  # Return self for chaining

    @contextmanager
    def group(self, name: str) -> Iterator["PreferenceMapBuilder"]:
        """Declarations added inside the block belong to ``name``."""
        previous, self._group = self._group, name
        try:
            yield self
        finally:
            self._group = previous

    def build(self) -> PreferenceSchema:
        return preference_map(*self._declarations, attribute=self._attribute)


# --- Registry ---
_registry: Dict[Tuple[type, str], PreferenceSchema] = {}


def register_schema(host: type, schema: PreferenceSchema) -> None:
    """Record ``schema`` as the preference map of ``host``, replacing any earlier one."""
    for key in [key for key in _registry if key[0] is host]:
        del _registry[key]
    _registry[(host, schema.attribute)] = schema
    logger.debug(
        "Registered preference schema for %s.%s", host.__name__, schema.attribute
    )


def lookup_schema(host: type, attribute: Optional[str] = None) -> Optional[PreferenceSchema]:
    """Find the schema registered for ``host`` or its nearest ancestor."""
    for klass in host.__mro__:
        for (registered, attr), schema in _registry.items():
            if registered is klass and (attribute is None or attr == attribute):
                return schema
    return None


def registered_schemas() -> Dict[Tuple[type, str], PreferenceSchema]:
    return dict(_registry)
