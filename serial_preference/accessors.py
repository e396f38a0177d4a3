import logging
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from .core import (
    DEFAULT_ATTRIBUTE,
    NOTHING,
    Preference,
    PreferenceGroup,
    PreferenceSchema,
    lookup_schema,
    register_schema,
)
from .errors import PreferenceDefinitionError, UnknownPreferenceError
from .validation import PreferenceErrors, validate

logger = logging.getLogger(__name__)


# --- Helper Decorator for Host Validators ---
def validator(*preference_names: str) -> Callable:
    """Mark a host method as an extra validation rule for one or more preferences.

    The method receives the current value and raises ``ValueError`` with the
    error message when the value is invalid.
    """
    if not all(isinstance(name, str) for name in preference_names):
        raise TypeError("validator preference names must be strings.")

    def decorator(func: Callable) -> Callable:
        setattr(func, "_validator_for", preference_names)
        return func

    return decorator


# --- Store Access ---
def _read(instance: Any, attribute: str, name: str, default: Any = None) -> Any:
    store = getattr(instance, attribute, None)
    if store is not None and name in store:
        return store[name]
    return default


def _write(instance: Any, attribute: str, name: str, value: Any) -> None:
    # Reassign a copy so ORM change tracking sees the write.
    updated = dict(getattr(instance, attribute, None) or {})
    updated[name] = value
    setattr(instance, attribute, updated)


class PreferenceStore:
    """Per-instance view over the mapping held in the preference attribute."""

    def __init__(self, instance: Any, schema: PreferenceSchema) -> None:
        self._instance = instance
        self._schema = schema

    @property
    def attribute(self) -> str:
        return self._schema.attribute

    @property
    def mapping(self) -> Mapping[str, Any]:
        """The raw stored values, without defaults."""
        return dict(getattr(self._instance, self.attribute, None) or {})

    def __contains__(self, name: object) -> bool:
        return name in self.mapping

    def __iter__(self) -> Iterator[str]:
        return iter(self.mapping)

    def read(self, name: str, default: Any = None) -> Any:
        return _read(self._instance, self.attribute, name, default)

    def write(self, name: str, value: Any) -> None:
        _write(self._instance, self.attribute, name, value)

    def effective(self, name: str) -> Any:
        """Stored value, or the declared default when nothing is stored."""
        return self._schema[name].value_from(self.mapping)

    def update(self, values: Mapping[str, Any]) -> None:
        """Write several declared preferences at once."""
        unknown = [name for name in values if name not in self._schema]
        if unknown:
            raise UnknownPreferenceError(unknown[0], tuple(self._schema.names))
        for name, value in values.items():
            self.write(name, value)

    def to_dict(self) -> Dict[str, Any]:
        """Effective value of every declared preference, in declaration order."""
        mapping = self.mapping
        return {pref.name: pref.value_from(mapping) for pref in self._schema}

    def __repr__(self) -> str:
        return f"PreferenceStore({self.attribute}={self.mapping!r})"


# --- Accessor Synthesis ---
def _make_accessor(pref: Preference) -> property:
    name = pref.name

    def fget(self: Any) -> Any:
        value = self.read_preference_attribute(name, NOTHING)
        if value is NOTHING:
            return pref.resolve_default()
        return value

    def fset(self: Any, value: Any) -> None:
        self.write_preference_attribute(name, value)

    return property(fget, fset, doc=pref.description or pref.label)


def _make_query(pref: Preference) -> property:
    name = pref.name

    def fget(self: Any) -> bool:
        return bool(getattr(self, name))

    return property(fget, doc=f"Whether {pref.label.lower()} is set.")


def _reserved_names(cls: type, schema: PreferenceSchema) -> set:
    inherited = set()
    for base in cls.__mro__:
        inherited.update(getattr(base, "_preference_accessors", ()))
    reserved = {schema.attribute}
    for name in dir(cls):
        if name.startswith("__") or name in inherited:
            continue
        reserved.add(name)
    return reserved


def install_preferences(cls: type, schema: PreferenceSchema) -> type:
    """Register ``schema`` on ``cls`` and generate its accessors.

    Every preference gets a read/write property; boolean preferences also get
    an ``is_<name>`` query property.
    """
    reserved = _reserved_names(cls, schema)
    installed: List[str] = []
    for pref in schema:
        for accessor in (pref.name, pref.query_name):
            if accessor is not None and accessor in reserved:
                raise PreferenceDefinitionError(
                    f"Preference '{pref.name}' would shadow "
                    f"'{cls.__name__}.{accessor}'"
                )

    for pref in schema:
        setattr(cls, pref.name, _make_accessor(pref))
        installed.append(pref.name)
        if pref.query_name is not None:
            setattr(cls, pref.query_name, _make_query(pref))
            installed.append(pref.query_name)

    # Plain classes without the mixin still need the generic accessors.
    for method in ("read_preference_attribute", "write_preference_attribute"):
        if not hasattr(cls, method):
            setattr(cls, method, getattr(HasPreferences, method))

    setattr(cls, "__preferences__", schema)
    setattr(cls, "_preferences_attribute", schema.attribute)
    setattr(cls, "_preference_accessors", tuple(installed))
    register_schema(cls, schema)
    logger.debug(
        "Installed %d preference accessor(s) on %s: %s",
        len(installed),
        cls.__name__,
        ", ".join(installed),
    )
    return cls


def _collect_validators(cls: type, schema: Optional[PreferenceSchema]) -> Dict[str, List[Callable]]:
    validators: Dict[str, List[Callable]] = {}
    for base in reversed(cls.__mro__[1:]):
        for name, funcs in getattr(base, "_preference_validators", {}).items():
            validators.setdefault(name, [])
            validators[name].extend(f for f in funcs if f not in validators[name])

    for value in vars(cls).values():
        if hasattr(value, "_validator_for"):
            for name in getattr(value, "_validator_for"):
                if schema is None or name not in schema:
                    raise NameError(
                        f"Validator for non-existent preference '{name}'"
                    )
                validators.setdefault(name, []).append(value)
    return validators


# --- Mixin ---
class HasPreferences:
    """Mixin giving a host class a typed preference map stored in one attribute.

    Example:
        class Company(HasPreferences, Base):
            __tablename__ = "companies"
            id: Mapped[int] = mapped_column(primary_key=True)
            preferences = preference_column()

            __preferences__ = preference_map(
                preference("taxable", "boolean", required=True),
                preference("max_invoice_items", "integer"),
            )

        company = Company()
        company.taxable = True
        company.is_taxable       # True
        company.is_valid()       # True
    """

    __preferences__ = None
    _preferences_attribute = DEFAULT_ATTRIBUTE
    _preference_accessors = ()
    _preference_validators = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        # Accessors go in before the host framework (e.g. SQLAlchemy) maps the class.
        schema = cls.__dict__.get("__preferences__")
        if schema is not None:
            if not isinstance(schema, PreferenceSchema):
                raise PreferenceDefinitionError(
                    f"{cls.__name__}.__preferences__ must be built with "
                    f"preference_map(), got {type(schema).__name__}"
                )
            install_preferences(cls, schema)
        cls._preference_validators = _collect_validators(cls, cls.preference_schema())
        super().__init_subclass__(**kwargs)

    # --- Class-level queries ---
    @classmethod
    def preference_schema(cls) -> Optional[PreferenceSchema]:
        return lookup_schema(cls)

    @classmethod
    def preference_groups(cls) -> Tuple[PreferenceGroup, ...]:
        schema = cls.preference_schema()
        return schema.groups if schema is not None else ()

    @classmethod
    def preferences_attribute(cls) -> str:
        return cls._preferences_attribute

    # --- Generic accessors ---
    def read_preference_attribute(self, name: str, default: Any = None) -> Any:
        return _read(self, type(self)._preferences_attribute, str(name), default)

    def write_preference_attribute(self, name: str, value: Any) -> None:
        _write(self, type(self)._preferences_attribute, str(name), value)

    def preference_store(self) -> PreferenceStore:
        schema = type(self).preference_schema()
        if schema is None:
            raise PreferenceDefinitionError(
                f"{type(self).__name__} declares no preferences"
            )
        return PreferenceStore(self, schema)

    # --- Validation ---
    def validate_preferences(self) -> PreferenceErrors:
        """Run generated and host-defined preference rules; never raises."""
        schema = type(self).preference_schema()
        if schema is None:
            errors = PreferenceErrors()
        else:
            store = getattr(self, schema.attribute, None)
            errors = PreferenceErrors(validate(schema, store))

        for name, funcs in type(self)._preference_validators.items():
            value = getattr(self, name)
            for func in funcs:
                try:
                    func(self, value)
                except ValueError as exc:
                    errors.add(name, str(exc))

        if errors:
            logger.debug(
                "%s failed preference validation: %s",
                type(self).__name__,
                errors.to_dict(),
            )
        self._preference_errors = errors
        return errors

    def is_valid(self) -> bool:
        return not self.validate_preferences()

    @property
    def preference_errors(self) -> PreferenceErrors:
        """Errors from the most recent validation run."""
        return getattr(self, "_preference_errors", None) or PreferenceErrors()
