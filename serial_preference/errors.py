"""Exceptions raised while declaring or looking up preferences."""


class PreferenceError(Exception):
    """Base class for all serial_preference errors."""


class PreferenceDefinitionError(PreferenceError, TypeError):
    """A preference declaration is invalid.

    Raised while the schema is being built, before any instance exists.
    """


class DuplicatePreferenceError(PreferenceDefinitionError):
    """Two declarations in one schema share a name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Preference '{name}' is declared more than once")
        self.name = name


class UnknownPreferenceError(PreferenceError, KeyError):
    """A preference name is not part of the schema."""

    def __init__(self, name: str, known: tuple = ()) -> None:
        message = f"Unknown preference '{name}'"
        if known:
            message += f". Valid preferences are: {', '.join(known)}."
        super().__init__(message)
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])
