"""Error taxonomy for class-star definitions."""

from typing import Optional


class ClassStarError(Exception):
    """Base class for all classstar errors."""


class DefinitionError(ClassStarError):
    """Raised while a class is being defined.

    Covers slot types without a supported zero value (under the default
    zero-value strategy), malformed slot specs, unknown strategies and
    supertypes that cannot be resolved.
    """


class RegistryError(ClassStarError):
    """Raised when a registry operation refers to an unbound class name."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"No class registered under {name!r}")


class UnboundFieldError(ClassStarError, AttributeError):
    """Raised when a required field is read before it was given a value.

    Subclasses AttributeError so ``hasattr`` and ``getattr(obj, name, default)``
    treat an unset required field as missing.
    """

    def __init__(self, class_name: str, field_name: str):
        self.class_name = class_name
        self.field_name = field_name
        super().__init__(
            f"Field {field_name!r} of {class_name} is required but was never set"
        )
