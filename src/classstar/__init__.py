"""
classstar: Class definitions with inferred slot defaults.

This package builds dataclasses from partial slot declarations, completing
missing defaults and types through pluggable inference strategies. It keeps a
name-to-class registry that supports layered (self-inheriting) redefinitions
and scoped overrides of registered classes.
"""

__version__ = "0.1.0"

from .class_factory import (
    ClassStarFactory,
    class_star,
    define_class,
)
from .config import (
    get_default_initform_inference,
    get_default_type_inference,
    inference_defaults,
    reset_defaults,
    set_default_initform_inference,
    set_default_type_inference,
)
from .cycles import has_cycle
from .exceptions import (
    ClassStarError,
    DefinitionError,
    RegistryError,
    UnboundFieldError,
)
from .inference import (
    UNBOUND,
    SlotSpec,
    Strategy,
    infer_type,
    parse_initform,
    parse_type,
    process_slot,
    resolve_slot,
    zero_value,
)
from .registry import (
    TypeRegistry,
    default_registry,
    find_class,
    original_class,
    rebind_class,
    register_class,
    scoped_override,
)

__all__ = [
    # Expander
    "define_class",
    "class_star",
    "ClassStarFactory",
    # Registry
    "TypeRegistry",
    "default_registry",
    "register_class",
    "find_class",
    "rebind_class",
    "scoped_override",
    "original_class",
    # Cycle detection
    "has_cycle",
    # Inference
    "Strategy",
    "UNBOUND",
    "SlotSpec",
    "zero_value",
    "infer_type",
    "parse_initform",
    "parse_type",
    "process_slot",
    "resolve_slot",
    # Configuration
    "set_default_initform_inference",
    "get_default_initform_inference",
    "set_default_type_inference",
    "get_default_type_inference",
    "inference_defaults",
    "reset_defaults",
    # Errors
    "ClassStarError",
    "DefinitionError",
    "RegistryError",
    "UnboundFieldError",
]
