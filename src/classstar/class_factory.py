"""Class definition expander: builds dataclasses from partial slot declarations."""

# Standard library imports
import copy
import dataclasses
import functools
import inspect
import itertools
import logging
from dataclasses import MISSING, fields, is_dataclass, make_dataclass
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple, Union, get_origin

from classstar.config import get_default_initform_inference, get_default_type_inference
from classstar.cycles import has_cycle
from classstar.exceptions import DefinitionError, UnboundFieldError
from classstar.inference import UNBOUND, SlotSpec, process_slot, resolve_slot, resolve_strategy
from classstar.registry import DECLARED_NAME_ATTR, TypeRegistry, declared_name, default_registry

logger = logging.getLogger(__name__)

# Marks a per-call strategy option that was not supplied
DEFAULT = object()

HIDDEN_NAME_TEMPLATE = "{name}#{index}"
SLOT_FIELD_DEBUG_TEMPLATE = "SLOT FIELD CREATION: {class_name}.{field_name} - type={field_type}, default={default!r}, kw_only={kw_only}"

# Options accepted by dataclasses.field(); any other slot option lands in the field metadata
FIELD_OPTIONS = frozenset({"init", "repr", "hash", "compare", "kw_only", "metadata"})

# Class-level options accepted by define_class()
CLASS_OPTIONS = frozenset({"namespace", "frozen", "eq", "order", "unsafe_hash", "kw_only", "module", "doc"})

# Class body entries never copied into a generated class's namespace
_SKIPPED_BODY_ATTRS = frozenset({
    "__dict__", "__weakref__", "__module__", "__qualname__", "__doc__",
    "__annotations__", "__annotate__", "__annotate_func__", "__annotations_cache__",
    "__static_attributes__", "__firstlineno__",
})

# Hidden names are never reused within a process
_hidden_counter = itertools.count(1)


def _hidden_name(name: str, registry: TypeRegistry) -> str:
    while True:
        candidate = HIDDEN_NAME_TEMPLATE.format(name=name, index=next(_hidden_counter))
        if candidate not in registry:
            return candidate


def _has_default(f: dataclasses.Field) -> bool:
    return f.default is not MISSING or f.default_factory is not MISSING


class UnboundFieldBindings:
    """Methods bound onto classes that have required (``UNBOUND``) fields."""

    @staticmethod
    def create_getattribute(original: Callable[[Any, str], Any]) -> Callable[[Any, str], Any]:
        """Wrap ``original`` so reading an unset required field raises UnboundFieldError."""
        def __getattribute__(self, name: str) -> Any:
            value = original(self, name)
            if value is UNBOUND:
                raise UnboundFieldError(declared_name(type(self)), name)
            return value

        __getattribute__._guards_unbound = True
        return __getattribute__

    @staticmethod
    def create_repr() -> Callable[[Any], str]:
        """Create a ``__repr__`` that shows unset required fields instead of raising."""
        def __repr__(self) -> str:
            values = ", ".join(
                f"{f.name}={object.__getattribute__(self, f.name)!r}"
                for f in fields(self) if f.repr
            )
            return f"{type(self).__qualname__}({values})"

        return __repr__


class ClassStarFactory:
    """Builds and binds the concrete classes behind ``define_class``."""

    @staticmethod
    def _resolve_bases(name: str, supers: Tuple[Union[str, type], ...], registry: TypeRegistry) -> Tuple[type, ...]:
        """
        Turn the supertype list into classes.

        A name that refers to the class being defined while that name is still
        unbound is dropped: layering over nothing defines the first version.
        """
        bases = []
        for entry in supers:
            if isinstance(entry, str):
                cls = registry.lookup(entry)
                if cls is None:
                    if entry == name:
                        logger.debug(f"Dropping self-reference to unbound {name!r} from its supers")
                        continue
                    raise DefinitionError(f"Cannot define {name!r}: unknown superclass {entry!r}")
                bases.append(cls)
            elif isinstance(entry, type):
                bases.append(entry)
            else:
                raise DefinitionError(f"Cannot define {name!r}: superclass must be a class or a name, got {entry!r}")
        return tuple(bases)

    @staticmethod
    def _build_field_definitions(class_name: str, slots: List[SlotSpec], bases: Tuple[type, ...]) -> List[Tuple[str, Any, dataclasses.Field]]:
        """
        Convert resolved slots to ``make_dataclass`` field definitions.

        Unhashable initforms become default factories returning a fresh copy.
        A field without a default that follows a positional field with one is
        made keyword-only so declaration order survives.
        """
        defaulted_before = any(
            _has_default(f) and f.init and not f.kw_only
            for base in bases if is_dataclass(base)
            for f in fields(base)
        )
        definitions = []

        for slot in slots:
            field_kwargs = {key: value for key, value in slot.options.items() if key in FIELD_OPTIONS}
            extra = {key: value for key, value in slot.options.items() if key not in FIELD_OPTIONS}
            if extra:
                field_kwargs["metadata"] = {**field_kwargs.get("metadata", {}), **extra}

            if slot.has_initform:
                if type(slot.initform).__hash__ is None:
                    field_kwargs["default_factory"] = functools.partial(copy.deepcopy, slot.initform)
                else:
                    field_kwargs["default"] = slot.initform
            elif defaulted_before and field_kwargs.get("init", True):
                field_kwargs.setdefault("kw_only", True)

            if slot.has_initform and field_kwargs.get("init", True) and not field_kwargs.get("kw_only", False):
                defaulted_before = True

            field_type = Any if slot.type is MISSING else slot.type
            definitions.append((slot.name, field_type, dataclasses.field(**field_kwargs)))

            logger.debug(SLOT_FIELD_DEBUG_TEMPLATE.format(
                class_name=class_name,
                field_name=slot.name,
                field_type=field_type,
                default=slot.initform,
                kw_only=field_kwargs.get("kw_only", False),
            ))

        return definitions

    @staticmethod
    def create_class(class_name: str, declared: str, bases: Tuple[type, ...], processed_slots: List[tuple], options: Dict[str, Any]) -> type:
        """
        Build a dataclass named ``class_name`` recording ``declared`` as its
        declared name. Does not touch any registry.
        """
        slots = [resolve_slot(spec) for spec in processed_slots]
        names = [slot.name for slot in slots]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise DefinitionError(f"Cannot define {declared!r}: duplicate slots {duplicates}")

        namespace = dict(options.get("namespace") or {})
        namespace[DECLARED_NAME_ATTR] = declared
        if options.get("doc") is not None:
            namespace["__doc__"] = options["doc"]

        # Frozen state follows the first dataclass base unless given
        frozen = options.get("frozen")
        if frozen is None:
            frozen = next(
                (base.__dataclass_params__.frozen for base in bases if is_dataclass(base)),
                False,
            )

        dataclass_kwargs = {key: options[key] for key in ("eq", "order", "unsafe_hash", "kw_only") if key in options}

        try:
            cls = make_dataclass(
                class_name,
                ClassStarFactory._build_field_definitions(class_name, slots, bases),
                bases=bases,
                namespace=namespace,
                frozen=frozen,
                **dataclass_kwargs,
            )
        except (TypeError, ValueError) as e:
            raise DefinitionError(f"Cannot define {declared!r}: {e}") from e

        # make_dataclass() attributes the class to this module; use the declaring one
        cls.__module__ = options.get("module") or __name__

        # Inherited required fields count too: the generated __repr__ would read them
        if any(f.default is UNBOUND for f in fields(cls)):
            original = cls.__getattribute__
            if not getattr(original, "_guards_unbound", False):
                cls.__getattribute__ = UnboundFieldBindings.create_getattribute(original)
            if "__repr__" not in namespace:
                cls.__repr__ = UnboundFieldBindings.create_repr()

        return cls


def _check_class_options(name: str, options: Dict[str, Any]) -> None:
    unknown = sorted(set(options) - CLASS_OPTIONS)
    if unknown:
        raise DefinitionError(f"Cannot define {name!r}: unknown class options {unknown}")


def _caller_module() -> str:
    # Frame of whoever called define_class()
    frame = inspect.currentframe().f_back.f_back
    try:
        return frame.f_globals.get("__name__", "__main__")
    finally:
        del frame


def define_class(
    name: str,
    supers=(),
    slots=(),
    *,
    registry: Optional[TypeRegistry] = None,
    initform_inference=DEFAULT,
    type_inference=DEFAULT,
    **options,
) -> type:
    """
    Define a class from partial slot declarations and bind it under ``name``.

    Each slot is completed by ``process_slot`` with the given strategies, or
    the process-wide defaults when they are not supplied. When ``supers``
    reaches the class currently registered under ``name`` (a layered
    definition), the class is built under a fresh hidden name with the
    process-wide default strategies (per-call strategies are not consulted on
    this path) and ``name`` is rebound to it, so ``original_class(name)``
    returns the superseded class.

    Args:
        name: Name to bind the class under
        supers: Base classes, as classes or registered names
        slots: Raw slot specs (see ``classstar.inference``)
        registry: Registry to use (default: process-wide)
        initform_inference: Strategy synthesizing missing initforms
        type_inference: Strategy synthesizing missing types
        **options: Class options (namespace, frozen, eq, order, unsafe_hash,
            kw_only, module, doc)

    Returns:
        The class bound to ``name`` afterwards

    Raises:
        DefinitionError: If a slot cannot be completed or the class cannot be
            built; the registry is left unchanged
    """
    registry = default_registry() if registry is None else registry
    supers = (supers,) if isinstance(supers, (str, type)) else tuple(supers)
    slots = (slots,) if isinstance(slots, str) else tuple(slots)
    _check_class_options(name, options)
    if "module" not in options:
        options["module"] = _caller_module()

    if has_cycle(name, supers, registry):
        if initform_inference is not DEFAULT or type_inference is not DEFAULT:
            logger.debug(f"Layered definition of {name!r}: per-call inference strategies are ignored")
        initform_strategy = get_default_initform_inference()
        type_strategy = get_default_type_inference()
        processed = [process_slot(spec, initform_strategy, type_strategy) for spec in slots]

        hidden = _hidden_name(name, registry)
        bases = ClassStarFactory._resolve_bases(name, supers, registry)
        cls = ClassStarFactory.create_class(hidden, name, bases, processed, options)

        registry.register(hidden, cls)
        registry.rebind(name, hidden)
        logger.debug(f"Layered {name!r} over {registry.original_class(name)!r} as {hidden!r}")
        return cls

    initform_strategy = get_default_initform_inference() if initform_inference is DEFAULT else initform_inference
    type_strategy = get_default_type_inference() if type_inference is DEFAULT else type_inference
    initform_strategy = resolve_strategy(initform_strategy)
    type_strategy = resolve_strategy(type_strategy)
    processed = [process_slot(spec, initform_strategy, type_strategy) for spec in slots]

    bases = ClassStarFactory._resolve_bases(name, supers, registry)
    cls = ClassStarFactory.create_class(name, name, bases, processed, options)
    registry.register(name, cls)
    return cls


def _is_slot_value(attr_name: str, value: Any) -> bool:
    if attr_name.startswith("__") and attr_name.endswith("__"):
        return False
    return not (callable(value) or hasattr(value, "__get__") or isinstance(value, type))


def _slots_from_class_body(cls: type) -> Tuple[List[tuple], Dict[str, Any]]:
    """
    Split a class body into slot specs and the remaining namespace.

    Annotated names become slots first, in annotation order, then plain data
    attributes in definition order. ``ClassVar`` annotations, methods,
    descriptors and dunders stay in the namespace.
    """
    try:
        annotations = inspect.get_annotations(cls, eval_str=True)
    except Exception as e:
        raise DefinitionError(f"Cannot evaluate annotations of {cls.__qualname__}: {e}") from e

    body = {key: value for key, value in cls.__dict__.items() if key not in _SKIPPED_BODY_ATTRS}
    slots = []

    for attr_name, annotation in annotations.items():
        if annotation is ClassVar or get_origin(annotation) is ClassVar:
            continue
        if attr_name in body:
            slots.append((attr_name, body.pop(attr_name), "type", annotation))
        else:
            slots.append((attr_name, "type", annotation))

    for attr_name, value in list(body.items()):
        if _is_slot_value(attr_name, value) and attr_name not in annotations:
            slots.append((attr_name, body.pop(attr_name)))

    return slots, body


def class_star(
    cls=None,
    *,
    registry: Optional[TypeRegistry] = None,
    name: Optional[str] = None,
    initform_inference=DEFAULT,
    type_inference=DEFAULT,
    **options,
):
    """
    Decorator defining a class from a class statement.

    Can be used with or without parameters:

        @class_star
        class Point:
            x: float
            y: float
            label = "origin"

        with inference_defaults(initform=Strategy.REQUIRED):
            @class_star
            class Point(Point):    # layers over the current Point
                owner: Any

    A layered definition uses the default strategies, so change them with
    ``inference_defaults`` rather than per-call options. Annotated names and plain data attributes become slots; methods and other
    class attributes are kept. The class bound to the name afterwards is
    returned. Methods using zero-argument ``super()`` refer to the decorated
    class statement, not the generated class; call ``super(cls, self)``
    explicitly instead.
    """
    def decorator(actual_cls):
        slots, body = _slots_from_class_body(actual_cls)
        class_options = {"module": actual_cls.__module__, "doc": actual_cls.__doc__, **options}
        class_options["namespace"] = {**body, **options.get("namespace", {})}
        bases = tuple(base for base in actual_cls.__bases__ if base is not object)

        return define_class(
            name or actual_cls.__name__,
            bases,
            slots,
            registry=registry,
            initform_inference=initform_inference,
            type_inference=type_inference,
            **class_options,
        )

    # Handle both @class_star and @class_star(...) usage
    if cls is None:
        return decorator
    return decorator(cls)
