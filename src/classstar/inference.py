"""
Slot inference engine.

A slot spec is either a bare field name or a sequence
``(name, [initform], key, value, ...)``. The positional initform is present
exactly when the part after the name has odd length:

    "x"                         name only
    ("x", 5)                    initform 5
    ("x", "type", int)          declared type, no initform
    ("x", 5, "type", int)       both

``process_slot`` completes a spec: it synthesizes a missing initform from the
declared type through an initform strategy, and a missing type from the
initform value through a type strategy.
"""

import collections.abc as abc
import logging
import numbers
from dataclasses import dataclass, field, MISSING
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, get_origin

from classstar.exceptions import DefinitionError

logger = logging.getLogger(__name__)

TYPE_OPTION = "type"
SLOT_INFERENCE_DEBUG_TEMPLATE = "SLOT INFERENCE: {slot_name} - declared_type={declared_type}, synthesized {what}={value!r}"


class _Unbound:
    """Initform of a required field that has not been given a value yet."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "<unbound>"

    def __reduce__(self):
        return (_Unbound, ())


UNBOUND = _Unbound()


@dataclass(frozen=True)
class _Category:
    """One zero-value category: concrete bases, accepted abstract types, zero builder."""

    name: str
    types: Tuple[type, ...]
    abstract: Tuple[type, ...]
    make_zero: Callable[[type], Any]


# Checked in order; the first matching category wins
_CATEGORIES = (
    _Category("text", (str,), (), lambda base: ""),
    _Category("boolean", (bool,), (), lambda base: False),
    _Category("sequence", (list,), (abc.Sequence, abc.MutableSequence), lambda base: []),
    _Category("array", (tuple, bytes, bytearray), (), lambda base: base()),
    _Category("mapping", (dict,), (abc.Mapping, abc.MutableMapping), lambda base: {}),
    _Category("integer", (int,), (numbers.Integral,), lambda base: 0),
    _Category("complex", (complex,), (numbers.Complex,), lambda base: 0j),
    _Category("real", (float,), (numbers.Real, numbers.Number), lambda base: 0.0),
)


def _find_category(tp) -> Tuple[Optional[_Category], Optional[type]]:
    """Return the first category ``tp`` belongs to and the matched base type."""
    # list[int], typing.Dict[str, int] and friends match through their origin
    origin = get_origin(tp)
    if isinstance(origin, type):
        tp = origin
    if not isinstance(tp, type):
        return None, None

    for category in _CATEGORIES:
        for base in category.types:
            if issubclass(tp, base):
                return category, base
        if tp in category.abstract:
            return category, category.types[0]

    # Any other number (Fraction, Decimal, numbers.Rational) is a general real
    if issubclass(tp, numbers.Number):
        return _CATEGORIES[-1], float
    return None, None


def zero_value(tp) -> Any:
    """
    Return the canonical empty value for a declared type.

    Categories are tried in a fixed order (text, boolean, sequence,
    fixed-size array, mapping, integer, complex, real) so that ``bool`` is
    never mistaken for ``int`` and ``int`` never for ``complex``. Any other
    ``numbers.Number`` type falls into the real category.

    Raises:
        DefinitionError: If ``tp`` belongs to none of the categories
    """
    category, base = _find_category(tp)
    if category is None:
        raise DefinitionError(f"No zero value for type {tp!r}")
    return category.make_zero(base)


def _type_of_value(value) -> type:
    for category in _CATEGORIES:
        for base in category.types:
            if isinstance(value, base):
                return base
    if isinstance(value, numbers.Number):
        return numbers.Real
    return type(value)


def normalize_slot(raw) -> tuple:
    """Normalize a raw slot spec to tuple form; a bare name becomes ``(name,)``."""
    if isinstance(raw, str):
        spec = (raw,)
    elif isinstance(raw, (list, tuple)):
        spec = tuple(raw)
    else:
        raise DefinitionError(f"Invalid slot spec {raw!r}: expected a name or a sequence")

    if not spec or not isinstance(spec[0], str) or not spec[0].isidentifier():
        raise DefinitionError(f"Invalid slot spec {raw!r}: first element must be a field name")
    return spec


def _split_spec(spec: tuple) -> Tuple[bool, Any, tuple]:
    rest = spec[1:]
    if len(rest) % 2:
        return True, rest[0], rest[1:]
    return False, None, rest


def parse_initform(raw) -> Tuple[bool, Any]:
    """Return ``(found, value)`` for the positional initform of a slot spec."""
    found, value, _ = _split_spec(normalize_slot(raw))
    return found, value


def parse_options(raw) -> Dict[str, Any]:
    """
    Return the key/value options of a slot spec.

    A leading colon on a key is dropped. When a key repeats, the first
    occurrence wins.
    """
    spec = normalize_slot(raw)
    _, _, pairs = _split_spec(spec)
    options = {}
    for key, value in zip(pairs[::2], pairs[1::2]):
        if not isinstance(key, str):
            raise DefinitionError(f"Invalid option key {key!r} in slot spec {spec!r}")
        options.setdefault(key.lstrip(":"), value)
    return options


def parse_type(raw) -> Optional[Any]:
    """Return the declared type of a slot spec, or None."""
    return parse_options(raw).get(TYPE_OPTION)


def infer_type(raw) -> Optional[type]:
    """
    Infer a slot type from its initform value.

    The value is classified into the zero-value categories and the category's
    base type is returned (``5`` gives ``int``, ``[1]`` gives ``list``). Values
    outside every category give their exact runtime type. Returns None when the
    spec has no initform.
    """
    found, value = parse_initform(raw)
    if not found:
        return None
    return _type_of_value(value)


class Strategy(Enum):
    """
    Built-in initform inference strategies.

    Each member is callable with the (possibly absent) declared type and
    returns the default value to use:

    - ZERO_VALUE: zero value of the type, DefinitionError otherwise
    - REQUIRED: zero value of the type, else ``UNBOUND`` (reading the field
      before setting it raises UnboundFieldError)
    - NIL_FALLBACK: zero value of the type, else None
    """

    ZERO_VALUE = "zero-value"
    REQUIRED = "required"
    NIL_FALLBACK = "nil-fallback"

    def __call__(self, tp=None):
        if tp is not None:
            try:
                return zero_value(tp)
            except DefinitionError as e:
                if self is Strategy.ZERO_VALUE:
                    raise DefinitionError(f"missing default value: {e}") from e
        elif self is Strategy.ZERO_VALUE:
            raise DefinitionError("missing default value: slot has neither an initform nor a type")

        return UNBOUND if self is Strategy.REQUIRED else None


def resolve_strategy(strategy) -> Optional[Callable]:
    """
    Resolve a strategy designator once, at definition time.

    Accepts a ``Strategy`` member, its string value (``"nil-fallback"``), a
    custom callable, or None (inference disabled).
    """
    if strategy is None or isinstance(strategy, Strategy):
        return strategy
    if isinstance(strategy, str):
        try:
            return Strategy(strategy)
        except ValueError:
            raise DefinitionError(f"Unknown inference strategy {strategy!r}") from None
    if callable(strategy):
        return strategy
    raise DefinitionError(f"Inference strategy must be a Strategy, a name or a callable, got {strategy!r}")


def _call_custom(strategy: Callable, argument, slot_name: str):
    try:
        return strategy(argument)
    except DefinitionError:
        raise
    except Exception as e:
        raise DefinitionError(f"Inference strategy {strategy!r} failed for slot {slot_name!r}: {e}") from e


def process_slot(raw, initform_strategy=None, type_strategy=None) -> tuple:
    """
    Complete a slot spec with an inferred initform or type.

    An explicit initform is never replaced. With an initform present, a type
    is appended only when none is declared and ``type_strategy`` is given.
    Without an initform, one is synthesized from the declared type when
    ``initform_strategy`` is given; otherwise the spec is returned as is.

    Returns:
        The completed spec in tuple form
    """
    spec = normalize_slot(raw)
    initform_strategy = resolve_strategy(initform_strategy)
    type_strategy = resolve_strategy(type_strategy)
    found, initform = parse_initform(spec)
    options = parse_options(spec)

    if found:
        if TYPE_OPTION in options or type_strategy is None:
            return spec
        if isinstance(type_strategy, Strategy):
            inferred = infer_type(spec)
        else:
            inferred = _call_custom(type_strategy, initform, spec[0])
        logger.debug(SLOT_INFERENCE_DEBUG_TEMPLATE.format(
            slot_name=spec[0], declared_type=None, what="type", value=inferred
        ))
        return spec + (TYPE_OPTION, inferred)

    if initform_strategy is None:
        return spec

    declared_type = options.get(TYPE_OPTION)
    if isinstance(initform_strategy, Strategy):
        value = initform_strategy(declared_type)
    else:
        value = _call_custom(initform_strategy, declared_type, spec[0])
    logger.debug(SLOT_INFERENCE_DEBUG_TEMPLATE.format(
        slot_name=spec[0], declared_type=declared_type, what="initform", value=value
    ))
    return (spec[0], value) + spec[1:]


@dataclass(frozen=True)
class SlotSpec:
    """A completed slot: name, initform and type (MISSING when absent), other options."""

    name: str
    initform: Any = MISSING
    type: Any = MISSING
    options: Dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def has_initform(self) -> bool:
        return self.initform is not MISSING

    @property
    def is_required(self) -> bool:
        return self.initform is UNBOUND


def resolve_slot(raw) -> SlotSpec:
    """Turn a (processed) slot spec into a ``SlotSpec`` record."""
    spec = normalize_slot(raw)
    found, initform = parse_initform(spec)
    options = parse_options(spec)
    slot_type = options.pop(TYPE_OPTION, None)
    return SlotSpec(
        name=spec[0],
        initform=initform if found else MISSING,
        type=MISSING if slot_type is None else slot_type,
        options=options,
    )
