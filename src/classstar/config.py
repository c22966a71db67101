"""
Process-wide default inference strategies.

Definitions that do not pass ``initform_inference`` / ``type_inference`` use
the defaults configured here. Cyclic (layered) definitions always use them.

Defaults can be changed for the whole process with the setters, or for a
dynamic extent with ``inference_defaults()``:

    >>> from classstar import Strategy
    >>> from classstar.config import inference_defaults
    >>> with inference_defaults(initform=Strategy.NIL_FALLBACK):
    ...     define_class("Point", slots=["x", "y"])
"""

import contextvars
import logging
from contextlib import contextmanager

from classstar.inference import Strategy, resolve_strategy

logger = logging.getLogger(__name__)

# Sentinel for "leave this default unchanged" in inference_defaults()
KEEP = object()

# Global framework configuration
_default_initform_inference = Strategy.ZERO_VALUE
_default_type_inference = Strategy.ZERO_VALUE

# Scoped overrides installed by inference_defaults(); hold (initform, type)
_scoped_defaults = contextvars.ContextVar("classstar_inference_defaults", default=None)


def set_default_initform_inference(strategy) -> None:
    """
    Set the process-wide initform inference strategy.

    Args:
        strategy: A ``Strategy`` member, its string value, a callable mapping a
            declared type to a default value, or None to disable initform
            synthesis.

    Raises:
        DefinitionError: If ``strategy`` is not a recognised strategy
    """
    global _default_initform_inference
    resolve_strategy(strategy)
    _default_initform_inference = strategy


def get_default_initform_inference():
    """Get the initform inference strategy in effect for the current context."""
    scoped = _scoped_defaults.get()
    if scoped is not None and scoped[0] is not KEEP:
        return scoped[0]
    return _default_initform_inference


def set_default_type_inference(strategy) -> None:
    """
    Set the process-wide type inference strategy.

    Any ``Strategy`` member enables value-based type inference; a callable is
    called with the initform value and must return a type; None disables it.
    """
    global _default_type_inference
    resolve_strategy(strategy)
    _default_type_inference = strategy


def get_default_type_inference():
    """Get the type inference strategy in effect for the current context."""
    scoped = _scoped_defaults.get()
    if scoped is not None and scoped[1] is not KEEP:
        return scoped[1]
    return _default_type_inference


def reset_defaults() -> None:
    """Restore both process-wide defaults to ``Strategy.ZERO_VALUE``."""
    global _default_initform_inference, _default_type_inference
    _default_initform_inference = Strategy.ZERO_VALUE
    _default_type_inference = Strategy.ZERO_VALUE


@contextmanager
def inference_defaults(initform=KEEP, type=KEEP):
    """
    Bind the default strategies for the extent of a ``with`` block.

    Arguments left as ``KEEP`` inherit the value in effect outside the block.
    Nested blocks stack; each exit restores exactly what was in effect before.
    """
    for strategy in (initform, type):
        if strategy is not KEEP:
            resolve_strategy(strategy)

    outer = _scoped_defaults.get()
    if outer is not None:
        initform = outer[0] if initform is KEEP else initform
        type = outer[1] if type is KEEP else type

    token = _scoped_defaults.set((initform, type))
    logger.debug(f"Inference defaults scoped to initform={initform!r}, type={type!r}")
    try:
        yield
    finally:
        _scoped_defaults.reset(token)
