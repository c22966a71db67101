"""Detection of self-referential supertype lists."""

import logging
from typing import Iterable, List, Optional, Union

from classstar.registry import TypeRegistry, default_registry

logger = logging.getLogger(__name__)


def resolve_supers(supers: Iterable[Union[str, type]], registry: TypeRegistry) -> List[type]:
    """Classes named by ``supers``; names resolve through ``registry``, unbound names are skipped."""
    resolved = []
    for entry in supers:
        cls = registry.lookup(entry) if isinstance(entry, str) else entry
        if isinstance(cls, type):
            resolved.append(cls)
    return resolved


def has_cycle(name: str, supers: Iterable[Union[str, type]], registry: Optional[TypeRegistry] = None) -> bool:
    """
    Check whether defining ``name`` with ``supers`` would make it inherit from
    the class currently registered under ``name``.

    The direct membership check runs first; the walk over every super's MRO
    only runs when it fails.
    """
    registry = default_registry() if registry is None else registry
    current = registry.lookup(name)
    if current is None:
        return False

    resolved = resolve_supers(supers, registry)
    if current in resolved:
        logger.debug(f"{name!r} lists its current class directly among its supers")
        return True

    return any(current in cls.__mro__[1:] for cls in resolved)
