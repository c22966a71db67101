"""
Name-to-class registry.

A ``TypeRegistry`` maps class names to the class currently active under that
name. The process-wide instance returned by ``default_registry()`` is used by
every operation that is not handed an explicit ``registry``.

Besides plain binding, the registry provides:
1. ``scoped_override()``: temporarily bind a name to another registered class,
   restoring the previous binding on every exit path
2. ``original_class()``: the class a layered (self-inheriting) definition
   superseded
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from classstar.exceptions import RegistryError

logger = logging.getLogger(__name__)

# Class attribute recording the name a class was declared under
DECLARED_NAME_ATTR = "__classstar_name__"


def declared_name(cls: type) -> str:
    """Name ``cls`` was declared under (its ``__name__`` if not built by classstar)."""
    return cls.__dict__.get(DECLARED_NAME_ATTR, cls.__name__)


class TypeRegistry:
    """Mapping of class name to class object, at most one binding per name."""

    def __init__(self):
        self._classes: Dict[str, type] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._classes

    def __len__(self) -> int:
        return len(self._classes)

    def __repr__(self) -> str:
        return f"TypeRegistry({sorted(self._classes)})"

    def names(self) -> List[str]:
        return list(self._classes)

    def register(self, name: str, class_object: type) -> None:
        """Bind ``name`` to ``class_object``, replacing any prior binding."""
        previous = self._classes.get(name)
        self._classes[name] = class_object
        logger.debug(f"Registered {name!r} -> {class_object!r} (previous: {previous!r})")

    def lookup(self, name: str) -> Optional[type]:
        """Class bound to ``name``, or None."""
        return self._classes.get(name)

    def unregister(self, name: str) -> None:
        """Remove the binding of ``name`` if there is one."""
        if self._classes.pop(name, None) is not None:
            logger.debug(f"Unregistered {name!r}")

    def rebind(self, from_name: str, to_name: str) -> None:
        """
        Bind ``from_name`` to the class currently bound to ``to_name``.

        Raises:
            RegistryError: If ``to_name`` is unbound
        """
        target = self._classes.get(to_name)
        if target is None:
            raise RegistryError(to_name, f"Cannot rebind {from_name!r}: no class registered under {to_name!r}")
        self.register(from_name, target)

    def clear(self) -> None:
        self._classes.clear()

    @contextmanager
    def scoped_override(self, name: str, override_name: str) -> Iterator[type]:
        """
        Bind ``name`` to the class registered under ``override_name`` for the
        extent of a ``with`` block.

        The binding of ``name`` in effect before the block (including no
        binding at all) is restored however the block exits. Exceptions raised
        in the block propagate unchanged.

        Usage:
            with registry.scoped_override("Storage", "FakeStorage") as storage_cls:
                run_job()   # looks up "Storage", gets FakeStorage
        """
        old = self.lookup(name)
        self.rebind(name, override_name)
        logger.debug(f"Overriding {name!r} with {override_name!r}")
        try:
            yield self._classes[name]
        finally:
            if old is None:
                self.unregister(name)
            else:
                self.register(name, old)
            logger.debug(f"Restored {name!r} after override with {override_name!r}")

    def call_with_override(self, name: str, override_name: str, body: Callable[..., Any], *args, **kwargs) -> Any:
        """Call ``body(*args, **kwargs)`` inside ``scoped_override`` and return its result."""
        with self.scoped_override(name, override_name):
            return body(*args, **kwargs)

    def original_class(self, name: str) -> Optional[type]:
        """
        Class superseded by a layered definition of ``name``.

        Scans the direct bases of the class bound to ``name`` for one declared
        under the same name. Returns None if ``name`` is unbound or was never
        layered.
        """
        current = self.lookup(name)
        if current is None:
            return None
        return next((base for base in current.__bases__ if declared_name(base) == name), None)


_default_registry = TypeRegistry()


def default_registry() -> TypeRegistry:
    """The process-wide registry."""
    return _default_registry


def _registry(registry: Optional[TypeRegistry]) -> TypeRegistry:
    return _default_registry if registry is None else registry


def register_class(name: str, class_object: type, registry: Optional[TypeRegistry] = None) -> None:
    _registry(registry).register(name, class_object)


def find_class(name: str, registry: Optional[TypeRegistry] = None) -> Optional[type]:
    return _registry(registry).lookup(name)


def rebind_class(from_name: str, to_name: str, registry: Optional[TypeRegistry] = None) -> None:
    _registry(registry).rebind(from_name, to_name)


def scoped_override(name: str, override_name: str, registry: Optional[TypeRegistry] = None):
    """Context manager overriding ``name`` in ``registry`` (default: process-wide)."""
    return _registry(registry).scoped_override(name, override_name)


def original_class(name: str, registry: Optional[TypeRegistry] = None) -> Optional[type]:
    return _registry(registry).original_class(name)
