"""Tests for the @class_star decorator front end."""
from dataclasses import fields
from typing import Any, ClassVar, List

import pytest

from classstar import (
    DefinitionError,
    Strategy,
    UnboundFieldError,
    class_star,
    find_class,
    inference_defaults,
    original_class,
)


def test_decorator_without_parentheses():
    """Test @class_star on a plain class statement."""
    @class_star
    class Point:
        """A point."""

        x: int
        y: float = 1.5
        label = "origin"

        def shifted(self, dx):
            return self.x + dx

    assert find_class("Point") is Point
    assert [f.name for f in fields(Point)] == ["x", "y", "label"]
    assert {f.name: f.type for f in fields(Point)} == {"x": int, "y": float, "label": str}
    assert Point.__doc__ == "A point."
    assert Point.__module__ == __name__

    point = Point()
    assert (point.x, point.y, point.label) == (0, 1.5, "origin")
    assert point.shifted(2) == 2


def test_decorator_with_options(registry):
    """Test @class_star(...) with a registry, name and strategy."""
    @class_star(registry=registry, name="Account", initform_inference=Strategy.REQUIRED)
    class _Account:
        owner: object
        balance: int

    assert registry.lookup("Account") is _Account
    assert find_class("Account") is None

    account = _Account()
    assert account.balance == 0
    with pytest.raises(UnboundFieldError):
        account.owner


def test_decorator_keeps_properties_and_classvars(registry):
    @class_star(registry=registry)
    class Box:
        kind: ClassVar[str] = "box"
        items: List[int]

        @property
        def size(self):
            return len(self.items)

        @staticmethod
        def unit():
            return "items"

    assert [f.name for f in fields(Box)] == ["items"]
    box = Box(items=[1, 2])
    assert box.size == 2
    assert Box.kind == "box"
    assert Box.unit() == "items"
    # Zero value of List[int] through its origin
    assert Box().items == []


def test_decorator_layers_class_over_itself(registry):
    """Test that `class Foo(Foo)` layers over the current Foo."""
    @class_star(registry=registry)
    class Foo:
        x = 1

    first = Foo

    @class_star(registry=registry)
    class Foo(Foo):
        y = 2

    assert registry.lookup("Foo") is Foo
    assert Foo is not first
    assert original_class("Foo", registry=registry) is first
    foo = Foo()
    assert (foo.x, foo.y) == (1, 2)


def test_decorator_inherits_from_registered_class(registry):
    @class_star(registry=registry)
    class Base:
        x = 1

    @class_star(registry=registry)
    class Child(Base):
        y = 2

    assert issubclass(Child, Base)
    assert original_class("Child", registry=registry) is None


def test_decorator_missing_default_value(registry):
    with pytest.raises(DefinitionError, match="missing default value"):
        @class_star(registry=registry)
        class Broken:
            handle: object

    assert "Broken" not in registry


def test_decorator_evaluates_string_annotations(registry):
    @class_star(registry=registry)
    class Named:
        name: "str"

    assert Named().name == ""


def test_decorator_layers_under_scoped_defaults(registry):
    """Test layering a required field by changing the default strategy."""
    @class_star(registry=registry)
    class Point:
        x: float

    first = Point

    with inference_defaults(initform=Strategy.REQUIRED):
        @class_star(registry=registry)
        class Point(Point):
            owner: Any

    assert issubclass(Point, first)
    point = Point()
    assert point.x == 0.0
    with pytest.raises(UnboundFieldError):
        point.owner


def test_decorator_layered_per_call_strategy_is_ignored(registry):
    @class_star(registry=registry)
    class Point:
        x: float

    with pytest.raises(DefinitionError, match="missing default value"):
        @class_star(registry=registry, initform_inference=Strategy.REQUIRED)
        class Point(Point):
            owner: Any
