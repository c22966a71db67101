"""Tests for the type registry, scoped overrides and original-class lookup."""
import pytest

from classstar import (
    RegistryError,
    TypeRegistry,
    default_registry,
    define_class,
    find_class,
    original_class,
    rebind_class,
    register_class,
    scoped_override,
)


class Real:
    pass


class Fake:
    pass


def test_register_and_lookup(registry):
    """Test binding and looking up a class."""
    registry.register("Service", Real)
    assert registry.lookup("Service") is Real
    assert "Service" in registry
    assert len(registry) == 1


def test_lookup_missing(registry):
    """Test that unbound names look up as None."""
    assert registry.lookup("Missing") is None
    assert "Missing" not in registry


def test_register_replaces(registry):
    """Test that at most one class is bound per name."""
    registry.register("Service", Real)
    registry.register("Service", Fake)
    assert registry.lookup("Service") is Fake
    assert registry.names() == ["Service"]


def test_unregister(registry):
    registry.register("Service", Real)
    registry.unregister("Service")
    registry.unregister("Service")
    assert registry.lookup("Service") is None


def test_rebind(registry):
    """Test that rebind copies the binding of another name."""
    registry.register("Service", Real)
    registry.register("FakeService", Fake)
    registry.rebind("Service", "FakeService")
    assert registry.lookup("Service") is Fake
    assert registry.lookup("FakeService") is Fake


def test_rebind_unbound_target(registry):
    """Test that rebinding from an unbound name fails and changes nothing."""
    registry.register("Service", Real)
    with pytest.raises(RegistryError) as excinfo:
        registry.rebind("Service", "Missing")
    assert excinfo.value.name == "Missing"
    assert registry.lookup("Service") is Real


def test_module_functions_use_default_registry():
    """Test the process-wide registry helpers."""
    register_class("Service", Real)
    register_class("FakeService", Fake)
    assert find_class("Service") is Real
    assert default_registry().lookup("Service") is Real

    rebind_class("Service", "FakeService")
    assert find_class("Service") is Fake


def test_module_functions_accept_registry(registry):
    register_class("Service", Real, registry=registry)
    assert find_class("Service", registry=registry) is Real
    assert find_class("Service") is None


class TestScopedOverride:
    """Tests for scoped_override."""

    def test_override_and_restore(self, registry):
        """Test that the binding is swapped inside and restored after."""
        registry.register("Service", Real)
        registry.register("FakeService", Fake)

        with registry.scoped_override("Service", "FakeService") as override:
            assert override is Fake
            assert registry.lookup("Service") is Fake

        assert registry.lookup("Service") is Real

    def test_restore_on_error(self, registry):
        """Test that the binding is restored when the body raises."""
        registry.register("Service", Real)
        registry.register("FakeService", Fake)

        with pytest.raises(ValueError, match="body failed"):
            with registry.scoped_override("Service", "FakeService"):
                raise ValueError("body failed")

        assert registry.lookup("Service") is Real

    def test_restore_unbound_name(self, registry):
        """Test that a name unbound before the override is unbound after it."""
        registry.register("FakeService", Fake)

        with registry.scoped_override("Service", "FakeService"):
            assert registry.lookup("Service") is Fake

        assert "Service" not in registry

    def test_override_with_unbound_name_changes_nothing(self, registry):
        registry.register("Service", Real)
        with pytest.raises(RegistryError):
            with registry.scoped_override("Service", "Missing"):
                pytest.fail("body must not run")
        assert registry.lookup("Service") is Real

    def test_nested_same_name_restores_lifo(self, registry):
        """Test nested overrides of one name restore in reverse order."""
        class Other:
            pass

        registry.register("Service", Real)
        registry.register("FakeService", Fake)
        registry.register("OtherService", Other)

        with registry.scoped_override("Service", "FakeService"):
            with registry.scoped_override("Service", "OtherService"):
                assert registry.lookup("Service") is Other
            assert registry.lookup("Service") is Fake
        assert registry.lookup("Service") is Real

    def test_nested_different_names(self, registry):
        registry.register("Service", Real)
        registry.register("Store", Real)
        registry.register("Fake", Fake)

        with registry.scoped_override("Service", "Fake"):
            with registry.scoped_override("Store", "Fake"):
                assert registry.lookup("Service") is Fake
                assert registry.lookup("Store") is Fake
            assert registry.lookup("Store") is Real
        assert registry.lookup("Service") is Real

    def test_restore_on_early_return(self, registry):
        """Test restoration when the body returns early."""
        registry.register("Service", Real)
        registry.register("FakeService", Fake)

        def body():
            with registry.scoped_override("Service", "FakeService"):
                return registry.lookup("Service")

        assert body() is Fake
        assert registry.lookup("Service") is Real

    def test_call_with_override(self, registry):
        registry.register("Service", Real)
        registry.register("FakeService", Fake)

        result = registry.call_with_override(
            "Service", "FakeService", lambda suffix: registry.lookup("Service").__name__ + suffix, "!"
        )
        assert result == "Fake!"
        assert registry.lookup("Service") is Real

    def test_module_level_scoped_override(self):
        register_class("Service", Real)
        register_class("FakeService", Fake)
        with scoped_override("Service", "FakeService"):
            assert find_class("Service") is Fake
        assert find_class("Service") is Real


class TestOriginalClass:
    """Tests for original_class."""

    def test_unbound_name(self, registry):
        assert registry.original_class("Missing") is None

    def test_plain_class_has_no_original(self, registry):
        registry.register("Real", Real)
        assert registry.original_class("Real") is None

    def test_finds_base_with_same_name(self, registry):
        """Test that a base declared under the same name is the original."""
        first = type("Layer", (), {})
        second = type("Layer", (first,), {})
        registry.register("Layer", second)
        assert registry.original_class("Layer") is first

    def test_after_layered_definition(self, registry):
        """Test original_class across one layered redefinition."""
        first = define_class("Foo", ["Foo"], [("x", 1)], registry=registry)
        assert registry.original_class("Foo") is None

        define_class("Foo", ["Foo"], [("y", 2)], registry=registry)
        assert registry.original_class("Foo") is first

    def test_module_level_original_class(self):
        first = define_class("Foo", ["Foo"], [("x", 1)])
        define_class("Foo", ["Foo"], [("y", 2)])
        assert original_class("Foo") is first


def test_registries_are_independent():
    """Test that separate registries do not share bindings."""
    one, two = TypeRegistry(), TypeRegistry()
    one.register("Service", Real)
    assert two.lookup("Service") is None


def test_registry_error_messages():
    assert str(RegistryError("Service")) == "No class registered under 'Service'"
    error = RegistryError("Service", "custom")
    assert str(error) == "custom"
    assert error.name == "Service"
