"""Pytest configuration and shared fixtures."""
import pytest

from classstar import TypeRegistry


@pytest.fixture(autouse=True)
def reset_process_state():
    """Reset the process-wide registry and default strategies around each test."""
    # Import the modules to access the global variables
    import classstar.config as config_module
    import classstar.registry as registry_module

    # Store original values
    original_classes = dict(registry_module._default_registry._classes)
    original_initform = config_module._default_initform_inference
    original_type = config_module._default_type_inference

    registry_module._default_registry.clear()
    config_module.reset_defaults()

    yield

    # Restore original values after test
    registry_module._default_registry.clear()
    registry_module._default_registry._classes.update(original_classes)
    config_module._default_initform_inference = original_initform
    config_module._default_type_inference = original_type


@pytest.fixture
def registry():
    """Provide an empty, test-local registry."""
    return TypeRegistry()
