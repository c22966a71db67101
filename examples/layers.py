"""Trimmed example demonstrating layered class definitions and overrides.

This example is dependency-free and shows:
- `@class_star` on a plain class statement with partial slot declarations
- layering a new version of a class over the previous one (`class Job(Job)`)
- `original_class()` to reach the superseded version
- `scoped_override()` to swap a registered class for a test double

Import this module in tests to observe module-level definition behavior.
"""

from classstar import (
    Strategy,
    TypeRegistry,
    class_star,
    define_class,
    original_class,
    scoped_override,
)

# Examples keep their classes out of the process-wide registry
registry = TypeRegistry()


@class_star(registry=registry)
class Storage:
    """Where job results go."""

    root: str = "results"
    compress = False

    def location(self, job_name):
        return f"{self.root}/{job_name}"


FakeStorage = define_class(
    "FakeStorage",
    ["Storage"],
    [("root", "type", str), ("writes", "type", list)],
    registry=registry,
)


@class_star(registry=registry, initform_inference=Strategy.REQUIRED)
class Job:
    """A unit of work; `owner` has no zero value and must be set before it is read."""

    name: str
    owner: object
    retries: int


# Second version of Job, defined over the first one
@class_star(registry=registry)
class Job(Job):
    timeout = 30.0
    tags: list


def run(job):
    """Resolve the storage class by name, as application code would."""
    storage = registry.lookup("Storage")()
    return storage.location(job.name)


def run_with_fake_storage(job):
    with scoped_override("Storage", "FakeStorage", registry=registry):
        return run(job)


FirstJob = original_class("Job", registry=registry)
