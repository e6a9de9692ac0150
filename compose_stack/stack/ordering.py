"""Startup ordering derived from declared dependencies.

The composition tool only guarantees that a dependency's container has
*started* (or, with a healthcheck, reported *healthy*) before its
dependents start. `startup_order` reproduces that ordering as tiers;
`readiness_hazards` lists the edges where a dependent may race a
dependency that has started but is not ready.
"""

from dataclasses import dataclass

from .models import DependencyCondition, StackDefinition


class CompositionError(Exception):
    """The stack's dependency declarations are inconsistent."""


class UnknownDependencyError(CompositionError):
    """A service depends on a service the stack does not declare."""

    def __init__(self, service: str, dependency: str):
        super().__init__(f"Service {service!r} depends on undeclared service {dependency!r}")
        self.service = service
        self.dependency = dependency


class CyclicDependencyError(CompositionError):
    """Dependencies form a cycle, so no service in it can start first."""

    def __init__(self, services: list[str]):
        super().__init__(f"Dependency cycle among services: {', '.join(services)}")
        self.services = services


@dataclass(frozen=True)
class ReadinessHazard:
    """A dependent that only waits for its dependency's container start."""

    dependent: str
    dependency: str

    def describe(self) -> str:
        return (
            f"{self.dependent} waits for {self.dependency} to start, not to be ready; "
            f"its first connection attempts may fail"
        )


def validate_dependencies(stack: StackDefinition) -> None:
    """Check every dependency edge.

    Raises:
        UnknownDependencyError: Dependency on an undeclared service
        CompositionError: service_healthy on a dependency with no healthcheck
    """
    names = set(stack.service_names)
    for service in stack.services:
        for dependency, condition in service.depends_on.items():
            if dependency not in names:
                raise UnknownDependencyError(service.name, dependency)
            if condition is DependencyCondition.HEALTHY and stack.service(dependency).healthcheck is None:
                raise CompositionError(
                    f"Service {service.name!r} waits for {dependency!r} to be healthy, "
                    f"but {dependency!r} has no healthcheck"
                )


def startup_order(stack: StackDefinition) -> list[list[str]]:
    """Group services into startup tiers.

    Every service in tier N depends only on services in tiers below N.
    Services within a tier start concurrently and are listed by name.

    Raises:
        UnknownDependencyError: Dependency on an undeclared service
        CyclicDependencyError: Dependencies form a cycle
    """
    validate_dependencies(stack)

    remaining = {s.name: set(s.depends_on) for s in stack.services}
    tiers: list[list[str]] = []

    while remaining:
        ready = sorted(name for name, deps in remaining.items() if not deps)
        if not ready:
            raise CyclicDependencyError(sorted(remaining))
        tiers.append(ready)
        for name in ready:
            del remaining[name]
        for deps in remaining.values():
            deps.difference_update(ready)

    return tiers


def readiness_hazards(stack: StackDefinition) -> list[ReadinessHazard]:
    """List dependency edges gated on container start rather than health.

    A start-only edge is not a hazard when the dependent runs its own
    readiness gate before it uses the dependency.
    """
    validate_dependencies(stack)
    return [
        ReadinessHazard(dependent=service.name, dependency=dependency)
        for service in stack.services
        for dependency, condition in sorted(service.depends_on.items())
        if condition is DependencyCondition.STARTED and not service.gates_own_readiness
    ]
