"""Service composition and startup ordering.

Provides:
- Typed service, network and volume definitions
- The four-service stack (faithful or hardened ordering)
- Startup tiers and start-vs-ready hazard detection
- Scoped credential issuance
- docker-compose.yml rendering and parsing
"""

from .credentials import ServiceCredential, issue_credentials, render_init_script
from .definition import build_stack
from .models import (
    DependencyCondition,
    HealthCheck,
    NetworkDefinition,
    PortMapping,
    ServiceDefinition,
    StackDefinition,
    VolumeDefinition,
    VolumeMount,
)
from .ordering import (
    CompositionError,
    CyclicDependencyError,
    ReadinessHazard,
    UnknownDependencyError,
    readiness_hazards,
    startup_order,
    validate_dependencies,
)
from .render import (
    load_compose_file,
    render_compose,
    stack_from_compose_dict,
    to_compose_dict,
    write_compose_file,
)

__all__ = [
    # Models
    "DependencyCondition",
    "HealthCheck",
    "NetworkDefinition",
    "PortMapping",
    "ServiceDefinition",
    "StackDefinition",
    "VolumeDefinition",
    "VolumeMount",
    # Definition
    "build_stack",
    # Credentials
    "ServiceCredential",
    "issue_credentials",
    "render_init_script",
    # Ordering
    "CompositionError",
    "CyclicDependencyError",
    "UnknownDependencyError",
    "ReadinessHazard",
    "readiness_hazards",
    "startup_order",
    "validate_dependencies",
    # Rendering
    "load_compose_file",
    "render_compose",
    "stack_from_compose_dict",
    "to_compose_dict",
    "write_compose_file",
]
