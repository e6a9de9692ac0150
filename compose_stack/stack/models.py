"""Typed model of the multi-container composition.

Definitions are immutable once composed; changing the stack means
building a new definition and re-rendering the compose file.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DependencyCondition(str, Enum):
    """What a dependent waits for before its container starts."""

    STARTED = "service_started"  # container process began
    HEALTHY = "service_healthy"  # container healthcheck passed


class PortMapping(BaseModel):
    """A container port, optionally published on the host."""

    model_config = ConfigDict(frozen=True)

    internal: int = Field(ge=1, le=65535)
    published: Optional[int] = Field(default=None, ge=1, le=65535)

    @property
    def is_published(self) -> bool:
        return self.published is not None


class HealthCheck(BaseModel):
    """Container healthcheck, in compose syntax."""

    model_config = ConfigDict(frozen=True)

    test: tuple[str, ...]
    interval: str = "5s"
    timeout: str = "5s"
    retries: int = 10
    start_period: str = "10s"


class VolumeMount(BaseModel):
    """A named volume, bind mount or anonymous volume inside a service."""

    model_config = ConfigDict(frozen=True)

    source: str = ""
    target: str
    read_only: bool = False

    @property
    def is_anonymous(self) -> bool:
        return not self.source

    @property
    def is_bind_mount(self) -> bool:
        return self.source.startswith((".", "/", "~"))

    def to_compose(self) -> str:
        mount = f"{self.source}:{self.target}" if self.source else self.target
        return f"{mount}:ro" if self.read_only else mount


class ServiceDefinition(BaseModel):
    """One runnable unit of the composition."""

    model_config = ConfigDict(frozen=True)

    name: str
    image: Optional[str] = None
    build: Optional[str] = None
    command: Optional[tuple[str, ...]] = None
    ports: tuple[PortMapping, ...] = ()
    environment: dict[str, str] = Field(default_factory=dict)
    depends_on: dict[str, DependencyCondition] = Field(default_factory=dict)
    healthcheck: Optional[HealthCheck] = None
    networks: tuple[str, ...] = ()
    volumes: tuple[VolumeMount, ...] = ()
    restart: Optional[str] = None

    @property
    def gates_own_readiness(self) -> bool:
        """The service polls its dependencies itself (READINESS_GATE on)."""
        return self.environment.get("READINESS_GATE", "").lower() in ("true", "1", "yes", "on")

    @model_validator(mode="after")
    def _check_source(self) -> "ServiceDefinition":
        if bool(self.image) == bool(self.build):
            raise ValueError(f"Service {self.name!r} needs exactly one of image or build")
        if self.name in self.depends_on:
            raise ValueError(f"Service {self.name!r} cannot depend on itself")
        return self


class NetworkDefinition(BaseModel):
    """Named network joining services by name resolution."""

    model_config = ConfigDict(frozen=True)

    name: str
    driver: str = "bridge"


class VolumeDefinition(BaseModel):
    """Named persistent volume, owned by exactly one service."""

    model_config = ConfigDict(frozen=True)

    name: str
    owner: str


class StackDefinition(BaseModel):
    """The whole composition: services, network, volume."""

    model_config = ConfigDict(frozen=True)

    name: str
    services: tuple[ServiceDefinition, ...]
    networks: tuple[NetworkDefinition, ...] = ()
    volumes: tuple[VolumeDefinition, ...] = ()
    init_script: Optional[str] = None

    @model_validator(mode="after")
    def _check_references(self) -> "StackDefinition":
        names = [s.name for s in self.services]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate service names: {sorted(duplicates)}")

        network_names = {n.name for n in self.networks}
        volume_owners = {v.name: v.owner for v in self.volumes}

        for volume in self.volumes:
            if volume.owner not in names:
                raise ValueError(f"Volume {volume.name!r} owned by unknown service {volume.owner!r}")

        for service in self.services:
            for network in service.networks:
                if network not in network_names:
                    raise ValueError(f"Service {service.name!r} joins undeclared network {network!r}")
            for mount in service.volumes:
                if mount.is_bind_mount or mount.is_anonymous:
                    continue
                owner = volume_owners.get(mount.source)
                if owner is None:
                    raise ValueError(f"Service {service.name!r} mounts undeclared volume {mount.source!r}")
                if owner != service.name:
                    raise ValueError(
                        f"Volume {mount.source!r} is owned by {owner!r}, not {service.name!r}"
                    )
        return self

    @property
    def service_names(self) -> list[str]:
        return [s.name for s in self.services]

    def service(self, name: str) -> ServiceDefinition:
        """Look up a service by name.

        Raises:
            KeyError: If no service has that name
        """
        for service in self.services:
            if service.name == name:
                return service
        raise KeyError(name)
