"""Docker Compose rendering and parsing.

`render_compose` turns a StackDefinition into the ``docker-compose.yml``
committed at the repository root; `stack_from_compose_dict` reads an
existing compose file back so its ordering can be checked.
"""

import logging
from pathlib import Path
from typing import Any, Union

import yaml

from .credentials import INIT_SCRIPT_NAME
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

logger = logging.getLogger(__name__)

HEADER = (
    "# Generated by `compose-stack render`; edit compose_stack/stack/definition.py instead.\n"
    "# Usage: docker compose up --build\n"
)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def service_to_compose(service: ServiceDefinition) -> dict[str, Any]:
    """Compose mapping for one service."""
    out: dict[str, Any] = {}

    if service.image:
        out["image"] = service.image
    if service.build:
        out["build"] = service.build
    if service.command:
        out["command"] = list(service.command)
    if service.restart:
        out["restart"] = service.restart

    published = [f"{p.published}:{p.internal}" for p in service.ports if p.is_published]
    if published:
        out["ports"] = published
    exposed = [str(p.internal) for p in service.ports if not p.is_published]
    if exposed:
        out["expose"] = exposed

    if service.environment:
        out["environment"] = dict(service.environment)

    if service.depends_on:
        out["depends_on"] = {
            name: {"condition": condition.value}
            for name, condition in service.depends_on.items()
        }

    if service.healthcheck:
        hc = service.healthcheck
        out["healthcheck"] = {
            "test": list(hc.test),
            "interval": hc.interval,
            "timeout": hc.timeout,
            "retries": hc.retries,
            "start_period": hc.start_period,
        }

    if service.volumes:
        out["volumes"] = [mount.to_compose() for mount in service.volumes]
    if service.networks:
        out["networks"] = list(service.networks)

    return out


def to_compose_dict(stack: StackDefinition) -> dict[str, Any]:
    """Compose mapping for the whole stack."""
    compose: dict[str, Any] = {
        "name": stack.name,
        "services": {s.name: service_to_compose(s) for s in stack.services},
    }
    if stack.networks:
        compose["networks"] = {n.name: {"driver": n.driver} for n in stack.networks}
    if stack.volumes:
        compose["volumes"] = {v.name: {} for v in stack.volumes}
    return compose


def render_compose(stack: StackDefinition) -> str:
    """Render the stack as compose YAML, with a header comment."""
    body = yaml.safe_dump(
        to_compose_dict(stack),
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
    return HEADER + body


def write_compose_file(stack: StackDefinition, path: Union[str, Path]) -> Path:
    """Write the compose file, plus the init script when the stack has one.

    The init script lands in ``mongo-init/`` next to the compose file,
    where the database service bind-mounts it from.

    Returns:
        Path of the written compose file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_compose(stack), encoding="utf-8")
    logger.info(f"Wrote compose file {path}")

    if stack.init_script:
        script_path = path.parent / "mongo-init" / INIT_SCRIPT_NAME
        script_path.parent.mkdir(parents=True, exist_ok=True)
        script_path.write_text(stack.init_script, encoding="utf-8")
        script_path.chmod(0o600)
        logger.info(f"Wrote database init script {script_path}")

    return path


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def load_compose_file(path: Union[str, Path]) -> dict[str, Any]:
    """Load a compose file as a plain mapping."""
    with Path(path).open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"{path} is not a compose mapping")
    return data


def _parse_port(value: Any) -> PortMapping:
    text = str(value).split("/", 1)[0]
    if ":" in text:
        published, internal = text.rsplit(":", 1)
        published = published.rsplit(":", 1)[-1]  # drop host ip
        return PortMapping(internal=int(internal), published=int(published))
    return PortMapping(internal=int(text))


def _parse_environment(value: Any) -> dict[str, str]:
    if not value:
        return {}
    if isinstance(value, dict):
        return {k: "" if v is None else str(v) for k, v in value.items()}
    env = {}
    for item in value:
        key, _, val = str(item).partition("=")
        env[key] = val
    return env


def _parse_depends_on(value: Any) -> dict[str, DependencyCondition]:
    if not value:
        return {}
    if isinstance(value, list):
        return {name: DependencyCondition.STARTED for name in value}
    return {
        name: DependencyCondition((entry or {}).get("condition", DependencyCondition.STARTED.value))
        for name, entry in value.items()
    }


def _parse_healthcheck(value: Any) -> HealthCheck | None:
    if not value or value.get("disable"):
        return None
    test = value.get("test")
    if isinstance(test, str):
        test = ["CMD-SHELL", test]
    kwargs = {k: value[k] for k in ("interval", "timeout", "retries", "start_period") if k in value}
    return HealthCheck(test=tuple(test), **kwargs)


def _parse_volume(value: Any) -> VolumeMount:
    if isinstance(value, dict):
        return VolumeMount(
            source=value.get("source", ""),
            target=value["target"],
            read_only=bool(value.get("read_only", False)),
        )
    parts = str(value).split(":")
    if len(parts) == 1:
        return VolumeMount(target=parts[0])
    return VolumeMount(
        source=parts[0],
        target=parts[1],
        read_only=len(parts) > 2 and parts[2] == "ro",
    )


def _parse_service(name: str, entry: dict[str, Any]) -> ServiceDefinition:
    build = entry.get("build")
    if isinstance(build, dict):
        build = build.get("context", ".")
    command = entry.get("command")
    if isinstance(command, str):
        command = command.split()
    ports = [_parse_port(p) for p in entry.get("ports") or []]
    ports += [_parse_port(p) for p in entry.get("expose") or []]
    networks = entry.get("networks") or []
    if isinstance(networks, dict):
        networks = list(networks)

    return ServiceDefinition(
        name=name,
        image=entry.get("image"),
        build=build,
        command=tuple(command) if command else None,
        restart=entry.get("restart"),
        ports=tuple(ports),
        environment=_parse_environment(entry.get("environment")),
        depends_on=_parse_depends_on(entry.get("depends_on")),
        healthcheck=_parse_healthcheck(entry.get("healthcheck")),
        volumes=tuple(_parse_volume(v) for v in entry.get("volumes") or []),
        networks=tuple(networks),
    )


def stack_from_compose_dict(data: dict[str, Any], name: str = "stack") -> StackDefinition:
    """Build a StackDefinition from a parsed compose mapping.

    Named volumes are owned by the first service that mounts them.

    Raises:
        ValueError: If the mapping cannot be represented
    """
    parsed: list[ServiceDefinition] = []
    for service_name, entry in (data.get("services") or {}).items():
        try:
            parsed.append(_parse_service(service_name, entry or {}))
        except (AttributeError, KeyError, TypeError) as e:
            raise ValueError(f"Service {service_name!r} has an unsupported entry: {e!r}") from e
    services = tuple(parsed)

    networks = tuple(
        NetworkDefinition(name=net, driver=(entry or {}).get("driver", "bridge"))
        for net, entry in (data.get("networks") or {}).items()
    )

    owners: dict[str, str] = {}
    for service in services:
        for mount in service.volumes:
            if not (mount.is_bind_mount or mount.is_anonymous):
                owners.setdefault(mount.source, service.name)
    volumes = tuple(
        VolumeDefinition(name=volume, owner=owners[volume])
        for volume in (data.get("volumes") or {})
        if volume in owners
    )

    return StackDefinition(
        name=data.get("name", name),
        services=services,
        networks=networks,
        volumes=volumes,
    )
