

"""The four-service stack: database, admin UI, web and worker.

Two flavours of startup ordering:

- faithful (``readiness_gate=False``): dependents wait for the database
  container to *start*. The database may still be initializing, so the
  first connection attempts of its consumers can fail.
- hardened (default): the database carries an authenticated ping
  healthcheck and the admin UI and worker wait for it to be *healthy*.
  The web and worker services additionally gate on their own bounded
  readiness poll.

The web service waits for the database to *start* in both flavours. Its
listener must come up even when the database never becomes healthy, and
`/health/ready` reports when it can use the database.
"""

from typing import Any, Mapping, Optional

from compose_stack.lib.config_manager import config

from .credentials import INIT_SCRIPT_NAME, ServiceCredential, issue_credentials, render_init_script
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

STACK_NAME = "compose-stack"
NETWORK_NAME = "stack-net"
VOLUME_NAME = "mongo-data"

DATABASE_SERVICE = "mongodb"
ADMIN_UI_SERVICE = "admin-ui"
WEB_SERVICE = "web"
WORKER_SERVICE = "worker"

MONGO_IMAGE = "mongo:7"
ADMIN_UI_IMAGE = "mongo-express:1.0"
MONGO_DATA_DIR = "/data/db"
MONGO_INIT_DIR = "/docker-entrypoint-initdb.d"
INIT_SCRIPT_DIR = "./mongo-init"
ADMIN_UI_PORT = 8081

# `$$` survives compose interpolation as a literal `$` for the container shell
MONGO_HEALTHCHECK = HealthCheck(
    test=(
        "CMD-SHELL",
        'mongosh --quiet -u "$$MONGO_INITDB_ROOT_USERNAME" -p "$$MONGO_INITDB_ROOT_PASSWORD"'
        " --authenticationDatabase admin --eval 'quit(db.adminCommand({ping: 1}).ok ? 0 : 1)'",
    ),
)


def _var(name: str, default: Any) -> str:
    """Compose interpolation with a default, e.g. ``${MONGO_DATABASE:-appdb}``."""
    return f"${{{name}:-{default}}}"


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_stack(
    settings: Optional[Mapping[str, Any]] = None,
    readiness_gate: bool = True,
    scoped_credentials: bool = False,
    credentials: Optional[dict[str, ServiceCredential]] = None,
) -> StackDefinition:
    """Build the stack definition.

    Args:
        settings: Configuration values (default: current config)
        readiness_gate: Hardened ordering (healthcheck + service_healthy)
        scoped_credentials: Issue one database user per consumer instead of
            sharing the root account
        credentials: Pre-issued credentials (scoped mode only; issued
            fresh when omitted)

    Returns:
        Immutable StackDefinition
    """
    s = dict(settings) if settings is not None else config.get_all()

    port = s["MONGO_PORT"]
    database = s["MONGO_DATABASE"]
    user = _var("MONGO_ROOT_USERNAME", s["MONGO_ROOT_USERNAME"])
    password = _var("MONGO_ROOT_PASSWORD", s["MONGO_ROOT_PASSWORD"])
    database_var = _var("MONGO_DATABASE", database)
    log_level = _var("LOG_LEVEL", s["LOG_LEVEL"])

    root_url = (
        f"mongodb://{user}:{password}@{DATABASE_SERVICE}:{port}/{database_var}"
        f"?authSource={s['MONGO_AUTH_SOURCE']}"
    )
    admin_ui_env = {
        "ME_CONFIG_MONGODB_URL": f"mongodb://{user}:{password}@{DATABASE_SERVICE}:{port}/",
        "ME_CONFIG_MONGODB_ADMINUSERNAME": user,
        "ME_CONFIG_MONGODB_ADMINPASSWORD": password,
        "ME_CONFIG_BASICAUTH": "false",
    }
    web_url = worker_url = root_url
    database_mounts = [VolumeMount(source=VOLUME_NAME, target=MONGO_DATA_DIR)]
    init_script = None

    if scoped_credentials:
        if credentials is None:
            credentials = issue_credentials()
        web_url = credentials[WEB_SERVICE].connection_string(DATABASE_SERVICE, port, database)
        worker_url = credentials[WORKER_SERVICE].connection_string(DATABASE_SERVICE, port, database)
        admin_ui_env = {
            "ME_CONFIG_MONGODB_URL": credentials[ADMIN_UI_SERVICE].connection_string(
                DATABASE_SERVICE, port, database
            ),
            "ME_CONFIG_MONGODB_ENABLE_ADMIN": "false",
            "ME_CONFIG_BASICAUTH": "false",
        }
        database_mounts.append(
            VolumeMount(source=INIT_SCRIPT_DIR, target=MONGO_INIT_DIR, read_only=True)
        )
        init_script = render_init_script(credentials, database)
        # The init script creates the users in this exact database
        database_var = database

    condition = DependencyCondition.HEALTHY if readiness_gate else DependencyCondition.STARTED
    depends_on = {DATABASE_SERVICE: condition}
    networks = (NETWORK_NAME,)

    database_service = ServiceDefinition(
        name=DATABASE_SERVICE,
        image=MONGO_IMAGE,
        restart="unless-stopped",
        ports=(PortMapping(internal=port),),
        environment={
            "MONGO_INITDB_ROOT_USERNAME": user,
            "MONGO_INITDB_ROOT_PASSWORD": password,
            "MONGO_INITDB_DATABASE": database_var,
        },
        healthcheck=MONGO_HEALTHCHECK if readiness_gate else None,
        volumes=tuple(database_mounts),
        networks=networks,
    )

    admin_ui_service = ServiceDefinition(
        name=ADMIN_UI_SERVICE,
        image=ADMIN_UI_IMAGE,
        restart="unless-stopped",
        ports=(PortMapping(internal=ADMIN_UI_PORT, published=s["ADMIN_UI_PUBLISHED_PORT"]),),
        environment=admin_ui_env,
        depends_on=depends_on,
        networks=networks,
    )

    web_service = ServiceDefinition(
        name=WEB_SERVICE,
        build=".",
        command=("stack-web",),
        restart="unless-stopped",
        ports=(PortMapping(internal=s["WEB_PORT"], published=s["WEB_PUBLISHED_PORT"]),),
        environment={
            "MONGO_URL": web_url,
            "WEB_PORT": str(s["WEB_PORT"]),
            "READINESS_GATE": _flag(readiness_gate),
            "LOG_LEVEL": log_level,
        },
        depends_on={DATABASE_SERVICE: DependencyCondition.STARTED},
        networks=networks,
    )

    worker_service = ServiceDefinition(
        name=WORKER_SERVICE,
        build=".",
        command=("stack-worker",),
        restart="no",
        environment={
            "MONGO_URL": worker_url,
            "READINESS_GATE": _flag(readiness_gate),
            "WORKER_TIMEOUT_SECONDS": str(s["WORKER_TIMEOUT_SECONDS"]),
            "LOG_LEVEL": log_level,
        },
        depends_on=depends_on,
        networks=networks,
    )

    return StackDefinition(
        name=STACK_NAME,
        services=(database_service, admin_ui_service, web_service, worker_service),
        networks=(NetworkDefinition(name=NETWORK_NAME),),
        volumes=(VolumeDefinition(name=VOLUME_NAME, owner=DATABASE_SERVICE),),
        init_script=init_script,
    )


__all__ = [
    "build_stack",
    "STACK_NAME",
    "NETWORK_NAME",
    "VOLUME_NAME",
    "DATABASE_SERVICE",
    "ADMIN_UI_SERVICE",
    "WEB_SERVICE",
    "WORKER_SERVICE",
    "INIT_SCRIPT_DIR",
    "INIT_SCRIPT_NAME",
]
