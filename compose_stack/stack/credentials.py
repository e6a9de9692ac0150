"""Per-service database credentials issued at composition time.

By default every consumer of the database shares the root account. With
scoped credentials each consumer gets its own user restricted to the
application database, created by an init script the database image runs
on first start (empty data volume only).
"""

import json
import secrets
from dataclasses import dataclass
from typing import Iterable, Optional

from compose_stack.services.mongodb.config import build_connection_string

# Roles granted on the application database, per consumer
CONSUMER_ROLES: dict[str, tuple[str, ...]] = {
    "web": ("readWrite",),
    "worker": ("readWrite",),
    "admin-ui": ("readWrite", "dbAdmin"),
}

INIT_SCRIPT_NAME = "init-users.js"


@dataclass(frozen=True)
class ServiceCredential:
    """Database user issued to one consumer service."""

    consumer: str
    username: str
    password: str
    roles: tuple[str, ...]

    def connection_string(self, host: str, port: int, database: str) -> str:
        """Connection string authenticating against the application database."""
        return build_connection_string(
            self.username, self.password, host, port, database, auth_source=database
        )


def issue_credentials(
    consumers: Optional[Iterable[str]] = None,
    password_bytes: int = 24,
) -> dict[str, ServiceCredential]:
    """Issue one least-privilege credential per consumer.

    Args:
        consumers: Consumer service names (default: every known consumer)
        password_bytes: Entropy of generated passwords

    Returns:
        Mapping of consumer name to its credential

    Raises:
        ValueError: For a consumer with no role assignment
    """
    if consumers is None:
        consumers = CONSUMER_ROLES.keys()

    issued = {}
    for consumer in consumers:
        roles = CONSUMER_ROLES.get(consumer)
        if roles is None:
            raise ValueError(f"No role assignment for consumer {consumer!r}")
        issued[consumer] = ServiceCredential(
            consumer=consumer,
            username=f"{consumer.replace('-', '_')}_svc",
            password=secrets.token_urlsafe(password_bytes),
            roles=roles,
        )
    return issued


def render_init_script(credentials: dict[str, ServiceCredential], database: str) -> str:
    """Render the mongo shell script creating the scoped users."""
    lines = [
        "// Generated by compose-stack: scoped users for the application database.",
        f"const appDb = db.getSiblingDB({json.dumps(database)});",
    ]
    for credential in credentials.values():
        roles = [{"role": role, "db": database} for role in credential.roles]
        user = {"user": credential.username, "pwd": credential.password, "roles": roles}
        lines.append(f"appDb.createUser({json.dumps(user)});")
    return "\n".join(lines) + "\n"
