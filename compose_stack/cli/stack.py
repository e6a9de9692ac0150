#!/usr/bin/env python
"""Operator CLI for the composed stack.

Usage:
    # Regenerate docker-compose.yml (hardened ordering, shared root credentials)
    compose-stack render

    # Faithful start-only ordering, or per-service database users
    compose-stack render --faithful
    compose-stack render --scoped-credentials -o deploy/docker-compose.yml

    # Inspect ordering of the built stack or of an existing compose file
    compose-stack order
    compose-stack check --file docker-compose.yml --strict

    # Against a running database
    compose-stack wait-db --retries 10
    compose-stack smoke

    # Run the Web Service in the foreground
    compose-stack serve --port 8081
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from compose_stack.lib.config_manager import config
from compose_stack.lib.defaults import CONFIG_CATEGORIES
from compose_stack.lib.logging_config import setup_logging
from compose_stack.stack import (
    CompositionError,
    StackDefinition,
    build_stack,
    load_compose_file,
    readiness_hazards,
    stack_from_compose_dict,
    startup_order,
    write_compose_file,
)

app = typer.Typer(help="Compose, inspect and smoke-test the multi-service stack", add_completion=False)
console = Console()

TRACKED_COMPOSE_FILE = Path("docker-compose.yml")


def _load_stack(file: Optional[Path], faithful: bool) -> StackDefinition:
    if file is not None:
        return stack_from_compose_dict(load_compose_file(file))
    return build_stack(readiness_gate=not faithful)


@app.command()
def render(
    output: Path = typer.Option(
        TRACKED_COMPOSE_FILE,
        "--output",
        "-o",
        help="Where to write the compose file",
    ),
    faithful: bool = typer.Option(
        False,
        "--faithful",
        help="Dependents wait for database start only (no healthcheck gate)",
    ),
    scoped_credentials: bool = typer.Option(
        False,
        "--scoped-credentials",
        help="Issue one least-privilege database user per consumer",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Allow writing scoped passwords over the committed compose file",
    ),
):
    """Render the stack to a compose file."""
    if scoped_credentials and not force and output.resolve() == TRACKED_COMPOSE_FILE.resolve():
        console.print(
            f"[red]ERROR[/] Scoped credentials put plaintext passwords in the compose file; "
            f"choose an untracked --output instead of {TRACKED_COMPOSE_FILE} (or pass --force)"
        )
        raise typer.Exit(code=1)

    stack = build_stack(readiness_gate=not faithful, scoped_credentials=scoped_credentials)
    path = write_compose_file(stack, output)
    console.print(f"[green]OK[/] Wrote {path}")

    if stack.init_script:
        console.print(
            "[yellow]NOTE[/] Scoped users are created only when the database volume is empty "
            "(docker compose down -v first on an existing stack)"
        )
    for hazard in readiness_hazards(stack):
        console.print(f"[yellow]WARN[/] {hazard.describe()}")


@app.command()
def order(
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Compose file to inspect"),
    faithful: bool = typer.Option(False, "--faithful", help="Inspect the faithful ordering"),
):
    """Show startup tiers."""
    try:
        stack = _load_stack(file, faithful)
        tiers = startup_order(stack)
    except (CompositionError, ValueError) as e:
        console.print(f"[red]ERROR[/] {e}")
        raise typer.Exit(code=1)

    table = Table(title=f"Startup order: {stack.name}")
    table.add_column("Tier", justify="right")
    table.add_column("Services")
    table.add_column("Waits for")
    for index, tier in enumerate(tiers):
        waits = sorted(
            f"{dep} ({cond.value})"
            for name in tier
            for dep, cond in stack.service(name).depends_on.items()
        )
        table.add_row(str(index), ", ".join(tier), ", ".join(sorted(set(waits))) or "-")
    console.print(table)


@app.command()
def check(
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Compose file to inspect"),
    faithful: bool = typer.Option(False, "--faithful", help="Inspect the faithful ordering"),
    strict: bool = typer.Option(False, "--strict", help="Exit 1 when any hazard is found"),
):
    """Report dependents that race a started-but-not-ready dependency."""
    try:
        stack = _load_stack(file, faithful)
        hazards = readiness_hazards(stack)
    except (CompositionError, ValueError) as e:
        console.print(f"[red]ERROR[/] {e}")
        raise typer.Exit(code=1)

    if not hazards:
        console.print("[green]OK[/] No dependent races a started-but-not-ready dependency")
        return

    for hazard in hazards:
        console.print(f"[yellow]WARN[/] {hazard.describe()}")
    if strict:
        raise typer.Exit(code=1)


@app.command("wait-db")
def wait_db(
    retries: Optional[int] = typer.Option(None, "--retries", "-r", help="Retries after the first attempt"),
    base_delay: Optional[float] = typer.Option(None, "--base-delay", help="Initial backoff in seconds"),
):
    """Block until the database answers an authenticated ping."""
    from compose_stack.services.mongodb import close_client, wait_until_ready
    from compose_stack.services.mongodb.errors import DatabaseError

    setup_logging("cli", config.get("LOG_LEVEL"))

    async def _wait():
        try:
            await wait_until_ready(max_retries=retries, base_delay=base_delay)
        finally:
            await close_client()

    try:
        asyncio.run(_wait())
    except DatabaseError as e:
        console.print(f"[red]ERROR[/] {e.kind}: {e}")
        raise typer.Exit(code=1)
    console.print("[green]OK[/] MongoDB is ready")


@app.command()
def smoke(
    collection: Optional[str] = typer.Option(None, "--collection", "-c", help="Collection to use"),
    keep: bool = typer.Option(False, "--keep", help="Leave the document in place afterwards"),
):
    """Insert one document and read it back."""
    from compose_stack.services.mongodb import close_client, run_smoke_scenario
    from compose_stack.services.mongodb.errors import DatabaseError

    collection = collection or config.get("SMOKE_COLLECTION")

    async def _smoke():
        try:
            return await run_smoke_scenario(collection, keep=keep)
        finally:
            await close_client()

    try:
        result = asyncio.run(_smoke())
    except DatabaseError as e:
        console.print(f"[red]ERROR[/] {e.kind}: {e}")
        raise typer.Exit(code=1)

    if not result.ok:
        console.print(f"[red]FAIL[/] Expected exactly one document, got {result.documents}")
        raise typer.Exit(code=1)
    console.print(f"[green]OK[/] Read back {result.documents[0]} from {result.collection}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: WEB_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default: WEB_PORT)"),
):
    """Run the Web Service in the foreground."""
    from compose_stack.api.server import PortInUseError
    from compose_stack.api.server import serve as serve_web

    setup_logging("web", config.get("LOG_LEVEL"))
    try:
        serve_web(host=host, port=port)
    except PortInUseError as e:
        console.print(f"[red]ERROR[/] {e.strerror}")
        raise typer.Exit(code=1)


@app.command("config")
def show_config(
    category: Optional[str] = typer.Option(None, "--category", help="Only show one category"),
):
    """Show resolved configuration (sensitive values masked)."""
    categories = CONFIG_CATEGORIES
    if category is not None:
        if category not in CONFIG_CATEGORIES:
            console.print(f"[red]ERROR[/] Unknown category {category!r}")
            raise typer.Exit(code=1)
        categories = {category: CONFIG_CATEGORIES[category]}

    table = Table(title="Configuration")
    table.add_column("Category")
    table.add_column("Key")
    table.add_column("Value")
    for name, keys in categories.items():
        for key in keys:
            table.add_row(name, key, config.mask_value(key, config.get(key)))
    console.print(table)


if __name__ == "__main__":
    app()
