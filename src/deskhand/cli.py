"""deskhand command line."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from deskhand.commands import parse_verb_arguments
from deskhand.config import get_settings
from deskhand.context import build_context
from deskhand.logging_utils import configure_logging
from deskhand.operations import build_router
from deskhand.router import Task
from deskhand.server import create_app

app = typer.Typer(name="deskhand", help="Local desktop agent for a remote assistant UI", add_completion=False)


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Control panel and WebSocket port"),
    workspace: Path | None = typer.Option(None, "--workspace", "-w", help="Workspace directory"),  # noqa: B008
    desktop_notifications: bool = typer.Option(True, "--notify/--no-notify", help="Show desktop notifications"),
) -> None:
    """Run the control panel and WebSocket server."""

    settings = get_settings(workspace)
    configure_logging(profile="console" if sys.stderr.isatty() else "default", level=settings.log_level)
    context = build_context(settings)
    if desktop_notifications:
        context.notifier.attach_desktop()

    bind_host = host or settings.host
    bind_port = port or settings.port
    typer.echo(f"Control panel: http://{bind_host}:{bind_port}  WebSocket: ws://{bind_host}:{bind_port}/ws")
    typer.echo(f"Workspace directory: {context.workspace}")
    uvicorn.run(create_app(context), host=bind_host, port=bind_port, log_level=settings.log_level.lower())


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def run(
    verb: str = typer.Argument(..., help="Command verb, e.g. create_file"),
    params: list[str] | None = typer.Argument(None, help="Parameters as key=value or --key value"),  # noqa: B008
    workspace: Path | None = typer.Option(None, "--workspace", "-w", help="Workspace directory"),  # noqa: B008
    task_id: str = typer.Option("cli", "--task-id", help="Correlation id echoed in the result"),
) -> None:
    """Dispatch one command locally and print the JSON result."""

    arguments = parse_verb_arguments(params or [])
    if arguments.stray:
        raise typer.BadParameter(
            f"unexpected argument(s): {' '.join(arguments.stray)}; pass parameters as name=value or --name value",
            param_hint="PARAMS",
        )

    settings = get_settings(workspace)
    configure_logging(level=settings.log_level)
    context = build_context(settings)
    router = build_router(context)
    result = asyncio.run(router.dispatch(Task(verb=verb, params=arguments.params, correlation_id=task_id)))
    typer.echo(json.dumps(result, indent=2, ensure_ascii=False))
    if not result.get("success"):
        raise typer.Exit(1)


@app.command()
def verbs() -> None:
    """List the command verbs the router accepts."""

    router = build_router(build_context(get_settings()))
    table = Table(title="deskhand verbs")
    table.add_column("verb")
    table.add_column("description")
    for descriptor in router.registry.descriptors():
        table.add_row(descriptor.name, descriptor.short_description)
    Console().print(table)


if __name__ == "__main__":
    app()
