"""Punto de entrada de la CLI (Typer).

Exactamente un verbo por invocación: `start`, `stop`, `logs` o `setup`.
Cualquier otra cosa (incluido ningún verbo o una opción desconocida) imprime
el resumen de uso en stderr y sale con código 1.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from typer.core import TyperGroup

from adapters.shell import SubprocessRunner
from cli.ui_components import (
    build_hooks,
    build_report_panel,
    print_banner,
    print_error,
    print_usage,
)
from core.config import AppSettings
from core.domain.errors import DeploymentError
from core.domain.models import DeploymentConfig
from core.services.deployment import DeploymentController


EXIT_FAILURE = 1
# docker compose sale con 130 cuando el operador pulsa Ctrl+C.
_INTERRUPTED = 130

_console = Console()
_err_console = Console(stderr=True)

T = TypeVar("T")


class DispatchGroup(TyperGroup):
    """Convierte un verbo u opción desconocidos en el resumen de uso y salida 1.

    Se comprueba antes de delegar en Typer: así no dependemos del tipo de
    excepción que lance el parser (click o la copia que Typer incluye).
    """

    def parse_args(self, ctx, args: list[str]) -> list[str]:
        if self._has_unknown_option(ctx, args):
            self._usage_and_exit(ctx)
        return super().parse_args(ctx, args)

    def resolve_command(self, ctx, args: list[str]):
        if args and self.get_command(ctx, args[0]) is None:
            self._usage_and_exit(ctx)
        return super().resolve_command(ctx, args)

    def _has_unknown_option(self, ctx, args: list[str]) -> bool:
        known = {name for param in self.get_params(ctx) for name in (*param.opts, *param.secondary_opts)}
        for token in args:
            # Primer token que no es opción: el verbo o el valor de --workdir.
            if token == "--" or not token.startswith("-"):
                return False
            if token.split("=", 1)[0] not in known:
                return True
        return False

    @staticmethod
    def _usage_and_exit(ctx) -> None:
        print_usage(_err_console, prog=ctx.find_root().info_name or "n8n-deploy")
        ctx.exit(EXIT_FAILURE)


app = typer.Typer(
    cls=DispatchGroup,
    add_completion=False,
    help="Deploy n8n with Docker, restore its data from Google Drive and expose it through ngrok.",
)


@dataclass
class CliState:
    workdir: Path | None = None


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def load_config(workdir: Path | None) -> DeploymentConfig:
    try:
        settings = AppSettings()
    except ValidationError as exc:
        _err_console.print(f"[bold red]❌ Invalid configuration:[/bold red]\n{exc}", highlight=False)
        raise typer.Exit(code=EXIT_FAILURE) from exc
    return settings.to_deployment_config(workdir=workdir)


def build_controller(config: DeploymentConfig, console: Console) -> DeploymentController:
    runner = SubprocessRunner(secrets=[config.tunnel_token or ""])
    return DeploymentController(config=config, runner=runner, hooks=build_hooks(console))


def _controller(ctx: typer.Context) -> DeploymentController:
    state = ctx.obj if isinstance(ctx.obj, CliState) else CliState()
    return build_controller(load_config(state.workdir), _console)


def _guard(action: Callable[[], T]) -> T:
    try:
        return action()
    except DeploymentError as exc:
        print_error(_err_console, exc)
        raise typer.Exit(code=EXIT_FAILURE) from exc


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every external command."),
    workdir: Optional[Path] = typer.Option(
        None,
        "--workdir",
        help="Directory for .env, docker-compose.yml, the archive and the tool environment.",
    ),
) -> None:
    configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        print_usage(_err_console, prog=ctx.info_name or "n8n-deploy")
        raise typer.Exit(code=EXIT_FAILURE)
    ctx.obj = CliState(workdir=workdir)


@app.command()
def start(ctx: typer.Context) -> None:
    """Install dependencies, restore data, start n8n and the ngrok tunnel."""

    controller = _controller(ctx)
    print_banner(_console)
    report = _guard(controller.start)
    _console.print()
    _console.print(build_report_panel(report, port=controller.config.internal_port))


@app.command()
def stop(ctx: typer.Context) -> None:
    """Stop the ngrok tunnel and remove the n8n containers."""

    controller = _controller(ctx)
    _guard(controller.stop)


@app.command()
def logs(ctx: typer.Context) -> None:
    """Stream n8n container logs (Ctrl+C to exit)."""

    controller = _controller(ctx)
    try:
        returncode = _guard(controller.logs)
    except KeyboardInterrupt:
        return
    if returncode not in (0, _INTERRUPTED):
        raise typer.Exit(code=EXIT_FAILURE)


@app.command()
def setup(ctx: typer.Context) -> None:
    """Force recreation of .env and docker-compose.yml."""

    controller = _controller(ctx)
    _guard(controller.setup)


def run() -> None:
    app()
