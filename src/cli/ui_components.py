"""Componentes UI de la CLI (Rich).

Por qué componentes separados:
- Mantiene los comandos libres de detalles de presentación.
- Todos los comandos comparten los mismos banners, hooks y paneles.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from core.domain.errors import DeploymentError
from core.domain.models import DeploymentReport
from core.services.progress import ProgressHooks


USAGE_LINES: tuple[tuple[str, str], ...] = (
    ("start", "Installs dependencies, downloads data, sets up files, and starts n8n/ngrok."),
    ("stop", "Stops and removes the n8n container and the background ngrok process."),
    ("logs", "Displays n8n logs (Press Ctrl+C to exit)."),
    ("setup", "Forces recreation of .env and docker-compose.yml files."),
)


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida (solo en `start`)."""

    title = Text("n8n-deploy", style="bold cyan")
    subtitle = Text("Docker • Drive data restore • ngrok", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def print_usage(console: Console, prog: str = "n8n-deploy") -> None:
    console.print(f"Usage: {prog} {{start|stop|logs|setup}}", markup=False, highlight=False)
    for name, description in USAGE_LINES:
        console.print(f"  {name:<5} - {description}", markup=False, highlight=False)


def build_hooks(console: Console) -> ProgressHooks:
    """Hooks que muestran el progreso de los servicios en `console`."""

    return ProgressHooks(
        step=lambda message: console.print(f"\n[bold]--- {message} ---[/bold]", highlight=False),
        info=lambda message: console.print(message, markup=False, highlight=False),
        success=lambda message: console.print(Text(f"✅ {message}", style="green")),
        warning=lambda message: console.print(Text(f"⚠️  WARNING: {message}", style="yellow")),
    )


def print_error(console: Console, error: DeploymentError) -> None:
    console.print(Text(f"❌ {error.kind}: {error.message}", style="bold red"))
    if error.detail:
        console.print(Text(error.detail, style="red"))


def build_report_panel(report: DeploymentReport, *, port: int) -> Panel:
    """Panel final con la URL de acceso tras un `start` correcto."""

    body = Text()
    body.append(f"n8n is running on host port {port}.\n\n")
    body.append("Access URL: ", style="bold")
    body.append(report.public_url, style="bold cyan")
    if report.tunnel_pid is not None:
        body.append(f"\nngrok tunnel pid: {report.tunnel_pid}", style="dim")
    if report.warnings:
        body.append("\n\nCompleted with warnings:\n", style="yellow")
        for warning in report.warnings:
            body.append(f"- {warning.kind.value}: {warning.message}\n", style="yellow")
    title = Text("🚀 n8n deployment completed", style="bold green")
    return Panel(body, title=title, border_style="green")
