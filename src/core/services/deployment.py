"""Orquestación del despliegue.

`DeploymentController` secuencia los demás servicios para cada verbo de la
CLI. No imprime nada: el progreso pasa por `ProgressHooks`.

Política de fallos:
- Los fallos de validación, instalación, descarga y arranque de contenedores
  lanzan un `DeploymentError` y abortan; no se deshace lo ya hecho.
- Los fallos de extracción y de permisos se convierten en `StepWarning` y la
  secuencia continúa; volver a ejecutar `start` repara el directorio de datos.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from adapters import commands
from adapters.config_renderer import ConfigMaterializer
from core.domain.errors import (
    ContainerStartFailed,
    ContainerStopFailed,
    DescriptorMissing,
    MissingCredential,
    TunnelStartFailed,
)
from core.domain.models import DeploymentConfig, DeploymentReport, StepWarning, WarningKind
from core.interfaces.runner import CommandRunner
from core.services.dependencies import DependencyInstaller
from core.services.progress import ProgressHooks
from core.services.provisioning import DataProvisioner


logger = logging.getLogger(__name__)

TUNNEL_PROGRAM = "ngrok"


class DeploymentController:
    def __init__(
        self,
        *,
        config: DeploymentConfig,
        runner: CommandRunner,
        hooks: ProgressHooks | None = None,
        installer: DependencyInstaller | None = None,
        materializer: ConfigMaterializer | None = None,
        provisioner: DataProvisioner | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._runner = runner
        self._hooks = hooks or ProgressHooks()
        self._installer = installer or DependencyInstaller(config=config, runner=runner, hooks=self._hooks)
        self._materializer = materializer or ConfigMaterializer()
        self._provisioner = provisioner or DataProvisioner(config=config, runner=runner, hooks=self._hooks)
        self._sleep = sleep

    @property
    def config(self) -> DeploymentConfig:
        return self._config

    def validate(self, *, require_archive: bool) -> None:
        """Comprueba la configuración obligatoria antes de cualquier efecto."""

        config = self._config
        if config.tunnel_half_configured:
            raise MissingCredential(
                "Tunnel mode requires both ENV_NGROK_DOMAIN and ENV_NGROK_TOKEN (or neither).",
                detail="Please 'export' them before running 'sudo -E n8n-deploy start'.",
            )
        if require_archive and not config.source_archive_url:
            raise MissingCredential(
                "'start' command requires ENV_GDRIVE_URL.",
                detail="Please 'export ENV_GDRIVE_URL=...' before running.",
            )

    def start(self) -> DeploymentReport:
        config = self._config
        self.validate(require_archive=True)
        self._hooks.emit_success("Configuration verified.")

        self._installer.ensure()
        self.render_artifacts()
        provisioned = self._provisioner.provision()

        report = DeploymentReport(public_url=config.public_url, warnings=list(provisioned.warnings))
        warning = self.fix_ownership()
        if warning:
            report.warnings.append(warning)

        self.start_containers()
        if config.tunnel_enabled:
            report.tunnel_pid = self.start_tunnel()
        return report

    def stop(self) -> bool:
        """Baja el túnel y los contenedores; False si no hay docker-compose.yml."""

        config = self._config
        self._hooks.emit_step("Stopping deployment")
        self._hooks.emit_info(f"Stopping background {TUNNEL_PROGRAM} process...")
        self._kill_tunnel()

        if not config.compose_path.is_file():
            self._hooks.emit_info(f"No {config.compose_file} file found. Skipping Docker stop.")
            return False

        down = self._runner.run(
            commands.build_compose_cmd(compose_file=config.compose_path, action=["down", "--remove-orphans"]),
            cwd=config.workdir,
            capture=False,
        )
        if not down.ok:
            raise ContainerStopFailed(f"docker compose down failed (exit {down.returncode}).")
        self._hooks.emit_success(f"{config.service_name} container stopped and removed.")
        return True

    def logs(self) -> int:
        """Muestra los logs del servicio hasta que el operador interrumpe."""

        config = self._config
        if not config.compose_path.is_file():
            raise DescriptorMissing(f"{config.compose_file} not found. Run 'start' first.")
        self._hooks.emit_step(f"Showing {config.service_name} container logs (Press Ctrl+C to exit)")
        result = self._runner.run(
            commands.build_compose_cmd(compose_file=config.compose_path, action=["logs", "-f", config.service_name]),
            cwd=config.workdir,
            capture=False,
        )
        return result.returncode

    def setup(self) -> None:
        """Fuerza la regeneración de ambos artefactos; datos y contenedores intactos."""

        self.validate(require_archive=False)
        self._materializer.remove(self._config)
        self.render_artifacts()

    def render_artifacts(self) -> None:
        config = self._config
        self._hooks.emit_step(f"Creating {config.env_file} and {config.compose_file}")
        self._materializer.materialize(config)
        self._hooks.emit_success(f"{config.env_file} and {config.compose_file} created successfully.")
        self._hooks.emit_info(f"n8n is configured for: {config.public_url}")

    def fix_ownership(self) -> StepWarning | None:
        config = self._config
        self._hooks.emit_step("Setting permissions on data directory")
        owner = f"{config.owner_uid}:{config.owner_gid}"
        result = self._runner.run(
            commands.privileged(
                commands.build_chown_cmd(path=config.data_dir, uid=config.owner_uid, gid=config.owner_gid),
                use_sudo=config.use_sudo,
            )
        )
        if result.ok:
            self._hooks.emit_success(f"Set correct ownership ({owner}) for n8n persistence.")
            return None
        message = f"Failed to set ownership (chown {owner}) on {config.data_host_path}."
        self._hooks.emit_warning(message)
        return StepWarning(kind=WarningKind.PERMISSION, message=message)

    def start_containers(self) -> None:
        config = self._config
        self._hooks.emit_step(f"Starting {config.service_name} deployment")

        def compose(*action: str):
            return self._runner.run(
                commands.build_compose_cmd(compose_file=config.compose_path, action=list(action)),
                cwd=config.workdir,
                capture=False,
            )

        # Puede existir o no un stack previo; el resultado se ignora.
        self._runner.run(
            commands.build_compose_cmd(compose_file=config.compose_path, action=["down", "--remove-orphans"]),
            cwd=config.workdir,
        )
        pulled = compose("pull")
        if not pulled.ok:
            raise ContainerStartFailed(f"Could not pull {config.image} (exit {pulled.returncode}). Check Docker status.")
        started = compose("up", "-d", "--build")
        if not started.ok:
            raise ContainerStartFailed(f"Deployment failed (exit {started.returncode}). Check Docker status.")
        self._hooks.emit_success(f"{config.service_name} is running on host port {config.internal_port}.")

    def start_tunnel(self) -> int:
        config = self._config
        hostname = config.tunnel_hostname
        if not hostname:
            raise MissingCredential("ENV_NGROK_DOMAIN is not set. Cannot start the tunnel.")

        self._hooks.emit_step(f"Starting {TUNNEL_PROGRAM} tunnel (detached)")
        self._hooks.emit_info(f"Attempting to terminate any existing {TUNNEL_PROGRAM} process...")
        self._kill_tunnel()
        self._sleep(config.tunnel_restart_delay_seconds)

        cmd = commands.privileged(
            commands.build_ngrok_http_cmd(hostname=hostname, port=config.internal_port),
            use_sudo=config.use_sudo,
        )
        try:
            pid = self._runner.spawn(cmd, cwd=config.workdir)
        except OSError as exc:
            raise TunnelStartFailed(f"Could not start {TUNNEL_PROGRAM}.", detail=str(exc)) from exc
        self._hooks.emit_success(f"{TUNNEL_PROGRAM} tunnel started in the background (pid {pid}).")
        return pid

    def _kill_tunnel(self) -> None:
        # pkill sale con 1 si no encontró nada: cuenta como detenido.
        result = self._runner.run(
            commands.privileged(commands.build_pkill_cmd(TUNNEL_PROGRAM), use_sudo=self._config.use_sudo)
        )
        logger.debug("pkill %s exited %s", TUNNEL_PROGRAM, result.returncode)
