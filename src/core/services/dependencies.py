"""Instalación de dependencias del host (paquetes apt, Docker, ngrok).

Idempotente: Docker y ngrok se buscan en el `PATH` y solo se instalan si
faltan; los paquetes base se reafirman con `apt-get install -y`, que no hace
nada si ya están presentes.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from adapters import commands
from adapters.http_client import fetch_signing_key
from core.domain.errors import DependencyInstallFailed, MissingCredential
from core.domain.models import DeploymentConfig
from core.interfaces.runner import CommandResult, CommandRunner
from core.services.progress import ProgressHooks


logger = logging.getLogger(__name__)

KeyFetcher = Callable[[str], bytes]


class DependencyInstaller:
    def __init__(
        self,
        *,
        config: DeploymentConfig,
        runner: CommandRunner,
        hooks: ProgressHooks | None = None,
        fetch_key: KeyFetcher = fetch_signing_key,
    ) -> None:
        self._config = config
        self._runner = runner
        self._hooks = hooks or ProgressHooks()
        self._fetch_key = fetch_key

    def ensure(self) -> None:
        """Instala lo que falte y después registra la credencial del túnel."""

        config = self._config
        if config.tunnel_half_configured:
            raise MissingCredential("Tunnel mode needs both ENV_NGROK_DOMAIN and ENV_NGROK_TOKEN.")

        self._hooks.emit_step("Installing system dependencies (Docker, Python/venv, unzip, git)")
        self._sudo(commands.build_apt_update_cmd(), what="apt-get update")
        self._hooks.emit_success("System packages updated.")
        self._sudo(commands.build_apt_install_cmd(commands.BASE_PACKAGES), what="base package install")

        if self._runner.which("docker"):
            self._hooks.emit_success("Docker found. Skipping installation.")
        else:
            self.install_docker()

        if config.tunnel_enabled:
            if self._runner.which("ngrok"):
                self._hooks.emit_success("ngrok found. Skipping installation.")
            else:
                self.install_ngrok()
            self.register_tunnel_credential()

    def install_docker(self) -> None:
        self._hooks.emit_info("Installing Docker...")
        key = self._fetch_key(commands.DOCKER_GPG_URL)

        self._sudo(["mkdir", "-p", str(commands.DOCKER_KEYRING.parent)], what="keyring directory")
        self._sudo(
            ["gpg", "--batch", "--yes", "--dearmor", "-o", str(commands.DOCKER_KEYRING)],
            what="Docker key import",
            input=key,
        )

        arch = self._query(["dpkg", "--print-architecture"], what="architecture lookup")
        codename = self._query(["lsb_release", "-cs"], what="release codename lookup")
        source = commands.build_docker_apt_source(arch=arch, codename=codename)
        self._sudo(commands.build_tee_cmd(commands.DOCKER_APT_LIST), what="Docker apt source", input=source.encode())

        self._sudo(commands.build_apt_update_cmd(), what="apt-get update")
        self._sudo(commands.build_apt_install_cmd(commands.DOCKER_PACKAGES), what="Docker install")

        if not self._runner.run(["getent", "group", "docker"]).ok:
            self._sudo(["groupadd", "docker"], what="docker group creation")
        if self._config.operator_user:
            self._sudo(["usermod", "-aG", "docker", self._config.operator_user], what="docker group membership")
        self._hooks.emit_success("Docker installed.")

    def install_ngrok(self) -> None:
        self._hooks.emit_info("Installing ngrok...")
        key = self._fetch_key(commands.NGROK_KEY_URL)
        self._sudo(commands.build_tee_cmd(commands.NGROK_KEY_PATH), what="ngrok key import", input=key)
        self._sudo(
            commands.build_tee_cmd(commands.NGROK_APT_LIST),
            what="ngrok apt source",
            input=(commands.NGROK_APT_SOURCE + "\n").encode(),
        )
        self._sudo(commands.build_apt_update_cmd(), what="apt-get update")
        self._sudo(commands.build_apt_install_cmd(["ngrok"]), what="ngrok install")
        self._hooks.emit_success("ngrok installed.")

    def register_tunnel_credential(self) -> None:
        token = self._config.tunnel_token
        if not token:
            raise MissingCredential("ENV_NGROK_TOKEN is not set. Cannot configure ngrok.")
        self._hooks.emit_step("Configuring ngrok authtoken")
        self._sudo(commands.build_ngrok_authtoken_cmd(token), what="ngrok authtoken registration")
        self._hooks.emit_success("ngrok authtoken configured on host.")

    def _sudo(self, cmd: Sequence[str], *, what: str, input: bytes | None = None) -> CommandResult:
        result = self._runner.run(commands.privileged(cmd, use_sudo=self._config.use_sudo), input=input)
        if not result.ok:
            raise DependencyInstallFailed(f"{what} failed (exit {result.returncode}).", detail=result.output_tail() or None)
        return result

    def _query(self, cmd: Sequence[str], *, what: str) -> str:
        result = self._runner.run(cmd)
        value = result.stdout.strip()
        if not result.ok or not value:
            raise DependencyInstallFailed(f"{what} failed (exit {result.returncode}).")
        return value
