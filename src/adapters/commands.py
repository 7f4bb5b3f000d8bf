"""Constructores de línea de comandos para los programas del host.

Por qué constructores puros:
- Cada argv se arma en un solo sitio y se testea trivialmente.
- Los servicios nunca concatenan strings de shell; nada pasa por una shell.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


BASE_PACKAGES: tuple[str, ...] = (
    "ca-certificates",
    "curl",
    "gnupg",
    "lsb-release",
    "python3-pip",
    "python3-venv",
    "unzip",
    "git",
)

DOCKER_PACKAGES: tuple[str, ...] = (
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
)

DOCKER_GPG_URL = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_KEYRING = Path("/etc/apt/keyrings/docker.gpg")
DOCKER_APT_LIST = Path("/etc/apt/sources.list.d/docker.list")

NGROK_KEY_URL = "https://ngrok-agent.s3.amazonaws.com/ngrok.asc"
NGROK_KEY_PATH = Path("/etc/apt/trusted.gpg.d/ngrok.asc")
NGROK_APT_LIST = Path("/etc/apt/sources.list.d/ngrok.list")
NGROK_APT_SOURCE = "deb https://ngrok-agent.s3.amazonaws.com bookworm main"


def privileged(cmd: Sequence[str], *, use_sudo: bool) -> list[str]:
    return ["sudo", *cmd] if use_sudo else list(cmd)


def build_apt_update_cmd() -> list[str]:
    return ["apt-get", "update"]


def build_apt_install_cmd(packages: Sequence[str]) -> list[str]:
    return ["apt-get", "install", "-y", *packages]


def build_tee_cmd(path: Path) -> list[str]:
    return ["tee", str(path)]


def build_docker_apt_source(*, arch: str, codename: str) -> str:
    return (
        f"deb [arch={arch} signed-by={DOCKER_KEYRING}] "
        f"https://download.docker.com/linux/ubuntu {codename} stable\n"
    )


def build_ngrok_authtoken_cmd(token: str) -> list[str]:
    return ["ngrok", "config", "add-authtoken", token]


def build_ngrok_http_cmd(*, hostname: str, port: int) -> list[str]:
    return ["ngrok", "http", f"--domain={hostname}", str(port)]


def build_pkill_cmd(program: str) -> list[str]:
    return ["pkill", program]


def build_venv_cmd(*, python: str, env_dir: Path) -> list[str]:
    return [python, "-m", "venv", str(env_dir)]


def build_pip_install_cmd(*, env_dir: Path, package: str) -> list[str]:
    return [str(env_dir / "bin" / "pip"), "install", package]


def build_gdown_cmd(*, env_dir: Path, file_id: str, output: Path) -> list[str]:
    return [
        str(env_dir / "bin" / "gdown"),
        file_id,
        "--output",
        str(output),
        "--no-cookies",
        "--fuzzy",
    ]


def build_unzip_cmd(*, archive: Path, target_dir: Path) -> list[str]:
    return ["unzip", "-o", str(archive), "-d", str(target_dir)]


def build_chown_cmd(*, path: Path, uid: int, gid: int) -> list[str]:
    return ["chown", "-R", f"{uid}:{gid}", str(path)]


def build_compose_cmd(*, compose_file: Path, action: Sequence[str]) -> list[str]:
    return ["docker", "compose", "-f", str(compose_file), *action]
