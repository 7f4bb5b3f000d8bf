"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- La CLI lee los settings una vez y entrega un `DeploymentConfig` a los
  servicios; ningún servicio lee el entorno del proceso.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import DeploymentConfig


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "n8n-deploy"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "n8n-deploy"
    return Path.home() / ".config" / "n8n-deploy"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Settings centrales de la aplicación.

    Dos familias de variables:
    - Las entradas del operador mantienen sus nombres históricos (`ENV_NGROK_DOMAIN`,
      `ENV_NGROK_TOKEN`, `ENV_GDRIVE_URL`, `ENV_DOMAIN`, `ENV_DATA_PATH`).
    - Los ajustes de la herramienta usan el prefijo `N8N_DEPLOY_`.

    El `.env` que se genera en el directorio de trabajo es una salida de la herramienta,
    nunca una fuente de settings; solo lo es el archivo por usuario.
    """

    model_config = SettingsConfigDict(
        env_prefix="N8N_DEPLOY_",
        extra="ignore",
        case_sensitive=False,
        env_file=str(get_user_env_file()),
        env_file_encoding="utf-8",
    )

    tunnel_domain: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ENV_NGROK_DOMAIN", "N8N_DEPLOY_TUNNEL_DOMAIN"),
        description="Dominio estático de ngrok; junto con el token activa el modo túnel.",
    )
    tunnel_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ENV_NGROK_TOKEN", "N8N_DEPLOY_TUNNEL_TOKEN"),
        description="Authtoken de ngrok.",
    )
    source_archive_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ENV_GDRIVE_URL", "N8N_DEPLOY_SOURCE_ARCHIVE_URL"),
        description="Enlace compartido de Google Drive del archivo de datos.",
    )
    public_domain: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ENV_DOMAIN", "N8N_DEPLOY_PUBLIC_DOMAIN"),
        description="URL pública cuando no hay túnel (por defecto localhost).",
    )
    data_host_path: str = Field(
        default="./n8n-data",
        min_length=1,
        validation_alias=AliasChoices("ENV_DATA_PATH", "N8N_DEPLOY_DATA_HOST_PATH"),
        description="Directorio de datos persistentes en el host.",
    )
    operator_user: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SUDO_USER", "USER"),
        description="Usuario que se añade al grupo docker tras instalar Docker.",
    )

    workdir: Path = Field(default=Path("."), description="Dónde se escriben los artefactos.")
    image: str = Field(default="n8nio/n8n:latest", min_length=1)
    internal_port: int = Field(default=5678, ge=1, le=65535)
    mem_limit: str = Field(default="2048m", min_length=1)
    mem_reservation: str = Field(default="1024m", min_length=1)
    owner_uid: int = Field(default=1000, ge=0)
    owner_gid: int = Field(default=1000, ge=0)
    use_sudo: bool = Field(
        default=True,
        description="Antepone sudo a los comandos privilegiados (apt, chown, ngrok).",
    )
    tool_env_name: str = Field(default="gdrive_env", min_length=1)
    host_python: str = Field(default="python3", min_length=1)

    def to_deployment_config(self, *, workdir: Path | None = None) -> DeploymentConfig:
        return DeploymentConfig(
            tunnel_domain=self.tunnel_domain,
            tunnel_token=self.tunnel_token,
            source_archive_url=self.source_archive_url,
            public_domain=self.public_domain,
            data_host_path=self.data_host_path,
            workdir=workdir or self.workdir,
            image=self.image,
            internal_port=self.internal_port,
            mem_limit=self.mem_limit,
            mem_reservation=self.mem_reservation,
            owner_uid=self.owner_uid,
            owner_gid=self.owner_gid,
            use_sudo=self.use_sudo,
            operator_user=self.operator_user,
            tool_env_name=self.tool_env_name,
            host_python=self.host_python,
        )
