"""Modelos de dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación estricta y campos autodocumentados (`Field`) sin acoplar el Core
  a subprocesos ni HTTP.
- Una descripción única e inmutable de un despliegue que cada componente
  recibe de forma explícita.

Nota:
- Estos modelos describen *qué* se despliega, no *cómo* se hace.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict


_SCHEMES = ("https://", "http://")


def _strip_scheme(value: str) -> str:
    for scheme in _SCHEMES:
        if value.startswith(scheme):
            return value[len(scheme):]
    return value


class DeploymentConfig(BaseModel):
    """Todo lo que necesita una invocación de `start`/`stop`/`logs`/`setup`.

    Se construye una vez al arrancar el proceso (ver `core.config.AppSettings`) y
    se pasa a cada componente; nadie más lee el entorno del proceso.
    """

    model_config = ConfigDict(frozen=True)

    tunnel_domain: str | None = Field(
        default=None,
        description="Dominio estático de ngrok (p.ej. 'https://example.ngrok-free.app').",
    )
    tunnel_token: str | None = Field(
        default=None,
        description="Authtoken de ngrok que se registra en el host.",
    )
    source_archive_url: str | None = Field(
        default=None,
        description="Enlace compartido de Google Drive del archivo de datos precargado.",
    )
    public_domain: str | None = Field(
        default=None,
        description="URL pública a usar cuando el modo túnel está desactivado.",
    )
    data_host_path: str = Field(
        default="./n8n-data",
        min_length=1,
        description="Directorio del host montado como /home/node/.n8n.",
    )
    workdir: Path = Field(
        default=Path("."),
        validate_default=True,
        description="Directorio con los artefactos, el zip y el entorno de herramientas.",
    )

    env_file: str = Field(default=".env", min_length=1)
    compose_file: str = Field(default="docker-compose.yml", min_length=1)

    service_name: str = Field(default="n8n", min_length=1)
    image: str = Field(default="n8nio/n8n:latest", min_length=1)
    internal_port: int = Field(default=5678, ge=1, le=65535)
    mem_limit: str = Field(default="2048m", min_length=1)
    mem_reservation: str = Field(default="1024m", min_length=1)
    node_max_old_space_mb: int = Field(default=1500, ge=64)

    tool_env_name: str = Field(default="gdrive_env", min_length=1)
    archive_name: str = Field(default="n8n-data.zip", min_length=1)
    host_python: str = Field(default="python3", min_length=1)

    owner_uid: int = Field(default=1000, ge=0)
    owner_gid: int = Field(default=1000, ge=0)
    use_sudo: bool = Field(default=True)
    operator_user: str | None = Field(
        default=None,
        description="Usuario que se añade al grupo 'docker' tras instalar Docker.",
    )
    tunnel_restart_delay_seconds: float = Field(default=1.0, ge=0)

    @field_validator("tunnel_domain", "tunnel_token", "source_archive_url", "public_domain", "operator_user", mode="before")
    @classmethod
    def _blank_is_absent(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("data_host_path")
    @classmethod
    def _bind_mount_path(cls, value: str) -> str:
        # compose interpreta un nombre suelto como volumen con nombre, no como directorio.
        value = value.strip()
        if value.startswith(("/", ".", "~")):
            return value
        return f"./{value}"

    @field_validator("workdir")
    @classmethod
    def _absolute_workdir(cls, value: Path) -> Path:
        # Los comandos corren con cwd=workdir y reciben rutas absolutas.
        return value.expanduser().resolve()

    @property
    def tunnel_enabled(self) -> bool:
        return bool(self.tunnel_domain and self.tunnel_token)

    @property
    def tunnel_half_configured(self) -> bool:
        return bool(self.tunnel_domain) != bool(self.tunnel_token)

    @property
    def tunnel_hostname(self) -> str | None:
        """Dominio tal como lo espera ngrok: sin esquema ni barra final."""

        if not self.tunnel_domain:
            return None
        return _strip_scheme(self.tunnel_domain).rstrip("/")

    @property
    def public_url(self) -> str:
        if self.tunnel_enabled:
            return f"https://{self.tunnel_hostname}"
        if self.public_domain:
            return self.public_domain.rstrip("/")
        return f"http://localhost:{self.internal_port}"

    @property
    def data_dir(self) -> Path:
        return self.workdir / Path(self.data_host_path).expanduser()

    @property
    def env_path(self) -> Path:
        return self.workdir / self.env_file

    @property
    def compose_path(self) -> Path:
        return self.workdir / self.compose_file

    @property
    def tool_env_dir(self) -> Path:
        return self.workdir / self.tool_env_name

    @property
    def archive_path(self) -> Path:
        return self.workdir / self.archive_name


class WarningKind(str, Enum):
    """Fallos recuperables: se reportan y la secuencia continúa."""

    EXTRACTION = "ExtractionWarning"
    PERMISSION = "PermissionWarning"


class StepWarning(BaseModel):
    kind: WarningKind
    message: str = Field(..., min_length=1)


class ProvisionResult(BaseModel):
    """Resultado de un aprovisionamiento de datos que no abortó."""

    file_id: str = Field(..., min_length=1)
    archive_size: int = Field(default=0, ge=0)
    extracted: bool = Field(default=False)
    normalized: bool = Field(
        default=False,
        description="True si se aplanó una carpeta anidada de primer nivel.",
    )
    warnings: list[StepWarning] = Field(default_factory=list)


class DeploymentReport(BaseModel):
    public_url: str
    tunnel_pid: int | None = None
    warnings: list[StepWarning] = Field(default_factory=list)
