"""Taxonomía de errores de los pasos de despliegue.

Todo fallo fatal es una subclase de `DeploymentError`: la CLI lo imprime y
sale con código 1. Los fallos recuperables (extracción, permisos) no son
excepciones; viajan como valores `StepWarning` (ver `core.domain.models`).
"""

from __future__ import annotations


class DeploymentError(Exception):
    """Clase base para fallos que abortan el comando en curso."""

    kind = "DeploymentError"

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\n{self.detail}"
        return self.message


class MissingCredential(DeploymentError):
    """Falta configuración obligatoria (o el par del túnel está a medias)."""

    kind = "MissingCredential"


class InvalidShareLink(DeploymentError):
    kind = "InvalidShareLink"


class EnvironmentSetupFailed(DeploymentError):
    """No se pudo crear el entorno aislado de herramientas."""

    kind = "EnvironmentSetupFailed"


class ToolInstallFailed(DeploymentError):
    kind = "ToolInstallFailed"


class DownloadFailed(DeploymentError):
    """La descarga terminó con error o dejó un archivo vacío/inexistente."""

    kind = "DownloadFailed"


class DependencyInstallFailed(DeploymentError):
    kind = "DependencyInstallFailed"


class ContainerStartFailed(DeploymentError):
    kind = "ContainerStartFailed"


class ContainerStopFailed(DeploymentError):
    kind = "ContainerStopFailed"


class TunnelStartFailed(DeploymentError):
    kind = "TunnelStartFailed"


class DescriptorMissing(DeploymentError):
    """Aún no hay docker-compose.yml en disco (ejecuta `start` o `setup`)."""

    kind = "DescriptorMissing"
