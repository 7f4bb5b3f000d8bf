"""Aprovisionamiento de datos persistentes.

Convierte un zip alojado en Google Drive en un directorio de datos poblado:

1. resolver el ID de archivo desde el enlace compartido,
2. asegurar que existe el entorno aislado de herramientas (un venv),
3. instalar `gdown` dentro,
4. asegurar que existe el directorio de datos,
5. descargar (código distinto de cero *y* salida vacía son ambos fallos),
6. extraer con `unzip` (el fallo es solo una advertencia),
7. aplanar una carpeta anidada `<data>/<basename(data)>` tras una extracción limpia,
8. borrar el zip.

Los pasos 1-4 deben completarse antes de descargar nada.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from adapters import commands
from core.domain.errors import (
    DownloadFailed,
    EnvironmentSetupFailed,
    MissingCredential,
    ToolInstallFailed,
)
from core.domain.models import DeploymentConfig, ProvisionResult, StepWarning, WarningKind
from core.interfaces.runner import CommandRunner
from core.services.progress import ProgressHooks
from core.services.share_link import resolve_file_id


logger = logging.getLogger(__name__)

DOWNLOAD_TOOL = "gdown"


def human_size(num_bytes: int) -> str:
    """Formatea bytes como `du -h` (base 1024)."""

    size = float(num_bytes)
    for unit in ("B", "K", "M", "G", "T"):
        if size < 1024 or unit == "T":
            if unit == "B":
                return f"{int(size)}B"
            return f"{size:.1f}{unit}"
        size /= 1024
    return f"{num_bytes}B"


def normalize_nested_directory(data_dir: Path) -> bool:
    """Aplana `data_dir/<data_dir.name>` dentro de `data_dir`.

    Los zips suelen conservar su carpeta raíz, así que extraer `n8n-data.zip`
    en `n8n-data/` deja `n8n-data/n8n-data/...`. Devuelve True si movió algo;
    no hace nada si la carpeta anidada no existe o está vacía. Un `OSError` a
    mitad de camino se propaga al llamador.
    """

    nested = data_dir / data_dir.name
    if not nested.is_dir() or nested.is_symlink():
        return False
    if not any(nested.iterdir()):
        return False

    # Nombre único: un staging huérfano de una ejecución anterior no bloquea.
    staging_root = Path(tempfile.mkdtemp(prefix=f".{data_dir.name}.flatten-", dir=data_dir))
    staging = staging_root / data_dir.name
    nested.rename(staging)
    for child in sorted(staging.iterdir()):
        target = data_dir / child.name
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        shutil.move(str(child), str(target))
    staging.rmdir()
    staging_root.rmdir()
    return True


class DataProvisioner:
    def __init__(
        self,
        *,
        config: DeploymentConfig,
        runner: CommandRunner,
        hooks: ProgressHooks | None = None,
    ) -> None:
        self._config = config
        self._runner = runner
        self._hooks = hooks or ProgressHooks()

    def provision(self) -> ProvisionResult:
        config = self._config
        self._hooks.emit_step("Starting n8n persistent data preparation")

        if not config.source_archive_url:
            raise MissingCredential("ENV_GDRIVE_URL is not set.")
        file_id = resolve_file_id(config.source_archive_url)
        self._hooks.emit_success(f"Extracted file ID: {file_id}")

        self.ensure_tool_environment()
        self.ensure_download_tool()
        self.ensure_data_dir()

        size = self.download(file_id)
        result = ProvisionResult(file_id=file_id, archive_size=size)
        try:
            result.extracted = self.extract()
            if result.extracted:
                result.normalized = self._normalize(result)
            else:
                message = "Unzip failed. The downloaded file might be corrupted. Continuing cleanup."
                result.warnings.append(StepWarning(kind=WarningKind.EXTRACTION, message=message))
                self._hooks.emit_warning(message)
        finally:
            config.archive_path.unlink(missing_ok=True)
            self._hooks.emit_success(
                f"Removed {config.archive_name}. Environment '{config.tool_env_name}' remains for future use."
            )
        return result

    def ensure_tool_environment(self) -> None:
        env_dir = self._config.tool_env_dir
        if not env_dir.is_dir():
            self._hooks.emit_info(f"Creating virtual environment: {self._config.tool_env_name}")
            self._ensure_venv_package()
            created = self._runner.run(
                commands.build_venv_cmd(python=self._config.host_python, env_dir=env_dir),
                cwd=self._config.workdir,
            )
            if not created.ok:
                raise EnvironmentSetupFailed(
                    "Failed to create virtual environment. 'python3-venv' might still be missing.",
                    detail=created.output_tail() or None,
                )
        if not (env_dir / "bin" / "activate").is_file():
            raise EnvironmentSetupFailed("Virtual environment activation script not found.")

    def ensure_download_tool(self) -> None:
        env_dir = self._config.tool_env_dir
        self._hooks.emit_info(f"Installing {DOWNLOAD_TOOL} into {self._config.tool_env_name}...")
        installed = self._runner.run(commands.build_pip_install_cmd(env_dir=env_dir, package=DOWNLOAD_TOOL))
        if not installed.ok:
            logger.debug("pip exited %s", installed.returncode)
        if not (env_dir / "bin" / DOWNLOAD_TOOL).is_file():
            raise ToolInstallFailed(
                f"{DOWNLOAD_TOOL} installation failed. Cannot proceed with download.",
                detail=installed.output_tail() or None,
            )
        self._hooks.emit_success(f"{DOWNLOAD_TOOL} is installed and ready.")

    def ensure_data_dir(self) -> None:
        data_dir = self._config.data_dir
        if not data_dir.is_dir():
            data_dir.mkdir(parents=True, exist_ok=True)
            self._hooks.emit_success(f"Created persistent data directory: {self._config.data_host_path}")

    def download(self, file_id: str) -> int:
        """Descarga el zip; devuelve su tamaño en bytes."""

        archive = self._config.archive_path
        self._hooks.emit_step(f"Downloading Google Drive file (ID: {file_id}) using {DOWNLOAD_TOOL}")
        status = self._runner.run(
            commands.build_gdown_cmd(env_dir=self._config.tool_env_dir, file_id=file_id, output=archive),
            cwd=self._config.workdir,
            capture=False,
        )
        size = archive.stat().st_size if archive.is_file() else 0
        if not status.ok or size == 0:
            archive.unlink(missing_ok=True)
            reason = f"exit {status.returncode}" if not status.ok else "file is empty"
            raise DownloadFailed(f"Download failed or file is empty ({reason}). Exiting deployment.")
        self._hooks.emit_success(f"Download complete (File size: {human_size(size)}).")
        return size

    def extract(self) -> bool:
        config = self._config
        self._hooks.emit_step(f"Unzipping {config.archive_name} to {config.data_host_path}")
        status = self._runner.run(
            commands.build_unzip_cmd(archive=config.archive_path, target_dir=config.data_dir),
            cwd=config.workdir,
        )
        if status.ok:
            self._hooks.emit_success("File extraction attempted.")
        return status.ok

    def _normalize(self, result: ProvisionResult) -> bool:
        config = self._config
        try:
            normalized = normalize_nested_directory(config.data_dir)
        except OSError as exc:
            message = (
                f"Could not flatten the nested folder in {config.data_host_path} ({exc}). "
                "The data directory may be partially moved; check it before using n8n."
            )
            result.warnings.append(StepWarning(kind=WarningKind.EXTRACTION, message=message))
            self._hooks.emit_warning(message)
            return False
        if normalized:
            self._hooks.emit_success(f"Nested directory detected and moved to {config.data_host_path}.")
        return normalized

    def _ensure_venv_package(self) -> None:
        if self._runner.run(["dpkg", "-s", "python3-venv"]).ok:
            return
        self._hooks.emit_warning("python3-venv missing. Installing...")
        self._runner.run(
            commands.privileged(commands.build_apt_install_cmd(["python3-venv"]), use_sudo=self._config.use_sudo)
        )
