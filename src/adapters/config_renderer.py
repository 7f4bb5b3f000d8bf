"""Renderizado de los artefactos `.env` y `docker-compose.yml`.

Por qué en adapters:
- Las plantillas Jinja2 y la escritura de archivos son detalles de infraestructura.
- El Core solo conoce `DeploymentConfig`.

Reglas:
- Sustitución pura: aquí no se valida nada, el controlador valida antes.
- Misma entrada, mismos bytes; los archivos siempre se sobrescriben.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from core.domain.models import DeploymentConfig


logger = logging.getLogger(__name__)

_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

# Variables que el contenedor recibe de `.env` vía interpolación de compose.
PASSTHROUGH_VARIABLES: tuple[str, ...] = (
    "EDITOR_BASE_URL",
    "WEBHOOK_URL",
    "N8N_DEFAULT_BINARY_DATA_MODE",
    "N8N_COMMUNITY_PACKAGES_ALLOW_TOOL_USAGE",
    "N8N_RUNNERS_ENABLED",
)


def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        autoescape=False,
    )


def render_env_file(config: DeploymentConfig) -> str:
    template = _get_env().get_template("env.j2")
    return template.render(config=config, public_url=config.public_url)


def render_compose_file(config: DeploymentConfig) -> str:
    template = _get_env().get_template("docker-compose.yml.j2")
    return template.render(config=config, passthrough=PASSTHROUGH_VARIABLES)


@dataclass(frozen=True)
class MaterializedArtifacts:
    env_path: Path
    compose_path: Path


class ConfigMaterializer:
    """Escribe ambos artefactos para un `DeploymentConfig` dado."""

    def materialize(self, config: DeploymentConfig) -> MaterializedArtifacts:
        config.workdir.mkdir(parents=True, exist_ok=True)
        _write(config.env_path, render_env_file(config))
        _write(config.compose_path, render_compose_file(config))
        logger.debug("rendered %s and %s", config.env_path, config.compose_path)
        return MaterializedArtifacts(env_path=config.env_path, compose_path=config.compose_path)

    def remove(self, config: DeploymentConfig) -> None:
        for path in (config.env_path, config.compose_path):
            path.unlink(missing_ok=True)


def _write(path: Path, text: str) -> None:
    # newline="" mantiene "\n" en todas las plataformas.
    with path.open("w", encoding="utf-8", newline="") as fh:
        fh.write(text)
