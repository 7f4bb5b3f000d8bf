"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y redirecciones para las pocas descargas HTTP
  que hace el instalador (claves de firma de los repos apt).
- Fácil de sustituir en tests: el instalador recibe un callable.
"""

from __future__ import annotations

import logging

import httpx

from core.domain.errors import DependencyInstallFailed


logger = logging.getLogger(__name__)

USER_AGENT = "n8n-deploy/0.1"


def build_client(*, timeout_seconds: float = 30.0) -> httpx.Client:
    """Crea un `httpx.Client` con valores por defecto seguros."""

    return httpx.Client(
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT, "Accept": "*/*"},
    )


def fetch_signing_key(url: str) -> bytes:
    """Descarga la clave de firma de un repositorio apt.

    Lanza `DependencyInstallFailed` ante errores de red, estados no 2xx o cuerpo
    vacío; el instalador aborta antes de tocar las fuentes de apt.
    """

    logger.debug("fetching signing key %s", url)
    try:
        with build_client() as client:
            response = client.get(url)
            response.raise_for_status()
    except httpx.HTTPError as exc:
        raise DependencyInstallFailed(f"Could not download signing key from {url}.", detail=str(exc)) from exc

    if not response.content:
        raise DependencyInstallFailed(f"Signing key at {url} is empty.")
    return response.content
