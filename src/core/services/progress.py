"""Callbacks de progreso para las capas de UI.

Los servicios nunca imprimen: la CLI conecta la salida de rich a estos hooks,
los tests pueden recolectar los mensajes o dejar todos los hooks sin definir.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


@dataclass
class ProgressHooks:
    """Callbacks opcionales para capas de UI (progreso, advertencias)."""

    step: Callable[[str], None] | None = None
    info: Callable[[str], None] | None = None
    success: Callable[[str], None] | None = None
    warning: Callable[[str], None] | None = None

    def emit_step(self, message: str) -> None:
        if self.step:
            self.step(message)

    def emit_info(self, message: str) -> None:
        if self.info:
            self.info(message)

    def emit_success(self, message: str) -> None:
        if self.success:
            self.success(message)

    def emit_warning(self, message: str) -> None:
        if self.warning:
            self.warning(message)
