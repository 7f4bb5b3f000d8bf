"""Contrato de ejecución de comandos.

Por qué un Protocol:
- Tipado estructural: `SubprocessRunner` y los fakes de los tests son
  intercambiables sin herencia.
- Los pasos de instalación, descarga y contenedores se pueden mockear sin
  tocar un gestor de paquetes, la red ni un motor de contenedores reales.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable


@dataclass(frozen=True)
class CommandResult:
    """Código de salida y salida capturada de un comando externo."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = field(default="", repr=False)

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def output_tail(self, lines: int = 20) -> str:
        text = (self.stderr or self.stdout or "").strip()
        return "\n".join(text.splitlines()[-lines:])


@runtime_checkable
class CommandRunner(Protocol):
    """Contrato mínimo para ejecutar programas del host.

    Reglas de diseño:
    - `run` nunca lanza por un código distinto de cero; quien llama revisa `ok` una vez.
    - Un programa que no existe devuelve 127 (semántica de shell).
    - `spawn` lanza un proceso desacoplado y no lo espera.
    """

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        input: bytes | None = None,
        capture: bool = True,
    ) -> CommandResult:
        ...

    def spawn(self, args: Sequence[str], *, cwd: Path | None = None) -> int:
        """Lanza `args` en segundo plano y devuelve su pid."""

        ...

    def which(self, program: str) -> str | None:
        ...
