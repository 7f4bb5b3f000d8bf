"""`CommandRunner` basado en `subprocess`.

Por qué un adaptador:
- El Core solo conoce `core.interfaces.runner.CommandRunner`.
- El logging y el ocultado de secretos de cada comando externo viven aquí, una sola vez.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, Sequence

from core.interfaces.runner import CommandResult, CommandRunner


logger = logging.getLogger(__name__)


def redact_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"


def format_command(args: Sequence[str], secrets: Iterable[str] = ()) -> str:
    hidden = {s for s in secrets if s}
    return " ".join(redact_secret(a) if a in hidden else a for a in args)


class SubprocessRunner(CommandRunner):
    """Ejecuta programas del host directamente (sin shell) y reporta su estado."""

    def __init__(self, *, secrets: Iterable[str] = ()) -> None:
        self._secrets = tuple(s for s in secrets if s)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        input: bytes | None = None,
        capture: bool = True,
    ) -> CommandResult:
        argv = tuple(str(a) for a in args)
        logger.debug("run: %s", format_command(argv, self._secrets))
        try:
            proc = subprocess.run(
                argv,
                cwd=str(cwd) if cwd else None,
                input=input,
                capture_output=capture,
                check=False,
            )
        except FileNotFoundError as exc:
            logger.debug("program not found: %s", argv[0])
            return CommandResult(args=argv, returncode=127, stderr=str(exc))

        stdout = proc.stdout.decode("utf-8", errors="replace") if capture and proc.stdout else ""
        stderr = proc.stderr.decode("utf-8", errors="replace") if capture and proc.stderr else ""
        if proc.returncode != 0:
            logger.debug("exit %s: %s", proc.returncode, (stderr or stdout).strip()[-500:])
        return CommandResult(args=argv, returncode=proc.returncode, stdout=stdout, stderr=stderr)

    def spawn(self, args: Sequence[str], *, cwd: Path | None = None) -> int:
        argv = [str(a) for a in args]
        logger.debug("spawn: %s", format_command(argv, self._secrets))
        proc = subprocess.Popen(
            argv,
            cwd=str(cwd) if cwd else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        return proc.pid

    def which(self, program: str) -> str | None:
        return shutil.which(program)
