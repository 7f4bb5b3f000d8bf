# tests/conftest.py
import zipfile
from pathlib import Path

import pytest

from core.domain.models import DeploymentConfig
from core.interfaces.runner import CommandResult

# --- datos de prueba compartidos ---
SHARE_URL = "https://drive.google.com/file/d/1A2B3C/view?usp=sharing"
TUNNEL_DOMAIN = "https://demo.ngrok-free.app/"
TUNNEL_TOKEN = "2abcdefghijklmnopqrstuvwxyz"


def program_of(args):
    """Nombre del programa de un argv, ignorando sudo inicial y directorios."""
    argv = list(args)
    if argv and argv[0] == "sudo":
        argv = argv[1:]
    return Path(argv[0]).name if argv else ""


def strip_sudo(args):
    argv = tuple(args)
    return argv[1:] if argv and argv[0] == "sudo" else argv


class FakeRunner:
    """Registra cada comando; los handlers simulan códigos de salida y efectos."""

    def __init__(self, installed=("docker", "ngrok")):
        self.calls = []
        self.inputs = []
        self.spawned = []
        self.installed = set(installed)
        self.handlers = {
            "dpkg": self._dpkg,
            "lsb_release": lambda args, cwd: CommandResult(args=args, returncode=0, stdout="jammy\n"),
        }
        self.spawn_error = None

    @staticmethod
    def _dpkg(args, cwd):
        if "--print-architecture" in args:
            return CommandResult(args=args, returncode=0, stdout="amd64\n")
        return 0

    def on(self, program, outcome):
        """Registra un handler (callable) o un código de salida fijo para `program`."""
        if callable(outcome):
            self.handlers[program] = outcome
        else:
            self.handlers[program] = lambda args, cwd, code=outcome: code

    def run(self, args, *, cwd=None, input=None, capture=True):
        argv = tuple(str(a) for a in args)
        self.calls.append(argv)
        self.inputs.append(input)
        handler = self.handlers.get(program_of(argv))
        outcome = handler(argv, cwd) if handler else 0
        if isinstance(outcome, CommandResult):
            return outcome
        return CommandResult(args=argv, returncode=int(outcome or 0))

    def spawn(self, args, *, cwd=None):
        if self.spawn_error:
            raise self.spawn_error
        self.spawned.append(tuple(str(a) for a in args))
        return 4242

    def which(self, program):
        return f"/usr/bin/{program}" if program in self.installed else None

    # --- helpers para asserts ---
    def commands(self):
        return [strip_sudo(c) for c in self.calls]

    def ran(self, *prefix):
        return any(c[: len(prefix)] == prefix for c in self.commands())

    def index_of(self, *prefix):
        for i, c in enumerate(self.commands()):
            if c[: len(prefix)] == prefix:
                return i
        raise AssertionError(f"command {prefix} was not run")


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides):
        values = {
            "workdir": tmp_path,
            "source_archive_url": SHARE_URL,
            "tunnel_domain": TUNNEL_DOMAIN,
            "tunnel_token": TUNNEL_TOKEN,
            "operator_user": "ubuntu",
            "tunnel_restart_delay_seconds": 0,
        }
        values.update(overrides)
        return DeploymentConfig(**values)

    return _make


def build_archive(path, files):
    """Escribe un zip con entradas {nombre_relativo: texto}."""
    with zipfile.ZipFile(path, "w") as zf:
        for name, text in files.items():
            zf.writestr(name, text)
    return path


def install_provisioning_handlers(runner, config, archive_files=None):
    """Simula venv, pip, gdown y unzip para que actúen sobre el filesystem."""
    archive_files = archive_files if archive_files is not None else {"database.sqlite": "db"}

    def create_venv(args, cwd):
        env_dir = Path(args[-1])
        (env_dir / "bin").mkdir(parents=True, exist_ok=True)
        (env_dir / "bin" / "activate").write_text("# activate\n")
        return 0

    def pip_install(args, cwd):
        (Path(args[0]).parent / "gdown").write_text("#!/bin/sh\n")
        return 0

    def gdown(args, cwd):
        output = Path(args[args.index("--output") + 1])
        build_archive(output, archive_files)
        return 0

    def unzip(args, cwd):
        archive = Path(args[2])
        target = Path(args[args.index("-d") + 1])
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(target)
        return 0

    runner.on(config.host_python, create_venv)
    runner.on("pip", pip_install)
    runner.on("gdown", gdown)
    runner.on("unzip", unzip)
    return runner
