# tests/test_deployment.py
import pytest

from core.domain.errors import (
    ContainerStartFailed,
    ContainerStopFailed,
    DescriptorMissing,
    DownloadFailed,
    MissingCredential,
    TunnelStartFailed,
)
from core.domain.models import WarningKind
from core.services.dependencies import DependencyInstaller
from core.services.deployment import DeploymentController
from core.services.progress import ProgressHooks

from conftest import install_provisioning_handlers


def make_controller(config, runner, hooks=None):
    installer = DependencyInstaller(config=config, runner=runner, fetch_key=lambda url: b"key")
    return DeploymentController(
        config=config,
        runner=runner,
        hooks=hooks,
        installer=installer,
        sleep=lambda seconds: None,
    )


def compose(config, *action):
    return ("docker", "compose", "-f", str(config.compose_path), *action)


def fail_on(action, code=1):
    def handler(args, cwd):
        return code if action in args else 0

    return handler


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def controller(config, fake_runner):
    install_provisioning_handlers(fake_runner, config)
    return make_controller(config, fake_runner)


# --- start ---

def test_start_runs_the_whole_sequence_in_order(config, fake_runner, controller):
    report = controller.start()

    order = [
        fake_runner.index_of("apt-get", "update"),
        fake_runner.index_of("ngrok", "config", "add-authtoken"),
        fake_runner.index_of("unzip"),
        fake_runner.index_of("chown", "-R", "1000:1000", str(config.data_dir)),
        fake_runner.index_of(*compose(config, "down", "--remove-orphans")),
        fake_runner.index_of(*compose(config, "pull")),
        fake_runner.index_of(*compose(config, "up", "-d", "--build")),
        fake_runner.index_of("pkill", "ngrok"),
    ]
    assert order == sorted(order)
    assert fake_runner.spawned == [("sudo", "ngrok", "http", "--domain=demo.ngrok-free.app", "5678")]
    assert report.public_url == "https://demo.ngrok-free.app"
    assert report.tunnel_pid == 4242
    assert report.warnings == []
    assert config.env_path.is_file() and config.compose_path.is_file()


def test_start_requires_archive_url_before_side_effects(make_config, fake_runner):
    config = make_config(source_archive_url=None)

    with pytest.raises(MissingCredential, match="ENV_GDRIVE_URL"):
        make_controller(config, fake_runner).start()
    assert fake_runner.calls == []
    assert not config.env_path.exists()


def test_start_rejects_half_configured_tunnel(make_config, fake_runner):
    config = make_config(tunnel_domain=None)

    with pytest.raises(MissingCredential):
        make_controller(config, fake_runner).start()
    assert fake_runner.calls == []


def test_start_without_tunnel(make_config, fake_runner):
    config = make_config(tunnel_domain=None, tunnel_token=None)
    install_provisioning_handlers(fake_runner, config)

    report = make_controller(config, fake_runner).start()

    assert report.tunnel_pid is None
    assert report.public_url == "http://localhost:5678"
    assert fake_runner.spawned == []
    assert not fake_runner.ran("pkill", "ngrok")


def test_ownership_failure_is_a_warning(config, fake_runner, controller):
    fake_runner.on("chown", 1)

    report = controller.start()

    assert [w.kind for w in report.warnings] == [WarningKind.PERMISSION]
    assert fake_runner.ran(*compose(config, "up", "-d", "--build"))
    assert report.tunnel_pid == 4242


def test_extraction_failure_does_not_abort(config, fake_runner, controller):
    fake_runner.on("unzip", 2)

    report = controller.start()

    assert [w.kind for w in report.warnings] == [WarningKind.EXTRACTION]
    assert fake_runner.ran(*compose(config, "up", "-d", "--build"))


def test_download_failure_aborts_before_containers(config, fake_runner, controller):
    fake_runner.on("gdown", 1)

    with pytest.raises(DownloadFailed):
        controller.start()
    assert not fake_runner.ran("docker")
    assert not fake_runner.ran("chown")


def test_pull_failure_aborts(config, fake_runner, controller):
    fake_runner.on("docker", fail_on("pull"))

    with pytest.raises(ContainerStartFailed, match="pull"):
        controller.start()
    assert not fake_runner.ran(*compose(config, "up", "-d", "--build"))


def test_container_start_failure_skips_tunnel(config, fake_runner, controller):
    fake_runner.on("docker", fail_on("up"))

    with pytest.raises(ContainerStartFailed):
        controller.start()
    assert fake_runner.spawned == []
    # Sin rollback de los pasos ya completados.
    assert config.env_path.is_file()


def test_tunnel_spawn_failure(config, fake_runner, controller):
    fake_runner.spawn_error = FileNotFoundError("ngrok")

    with pytest.raises(TunnelStartFailed):
        controller.start()


def test_leftover_stack_shutdown_status_is_ignored(config, fake_runner, controller):
    fake_runner.on("docker", fail_on("down"))

    report = controller.start()

    assert report.tunnel_pid == 4242


# --- stop ---

def test_stop_without_descriptor_is_informative(config, fake_runner):
    messages = []
    controller = make_controller(config, fake_runner, hooks=ProgressHooks(info=messages.append))

    assert controller.stop() is False
    assert fake_runner.ran("pkill", "ngrok")
    assert not fake_runner.ran("docker")
    assert any("No docker-compose.yml" in m for m in messages)


def test_stop_brings_stack_down(config, fake_runner, controller):
    config.compose_path.write_text("services: {}\n")
    fake_runner.on("pkill", 1)

    assert controller.stop() is True
    assert fake_runner.ran(*compose(config, "down", "--remove-orphans"))
    assert config.compose_path.exists()
    assert fake_runner.index_of("pkill", "ngrok") < fake_runner.index_of("docker")


def test_stop_reports_down_failure(config, fake_runner, controller):
    config.compose_path.write_text("services: {}\n")
    fake_runner.on("docker", 1)

    with pytest.raises(ContainerStopFailed):
        controller.stop()


def test_stop_keeps_tool_environment_and_data(config, fake_runner, controller):
    controller.start()

    controller.stop()

    assert config.tool_env_dir.is_dir()
    assert config.data_dir.is_dir()
    assert config.env_path.is_file()


# --- logs ---

def test_logs_without_descriptor(config, fake_runner, controller):
    with pytest.raises(DescriptorMissing):
        controller.logs()
    assert fake_runner.calls == []


def test_logs_streams_service_output(config, fake_runner, controller):
    config.compose_path.write_text("services: {}\n")

    assert controller.logs() == 0
    assert fake_runner.ran(*compose(config, "logs", "-f", "n8n"))


# --- setup ---

def test_setup_regenerates_artifacts_without_commands(make_config, fake_runner):
    config = make_config(source_archive_url=None)
    config.env_path.write_text("OLD=1\n")
    config.compose_path.write_text("old: true\n")

    make_controller(config, fake_runner).setup()

    assert "OLD=1" not in config.env_path.read_text()
    assert config.compose_path.read_text().startswith("version: '3.7'")
    assert fake_runner.calls == []


def test_setup_validates_before_deleting(make_config, fake_runner):
    config = make_config(tunnel_token=None)
    config.env_path.write_text("OLD=1\n")

    with pytest.raises(MissingCredential):
        make_controller(config, fake_runner).setup()
    assert config.env_path.read_text() == "OLD=1\n"
