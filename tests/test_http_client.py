# tests/test_http_client.py
import httpx
import pytest

from adapters import http_client
from core.domain.errors import DependencyInstallFailed


def _patch_transport(mocker, handler):
    def build_client(**kwargs):
        return httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True)

    mocker.patch.object(http_client, "build_client", side_effect=build_client)


def test_fetch_signing_key_returns_body(mocker):
    _patch_transport(mocker, lambda request: httpx.Response(200, content=b"KEY"))

    assert http_client.fetch_signing_key("https://download.example/gpg") == b"KEY"


def test_http_error_status_is_an_install_failure(mocker):
    _patch_transport(mocker, lambda request: httpx.Response(404))

    with pytest.raises(DependencyInstallFailed, match="signing key"):
        http_client.fetch_signing_key("https://download.example/gpg")


def test_empty_key_is_rejected(mocker):
    _patch_transport(mocker, lambda request: httpx.Response(200, content=b""))

    with pytest.raises(DependencyInstallFailed, match="empty"):
        http_client.fetch_signing_key("https://download.example/gpg")


def test_network_error_is_an_install_failure(mocker):
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    _patch_transport(mocker, handler)

    with pytest.raises(DependencyInstallFailed):
        http_client.fetch_signing_key("https://download.example/gpg")
