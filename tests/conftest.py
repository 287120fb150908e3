import base64

import pytest

from webdisk.app import create_app
from webdisk.config import Config, UserConfig, WebDAVConfig, parse_permissions


class FakeDavApp:
    """Stands in for the WebDAV protocol handler and records what reaches it."""

    def __init__(self):
        self.calls = []

    def __call__(self, environ, start_response):
        body = environ["wsgi.input"].read()
        self.calls.append(
            {
                "method": environ["REQUEST_METHOD"],
                "path": environ["PATH_INFO"],
                "authorization": environ.get("HTTP_AUTHORIZATION"),
                "body": body,
            }
        )
        start_response("207 Multi-Status", [("Content-Type", "text/xml"), ("X-Fake-Dav", "1")])
        return [b"delegated"]


def basic_auth(username, password):
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """An isolated data directory used as the working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("WEBDISK_CONFIG", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    path = tmp_path / "data"
    monkeypatch.setenv("WEBDISK_DATA_DIR", str(path))
    return path


@pytest.fixture
def root_dir(tmp_path):
    path = tmp_path / "www"
    path.mkdir()
    return path


@pytest.fixture
def make_config(root_dir):
    def _make(enabled=True, users=None):
        users = users or {}
        return Config(
            ipv4_bind="127.0.0.1",
            ipv6_bind="",
            port=8080,
            root_dir=str(root_dir),
            webdav=WebDAVConfig(
                enabled=enabled,
                users={
                    name: UserConfig(password=password, permissions=parse_permissions(perms))
                    for name, (password, perms) in users.items()
                },
            ),
        )

    return _make


@pytest.fixture
def dav_app():
    return FakeDavApp()


@pytest.fixture
def make_client(make_config, dav_app):
    def _make(**kwargs):
        app = create_app(make_config(**kwargs), dav_app=dav_app)
        app.config["TESTING"] = True
        return app.test_client()

    return _make
