"""WebDAV backend for webdisk."""

from wsgidav.fs_dav_provider import FilesystemProvider
from wsgidav.wsgidav_app import WsgiDAVApp

MOUNT_PATH = "/webdav"


def create_dav_app(root_path, mount_path=MOUNT_PATH):
    """Build the WebDAV application serving ``root_path`` under ``mount_path``.

    Authentication happens in front of this app, so it is configured for
    anonymous access.
    """
    config = {
        "provider_mapping": {mount_path: FilesystemProvider(root_path, fs_opts={})},
        "http_authenticator": {
            "domain_controller": None,
            "accept_basic": False,
            "accept_digest": False,
            "default_to_digest": False,
        },
        "simple_dc": {"user_mapping": {"*": True}},
        "dir_browser": {"enable": True},
        "logging": {"enable_loggers": []},
        "verbose": 1,
    }
    return WsgiDAVApp(config)
