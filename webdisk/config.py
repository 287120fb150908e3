"""Configuration module for webdisk."""

import enum
import ipaddress
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional

from webdisk.errors import ConfigValidationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "WEBDISK_CONFIG"
DATA_DIR_ENV_VAR = "WEBDISK_DATA_DIR"
CONFIG_FILE_NAME = "config.json"
HOST_KEYS = ("ip", "ipv6", "port", "cwd")


class Permission(enum.Enum):
    """A WebDAV capability granted to a user."""

    READ = "r"
    WRITE = "w"
    EXECUTE = "x"


def parse_permissions(value: str) -> FrozenSet[Permission]:
    """Parse a permission string such as ``"rw"`` into a set of permissions."""
    if not isinstance(value, str):
        raise ConfigValidationError("Permissions must be a string of r, w and x")
    try:
        return frozenset(Permission(char) for char in value)
    except ValueError:
        raise ConfigValidationError(
            f"Invalid permission string {value!r}: only r, w and x are allowed"
        ) from None


def format_permissions(permissions: Iterable[Permission]) -> str:
    """Render permissions in canonical ``rwx`` order."""
    granted = set(permissions)
    return "".join(p.value for p in Permission if p in granted)


@dataclass
class UserConfig:
    """A WebDAV user."""

    password: str
    permissions: FrozenSet[Permission] = frozenset({Permission.READ})

    @property
    def can_read(self) -> bool:
        return Permission.READ in self.permissions

    @property
    def can_write(self) -> bool:
        return Permission.WRITE in self.permissions

    @classmethod
    def from_dict(cls, data):
        """Create a user from its stored form."""
        if not isinstance(data, dict) or not isinstance(data.get("password"), str):
            raise ConfigValidationError("Each WebDAV user needs a password string")
        return cls(
            password=data["password"],
            permissions=parse_permissions(data.get("permissions", "r")),
        )

    def to_dict(self):
        return {
            "password": self.password,
            "permissions": format_permissions(self.permissions),
        }


@dataclass
class WebDAVConfig:
    """WebDAV settings."""

    enabled: bool = False
    users: Dict[str, UserConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ConfigValidationError("'webdav' must be an object")
        users = data.get("users") or {}
        if not isinstance(users, dict):
            raise ConfigValidationError("'webdav.users' must be an object")
        return cls(
            enabled=bool(data.get("enabled", False)),
            users={name: UserConfig.from_dict(user) for name, user in users.items()},
        )

    def to_dict(self):
        # Users are kept sorted by name on disk
        return {
            "enabled": self.enabled,
            "users": {name: self.users[name].to_dict() for name in sorted(self.users)},
        }


@dataclass
class Config:
    """Main application configuration."""

    ipv4_bind: str = "0.0.0.0"
    ipv6_bind: str = "::"
    port: int = 8080
    root_dir: str = "data/www"
    webdav: WebDAVConfig = field(default_factory=WebDAVConfig)
    log_level: str = "INFO"  # Application log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    @property
    def has_ipv6(self) -> bool:
        return bool(self.ipv6_bind)

    @classmethod
    def from_dict(cls, data):
        """Create a configuration from the stored JSON document."""
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration must be a JSON object")
        for key in HOST_KEYS:
            if key not in data:
                raise ConfigValidationError(f"Configuration is missing '{key}'")

        port = data["port"]
        if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
            raise ConfigValidationError("Port must be a number between 1 and 65535")

        return cls(
            ipv4_bind=str(data["ip"]),
            ipv6_bind=str(data["ipv6"] or ""),
            port=port,
            root_dir=str(data["cwd"]),
            webdav=WebDAVConfig.from_dict(data.get("webdav", {})),
            log_level=data.get("log_level", "INFO"),
        )

    def to_dict(self):
        return {
            "ip": self.ipv4_bind,
            "ipv6": self.ipv6_bind,
            "port": self.port,
            "cwd": self.root_dir,
            "webdav": self.webdav.to_dict(),
            "log_level": self.log_level,
        }


def get_data_dir() -> str:
    """Directory holding the config, PID and log files."""
    return os.environ.get(DATA_DIR_ENV_VAR, "data")


def get_default_config_path() -> str:
    return os.path.join(get_data_dir(), CONFIG_FILE_NAME)


def get_config_path() -> str:
    """Path of the active configuration file."""
    return os.environ.get(CONFIG_ENV_VAR) or get_default_config_path()


def default_config() -> Config:
    """Configuration written on first run."""
    return Config(
        root_dir=os.path.join(get_data_dir(), "www"),
        webdav=WebDAVConfig(
            enabled=False,
            users={
                "admin": UserConfig(
                    password="admin",
                    permissions=frozenset(Permission),
                )
            },
        ),
    )


def create_default_config(config_path: str = None) -> Config:
    """Write the default configuration, replacing any existing file."""
    if config_path is None:
        config_path = get_default_config_path()
    config = default_config()
    save_config(config, config_path)
    logger.info(f"Created default configuration file at {config_path}")
    return config


def _read_config(config_path: str) -> Config:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except ValueError as e:
        raise ConfigValidationError(f"Invalid configuration file {config_path}: {e}") from e
    return Config.from_dict(data)


def _ensure_root_dir(config: Config) -> None:
    if not os.path.isdir(config.root_dir):
        logger.info(f"Creating root directory {config.root_dir}")
        os.makedirs(config.root_dir, exist_ok=True)


def load_config_from(config_path: str) -> Config:
    """Load a configuration file that must already exist."""
    if not os.path.isfile(config_path):
        raise ConfigValidationError(f"Configuration file {config_path} does not exist")
    config = _read_config(config_path)
    _ensure_root_dir(config)
    return config


def load_config(config_path: str = None) -> Config:
    """Load the configuration, creating the default one on first run.

    An alternate file named by ``WEBDISK_CONFIG`` takes precedence and must
    exist; the default file under the data directory is created on demand.
    """
    if config_path is None:
        alternate = os.environ.get(CONFIG_ENV_VAR)
        if alternate:
            return load_config_from(alternate)
        config_path = get_default_config_path()

    if not os.path.exists(config_path):
        logger.warning(f"Config file not found at {config_path}, creating default configuration")
        create_default_config(config_path)

    config = _read_config(config_path)
    _ensure_root_dir(config)
    return config


def save_config(config: Config, config_path: str = None) -> None:
    """Save configuration to a JSON file."""
    if config_path is None:
        config_path = get_config_path()

    parent = os.path.dirname(config_path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)


def is_valid_ipv4(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def is_valid_domain(value: str) -> bool:
    """Loose hostname check: dotted labels of letters, digits and hyphens."""
    if not value or len(value) > 253:
        return False
    if not all(c.isascii() and (c.isalnum() or c in ".-") for c in value):
        return False

    labels = value.split(".")
    # At least one dot is needed for a top-level domain
    if len(labels) < 2:
        return False
    return all(
        label and len(label) <= 63 and not label.startswith("-") and not label.endswith("-")
        for label in labels
    )


def is_valid_ipv6(value: str) -> bool:
    try:
        ipaddress.IPv6Address(value.strip("[]"))
    except ValueError:
        return False
    return True


def validate_host_value(key: str, value: str):
    """Validate a ``--host`` field and return the value to store."""
    if key == "ip":
        if not is_valid_ipv4(value) and not is_valid_domain(value):
            raise ConfigValidationError(
                "Must be a valid IPv4 address (e.g. 127.0.0.1) or domain name (e.g. example.com)"
            )
        return value
    if key == "ipv6":
        if value == "no":
            return ""
        if not is_valid_ipv6(value):
            raise ConfigValidationError(
                "Must be a valid IPv6 address (e.g. ::1 or 2001:db8::1) or 'no' to disable IPv6"
            )
        return value
    if key == "port":
        try:
            port = int(value)
        except ValueError:
            port = 0
        if not 1 <= port <= 65535:
            raise ConfigValidationError("Port must be a number between 1 and 65535")
        return port
    if key == "cwd":
        if not os.path.isabs(value) and not value.startswith(("./", "../")):
            raise ConfigValidationError(
                "Path must be absolute or a relative path starting with ./ or ../"
            )
        return value
    raise ConfigValidationError(f"Unknown setting '{key}', expected one of: {', '.join(HOST_KEYS)}")


def update_config(key: str, value: str, config_path: str = None) -> Config:
    """Validate one host setting and persist it."""
    stored = validate_host_value(key, value)
    if config_path is None:
        config_path = get_config_path()
    config = load_config(config_path)

    if key == "ip":
        config.ipv4_bind = stored
    elif key == "ipv6":
        config.ipv6_bind = stored
    elif key == "port":
        config.port = stored
    else:
        config.root_dir = stored

    save_config(config, config_path)
    return config
