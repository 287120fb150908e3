"""Command line interface for webdisk."""

import argparse
import logging
import os
import secrets
import string
import sys

from webdisk import __version__
from webdisk.config import (
    CONFIG_ENV_VAR,
    Permission,
    UserConfig,
    create_default_config,
    format_permissions,
    get_data_dir,
    get_default_config_path,
    load_config,
    load_config_from,
    parse_permissions,
    save_config,
    update_config,
)
from webdisk.errors import BindError, ConfigValidationError, ProcessControlError
from webdisk.supervisor import (
    StopResult,
    get_log_path,
    get_pid_path,
    read_pid,
    remove_pid,
    start_daemon,
    stop_daemon,
    write_pid,
)

logger = logging.getLogger(__name__)

DESCRIPTION = "Self-hosted file server with browsable indexes and WebDAV access"
PASSWORD_LENGTH = 8

EPILOG = """\
commands:
  start                           run the server in the background
  stop                            stop the background server
  run                             run the server in the foreground and write the PID file

host settings:
  --host ip <address|domain>      IPv4 address or domain to listen on
  --host ipv6 <address|no>        IPv6 address to listen on, 'no' disables IPv6
  --host port <1-65535>           port to listen on
  --host cwd <path>               directory to serve (absolute, ./ or ../)

configuration:
  --config default                recreate the default configuration
  --config <file> [run|start]     use another configuration file

webdav:
  --webdav                        show WebDAV status and users
  --webdav true|false             enable or disable WebDAV
  --webdav add <user[:rwx]> [pw]  add a user (read-only and a random password by default)
  --webdav del <user>             delete a user
  --webdav <user[:rwx]> [pw]      change a user's permissions and/or password
"""


def fail(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def generate_random_password(length: int = PASSWORD_LENGTH) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def split_user_spec(spec: str):
    """Split ``user[:perm]`` into the name and the parsed permissions, if any."""
    username, sep, perm = spec.partition(":")
    if not username:
        raise ConfigValidationError("Username must not be empty")
    return username, parse_permissions(perm) if sep else None


def cmd_host(key: str, value: str) -> int:
    try:
        update_config(key, value)
    except ConfigValidationError as e:
        return fail(str(e))
    print(f"Updated configuration: {key} = {value}")
    return 0


def cmd_config_default() -> int:
    config_path = get_default_config_path()
    if os.path.exists(config_path):
        print("Warning: the configuration file already exists and will be overwritten")
        try:
            input("Press Enter to continue, or Ctrl+C to cancel")
        except (KeyboardInterrupt, EOFError):
            print()
            return fail("Cancelled")
    create_default_config(config_path)
    print(f"Created default configuration file {config_path}")
    return 0


def cmd_config(value: str, command: str = None) -> int:
    if value == "default":
        if command:
            return fail("--config default cannot be combined with a command")
        return cmd_config_default()

    try:
        load_config_from(value)
    except ConfigValidationError as e:
        return fail(f"Failed to load configuration file: {e}")

    config_path = os.path.abspath(value)
    print(f"Loaded configuration file: {config_path}")
    if command is None:
        print(f"Run '{os.path.basename(sys.argv[0])} --config {value} run' or set {CONFIG_ENV_VAR}={config_path} to use it")
        return 0

    # Inherited by the background process as well
    os.environ[CONFIG_ENV_VAR] = config_path
    return dispatch_command(command)


def print_webdav_status(config) -> None:
    print(f"WebDAV status: {'enabled' if config.webdav.enabled else 'disabled'}")
    if not config.webdav.users:
        print("No users configured")
        return
    print()
    print("Users:")
    for username, user in config.webdav.users.items():
        print(f"- {username}")
        print(f"  password: {user.password}")
        print(f"  permissions: {format_permissions(user.permissions)}")


def print_user(username: str, user: UserConfig) -> None:
    print(f"- username: {username}")
    print(f"- password: {user.password}")
    print(f"- permissions: {format_permissions(user.permissions)}")


def webdav_add(config, spec: str, password: str = None) -> int:
    username, permissions = split_user_spec(spec)
    if username in config.webdav.users:
        return fail(f"User {username} already exists")

    user = UserConfig(
        password=password or generate_random_password(),
        permissions=permissions if permissions is not None else frozenset({Permission.READ}),
    )
    config.webdav.users[username] = user
    save_config(config)
    print("Added user:")
    print_user(username, user)
    return 0


def webdav_delete(config, username: str) -> int:
    if config.webdav.users.pop(username, None) is None:
        return fail(f"User {username} does not exist")
    save_config(config)
    print(f"Deleted user {username}")
    return 0


def webdav_update(config, spec: str, password: str = None) -> int:
    username, permissions = split_user_spec(spec)
    user = config.webdav.users.get(username)

    if permissions is None and password is None:
        return fail("Invalid WebDAV command, use -h for help")

    if user is None:
        if permissions is None or password is None:
            return fail(f"User {username} does not exist")
        config.webdav.users[username] = UserConfig(password=password, permissions=permissions)
        save_config(config)
        print(f"Created user {username} with permissions {format_permissions(permissions)} and password")
        return 0

    if permissions is not None:
        user.permissions = permissions
    if password is not None:
        user.password = password
    save_config(config)

    if permissions is not None and password is not None:
        print(f"Updated permissions of {username} to {format_permissions(permissions)} and changed the password")
    elif permissions is not None:
        print(f"Updated permissions of {username} to {format_permissions(permissions)}")
    else:
        print(f"Updated password of {username}")
    return 0


def cmd_webdav(args) -> int:
    """Handle ``--webdav`` and its arguments."""
    try:
        config = load_config()
    except ConfigValidationError as e:
        return fail(str(e))

    if not args:
        print_webdav_status(config)
        return 0

    action, rest = args[0], args[1:]
    try:
        if action in ("true", "false"):
            config.webdav.enabled = action == "true"
            save_config(config)
            print(f"WebDAV {'enabled' if config.webdav.enabled else 'disabled'}")
            return 0
        if action == "add":
            if not rest:
                return fail("Please specify a username")
            return webdav_add(config, rest[0], rest[1] if len(rest) > 1 else None)
        if action == "del":
            if not rest:
                return fail("Please specify the user to delete")
            return webdav_delete(config, rest[0])
        return webdav_update(config, action, rest[0] if rest else None)
    except ConfigValidationError as e:
        return fail(str(e))


def cmd_start() -> int:
    data_dir = get_data_dir()
    try:
        handle = start_daemon(data_dir)
    except OSError as e:
        return fail(f"Failed to start the service: {e}")
    if handle is None:
        print("Service is already running")
        return 0
    print(f"Service started in the background, logging to {get_log_path(data_dir)}")
    return 0


def cmd_stop() -> int:
    try:
        result = stop_daemon(get_data_dir())
    except ProcessControlError as e:
        return fail(str(e))

    if result is StopResult.NOT_RUNNING:
        print("Service is not running")
    elif result is StopResult.STALE:
        print("Process no longer exists, removed the PID file")
    else:
        print("Service stopped")
    return 0


def cmd_run(write_pid_file: bool = True) -> int:
    """Load the configuration and serve in the foreground."""
    from webdisk.app import configure_logging, main as app_main

    try:
        config = load_config()
    except ConfigValidationError as e:
        return fail(f"Failed to load configuration: {e}")
    configure_logging(config)

    pid_path = get_pid_path(get_data_dir())
    if write_pid_file:
        write_pid(pid_path)

    try:
        app_main(config)
    except BindError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Server stopped")
    finally:
        if write_pid_file and read_pid(pid_path) == os.getpid():
            remove_pid(pid_path)
    return 0


COMMANDS = {
    "start": cmd_start,
    "stop": cmd_stop,
    "run": cmd_run,
}


def dispatch_command(command: str) -> int:
    return COMMANDS[command]()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webdisk",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"webdisk v{__version__}\n{DESCRIPTION}",
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--host", nargs=2, metavar=("KEY", "VALUE"), help="change a host setting")
    group.add_argument("--config", metavar="FILE", help="'default' or a configuration file")
    group.add_argument("--webdav", nargs=argparse.REMAINDER, metavar="ARG", help="WebDAV settings")
    parser.add_argument("command", nargs="?", choices=sorted(COMMANDS), help=argparse.SUPPRESS)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.host is not None:
        if args.command:
            parser.error("--host cannot be combined with a command")
        key, value = args.host
        return cmd_host(key, value)

    if args.config is not None:
        if args.command == "stop":
            parser.error("--config can only be combined with run or start")
        return cmd_config(args.config, args.command)

    if args.webdav is not None:
        if args.command:
            parser.error("--webdav cannot be combined with a command")
        return cmd_webdav(args.webdav)

    if args.command:
        return dispatch_command(args.command)

    # No arguments: serve in the foreground without a PID file
    return cmd_run(write_pid_file=False)
