"""Main webdisk application."""

import copy
import logging
import os

from flask import Flask

from webdisk import __version__
from webdisk.blueprints.dav import dav_bp
from webdisk.blueprints.ui import ui_bp
from webdisk.config import Config, load_config
from webdisk.listener import bind_listeners
from webdisk.webdav import create_dav_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(config: Config) -> None:
    """Configure logging with level from config, overridden by LOG_LEVEL if set."""
    log_level = os.environ.get("LOG_LEVEL", config.log_level).upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), format=LOG_FORMAT)
    logging.getLogger().setLevel(getattr(logging, log_level, logging.INFO))


def create_app(config: Config = None, dav_app=None):
    """Create and configure the Flask application."""
    # Directory names such as "static" belong to the served tree
    app = Flask(__name__, static_folder=None)

    if config is None:
        config = load_config()

    # Each app owns its copy; request handlers only read it
    app.config["WEBDISK"] = copy.deepcopy(config)

    if dav_app is None:
        dav_app = create_dav_app(os.path.abspath(config.root_dir))
    app.extensions["webdisk.dav"] = dav_app

    app.register_blueprint(dav_bp)
    app.register_blueprint(ui_bp)

    return app


def log_banner(config: Config) -> None:
    logger.info(f"webdisk v{__version__}")
    logger.info(f"PID: {os.getpid()}")
    logger.info(f"IPv4: http://{config.ipv4_bind}:{config.port}")
    if config.has_ipv6:
        logger.info(f"IPv6: http://[{config.ipv6_bind.strip('[]')}]:{config.port}")
    logger.info(f"Root directory: {config.root_dir}")

    logger.info(f"WebDAV: {'enabled' if config.webdav.enabled else 'disabled'}")
    if config.webdav.enabled:
        if not config.webdav.users:
            logger.warning("WebDAV is enabled but no users are configured")
        for username in config.webdav.users:
            logger.info(f"WebDAV user: {username}")


def main(config: Config = None):
    """Run the application in the foreground."""
    if config is None:
        config = load_config()

    log_banner(config)
    app = create_app(config)

    logger.info("Starting server...")
    listeners = bind_listeners(config.ipv4_bind, config.ipv6_bind, config.port)
    for address in listeners.addresses:
        logger.info(f"Listening on http://{address}")

    try:
        listeners.serve(app)
    finally:
        listeners.close()
