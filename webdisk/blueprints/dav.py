"""WebDAV blueprint: authenticates requests and hands them to the DAV app."""

import io
import logging

from flask import Blueprint, Response, current_app, request

from webdisk.auth import authorize
from webdisk.errors import AuthError

logger = logging.getLogger(__name__)

dav_bp = Blueprint("dav", __name__)

WEBDAV_METHODS = [
    "GET", "HEAD", "PUT", "DELETE", "COPY", "MOVE", "MKCOL",
    "PROPFIND", "PROPPATCH", "LOCK", "UNLOCK",
]

# Only uploads carry a request body through to the DAV app
BODY_METHODS = frozenset(("PUT",))


@dav_bp.errorhandler(AuthError)
def handle_auth_error(error):
    """Turn a rejected request into its HTTP response."""
    response = Response(error.message, status=error.status, mimetype="text/plain")
    if error.challenge:
        response.headers["WWW-Authenticate"] = error.challenge
    return response


@dav_bp.route("/webdav", defaults={"tail": ""}, methods=WEBDAV_METHODS)
@dav_bp.route("/webdav/", defaults={"tail": ""}, methods=WEBDAV_METHODS)
@dav_bp.route("/webdav/<path:tail>", methods=WEBDAV_METHODS)
def webdav(tail):
    """Authorize the request, then delegate it unchanged."""
    config = current_app.config["WEBDISK"]
    username = authorize(config.webdav, request.method, request.headers.get("Authorization"))
    logger.debug(f"WebDAV {request.method} /{tail} by {username!r}")

    environ = dict(request.environ)
    if request.method not in BODY_METHODS:
        environ["wsgi.input"] = io.BytesIO(b"")
        environ["CONTENT_LENGTH"] = "0"

    dav_app = current_app.extensions["webdisk.dav"]
    return Response.from_app(dav_app, environ)
