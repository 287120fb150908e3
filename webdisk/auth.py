"""HTTP Basic authentication and permission checks for WebDAV."""

import base64
import binascii
import hmac
import logging
from typing import Optional, Tuple

from webdisk.config import WebDAVConfig
from webdisk.errors import AuthError

logger = logging.getLogger(__name__)

REALM = "WebDAV Server"
CHALLENGE = f'Basic realm="{REALM}"'

WRITE_METHODS = frozenset(("PUT", "DELETE", "MKCOL", "COPY", "MOVE"))


def parse_basic_credentials(header: str) -> Tuple[str, str]:
    """Extract ``(username, password)`` from a Basic Authorization header.

    The payload is split on the first colon only, so a username cannot
    contain a colon while a password can.
    """
    scheme, _, encoded = header.strip().partition(" ")
    if scheme.lower() != "basic":
        raise AuthError(401, "Unauthorized")

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise AuthError(401, "Unauthorized") from None

    username, sep, password = decoded.partition(":")
    if not sep:
        raise AuthError(401, "Unauthorized")
    return username, password


def authorize(webdav: WebDAVConfig, method: str, header: Optional[str]) -> str:
    """Decide whether a WebDAV request may reach the protocol handler.

    Returns the authenticated username, or raises AuthError carrying the
    status code the client should see.
    """
    if not webdav.enabled:
        raise AuthError(404, "WebDAV service is disabled")

    if not header:
        raise AuthError(401, "Authentication required", CHALLENGE)

    username, password = parse_basic_credentials(header)

    user = webdav.users.get(username)
    if user is None:
        logger.info(f"WebDAV login rejected: unknown user {username!r}")
        raise AuthError(401, "Invalid username", CHALLENGE)

    if not hmac.compare_digest(user.password.encode("utf-8"), password.encode("utf-8")):
        logger.info(f"WebDAV login rejected: wrong password for {username!r}")
        raise AuthError(401, "Invalid password", CHALLENGE)

    if method.upper() in WRITE_METHODS and not user.can_write:
        logger.info(f"WebDAV {method} denied for {username!r}: no write permission")
        raise AuthError(403, "Write permission required")

    if not user.can_read:
        logger.info(f"WebDAV {method} denied for {username!r}: no read permission")
        raise AuthError(403, "Read permission required")

    return username
