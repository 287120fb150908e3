"""Dual-stack listener bring-up and the WSGI server loop."""

import errno
import logging
from typing import Callable, List, Optional

import eventlet
import eventlet.wsgi
from eventlet.green import socket

from webdisk.errors import BindError

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("webdisk.access")

BACKLOG = 1024
KEEP_ALIVE_TIMEOUT = 30


def _errnos(*names: str) -> frozenset:
    return frozenset(getattr(errno, name) for name in names if hasattr(errno, name))


E_ADDR_NOT_AVAIL = _errnos("EADDRNOTAVAIL", "WSAEADDRNOTAVAIL")
E_ADDR_IN_USE = _errnos("EADDRINUSE", "WSAEADDRINUSE")
E_ACCESS = _errnos("EACCES", "EPERM", "WSAEACCES")


def describe_bind_error(exc: OSError) -> str:
    """Turn a bind failure into a message for the operator."""
    if exc.errno in E_ADDR_NOT_AVAIL:
        return "Cannot bind to the requested address, check that the IP address is correct"
    if exc.errno in E_ADDR_IN_USE:
        return "Port is already in use"
    if exc.errno in E_ACCESS:
        return "Permission denied, ports below 1024 need administrator privileges"
    return f"startup failed: {exc}"


def open_socket(host: str, port: int, family: int):
    """Bind a listening TCP socket for ``host`` in the given address family."""
    host = host.strip("[]")
    infos = socket.getaddrinfo(host, port, family, socket.SOCK_STREAM)
    family, socktype, proto, _, address = infos[0]

    sock = socket.socket(family, socktype, proto)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if family == socket.AF_INET6 and hasattr(socket, "IPV6_V6ONLY"):
            # Leave the IPv4 side of the port to the IPv4 listener
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
        sock.bind(address)
        sock.listen(BACKLOG)
    except OSError:
        sock.close()
        raise
    return sock


def format_address(sock) -> str:
    host, port = sock.getsockname()[:2]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class ListenerSet:
    """The sockets a server instance accepts connections on."""

    def __init__(self, sockets=None):
        self.sockets = list(sockets or [])

    def add(self, sock) -> None:
        self.sockets.append(sock)

    @property
    def addresses(self) -> List[str]:
        return [format_address(sock) for sock in self.sockets]

    def serve(self, app, max_size: int = 1000) -> None:
        """Serve ``app`` on every socket until all servers return."""
        pool = eventlet.GreenPool(len(self.sockets))
        for sock in self.sockets:
            pool.spawn(
                eventlet.wsgi.server,
                sock,
                app,
                log=access_logger,
                max_size=max_size,
                keepalive=KEEP_ALIVE_TIMEOUT,
            )
        pool.waitall()

    def close(self) -> None:
        for sock in self.sockets:
            sock.close()
        self.sockets = []


def bind_listeners(
    ipv4_bind: str,
    ipv6_bind: Optional[str],
    port: int,
    opener: Callable = open_socket,
) -> ListenerSet:
    """Bind IPv4 and, when configured, IPv6, falling back to a single stack.

    An IPv6 failure after a successful IPv4 bind only costs the IPv6 side. If
    IPv4 fails, IPv6 alone is tried; when that fails too, the IPv4 error is
    raised.
    """
    try:
        ipv4_sock = opener(ipv4_bind, port, socket.AF_INET)
    except OSError as e:
        if not ipv6_bind:
            logger.error(f"IPv4 bind failed: {describe_bind_error(e)}")
            raise BindError(describe_bind_error(e), e) from e

        logger.warning(f"IPv4 bind failed: {describe_bind_error(e)}")
        try:
            ipv6_sock = opener(ipv6_bind, port, socket.AF_INET6)
        except OSError as e6:
            logger.error(f"IPv6 bind failed: {describe_bind_error(e6)}")
            raise BindError(describe_bind_error(e), e) from e

        logger.info("Server started (IPv6 only)")
        return ListenerSet([ipv6_sock])

    listeners = ListenerSet([ipv4_sock])
    if ipv6_bind:
        try:
            listeners.add(opener(ipv6_bind, port, socket.AF_INET6))
        except OSError as e6:
            logger.warning(f"IPv6 bind failed: {describe_bind_error(e6)}")
            logger.info("Server started (IPv4 only)")
            return listeners

    logger.info("Server started")
    return listeners
