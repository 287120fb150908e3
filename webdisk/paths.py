"""Request path resolution confined to the served root."""

import os
from typing import NamedTuple


class ResolvedPath(NamedTuple):
    exists: bool
    is_file: bool
    path: str


def decode_request_path(path_info: str) -> str:
    """Recover the UTF-8 request path from a WSGI ``PATH_INFO``.

    The server has already percent-decoded the path and, per PEP 3333, hands
    the raw bytes over as latin-1. Bytes that are not valid UTF-8 yield the
    empty path, which serves the root instead of failing the request.
    """
    try:
        return path_info.encode("latin-1").decode("utf-8")
    except UnicodeError:
        return ""


def is_within(root: str, path: str) -> bool:
    root = os.path.normpath(os.path.abspath(root))
    path = os.path.normpath(os.path.abspath(path))
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def is_directory(path: str) -> bool:
    """Whether ``path`` is a directory, following symbolic links.

    A link whose target cannot be reached counts as a regular file.
    """
    try:
        return os.path.isdir(path)
    except OSError:
        return False


def resolve_path(root: str, relative: str) -> ResolvedPath:
    """Map a decoded URL path onto the filesystem below ``root``.

    The candidate is made absolute and canonicalized lexically, and anything
    that escapes the root is reported as missing. Symbolic links inside the
    root are followed wherever they point, so a link placed in the root
    exposes its target. A dangling link exists as a file.
    """
    candidate = os.path.abspath(os.path.join(root, relative.lstrip("/")))
    if not is_within(root, candidate):
        return ResolvedPath(False, False, candidate)

    if not os.path.lexists(candidate):
        return ResolvedPath(False, False, candidate)

    return ResolvedPath(True, not is_directory(candidate), candidate)
