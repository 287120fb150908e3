import os

import pytest

from webdisk.paths import decode_request_path, is_within, resolve_path


def wsgi_path(text):
    """Encode text the way a WSGI server presents PATH_INFO."""
    return text.encode("utf-8").decode("latin-1")


def test_decode_request_path_utf8():
    assert decode_request_path(wsgi_path("/docs/résumé.txt")) == "/docs/résumé.txt"


def test_decode_request_path_invalid_utf8_is_empty():
    assert decode_request_path(b"/\xff\xfe".decode("latin-1")) == ""


def test_resolve_missing(root_dir):
    resolved = resolve_path(str(root_dir), "nope.txt")
    assert not resolved.exists
    assert not resolved.is_file


def test_resolve_file_and_directory(root_dir):
    (root_dir / "sub").mkdir()
    (root_dir / "sub" / "a.txt").write_text("a")

    as_file = resolve_path(str(root_dir), "sub/a.txt")
    assert as_file.exists and as_file.is_file
    assert as_file.path == os.path.join(str(root_dir), "sub", "a.txt")

    as_dir = resolve_path(str(root_dir), "sub/")
    assert as_dir.exists and not as_dir.is_file


def test_resolve_empty_is_root(root_dir):
    resolved = resolve_path(str(root_dir), "")
    assert resolved.exists
    assert not resolved.is_file
    assert resolved.path == os.path.normpath(str(root_dir))


@pytest.mark.parametrize("relative", ["../secret.txt", "sub/../../secret.txt", "/../secret.txt"])
def test_resolve_rejects_escape(root_dir, relative):
    (root_dir.parent / "secret.txt").write_text("top secret")
    (root_dir / "sub").mkdir()
    assert not resolve_path(str(root_dir), relative).exists


def test_resolve_allows_dotdot_inside_root(root_dir):
    (root_dir / "sub").mkdir()
    (root_dir / "b.txt").write_text("b")
    resolved = resolve_path(str(root_dir), "sub/../b.txt")
    assert resolved.exists and resolved.is_file


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_resolve_dangling_symlink_is_a_file(root_dir):
    os.symlink(root_dir / "missing", root_dir / "dangling")
    resolved = resolve_path(str(root_dir), "dangling")
    assert resolved.exists
    assert resolved.is_file


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_resolve_follows_symlinked_directory(root_dir, tmp_path):
    outside = tmp_path / "media"
    outside.mkdir()
    os.symlink(outside, root_dir / "media")
    resolved = resolve_path(str(root_dir), "media")
    assert resolved.exists
    assert not resolved.is_file


def test_is_within(tmp_path):
    root = str(tmp_path / "www")
    assert is_within(root, root)
    assert is_within(root, os.path.join(root, "a", "b"))
    assert not is_within(root, str(tmp_path / "www2"))
    assert not is_within(root, str(tmp_path))
