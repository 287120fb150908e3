import os

import pytest

from webdisk.app import create_app
from webdisk.config import Config


def test_root_index_page(make_client, root_dir):
    (root_dir / "b.txt").write_bytes(b"0123456789")
    (root_dir / "A").mkdir()

    response = make_client().get("/")

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "text/html; charset=utf-8"
    page = response.get_data(as_text=True)
    assert page.index('href="./A/"') < page.index('href="./b.txt"')
    assert "10 B" in page
    assert 'href="../"' not in page


def test_subdirectory_index_has_parent_link(make_client, root_dir):
    (root_dir / "sub").mkdir()
    (root_dir / "sub" / "clip.mp4").write_bytes(b"data")

    response = make_client().get("/sub/")

    assert response.status_code == 200
    page = response.get_data(as_text=True)
    assert 'href="../"' in page
    assert 'data-url="./clip.mp4"' in page


def test_directory_without_slash_redirects(make_client, root_dir):
    (root_dir / "sub").mkdir()
    response = make_client().get("/sub")
    assert response.status_code == 308
    assert response.headers["Location"].endswith("/sub/")


def test_file_is_streamed(make_client, root_dir):
    (root_dir / "hello.txt").write_text("hello world")
    response = make_client().get("/hello.txt")
    assert response.status_code == 200
    assert response.data == b"hello world"


def test_missing_path_is_plain_404(make_client):
    response = make_client().get("/nope.txt")
    assert response.status_code == 404
    assert response.data == b"404 Not Found"


def test_static_directory_is_served_from_root(make_client, root_dir):
    (root_dir / "static").mkdir()
    (root_dir / "static" / "style.css").write_text("body {}")
    response = make_client().get("/static/style.css")
    assert response.data == b"body {}"


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_dangling_symlink_is_404(make_client, root_dir):
    os.symlink(root_dir / "missing", root_dir / "dangling.txt")
    response = make_client().get("/dangling.txt")
    assert response.status_code == 404


def test_html_is_escaped(make_client, root_dir):
    (root_dir / "<script>.txt").write_text("x")
    page = make_client().get("/").get_data(as_text=True)
    assert "<script>.txt" not in page
    assert "&lt;script&gt;.txt" in page


def test_webdav_disabled_does_not_fall_through_to_files(make_client, root_dir):
    (root_dir / "webdav").mkdir()
    (root_dir / "webdav" / "x").write_text("x")
    response = make_client(enabled=False).get("/webdav/x")
    assert response.status_code == 404


def test_relative_root_streams_files(tmp_path, monkeypatch, dav_app):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "data" / "www").mkdir(parents=True)
    (tmp_path / "data" / "www" / "中文.txt").write_text("unicode name")
    app = create_app(Config(ipv6_bind="", root_dir="data/www"), dav_app=dav_app)
    client = app.test_client()

    assert client.get("/").status_code == 200
    response = client.get("/%E4%B8%AD%E6%96%87.txt")
    assert response.status_code == 200
    assert response.data == b"unicode name"


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_symlink_in_root_exposes_its_target(make_client, root_dir, tmp_path):
    outside = tmp_path / "media"
    outside.mkdir()
    (outside / "song.mp3").write_bytes(b"ID3")
    os.symlink(outside, root_dir / "media")

    response = make_client().get("/media/song.mp3")
    assert response.status_code == 200
    assert response.data == b"ID3"
