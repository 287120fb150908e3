"""Browsable file index blueprint."""

import logging
from urllib.parse import quote

from flask import Blueprint, Response, current_app, redirect, render_template, request, send_file

from webdisk.listing import get_directory_entries
from webdisk.paths import decode_request_path, resolve_path

logger = logging.getLogger(__name__)

ui_bp = Blueprint("ui", __name__)

ICON_GLYPHS = {
    "directory": "📁",
    "symlink": "🔗",
    "disc": "💿",
    "image": "🖼️",
    "video": "🎥",
    "audio": "🎵",
    "pdf": "📕",
    "word": "📘",
    "spreadsheet": "📗",
    "presentation": "📙",
    "text": "📄",
    "archive": "📦",
    "code": "📝",
    "executable": "⚙️",
    "config": "⚙️",
    "font": "🔤",
    "file": "📄",
}


def not_found():
    return Response("404 Not Found", status=404, mimetype="text/plain")


@ui_bp.route("/", defaults={"path": ""})
@ui_bp.route("/<path:path>")
def index(path):
    """Serve a file, or an index page for a directory."""
    config = current_app.config["WEBDISK"]
    # Werkzeug replaces undecodable bytes in ``path``; use the raw PATH_INFO
    current_path = decode_request_path(request.environ.get("PATH_INFO", "")).lstrip("/")

    resolved = resolve_path(config.root_dir, current_path)
    if not resolved.exists:
        return not_found()

    if resolved.is_file:
        try:
            return send_file(resolved.path, conditional=True)
        except OSError as e:
            logger.warning(f"Could not open {resolved.path}: {e}")
            return not_found()

    # Index links are relative, so directories are always served with a trailing slash
    if current_path and not current_path.endswith("/"):
        location = request.script_root + "/" + quote(current_path) + "/"
        if request.query_string:
            location += "?" + request.query_string.decode("latin-1")
        return redirect(location, code=308)

    entries = get_directory_entries(resolved.path, config.root_dir)
    return render_template(
        "index.html",
        current_path=current_path,
        entries=entries,
        icons=ICON_GLYPHS,
    )
