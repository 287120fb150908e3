"""Directory enumeration and classification for index pages."""

import logging
import os
from datetime import datetime
from typing import List, Optional
from urllib.parse import quote

from webdisk.models import FileEntry
from webdisk.paths import is_directory

logger = logging.getLogger(__name__)

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")

DIRECTORY_LABEL = "Directory"
PARENT_LABEL = "Parent directory"
SYMLINK_MARKER = " →"
MODIFIED_FORMAT = "%Y-%m-%d %H:%M:%S"

DIRECTORY_ICON = "directory"
SYMLINK_ICON = "symlink"
DEFAULT_ICON = "file"

_ICON_EXTENSIONS = {
    "disc": ("iso", "img", "esd", "wim", "vhd", "vmdk"),
    "image": ("jpg", "jpeg", "png", "gif", "bmp", "webp", "svg"),
    "video": ("mp4", "mkv", "avi", "mov", "wmv", "flv", "webm"),
    "audio": ("mp3", "wav", "ogg", "m4a", "flac", "aac"),
    "pdf": ("pdf",),
    "word": ("doc", "docx"),
    "spreadsheet": ("xls", "xlsx"),
    "presentation": ("ppt", "pptx"),
    "text": ("txt", "md", "log"),
    "archive": ("zip", "rar", "7z", "tar", "gz", "bz2", "xz"),
    "code": ("c", "cpp", "h", "hpp", "rs", "go", "py", "js", "html", "css", "java"),
    "executable": ("exe", "msi", "bat", "sh", "cmd"),
    "config": ("json", "yaml", "yml", "toml", "ini", "conf"),
    "font": ("ttf", "otf", "woff", "woff2"),
}

ICON_BY_EXTENSION = {
    ext: tag for tag, extensions in _ICON_EXTENSIONS.items() for ext in extensions
}

PREVIEW_EXTENSIONS = frozenset(
    ("jpg", "jpeg", "png", "gif", "webp", "mp4", "webm", "mp3", "wav", "ogg")
)


def format_size(size: int) -> str:
    """Format a byte count with 1024-based units."""
    value = float(size)
    unit_index = 0
    while value >= 1024 and unit_index < len(SIZE_UNITS) - 1:
        value /= 1024
        unit_index += 1

    if unit_index == 0:
        return f"{size} {SIZE_UNITS[0]}"
    return f"{value:.2f} {SIZE_UNITS[unit_index]}"


def get_extension(name: str) -> str:
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def get_file_icon(name: str) -> str:
    return ICON_BY_EXTENSION.get(get_extension(name), DEFAULT_ICON)


def is_previewable(name: str) -> bool:
    return get_extension(name) in PREVIEW_EXTENSIONS


def _modified_label(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).strftime(MODIFIED_FORMAT)


def build_entry(dir_entry: os.DirEntry) -> Optional[FileEntry]:
    """Classify a single directory entry, or None if it cannot be stat'ed."""
    try:
        link_stat = dir_entry.stat(follow_symlinks=False)
        is_symlink = dir_entry.is_symlink()
    except OSError as e:
        logger.debug(f"Skipping {dir_entry.path}: {e}")
        return None

    stat_result = link_stat
    if is_symlink:
        is_dir = is_directory(dir_entry.path)
        try:
            stat_result = os.stat(dir_entry.path)
        except OSError:
            # Dangling link, keep the link's own metadata
            pass
    else:
        is_dir = dir_entry.is_dir(follow_symlinks=False)

    name = dir_entry.name
    if is_dir:
        icon_tag = DIRECTORY_ICON
    elif is_symlink:
        icon_tag = SYMLINK_ICON
    else:
        icon_tag = get_file_icon(name)

    return FileEntry(
        name=name,
        display_name=name + SYMLINK_MARKER if is_symlink else name,
        size_label=DIRECTORY_LABEL if is_dir else format_size(stat_result.st_size),
        modified_label=_modified_label(stat_result.st_mtime),
        is_dir=is_dir,
        icon_tag=icon_tag,
        preview_url="./" + quote(name) if is_previewable(name) and not is_dir else "",
    )


def parent_entry() -> FileEntry:
    return FileEntry(
        name="..",
        display_name=PARENT_LABEL,
        size_label="",
        modified_label="",
        is_dir=True,
        icon_tag=DIRECTORY_ICON,
    )


def get_directory_entries(path: str, root: str) -> List[FileEntry]:
    """List the immediate children of ``path`` for an index page.

    Directories come first, then files, each sorted case-insensitively by
    display name. A ``..`` entry leads the list unless ``path`` is the root.
    A directory that cannot be read yields an empty listing.
    """
    dirs = []
    files = []

    try:
        with os.scandir(path) as it:
            for dir_entry in it:
                entry = build_entry(dir_entry)
                if entry is None:
                    continue
                if entry.is_dir:
                    dirs.append(entry)
                else:
                    files.append(entry)
    except OSError as e:
        logger.warning(f"Could not list directory {path}: {e}")
        dirs, files = [], []

    dirs.sort(key=lambda e: e.display_name.lower())
    files.sort(key=lambda e: e.display_name.lower())

    entries = dirs + files
    if os.path.normpath(os.path.abspath(path)) != os.path.normpath(os.path.abspath(root)):
        entries.insert(0, parent_entry())
    return entries
