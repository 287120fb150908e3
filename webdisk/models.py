"""Data models for webdisk."""

from dataclasses import dataclass


@dataclass
class FileEntry:
    """One row of a directory index page."""

    name: str
    display_name: str
    size_label: str
    modified_label: str
    is_dir: bool
    icon_tag: str
    preview_url: str = ""

    @property
    def is_parent(self) -> bool:
        """Check if this is the synthetic "go up" entry."""
        return self.name == ".."

    @property
    def is_previewable(self) -> bool:
        return bool(self.preview_url)
