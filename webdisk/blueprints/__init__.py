"""HTTP blueprints for webdisk."""
