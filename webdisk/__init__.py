"""Self-hosted file server with browsable indexes and WebDAV access."""

__version__ = "1.0.6"
