"""Nigerian university lookup: an HTTP server, its data loading, and a client for its API."""

__version__ = "1.0.0"