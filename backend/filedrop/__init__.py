"""FileDrop — minimal file upload and download service."""

__version__ = "0.1.0"
