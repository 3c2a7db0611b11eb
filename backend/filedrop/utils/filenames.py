"""Client-supplied filename sanitizing, shared by upload and download."""

import re

_SEPARATORS = re.compile(r"[\\/]")


class InvalidFilename(ValueError):
    """Filename is empty, a dot entry, or tries to escape the upload dir."""


def sanitize_filename(raw: str) -> str:
    """Reduce a client-supplied name to its final path component.

    Both separators are honoured since browsers on Windows may send the full
    local path. Any ``..`` component rejects the whole name instead of being
    silently stripped.
    """
    if "\x00" in raw:
        raise InvalidFilename(f"Filename contains a NUL byte: {raw!r}")

    parts = _SEPARATORS.split(raw)
    if ".." in parts:
        raise InvalidFilename(f"Path traversal in filename: {raw!r}")

    name = parts[-1]
    if name in ("", ".", ".."):
        raise InvalidFilename(f"Invalid filename: {raw!r}")
    return name
