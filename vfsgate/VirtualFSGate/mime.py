"""Extension to content-type lookup."""

import os
from typing import Mapping


def get_extension(filename: str) -> str:
    """
    Lower-cased extension of the basename, including the leading dot.

    Returns an empty string when the name has no dot.
    """
    name = os.path.basename(filename.replace("\\", "/").rstrip("/"))
    i = name.rfind(".")
    if i == -1:
        return ""
    return name[i:].lower()


def get_mime(filename: str, mimes: Mapping[str, str]) -> str:
    """
    Resolve the content type of a file from the configured mime table.

    Args:
        filename: File name or path
        mimes: Extension -> content type, must contain "default"

    Returns:
        Content type string
    """
    ext = get_extension(filename)
    if ext and ext in mimes:
        return mimes[ext]
    return mimes["default"]
