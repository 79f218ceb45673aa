"""
POSIX permission strings from stat mode bits.

Produces the ten-character form used by `ls -l`, e.g. "-rw-r--r--".
"""

from typing import List, Tuple

# Tested in order; masks overlap, so the most specific comes first.
FILE_TYPE_MASKS: List[Tuple[int, str]] = [
    (0o140000, "s"),  # socket
    (0o120000, "l"),  # symlink
    (0o100000, "-"),  # regular file
    (0o060000, "b"),  # block device
    (0o040000, "d"),  # directory
    (0o020000, "c"),  # character device
    (0o010000, "p"),  # fifo
]

UNKNOWN_TYPE = "?"

S_ISUID = 0o4000
S_ISGID = 0o2000
S_ISVTX = 0o1000


def file_type_char(mode: int) -> str:
    """Return the type character for a mode."""
    for mask, char in FILE_TYPE_MASKS:
        if (mode & mask) == mask:
            return char
    return UNKNOWN_TYPE


def _triplet(mode: int, read: int, write: int, execute: int, special: int, on: str, off: str) -> str:
    r = "r" if mode & read else "-"
    w = "w" if mode & write else "-"
    if mode & execute:
        x = on if mode & special else "x"
    else:
        x = off if mode & special else "-"
    return r + w + x


def format_permissions(mode: int) -> str:
    """
    Format stat mode bits as a permission string.

    Args:
        mode: st_mode value (unsigned 32-bit)

    Returns:
        Ten characters: file type followed by owner, group and other rwx
    """
    mode &= 0xFFFFFFFF
    return (
        file_type_char(mode)
        + _triplet(mode, 0o400, 0o200, 0o100, S_ISUID, "s", "S")
        + _triplet(mode, 0o040, 0o020, 0o010, S_ISGID, "s", "S")
        + _triplet(mode, 0o004, 0o002, 0o001, S_ISVTX, "t", "T")
    )
