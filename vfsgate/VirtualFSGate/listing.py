"""
VirtualFSGate directory listings.

Turns raw directory entries into DirectoryEntry rows carrying virtual
paths, sizes, mime types and timestamps.
"""

import os
import posixpath
import stat as stat_module
from datetime import datetime
from typing import Iterable, List, Mapping, Optional

from vfsgate.shared.gate import PathUtils

from .capabilities import WalkEvent
from .mime import get_mime
from .models import DirectoryEntry, EntryType, VirtualPath


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value)


def child_virtual_path(vpath: VirtualPath, name: str) -> str:
    """Virtual path (with protocol) of a child of vpath."""
    parent = "/" + vpath.path.strip("/")
    return vpath.protocol + posixpath.join(parent, name)


def parent_entry(vpath: VirtualPath) -> Optional[DirectoryEntry]:
    """
    The synthetic ".." entry for a listing.

    Returns None at the root of the virtual filesystem.
    """
    trimmed = vpath.path.strip("/")
    if not trimmed:
        return None

    parts = trimmed.split("/")
    parts.pop()
    return DirectoryEntry(
        filename="..",
        path=vpath.protocol + "/" + "/".join(parts),
        size=0,
        mime="",
        type=EntryType.DIR,
    )


def build_entry(vpath: VirtualPath, name: str, mimes: Mapping[str, str]) -> DirectoryEntry:
    """
    Stat one child of vpath and describe it.

    A child that cannot be stat'ed is reported as an empty file.
    """
    real = os.path.join(vpath.root, name)
    try:
        st = os.stat(real)
    except OSError:
        return DirectoryEntry(
            filename=name,
            path=child_virtual_path(vpath, name),
            size=0,
            mime=get_mime(name, mimes),
            type=EntryType.FILE,
        )

    is_file = stat_module.S_ISREG(st.st_mode)
    return DirectoryEntry(
        filename=name,
        path=child_virtual_path(vpath, name),
        size=st.st_size,
        mime=get_mime(name, mimes) if is_file else "",
        type=EntryType.FILE if is_file else EntryType.DIR,
        ctime=_timestamp(st.st_ctime),
        mtime=_timestamp(st.st_mtime),
    )


def list_entries(
    names: Iterable[str],
    vpath: VirtualPath,
    mimes: Mapping[str, str],
    include_parent: bool = True
) -> List[DirectoryEntry]:
    """
    Build listing rows for the given child names, in the order given.

    Args:
        names: Child names of vpath.root
        vpath: Resolved directory
        mimes: Mime table
        include_parent: Prepend the ".." entry when not at the root

    Returns:
        List of DirectoryEntry
    """
    entries: List[DirectoryEntry] = []

    if include_parent:
        parent = parent_entry(vpath)
        if parent is not None:
            entries.append(parent)

    for name in names:
        entries.append(build_entry(vpath, name, mimes))

    return entries


def walk_entry(event: WalkEvent, vpath: VirtualPath, mimes: Mapping[str, str]) -> DirectoryEntry:
    """Describe a path reached by the tree walker."""
    relative = PathUtils.to_posix(os.path.relpath(event.path, vpath.root))
    name = os.path.basename(event.path)
    is_file = not event.is_dir and stat_module.S_ISREG(event.stat.st_mode)

    return DirectoryEntry(
        filename=name,
        path=vpath.protocol + "/" + relative.lstrip("/"),
        size=event.stat.st_size if is_file else 0,
        mime=get_mime(name, mimes) if is_file else "",
        type=EntryType.FILE if is_file else EntryType.DIR,
        ctime=_timestamp(event.stat.st_ctime),
        mtime=_timestamp(event.stat.st_mtime),
    )
