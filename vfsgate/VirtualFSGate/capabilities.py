"""
Optional collaborators used by individual verbs.

Each capability is discovered once when the gate starts. A missing
capability is recorded as None, and verbs that need it fail explicitly
instead of silently doing nothing.
"""

import importlib.util
import os
import shutil
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Protocol

from vfsgate.shared.gate import GateLogger

from .models import DiskUsage

_log = GateLogger.get("VirtualFSGate.Capabilities")


@dataclass(frozen=True)
class WalkEvent:
    """A path reached during a recursive walk."""
    path: str
    is_dir: bool
    stat: os.stat_result


class MetadataExtractor(Protocol):
    def extract(self, path: str) -> Dict[str, Any]:
        """Return embedded metadata for an image, raising on failure."""
        ...


class TreeWalker(Protocol):
    def walk(self, root: str) -> Iterator[WalkEvent]:
        """Yield every path below root. Closing the iterator stops the walk."""
        ...


class DiskUsageProbe(Protocol):
    def probe(self, path: str) -> DiskUsage:
        """Return usage of the filesystem backing path."""
        ...


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").rstrip("\x00")
    if isinstance(value, (tuple, list)):
        return [_jsonable(v) for v in value]
    if hasattr(value, "numerator"):
        try:
            return float(value)
        except (TypeError, ValueError, ZeroDivisionError):
            return str(value)
    return str(value)


class PillowExifExtractor:
    """EXIF extraction backed by Pillow."""

    def __init__(self):
        from PIL import ExifTags, Image

        self._image = Image
        self._tags = ExifTags.TAGS

    def extract(self, path: str) -> Dict[str, Any]:
        with self._image.open(path) as img:
            exif = img.getexif()
        return {
            str(self._tags.get(tag, tag)): _jsonable(value)
            for tag, value in exif.items()
        }


class OSTreeWalker:
    """Top-down walk in sorted name order."""

    def walk(self, root: str) -> Iterator[WalkEvent]:
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for name in dirnames:
                full = os.path.join(dirpath, name)
                try:
                    yield WalkEvent(full, True, os.stat(full))
                except OSError:
                    continue
            for name in sorted(filenames):
                full = os.path.join(dirpath, name)
                try:
                    st = os.stat(full)
                except OSError:
                    continue
                yield WalkEvent(full, False, st)


class ShutilDiskUsageProbe:
    """Disk usage via shutil.disk_usage."""

    def probe(self, path: str) -> DiskUsage:
        usage = shutil.disk_usage(path)
        return DiskUsage(total=usage.total, free=usage.free, used=usage.used)


@dataclass(frozen=True)
class Capabilities:
    """Optional collaborators available to this process."""
    metadata_extractor: Optional[MetadataExtractor] = None
    tree_walker: Optional[TreeWalker] = None
    disk_probe: Optional[DiskUsageProbe] = None

    def available(self) -> Dict[str, bool]:
        return {
            "metadata": self.metadata_extractor is not None,
            "traversal": self.tree_walker is not None,
            "disk_probe": self.disk_probe is not None,
        }


def discover_capabilities() -> Capabilities:
    """
    Probe the environment for optional collaborators.

    Returns:
        Capabilities with unavailable entries set to None
    """
    extractor = None
    if importlib.util.find_spec("PIL") is not None:
        extractor = PillowExifExtractor()
    else:
        _log.info("Pillow not installed, image metadata extraction disabled")

    caps = Capabilities(
        metadata_extractor=extractor,
        tree_walker=OSTreeWalker(),
        disk_probe=ShutilDiskUsageProbe(),
    )
    _log.debug(f"Capabilities: {caps.available()}")
    return caps
