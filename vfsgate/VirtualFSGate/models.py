"""
VirtualFSGate Pydantic models.

Defines mount configuration, resolved virtual paths, listing entries,
file information and the per-call result contract.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, model_validator


DEFAULT_MIMES: Dict[str, str] = {
    "default": "application/octet-stream",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".log": "text/plain",
    ".ini": "text/plain",
    ".cfg": "text/plain",
    ".csv": "text/csv",
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".py": "text/x-python",
    ".sh": "application/x-sh",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".mp3": "audio/mpeg",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
    ".wav": "audio/wav",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".ogv": "video/ogg",
    ".mkv": "video/x-matroska",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".odt": "application/vnd.oasis.opendocument.text",
    ".ods": "application/vnd.oasis.opendocument.spreadsheet",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


class VFSErrorKind(str, Enum):
    """Error taxonomy shared by every verb."""
    # Resolution
    INVALID_MOUNTPOINT = "invalid_mountpoint"
    NO_SESSION = "no_session"
    PERMISSION_DENIED = "permission_denied"
    # Preconditions
    NOT_FOUND = "not_found"
    TARGET_EXISTS = "target_exists"
    SOURCE_NOT_FOUND = "source_not_found"
    # I/O
    IO_FAILURE = "io_failure"
    READ_FAILURE = "read_failure"
    WRITE_FAILURE = "write_failure"
    DELETE_FAILURE = "delete_failure"
    STAT_FAILURE = "stat_failure"
    # Optional collaborators
    CAPABILITY_UNAVAILABLE = "capability_unavailable"
    TRAVERSAL_UNAVAILABLE = "traversal_unavailable"
    PROBE_UNAVAILABLE = "probe_unavailable"
    PROBE_FAILURE = "probe_failure"
    # Dispatch
    UNKNOWN_VERB = "unknown_verb"


class EntryType(str, Enum):
    """Kind of a listing entry."""
    FILE = "file"
    DIR = "dir"


class VFSConfig(BaseModel):
    """Mount and mime configuration for the gate."""
    model_config = ConfigDict(frozen=True)

    distdir: str = Field(default="dist", description="Root served by osjs://")
    homes: str = Field(default="data/homes", description="Parent of per-user home directories")
    rootdir: str = Field(default=".", description="Installation root, substituted for %DROOT%")
    mounts: Dict[str, str] = Field(
        default_factory=dict,
        description="Scheme -> base directory template; '*' is the wildcard mount"
    )
    mimes: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_MIMES))
    enforce_mount_boundary: bool = Field(
        default=True,
        description="Reject real paths that normalize outside their mount base"
    )

    @model_validator(mode="after")
    def _require_default_mime(self) -> "VFSConfig":
        if "default" not in self.mimes:
            raise ValueError("mimes table must contain a 'default' entry")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VFSConfig":
        """Create from dict."""
        return cls.model_validate(data)


class VirtualPath(BaseModel):
    """A virtual path resolved against the mount table."""
    model_config = ConfigDict(frozen=True)

    root: str = Field(description="Absolute real path")
    path: str = Field(description="Virtual path with the scheme removed")
    protocol: str = Field(description="Scheme including '://'")
    base: Optional[str] = Field(default=None, description="Absolute real path of the mount itself")

    @property
    def is_mount_root(self) -> bool:
        """True when the path addresses the mount itself, before or after normalization."""
        if (self.path or "/") == "/":
            return True
        return self.base is not None and self.root == self.base


class DirectoryEntry(BaseModel):
    """One row of a directory listing or search result."""
    filename: str
    path: str = Field(description="Virtual path including protocol")
    size: int = 0
    mime: str = ""
    type: EntryType
    ctime: Optional[datetime] = None
    mtime: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")


class FileInfo(BaseModel):
    """Information about a single file or directory."""
    path: str
    filename: str
    size: int = 0
    mime: str = ""
    permissions: str
    ctime: Optional[datetime] = None
    mtime: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization, omitting absent metadata."""
        data = self.model_dump(mode="json")
        if self.metadata is None:
            data.pop("metadata")
        return data


class DiskUsage(BaseModel):
    """Usage figures for the filesystem backing a path."""
    total: int
    free: int
    used: int


class VFSError(BaseModel):
    """Error descriptor carried in a failed result."""
    kind: VFSErrorKind
    message: str


class VFSResult(BaseModel):
    """
    Outcome of a single verb.

    Exactly one of the slots is meaningful: a result with an error never
    carries data, and a result without an error is a success.
    """
    operation: str
    error: Optional[VFSError] = None
    data: Any = None

    @model_validator(mode="after")
    def _error_excludes_data(self) -> "VFSResult":
        if self.error is not None and self.data is not None:
            raise ValueError("a failed result cannot carry data")
        return self

    @property
    def success(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.success

    @classmethod
    def ok(cls, operation: str, data: Any = None) -> "VFSResult":
        """Create a successful result."""
        return cls(operation=operation, data=data)

    @classmethod
    def fail(cls, operation: str, kind: VFSErrorKind, message: str) -> "VFSResult":
        """Create a failed result."""
        return cls(operation=operation, error=VFSError(kind=kind, message=message))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire shape: {"error": ..., "result": ...}."""
        data = self.data
        if isinstance(data, BaseModel):
            data = data.to_dict() if hasattr(data, "to_dict") else data.model_dump(mode="json")
        elif isinstance(data, list):
            data = [d.to_dict() if isinstance(d, BaseModel) else d for d in data]
        return {
            "error": self.error.model_dump(mode="json") if self.error else None,
            "result": data,
        }


__all__ = [
    "DEFAULT_MIMES",
    "VFSErrorKind",
    "EntryType",
    "VFSConfig",
    "VirtualPath",
    "DirectoryEntry",
    "FileInfo",
    "DiskUsage",
    "VFSError",
    "VFSResult",
]
