"""
VirtualFSGate - Virtual filesystem access for vfsgate.

Provides:
- Virtual paths (scheme://path) mapped onto real directories via mounts
- Per-user home directories and templated wildcard mounts
- Uniform (error, result) contract for every file operation
- Optional image metadata, recursive search and free-space probing

Usage:
    from vfsgate import VirtualFSGate
    from vfsgate.VirtualFSGate import StaticSession

    # Initialize (call on startup)
    VirtualFSGate.initialize()

    session = StaticSession("alice")

    # List a directory
    result = await VirtualFSGate.scandir("home:///Documents", session)

    # Read a file as a data URL
    result = await VirtualFSGate.read("home:///notes.txt", session)

    # Run a verb by its wire name
    result = await VirtualFSGate.dispatch("mkdir", {"path": "home:///new"}, session)
"""

import os
from typing import Optional, List, Dict, Any, Mapping, Union

from vfsgate.shared.gate import build_health_status, GateLogger, PathUtils

from .capabilities import Capabilities, discover_capabilities
from .config import load_config, save_config, get_config_path
from .models import (
    VFSConfig,
    VFSErrorKind,
    VFSError,
    VFSResult,
    VirtualPath,
    DirectoryEntry,
    FileInfo,
    EntryType,
)
from .mime import get_mime
from .resolver import resolve, ResolveError, VFSGateError
from .session import SessionContext, StaticSession, ANONYMOUS
from . import operations as ops
from .operations import VFSContext

# Logger for this gate
_log = GateLogger.get("VirtualFSGate")

# Module-level state, set once at startup
_config: Optional[VFSConfig] = None
_capabilities: Optional[Capabilities] = None
_initialized: bool = False
_config_path: Optional[str] = None


class VirtualFSGate:
    """
    Main interface for virtual filesystem access.

    Configuration and capabilities are loaded once by initialize() and
    handed to every operation through an immutable VFSContext.
    """

    @classmethod
    def initialize(
        cls,
        config_path: Optional[str] = None,
        config: Optional[VFSConfig] = None,
        capabilities: Optional[Capabilities] = None
    ) -> bool:
        """
        Initialize the virtual filesystem gate.

        Args:
            config_path: Path to config file (default: data/config/vfs.json)
            config: Use this configuration instead of loading one
            capabilities: Use these capabilities instead of discovering them

        Returns:
            True if initialization successful
        """
        global _config, _capabilities, _initialized, _config_path

        try:
            _config_path = str(get_config_path(config_path))

            if config is None:
                config = load_config(_config_path)
                if config is None:
                    _log.error(f"Invalid configuration in {_config_path}")
                    return False

                # Save if newly created
                if not os.path.exists(_config_path):
                    save_config(config, _config_path)

            # Ensure homes root exists
            PathUtils.ensure_dirs(config.homes)
            _config = config
            _capabilities = capabilities if capabilities is not None else discover_capabilities()
            _initialized = True
            _log.info("Initialized successfully")
            return True

        except Exception as e:
            _log.error(f"Initialization failed: {e}")
            return False

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the gate is initialized."""
        return _initialized

    @classmethod
    def _get_config(cls) -> VFSConfig:
        """Get current config, initializing if needed."""
        if _config is None:
            if not cls.initialize():
                raise RuntimeError("VirtualFSGate initialization failed. Check config path and contents.")
        return _config

    @classmethod
    def _get_capabilities(cls) -> Capabilities:
        if _capabilities is None:
            cls._get_config()
        return _capabilities

    @classmethod
    def context(cls, session: Optional[SessionContext] = None) -> VFSContext:
        """Build the per-call context for a session."""
        return VFSContext(
            config=cls._get_config(),
            session=session if session is not None else ANONYMOUS,
            capabilities=cls._get_capabilities(),
        )

    # ==================== Health Checks ====================

    @classmethod
    def is_healthy(cls) -> bool:
        """Check if the gate is operational."""
        if not _initialized:
            return False

        config = cls._get_config()
        return os.path.isdir(config.homes) or bool(config.mounts)

    @classmethod
    def get_health_status(cls) -> Dict[str, Any]:
        """Get detailed health information."""
        checks = {}
        details = {}

        if _initialized:
            config = cls._get_config()
            checks["distdir"] = os.path.isdir(config.distdir)
            checks["homes"] = os.path.isdir(config.homes)
            for scheme, base in config.mounts.items():
                if "%" not in base:
                    checks[f"mount_{scheme}"] = os.path.isdir(base)

            details["mounts"] = sorted(config.mounts)
            details["capabilities"] = cls._get_capabilities().available()
            details["config_path"] = _config_path

        return build_health_status(
            gate_name="VirtualFSGate",
            initialized=_initialized,
            dependencies=cls.get_dependencies(),
            checks=checks,
            details=details,
        )

    @classmethod
    def get_dependencies(cls) -> List[str]:
        """List external dependencies."""
        return ["filesystem", "pillow (optional)"]

    # ==================== Resolution (server side only) ====================

    @classmethod
    def resolve(cls, virtual_path: str, session: Optional[SessionContext] = None) -> VirtualPath:
        """
        Resolve a virtual path to its real location.

        Not exposed to clients.

        Raises:
            ResolveError: If the path cannot be resolved
        """
        return resolve(virtual_path, cls._get_config(), session)

    # ==================== File Operations ====================

    @classmethod
    async def read(cls, path: str, session: Optional[SessionContext] = None, raw: bool = False) -> VFSResult:
        """Read a file as bytes (raw) or a base64 data URL."""
        return await ops.read(cls.context(session), path, raw=raw)

    @classmethod
    async def write(
        cls,
        path: str,
        data: Union[str, bytes, None],
        session: Optional[SessionContext] = None,
        raw: bool = False,
        rawtype: Optional[str] = None
    ) -> VFSResult:
        """Write a file from a data URL or raw payload."""
        return await ops.write(cls.context(session), path, data, raw=raw, rawtype=rawtype)

    @classmethod
    async def delete(cls, path: str, session: Optional[SessionContext] = None) -> VFSResult:
        """Delete a file or directory."""
        return await ops.delete(cls.context(session), path)

    @classmethod
    async def copy(cls, src: str, dest: str, session: Optional[SessionContext] = None) -> VFSResult:
        """Copy a file or directory."""
        return await ops.copy(cls.context(session), src, dest)

    @classmethod
    async def move(cls, src: str, dest: str, session: Optional[SessionContext] = None) -> VFSResult:
        """Move a file or directory."""
        return await ops.move(cls.context(session), src, dest)

    @classmethod
    async def upload(
        cls,
        src: str,
        path: str,
        name: str,
        session: Optional[SessionContext] = None,
        overwrite: bool = False
    ) -> VFSResult:
        """Move an uploaded temp file into a virtual directory."""
        return await ops.upload(cls.context(session), src, path, name, overwrite=overwrite)

    @classmethod
    async def mkdir(cls, path: str, session: Optional[SessionContext] = None) -> VFSResult:
        """Create a directory."""
        return await ops.mkdir(cls.context(session), path)

    @classmethod
    async def exists(cls, path: str, session: Optional[SessionContext] = None) -> VFSResult:
        """Check whether a path exists."""
        return await ops.exists(cls.context(session), path)

    @classmethod
    async def find(
        cls,
        path: str,
        query: str,
        session: Optional[SessionContext] = None,
        recursive: bool = False,
        limit: Optional[int] = None
    ) -> VFSResult:
        """Search a directory by name."""
        return await ops.find(cls.context(session), path, query, recursive=recursive, limit=limit)

    @classmethod
    async def fileinfo(cls, path: str, session: Optional[SessionContext] = None) -> VFSResult:
        """Get file information."""
        return await ops.fileinfo(cls.context(session), path)

    @classmethod
    async def scandir(cls, path: str, session: Optional[SessionContext] = None) -> VFSResult:
        """List a directory."""
        return await ops.scandir(cls.context(session), path)

    @classmethod
    async def free_space(cls, root: str, session: Optional[SessionContext] = None) -> VFSResult:
        """Get free bytes for the filesystem backing a path."""
        return await ops.free_space(cls.context(session), root)

    @classmethod
    async def dispatch(
        cls,
        verb: str,
        args: Optional[Mapping[str, Any]] = None,
        session: Optional[SessionContext] = None
    ) -> VFSResult:
        """Run a verb by its wire name."""
        return await ops.dispatch(cls.context(session), verb, args)

    # ==================== Configuration ====================

    @classmethod
    def get_config(cls) -> Dict[str, Any]:
        """Get full configuration."""
        return cls._get_config().to_dict()


# ==================== Convenience Functions ====================

def initialize(config_path: Optional[str] = None, **kwargs) -> bool:
    """Initialize VirtualFSGate."""
    return VirtualFSGate.initialize(config_path, **kwargs)


def is_initialized() -> bool:
    """Check if initialized."""
    return VirtualFSGate.is_initialized()


async def dispatch(verb: str, args: Optional[Mapping[str, Any]] = None, session: Optional[SessionContext] = None) -> VFSResult:
    """Run a verb by its wire name."""
    return await VirtualFSGate.dispatch(verb, args, session)


async def read(path: str, session: Optional[SessionContext] = None, raw: bool = False) -> VFSResult:
    """Read a file."""
    return await VirtualFSGate.read(path, session, raw)


async def write(path: str, data: Union[str, bytes, None], session: Optional[SessionContext] = None, **kwargs) -> VFSResult:
    """Write a file."""
    return await VirtualFSGate.write(path, data, session, **kwargs)


async def delete(path: str, session: Optional[SessionContext] = None) -> VFSResult:
    """Delete a file or directory."""
    return await VirtualFSGate.delete(path, session)


async def upload(
    src: str,
    path: str,
    name: str,
    session: Optional[SessionContext] = None,
    overwrite: bool = False
) -> VFSResult:
    """Move a server-side temp file into a virtual directory."""
    return await VirtualFSGate.upload(src, path, name, session, overwrite)


async def mkdir(path: str, session: Optional[SessionContext] = None) -> VFSResult:
    """Create a directory."""
    return await VirtualFSGate.mkdir(path, session)


async def scandir(path: str, session: Optional[SessionContext] = None) -> VFSResult:
    """List a directory."""
    return await VirtualFSGate.scandir(path, session)


async def fileinfo(path: str, session: Optional[SessionContext] = None) -> VFSResult:
    """Get file information."""
    return await VirtualFSGate.fileinfo(path, session)


def get_health_status() -> Dict[str, Any]:
    """Get detailed health information."""
    return VirtualFSGate.get_health_status()


def mime(filename: str) -> str:
    """Content type for a file name. Not exposed to clients."""
    return get_mime(filename, VirtualFSGate._get_config().mimes)


def get_info() -> dict:
    """
    Get documentation for VirtualFSGate.

    Returns the verb set with argument shapes and result types, as
    exposed to remote callers.
    """
    return {
        "gate": "VirtualFSGate",
        "version": "1.0",
        "purpose": "File operations on virtual paths. Paths look like 'scheme:///dir/file'; the scheme selects a mount and the real location stays hidden.",

        "concepts": {
            "home": "home:/// is the caller's own home directory",
            "osjs": "osjs:/// is the read-mostly distribution directory",
            "mounts": "Other schemes map to configured mounts, or to the templated wildcard mount",
            "result": "Every call answers {error, result}; error is null on success",
        },

        "verbs": {
            "read": {"args": {"path": "string", "options": {"raw": "boolean"}}, "result": "data URL string, or bytes when raw"},
            "write": {"args": {"path": "string", "data": "data URL or raw string", "options": {"raw": "boolean", "rawtype": "string"}}, "result": "true"},
            "delete": {"args": {"path": "string"}, "result": "true"},
            "copy": {"args": {"src": "string", "dest": "string"}, "result": "true"},
            "move": {"args": {"src": "string", "dest": "string"}, "result": "true"},
            "upload": {"args": {"upload": "multipart file", "path": "string", "name": "string (defaults to the file name)", "overwrite": "boolean"}, "transport": "multipart/form-data", "result": "true"},
            "mkdir": {"args": {"path": "string"}, "result": "true"},
            "exists": {"args": {"path": "string"}, "result": "boolean"},
            "find": {"args": {"path": "string", "args": {"query": "string", "recursive": "boolean", "limit": "integer"}}, "result": "list of entries"},
            "fileinfo": {"args": {"path": "string"}, "result": "file information"},
            "scandir": {"args": {"path": "string"}, "result": "list of entries"},
            "freeSpace": {"args": {"root": "string"}, "result": "free bytes"},
        },

        "errors": [kind.value for kind in VFSErrorKind],
    }


__all__ = [
    # Class
    "VirtualFSGate",
    # Lifecycle
    "initialize",
    "is_initialized",
    "get_health_status",
    "mime",
    # Operations
    "dispatch",
    "read",
    "write",
    "delete",
    "upload",
    "mkdir",
    "scandir",
    "fileinfo",
    "VFSContext",
    # Models
    "VFSConfig",
    "VFSErrorKind",
    "VFSError",
    "VFSResult",
    "VirtualPath",
    "DirectoryEntry",
    "FileInfo",
    "EntryType",
    "Capabilities",
    # Session
    "SessionContext",
    "StaticSession",
    # Errors
    "VFSGateError",
    "ResolveError",
    # Documentation
    "get_info",
]
