"""
VirtualFSGate path resolution.

Maps virtual paths like "home:///Documents/notes.txt" to real filesystem
locations through the configured mount table.

Resolution order:
1. osjs://   -> distribution root
2. home://   -> homes root + session username
3. <scheme>:// with an explicit mount entry -> that mount's base
4. <scheme>:// with a wildcard ("*") mount -> templated base
5. anything else fails with an invalid mountpoint error
"""

import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from vfsgate.shared.gate import GateLogger, PathUtils

from .models import VFSConfig, VFSErrorKind, VirtualPath
from .session import SessionContext

_log = GateLogger.get("VirtualFSGate.Resolver")

SCHEME_RE = re.compile(r"^(\w+)://")

RESERVED_OSJS = "osjs"
RESERVED_HOME = "home"
WILDCARD_MOUNT = "*"

USER_TOKENS = ("%UID%", "%USERNAME%")
ROOT_TOKEN = "%DROOT%"
MOUNTPOINT_TOKEN = "%MOUNTPOINT%"

# Characters that would let a username leave its own directory
UNSAFE_USERNAME_CHARS = ("/", "\\", "\x00")


class VFSGateError(Exception):
    """Base error for the gate, tagged with an error kind."""

    def __init__(self, kind: VFSErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class ResolveError(VFSGateError):
    """Raised when a virtual path cannot be mapped to a real path."""
    pass


class MountKind(str, Enum):
    """How a virtual path matched the mount table."""
    RESERVED_OSJS = "reserved_osjs"
    RESERVED_HOME = "reserved_home"
    REGISTERED = "registered"
    WILDCARD = "wildcard"
    INVALID = "invalid"


@dataclass(frozen=True)
class MountMatch:
    """Classification of a virtual path, decided once per call."""
    kind: MountKind
    scheme: str
    remainder: str


def classify(virtual_path: str, config: VFSConfig) -> MountMatch:
    """
    Classify a virtual path against the mount table.

    Args:
        virtual_path: Client supplied path, e.g. "home:///foo"
        config: Gate configuration

    Returns:
        MountMatch describing which rule applies
    """
    match = SCHEME_RE.match(virtual_path or "")
    if match is None:
        return MountMatch(MountKind.INVALID, "", virtual_path or "")

    scheme = match.group(1)
    remainder = virtual_path[match.end():]

    if scheme == RESERVED_OSJS:
        return MountMatch(MountKind.RESERVED_OSJS, scheme, remainder)
    if scheme == RESERVED_HOME:
        return MountMatch(MountKind.RESERVED_HOME, scheme, remainder)
    if config.mounts.get(scheme):
        return MountMatch(MountKind.REGISTERED, scheme, remainder)
    if config.mounts.get(WILDCARD_MOUNT):
        return MountMatch(MountKind.WILDCARD, scheme, remainder)
    return MountMatch(MountKind.INVALID, scheme, remainder)


def normalize_path(path: str) -> str:
    """
    Normalize a path to an absolute path with '.' and '..' collapsed.

    Args:
        path: Raw path string

    Returns:
        Normalized absolute path in host form
    """
    return os.path.abspath(os.path.normpath(path))


def join_real(base: str, remainder: str) -> str:
    """
    Join a mount base and a virtual remainder into a real path.

    The remainder is always treated as relative to the base, and the
    result uses forward slashes on every platform.
    """
    relative = remainder.lstrip("/\\")
    joined = os.path.join(base, relative) if relative else base
    return PathUtils.to_posix(normalize_path(joined))


def is_within(target: str, base: str) -> bool:
    """Check that target lies inside base (or is base)."""
    base_path = normalize_path(base)
    target_path = normalize_path(target)
    try:
        return os.path.commonpath([base_path, target_path]) == base_path
    except ValueError:
        # Different drives on Windows
        return False


def expand_template(template: str, config: VFSConfig, session: Optional[SessionContext], scheme: str) -> str:
    """
    Substitute the recognized tokens in a mount template.

    Raises:
        ResolveError: If the template needs a username and none is available
    """
    result = template
    if any(token in result for token in USER_TOKENS):
        username = _require_username(session)
        for token in USER_TOKENS:
            result = result.replace(token, username)
    result = result.replace(ROOT_TOKEN, config.rootdir)
    result = result.replace(MOUNTPOINT_TOKEN, scheme)
    return result


def _require_username(session: Optional[SessionContext]) -> str:
    """
    Username of the session, safe to use as a single path component.

    Raises:
        ResolveError: NO_SESSION without a username, PERMISSION_DENIED if the
            username could name another directory
    """
    username = session.get_username() if session is not None else None
    if not username:
        raise ResolveError(VFSErrorKind.NO_SESSION, "No user session was found")
    if username in (".", "..") or any(c in username for c in UNSAFE_USERNAME_CHARS):
        _log.warning(f"Rejected unsafe username {username!r}")
        raise ResolveError(VFSErrorKind.PERMISSION_DENIED, "Invalid username")
    return username


def _check_boundary(config: VFSConfig, real: str, base: str, virtual_path: str) -> None:
    if config.enforce_mount_boundary and not is_within(real, base):
        _log.warning(f"Rejected {virtual_path}: escapes mount boundary {base}")
        raise ResolveError(VFSErrorKind.PERMISSION_DENIED, "Path escapes mount boundary")


def resolve(virtual_path: str, config: VFSConfig, session: Optional[SessionContext] = None) -> VirtualPath:
    """
    Resolve a virtual path to its real location.

    Args:
        virtual_path: Client supplied virtual path
        config: Gate configuration
        session: Session of the caller (needed for home:// and user templates)

    Returns:
        VirtualPath with root (real path), path (virtual remainder), protocol
        and base (real path of the mount)

    Raises:
        ResolveError: INVALID_MOUNTPOINT, NO_SESSION or PERMISSION_DENIED
    """
    match = classify(virtual_path, config)

    if match.kind == MountKind.RESERVED_OSJS:
        base = config.distdir
        real = join_real(base, match.remainder)

    elif match.kind == MountKind.RESERVED_HOME:
        username = _require_username(session)
        base = os.path.join(config.homes, username)
        _check_boundary(config, base, config.homes, virtual_path)
        real = join_real(base, match.remainder)

    elif match.kind == MountKind.REGISTERED:
        base = config.mounts[match.scheme]
        real = join_real(base, match.remainder)

    elif match.kind == MountKind.WILDCARD:
        base = expand_template(config.mounts[WILDCARD_MOUNT], config, session, match.scheme)
        real = join_real(base, re.sub(r"/+", "/", match.remainder))

    else:
        raise ResolveError(VFSErrorKind.INVALID_MOUNTPOINT, "Invalid mountpoint")

    _check_boundary(config, real, base, virtual_path)

    _log.debug(f"Resolved {virtual_path} -> {real} ({match.kind.value})")
    return VirtualPath(
        root=real,
        path=match.remainder,
        protocol=f"{match.scheme}://",
        base=join_real(base, ""),
    )
