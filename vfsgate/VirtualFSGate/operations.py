"""
VirtualFSGate file operations.

One coroutine per verb. Every verb resolves its virtual paths first,
before any I/O is started, then checks its preconditions, performs the
blocking filesystem work in a worker thread and returns a VFSResult.

Nothing here serializes concurrent calls against each other; two calls
touching the same path race exactly as two processes would.
"""

import asyncio
import base64
import os
import shutil
import stat as stat_module
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union
from urllib.parse import unquote

from vfsgate.shared.gate import GateLogger

from .capabilities import Capabilities, TreeWalker
from .listing import list_entries, walk_entry
from .mime import get_mime
from .models import (
    DirectoryEntry,
    FileInfo,
    VFSConfig,
    VFSErrorKind,
    VFSResult,
    VirtualPath,
)
from .permissions import format_permissions
from .resolver import ResolveError, resolve
from .session import ANONYMOUS, SessionContext

_log = GateLogger.get("VirtualFSGate.Operations")

CHUNK_SIZE = 64 * 1024

# Node-style encoding names accepted for raw writes
RAW_ENCODINGS = {
    "binary": "latin-1",
    "latin1": "latin-1",
    "utf8": "utf-8",
    "ucs2": "utf-16-le",
    "utf16le": "utf-16-le",
}


@dataclass(frozen=True)
class VFSContext:
    """Everything a verb needs, passed explicitly into each call."""
    config: VFSConfig
    session: SessionContext = ANONYMOUS
    capabilities: Capabilities = field(default_factory=Capabilities)


# ==================== Helpers ====================


def _fail(operation: str, kind: VFSErrorKind, message: str) -> VFSResult:
    _log.warning(f"{operation} failed ({kind.value}): {message}")
    return VFSResult.fail(operation, kind, message)


def _resolve_failed(operation: str, error: ResolveError) -> VFSResult:
    return _fail(operation, error.kind, error.message)


def _resolve_all(ctx: VFSContext, *paths: str) -> List[VirtualPath]:
    return [resolve(p, ctx.config, ctx.session) for p in paths]


async def _exists(path: str) -> bool:
    return await asyncio.to_thread(os.path.lexists, path)


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _write_bytes(path: str, data: bytes) -> None:
    with open(path, "wb") as f:
        f.write(data)


def _remove(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.remove(path)


def _stream_copy(source: str, dest: str, overwrite: bool = False) -> None:
    """
    Copy source to dest in chunks.

    Without overwrite the destination is created exclusively, so an
    existing file raises FileExistsError instead of being replaced. Both
    files are closed whichever side fails.
    """
    mode = "wb" if overwrite else "xb"
    with open(source, "rb") as ins:
        with open(dest, mode) as outs:
            shutil.copyfileobj(ins, outs, CHUNK_SIZE)


def _copy(source: str, dest: str) -> None:
    if os.path.isdir(source):
        shutil.copytree(source, dest)
    else:
        _stream_copy(source, dest)
        shutil.copymode(source, dest)


def _upload(source: str, dest: str, overwrite: bool) -> None:
    _stream_copy(source, dest, overwrite=overwrite)
    os.unlink(source)


def decode_payload(data: Union[str, bytes, None], raw: bool = False, rawtype: Optional[str] = None) -> bytes:
    """
    Turn a write payload into bytes.

    Args:
        data: Payload as sent by the client
        raw: Payload is not a data URL
        rawtype: Encoding of a raw string payload (default "binary")

    Returns:
        Bytes to write

    Raises:
        ValueError: Malformed base64/hex or unencodable text
        LookupError: Unknown encoding
    """
    if data is None:
        data = b"" if raw else ""

    if raw:
        if isinstance(data, bytes):
            return data
        encoding = (rawtype or "binary").lower()
        if encoding == "base64":
            return base64.b64decode(data)
        if encoding == "hex":
            return bytes.fromhex(data)
        return data.encode(RAW_ENCODINGS.get(encoding, encoding))

    if isinstance(data, bytes):
        data = data.decode("ascii")
    payload = data[data.find(",") + 1:]
    return base64.b64decode(unquote(payload))


def _stat_times(st: os.stat_result) -> Dict[str, datetime]:
    return {
        "ctime": datetime.fromtimestamp(st.st_ctime),
        "mtime": datetime.fromtimestamp(st.st_mtime),
    }


# ==================== Verbs ====================


async def read(ctx: VFSContext, path: str, raw: bool = False) -> VFSResult:
    """
    Read a file.

    Returns the raw bytes when raw is set, otherwise a
    "data:<mime>;base64,<payload>" string.
    """
    op = "read"
    try:
        (vpath,) = _resolve_all(ctx, path)
    except ResolveError as e:
        return _resolve_failed(op, e)

    if not await _exists(vpath.root):
        return _fail(op, VFSErrorKind.NOT_FOUND, "File not found!")

    try:
        data = await asyncio.to_thread(_read_bytes, vpath.root)
    except OSError as e:
        return _fail(op, VFSErrorKind.READ_FAILURE, f"Error reading file: {e}")

    if raw:
        return VFSResult.ok(op, data)

    mime = get_mime(vpath.root, ctx.config.mimes)
    encoded = base64.b64encode(data).decode("ascii")
    return VFSResult.ok(op, f"data:{mime};base64,{encoded}")


async def write(
    ctx: VFSContext,
    path: str,
    data: Union[str, bytes, None],
    raw: bool = False,
    rawtype: Optional[str] = None
) -> VFSResult:
    """Write a file from a data URL or a raw payload."""
    op = "write"
    try:
        (vpath,) = _resolve_all(ctx, path)
    except ResolveError as e:
        return _resolve_failed(op, e)

    try:
        payload = decode_payload(data, raw, rawtype)
    except (ValueError, LookupError) as e:
        return _fail(op, VFSErrorKind.WRITE_FAILURE, f"Error writing file: invalid payload ({e})")

    try:
        await asyncio.to_thread(_write_bytes, vpath.root, payload)
    except OSError as e:
        return _fail(op, VFSErrorKind.WRITE_FAILURE, f"Error writing file: {e}")

    _log.debug(f"Wrote {len(payload)} bytes to {vpath.root}")
    return VFSResult.ok(op, True)


async def delete(ctx: VFSContext, path: str) -> VFSResult:
    """
    Delete a file or, recursively, a directory.

    Roots are refused before anything else is checked: a bare "/" or "",
    and any virtual path whose real location is its mount directory
    ("home:///", "home:///docs/..").
    """
    op = "delete"
    if (path or "").strip() in ("", "/"):
        return _fail(op, VFSErrorKind.PERMISSION_DENIED, "Permission denied")

    try:
        (vpath,) = _resolve_all(ctx, path)
    except ResolveError as e:
        return _resolve_failed(op, e)

    if vpath.is_mount_root:
        return _fail(op, VFSErrorKind.PERMISSION_DENIED, "Permission denied")

    if not await _exists(vpath.root):
        return _fail(op, VFSErrorKind.NOT_FOUND, "Target does not exist!")

    try:
        await asyncio.to_thread(_remove, vpath.root)
    except OSError as e:
        return _fail(op, VFSErrorKind.DELETE_FAILURE, f"Error deleting: {e}")

    return VFSResult.ok(op, True)


async def copy(ctx: VFSContext, src: str, dest: str) -> VFSResult:
    """
    Copy a file or directory tree. Never overwrites.

    A copy that fails midway may leave a partial destination behind.
    """
    op = "copy"
    try:
        source, target = _resolve_all(ctx, src, dest)
    except ResolveError as e:
        return _resolve_failed(op, e)

    if not await _exists(source.root):
        return _fail(op, VFSErrorKind.SOURCE_NOT_FOUND, "Source does not exist!")
    if await _exists(target.root):
        return _fail(op, VFSErrorKind.TARGET_EXISTS, "Target already exist!")

    try:
        await asyncio.to_thread(_copy, source.root, target.root)
    except FileExistsError:
        return _fail(op, VFSErrorKind.TARGET_EXISTS, "Target already exist!")
    except OSError as e:
        return _fail(op, VFSErrorKind.IO_FAILURE, f"Error copying: {e}")

    return VFSResult.ok(op, True)


async def move(ctx: VFSContext, src: str, dest: str) -> VFSResult:
    """
    Rename a file or directory.

    Uses os.rename, so moves across devices fail with an I/O error.
    """
    op = "move"
    try:
        source, target = _resolve_all(ctx, src, dest)
    except ResolveError as e:
        return _resolve_failed(op, e)

    if not await _exists(source.root):
        return _fail(op, VFSErrorKind.SOURCE_NOT_FOUND, "Source does not exist!")
    if await _exists(target.root):
        return _fail(op, VFSErrorKind.TARGET_EXISTS, "Target already exist!")

    try:
        await asyncio.to_thread(os.rename, source.root, target.root)
    except OSError as e:
        return _fail(op, VFSErrorKind.IO_FAILURE, f"Error renaming/moving: {e}")

    return VFSResult.ok(op, True)


def upload_destination(path: str, name: str) -> str:
    """Virtual destination of an upload named name inside path."""
    if path.endswith("/"):
        return path + name
    return f"{path}/{name}"


async def upload(
    ctx: VFSContext,
    src: str,
    path: str,
    name: str,
    overwrite: bool = False
) -> VFSResult:
    """
    Move an uploaded temp file into the virtual filesystem.

    src is a real path owned by the transport. The file is stream-copied
    and the temp file removed afterwards, which works across devices.
    """
    op = "upload"
    try:
        (target,) = _resolve_all(ctx, upload_destination(path, name))
    except ResolveError as e:
        return _resolve_failed(op, e)

    if not await _exists(src):
        return _fail(op, VFSErrorKind.SOURCE_NOT_FOUND, "Source does not exist!")
    if not overwrite and await _exists(target.root):
        return _fail(op, VFSErrorKind.TARGET_EXISTS, "Target already exist!")

    try:
        await asyncio.to_thread(_upload, src, target.root, overwrite)
    except FileExistsError:
        return _fail(op, VFSErrorKind.TARGET_EXISTS, "Target already exist!")
    except OSError as e:
        return _fail(op, VFSErrorKind.IO_FAILURE, f"Error renaming/moving: {e}")

    return VFSResult.ok(op, True)


async def mkdir(ctx: VFSContext, path: str) -> VFSResult:
    """Create a single directory."""
    op = "mkdir"
    try:
        (vpath,) = _resolve_all(ctx, path)
    except ResolveError as e:
        return _resolve_failed(op, e)

    try:
        await asyncio.to_thread(os.mkdir, vpath.root)
    except FileExistsError:
        return _fail(op, VFSErrorKind.TARGET_EXISTS, "Target already exist!")
    except OSError as e:
        return _fail(op, VFSErrorKind.IO_FAILURE, f"Error creating directory: {e}")

    return VFSResult.ok(op, True)


async def exists(ctx: VFSContext, path: str) -> VFSResult:
    """Check whether a virtual path exists."""
    op = "exists"
    try:
        (vpath,) = _resolve_all(ctx, path)
    except ResolveError as e:
        return _resolve_failed(op, e)

    return VFSResult.ok(op, await asyncio.to_thread(os.path.exists, vpath.root))


async def fileinfo(ctx: VFSContext, path: str) -> VFSResult:
    """
    Describe a file, adding embedded metadata for images when possible.

    Metadata extraction problems never fail the call; the metadata field
    is simply left out.
    """
    op = "fileinfo"
    try:
        (vpath,) = _resolve_all(ctx, path)
    except ResolveError as e:
        return _resolve_failed(op, e)

    if not await _exists(vpath.root):
        return _fail(op, VFSErrorKind.NOT_FOUND, "No such file or directory!")

    try:
        st = await asyncio.to_thread(os.stat, vpath.root)
    except OSError as e:
        return _fail(op, VFSErrorKind.STAT_FAILURE, f"Error getting file information: {e}")

    is_dir = stat_module.S_ISDIR(st.st_mode)
    mime = "" if is_dir else get_mime(vpath.root, ctx.config.mimes)
    info = FileInfo(
        path=vpath.protocol + vpath.path,
        filename=os.path.basename(vpath.root),
        size=st.st_size,
        mime=mime,
        permissions=format_permissions(st.st_mode),
        **_stat_times(st),
    )

    if mime.startswith("image/"):
        extractor = ctx.capabilities.metadata_extractor
        if extractor is None:
            _log.debug("No metadata extractor available, skipping image metadata")
        else:
            try:
                info.metadata = await asyncio.to_thread(extractor.extract, vpath.root)
            except Exception as e:
                _log.debug(f"Metadata extraction failed for {vpath.root}: {e}")

    return VFSResult.ok(op, info)


async def scandir(ctx: VFSContext, path: str) -> VFSResult:
    """List a directory, with a ".." entry first unless at the root."""
    op = "scandir"
    try:
        (vpath,) = _resolve_all(ctx, path)
    except ResolveError as e:
        return _resolve_failed(op, e)

    try:
        names = sorted(await asyncio.to_thread(os.listdir, vpath.root))
    except OSError as e:
        return _fail(op, VFSErrorKind.READ_FAILURE, f"Error reading directory: {e}")

    entries = await asyncio.to_thread(list_entries, names, vpath, ctx.config.mimes)
    return VFSResult.ok(op, entries)


def _search(
    walker: TreeWalker,
    vpath: VirtualPath,
    query: str,
    limit: Optional[int],
    mimes: Mapping[str, str]
) -> List[DirectoryEntry]:
    results: List[DirectoryEntry] = []
    events = walker.walk(vpath.root)
    try:
        for event in events:
            if query in os.path.basename(event.path).lower():
                results.append(walk_entry(event, vpath, mimes))
                if limit and len(results) >= limit:
                    break
    finally:
        close = getattr(events, "close", None)
        if close is not None:
            close()
    return results


async def find(
    ctx: VFSContext,
    path: str,
    query: str = "",
    recursive: bool = False,
    limit: Optional[int] = None
) -> VFSResult:
    """
    Search a directory for names containing query (case-insensitive).

    Non-recursive searches filter the immediate children. Recursive
    searches walk the whole tree and stop once limit results are found.
    """
    op = "find"
    try:
        (vpath,) = _resolve_all(ctx, path)
    except ResolveError as e:
        return _resolve_failed(op, e)

    if limit is not None:
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            return _fail(op, VFSErrorKind.READ_FAILURE, f"Invalid result limit: {limit!r}")

    needle = (query or "").lower()

    if not recursive:
        try:
            names = sorted(await asyncio.to_thread(os.listdir, vpath.root))
        except OSError as e:
            return _fail(op, VFSErrorKind.READ_FAILURE, f"Error reading directory: {e}")

        matched = [n for n in names if needle in n.lower()]
        entries = await asyncio.to_thread(
            list_entries, matched, vpath, ctx.config.mimes, False
        )
        return VFSResult.ok(op, entries)

    walker = ctx.capabilities.tree_walker
    if walker is None:
        return _fail(op, VFSErrorKind.TRAVERSAL_UNAVAILABLE, "Recursive search is not available")

    if not await asyncio.to_thread(os.path.isdir, vpath.root):
        return _fail(op, VFSErrorKind.READ_FAILURE, "Error reading directory: not a directory")

    entries = await asyncio.to_thread(
        _search, walker, vpath, needle, limit, ctx.config.mimes
    )
    return VFSResult.ok(op, entries)


async def free_space(ctx: VFSContext, root: str) -> VFSResult:
    """Free bytes on the filesystem backing a virtual path."""
    op = "freeSpace"
    try:
        (vpath,) = _resolve_all(ctx, root)
    except ResolveError as e:
        return _resolve_failed(op, e)

    probe = ctx.capabilities.disk_probe
    if probe is None:
        return _fail(op, VFSErrorKind.PROBE_UNAVAILABLE, "Disk usage probing is not available")

    try:
        usage = await asyncio.to_thread(probe.probe, vpath.root)
    except OSError as e:
        return _fail(op, VFSErrorKind.PROBE_FAILURE, f"Error checking free space: {e}")

    return VFSResult.ok(op, usage.free)


# ==================== Dispatch ====================


def _options(args: Mapping[str, Any], key: str = "options") -> Mapping[str, Any]:
    return args.get(key) or {}


def _find_args(args: Mapping[str, Any]) -> Dict[str, Any]:
    merged = {**args, **_options(args, "args")}
    return {
        "query": merged.get("query") or "",
        "recursive": bool(merged.get("recursive", False)),
        "limit": merged.get("limit"),
    }


VerbHandler = Callable[[VFSContext, Mapping[str, Any]], Awaitable[VFSResult]]

VERBS: Dict[str, VerbHandler] = {
    "read": lambda ctx, a: read(
        ctx, a.get("path", ""), raw=bool(_options(a).get("raw", False))
    ),
    "write": lambda ctx, a: write(
        ctx, a.get("path", ""), a.get("data"),
        raw=bool(_options(a).get("raw", False)),
        rawtype=_options(a).get("rawtype"),
    ),
    "delete": lambda ctx, a: delete(ctx, a.get("path", "")),
    "copy": lambda ctx, a: copy(ctx, a.get("src", ""), a.get("dest", "")),
    "move": lambda ctx, a: move(ctx, a.get("src", ""), a.get("dest", "")),
    "upload": lambda ctx, a: upload(
        ctx, a.get("src", ""), a.get("path", ""), a.get("name", ""),
        overwrite=a.get("overwrite") is True,
    ),
    "mkdir": lambda ctx, a: mkdir(ctx, a.get("path", "")),
    "exists": lambda ctx, a: exists(ctx, a.get("path", "")),
    "find": lambda ctx, a: find(ctx, a.get("path", ""), **_find_args(a)),
    "fileinfo": lambda ctx, a: fileinfo(ctx, a.get("path", "")),
    "scandir": lambda ctx, a: scandir(ctx, a.get("path", "")),
    "freeSpace": lambda ctx, a: free_space(ctx, a.get("root", "")),
}


async def dispatch(ctx: VFSContext, verb: str, args: Optional[Mapping[str, Any]] = None) -> VFSResult:
    """
    Run a verb by its wire name.

    Args:
        ctx: Call context
        verb: One of VERBS
        args: Verb arguments as sent by the client

    Returns:
        VFSResult of the verb
    """
    handler = VERBS.get(verb)
    if handler is None:
        return _fail(verb, VFSErrorKind.UNKNOWN_VERB, f"Unknown operation: {verb}")
    return await handler(ctx, args or {})
