from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from typing import Any, BinaryIO, Callable, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response

from vfsgate.VirtualFSGate.models import VFSErrorKind, VFSResult
from vfsgate.VirtualFSGate.session import SessionContext


ERROR_STATUS: Dict[VFSErrorKind, int] = {
    VFSErrorKind.INVALID_MOUNTPOINT: 400,
    VFSErrorKind.NO_SESSION: 401,
    VFSErrorKind.PERMISSION_DENIED: 403,
    VFSErrorKind.NOT_FOUND: 404,
    VFSErrorKind.SOURCE_NOT_FOUND: 404,
    VFSErrorKind.UNKNOWN_VERB: 404,
    VFSErrorKind.TARGET_EXISTS: 409,
    VFSErrorKind.CAPABILITY_UNAVAILABLE: 501,
    VFSErrorKind.TRAVERSAL_UNAVAILABLE: 501,
    VFSErrorKind.PROBE_UNAVAILABLE: 501,
}

def status_for(result: VFSResult) -> int:
    """HTTP status for a verb result."""
    if result.error is None:
        return 200
    return ERROR_STATUS.get(result.error.kind, 500)


def _spool(source: BinaryIO) -> str:
    """Copy an incoming upload into a server-owned temp file and return its path."""
    fd, temp_path = tempfile.mkstemp(prefix="vfs-upload-")
    try:
        with os.fdopen(fd, "wb") as out:
            shutil.copyfileobj(source, out)
    except OSError:
        os.unlink(temp_path)
        raise
    return temp_path


def create_router(VirtualFSGate, get_session: Callable[..., SessionContext]) -> APIRouter:
    router = APIRouter()

    @router.get("/api/vfs/health")
    async def api_vfs_health():
        """Gate health and capability availability."""
        return VirtualFSGate.get_health_status()

    @router.get("/api/vfs/info")
    async def api_vfs_info():
        """Verb documentation for clients."""
        return VirtualFSGate.get_info()

    @router.post("/api/vfs/upload")
    async def api_vfs_upload(
        upload: UploadFile = File(...),
        path: str = Form(...),
        name: Optional[str] = Form(default=None),
        overwrite: bool = Form(default=False),
        session: SessionContext = Depends(get_session),
    ):
        """
        Store a multipart upload at path/name.

        Upload has its own route so the source file is always one the server
        wrote; the generic verb route never sees it.
        """
        temp_path = await asyncio.to_thread(_spool, upload.file)
        try:
            result = await VirtualFSGate.upload(
                temp_path, path, name or upload.filename or "", session, overwrite=overwrite
            )
        finally:
            # Left behind when the upload was refused
            if os.path.exists(temp_path):
                os.unlink(temp_path)

        return JSONResponse(status_code=status_for(result), content=result.to_dict())

    @router.post("/api/vfs/{verb}")
    async def api_vfs_call(
        verb: str,
        args: Optional[Dict[str, Any]] = Body(default=None),
        session: SessionContext = Depends(get_session),
    ):
        """Run one verb. The body holds the verb's arguments."""
        args = args or {}
        result = await VirtualFSGate.dispatch(verb, args, session)

        if result.success and isinstance(result.data, bytes):
            return Response(
                content=result.data,
                media_type=VirtualFSGate.mime(args.get("path", "")),
            )

        return JSONResponse(status_code=status_for(result), content=result.to_dict())

    return router
