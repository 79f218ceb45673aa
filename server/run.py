import os
import sys
from typing import Optional

# Add the root project directory to Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Header
from fastapi.middleware.cors import CORSMiddleware

from vfsgate import VirtualFSGate
from vfsgate.shared.gate import GateLogger
from vfsgate.VirtualFSGate.session import StaticSession
from server.api.vfs import create_router

_log = GateLogger.get("Server")

app = FastAPI()


@app.on_event("startup")
async def startup_event():
    """Initialize the gate on server startup."""
    if not VirtualFSGate.initialize():
        _log.error("VirtualFSGate failed to initialize")


def get_session(x_vfs_user: Optional[str] = Header(default=None)) -> StaticSession:
    """Session for the request. Authentication happens upstream and sets X-VFS-User."""
    return StaticSession(username=x_vfs_user)


origins = [
    "http://localhost:5000",
    "http://localhost:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(create_router(VirtualFSGate, get_session))
