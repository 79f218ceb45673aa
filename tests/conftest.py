"""
Pytest configuration and fixtures for vfsgate tests.
"""

import sys
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from vfsgate.VirtualFSGate.capabilities import (
    Capabilities,
    OSTreeWalker,
    ShutilDiskUsageProbe,
)
from vfsgate.VirtualFSGate.models import VFSConfig
from vfsgate.VirtualFSGate.operations import VFSContext
from vfsgate.VirtualFSGate.session import StaticSession

# Check for pytest-asyncio
try:
    import pytest_asyncio
    HAS_PYTEST_ASYNCIO = True
except ImportError:
    HAS_PYTEST_ASYNCIO = False


def pytest_collection_modifyitems(config, items):
    """Skip async tests if pytest-asyncio is not installed."""
    if HAS_PYTEST_ASYNCIO:
        return

    import asyncio
    skip_asyncio = pytest.mark.skip(
        reason="pytest-asyncio not installed - async tests require pytest-asyncio"
    )
    for item in items:
        if asyncio.iscoroutinefunction(item.function):
            item.add_marker(skip_asyncio)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    # Cleanup
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def temp_data_dir(temp_dir: Path) -> Path:
    """Create a temporary data directory structure."""
    data_dir = temp_dir / "data"
    (data_dir / "config").mkdir(parents=True, exist_ok=True)
    return data_dir


@pytest.fixture
def vfs_root(temp_dir: Path) -> Path:
    """
    Create a sample virtual filesystem layout.

    dist/index.html
    homes/alice/{Apple.txt, banana, cat.png, docs/{notes.md, deep/apple.log}}
    shared/readme.txt
    users/bob/custom/
    """
    dist = temp_dir / "dist"
    dist.mkdir()
    (dist / "index.html").write_text("<html></html>")

    home = temp_dir / "homes" / "alice"
    (home / "docs" / "deep").mkdir(parents=True)
    (home / "Apple.txt").write_text("apple")
    (home / "banana").write_bytes(b"\x00\x01")
    (home / "cat.png").write_bytes(b"not really a png")
    (home / "docs" / "notes.md").write_text("# Notes")
    (home / "docs" / "deep" / "apple.log").write_text("log")

    shared = temp_dir / "shared"
    shared.mkdir()
    (shared / "readme.txt").write_text("Hello World")

    (temp_dir / "users" / "bob" / "custom").mkdir(parents=True)

    return temp_dir


@pytest.fixture
def vfs_config(vfs_root: Path) -> VFSConfig:
    """Configuration mounting the sample layout."""
    return VFSConfig(
        distdir=str(vfs_root / "dist"),
        homes=str(vfs_root / "homes"),
        rootdir=str(vfs_root),
        mounts={
            "shared": str(vfs_root / "shared"),
            "*": "%DROOT%/users/%UID%/%MOUNTPOINT%",
        },
    )


@pytest.fixture
def alice() -> StaticSession:
    return StaticSession("alice")


@pytest.fixture
def full_capabilities() -> Capabilities:
    """Traversal and disk probing without image metadata."""
    return Capabilities(
        tree_walker=OSTreeWalker(),
        disk_probe=ShutilDiskUsageProbe(),
    )


@pytest.fixture
def ctx(vfs_config: VFSConfig, alice: StaticSession, full_capabilities: Capabilities) -> VFSContext:
    """Call context for alice."""
    return VFSContext(config=vfs_config, session=alice, capabilities=full_capabilities)


@pytest.fixture
def bare_ctx(vfs_config: VFSConfig, alice: StaticSession) -> VFSContext:
    """Call context with no optional capabilities."""
    return VFSContext(config=vfs_config, session=alice, capabilities=Capabilities())


@pytest.fixture(autouse=True)
def reset_module_state():
    """Reset module-level state between tests."""
    yield

    # Reset VirtualFSGate
    try:
        import vfsgate.VirtualFSGate as vfs_gate
        vfs_gate._config = None
        vfs_gate._capabilities = None
        vfs_gate._initialized = False
        vfs_gate._config_path = None
    except (ImportError, AttributeError):
        pass
