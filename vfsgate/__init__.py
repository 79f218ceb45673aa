"""vfsgate - virtual filesystem gateway."""

from vfsgate import VirtualFSGate

__version__ = "1.0.0"

__all__ = ["VirtualFSGate", "__version__"]
