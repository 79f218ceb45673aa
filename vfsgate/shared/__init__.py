"""
Shared utilities for vfsgate.

Provides access to common functionality used across Gate implementations.
"""

from vfsgate.shared.gate import (
    GateLogger,
    GateHealth,
    ConfigLoader,
    PathUtils,
    build_health_status,
)

__all__ = [
    "GateLogger",
    "GateHealth",
    "ConfigLoader",
    "PathUtils",
    "build_health_status",
]
