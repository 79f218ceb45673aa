"""
Shared Gate utilities for vfsgate.

Provides consolidated patterns for Gate implementations:
- GateLogger: Unified logging with Python's logging module
- GateHealth: Protocol for health checks
- ConfigLoader: Unified JSON config loading/saving
- PathUtils: Common path operations
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Protocol,
    Type,
    TypeVar,
    Union,
    runtime_checkable,
)


# =============================================================================
# GateLogger - Unified logging for all Gates
# =============================================================================


class GateLogger:
    """
    Unified logging for all Gates.

    Each gate gets its own namespaced logger under the "vfsgate" root.
    """

    _loggers: Dict[str, logging.Logger] = {}
    _configured = False

    @classmethod
    def _ensure_configured(cls):
        """Ensure basic logging is configured."""
        if cls._configured:
            return

        root_logger = logging.getLogger("vfsgate")
        if not root_logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "[%(name)s] %(levelname)s: %(message)s"
            )
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)
            root_logger.setLevel(logging.INFO)

        cls._configured = True

    @classmethod
    def get(cls, gate_name: str) -> logging.Logger:
        """
        Get a logger for a specific gate.

        Args:
            gate_name: Name of the gate (e.g., "VirtualFSGate", "VirtualFSGate.Resolver")

        Returns:
            Logger instance for the gate
        """
        cls._ensure_configured()

        logger_name = f"vfsgate.{gate_name}"
        if logger_name not in cls._loggers:
            cls._loggers[logger_name] = logging.getLogger(logger_name)

        return cls._loggers[logger_name]

    @classmethod
    def set_level(cls, level: int, gate_name: Optional[str] = None):
        """
        Set logging level.

        Args:
            level: Logging level (e.g., logging.DEBUG)
            gate_name: Specific gate to set level for, or None for all
        """
        if gate_name:
            cls.get(gate_name).setLevel(level)
        else:
            logging.getLogger("vfsgate").setLevel(level)


# =============================================================================
# GateHealth - Protocol for health checks
# =============================================================================


@runtime_checkable
class GateHealth(Protocol):
    """
    Protocol for gate health checking.

    Gates implement this protocol to provide consistent health
    monitoring capabilities.
    """

    @classmethod
    def is_healthy(cls) -> bool:
        """Check if the gate is operational."""
        ...

    @classmethod
    def get_health_status(cls) -> Dict[str, Any]:
        """
        Get detailed health information.

        Returns:
            Dict with health details including:
            - healthy: bool
            - initialized: bool
            - dependencies: List[str]
            - details: Dict[str, Any]
        """
        ...

    @classmethod
    def get_dependencies(cls) -> List[str]:
        """List external dependencies (e.g., filesystem, optional libraries)."""
        ...


def build_health_status(
    gate_name: str,
    initialized: bool,
    dependencies: List[str],
    checks: Dict[str, bool],
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build a standardized health status dict.

    Args:
        gate_name: Name of the gate
        initialized: Whether the gate is initialized
        dependencies: List of dependency names
        checks: Dict of check name -> passed
        details: Additional details

    Returns:
        Standardized health status dict
    """
    all_checks_passed = all(checks.values()) if checks else True

    return {
        "gate": gate_name,
        "healthy": initialized and all_checks_passed,
        "initialized": initialized,
        "dependencies": dependencies,
        "checks": checks,
        "details": details or {},
    }


# =============================================================================
# ConfigLoader - Unified JSON config loading
# =============================================================================


ConfigT = TypeVar("ConfigT")


class ConfigLoader:
    """
    Unified configuration loading and saving.

    Provides consistent config file handling across all Gates.
    """

    @staticmethod
    def load(
        path: Union[str, Path],
        model_class: Type[ConfigT],
        create_default: bool = True,
    ) -> Optional[ConfigT]:
        """
        Load a JSON config file into a model class.

        Args:
            path: Path to the config file
            model_class: Class with from_dict() method
            create_default: If True and file doesn't exist, return model_class()

        Returns:
            Instance of model_class or None if file doesn't exist or is invalid
        """
        path = Path(path)

        if not path.exists():
            if create_default:
                return model_class()
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)

            if hasattr(model_class, "from_dict"):
                return model_class.from_dict(data)
            elif hasattr(model_class, "model_validate"):
                return model_class.model_validate(data)
            else:
                return model_class(**data)

        except (json.JSONDecodeError, Exception) as e:
            logger = GateLogger.get("ConfigLoader")
            logger.error(f"Failed to load config from {path}: {e}")
            return None

    @staticmethod
    def save(
        path: Union[str, Path],
        config: Any,
        create_dirs: bool = True,
    ) -> bool:
        """
        Save a config object to a JSON file.

        Args:
            path: Path to save the config
            config: Config object with to_dict() or model_dump() method
            create_dirs: Create parent directories if needed

        Returns:
            True if successful
        """
        path = Path(path)

        try:
            if create_dirs:
                path.parent.mkdir(parents=True, exist_ok=True)

            if hasattr(config, "to_dict"):
                data = config.to_dict()
            elif hasattr(config, "model_dump"):
                data = config.model_dump(mode="json")
            else:
                data = dict(config)

            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, default=str)

            return True

        except Exception as e:
            logger = GateLogger.get("ConfigLoader")
            logger.error(f"Failed to save config to {path}: {e}")
            return False


# =============================================================================
# PathUtils - Common path operations
# =============================================================================


class PathUtils:
    """Common path utilities for Gates."""

    @staticmethod
    def ensure_dirs(*paths: Union[str, Path]) -> None:
        """
        Ensure directories exist for the given paths.

        For file paths, creates the parent directory.
        For directory paths, creates the directory.
        """
        for path in paths:
            path = Path(path)
            if path.suffix:
                # Looks like a file path, create parent
                path.parent.mkdir(parents=True, exist_ok=True)
            else:
                path.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def to_posix(path: str) -> str:
        """Convert every path separator to a forward slash."""
        return path.replace("\\", "/")

