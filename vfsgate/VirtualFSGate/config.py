"""
VirtualFSGate Configuration.

Handles loading and saving the mount configuration.

Priority order:
1. Environment variables (VFS_DISTDIR, VFS_HOMES, VFS_ROOTDIR)
2. data/config/vfs.json
3. Model defaults
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional, Union

from dotenv import load_dotenv

from vfsgate.shared.gate import ConfigLoader, GateLogger
from vfsgate.VirtualFSGate.models import VFSConfig

_log = GateLogger.get("VirtualFSGate.Config")

# Default config path
DEFAULT_CONFIG_PATH = Path("data/config/vfs.json")

ENV_CONFIG_PATH = "VFS_CONFIG_PATH"

# Environment variable -> VFSConfig field
ENV_OVERRIDES: Dict[str, str] = {
    "VFS_DISTDIR": "distdir",
    "VFS_HOMES": "homes",
    "VFS_ROOTDIR": "rootdir",
}


def get_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    """Get the configuration file path."""
    if path:
        return Path(path)
    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def apply_env_overrides(config: VFSConfig) -> VFSConfig:
    """Return a copy of config with environment overrides applied."""
    updates = {}
    for env_var, field_name in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            updates[field_name] = value

    if not updates:
        return config

    _log.debug(f"Environment overrides: {sorted(updates)}")
    return config.model_copy(update=updates)


def load_config(path: Optional[Union[str, Path]] = None, env_file: Optional[Union[str, Path]] = None) -> Optional[VFSConfig]:
    """
    Load the gate configuration.

    Args:
        path: Config file path (defaults to $VFS_CONFIG_PATH or data/config/vfs.json)
        env_file: .env file to load before reading overrides

    Returns:
        VFSConfig, defaults when the file does not exist, None if it is invalid
    """
    load_dotenv(env_file)

    config_path = get_config_path(path)
    if not config_path.exists():
        _log.debug(f"Config file not found, using defaults: {config_path}")

    config = ConfigLoader.load(config_path, VFSConfig, create_default=True)
    if config is None:
        return None

    config = apply_env_overrides(config)
    _log.info(f"Loaded VFS config with {len(config.mounts)} mounts from {config_path}")
    return config


def save_config(config: VFSConfig, path: Optional[Union[str, Path]] = None) -> bool:
    """
    Save the gate configuration.

    Args:
        config: Configuration to save
        path: Config file path (defaults to $VFS_CONFIG_PATH or data/config/vfs.json)

    Returns:
        True if saved successfully
    """
    config_path = get_config_path(path)
    saved = ConfigLoader.save(config_path, config)
    if saved:
        _log.info(f"Saved VFS config to {config_path}")
    return saved
