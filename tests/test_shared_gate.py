"""
Tests for shared Gate utilities.
"""

import json
import logging
from dataclasses import dataclass

from vfsgate.shared.gate import (
    GateLogger,
    build_health_status,
    ConfigLoader,
    PathUtils,
)


class TestGateLogger:
    """Tests for GateLogger."""

    def test_get_returns_namespaced_logger(self):
        """Should return a logger under the vfsgate root."""
        logger = GateLogger.get("TestGate")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "vfsgate.TestGate"

    def test_get_same_logger_for_same_name(self):
        """Should return same logger for same gate name."""
        assert GateLogger.get("SameGate") is GateLogger.get("SameGate")

    def test_set_level_specific_gate(self):
        """Should set level for specific gate."""
        logger = GateLogger.get("LevelTestGate")
        GateLogger.set_level(logging.DEBUG, "LevelTestGate")

        assert logger.level == logging.DEBUG


class TestBuildHealthStatus:
    """Tests for build_health_status."""

    def test_healthy(self):
        status = build_health_status(
            gate_name="TestGate",
            initialized=True,
            dependencies=["filesystem"],
            checks={"homes": True},
            details={"version": "1.0"},
        )

        assert status["healthy"] is True
        assert status["dependencies"] == ["filesystem"]
        assert status["details"]["version"] == "1.0"

    def test_unhealthy_when_not_initialized(self):
        status = build_health_status("TestGate", False, [], {})
        assert status["healthy"] is False

    def test_unhealthy_when_check_fails(self):
        status = build_health_status("TestGate", True, [], {"a": True, "b": False})
        assert status["healthy"] is False


@dataclass
class SampleConfig:
    """Sample config class for testing ConfigLoader."""
    name: str = "default"
    value: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "SampleConfig":
        return cls(**data)

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value}


class TestConfigLoader:
    """Tests for ConfigLoader."""

    def test_load_creates_default_when_file_missing(self, tmp_path):
        result = ConfigLoader.load(tmp_path / "missing.json", SampleConfig, create_default=True)

        assert result == SampleConfig()

    def test_load_returns_none_when_missing_and_no_default(self, tmp_path):
        assert ConfigLoader.load(tmp_path / "missing.json", SampleConfig, create_default=False) is None

    def test_load_handles_invalid_json(self, tmp_path, caplog):
        config_path = tmp_path / "invalid.json"
        config_path.write_text("not valid json {{{")

        with caplog.at_level(logging.ERROR):
            result = ConfigLoader.load(config_path, SampleConfig)

        assert result is None
        assert "Failed to load config" in caplog.text

    def test_save_creates_directories(self, tmp_path):
        config_path = tmp_path / "nested" / "deep" / "config.json"

        assert ConfigLoader.save(config_path, SampleConfig(name="saved", value=100)) is True
        assert json.loads(config_path.read_text()) == {"name": "saved", "value": 100}


class TestPathUtils:
    """Tests for PathUtils."""

    def test_ensure_dirs_creates_directory(self, tmp_path):
        new_dir = tmp_path / "new_dir"

        PathUtils.ensure_dirs(new_dir)

        assert new_dir.is_dir()

    def test_ensure_dirs_creates_parent_for_file(self, tmp_path):
        file_path = tmp_path / "nested" / "file.txt"

        PathUtils.ensure_dirs(file_path)

        assert file_path.parent.is_dir()
        assert not file_path.exists()

    def test_to_posix(self):
        assert PathUtils.to_posix("C:\\data\\homes") == "C:/data/homes"
        assert PathUtils.to_posix("/already/posix") == "/already/posix"
