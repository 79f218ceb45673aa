"""
Tests for optional capabilities.
"""

import pytest

from vfsgate.VirtualFSGate.capabilities import (
    Capabilities,
    OSTreeWalker,
    PillowExifExtractor,
    ShutilDiskUsageProbe,
    discover_capabilities,
)


class TestCapabilities:
    """Tests for capability discovery and reporting."""

    def test_empty_capabilities(self):
        assert Capabilities().available() == {
            "metadata": False,
            "traversal": False,
            "disk_probe": False,
        }

    def test_discover(self):
        caps = discover_capabilities()

        assert isinstance(caps.tree_walker, OSTreeWalker)
        assert isinstance(caps.disk_probe, ShutilDiskUsageProbe)
        assert caps.available()["traversal"] is True

    def test_discover_with_pillow(self):
        pytest.importorskip("PIL")

        caps = discover_capabilities()

        assert isinstance(caps.metadata_extractor, PillowExifExtractor)

    def test_disk_probe(self, tmp_path):
        usage = ShutilDiskUsageProbe().probe(str(tmp_path))

        assert usage.total >= usage.free >= 0

    def test_walker_stops_when_closed(self, vfs_root):
        events = OSTreeWalker().walk(str(vfs_root))
        first = next(events)
        events.close()

        assert first.is_dir
        with pytest.raises(StopIteration):
            next(events)


class TestPillowExifExtractor:
    """Tests for Pillow-backed metadata extraction."""

    def test_extract_from_image_with_exif(self, tmp_path):
        Image = pytest.importorskip("PIL.Image")

        path = tmp_path / "photo.jpg"
        img = Image.new("RGB", (4, 4))
        exif = img.getexif()
        exif[0x010F] = "Acme"  # Make
        img.save(path, exif=exif)

        metadata = PillowExifExtractor().extract(str(path))

        assert metadata["Make"] == "Acme"

    def test_extract_without_exif(self, tmp_path):
        Image = pytest.importorskip("PIL.Image")

        path = tmp_path / "plain.png"
        Image.new("RGB", (2, 2)).save(path)

        assert PillowExifExtractor().extract(str(path)) == {}

    def test_extract_rejects_non_images(self, tmp_path):
        pytest.importorskip("PIL")

        path = tmp_path / "fake.png"
        path.write_bytes(b"not an image")

        with pytest.raises(Exception):
            PillowExifExtractor().extract(str(path))
