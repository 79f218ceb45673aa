"""
Tests for VirtualFSGate path resolution.
"""

import os
import pytest

from vfsgate.VirtualFSGate.models import VFSConfig, VFSErrorKind
from vfsgate.VirtualFSGate.resolver import (
    MountKind,
    ResolveError,
    classify,
    is_within,
    join_real,
    resolve,
)
from vfsgate.VirtualFSGate.session import StaticSession


def posix(path) -> str:
    return os.path.abspath(str(path)).replace("\\", "/")


class TestClassify:
    """Tests for mount classification."""

    def test_reserved_schemes(self, vfs_config):
        assert classify("osjs:///index.html", vfs_config).kind == MountKind.RESERVED_OSJS
        assert classify("home:///", vfs_config).kind == MountKind.RESERVED_HOME

    def test_registered_mount(self, vfs_config):
        match = classify("shared:///readme.txt", vfs_config)

        assert match.kind == MountKind.REGISTERED
        assert match.scheme == "shared"
        assert match.remainder == "/readme.txt"

    def test_wildcard_mount(self, vfs_config):
        match = classify("custom://a", vfs_config)

        assert match.kind == MountKind.WILDCARD
        assert match.scheme == "custom"
        assert match.remainder == "a"

    def test_no_scheme_is_invalid(self, vfs_config):
        assert classify("/etc/passwd", vfs_config).kind == MountKind.INVALID
        assert classify("", vfs_config).kind == MountKind.INVALID

    def test_unknown_scheme_without_wildcard_is_invalid(self):
        config = VFSConfig(mounts={"shared": "/srv/shared"})
        assert classify("other:///x", config).kind == MountKind.INVALID

    def test_empty_mount_entry_is_not_registered(self):
        config = VFSConfig(mounts={"blank": ""})
        assert classify("blank:///x", config).kind == MountKind.INVALID


class TestResolve:
    """Tests for resolve()."""

    def test_osjs(self, vfs_config, vfs_root):
        vp = resolve("osjs:///index.html", vfs_config)

        assert vp.root == posix(vfs_root / "dist" / "index.html")
        assert vp.path == "/index.html"
        assert vp.protocol == "osjs://"

    def test_home_with_session(self, vfs_config, vfs_root, alice):
        vp = resolve("home:///docs/notes.md", vfs_config, alice)

        assert vp.root == posix(vfs_root / "homes" / "alice" / "docs" / "notes.md")
        assert vp.path == "/docs/notes.md"
        assert vp.protocol == "home://"

    def test_home_without_session(self, vfs_config):
        with pytest.raises(ResolveError) as exc_info:
            resolve("home:///docs", vfs_config)

        assert exc_info.value.kind == VFSErrorKind.NO_SESSION

    def test_home_with_empty_username(self, vfs_config):
        with pytest.raises(ResolveError) as exc_info:
            resolve("home:///docs", vfs_config, StaticSession(""))

        assert exc_info.value.kind == VFSErrorKind.NO_SESSION

    def test_home_root(self, vfs_config, vfs_root, alice):
        vp = resolve("home://", vfs_config, alice)

        assert vp.root == posix(vfs_root / "homes" / "alice")
        assert vp.path == ""
        assert vp.is_mount_root

    def test_registered_mount(self, vfs_config, vfs_root):
        vp = resolve("shared:///readme.txt", vfs_config)

        assert vp.root == posix(vfs_root / "shared" / "readme.txt")
        assert vp.protocol == "shared://"

    def test_wildcard_template(self):
        config = VFSConfig(mounts={"*": "/data/%UID%/%MOUNTPOINT%"})

        vp = resolve("custom://a", config, StaticSession("bob"))

        assert vp.root == posix("/data/bob/custom/a")
        assert vp.path == "a"
        assert vp.protocol == "custom://"

    def test_wildcard_collapses_slashes(self):
        config = VFSConfig(mounts={"*": "/data/%USERNAME%/%MOUNTPOINT%"})

        vp = resolve("custom://a//b///c", config, StaticSession("bob"))

        assert vp.root == posix("/data/bob/custom/a/b/c")

    def test_wildcard_droot(self, vfs_config, vfs_root):
        vp = resolve("custom:///", vfs_config, StaticSession("bob"))

        assert vp.root == posix(vfs_root / "users" / "bob" / "custom")

    def test_wildcard_user_token_without_session(self, vfs_config):
        with pytest.raises(ResolveError) as exc_info:
            resolve("custom:///x", vfs_config)

        assert exc_info.value.kind == VFSErrorKind.NO_SESSION

    def test_invalid_mountpoint(self, vfs_config):
        with pytest.raises(ResolveError) as exc_info:
            resolve("/etc/passwd", vfs_config)

        assert exc_info.value.kind == VFSErrorKind.INVALID_MOUNTPOINT
        assert exc_info.value.message == "Invalid mountpoint"

    def test_dotdot_inside_mount_is_collapsed(self, vfs_config, vfs_root, alice):
        vp = resolve("home:///docs/../Apple.txt", vfs_config, alice)

        assert vp.root == posix(vfs_root / "homes" / "alice" / "Apple.txt")

    def test_escape_mount_boundary(self, vfs_config, alice):
        with pytest.raises(ResolveError) as exc_info:
            resolve("home:///../bob/secret.txt", vfs_config, alice)

        assert exc_info.value.kind == VFSErrorKind.PERMISSION_DENIED

    def test_escape_via_username(self, vfs_config):
        with pytest.raises(ResolveError) as exc_info:
            resolve("home:///", vfs_config, StaticSession(".."))

        assert exc_info.value.kind == VFSErrorKind.PERMISSION_DENIED

    @pytest.mark.parametrize("username", ["../../../etc", "..", ".", "a/b", "a\\b"])
    def test_unsafe_username_rejected_for_wildcard(self, vfs_config, username):
        with pytest.raises(ResolveError) as exc_info:
            resolve("custom:///x", vfs_config, StaticSession(username))

        assert exc_info.value.kind == VFSErrorKind.PERMISSION_DENIED

    @pytest.mark.parametrize("username", ["../bob", ".", "a/b"])
    def test_unsafe_username_rejected_for_home(self, vfs_config, username):
        with pytest.raises(ResolveError) as exc_info:
            resolve("home:///", vfs_config, StaticSession(username))

        assert exc_info.value.kind == VFSErrorKind.PERMISSION_DENIED

    def test_unsafe_username_rejected_with_boundary_disabled(self, vfs_config):
        config = vfs_config.model_copy(update={"enforce_mount_boundary": False})

        with pytest.raises(ResolveError):
            resolve("custom:///x", config, StaticSession("../../../etc"))

    def test_mount_base_recorded(self, vfs_config, vfs_root, alice):
        vp = resolve("home:///docs/notes.md", vfs_config, alice)

        assert vp.base == posix(vfs_root / "homes" / "alice")
        assert vp.is_mount_root is False

    @pytest.mark.parametrize("path", ["home:///.", "home://.", "home:///docs/..", "home:///docs/deep/../.."])
    def test_normalized_mount_root(self, vfs_config, alice, path):
        vp = resolve(path, vfs_config, alice)

        assert vp.root == vp.base
        assert vp.is_mount_root is True

    def test_escape_allowed_when_boundary_disabled(self, vfs_config, vfs_root, alice):
        config = vfs_config.model_copy(update={"enforce_mount_boundary": False})

        vp = resolve("home:///../bob", config, alice)

        assert vp.root == posix(vfs_root / "homes" / "bob")


class TestPathHelpers:
    """Tests for join_real() and is_within()."""

    def test_join_strips_leading_separators(self):
        assert join_real("/base", "///a/b") == posix("/base/a/b")

    def test_join_empty_remainder(self):
        assert join_real("/base", "") == posix("/base")

    def test_is_within(self):
        assert is_within("/base/a", "/base") is True
        assert is_within("/base", "/base") is True
        assert is_within("/basement", "/base") is False
        assert is_within("/other", "/base") is False
