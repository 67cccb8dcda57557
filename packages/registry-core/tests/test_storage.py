"""Tests for LocalArtifactStore: staging area and permanent layout."""

import hashlib
import io
import threading

import pytest

from plugin_registry.errors import ArtifactStoreError, UnsafePathError
from plugin_registry.models import Platform
from plugin_registry.storage import LocalArtifactStore, md5_hex


@pytest.fixture
def store(tmp_path):
    return LocalArtifactStore(tmp_path / "uploads", tmp_path / "plugins")


class TestStaging:
    def test_stage_creates_uploader_dir(self, store, tmp_path):
        path = store.stage("bob", "thing.jar", io.BytesIO(b"payload"))
        assert path == tmp_path / "uploads" / "tmp" / "bob" / "thing.jar"
        assert path.read_bytes() == b"payload"

    def test_stage_strips_directory_components(self, store, tmp_path):
        path = store.stage("bob", "../../escape.jar", io.BytesIO(b"x"))
        assert path.parent == tmp_path / "uploads" / "tmp" / "bob"

    def test_restage_overwrites(self, store):
        store.stage("bob", "thing.jar", io.BytesIO(b"first"))
        path = store.stage("bob", "thing.jar", io.BytesIO(b"second"))
        assert path.read_bytes() == b"second"

    def test_no_partial_files_left(self, store):
        path = store.stage("bob", "thing.jar", io.BytesIO(b"payload"))
        assert [p.name for p in path.parent.iterdir()] == ["thing.jar"]

    def test_failed_stream_leaves_no_partial(self, store):
        class Exploding(io.RawIOBase):
            def readinto(self, b):
                raise OSError("connection reset")

        with pytest.raises(OSError):
            store.stage("bob", "thing.jar", Exploding())
        assert list(store.temp_dir("bob").iterdir()) == []

    def test_concurrent_same_name_never_interleaves(self, store):
        payloads = [bytes([i]) * 200_000 for i in range(1, 5)]

        def upload(data):
            store.stage("bob", "thing.jar", io.BytesIO(data))

        threads = [threading.Thread(target=upload, args=(p,)) for p in payloads]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.temp_path("bob", "thing.jar").read_bytes() in payloads


class TestPathComponents:
    @pytest.mark.parametrize("name", ["", ".", "..", "../../escaped", "a/b", "a\\b"])
    def test_unsafe_uploader_name_rejected(self, store, tmp_path, name):
        with pytest.raises(UnsafePathError):
            store.stage(name, "thing.jar", io.BytesIO(b"payload"))
        assert not (tmp_path / "escaped").exists()
        assert not (tmp_path / "uploads").exists()

    @pytest.mark.parametrize("version", ["..", ".", "", "1.0/../.."])
    def test_unsafe_version_dir_rejected(self, store, version):
        with pytest.raises(UnsafePathError):
            store.version_dir("bob", "Thing", version)

    def test_unsafe_owner_rejected_on_relocate(self, store, tmp_path):
        src = store.stage("bob", "thing.jar", io.BytesIO(b"payload"))
        with pytest.raises(UnsafePathError):
            store.relocate(src, "..", "Thing", "1.0.0", Platform.PAPER)
        assert not (tmp_path / "Thing").exists()

    def test_dotted_names_inside_a_component_are_fine(self, store, tmp_path):
        assert store.version_dir("bob", "Thing", "1.0..2") == tmp_path / "plugins" / "bob" / "Thing" / "versions" / "1.0..2"

    def test_unsafe_path_error_is_io_error(self):
        assert issubclass(UnsafePathError, OSError)


class TestRelocation:
    def test_relocate_layout(self, store, tmp_path):
        src = store.stage("bob", "thing.jar", io.BytesIO(b"payload"))
        dest = store.relocate(src, "bob", "Thing", "1.0.0", Platform.PAPER)
        assert dest == tmp_path / "plugins" / "bob" / "Thing" / "versions" / "1.0.0" / "PAPER" / "thing.jar"
        assert dest.read_bytes() == b"payload"
        assert src.exists()

    def test_relocate_overwrites_existing(self, store):
        src = store.stage("bob", "thing.jar", io.BytesIO(b"new"))
        old = store.version_dir("bob", "Thing", "1.0.0") / "PAPER" / "thing.jar"
        old.parent.mkdir(parents=True)
        old.write_bytes(b"old")
        dest = store.relocate(src, "bob", "Thing", "1.0.0", Platform.PAPER)
        assert dest.read_bytes() == b"new"

    def test_relocate_verifies_destination(self, store, monkeypatch):
        src = store.stage("bob", "thing.jar", io.BytesIO(b"payload"))
        monkeypatch.setattr("plugin_registry.storage.shutil.copyfile", lambda a, b: None)
        with pytest.raises(ArtifactStoreError):
            store.relocate(src, "bob", "Thing", "1.0.0", Platform.PAPER)

    def test_artifact_store_error_is_io_error(self):
        assert issubclass(ArtifactStoreError, OSError)


class TestFileHelpers:
    def test_md5(self, store):
        path = store.stage("bob", "thing.jar", io.BytesIO(b"payload"))
        assert md5_hex(path) == hashlib.md5(b"payload").hexdigest()
        assert store.md5(path) == md5_hex(path)
        assert store.size(path) == 7

    def test_delete_is_idempotent(self, store):
        path = store.stage("bob", "thing.jar", io.BytesIO(b"payload"))
        store.delete(path)
        store.delete(path)
        assert not store.exists(path)
