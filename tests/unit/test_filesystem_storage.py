"""
Tests for the filesystem storage backend.
"""

import os
import stat
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from attachery.core.definition import AttachmentSpec
from attachery.core.errors import StorageError
from attachery.core.interpolation import Interpolations
from attachery.services.storage import FilesystemStorage


class User:
    id = 7


@pytest.fixture
def root(tmp_path):
    return tmp_path / "app"


@pytest.fixture
def storage(root):
    return FilesystemStorage(Interpolations.with_defaults(), AttachmentSpec.build("avatar"), root=root)


@pytest.fixture
def attachment(root, storage):
    stub = SimpleNamespace(
        record=User(),
        name="avatar",
        spec=storage.spec,
        original_filename="me.png",
        updated_at=None,
        default_style="original",
        context=SimpleNamespace(config=SimpleNamespace(root=root, env="test")),
    )
    stub.url = lambda style=None, timestamp=True: storage.url(stub, style)
    return stub


def test_path_mirrors_url_under_public(storage, attachment, root):
    assert storage.url(attachment, "thumb") == "/users/avatars/7/thumb_me.png"
    assert storage.path(attachment, "thumb") == f"{root}/public/users/avatars/7/thumb_me.png"


def test_write_creates_directories_and_sets_mode(storage, root):
    path = root / "public" / "a" / "b" / "file.png"

    storage.write(b"png-bytes", str(path), "image/png")

    assert path.read_bytes() == b"png-bytes"
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o644
    assert storage.exists(str(path))
    assert [p.name for p in path.parent.iterdir()] == ["file.png"]


def test_write_replaces_existing_file(storage, root):
    path = str(root / "f.bin")
    storage.write(b"one", path)
    storage.write(b"two", path)

    assert storage.read(path) == b"two"


def test_read_missing_file_raises(storage, root):
    with pytest.raises(StorageError):
        storage.read(str(root / "missing.png"))


def test_delete_is_idempotent_and_prunes_empty_directories(storage, root):
    kept = root / "public" / "users" / "keep.txt"
    target = root / "public" / "users" / "avatars" / "7" / "thumb_me.png"
    storage.write(b"k", str(kept))
    storage.write(b"x", str(target))

    storage.delete(str(target))
    storage.delete(str(target))

    assert not target.exists()
    assert not (root / "public" / "users" / "avatars").exists()
    assert kept.exists()
    assert root.exists()


def test_delete_without_root_does_not_prune(tmp_path):
    storage = FilesystemStorage(Interpolations.with_defaults(), AttachmentSpec.build("avatar"))
    target = tmp_path / "nested" / "file.txt"
    target.parent.mkdir()
    target.write_bytes(b"x")

    storage.delete(str(target))

    assert not target.exists()
    assert target.parent.exists()


def test_write_failure_raises_storage_error(storage, root):
    with patch("attachery.services.storage.filesystem.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(StorageError):
            storage.write(b"x", str(root / "f.bin"))

    assert not any((root).iterdir())
