"""
Tests for the attachment context registries.
"""

from unittest.mock import MagicMock

import pytest

from attachery.core.config import AttacheryConfig
from attachery.core.definition import AttachmentSpec
from attachery.core.errors import AttacheryError
from attachery.services.context import AttachmentContext
from attachery.services.processors import Processor, Thumbnail
from attachery.services.storage import FilesystemStorage, S3Storage


class Watermark(Processor):
    def make(self):
        return self.file


def test_defaults():
    context = AttachmentContext(config=AttacheryConfig(command_path="/opt/bin", command_timeout=30))

    assert context.processor("thumbnail") is Thumbnail
    assert context.runner.command_path == "/opt/bin"
    assert context.runner.timeout == 30
    assert "url" in context.interpolations


def test_unknown_processor():
    with pytest.raises(AttacheryError, match="Processor blur was not found"):
        AttachmentContext().processor("blur")


def test_register_processor_and_token():
    context = AttachmentContext()

    context.register_processor("watermark", Watermark)
    context.interpolates("tenant", lambda attachment, style: "acme")

    assert context.processor("watermark") is Watermark
    assert "tenant" in context.interpolations


def test_frozen_context_rejects_registration():
    context = AttachmentContext()
    context.freeze()

    with pytest.raises(RuntimeError):
        context.register_processor("watermark", Watermark)
    with pytest.raises(RuntimeError):
        context.interpolates("late", lambda attachment, style: "")


def test_build_filesystem_storage_uses_config_root(tmp_path):
    context = AttachmentContext(config=AttacheryConfig(root=tmp_path))

    storage = context.build_storage(AttachmentSpec.build("avatar"))

    assert isinstance(storage, FilesystemStorage)
    assert storage.root == tmp_path.resolve()


def test_build_s3_storage_from_options():
    client = MagicMock()
    context = AttachmentContext(config=AttacheryConfig(s3_bucket="bucket"))

    storage = context.build_storage(
        AttachmentSpec.build("avatar", storage="s3", storage_options={"client": client, "prefix": "x"})
    )

    assert isinstance(storage, S3Storage)
    assert storage.client is client
    assert storage.cfg.bucket == "bucket"
    assert storage.cfg.prefix == "x"


def test_default_storage_comes_from_config():
    context = AttachmentContext(config=AttacheryConfig(default_storage="memory"))
    custom = MagicMock()
    context.register_storage("memory", lambda spec: custom)

    assert context.build_storage(AttachmentSpec.build("avatar")) is custom


def test_unknown_storage_kind():
    with pytest.raises(AttacheryError):
        AttachmentContext().build_storage(AttachmentSpec.build("avatar", storage="ftp"))
