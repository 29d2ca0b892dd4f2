"""
Tests for the S3 storage backend.
"""

import io
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from attachery.core.config import AttacheryConfig
from attachery.core.definition import AttachmentSpec
from attachery.core.errors import StorageError
from attachery.core.interpolation import Interpolations
from attachery.services.storage import S3Storage, S3StoreConfig


class Document:
    id = 3


def _client_error(code, operation="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def storage(client):
    s3_config = S3StoreConfig(
        bucket="files", endpoint="http://minio:9000", prefix="uploads/", public_url=None
    )
    return S3Storage(
        Interpolations.with_defaults(),
        AttachmentSpec.build("scan"),
        s3_config=s3_config,
        client=client,
    )


@pytest.fixture
def attachment():
    return SimpleNamespace(
        record=Document(),
        name="scan",
        spec=AttachmentSpec.build("scan"),
        original_filename="page.pdf",
        updated_at=None,
        default_style="original",
    )


def test_config_from_options_falls_back_to_process_config():
    config = AttacheryConfig(s3_bucket="default-bucket", s3_region="eu-west-1", s3_prefix="p")

    s3_config = S3StoreConfig.from_options({"acl": "public-read"}, config)

    assert s3_config.bucket == "default-bucket"
    assert s3_config.region == "eu-west-1"
    assert s3_config.prefix == "p"
    assert s3_config.acl == "public-read"
    assert s3_config.base_url == "https://s3.eu-west-1.amazonaws.com/default-bucket"


def test_config_requires_bucket():
    with pytest.raises(ValueError):
        S3StoreConfig.from_options({}, AttacheryConfig())


def test_public_url_wins():
    s3_config = S3StoreConfig(bucket="b", endpoint="http://minio:9000", public_url="https://cdn.example/")

    assert s3_config.base_url == "https://cdn.example"


def test_path_is_prefixed_key(storage, attachment):
    assert storage.path(attachment, "original") == "uploads/documents/scans/3/original_page.pdf"


def test_url_points_at_endpoint_bucket(storage, attachment):
    assert storage.url(attachment, "original") == (
        "http://minio:9000/files/uploads/documents/scans/3/original_page.pdf"
    )


def test_write_puts_object(storage, client):
    storage.write(b"%PDF", "k/page.pdf", "application/pdf")

    client.put_object.assert_called_once_with(
        Bucket="files", Key="k/page.pdf", Body=b"%PDF", ContentType="application/pdf"
    )


def test_write_failure_raises_storage_error(storage, client):
    client.put_object.side_effect = _client_error("AccessDenied", "PutObject")

    with pytest.raises(StorageError):
        storage.write(b"x", "k")


def test_read_returns_body(storage, client):
    client.get_object.return_value = {"Body": io.BytesIO(b"content")}

    assert storage.read("k") == b"content"


def test_exists(storage, client):
    assert storage.exists("k") is True

    client.head_object.side_effect = _client_error("404")
    assert storage.exists("k") is False

    client.head_object.side_effect = _client_error("403")
    with pytest.raises(StorageError):
        storage.exists("k")


def test_delete_ignores_missing_keys(storage, client):
    client.delete_object.side_effect = _client_error("NoSuchKey", "DeleteObject")

    storage.delete("k")


def test_connection_failure_raises_storage_error(storage, client):
    client.delete_object.side_effect = EndpointConnectionError(endpoint_url="http://minio:9000")

    with pytest.raises(StorageError):
        storage.delete("k")


def test_client_built_with_path_style_addressing():
    with patch("attachery.services.storage.s3.boto3.client") as mock_client:
        S3Storage(
            Interpolations.with_defaults(),
            AttachmentSpec.build("scan", storage_options={"bucket": "b", "endpoint": "http://minio"}),
        )

    kwargs = mock_client.call_args[1]
    assert mock_client.call_args[0] == ("s3",)
    assert kwargs["endpoint_url"] == "http://minio"
    assert kwargs["config"].s3 == {"addressing_style": "path"}
