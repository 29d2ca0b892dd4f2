"""
S3 Storage Module.

Stores attachment variants in an S3-compatible object store.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from attachery.core.config import AttacheryConfig
from attachery.core.definition import AttachmentSpec
from attachery.core.errors import StorageError
from attachery.core.interpolation import Interpolations
from attachery.services.storage.base import Storage

logger = logging.getLogger(__name__)

MISSING_KEY_CODES = ("404", "NoSuchKey", "NotFound")


@dataclass(frozen=True)
class S3StoreConfig:
    bucket: str
    region: str = "us-east-1"
    endpoint: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    prefix: str = ""
    public_url: Optional[str] = None
    acl: Optional[str] = None
    force_path_style: bool = True

    @classmethod
    def from_options(cls, options, config: AttacheryConfig) -> "S3StoreConfig":
        """
        Builds the S3 settings from storage options, falling back to the
        process configuration for anything not given.
        """
        bucket = options.get("bucket") or config.s3_bucket
        if not bucket:
            raise ValueError("S3 storage requires a bucket")

        return cls(
            bucket=bucket,
            region=options.get("region") or config.s3_region,
            endpoint=options.get("endpoint") or config.s3_endpoint,
            access_key=options.get("access_key") or config.s3_access_key,
            secret_key=options.get("secret_key") or config.s3_secret_key,
            prefix=options.get("prefix", config.s3_prefix) or "",
            public_url=options.get("public_url") or config.s3_public_url,
            acl=options.get("acl"),
            force_path_style=options.get("force_path_style", True),
        )

    @property
    def base_url(self) -> str:
        if self.public_url:
            return self.public_url.rstrip("/")
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{self.bucket}"
        return f"https://s3.{self.region}.amazonaws.com/{self.bucket}"


class S3Storage(Storage):
    """
    Storage backend writing objects to an S3 bucket.

    Paths are object keys (optionally prefixed); URLs point at the public
    endpoint of the bucket.
    """

    default_path_template = ":class/:attachment/:id/:style_:filename"

    def __init__(
        self,
        interpolations: Interpolations,
        spec: AttachmentSpec,
        path_template: Optional[str] = None,
        s3_config: Optional[S3StoreConfig] = None,
        client=None,
    ) -> None:
        """
        Initialize the S3 backend.

        Args:
            interpolations: Registry used to expand templates.
            spec: The attachment definition served by this backend.
            path_template: Overrides the default key template.
            s3_config: Bucket and credential settings.
            client: Pre-built boto3 S3 client (one is created when omitted).
        """
        super().__init__(interpolations, spec, path_template)
        self.cfg = s3_config or S3StoreConfig.from_options(
            spec.storage_options, AttacheryConfig()
        )
        self.client = client or self._build_client()

    def _build_client(self):
        s3_cfg = Config(s3={"addressing_style": "path"} if self.cfg.force_path_style else {})
        return boto3.client(
            "s3",
            endpoint_url=self.cfg.endpoint,
            aws_access_key_id=self.cfg.access_key,
            aws_secret_access_key=self.cfg.secret_key,
            region_name=self.cfg.region,
            config=s3_cfg,
        )

    def path(self, attachment, style: Optional[str] = None) -> str:
        key = super().path(attachment, style).lstrip("/")
        prefix = self.cfg.prefix.strip("/")
        return f"{prefix}/{key}" if prefix else key

    def url(self, attachment, style: Optional[str] = None) -> str:
        return f"{self.cfg.base_url}/{self.path(attachment, style)}"

    def exists(self, path: str) -> bool:
        try:
            self.client.head_object(Bucket=self.cfg.bucket, Key=path)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_KEY_CODES:
                return False
            raise StorageError(f"Could not check s3://{self.cfg.bucket}/{path}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Could not check s3://{self.cfg.bucket}/{path}: {e}") from e
        return True

    def write(self, data: bytes, path: str, content_type: Optional[str] = None) -> None:
        params = {"Bucket": self.cfg.bucket, "Key": path, "Body": data}
        if content_type:
            params["ContentType"] = content_type
        if self.cfg.acl:
            params["ACL"] = self.cfg.acl

        try:
            self.client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Could not write s3://{self.cfg.bucket}/{path}: {e}") from e

        logger.info(f"Saved s3://{self.cfg.bucket}/{path} ({len(data)} bytes)")

    def read(self, path: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.cfg.bucket, Key=path)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Could not read s3://{self.cfg.bucket}/{path}: {e}") from e

    def delete(self, path: str) -> None:
        try:
            self.client.delete_object(Bucket=self.cfg.bucket, Key=path)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_KEY_CODES:
                return
            raise StorageError(f"Could not delete s3://{self.cfg.bucket}/{path}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Could not delete s3://{self.cfg.bucket}/{path}: {e}") from e

        logger.info(f"Deleted s3://{self.cfg.bucket}/{path}")
