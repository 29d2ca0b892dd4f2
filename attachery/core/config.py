"""
Configuration Module.
Defines process-wide settings for attachment processing and storage.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "ATTACHERY_"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    return value if value not in (None, "") else default


@dataclass
class AttacheryConfig:
    """
    Configuration settings shared by every attachment.

    Attributes:
        root: Application root used by the :root token (defaults to the cwd).
        env: Environment name used by the :env token.
        whiny: Default for reporting processing failures as errors.
        command_path: Extra directories searched for external commands
            (os.pathsep separated).
        log_command: Whether every external command is logged.
        swallow_stderr: Whether external commands' stderr is discarded.
        command_timeout: Seconds before an external command is abandoned
            (None = wait indefinitely).
        default_storage: Storage backend used when a definition names none.
        s3_bucket: Bucket for the S3 backend.
        s3_region: Region for the S3 backend.
        s3_endpoint: Custom endpoint URL (e.g. MinIO), or None for AWS.
        s3_access_key: Access key id for the S3 backend.
        s3_secret_key: Secret key for the S3 backend.
        s3_prefix: Key prefix prepended to every S3 path.
        s3_public_url: Base URL for public links (None = endpoint/bucket).
    """

    root: Path = field(default_factory=Path.cwd)
    env: str = "development"
    whiny: bool = True
    command_path: Optional[str] = None
    log_command: bool = False
    swallow_stderr: bool = True
    command_timeout: Optional[float] = None
    default_storage: str = "filesystem"
    s3_bucket: Optional[str] = None
    s3_region: str = "us-east-1"
    s3_endpoint: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_prefix: str = ""
    s3_public_url: Optional[str] = None

    def to_dict(self) -> dict:
        """
        Converts the config to a dictionary for JSON serialization.

        Returns:
            dict: Dictionary representation of the configuration.
        """
        return {
            "root": str(self.root),
            "env": self.env,
            "whiny": self.whiny,
            "command_path": self.command_path,
            "log_command": self.log_command,
            "swallow_stderr": self.swallow_stderr,
            "command_timeout": self.command_timeout,
            "default_storage": self.default_storage,
            "s3_bucket": self.s3_bucket,
            "s3_region": self.s3_region,
            "s3_endpoint": self.s3_endpoint,
            "s3_access_key": self.s3_access_key,
            "s3_secret_key": self.s3_secret_key,
            "s3_prefix": self.s3_prefix,
            "s3_public_url": self.s3_public_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AttacheryConfig":
        """
        Creates an AttacheryConfig from a dictionary.

        Args:
            data: Dictionary containing configuration values.

        Returns:
            AttacheryConfig: A new AttacheryConfig instance.
        """
        root = Path(data["root"]) if data.get("root") else Path.cwd()
        timeout = data.get("command_timeout")

        return cls(
            root=root,
            env=data.get("env", "development"),
            whiny=data.get("whiny", True),
            command_path=data.get("command_path"),
            log_command=data.get("log_command", False),
            swallow_stderr=data.get("swallow_stderr", True),
            command_timeout=float(timeout) if timeout is not None else None,
            default_storage=data.get("default_storage", "filesystem"),
            s3_bucket=data.get("s3_bucket"),
            s3_region=data.get("s3_region", "us-east-1"),
            s3_endpoint=data.get("s3_endpoint"),
            s3_access_key=data.get("s3_access_key"),
            s3_secret_key=data.get("s3_secret_key"),
            s3_prefix=data.get("s3_prefix", ""),
            s3_public_url=data.get("s3_public_url"),
        )

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "AttacheryConfig":
        """
        Creates an AttacheryConfig from ATTACHERY_* environment variables.

        Variables in a .env file are loaded first; values already present in
        the environment take precedence.

        Args:
            dotenv_path: Optional explicit path to the .env file.

        Returns:
            AttacheryConfig: A new AttacheryConfig instance.
        """
        load_dotenv(dotenv_path)

        timeout = _env_str("COMMAND_TIMEOUT")
        root = _env_str("ROOT")

        return cls(
            root=Path(root) if root else Path.cwd(),
            env=_env_str("ENV", "development"),
            whiny=_env_bool("WHINY", True),
            command_path=_env_str("COMMAND_PATH"),
            log_command=_env_bool("LOG_COMMAND", False),
            swallow_stderr=_env_bool("SWALLOW_STDERR", True),
            command_timeout=float(timeout) if timeout else None,
            default_storage=_env_str("STORAGE", "filesystem"),
            s3_bucket=_env_str("S3_BUCKET"),
            s3_region=_env_str("S3_REGION", "us-east-1"),
            s3_endpoint=_env_str("S3_ENDPOINT"),
            s3_access_key=_env_str("S3_ACCESS_KEY"),
            s3_secret_key=_env_str("S3_SECRET_KEY"),
            s3_prefix=_env_str("S3_PREFIX", ""),
            s3_public_url=_env_str("S3_PUBLIC_URL"),
        )
