"""
Storage abstraction for S3-compatible object storage and in-memory testing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        ...

    def upload_text(
        self, path: str, body: str, content_type: str = "text/plain"
    ) -> None:
        ...

    def get_bytes(self, path: str) -> bytes:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = field(default_factory=dict)
    content_types: dict = field(default_factory=dict)

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{path}?op=get&expires={expires_in}"

    def upload_text(
        self, path: str, body: str, content_type: str = "text/plain"
    ) -> None:
        self.stored_objects[path] = body.encode("utf-8")
        self.content_types[path] = content_type

    def get_bytes(self, path: str) -> bytes:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        return stored

    def reset(self) -> None:
        self.stored_objects.clear()
        self.content_types.clear()


class StorageError(Exception):
    pass


@dataclass
class S3StorageClient:
    """
    S3-compatible object storage (AWS S3, Tencent COS, MinIO).

    MinIO and most self-hosted gateways need path-style addressing; hosted
    S3 and COS accept virtual-hosted style.
    """

    bucket: str
    region: str
    endpoint: Optional[str]
    access_key_id: str
    secret_access_key: str
    addressing_style: str = "virtual"

    def __post_init__(self):
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=Config(
                s3={"addressing_style": self.addressing_style},
                signature_version="s3v4",
            ),
        )

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        try:
            return self._client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": path},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Could not sign {path}: {e}") from e

    def upload_text(
        self, path: str, body: str, content_type: str = "text/plain"
    ) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=body.encode("utf-8"),
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.exception("Upload of %s to %s failed", path, self.bucket)
            raise StorageError(f"Could not upload {path}") from e

    def get_bytes(self, path: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=path)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise FileNotFoundError(path) from e
            raise StorageError(f"Could not read {path}") from e
        return response["Body"].read()
