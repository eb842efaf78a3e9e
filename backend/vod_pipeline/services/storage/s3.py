"""
S3-Compatible Object Storage Backend

Works against Cloudflare R2 (region "auto", path-style addressing) and any
other S3 API.
"""
import logging
from typing import BinaryIO, List

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from vod_pipeline.config import Settings
from vod_pipeline.exceptions import StorageError, StorageNotFound
from vod_pipeline.services.storage.base import StorageBackend

logger = logging.getLogger(__name__)

# delete_objects accepts at most 1000 keys per call
DELETE_BATCH_SIZE = 1000
NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}


def make_s3_client(settings: Settings):
    """Create a boto3 S3 client for the configured endpoint"""
    cfg = BotoConfig(
        signature_version="s3v4",
        s3={"addressing_style": "path"},
    )
    return boto3.client(
        "s3",
        endpoint_url=settings.r2_endpoint,
        region_name="auto",
        aws_access_key_id=settings.r2_access_key_id,
        aws_secret_access_key=settings.r2_secret_access_key,
        config=cfg,
    )


def _is_not_found(error: ClientError) -> bool:
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in NOT_FOUND_CODES or status == 404


class S3StorageBackend(StorageBackend):
    """Object storage backend over a single bucket"""

    name = "s3"

    def __init__(self, client, bucket_name: str):
        self.client = client
        self.bucket_name = bucket_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3StorageBackend":
        return cls(make_s3_client(settings), settings.r2_bucket_name)

    def put(self, key, data, content_type="application/octet-stream"):
        try:
            if isinstance(data, (bytes, bytearray)):
                self.client.put_object(Bucket=self.bucket_name, Key=key, Body=bytes(data), ContentType=content_type)
            else:
                self.client.upload_fileobj(data, self.bucket_name, key, ExtraArgs={"ContentType": content_type})
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload {key}: {e}") from e
        return key

    def put_from_local_path(self, path, key, content_type=None):
        extra = {"ContentType": content_type or "application/octet-stream"}
        try:
            self.client.upload_file(str(path), self.bucket_name, key, ExtraArgs=extra)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload {path} to {key}: {e}") from e
        return key

    def get_stream(self, key) -> BinaryIO:
        try:
            response = self.client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise StorageNotFound(key) from e
            raise StorageError(f"Failed to read {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e
        return response["Body"]

    def exists(self, key) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise StorageError(f"Failed to check {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to check {key}: {e}") from e

    def list(self, prefix) -> List[str]:
        keys = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to list {prefix}: {e}") from e
        return keys

    def delete(self, key) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if not _is_not_found(e):
                raise StorageError(f"Failed to delete {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e

    def delete_prefix(self, prefix) -> int:
        if not prefix:
            raise StorageError("Refusing to delete the whole bucket")
        keys = self.list(prefix.rstrip("/") + "/")
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            try:
                response = self.client.delete_objects(
                    Bucket=self.bucket_name,
                    Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
                )
            except (ClientError, BotoCoreError) as e:
                raise StorageError(f"Failed to delete prefix {prefix}: {e}") from e
            errors = response.get("Errors") or []
            if errors:
                failed = ", ".join(err.get("Key", "?") for err in errors[:5])
                raise StorageError(f"Failed to delete {len(errors)} objects under {prefix}: {failed}")
        logger.info(f"Deleted {len(keys)} objects under s3://{self.bucket_name}/{prefix}")
        return len(keys)
