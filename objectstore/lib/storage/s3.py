"""AWS S3 storage engine.

A thin proxy over a boto3 S3 client. S3 already provides atomic puts and a
native multipart protocol, so this engine only maps keys onto the bucket
prefix and translates client errors into the storage error taxonomy.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from objectstore.lib.errors import ObjectNotFoundError, StorageError
from objectstore.lib.futures import deferred
from objectstore.lib.multipart import ensure_sorted, take_data, validate_part_number
from objectstore.lib.storage.base import FileObject, FilePart, MultipartUpload
from objectstore.lib.streams import ByteSource, temporary_copy

logger = logging.getLogger(__name__)

__all__ = ["S3Storage", "create_s3_client"]

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}

# Object attributes returned by get_object that are kept as metadata
_METADATA_FIELDS = (
    "ContentType",
    "ContentLength",
    "ContentEncoding",
    "ContentDisposition",
    "CacheControl",
    "ETag",
    "LastModified",
    "Metadata",
)


def create_s3_client(
    region: Optional[str] = None,
    endpoint_url: Optional[str] = None,
    **client_kwargs: Any,
) -> Any:
    """Create a boto3 S3 client.

    Environment Variables:
        AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY: credentials
        AWS_REGION: region (when ``region`` is not given)
        AWS_ENDPOINT_URL: custom endpoint for MinIO, LocalStack, etc.
    """
    region = region or os.environ.get("AWS_REGION")
    endpoint_url = endpoint_url or os.environ.get("AWS_ENDPOINT_URL")
    session = boto3.session.Session(region_name=region) if region else boto3.session.Session()
    if endpoint_url:
        client_kwargs["endpoint_url"] = endpoint_url
    return session.client("s3", **client_kwargs)


def _error_code(exc: ClientError) -> str:
    error = exc.response.get("Error", {})
    return str(error.get("Code", ""))


def _is_not_found(exc: ClientError) -> bool:
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return status == 404 or _error_code(exc) in _NOT_FOUND_CODES


class S3Storage(MultipartUpload):
    """Object storage on an S3 bucket.

    Example:
        >>> storage = S3Storage(create_s3_client(), "my-bucket", prefix="uploads/")
        >>> storage.url("a.txt")
        'https://s3.amazonaws.com/my-bucket/uploads/a.txt'
    """

    def __init__(self, client: Any, bucket: str, prefix: str = "") -> None:
        self.client = client
        self.bucket = bucket
        self.prefix = prefix

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(bucket={self.bucket!r}, prefix={self.prefix!r})"

    def _key(self, key: str) -> str:
        return self.prefix + key

    def url(self, key: str) -> str:
        endpoint = self.client.meta.endpoint_url.rstrip("/")
        return f"{endpoint}/{self.bucket}/{quote(self._key(key))}"

    @deferred
    def has(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._key(key))
        except ClientError as exc:
            if _is_not_found(exc):
                return False
            raise StorageError(f"Cannot check object existence: {key}", key=key, cause=exc) from exc
        return True

    @deferred
    def get(self, key: str) -> FileObject:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._key(key))
        except ClientError as exc:
            if _is_not_found(exc):
                raise ObjectNotFoundError(f"Object not found: {key}", key=key) from exc
            raise StorageError(f"Cannot download object: {key}", key=key, cause=exc) from exc

        body = response["Body"]
        try:
            copy = temporary_copy(body)
        except (BotoCoreError, OSError) as exc:
            raise StorageError(f"Cannot download object: {key}", key=key, cause=exc) from exc
        finally:
            body.close()

        metadata: Dict[str, Any] = {name: response[name] for name in _METADATA_FIELDS if name in response}
        return FileObject(key, ByteSource(copy), metadata)

    @deferred
    def put(self, obj: FileObject) -> None:
        source = take_data(obj.data, "Missing object data")
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": self._key(obj.key), "Body": source}
        if obj.metadata.get("ContentType"):
            params["ContentType"] = obj.metadata["ContentType"]
        try:
            self.client.put_object(**params)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Cannot upload object: {obj.key}", key=obj.key, cause=exc) from exc
        finally:
            source.close()

    @deferred
    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self._key(key))
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Cannot delete object: {key}", key=key, cause=exc) from exc

    @deferred
    def multipart_init(self, obj: FileObject) -> str:
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": self._key(obj.key)}
        if obj.metadata.get("ContentType"):
            params["ContentType"] = obj.metadata["ContentType"]
        try:
            response = self.client.create_multipart_upload(**params)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(
                f"Cannot initialize multipart upload: {obj.key}", key=obj.key, cause=exc
            ) from exc

        upload_id = response.get("UploadId")
        if not isinstance(upload_id, str):
            raise StorageError(f"Expected UploadId to be a string, got {type(upload_id).__name__}", key=obj.key)
        logger.info("Initialized multipart upload %s for %s", upload_id, obj.key)
        return upload_id

    @deferred
    def multipart_upload(self, obj: FileObject, token: str, part: FilePart) -> str:
        validate_part_number(part.part)
        source = take_data(part.data, "Missing part data")
        try:
            response = self.client.upload_part(
                Bucket=self.bucket,
                Key=self._key(obj.key),
                UploadId=token,
                PartNumber=part.part,
                Body=source,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(
                f"Cannot upload part {part.part}: {obj.key}", key=obj.key, token=token, part=part.part, cause=exc
            ) from exc
        finally:
            source.close()

        etag = response.get("ETag")
        if not isinstance(etag, str):
            raise StorageError(f"Expected ETag to be a string, got {type(etag).__name__}", key=obj.key)
        return etag

    @deferred
    def multipart_finalize(self, obj: FileObject, token: str, *parts: FilePart) -> None:
        ensure_sorted(parts)
        try:
            self.client.complete_multipart_upload(
                Bucket=self.bucket,
                Key=self._key(obj.key),
                UploadId=token,
                MultipartUpload={"Parts": [{"PartNumber": p.part, "ETag": p.hash} for p in parts]},
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(
                f"Cannot complete multipart upload: {obj.key}", key=obj.key, token=token, cause=exc
            ) from exc
        logger.info("Finalized multipart upload %s into %s (%d parts)", token, obj.key, len(parts))

    @deferred
    def multipart_abort(self, obj: FileObject, token: str) -> None:
        try:
            self.client.abort_multipart_upload(Bucket=self.bucket, Key=self._key(obj.key), UploadId=token)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(
                f"Cannot abort multipart upload: {obj.key}", key=obj.key, token=token, cause=exc
            ) from exc
        logger.info("Aborted multipart upload %s for %s", token, obj.key)
