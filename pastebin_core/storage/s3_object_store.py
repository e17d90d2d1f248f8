"""
S3 compatible blob store built on boto3.

Timeouts and retries are set on the botocore client so no single call can
hang a coordinator worker indefinitely.
"""

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import ObjectStoreConfig
from ..exceptions import StoreUnavailable
from ..utils.logger import get_logger
from .object_store import ObjectNotFound, ObjectStore

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


class S3ObjectStore(ObjectStore):
    """Stores document blobs in a single bucket."""

    def __init__(self, config: ObjectStoreConfig, client=None):
        self.config = config
        self.bucket = config.bucket
        self.logger = get_logger()
        self.client = client or boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            region_name=config.region,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            config=Config(
                connect_timeout=config.connect_timeout,
                read_timeout=config.read_timeout,
                retries={"max_attempts": config.max_attempts, "mode": "standard"},
            ),
        )

    def _unavailable(self, operation: str, key: str, e: Exception) -> StoreUnavailable:
        return StoreUnavailable(
            f"Object store {operation} failed for {key}: {e}",
            service_name="s3",
            cause=e,
            bucket=self.bucket,
            key=key,
            operation=operation,
        )

    def put(self, key: str, data: bytes, content_type: str = "text/plain") -> int:
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            raise self._unavailable("put", key, e) from e
        return len(data)

    def get(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                raise ObjectNotFound(key) from e
            raise self._unavailable("get", key, e) from e
        except BotoCoreError as e:
            raise self._unavailable("get", key, e) from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._unavailable("delete", key, e) from e

    def create_buckets(self) -> None:
        try:
            self.client.head_bucket(Bucket=self.bucket)
            return
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") not in _MISSING_CODES | {"NoSuchBucket"}:
                raise self._unavailable("head_bucket", self.bucket, e) from e
        except BotoCoreError as e:
            raise self._unavailable("head_bucket", self.bucket, e) from e

        try:
            self.client.create_bucket(Bucket=self.bucket)
        except (ClientError, BotoCoreError) as e:
            raise self._unavailable("create_bucket", self.bucket, e) from e

        self.logger.info("Created object store bucket", extra={"bucket": self.bucket})
