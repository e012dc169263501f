"""S3-compatible object store (AWS S3, R2, MinIO)."""

from __future__ import annotations

import logging
from typing import Any

from .base import StoredObject

try:
    import boto3
    from botocore.exceptions import BotoCoreError, ClientError
except ImportError:
    boto3 = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
_PAST_END_CODES = {"416", "InvalidRange"}


class S3ObjectStore:
    """Object store that reads ranged windows from an S3 bucket.

    Works with any S3-compatible endpoint via ``endpoint_url``.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        endpoint_url: str | None = None,
        client: Any = None,
        **boto_kwargs: Any,
    ) -> None:
        if client is None:
            if boto3 is None:
                raise ImportError("boto3 is required for S3ObjectStore: pip install digitstream[s3]")
            client = boto3.client("s3", endpoint_url=endpoint_url, **boto_kwargs)
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.requests_made = 0
        self.bytes_fetched = 0
        self._client = client

    def _key(self, name: str) -> str:
        if self.prefix:
            return f"{self.prefix}/{name}"
        return name

    def get(self, key: str, offset: int, length: int) -> StoredObject | None:
        full_key = self._key(key)
        self.requests_made += 1
        try:
            resp = self._client.get_object(
                Bucket=self.bucket,
                Key=full_key,
                Range=f"bytes={offset}-{offset + length - 1}",
            )
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code"))
            if code in _MISSING_CODES:
                logger.debug("s3 miss for s3://%s/%s", self.bucket, full_key)
                return None
            if code in _PAST_END_CODES:
                return StoredObject(offset=offset, body=b"")
            raise IOError(f"get_object s3://{self.bucket}/{full_key} failed: {code}") from e
        except BotoCoreError as e:
            raise IOError(f"get_object s3://{self.bucket}/{full_key} failed: {e}") from e

        body = resp["Body"]
        try:
            data = body.read()
        finally:
            body.close()
        self.bytes_fetched += len(data)
        size = None
        content_range = resp.get("ContentRange")
        if content_range and "/" in content_range:
            total = content_range.rsplit("/", 1)[1]
            size = int(total) if total.isdigit() else None
        return StoredObject(offset=offset, body=data[:length], size=size)
