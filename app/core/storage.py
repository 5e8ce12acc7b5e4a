"""S3-compatible object store client (AWS S3 or Cloudflare R2).

boto3 is synchronous, so every call runs in the default executor. Calls are
retried with exponential backoff and surface as ``ObjectStoreError`` once the
attempts are exhausted.
"""

import asyncio
import logging
import mimetypes
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.exceptions.infrastructure import ObjectStoreError

logger = logging.getLogger(__name__)

_MISSING_KEY_CODES = {"404", "NoSuchKey", "NotFound"}
_NETWORK_ERRORS = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
)


def _is_transient(exc: BaseException) -> bool:
    """Network failures, throttling and 5xx responses are worth another attempt.

    Other botocore errors (missing credentials, bad parameters) fail the same
    way every time and are raised at once.
    """
    if isinstance(exc, _NETWORK_ERRORS):
        return True
    if isinstance(exc, ClientError):
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode") or 0
        return status >= 500 or status in (408, 429)
    return False


@dataclass(frozen=True)
class StoredObject:
    """Descriptor of a blob that exists in the object store."""

    reference_token: str
    url: str
    mime_type: str
    byte_size: int


class S3ObjectStore:
    """
    Thin async facade over a boto3 S3 client.

    ``reference_token`` is the object key; the public URL is the key joined to
    ``media_public_base_url`` (or the bucket endpoint when none is configured).
    """

    def __init__(self, client=None, bucket: str | None = None, base_url: str | None = None):
        self.bucket = bucket or settings.bucket_name
        self.client = client or boto3.client(
            "s3",
            endpoint_url=settings.storage_endpoint_url,
            region_name=settings.s3_region if settings.storage_type == "aws_s3" else "auto",
            aws_access_key_id=settings.cloudflare_access_key_id or settings.aws_access_key_id,
            aws_secret_access_key=(
                settings.cloudflare_secret_access_key or settings.aws_secret_access_key
            ),
            config=Config(
                connect_timeout=settings.object_store_timeout,
                read_timeout=settings.object_store_timeout,
                retries={"max_attempts": 1},
            ),
        )
        base_url = base_url or settings.media_public_base_url or self._default_base_url()
        self.base_url = base_url.rstrip("/")

    def _default_base_url(self) -> str:
        endpoint = settings.storage_endpoint_url
        if endpoint:
            return f"{endpoint.rstrip('/')}/{self.bucket}"
        return f"https://{self.bucket}.s3.{settings.s3_region}.amazonaws.com"

    def build_key(self, filename: str, content_type: str) -> str:
        extension = mimetypes.guess_extension(content_type) or ""
        if "." in (filename or ""):
            extension = "." + filename.rsplit(".", 1)[-1].lower()
        stamp = datetime.now(UTC).strftime("%Y/%m")
        return f"{settings.media_key_prefix}/{stamp}/{uuid.uuid4().hex}{extension}"

    def url_for(self, reference_token: str) -> str:
        return f"{self.base_url}/{reference_token}"

    async def _call(self, operation: str, func, *args, **kwargs):
        """Run a blocking boto3 call off the event loop with retries."""
        loop = asyncio.get_running_loop()
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_is_transient),
                stop=stop_after_attempt(settings.object_store_max_attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    return await loop.run_in_executor(None, lambda: func(*args, **kwargs))
        except (BotoCoreError, ClientError) as e:
            logger.error("Object store %s failed: %s", operation, e)
            raise ObjectStoreError(f"Object store {operation} failed") from e

    async def upload(self, data: bytes, filename: str, content_type: str) -> StoredObject:
        key = self.build_key(filename, content_type)
        await self._call(
            "upload",
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        logger.info("Uploaded %s (%d bytes)", key, len(data))
        return StoredObject(
            reference_token=key,
            url=self.url_for(key),
            mime_type=content_type,
            byte_size=len(data),
        )

    async def delete(self, reference_token: str) -> None:
        """Delete a blob. Deleting a missing key succeeds."""
        try:
            await self._call(
                "delete", self.client.delete_object, Bucket=self.bucket, Key=reference_token
            )
        except ObjectStoreError as e:
            cause = e.__cause__
            if isinstance(cause, ClientError) and (
                cause.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES
            ):
                return
            raise ObjectStoreError(
                "Object store delete failed", reference_tokens=[reference_token]
            ) from cause

    async def list_objects(self) -> dict[str, datetime]:
        """Every key under the media prefix with its naive-UTC modification time."""

        def _collect() -> dict[str, datetime]:
            paginator = self.client.get_paginator("list_objects_v2")
            objects = {}
            prefix = f"{settings.media_key_prefix}/"
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    modified = item["LastModified"]
                    if modified.tzinfo is not None:
                        modified = modified.astimezone(UTC).replace(tzinfo=None)
                    objects[item["Key"]] = modified
            return objects

        return await self._call("list", _collect)
