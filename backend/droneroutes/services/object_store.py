"""
Drone Routes Backend — Object Store Gateway (MinIO)
=====================================================

What:  Stores route photos in an S3-compatible bucket and hands out URLs.
Why:   Photos are large (multi-MB TIFFs) and are served straight from the
       object store to map clients; the database only keeps object keys.
How:   Wraps the official `minio` SDK. The SDK is blocking, so every call
       runs in a worker thread via asyncio.to_thread. Writes are retried
       with tenacity on transient failures and bounded by a timeout.
Who:   RouteService (upload, resolve_url), app lifespan (ensure_bucket),
       health route (health_check).

Key scheme:
    routes/<route_id>/<file_name>

    Deterministic per (route, file name): re-uploading overwrites, so a
    retried or repeated upload never creates duplicates.

Error mapping:
    - "not found" codes on stat      → exists() returns False
    - anything else from the backend → StorageError
    - upload timeout                 → StorageError
"""

import asyncio
import io
import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import quote

from minio import Minio
from minio.error import MinioException, ServerError
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from urllib3.exceptions import HTTPError as TransportError

from droneroutes.config import settings
from droneroutes.exceptions import StorageError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/tiff"

# S3 error codes that mean "the thing is not there"
NOT_FOUND_CODES = {"NoSuchKey", "NoSuchObject", "NoSuchBucket", "NotFound", "ResourceNotFound"}

# Concurrent make_bucket from several instances: the loser sees one of these
BUCKET_RACE_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}

# Connection resets, DNS hiccups, 5xx from the gateway: worth another try
TRANSIENT_ERRORS = (TransportError, ServerError, ConnectionError)


def object_key(route_id, file_name: str) -> str:
    """routes/<route_id>/<file_name>"""
    return f"routes/{route_id}/{file_name}"


def _error_code(exc: BaseException) -> Optional[str]:
    return getattr(exc, "code", None)


class ObjectStoreGateway:
    """
    Async facade over a MinIO bucket.

    Args:
        client: Pre-built Minio client (tests pass a mock). Built from
                settings when omitted.
        bucket: Bucket name, default settings.minio_bucket.
        public_url: Base URL for direct links; presigned URLs when None.
        upload_timeout: Seconds allowed for one upload including retries.
        retry_attempts: Total put attempts on transient errors.
    """

    def __init__(
        self,
        client: Optional[Minio] = None,
        bucket: Optional[str] = None,
        public_url: Optional[str] = None,
        upload_timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        url_expiry: Optional[int] = None,
    ):
        self.client = client or Minio(
            settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
            region=settings.minio_region,
        )
        self.bucket = bucket or settings.minio_bucket
        self.public_url = public_url if public_url is not None else settings.minio_public_url
        self.upload_timeout = upload_timeout or settings.storage_upload_timeout
        self.retry_attempts = retry_attempts or settings.retry_max_attempts
        self.url_expiry = timedelta(seconds=url_expiry or settings.presigned_url_expiry)

    # ── Bucket lifecycle ──────────────────────────────────────────────────

    async def ensure_bucket(self) -> None:
        """
        Create the bucket if it does not exist yet.

        Idempotent. Several app instances starting together may all see
        "missing" and all try to create it; the losers get an
        already-exists code, which counts as success.

        Raises:
            StorageError: Backend unreachable or refused the request.
        """
        try:
            if await asyncio.to_thread(self.client.bucket_exists, bucket_name=self.bucket):
                logger.info("Bucket '%s' already exists", self.bucket)
                return
            await asyncio.to_thread(
                self.client.make_bucket,
                bucket_name=self.bucket,
                location=settings.minio_region,
            )
            logger.info("Bucket '%s' created", self.bucket)
        except MinioException as e:
            if _error_code(e) in BUCKET_RACE_CODES:
                logger.info("Bucket '%s' was created concurrently", self.bucket)
                return
            raise StorageError(
                message="Could not initialize photo storage",
                context={"bucket": self.bucket, "error": str(e)},
            ) from e
        except (TransportError, OSError) as e:
            raise StorageError(
                message="Photo storage is unreachable",
                context={"bucket": self.bucket, "error": str(e)},
            ) from e

    # ── Writes ────────────────────────────────────────────────────────────

    async def upload(
        self,
        route_id,
        file_name: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Store one photo under routes/<route_id>/<file_name>.

        Returns:
            The object key.

        Raises:
            StorageError: Backend error, retries exhausted, or timeout.
            Nothing is assumed about partial writes on failure.
        """
        key = object_key(route_id, file_name)
        try:
            await asyncio.wait_for(
                self._put_with_retry(key, data, content_type or DEFAULT_CONTENT_TYPE, str(route_id)),
                timeout=self.upload_timeout,
            )
        except asyncio.TimeoutError as e:
            raise StorageError(
                message=f"Upload of '{file_name}' timed out after {self.upload_timeout:.0f}s",
                context={"key": key},
            ) from e
        except RetryError as e:
            last = e.last_attempt.exception() if e.last_attempt else None
            raise StorageError(
                message=f"Upload of '{file_name}' failed after {self.retry_attempts} attempts",
                context={"key": key, "error": str(last)},
            ) from e
        except (MinioException, TransportError, OSError) as e:
            raise StorageError(
                message=f"Upload of '{file_name}' failed",
                context={"key": key, "error": str(e)},
            ) from e

        logger.debug("Stored %s (%d bytes)", key, len(data))
        return key

    async def _put_with_retry(self, key: str, data: bytes, content_type: str, route_id: str) -> None:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential_jitter(
                multiplier=settings.retry_min_wait,
                max=settings.retry_max_wait,
                jitter=settings.retry_min_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        ):
            with attempt:
                # Fresh stream per attempt: a failed attempt may have consumed it
                await asyncio.to_thread(
                    self.client.put_object,
                    bucket_name=self.bucket,
                    object_name=key,
                    data=io.BytesIO(data),
                    length=len(data),
                    content_type=content_type,
                    metadata={"X-Route-ID": route_id},
                )

    # ── Reads ─────────────────────────────────────────────────────────────

    async def exists(self, key: str) -> bool:
        """
        True if the object is stored, False if the backend says it is not.

        Raises:
            StorageError: Any other backend or transport failure.
        """
        try:
            await asyncio.to_thread(self.client.stat_object, bucket_name=self.bucket, object_name=key)
            return True
        except MinioException as e:
            if _error_code(e) in NOT_FOUND_CODES:
                return False
            raise StorageError(
                message="Could not check photo existence",
                context={"key": key, "error": str(e)},
            ) from e
        except (TransportError, OSError) as e:
            raise StorageError(
                message="Photo storage is unreachable",
                context={"key": key, "error": str(e)},
            ) from e

    async def resolve_url(self, key: str) -> str:
        """
        Client-retrievable URL for a stored object.

        Direct link under `public_url` when configured, otherwise a
        presigned GET valid for `url_expiry`.

        Raises:
            StorageError: Object missing, or backend unreachable.
        """
        if not await self.exists(key):
            raise StorageError(message="Photo not found in storage", context={"key": key})

        if self.public_url:
            return f"{self.public_url}/{self.bucket}/{quote(key)}"

        try:
            return await asyncio.to_thread(
                self.client.presigned_get_object,
                bucket_name=self.bucket,
                object_name=key,
                expires=self.url_expiry,
            )
        except (MinioException, TransportError, OSError, ValueError) as e:
            raise StorageError(
                message="Could not generate photo URL",
                context={"key": key, "error": str(e)},
            ) from e

    async def health_check(self) -> bool:
        """True when the bucket is reachable and present."""
        try:
            return await asyncio.to_thread(self.client.bucket_exists, bucket_name=self.bucket)
        except Exception as e:
            logger.warning("Object store health check failed: %s", str(e))
            return False


# ── Singleton Instance ────────────────────────────────────────────────────
object_store = ObjectStoreGateway()
