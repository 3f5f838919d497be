"""
BranchRelay Backend — S3 Image Storage Service
================================================

What:  Uploads branch images to S3 and inspects what has been stored.
Why:   Centralizes every boto3 call behind one class that owns the client,
       the key layout and the error translation.
How:   Decodes base64 payloads, builds deterministic keys, PUTs objects with
       public-read ACL and returns virtual-hosted-style public URLs.
Who:   Called by BranchService (uploads) and the branches routes (listing,
       metadata lookup).

Key Layout:
    branches/
    └── <branchId>/
        ├── notice-board-1705320000000.jpg
        ├── waiting-area-1705320000000.png
        └── branch-board-1705320000001.webp

Concurrency:
    boto3 is synchronous. Each upload runs in a worker thread via
    asyncio.to_thread and the batch joins them with asyncio.gather, so the
    three uploads of one request overlap without blocking the event loop.
    boto3 clients are thread-safe, so one client is shared by all threads.
"""

import asyncio
import base64
import binascii
import logging
from typing import Any, Dict, List, Mapping, NamedTuple, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import Settings, settings
from app.exceptions import (
    ConfigurationError,
    NotFoundError,
    StorageError,
    UploadError,
)
from app.services.content_type import (
    file_extension_for,
    sniff_content_type,
    strip_data_url_prefix,
)
from app.services.values import epoch_millis, iso_timestamp, to_cell

logger = logging.getLogger(__name__)


class ImageRole(NamedTuple):
    """One of the three image slots of a branch submission."""

    tag: str            # used in the storage key and S3 metadata
    payload_field: str  # request body field carrying the base64 payload
    url_field: str      # key of the resulting URL in the upload mapping


# Ordered: this is also the column order of the URL cells in the sheet row
IMAGE_ROLES = (
    ImageRole("notice-board", "noticeBoardBase64", "noticeBoardUrl"),
    ImageRole("waiting-area", "waitingAreaBase64", "waitingAreaUrl"),
    ImageRole("branch-board", "branchBoardBase64", "branchBoardUrl"),
)

# ClientError codes that mean "no such object" for HeadObject
_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


class StorageService:
    """
    Owns the S3 client and every operation against the branch-image bucket.

    The client is created on first use, after the configuration check, and
    reused for the lifetime of the service.
    """

    def __init__(self, config: Optional[Settings] = None):
        """
        Args:
            config: Settings to use (tests pass their own). Defaults to the
                    process-wide `settings` singleton.
        """
        self.config = config or settings
        self._client = None

    # ── Client ────────────────────────────────────────────────────────────

    def _get_client(self):
        """
        Return the shared S3 client, creating it on first use.

        Raises:
            ConfigurationError: access key, secret key or bucket is missing.
                Checked on every call so a bad deployment fails before any
                network traffic, not halfway through a batch.
        """
        missing = self.config.missing_storage_settings()
        if missing:
            raise ConfigurationError(missing, service="AWS")

        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.config.aws_region,
                aws_access_key_id=self.config.aws_access_key_id,
                aws_secret_access_key=self.config.aws_secret_access_key,
            )
            logger.info(
                "S3 client created for bucket=%s region=%s",
                self.config.aws_s3_bucket_name,
                self.config.aws_region,
            )
        return self._client

    def public_url(self, key: str) -> str:
        """Virtual-hosted-style URL of an object; deterministic, never signed."""
        return (
            f"https://{self.config.aws_s3_bucket_name}.s3."
            f"{self.config.aws_region}.amazonaws.com/{key}"
        )

    # ── Upload ────────────────────────────────────────────────────────────

    async def upload_image(
        self,
        payload: Optional[str],
        branch_id: str,
        role: str,
        branch_name: Optional[str] = None,
        latitude: Any = None,
        longitude: Any = None,
    ) -> Optional[str]:
        """
        Upload one base64 image and return its public URL.

        What:    Decode → build key and metadata → PutObject (public-read).
        Returns: The public URL, or None when the payload is empty or
                 whitespace-only (no image of this role; not an error).

        Raises:
            ConfigurationError: S3 credentials or bucket missing.
            UploadError: The payload is not valid base64 or S3 rejected the PUT.
        """
        if not payload or not payload.strip():
            return None

        client = self._get_client()

        # Why a thread: base64 decoding of a multi-megabyte image and the
        # blocking PUT would otherwise stall every other request
        return await asyncio.to_thread(
            self._put_image,
            client,
            payload,
            branch_id,
            role,
            branch_name,
            latitude,
            longitude,
        )

    def _put_image(
        self,
        client,
        payload: str,
        branch_id: str,
        role: str,
        branch_name: Optional[str],
        latitude: Any,
        longitude: Any,
    ) -> str:
        content_type = sniff_content_type(payload)
        filename = f"{role}-{epoch_millis()}.{file_extension_for(content_type)}"
        key = f"branches/{branch_id}/{filename}"

        try:
            body = base64.b64decode(strip_data_url_prefix(payload))
        except (binascii.Error, ValueError) as e:
            logger.error("Invalid base64 for %s of branch %s: %s", role, branch_id, e)
            raise UploadError(
                role=role,
                branch_id=branch_id,
                reason=f"invalid base64 payload ({e})",
            ) from e

        # S3 user metadata: values must be strings
        metadata = {
            "branch-id": to_cell(branch_id),
            "branch-name": to_cell(branch_name),
            "image-type": role,
            "latitude": to_cell(latitude),
            "longitude": to_cell(longitude),
            "upload-timestamp": iso_timestamp(),
            "original-filename": filename,
            "content-type": content_type,
            "file-size": str(len(body)),
        }

        try:
            client.put_object(
                Bucket=self.config.aws_s3_bucket_name,
                Key=key,
                Body=body,
                ContentType=content_type,
                ACL="public-read",
                Metadata=metadata,
            )
        except Exception as e:
            logger.error(
                "Error uploading %s for branch %s to S3: %s",
                role,
                branch_id,
                e,
                exc_info=True,
            )
            raise UploadError(
                role=role,
                branch_id=branch_id,
                reason=str(e),
                context={"key": key, "error_type": type(e).__name__},
            ) from e

        url = self.public_url(key)
        logger.info(
            "Uploaded %s for branch %s (%d bytes, %s): %s",
            role,
            branch_id,
            len(body),
            content_type,
            url,
        )
        logger.debug("Metadata for %s: %s", key, metadata)
        return url

    async def upload_branch_images(
        self,
        branch_id: str,
        images: Mapping[str, Optional[str]],
        branch_name: Optional[str] = None,
        latitude: Any = None,
        longitude: Any = None,
    ) -> Dict[str, str]:
        """
        Upload every present image of a branch concurrently.

        What:    Fan out one upload per non-empty payload, join them all, and
                 return {url_field: url} for the roles that produced a URL.
        Args:
            images: Payloads keyed by request field name
                    (noticeBoardBase64, waitingAreaBase64, branchBoardBase64).

        All-or-nothing:
            Every launched upload is awaited, then the first failure (in role
            order) is raised. Callers never see a partial mapping.

        Raises:
            ConfigurationError: Checked once before any upload is launched.
                Never raised when there is nothing to upload.
            UploadError: At least one upload failed.
        """
        launched = [role for role in IMAGE_ROLES if images.get(role.payload_field)]
        if not launched:
            logger.info("No images to upload for branch %s", branch_id)
            return {}

        self._get_client()
        logger.info(
            "Starting upload for branch %s: %s",
            branch_id,
            [role.tag for role in launched],
        )

        results = await asyncio.gather(
            *(
                self.upload_image(
                    images[role.payload_field],
                    branch_id,
                    role.tag,
                    branch_name=branch_name,
                    latitude=latitude,
                    longitude=longitude,
                )
                for role in launched
            ),
            return_exceptions=True,
        )

        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            logger.error(
                "%d of %d uploads failed for branch %s",
                len(failures),
                len(launched),
                branch_id,
            )
            raise failures[0]

        urls = {role.url_field: url for role, url in zip(launched, results) if url}
        logger.info("All uploads completed for branch %s: %s", branch_id, urls)
        return urls

    # ── Inspection ────────────────────────────────────────────────────────

    async def list_branch_images(self, branch_id: str) -> List[Dict[str, Any]]:
        """
        List every stored object under branches/<branch_id>/.

        Returns: [{key, url, size, lastModified}], oldest key first.
        Raises:  StorageError if the listing fails.
        """
        client = self._get_client()
        prefix = f"branches/{branch_id}/"

        def _list() -> List[Dict[str, Any]]:
            paginator = client.get_paginator("list_objects_v2")
            objects = []
            for page in paginator.paginate(
                Bucket=self.config.aws_s3_bucket_name, Prefix=prefix
            ):
                objects.extend(page.get("Contents", []))
            return objects

        try:
            objects = await asyncio.to_thread(_list)
        except (BotoCoreError, ClientError) as e:
            logger.error("Error listing images for branch %s: %s", branch_id, e)
            raise StorageError(
                message=f"Failed to list branch images: {e}",
                context={"branch_id": branch_id},
            ) from e

        return [
            {
                "key": obj["Key"],
                "url": self.public_url(obj["Key"]),
                "size": obj.get("Size"),
                "lastModified": (
                    iso_timestamp(obj["LastModified"]) if obj.get("LastModified") else None
                ),
            }
            for obj in objects
        ]

    async def get_image_metadata(self, url: str) -> Dict[str, Any]:
        """
        Fetch S3 metadata for an object given its public URL.

        How:     The key is everything after the host segment
                 (https://<bucket>.s3.<region>.amazonaws.com/<key>).
        Raises:
            NotFoundError: The URL has no key or the object does not exist.
            StorageError: Any other S3 failure.
        """
        key = "/".join(url.split("/")[3:])
        if not key:
            raise NotFoundError(resource="image", resource_id=url)

        client = self._get_client()
        try:
            response = await asyncio.to_thread(
                client.head_object,
                Bucket=self.config.aws_s3_bucket_name,
                Key=key,
            )
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_OBJECT_CODES:
                raise NotFoundError(resource="image", resource_id=key) from e
            logger.error("Error getting metadata for %s: %s", key, e)
            raise StorageError(
                message=f"Failed to get image metadata: {e}",
                context={"key": key},
            ) from e
        except BotoCoreError as e:
            logger.error("Error getting metadata for %s: %s", key, e)
            raise StorageError(
                message=f"Failed to get image metadata: {e}",
                context={"key": key},
            ) from e

        last_modified = response.get("LastModified")
        return {
            "key": key,
            "metadata": response.get("Metadata", {}),
            "lastModified": iso_timestamp(last_modified) if last_modified else None,
            "contentLength": response.get("ContentLength"),
            "contentType": response.get("ContentType"),
            "etag": response.get("ETag"),
        }


# ── Singleton Instance ────────────────────────────────────────────────────
# Why singleton: the boto3 client is expensive to build and safe to share
storage_service = StorageService(settings)
