"""
BranchRelay Backend — Storage Service Unit Tests (Mocked S3)
==============================================================

What:  Tests for StorageService uploads, batch orchestration and inspection.
How:   The boto3 client is a MagicMock (see conftest.storage); no AWS calls.

What we test:
    ✅ Empty payloads are skipped without touching S3
    ✅ Key layout, public URL, ACL, content type and metadata of a PUT
    ✅ Decoded byte length recorded in metadata matches the uploaded body
    ✅ Decode and provider failures become UploadError tagged with role/branch
    ✅ Batch uploads are concurrent and all-or-nothing
    ✅ Missing configuration fails before any client is built
"""

import base64
import re
import threading
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError

from app.config import Settings
from app.exceptions import ConfigurationError, NotFoundError, StorageError, UploadError
from app.services.storage_service import StorageService

BUCKET_URL = "https://test-bucket.s3.us-east-1.amazonaws.com/"


def _client_error(code: str, operation: str = "PutObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} message"}}, operation)


class TestUploadImage:
    """Tests for StorageService.upload_image()."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [None, "", "   ", "\n\t"])
    async def test_empty_payload_is_skipped(self, storage, mock_s3_client, payload):
        """Empty or whitespace-only input means 'no image', not an error."""
        result = await storage.upload_image(payload, "b1", "notice-board")
        assert result is None
        mock_s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_jpeg_upload(self, storage, mock_s3_client, jpeg_data_url, jpeg_base64):
        url = await storage.upload_image(
            jpeg_data_url, "b1", "notice-board",
            branch_name="Main", latitude=12.5, longitude=77.5,
        )

        kwargs = mock_s3_client.put_object.call_args.kwargs
        assert re.fullmatch(r"branches/b1/notice-board-\d+\.jpg", kwargs["Key"])
        assert url == BUCKET_URL + kwargs["Key"]
        assert kwargs["Bucket"] == "test-bucket"
        assert kwargs["ACL"] == "public-read"
        assert kwargs["ContentType"] == "image/jpeg"
        assert kwargs["Body"] == base64.b64decode(jpeg_base64)

        metadata = kwargs["Metadata"]
        assert metadata["branch-id"] == "b1"
        assert metadata["branch-name"] == "Main"
        assert metadata["image-type"] == "notice-board"
        assert metadata["latitude"] == "12.5"
        assert metadata["longitude"] == "77.5"
        assert metadata["content-type"] == "image/jpeg"
        assert metadata["original-filename"] == kwargs["Key"].rsplit("/", 1)[1]
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", metadata["upload-timestamp"])

    @pytest.mark.asyncio
    async def test_metadata_file_size_matches_decoded_length(self, storage, mock_s3_client, jpeg_data_url):
        await storage.upload_image(jpeg_data_url, "b1", "notice-board")

        kwargs = mock_s3_client.put_object.call_args.kwargs
        assert kwargs["Metadata"]["file-size"] == str(len(kwargs["Body"]))
        assert len(kwargs["Body"]) == 287

    @pytest.mark.asyncio
    async def test_png_upload_uses_png_extension(self, storage, mock_s3_client, png_data_url):
        await storage.upload_image(png_data_url, "b1", "waiting-area")

        kwargs = mock_s3_client.put_object.call_args.kwargs
        assert kwargs["Key"].endswith(".png")
        assert kwargs["ContentType"] == "image/png"
        assert kwargs["Body"].startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_raw_base64_is_stored_as_jpeg(self, storage, mock_s3_client, jpeg_base64):
        await storage.upload_image(jpeg_base64, "b1", "branch-board")

        kwargs = mock_s3_client.put_object.call_args.kwargs
        assert re.fullmatch(r"branches/b1/branch-board-\d+\.jpg", kwargs["Key"])
        assert kwargs["Body"][:2] == b"\xff\xd8"

    @pytest.mark.asyncio
    async def test_invalid_base64_raises_upload_error(self, storage, mock_s3_client):
        with pytest.raises(UploadError) as exc_info:
            await storage.upload_image("data:image/png;base64,abc", "b1", "notice-board")

        assert exc_info.value.role == "notice-board"
        assert exc_info.value.branch_id == "b1"
        assert "notice-board" in exc_info.value.message
        assert "b1" in exc_info.value.message
        mock_s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_failure_is_wrapped(self, storage, mock_s3_client, jpeg_data_url):
        error = _client_error("AccessDenied")
        mock_s3_client.put_object.side_effect = error

        with pytest.raises(UploadError, match="AccessDenied") as exc_info:
            await storage.upload_image(jpeg_data_url, "b7", "waiting-area")

        assert exc_info.value.__cause__ is error
        assert exc_info.value.context["role"] == "waiting-area"
        assert exc_info.value.context["branch_id"] == "b7"

    @pytest.mark.asyncio
    async def test_missing_configuration_fails_before_client(self, jpeg_data_url):
        service = StorageService(
            Settings(
                _env_file=None,
                aws_access_key_id="",
                aws_secret_access_key="",
                aws_s3_bucket_name="",
            )
        )
        with patch("app.services.storage_service.boto3") as mock_boto3:
            with pytest.raises(ConfigurationError) as exc_info:
                await service.upload_image(jpeg_data_url, "b1", "notice-board")

        mock_boto3.client.assert_not_called()
        assert exc_info.value.missing == [
            "AWS_ACCESS_KEY_ID",
            "AWS_SECRET_ACCESS_KEY",
            "AWS_S3_BUCKET_NAME",
        ]

    def test_client_is_built_once_with_configured_credentials(self, test_settings):
        service = StorageService(test_settings)
        with patch("app.services.storage_service.boto3") as mock_boto3:
            first = service._get_client()
            second = service._get_client()

        assert first is second
        mock_boto3.client.assert_called_once_with(
            "s3",
            region_name="us-east-1",
            aws_access_key_id="AKIATESTNOTREAL",
            aws_secret_access_key="test-secret-not-real",
        )

    def test_public_url_uses_bucket_and_region(self, test_settings):
        test_settings.aws_region = "ap-south-1"
        service = StorageService(test_settings)
        assert (
            service.public_url("branches/b1/x.jpg")
            == "https://test-bucket.s3.ap-south-1.amazonaws.com/branches/b1/x.jpg"
        )


class TestUploadBranchImages:
    """Tests for the concurrent, all-or-nothing batch upload."""

    @pytest.mark.asyncio
    async def test_no_images_returns_empty_mapping(self, storage, mock_s3_client):
        result = await storage.upload_branch_images(
            "b1",
            {"noticeBoardBase64": None, "waitingAreaBase64": "", "branchBoardBase64": None},
        )
        assert result == {}
        mock_s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_present_roles_are_uploaded(self, storage, mock_s3_client, jpeg_data_url):
        result = await storage.upload_branch_images(
            "b1",
            {"noticeBoardBase64": jpeg_data_url, "waitingAreaBase64": "", "branchBoardBase64": None},
            branch_name="Main",
        )

        assert list(result) == ["noticeBoardUrl"]
        assert re.fullmatch(
            re.escape(BUCKET_URL) + r"branches/b1/notice-board-\d+\.jpg",
            result["noticeBoardUrl"],
        )
        assert mock_s3_client.put_object.call_count == 1

    @pytest.mark.asyncio
    async def test_all_three_roles(self, storage, mock_s3_client, jpeg_data_url, png_data_url):
        result = await storage.upload_branch_images(
            "b1",
            {
                "noticeBoardBase64": jpeg_data_url,
                "waitingAreaBase64": png_data_url,
                "branchBoardBase64": jpeg_data_url,
            },
        )

        assert set(result) == {"noticeBoardUrl", "waitingAreaUrl", "branchBoardUrl"}
        assert "/waiting-area-" in result["waitingAreaUrl"]
        assert result["waitingAreaUrl"].endswith(".png")
        keys = sorted(call.kwargs["Key"] for call in mock_s3_client.put_object.call_args_list)
        assert len(keys) == 3

    @pytest.mark.asyncio
    async def test_whitespace_payload_is_omitted(self, storage, mock_s3_client, jpeg_data_url):
        result = await storage.upload_branch_images(
            "b1",
            {"noticeBoardBase64": jpeg_data_url, "waitingAreaBase64": "   "},
        )
        assert list(result) == ["noticeBoardUrl"]

    @pytest.mark.asyncio
    async def test_one_failure_fails_the_batch(self, storage, mock_s3_client, jpeg_data_url):
        """A failing role fails the whole call; the other uploads still finish first."""

        def put_object(**kwargs):
            if "/waiting-area-" in kwargs["Key"]:
                raise _client_error("InternalError")
            return {"ETag": '"ok"'}

        mock_s3_client.put_object.side_effect = put_object

        with pytest.raises(UploadError) as exc_info:
            await storage.upload_branch_images(
                "b1",
                {
                    "noticeBoardBase64": jpeg_data_url,
                    "waitingAreaBase64": jpeg_data_url,
                    "branchBoardBase64": jpeg_data_url,
                },
            )

        assert exc_info.value.role == "waiting-area"
        assert mock_s3_client.put_object.call_count == 3

    @pytest.mark.asyncio
    async def test_uploads_run_concurrently(self, storage, mock_s3_client, jpeg_data_url):
        """All three PUTs must be in flight together; a sequential loop deadlocks the barrier."""
        barrier = threading.Barrier(3, timeout=5)
        finished = []

        def put_object(**kwargs):
            barrier.wait()
            finished.append(kwargs["Key"])
            return {"ETag": '"ok"'}

        mock_s3_client.put_object.side_effect = put_object

        result = await storage.upload_branch_images(
            "b1",
            {
                "noticeBoardBase64": jpeg_data_url,
                "waitingAreaBase64": jpeg_data_url,
                "branchBoardBase64": jpeg_data_url,
            },
        )

        assert len(finished) == 3
        assert set(result) == {"noticeBoardUrl", "waitingAreaUrl", "branchBoardUrl"}

    @pytest.mark.asyncio
    async def test_missing_configuration_checked_before_launch(self, jpeg_data_url):
        service = StorageService(
            Settings(_env_file=None, aws_access_key_id="", aws_secret_access_key="x", aws_s3_bucket_name="b")
        )
        with patch("app.services.storage_service.boto3") as mock_boto3:
            with pytest.raises(ConfigurationError, match="AWS_ACCESS_KEY_ID"):
                await service.upload_branch_images("b1", {"noticeBoardBase64": jpeg_data_url})
        mock_boto3.client.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_images_needs_no_configuration(self):
        service = StorageService(
            Settings(
                _env_file=None,
                aws_access_key_id="",
                aws_secret_access_key="",
                aws_s3_bucket_name="",
            )
        )
        with patch("app.services.storage_service.boto3") as mock_boto3:
            result = await service.upload_branch_images(
                "b1",
                {"noticeBoardBase64": None, "waitingAreaBase64": "", "branchBoardBase64": None},
            )
        assert result == {}
        mock_boto3.client.assert_not_called()


class TestInspection:
    """Tests for listing and metadata lookup."""

    @pytest.mark.asyncio
    async def test_list_branch_images(self, storage, mock_s3_client):
        modified = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        paginator = mock_s3_client.get_paginator.return_value
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "branches/b1/notice-board-1.jpg", "Size": 287, "LastModified": modified}]},
            {"Contents": [{"Key": "branches/b1/branch-board-2.png", "Size": 70, "LastModified": modified}]},
        ]

        images = await storage.list_branch_images("b1")

        mock_s3_client.get_paginator.assert_called_once_with("list_objects_v2")
        paginator.paginate.assert_called_once_with(Bucket="test-bucket", Prefix="branches/b1/")
        assert images[0] == {
            "key": "branches/b1/notice-board-1.jpg",
            "url": BUCKET_URL + "branches/b1/notice-board-1.jpg",
            "size": 287,
            "lastModified": "2024-01-15T12:00:00.000Z",
        }
        assert len(images) == 2

    @pytest.mark.asyncio
    async def test_list_branch_images_empty(self, storage, mock_s3_client):
        mock_s3_client.get_paginator.return_value.paginate.return_value = [{}]
        assert await storage.list_branch_images("b1") == []

    @pytest.mark.asyncio
    async def test_list_failure_raises_storage_error(self, storage, mock_s3_client):
        mock_s3_client.get_paginator.return_value.paginate.side_effect = _client_error(
            "AccessDenied", "ListObjectsV2"
        )
        with pytest.raises(StorageError, match="Failed to list branch images"):
            await storage.list_branch_images("b1")

    @pytest.mark.asyncio
    async def test_get_image_metadata(self, storage, mock_s3_client):
        mock_s3_client.head_object.return_value = {
            "Metadata": {"branch-id": "b1", "file-size": "287"},
            "LastModified": datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc),
            "ContentLength": 287,
            "ContentType": "image/jpeg",
            "ETag": '"abc"',
        }

        result = await storage.get_image_metadata(BUCKET_URL + "branches/b1/notice-board-1.jpg")

        mock_s3_client.head_object.assert_called_once_with(
            Bucket="test-bucket", Key="branches/b1/notice-board-1.jpg"
        )
        assert result["metadata"]["file-size"] == "287"
        assert result["contentLength"] == 287
        assert result["contentType"] == "image/jpeg"
        assert result["lastModified"] == "2024-01-15T12:00:00.000Z"

    @pytest.mark.asyncio
    async def test_get_image_metadata_missing_object(self, storage, mock_s3_client):
        mock_s3_client.head_object.side_effect = _client_error("404", "HeadObject")
        with pytest.raises(NotFoundError):
            await storage.get_image_metadata(BUCKET_URL + "branches/b1/gone.jpg")

    @pytest.mark.asyncio
    async def test_get_image_metadata_url_without_key(self, storage, mock_s3_client):
        with pytest.raises(NotFoundError):
            await storage.get_image_metadata("https://test-bucket.s3.us-east-1.amazonaws.com")
        mock_s3_client.head_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_image_metadata_other_failure(self, storage, mock_s3_client):
        mock_s3_client.head_object.side_effect = _client_error("AccessDenied", "HeadObject")
        with pytest.raises(StorageError, match="Failed to get image metadata"):
            await storage.get_image_metadata(BUCKET_URL + "branches/b1/x.jpg")
