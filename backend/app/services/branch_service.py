"""
BranchRelay Backend — Branch Service (Business Logic Orchestrator)
====================================================================

What:  Coordinates validate → upload images → append row for one submission.
Why:   Keeps the route handler thin; the whole workflow is testable without
       HTTP by mocking the two provider services.
How:   Composes StorageService and SheetsService.

Orchestration Flow (POST /api/branches):
    ┌──────────┐    ┌──────────────┐    ┌──────────────┐    ┌──────────┐
    │ Validate │───▶│ Upload images│───▶│  Build row   │───▶│  Append  │
    │ fields   │    │ (S3, ≤3 ∥)   │    │  (8 cells)   │    │ (Sheets) │
    └──────────┘    └──────────────┘    └──────────────┘    └──────────┘

    Validation fails → ValidationError (400); nothing is uploaded or appended
    Any upload fails → UploadError (500); the append is not attempted
    Append fails     → SheetError (500); uploaded objects stay in the bucket

No retries and no rollback: a single failure ends the request.
"""

import logging
from typing import Dict, List, Optional

from app.exceptions import ConfigurationError, SheetError, UploadError, ValidationError
from app.schemas.branch import (
    BranchData,
    BranchImages,
    BranchSubmission,
    BranchSubmitResponse,
)
from app.services.sheets_service import SheetsService, sheets_service
from app.services.storage_service import (
    IMAGE_ROLES,
    StorageService,
    storage_service,
)
from app.services.values import iso_timestamp, to_cell

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ["branchId", "branchName", "latitude", "longitude"]


def missing_required_fields(submission: BranchSubmission) -> List[str]:
    """
    Names of required fields that are absent or falsy.

    Note: this is a truthiness check, so a branchId, latitude or longitude
    of exactly 0 is reported as missing. Existing clients rely on that 400.
    """
    values = {
        "branchId": submission.branch_id,
        "branchName": submission.branch_name,
        "latitude": submission.latitude,
        "longitude": submission.longitude,
    }
    return [name for name in REQUIRED_FIELDS if not values[name]]


def build_sheet_row(
    submission: BranchSubmission,
    image_urls: Dict[str, str],
    timestamp: str,
) -> List[str]:
    """
    Build the 8-cell row in sheet column order.

    Columns: branchId, branchName, latitude, longitude, noticeBoardUrl,
             waitingAreaUrl, branchBoardUrl, timestamp
    Absent image URLs become "".
    """
    return [
        to_cell(submission.branch_id),
        to_cell(submission.branch_name),
        to_cell(submission.latitude),
        to_cell(submission.longitude),
        *(image_urls.get(role.url_field, "") for role in IMAGE_ROLES),
        timestamp,
    ]


class BranchService:
    """
    Stateless orchestrator for branch submissions.

    The provider services are injected so tests can pass mocks; the module
    singleton uses the process-wide instances.
    """

    def __init__(
        self,
        storage: Optional[StorageService] = None,
        sheets: Optional[SheetsService] = None,
    ):
        self.storage = storage or storage_service
        self.sheets = sheets or sheets_service

    async def submit_branch(self, submission: BranchSubmission) -> BranchSubmitResponse:
        """
        Run the full submission workflow.

        Raises:
            ValidationError: a required field is missing (nothing else runs).
            UploadError: an image upload failed, or S3 is not configured.
            SheetError: the append failed, or Sheets is not configured.
        """
        # ── Step 1: Required fields ───────────────────────────────────────
        missing = missing_required_fields(submission)
        if missing:
            raise ValidationError(required=REQUIRED_FIELDS, missing=missing)

        branch_id = to_cell(submission.branch_id)

        # ── Step 2: Upload images (concurrent, all-or-nothing) ────────────
        try:
            image_urls = await self.storage.upload_branch_images(
                branch_id,
                submission.image_payloads(),
                branch_name=submission.branch_name,
                latitude=submission.latitude,
                longitude=submission.longitude,
            )
        except ConfigurationError as e:
            logger.error("S3 upload error for branch %s: %s", branch_id, e.message)
            raise UploadError(
                role="images",
                branch_id=branch_id,
                reason=e.message,
                context=e.context,
            ) from e
        except UploadError as e:
            logger.error("S3 upload error for branch %s: %s", branch_id, e.message)
            raise

        # ── Step 3: Build and append the row ──────────────────────────────
        row = build_sheet_row(submission, image_urls, iso_timestamp())
        try:
            sheet_update = await self.sheets.append_row(row)
        except ConfigurationError as e:
            logger.error("Sheet append error for branch %s: %s", branch_id, e.message)
            raise SheetError(reason=e.message, context=e.context) from e
        except SheetError as e:
            logger.error("Sheet append error for branch %s: %s", branch_id, e.message)
            raise

        logger.info("Branch %s appended with %d image(s)", branch_id, len(image_urls))

        # ── Step 4: Success envelope ──────────────────────────────────────
        return BranchSubmitResponse(
            data=BranchData(
                branch_id=branch_id,
                branch_name=submission.branch_name,
                latitude=submission.latitude,
                longitude=submission.longitude,
                timestamp=iso_timestamp(),
                images=BranchImages(
                    notice_board_url=image_urls.get("noticeBoardUrl"),
                    waiting_area_url=image_urls.get("waitingAreaUrl"),
                    branch_board_url=image_urls.get("branchBoardUrl"),
                ),
            ),
            sheet_update=sheet_update,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
branch_service = BranchService()
