"""
BranchRelay Backend — Pydantic Request/Response Schemas
=========================================================

What:  Pydantic models defining the API contract of the branch endpoints.
Why:   Input parsing, response serialization and OpenAPI doc generation.
How:   Field names are snake_case in Python; the JSON contract is camelCase
       through aliases (FastAPI serializes responses by alias).

Design Decision:
    Every field of BranchSubmission is optional at the schema level. The
    required-field check lives in BranchService because it is a truthiness
    check (0 counts as missing) that produces its own 400 envelope, rather
    than FastAPI's per-field validation error.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

# Latitude/longitude arrive as JSON numbers or numeric strings
Coordinate = Union[float, str]
# A numeric branchId stays numeric until the presence check (0 is missing)
Identifier = Union[int, str]


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class BranchSubmission(BaseModel):
    """
    What:  Body of POST /api/branches.
    Why coerce_numbers_to_str: a numeric branchName is kept as its text.
    branchId is stringified only after the presence check, so 0 is missing
    like a zero coordinate.
    """

    branch_id: Optional[Identifier] = Field(default=None, alias="branchId")
    branch_name: Optional[str] = Field(default=None, alias="branchName")
    latitude: Optional[Coordinate] = Field(default=None)
    longitude: Optional[Coordinate] = Field(default=None)
    notice_board_base64: Optional[str] = Field(default=None, alias="noticeBoardBase64")
    waiting_area_base64: Optional[str] = Field(default=None, alias="waitingAreaBase64")
    branch_board_base64: Optional[str] = Field(default=None, alias="branchBoardBase64")

    model_config = {
        "populate_by_name": True,
        "coerce_numbers_to_str": True,
        "extra": "ignore",
    }

    def image_payloads(self) -> Dict[str, Optional[str]]:
        """Payloads keyed by their JSON field name, as StorageService expects."""
        return {
            "noticeBoardBase64": self.notice_board_base64,
            "waitingAreaBase64": self.waiting_area_base64,
            "branchBoardBase64": self.branch_board_base64,
        }


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class BranchImages(BaseModel):
    """Public URLs of the uploaded images; null for roles not supplied."""

    notice_board_url: Optional[str] = Field(default=None, alias="noticeBoardUrl")
    waiting_area_url: Optional[str] = Field(default=None, alias="waitingAreaUrl")
    branch_board_url: Optional[str] = Field(default=None, alias="branchBoardUrl")

    model_config = {"populate_by_name": True}


class BranchData(BaseModel):
    branch_id: str = Field(alias="branchId")
    branch_name: str = Field(alias="branchName")
    latitude: Coordinate
    longitude: Coordinate
    timestamp: str = Field(description="Completion time (ISO 8601, UTC)")
    images: BranchImages

    model_config = {"populate_by_name": True}


class BranchSubmitResponse(BaseModel):
    """
    What:  Success envelope of POST /api/branches.
    Why sheetUpdate is untyped: it is the Sheets API append response, passed
           through unchanged for the client's diagnostics.
    """

    success: bool = True
    message: str = "Branch data appended successfully"
    data: BranchData
    sheet_update: Dict[str, Any] = Field(alias="sheetUpdate")

    model_config = {"populate_by_name": True}


class StoredImage(BaseModel):
    key: str
    url: str
    size: Optional[int] = None
    last_modified: Optional[str] = Field(default=None, alias="lastModified")

    model_config = {"populate_by_name": True}


class BranchImagesData(BaseModel):
    branch_id: str = Field(alias="branchId")
    images: List[StoredImage]

    model_config = {"populate_by_name": True}


class BranchImagesResponse(BaseModel):
    """Returned by GET /api/branches/{branchId}/images."""

    success: bool = True
    data: BranchImagesData


class ImageMetadata(BaseModel):
    key: str
    metadata: Dict[str, str] = Field(default_factory=dict)
    last_modified: Optional[str] = Field(default=None, alias="lastModified")
    content_length: Optional[int] = Field(default=None, alias="contentLength")
    content_type: Optional[str] = Field(default=None, alias="contentType")
    etag: Optional[str] = None

    model_config = {"populate_by_name": True}


class ImageMetadataResponse(BaseModel):
    """Returned by GET /api/images/metadata."""

    success: bool = True
    data: ImageMetadata


class ErrorResponse(BaseModel):
    """
    What:  Error envelope shared by every failing endpoint.

    Example:
        {
            "success": false,
            "error": "Failed to upload images to S3",
            "details": "Failed to upload notice-board for branch b1 to S3: Access Denied"
        }
    """

    success: bool = False
    error: str = Field(description="Human-readable error summary")
    details: Optional[Any] = Field(default=None, description="Underlying error message")
    required: Optional[List[str]] = Field(default=None, description="Required fields (400 only)")
    missing: Optional[List[str]] = Field(default=None, description="Missing fields (400 only)")


class HealthResponse(BaseModel):
    status: str = Field(description="Always 'OK' while the process is serving")
    message: str
