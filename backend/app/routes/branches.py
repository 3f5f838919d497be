"""
BranchRelay Backend — Branch Route Handlers
=============================================

What:  HTTP entry points for branch submissions and stored-image lookups.
How:   Each handler parses the request, delegates to a service, and returns a
       response model. Failures propagate as application exceptions and are
       formatted by the global handlers in main.py.

Endpoints:
    POST /api/branches                     submit branch data + images
    GET  /api/branches/{branch_id}/images  list stored images of a branch
    GET  /api/images/metadata?url=...      S3 metadata of one stored image
"""

import logging

from fastapi import APIRouter, Query

from app.schemas.branch import (
    BranchImagesData,
    BranchImagesResponse,
    BranchSubmission,
    BranchSubmitResponse,
    ErrorResponse,
    ImageMetadata,
    ImageMetadataResponse,
    StoredImage,
)
from app.services.branch_service import branch_service
from app.services.storage_service import storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Branches"])


@router.post(
    "/branches",
    response_model=BranchSubmitResponse,
    responses={
        400: {"description": "Missing required fields", "model": ErrorResponse},
        413: {"description": "Request body too large", "model": ErrorResponse},
        500: {"description": "Image upload or sheet append failed", "model": ErrorResponse},
    },
    summary="Submit branch data and images",
    description=(
        "Uploads up to three base64 images (notice board, waiting area, branch "
        "board) to S3 and appends the branch row with the image URLs to the "
        "Google Sheet."
    ),
)
async def submit_branch(submission: BranchSubmission) -> BranchSubmitResponse:
    logger.info(
        "Received branch submission: branchId=%s images=%s",
        submission.branch_id,
        [field for field, payload in submission.image_payloads().items() if payload],
    )
    return await branch_service.submit_branch(submission)


@router.get(
    "/branches/{branch_id}/images",
    response_model=BranchImagesResponse,
    responses={500: {"description": "S3 listing failed", "model": ErrorResponse}},
    summary="List stored images of a branch",
)
async def list_branch_images(branch_id: str) -> BranchImagesResponse:
    images = await storage_service.list_branch_images(branch_id)
    return BranchImagesResponse(
        data=BranchImagesData(
            branch_id=branch_id,
            images=[StoredImage(**image) for image in images],
        )
    )


@router.get(
    "/images/metadata",
    response_model=ImageMetadataResponse,
    responses={
        404: {"description": "Image not found", "model": ErrorResponse},
        500: {"description": "S3 lookup failed", "model": ErrorResponse},
    },
    summary="Get S3 metadata of a stored image",
)
async def get_image_metadata(
    url: str = Query(..., description="Public URL returned by POST /api/branches"),
) -> ImageMetadataResponse:
    metadata = await storage_service.get_image_metadata(url)
    return ImageMetadataResponse(data=ImageMetadata(**metadata))
