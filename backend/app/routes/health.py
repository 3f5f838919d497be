"""
BranchRelay Backend — Health Check Route
==========================================

What:  Liveness endpoint for load balancers and uptime monitors.
Why:   Answers as long as the process serves HTTP. It deliberately does not
       probe S3 or Google Sheets: a missing credential is reported per
       request, and the probe must stay up so operators can see the service.
"""

import logging

from fastapi import APIRouter

from app.schemas.branch import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="OK", message="Branch Data API is running")
