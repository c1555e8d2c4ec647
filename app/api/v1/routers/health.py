from fastapi import APIRouter, Depends, Request

from app.api import deps
from app.core.health import live_payload, ready_payload
from app.core.limiter import limiter
from app.services.storage.service import DocumentStorage

router = APIRouter(tags=["health"])


@router.get("/health/live", summary="Service liveness check")
@limiter.exempt
async def health_live() -> dict:
    return await live_payload()


@router.get("/health/ready", summary="Service readiness check")
@limiter.exempt
async def health_ready(
    request: Request,
    storage: DocumentStorage = Depends(deps.get_storage),
) -> dict:
    return await ready_payload(request.app.state.database, storage)
