"""
Health check endpoints.
"""
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from ..schemas.account_schemas import ApiResponse

router = APIRouter(tags=["health"])


@router.get("/healthcheck", response_model=ApiResponse)
async def healthcheck():
    """Liveness endpoint inside the versioned API."""
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data={"message": "Server is running"},
        message="Success"
    )


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness check with database validation."""
    database_ok = await request.app.state.database.check_connection()
    settings = request.app.state.settings
    body = {
        "status": "ready" if database_ok else "not_ready",
        "checks": {"database": database_ok},
        "service": settings.APP_NAME,
        "version": settings.VERSION
    }
    return JSONResponse(
        status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body
    )
