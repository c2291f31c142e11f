import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from techit.core.config import APP_ENV

health_route = APIRouter(
    prefix="/api",
    tags=["Health Check"]
)


@health_route.get("/health")
def health(request: Request):
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "environment": APP_ENV,
    }
