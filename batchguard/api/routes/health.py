from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service health.
    Not rate limited.

    Returns:
        dict: ``status`` set to "ok" and the server's current UTC timestamp.
    """

    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
