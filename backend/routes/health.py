#  Voice Tutor - Health Route
#
#  Public liveness probe (no auth, no rate limit).
#
#  Depends on: (none)
#  Used by:    app.py

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}
