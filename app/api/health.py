from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
async def root():
    return "Licence backend OK"


@router.get("/health")
async def health():
    return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}
