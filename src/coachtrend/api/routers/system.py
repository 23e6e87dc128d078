from fastapi import APIRouter

from coachtrend.config import settings

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok", "version": settings.app.version, "storage": settings.storage.backend}
