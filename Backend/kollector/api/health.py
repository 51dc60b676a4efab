from fastapi import APIRouter

from kollector.core.config import settings
from kollector.services.database import utcnow

router = APIRouter()

SERVICE_NAME = "KollectorScum API"


@router.get("/health")
async def health():
    return {
        "status": "Healthy",
        "timestamp": utcnow().isoformat(),
        "service": SERVICE_NAME,
        "version": settings.APP_VERSION,
    }
