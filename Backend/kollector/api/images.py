import logging
import os
from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from pydantic import BaseModel

from kollector.core.exceptions import BadRequestError, ExternalServiceError, NotFoundException
from kollector.core.security import get_current_user
from kollector.models.user import ApplicationUser
from kollector.services.image_storage import ImageStorage, content_type_for, get_image_storage

logger = logging.getLogger(__name__)

router = APIRouter()


class ImageDownloadRequest(BaseModel):
    url: str
    filename: str
    folder: Optional[str] = None


# Static routes first
@router.get("/images/health")
async def images_health(storage: ImageStorage = Depends(get_image_storage)):
    return storage.health()

@router.post("/images/download")
async def download_image(
    request: ImageDownloadRequest,
    storage: ImageStorage = Depends(get_image_storage),
    current_user: ApplicationUser = Depends(get_current_user)
):
    try:
        return await storage.download(request.url, request.filename, request.folder)
    except ValueError as e:
        raise BadRequestError(str(e))
    except httpx.HTTPError as e:
        logger.warning(f"Failed to download image from {request.url}: {e}")
        raise ExternalServiceError(f"Failed to download image: {e}")

# Images are requested by <img> tags, so serving them needs no token.
@router.get("/images/{path:path}")
async def get_image(path: str, storage: ImageStorage = Depends(get_image_storage)):
    try:
        file_path = storage.resolve(path)
    except ValueError:
        raise BadRequestError("Invalid image path")
    if not os.path.isfile(file_path):
        raise NotFoundException("Image", message=f"Image '{path}' not found")
    return FileResponse(file_path, media_type=content_type_for(file_path))
