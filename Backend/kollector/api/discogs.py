import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from kollector.core.exceptions import BadRequestError, NotFoundException
from kollector.core.security import get_current_user
from kollector.models.user import ApplicationUser
from kollector.schemas.discogs import DiscogsRelease, DiscogsSearchResult
from kollector.services.discogs import DiscogsService, get_discogs_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/discogs/search", response_model=List[DiscogsSearchResult])
async def search_discogs(
    catalog_number: Optional[str] = Query(None, alias="catalogNumber"),
    format: Optional[str] = None,
    country: Optional[str] = None,
    year: Optional[int] = None,
    discogs_service: DiscogsService = Depends(get_discogs_service),
    current_user: ApplicationUser = Depends(get_current_user)
):
    """Search Discogs releases by catalog number."""
    if not catalog_number or not catalog_number.strip():
        raise BadRequestError("Catalog number is required")
    return await discogs_service.search_by_catalog_number(catalog_number.strip(), format, country, year)

@router.get("/discogs/release/{release_id}", response_model=DiscogsRelease)
async def get_discogs_release(
    release_id: str,
    discogs_service: DiscogsService = Depends(get_discogs_service),
    current_user: ApplicationUser = Depends(get_current_user)
):
    if not release_id.strip():
        raise BadRequestError("Release ID is required")
    release = await discogs_service.get_release_details(release_id)
    if release is None:
        logger.warning(f"Discogs release {release_id} not found")
        raise NotFoundException("Discogs release", release_id)
    return release
