import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from kollector.core.exceptions import BadRequestError
from kollector.core.security import get_acting_user_id
from kollector.repositories.unit_of_work import UnitOfWork, get_unit_of_work
from kollector.schemas.discogs import DiscogsImportRequest, DiscogsImportResult
from kollector.services.discogs import DiscogsService, get_discogs_service
from kollector.services.discogs_import_service import DiscogsImportService

router = APIRouter()


@router.post("/import/discogs", response_model=DiscogsImportResult)
async def import_discogs_collection(
    request: DiscogsImportRequest,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
    discogs_service: DiscogsService = Depends(get_discogs_service)
):
    """Import the public Discogs collection of `username` into the acting user's catalog."""
    if not request.username or not request.username.strip():
        raise BadRequestError("Username is required")

    result = await DiscogsImportService(uow, discogs_service).import_collection(request.username.strip(), user_id)
    if not result.success:
        return JSONResponse(status_code=500, content=result.model_dump())
    return result
