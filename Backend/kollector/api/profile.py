import uuid

from fastapi import APIRouter, Depends

from kollector.core.exceptions import raise_for_result
from kollector.core.security import get_acting_user_id
from kollector.repositories.unit_of_work import UnitOfWork, get_unit_of_work
from kollector.schemas.user import DeleteCollectionResponse, UpdateProfileRequest, UserProfileResponse
from kollector.services.profile_service import ProfileService

router = APIRouter()


@router.get("/profile", response_model=UserProfileResponse)
async def get_profile(
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    return raise_for_result(await ProfileService(uow).get_profile(user_id))

@router.put("/profile", response_model=UserProfileResponse)
async def update_profile(
    data: UpdateProfileRequest,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    return raise_for_result(await ProfileService(uow).update_profile(user_id, data))

@router.delete("/profile/collection", response_model=DeleteCollectionResponse)
async def delete_collection(
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    """Delete every release of the acting user, image files included."""
    return await ProfileService(uow).delete_collection(user_id)
