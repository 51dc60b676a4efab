import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status

from kollector.core.exceptions import raise_for_result
from kollector.core.security import get_acting_user_id
from kollector.repositories.unit_of_work import UnitOfWork, get_unit_of_work
from kollector.schemas.kollection import (
    AddToKollectionRequest, KollectionCreate, KollectionResponse, KollectionSummary, KollectionUpdate
)
from kollector.services.kollection_service import KollectionService

router = APIRouter()


def get_kollection_service(uow: UnitOfWork = Depends(get_unit_of_work)) -> KollectionService:
    return KollectionService(uow)


@router.get("/kollections", response_model=List[KollectionSummary])
async def list_kollections(
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: KollectionService = Depends(get_kollection_service)
):
    return await service.get_all(user_id)

@router.post("/kollections", response_model=KollectionSummary, status_code=status.HTTP_201_CREATED)
async def create_kollection(
    data: KollectionCreate,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: KollectionService = Depends(get_kollection_service)
):
    return raise_for_result(await service.create(user_id, data))

@router.post("/kollections/add-release", response_model=KollectionSummary)
async def add_release_to_kollection(
    request: AddToKollectionRequest,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: KollectionService = Depends(get_kollection_service)
):
    """Add a release to an existing kollection, or create the kollection first."""
    return raise_for_result(await service.add_release(user_id, request))

@router.get("/kollections/{kollection_id}", response_model=KollectionResponse)
async def get_kollection(
    kollection_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: KollectionService = Depends(get_kollection_service)
):
    return raise_for_result(await service.get(user_id, kollection_id))

@router.put("/kollections/{kollection_id}", response_model=KollectionSummary)
async def update_kollection(
    kollection_id: int,
    data: KollectionUpdate,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: KollectionService = Depends(get_kollection_service)
):
    return raise_for_result(await service.update(user_id, kollection_id, data))

@router.delete("/kollections/{kollection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_kollection(
    kollection_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: KollectionService = Depends(get_kollection_service)
):
    raise_for_result(await service.delete(user_id, kollection_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.delete("/kollections/{kollection_id}/releases/{release_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_release_from_kollection(
    kollection_id: int,
    release_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: KollectionService = Depends(get_kollection_service)
):
    raise_for_result(await service.remove_release(user_id, kollection_id, release_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
