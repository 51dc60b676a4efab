import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status

from kollector.core.exceptions import raise_for_result
from kollector.core.security import get_acting_user_id
from kollector.repositories.unit_of_work import UnitOfWork, get_unit_of_work
from kollector.schemas.music_release import MusicReleaseSummary
from kollector.schemas.user_list import (
    AddToListRequest, ListCreate, ListReleaseAdd, ListResponse, ListSummary, ListUpdate
)
from kollector.services.list_service import ListService

router = APIRouter()


def get_list_service(uow: UnitOfWork = Depends(get_unit_of_work)) -> ListService:
    return ListService(uow)


@router.get("/lists", response_model=List[ListSummary])
async def list_lists(
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: ListService = Depends(get_list_service)
):
    return raise_for_result(await service.get_lists(user_id))

@router.post("/lists", response_model=ListResponse, status_code=status.HTTP_201_CREATED)
async def create_list(
    data: ListCreate,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: ListService = Depends(get_list_service)
):
    return raise_for_result(await service.create_list(user_id, data))

@router.post("/lists/add-release", response_model=ListResponse)
async def add_release(
    request: AddToListRequest,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: ListService = Depends(get_list_service)
):
    """Add a release to an existing list, or to a list created from new_list_name."""
    return raise_for_result(await service.add_release_to_list(user_id, request))

@router.get("/lists/by-release/{release_id}", response_model=List[ListSummary])
async def lists_by_release(
    release_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: ListService = Depends(get_list_service)
):
    return raise_for_result(await service.get_lists_by_release(user_id, release_id))

@router.get("/lists/{list_id}", response_model=ListResponse)
async def get_list(
    list_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: ListService = Depends(get_list_service)
):
    return raise_for_result(await service.get_list(user_id, list_id))

@router.get("/lists/{list_id}/releases", response_model=List[MusicReleaseSummary])
async def get_list_releases(
    list_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: ListService = Depends(get_list_service)
):
    return raise_for_result(await service.get_list_releases(user_id, list_id))

@router.put("/lists/{list_id}", response_model=ListResponse)
async def update_list(
    list_id: int,
    data: ListUpdate,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: ListService = Depends(get_list_service)
):
    return raise_for_result(await service.update_list(user_id, list_id, data))

@router.delete("/lists/{list_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_list(
    list_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: ListService = Depends(get_list_service)
):
    raise_for_result(await service.delete_list(user_id, list_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/lists/{list_id}/releases", response_model=ListResponse)
async def add_release_to_list(
    list_id: int,
    data: ListReleaseAdd,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: ListService = Depends(get_list_service)
):
    request = AddToListRequest(release_id=data.release_id, list_id=list_id)
    return raise_for_result(await service.add_release_to_list(user_id, request))

@router.delete("/lists/{list_id}/releases/{release_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_release_from_list(
    list_id: int,
    release_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: ListService = Depends(get_list_service)
):
    raise_for_result(await service.remove_release_from_list(user_id, list_id, release_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
