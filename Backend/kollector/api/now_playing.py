import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from kollector.core.exceptions import raise_for_result
from kollector.core.security import get_acting_user_id
from kollector.repositories.unit_of_work import UnitOfWork, get_unit_of_work
from kollector.schemas.now_playing import NowPlayingCreate, NowPlayingResponse, PlayHistory, RecentlyPlayedItem
from kollector.services.now_playing_service import DEFAULT_RECENT_LIMIT, NowPlayingService

router = APIRouter()


def get_now_playing_service(uow: UnitOfWork = Depends(get_unit_of_work)) -> NowPlayingService:
    return NowPlayingService(uow)


@router.post("/nowplaying", response_model=NowPlayingResponse, status_code=status.HTTP_201_CREATED)
async def create_now_playing(
    data: NowPlayingCreate,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: NowPlayingService = Depends(get_now_playing_service)
):
    return raise_for_result(await service.create(user_id, data))

@router.get("/nowplaying/recent", response_model=List[RecentlyPlayedItem])
async def recently_played(
    limit: int = DEFAULT_RECENT_LIMIT,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: NowPlayingService = Depends(get_now_playing_service)
):
    return await service.get_recently_played(user_id, limit)

@router.get("/nowplaying/release/{release_id}/last", response_model=Optional[datetime])
async def last_played(
    release_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: NowPlayingService = Depends(get_now_playing_service)
):
    return await service.get_last_played(user_id, release_id)

@router.get("/nowplaying/release/{release_id}/history", response_model=PlayHistory)
async def play_history(
    release_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: NowPlayingService = Depends(get_now_playing_service)
):
    return await service.get_history(user_id, release_id)

@router.get("/nowplaying/{play_id}", response_model=NowPlayingResponse)
async def get_now_playing(
    play_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: NowPlayingService = Depends(get_now_playing_service)
):
    return raise_for_result(await service.get(user_id, play_id))

@router.delete("/nowplaying/{play_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_now_playing(
    play_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    service: NowPlayingService = Depends(get_now_playing_service)
):
    raise_for_result(await service.delete(user_id, play_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
