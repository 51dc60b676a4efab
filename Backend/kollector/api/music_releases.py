import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from kollector.core.exceptions import NotFoundException, raise_for_result
from kollector.core.security import get_acting_user_id
from kollector.repositories.unit_of_work import UnitOfWork, get_unit_of_work
from kollector.schemas.common import PagedResult
from kollector.schemas.music_release import (
    CollectionStatistics, CreateMusicReleaseResponse, MusicReleaseCreate, MusicReleaseQuery,
    MusicReleaseResponse, MusicReleaseSummary, MusicReleaseUpdate, RandomReleaseResponse, SearchSuggestion
)
from kollector.services.release_command_service import MusicReleaseCommandService
from kollector.services.release_query_service import MusicReleaseQueryService
from kollector.services.statistics_service import CollectionStatisticsService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_release_query(
    search: Optional[str] = None,
    artist_id: Optional[int] = Query(None, alias="artistId"),
    genre_id: Optional[int] = Query(None, alias="genreId"),
    label_id: Optional[int] = Query(None, alias="labelId"),
    country_id: Optional[int] = Query(None, alias="countryId"),
    format_id: Optional[int] = Query(None, alias="formatId"),
    kollection_id: Optional[int] = Query(None, alias="kollectionId"),
    live: Optional[bool] = None,
    year_from: Optional[int] = Query(None, alias="yearFrom"),
    year_to: Optional[int] = Query(None, alias="yearTo"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    page: int = 1,
    page_size: int = Query(20, alias="pageSize")
) -> MusicReleaseQuery:
    return MusicReleaseQuery(
        search=search, artist_id=artist_id, genre_id=genre_id, label_id=label_id,
        country_id=country_id, format_id=format_id, kollection_id=kollection_id, live=live,
        year_from=year_from, year_to=year_to, sort_by=sort_by, sort_order=sort_order,
        page=page, page_size=page_size
    )


# Static routes first
@router.get("/musicreleases", response_model=PagedResult[MusicReleaseSummary])
async def list_music_releases(
    query: MusicReleaseQuery = Depends(get_release_query),
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    """Filtered, sorted and paged release summaries of the acting user."""
    return await MusicReleaseQueryService(uow).get_music_releases(user_id, query)

@router.get("/musicreleases/suggestions", response_model=List[SearchSuggestion])
async def search_suggestions(
    query: Optional[str] = None,
    limit: int = 10,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    return await MusicReleaseQueryService(uow).get_search_suggestions(user_id, query, limit)

@router.get("/musicreleases/statistics", response_model=CollectionStatistics)
async def collection_statistics(
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    return await CollectionStatisticsService(uow).get_statistics(user_id)

@router.get("/musicreleases/random", response_model=RandomReleaseResponse)
async def random_music_release(
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    release_id = await MusicReleaseQueryService(uow).get_random_release_id(user_id)
    if release_id is None:
        raise NotFoundException("Music release", message="No music releases found")
    return RandomReleaseResponse(id=release_id)

@router.post("/musicreleases", response_model=CreateMusicReleaseResponse, status_code=status.HTTP_201_CREATED)
async def create_music_release(
    data: MusicReleaseCreate,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    return raise_for_result(await MusicReleaseCommandService(uow).create_music_release(user_id, data))

# Dynamic routes after static ones
@router.get("/musicreleases/{release_id}", response_model=MusicReleaseResponse)
async def read_music_release(
    release_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    return raise_for_result(await MusicReleaseQueryService(uow).get_music_release(user_id, release_id))

@router.put("/musicreleases/{release_id}", response_model=MusicReleaseResponse)
async def update_music_release(
    release_id: int,
    data: MusicReleaseUpdate,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    return raise_for_result(await MusicReleaseCommandService(uow).update_music_release(user_id, release_id, data))

@router.delete("/musicreleases/{release_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_music_release(
    release_id: int,
    user_id: uuid.UUID = Depends(get_acting_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work)
):
    raise_for_result(await MusicReleaseCommandService(uow).delete_music_release(user_id, release_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
