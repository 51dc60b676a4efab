"""CRUD routes for the lookup tables.

All seven lookups share the same shape, so one factory builds a router per
table: /artists, /countries, /formats, /genres, /labels, /packagings, /stores.
"""

import uuid
from typing import Optional, Type

from fastapi import APIRouter, Depends, Query, Response, status

from kollector.core.exceptions import BadRequestError, raise_for_result
from kollector.core.security import get_acting_user_id
from kollector.models.lookups import Artist, Country, Format, Genre, Label, Packaging, Store
from kollector.repositories.unit_of_work import UnitOfWork, get_unit_of_work
from kollector.schemas.common import PagedResult
from kollector.schemas.lookup import LookupCreate, LookupResponse, LookupUpdate
from kollector.services.lookup_service import LookupService

MAX_PAGE_SIZE = 5000


def build_lookup_router(model: Type, entity_name: str, path: str) -> APIRouter:
    router = APIRouter()

    def get_service(uow: UnitOfWork = Depends(get_unit_of_work)) -> LookupService:
        return LookupService(uow, model, entity_name)

    @router.get(f"/{path}", response_model=PagedResult[LookupResponse])
    async def list_entities(
        page: int = 1,
        page_size: int = Query(50, alias="pageSize"),
        search: Optional[str] = None,
        user_id: uuid.UUID = Depends(get_acting_user_id),
        service: LookupService = Depends(get_service)
    ):
        if page < 1:
            raise BadRequestError("Page must be greater than 0")
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise BadRequestError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")
        return await service.get_all(user_id, page, page_size, search)

    @router.get(f"/{path}/{{entity_id}}", response_model=LookupResponse)
    async def get_entity(
        entity_id: int,
        user_id: uuid.UUID = Depends(get_acting_user_id),
        service: LookupService = Depends(get_service)
    ):
        if entity_id <= 0:
            raise BadRequestError("Invalid ID")
        return raise_for_result(await service.get_by_id(user_id, entity_id))

    @router.post(f"/{path}", response_model=LookupResponse, status_code=status.HTTP_201_CREATED)
    async def create_entity(
        data: LookupCreate,
        user_id: uuid.UUID = Depends(get_acting_user_id),
        service: LookupService = Depends(get_service)
    ):
        return raise_for_result(await service.create(user_id, data))

    @router.put(f"/{path}/{{entity_id}}", response_model=LookupResponse)
    async def update_entity(
        entity_id: int,
        data: LookupUpdate,
        user_id: uuid.UUID = Depends(get_acting_user_id),
        service: LookupService = Depends(get_service)
    ):
        if entity_id <= 0:
            raise BadRequestError("Invalid ID")
        return raise_for_result(await service.update(user_id, entity_id, data))

    @router.delete(f"/{path}/{{entity_id}}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_entity(
        entity_id: int,
        user_id: uuid.UUID = Depends(get_acting_user_id),
        service: LookupService = Depends(get_service)
    ):
        if entity_id <= 0:
            raise BadRequestError("Invalid ID")
        raise_for_result(await service.delete(user_id, entity_id))
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


artists = build_lookup_router(Artist, "Artist", "artists")
countries = build_lookup_router(Country, "Country", "countries")
formats = build_lookup_router(Format, "Format", "formats")
genres = build_lookup_router(Genre, "Genre", "genres")
labels = build_lookup_router(Label, "Label", "labels")
packagings = build_lookup_router(Packaging, "Packaging", "packagings")
stores = build_lookup_router(Store, "Store", "stores")

routers = [
    (artists, "Artists"),
    (countries, "Countries"),
    (formats, "Formats"),
    (genres, "Genres"),
    (labels, "Labels"),
    (packagings, "Packagings"),
    (stores, "Stores"),
]
