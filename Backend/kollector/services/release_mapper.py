"""Conversion between MusicRelease rows and the API shapes.

The JSON columns of a release hold compact JSON. Lookup names are resolved
in batches so a page of summaries costs one query per lookup table.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel, ValidationError
from sqlalchemy import select

from kollector.models.lookups import Artist, Country, Format, Genre, Label, Packaging, Store
from kollector.models.music_release import MusicRelease
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.lookup import LookupResponse
from kollector.schemas.music_release import (
    MusicReleaseResponse, MusicReleaseSummary, PurchaseInfo, ReleaseImages, ReleaseLink, ReleaseMedia
)

logger = logging.getLogger(__name__)


def dump_json(value: Any) -> Optional[str]:
    """Serialize ids, dicts or pydantic models to compact JSON (None stays None)."""
    if value is None:
        return None
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    elif isinstance(value, list):
        value = [v.model_dump(mode="json") if isinstance(v, BaseModel) else v for v in value]
    return json.dumps(value, separators=(",", ":"))


def load_json(text: Optional[str]) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        logger.warning(f"Ignoring malformed JSON column value: {text[:100]}")
        return None


def parse_id_list(text: Optional[str]) -> List[int]:
    values = load_json(text)
    if not isinstance(values, list):
        return []
    ids = []
    for value in values:
        try:
            ids.append(int(value))
        except (TypeError, ValueError):
            continue
    return ids


def dump_purchase_info(purchase_info: Optional[PurchaseInfo]) -> Optional[str]:
    # The store name is derived from store_id on read and is not stored.
    if purchase_info is None:
        return None
    return json.dumps(purchase_info.model_dump(mode="json", exclude={"store_name"}), separators=(",", ":"))


def _parse_model(model: Type[BaseModel], text: Optional[str]):
    data = load_json(text)
    if data is None:
        return None
    try:
        return model.model_validate(data)
    except ValidationError:
        logger.warning(f"Stored {model.__name__} does not match the expected shape")
        return None


def _parse_model_list(model: Type[BaseModel], text: Optional[str]):
    data = load_json(text)
    if not isinstance(data, list):
        return None
    try:
        return [model.model_validate(item) for item in data]
    except ValidationError:
        logger.warning(f"Stored {model.__name__} list does not match the expected shape")
        return None


def parse_images(text: Optional[str]) -> Optional[ReleaseImages]:
    return _parse_model(ReleaseImages, text)


def parse_purchase_info(text: Optional[str]) -> Optional[PurchaseInfo]:
    return _parse_model(PurchaseInfo, text)


def release_year_of(release: MusicRelease) -> Optional[int]:
    value: Optional[datetime] = release.release_year
    return value.year if value else None


class MusicReleaseMapper:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def names_by_id(self, model: Type, ids: Iterable[int]) -> Dict[int, str]:
        wanted = {i for i in ids if i is not None}
        if not wanted:
            return {}
        result = await self.uow.session.execute(select(model.id, model.name).where(model.id.in_(wanted)))
        return {row.id: row.name for row in result}

    async def _lookup(self, model: Type, entity_id: Optional[int]) -> Optional[LookupResponse]:
        if entity_id is None:
            return None
        entity = await self.uow.repository(model).get_by_id(entity_id)
        return LookupResponse.model_validate(entity) if entity else None

    async def _lookup_list(self, model: Type, ids: List[int]) -> List[LookupResponse]:
        names = await self.names_by_id(model, ids)
        return [LookupResponse(id=i, name=names[i]) for i in ids if i in names]

    async def to_summaries(self, releases: List[MusicRelease]) -> List[MusicReleaseSummary]:
        artist_ids = {i for r in releases for i in parse_id_list(r.artists)}
        genre_ids = {i for r in releases for i in parse_id_list(r.genres)}
        artists = await self.names_by_id(Artist, artist_ids)
        genres = await self.names_by_id(Genre, genre_ids)
        labels = await self.names_by_id(Label, (r.label_id for r in releases))
        formats = await self.names_by_id(Format, (r.format_id for r in releases))
        countries = await self.names_by_id(Country, (r.country_id for r in releases))

        summaries = []
        for release in releases:
            images = parse_images(release.images)
            summaries.append(MusicReleaseSummary(
                id=release.id,
                title=release.title,
                release_year=release.release_year,
                orig_release_year=release.orig_release_year,
                artist_names=[artists[i] for i in parse_id_list(release.artists) if i in artists],
                genre_names=[genres[i] for i in parse_id_list(release.genres) if i in genres],
                label_name=labels.get(release.label_id),
                format_name=formats.get(release.format_id),
                country_name=countries.get(release.country_id),
                cover_image_url=images.cover_front if images else None,
                live=release.live,
                date_added=release.date_added
            ))
        return summaries

    async def to_summary(self, release: MusicRelease) -> MusicReleaseSummary:
        return (await self.to_summaries([release]))[0]

    async def to_response(self, release: MusicRelease, last_played_at: Optional[datetime] = None) -> MusicReleaseResponse:
        purchase_info = parse_purchase_info(release.purchase_info)
        if purchase_info and purchase_info.store_id is not None:
            store = await self.uow.stores.get_by_id(purchase_info.store_id)
            purchase_info.store_name = store.name if store else None

        return MusicReleaseResponse(
            id=release.id,
            discogs_id=release.discogs_id,
            title=release.title,
            release_year=release.release_year,
            orig_release_year=release.orig_release_year,
            live=release.live,
            label_number=release.label_number,
            upc=release.upc,
            length_in_seconds=release.length_in_seconds,
            notes=release.notes,
            artists=await self._lookup_list(Artist, parse_id_list(release.artists)),
            genres=await self._lookup_list(Genre, parse_id_list(release.genres)),
            label=await self._lookup(Label, release.label_id),
            country=await self._lookup(Country, release.country_id),
            format=await self._lookup(Format, release.format_id),
            packaging=await self._lookup(Packaging, release.packaging_id),
            purchase_info=purchase_info,
            images=parse_images(release.images),
            links=_parse_model_list(ReleaseLink, release.links),
            media=_parse_model_list(ReleaseMedia, release.media),
            date_added=release.date_added,
            last_modified=release.last_modified,
            last_played_at=last_played_at
        )
