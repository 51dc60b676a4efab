import logging
import random
import uuid
from typing import List, Optional

from sqlalchemy import extract, func, or_, select

from kollector.core.result import Result
from kollector.models.kollection import KollectionItem
from kollector.models.lookups import Artist, Label
from kollector.models.music_release import MusicRelease
from kollector.models.now_playing import NowPlaying
from kollector.repositories.base import Page
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.common import PagedResult
from kollector.schemas.music_release import (
    MusicReleaseQuery, MusicReleaseResponse, MusicReleaseSummary, SearchSuggestion
)
from kollector.services.release_mapper import MusicReleaseMapper, parse_id_list

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
MIN_SUGGESTION_LENGTH = 2
DEFAULT_SUGGESTION_LIMIT = 10


def json_array_contains(column, value: int):
    """Match a compact JSON id array such as "[3,17,42]" containing value."""
    return or_(
        column == f"[{value}]",
        column.like(f"[{value},%"),
        column.like(f"%,{value}]"),
        column.like(f"%,{value},%"),
    )


class MusicReleaseQueryService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.mapper = MusicReleaseMapper(uow)

    def build_filters(self, user_id: uuid.UUID, query: MusicReleaseQuery) -> list:
        filters = [MusicRelease.user_id == user_id]
        if query.search and query.search.strip():
            filters.append(func.lower(MusicRelease.title).contains(query.search.strip().lower()))
        if query.artist_id is not None:
            filters.append(json_array_contains(MusicRelease.artists, query.artist_id))
        if query.genre_id is not None:
            filters.append(json_array_contains(MusicRelease.genres, query.genre_id))
        if query.label_id is not None:
            filters.append(MusicRelease.label_id == query.label_id)
        if query.country_id is not None:
            filters.append(MusicRelease.country_id == query.country_id)
        if query.format_id is not None:
            filters.append(MusicRelease.format_id == query.format_id)
        if query.kollection_id is not None:
            filters.append(MusicRelease.id.in_(
                select(KollectionItem.music_release_id).where(KollectionItem.kollection_id == query.kollection_id)
            ))
        if query.live is not None:
            filters.append(MusicRelease.live == query.live)
        if query.year_from is not None:
            filters.append(extract("year", MusicRelease.release_year) >= query.year_from)
        if query.year_to is not None:
            filters.append(extract("year", MusicRelease.release_year) <= query.year_to)
        return filters

    @staticmethod
    def _order_by(sort_by: Optional[str], descending: bool) -> list:
        column = {
            "dateadded": MusicRelease.date_added,
            "origreleaseyear": MusicRelease.orig_release_year,
        }.get((sort_by or "").lower(), MusicRelease.title)
        if descending:
            return [column.desc(), MusicRelease.id.desc()]
        return [column.asc(), MusicRelease.id.asc()]

    async def get_music_releases(self, user_id: uuid.UUID, query: MusicReleaseQuery) -> PagedResult[MusicReleaseSummary]:
        page = max(query.page, 1)
        page_size = query.page_size if query.page_size >= 1 else DEFAULT_PAGE_SIZE
        page_size = min(page_size, MAX_PAGE_SIZE)
        descending = (query.sort_order or "asc").lower() == "desc"
        filters = self.build_filters(user_id, query)

        if (query.sort_by or "").lower() == "artist":
            return await self._get_sorted_by_artist(filters, page, page_size, descending)

        result_page = await self.uow.music_releases.get_paged(
            page, page_size, filter=filters, order_by=self._order_by(query.sort_by, descending)
        )
        items = await self.mapper.to_summaries(result_page.items)
        return PagedResult.from_page(result_page, items)

    async def _get_sorted_by_artist(self, filters: list, page: int, page_size: int, descending: bool):
        # The first artist's name lives in another table behind a JSON array,
        # so this ordering is applied in memory.
        releases = await self.uow.music_releases.get(filter=filters, order_by=MusicRelease.title)
        summaries = await self.mapper.to_summaries(releases)
        summaries.sort(
            key=lambda s: ((s.artist_names[0] if s.artist_names else "").lower(), s.title.lower()),
            reverse=descending
        )
        start = (page - 1) * page_size
        result_page = Page(items=summaries[start:start + page_size], page=page, page_size=page_size,
                           total_count=len(summaries))
        return PagedResult.from_page(result_page, result_page.items)

    async def get_last_played_at(self, release_id: int):
        return await self.uow.session.scalar(
            select(func.max(NowPlaying.played_at)).where(NowPlaying.music_release_id == release_id)
        )

    async def get_music_release(self, user_id: uuid.UUID, release_id: int) -> Result[MusicReleaseResponse]:
        release = await self.uow.music_releases.get_by_id(release_id)
        if release is None or release.user_id != user_id:
            return Result.not_found("Music release", release_id)

        last_played_at = await self.get_last_played_at(release_id)
        return Result.success(await self.mapper.to_response(release, last_played_at))

    async def get_search_suggestions(self, user_id: uuid.UUID, query: Optional[str],
                                     limit: int = DEFAULT_SUGGESTION_LIMIT) -> List[SearchSuggestion]:
        if not query or len(query.strip()) < MIN_SUGGESTION_LENGTH:
            return []
        if limit < 1:
            limit = DEFAULT_SUGGESTION_LIMIT
        term = query.strip().lower()

        releases = await self.uow.music_releases.get(
            filter=[MusicRelease.user_id == user_id, func.lower(MusicRelease.title).contains(term)],
            order_by=MusicRelease.title
        )
        artists = await self.uow.artists.get(
            filter=[Artist.user_id == user_id, func.lower(Artist.name).contains(term)],
            order_by=Artist.name
        )
        labels = await self.uow.labels.get(
            filter=[Label.user_id == user_id, func.lower(Label.name).contains(term)],
            order_by=Label.name
        )

        suggestions = [
            SearchSuggestion(
                type="release",
                id=r.id,
                name=r.title,
                subtitle=str(r.release_year.year) if r.release_year else None
            )
            for r in releases[:limit]
        ]
        suggestions += [SearchSuggestion(type="artist", id=a.id, name=a.name) for a in artists[:limit]]
        suggestions += [SearchSuggestion(type="label", id=l.id, name=l.name) for l in labels[:limit]]

        suggestions.sort(key=lambda s: (not s.name.lower().startswith(term), s.name.lower()))
        return suggestions[:limit]

    async def get_random_release_id(self, user_id: uuid.UUID) -> Optional[int]:
        total = await self.uow.music_releases.count(MusicRelease.user_id == user_id)
        if total == 0:
            return None

        skip = random.randrange(total)
        return await self.uow.session.scalar(
            select(MusicRelease.id)
            .where(MusicRelease.user_id == user_id)
            .order_by(MusicRelease.id)
            .offset(skip)
            .limit(1)
        )
