import logging
import uuid
from collections import Counter
from typing import Dict, List, Optional

from kollector.models.lookups import Country, Format, Genre
from kollector.models.music_release import MusicRelease
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.music_release import CollectionStatistics, NamedStatistic, YearStatistic
from kollector.services.release_mapper import MusicReleaseMapper, parse_id_list, parse_purchase_info

logger = logging.getLogger(__name__)

TOP_COUNTRIES = 10
TOP_GENRES = 15
RECENTLY_ADDED = 10
UNKNOWN = "Unknown"


def _percentage(count: int, total: int) -> float:
    return round(count * 100.0 / total, 2) if total else 0.0


class CollectionStatisticsService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.mapper = MusicReleaseMapper(uow)

    def _named(self, counts: Counter, names: Dict[int, str], total: int, limit: Optional[int] = None) -> List[NamedStatistic]:
        stats = [
            NamedStatistic(id=entity_id, name=names.get(entity_id, UNKNOWN), count=count,
                           percentage=_percentage(count, total))
            for entity_id, count in counts.items()
        ]
        stats.sort(key=lambda s: (-s.count, s.name))
        return stats[:limit] if limit else stats

    async def get_statistics(self, user_id: uuid.UUID) -> CollectionStatistics:
        releases = await self.uow.music_releases.get(filter=MusicRelease.user_id == user_id)
        total = len(releases)
        if total == 0:
            return CollectionStatistics()

        artist_ids = {i for r in releases for i in parse_id_list(r.artists)}
        genre_counts = Counter(i for r in releases for i in set(parse_id_list(r.genres)))
        label_ids = {r.label_id for r in releases if r.label_id is not None}
        year_counts = Counter(r.release_year.year for r in releases if r.release_year)
        format_counts = Counter(r.format_id for r in releases if r.format_id is not None)
        country_counts = Counter(r.country_id for r in releases if r.country_id is not None)

        format_names = await self.mapper.names_by_id(Format, format_counts.keys())
        country_names = await self.mapper.names_by_id(Country, country_counts.keys())
        genre_names = await self.mapper.names_by_id(Genre, genre_counts.keys())

        priced = []
        for release in releases:
            purchase_info = parse_purchase_info(release.purchase_info)
            if purchase_info and purchase_info.price and purchase_info.price > 0:
                priced.append((purchase_info.price, release))

        total_value = round(sum(price for price, _ in priced), 2) if priced else None
        average_price = round(total_value / len(priced), 2) if priced else None
        most_expensive = None
        if priced:
            most_expensive = await self.mapper.to_summary(max(priced, key=lambda p: p[0])[1])

        recent = sorted(releases, key=lambda r: r.date_added, reverse=True)[:RECENTLY_ADDED]

        logger.info(f"Computed collection statistics for user {user_id} over {total} releases")
        return CollectionStatistics(
            total_releases=total,
            total_artists=len(artist_ids),
            total_genres=len(genre_counts),
            total_labels=len(label_ids),
            releases_by_year=[YearStatistic(year=y, count=c) for y, c in sorted(year_counts.items())],
            releases_by_format=self._named(format_counts, format_names, total),
            releases_by_country=self._named(country_counts, country_names, total, TOP_COUNTRIES),
            releases_by_genre=self._named(genre_counts, genre_names, total, TOP_GENRES),
            total_value=total_value,
            average_price=average_price,
            most_expensive_release=most_expensive,
            recently_added=await self.mapper.to_summaries(recent)
        )
