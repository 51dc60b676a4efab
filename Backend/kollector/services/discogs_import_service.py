"""Import a user's Discogs collection into their catalog.

Each collection entry becomes one MusicRelease. Lookups (format, label,
country, artists, genres) are matched by name or created, and cached for the
duration of one import. Entries whose Discogs id the user already owns are
skipped, so an import can be re-run safely.
"""

import asyncio
import datetime
import logging
import re
import time
import uuid
from typing import Dict, List, Optional, Tuple, Type

import httpx

from kollector.core.config import settings
from kollector.models.lookups import Artist, Country, Format, Genre, Label
from kollector.models.music_release import MusicRelease
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.discogs import DiscogsBasicInformation, DiscogsCollectionRelease, DiscogsImportResult
from kollector.services.database import utcnow
from kollector.services.discogs import COLLECTION_PAGE_SIZE, DiscogsService
from kollector.services.lookup_service import LookupService
from kollector.services.release_mapper import dump_json

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 200
INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_filename(filename: str) -> str:
    sanitized = INVALID_FILENAME_CHARS.sub("_", filename)
    if len(sanitized) > MAX_FILENAME_LENGTH:
        stem, dot, extension = sanitized.rpartition(".")
        suffix = f"{dot}{extension}" if dot else ""
        sanitized = sanitized[:MAX_FILENAME_LENGTH - len(suffix)] + suffix
    return sanitized


def cover_filename(info: DiscogsBasicInformation) -> str:
    artist = info.artists[0].name if info.artists and info.artists[0].name else "Unknown"
    title = info.title or "Unknown"
    year = str(info.year) if info.year else "Unknown"
    return sanitize_filename(f"{artist}-{title}-{year}.jpg")


class DiscogsImportService:
    def __init__(self, uow: UnitOfWork, discogs: DiscogsService, page_delay: Optional[float] = None):
        self.uow = uow
        self.discogs = discogs
        self.page_delay = settings.DISCOGS_IMPORT_DELAY_SECONDS if page_delay is None else page_delay
        self._cache: Dict[Tuple[Type, str], int] = {}

    async def import_collection(self, username: str, user_id: uuid.UUID) -> DiscogsImportResult:
        self._cache.clear()
        started = time.monotonic()
        result = DiscogsImportResult()

        try:
            logger.info(f"Starting Discogs import for user {username}")
            first_page = await self.discogs.get_user_collection(username, 1, COLLECTION_PAGE_SIZE)
            if first_page is None or first_page.pagination is None:
                result.errors.append("Failed to fetch collection from Discogs")
                return result

            result.total_releases = first_page.pagination.items
            logger.info(f"Found {result.total_releases} releases in collection for {username}")
            await self._process_releases(first_page.releases, user_id, result)

            total_pages = first_page.pagination.pages
            for page in range(2, total_pages + 1):
                await asyncio.sleep(self.page_delay)
                logger.info(f"Processing page {page} of {total_pages}")
                page_data = await self.discogs.get_user_collection(username, page, COLLECTION_PAGE_SIZE)
                if page_data is not None:
                    await self._process_releases(page_data.releases, user_id, result)

            result.success = result.imported_releases > 0
            if not result.success and result.total_releases > 0:
                result.errors.append("No releases could be imported. All releases failed to import.")
            logger.info(
                f"Discogs import completed for {username}: {result.imported_releases} imported, "
                f"{result.skipped_releases} skipped, {result.failed_releases} failed"
            )
        except Exception as e:
            logger.error(f"Error during Discogs import for user {username}: {e}", exc_info=True)
            result.success = False
            result.errors.append(f"Import failed: {e}")
        finally:
            result.duration_seconds = round(time.monotonic() - started, 3)

        return result

    async def _process_releases(
        self,
        releases: List[DiscogsCollectionRelease],
        user_id: uuid.UUID,
        result: DiscogsImportResult
    ) -> None:
        for entry in releases:
            info = entry.basic_information
            if info is None:
                result.failed_releases += 1
                result.errors.append(f"Release missing basic information (InstanceId: {entry.instance_id})")
                logger.warning(f"Release {entry.instance_id} missing basic information")
                continue

            try:
                already_imported = await self.uow.music_releases.any([
                    MusicRelease.user_id == user_id, MusicRelease.discogs_id == info.id
                ])
                if already_imported:
                    result.skipped_releases += 1
                    continue

                release = await self._map_release(entry, info, user_id)
                await self.uow.music_releases.add(release)
                await self.uow.save_changes()
                result.imported_releases += 1
                logger.debug(f"Imported release: {release.title} (Discogs ID: {release.discogs_id})")
            except Exception as e:
                result.failed_releases += 1
                result.errors.append(f"Error importing '{info.title or 'Unknown'}': {e}")
                logger.error(f"Error importing release {info.title}: {e}", exc_info=True)
                await self.uow.session.rollback()
                # Ids created since the last commit were rolled back with it.
                self._cache.clear()

    async def _lookup_id(self, model: Type, entity_name: str, user_id: uuid.UUID, name: Optional[str]) -> Optional[int]:
        if not name or not name.strip():
            return None
        key = (model, name.strip().lower())
        if key in self._cache:
            return self._cache[key]

        entity, _ = await LookupService(self.uow, model, entity_name).get_or_create_by_name(user_id, name)
        self._cache[key] = entity.id
        return entity.id

    async def _lookup_ids(self, model: Type, entity_name: str, user_id: uuid.UUID, names: List[str]) -> List[int]:
        ids = []
        for name in dict.fromkeys(names):
            entity_id = await self._lookup_id(model, entity_name, user_id, name)
            if entity_id is not None and entity_id not in ids:
                ids.append(entity_id)
        return ids

    async def _download_cover(self, info: DiscogsBasicInformation) -> Optional[str]:
        if not info.cover_image:
            return None
        try:
            return await self.uow.image_storage.save_cover(info.cover_image, cover_filename(info))
        except (httpx.HTTPError, OSError) as e:
            logger.warning(f"Failed to download cover art from {info.cover_image}: {e}")
            return None

    async def _map_release(
        self,
        entry: DiscogsCollectionRelease,
        info: DiscogsBasicInformation,
        user_id: uuid.UUID
    ) -> MusicRelease:
        format_id = await self._lookup_id(Format, "Format", user_id, info.formats[0].name if info.formats else None)
        label_id = await self._lookup_id(Label, "Label", user_id, info.labels[0].name if info.labels else None)
        country_id = await self._lookup_id(Country, "Country", user_id, info.country)
        artist_ids = await self._lookup_ids(Artist, "Artist", user_id, [a.name for a in info.artists])
        genre_ids = await self._lookup_ids(Genre, "Genre", user_id, info.genres + info.styles)

        release_year = None
        if info.year is not None:
            if 1 <= info.year <= 9999:
                release_year = datetime.datetime(info.year, 1, 1, tzinfo=datetime.timezone.utc)
            else:
                logger.warning(f"Year value {info.year} out of valid range for release {info.title}")

        cover = await self._download_cover(info)
        now = utcnow()
        return MusicRelease(
            user_id=user_id,
            discogs_id=info.id,
            title=info.title,
            release_year=release_year,
            format_id=format_id,
            label_id=label_id,
            country_id=country_id,
            label_number=info.labels[0].catalog_number if info.labels else None,
            artists=dump_json(artist_ids) if artist_ids else None,
            genres=dump_json(genre_ids) if genre_ids else None,
            images=dump_json({"cover_front": cover}) if cover else None,
            notes=entry.notes[0].value if entry.notes else None,
            date_added=now,
            last_modified=now
        )
