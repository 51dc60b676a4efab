import logging
import uuid
from typing import List, Optional, Type

from sqlalchemy import func

from kollector.core.result import ErrorType, Result
from kollector.models.lookups import Artist, Country, Format, Genre, Label, Packaging, Store
from kollector.models.music_release import MusicRelease
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.lookup import LookupResponse
from kollector.schemas.music_release import (
    CreatedEntities, CreateMusicReleaseResponse, MusicReleaseCreate, MusicReleaseResponse,
    MusicReleaseUpdate, PurchaseInfo
)
from kollector.services.database import utcnow
from kollector.services.lookup_service import LookupService
from kollector.services.release_mapper import MusicReleaseMapper, dump_json, dump_purchase_info, parse_id_list

logger = logging.getLogger(__name__)


class MusicReleaseCommandService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.mapper = MusicReleaseMapper(uow)

    # Lookup resolution

    async def _check_owned_ids(self, user_id: uuid.UUID, model: Type, entity_name: str, ids: List[int]) -> Optional[str]:
        for entity_id in dict.fromkeys(ids):
            if not await self.uow.repository(model).any([model.id == entity_id, model.user_id == user_id]):
                return f"{entity_name} with ID {entity_id} was not found"
        return None

    async def _resolve_many(self, user_id, model, entity_name, ids, names, created: List[LookupResponse]) -> Optional[List[int]]:
        if ids:
            return list(ids)
        if not names:
            return None

        service = LookupService(self.uow, model, entity_name)
        resolved = []
        for name in names:
            if not name or not name.strip():
                continue
            entity, was_created = await service.get_or_create_by_name(user_id, name)
            if was_created:
                created.append(LookupResponse.model_validate(entity))
            if entity.id not in resolved:
                resolved.append(entity.id)
        return resolved

    async def _resolve_one(self, user_id, model, entity_name, entity_id, name, created: List[LookupResponse]) -> Optional[int]:
        if entity_id is not None:
            return entity_id
        if not name or not name.strip():
            return None

        entity, was_created = await LookupService(self.uow, model, entity_name).get_or_create_by_name(user_id, name)
        if was_created:
            created.append(LookupResponse.model_validate(entity))
        return entity.id

    async def _resolve_store(self, user_id: uuid.UUID, purchase_info: Optional[PurchaseInfo]) -> None:
        if purchase_info is None or purchase_info.store_id is not None:
            return
        if purchase_info.store_name and purchase_info.store_name.strip():
            store, _ = await LookupService(self.uow, Store, "Store").get_or_create_by_name(user_id, purchase_info.store_name)
            purchase_info.store_id = store.id

    async def _validate_lookup_ids(self, user_id: uuid.UUID, data) -> Optional[str]:
        checks = [
            (Artist, "Artist", data.artist_ids or []),
            (Genre, "Genre", data.genre_ids or []),
            (Label, "Label", [data.label_id] if data.label_id is not None else []),
            (Country, "Country", [data.country_id] if data.country_id is not None else []),
            (Format, "Format", [data.format_id] if data.format_id is not None else []),
            (Packaging, "Packaging", [data.packaging_id] if data.packaging_id is not None else []),
        ]
        for model, entity_name, ids in checks:
            error = await self._check_owned_ids(user_id, model, entity_name, ids)
            if error:
                return error
        return None

    # Duplicate detection

    async def find_duplicates(
        self,
        user_id: uuid.UUID,
        title: str,
        label_number: Optional[str],
        artist_ids: Optional[List[int]],
        artist_names: Optional[List[str]]
    ) -> List[MusicRelease]:
        """Releases of the same user that look like the one being created.

        A matching catalog number is decisive. Without one, a release with the
        same title sharing at least one artist counts as a duplicate.
        """
        releases = self.uow.music_releases
        if label_number and label_number.strip():
            matches = await releases.get(filter=[
                MusicRelease.user_id == user_id,
                func.lower(MusicRelease.label_number) == label_number.strip().lower()
            ])
            if matches:
                return matches

        candidate_ids = set(artist_ids or [])
        for name in artist_names or []:
            if name and name.strip():
                artist = await self.uow.artists.get_first_or_default([
                    Artist.user_id == user_id, func.lower(Artist.name) == name.strip().lower()
                ])
                if artist:
                    candidate_ids.add(artist.id)
        if not candidate_ids:
            return []

        same_title = await releases.get(filter=[
            MusicRelease.user_id == user_id,
            func.lower(MusicRelease.title) == title.strip().lower()
        ])
        return [r for r in same_title if candidate_ids & set(parse_id_list(r.artists))]

    # Commands

    async def create_music_release(self, user_id: uuid.UUID, data: MusicReleaseCreate) -> Result[CreateMusicReleaseResponse]:
        if not data.title or not data.title.strip():
            return Result.validation_error("Title is required")

        error = await self._validate_lookup_ids(user_id, data)
        if error:
            return Result.validation_error(error)

        duplicates = await self.find_duplicates(user_id, data.title, data.label_number, data.artist_ids, data.artist_names)
        if duplicates:
            titles = ", ".join(f"'{d.title}'" for d in duplicates)
            return Result.duplicate_error(f"Potential duplicate release found. Similar release(s) exist: {titles}")

        created = CreatedEntities()
        await self.uow.begin_transaction()
        try:
            await self._resolve_store(user_id, data.purchase_info)
            now = utcnow()
            release = MusicRelease(
                user_id=user_id,
                discogs_id=data.discogs_id,
                title=data.title.strip(),
                release_year=data.release_year,
                orig_release_year=data.orig_release_year,
                artists=dump_json(await self._resolve_many(
                    user_id, Artist, "Artist", data.artist_ids, data.artist_names, created.artists)),
                genres=dump_json(await self._resolve_many(
                    user_id, Genre, "Genre", data.genre_ids, data.genre_names, created.genres)),
                live=data.live,
                label_id=await self._resolve_one(user_id, Label, "Label", data.label_id, data.label_name, created.labels),
                country_id=await self._resolve_one(
                    user_id, Country, "Country", data.country_id, data.country_name, created.countries),
                format_id=await self._resolve_one(
                    user_id, Format, "Format", data.format_id, data.format_name, created.formats),
                packaging_id=await self._resolve_one(
                    user_id, Packaging, "Packaging", data.packaging_id, data.packaging_name, created.packagings),
                label_number=data.label_number,
                upc=data.upc,
                length_in_seconds=data.length_in_seconds,
                purchase_info=dump_purchase_info(data.purchase_info),
                images=dump_json(data.images),
                links=dump_json(data.links),
                media=dump_json(data.media),
                notes=data.notes,
                date_added=now,
                last_modified=now
            )
            await self.uow.music_releases.add(release)
            await self.uow.save_changes()
            await self.uow.commit_transaction()
        except Exception as e:
            logger.error(f"Error creating music release '{data.title}': {e}", exc_info=True)
            if self.uow.has_active_transaction:
                await self.uow.rollback_transaction()
            return Result.failure(
                f"An error occurred while creating the music release: {e}", ErrorType.DATABASE_ERROR
            )

        logger.info(f"Created music release {release.id} '{release.title}' for user {user_id}")
        response = CreateMusicReleaseResponse(
            release=await self.mapper.to_response(release),
            created=None if created.is_empty() else created
        )
        return Result.success(response)

    async def update_music_release(
        self,
        user_id: uuid.UUID,
        release_id: int,
        data: MusicReleaseUpdate
    ) -> Result[MusicReleaseResponse]:
        release = await self.uow.music_releases.get_by_id(release_id)
        if release is None:
            return Result.not_found("Music release", release_id)
        if release.user_id != user_id:
            return Result.authorization_error()
        if not data.title or not data.title.strip():
            return Result.validation_error("Title is required")

        error = await self._validate_lookup_ids(user_id, data)
        if error:
            return Result.validation_error(error)

        await self.uow.begin_transaction()
        try:
            await self._resolve_store(user_id, data.purchase_info)

            release.title = data.title.strip()
            release.release_year = data.release_year
            release.orig_release_year = data.orig_release_year
            release.artists = dump_json(data.artist_ids)
            release.genres = dump_json(data.genre_ids)
            release.live = data.live
            release.label_id = data.label_id
            release.country_id = data.country_id
            release.format_id = data.format_id
            release.packaging_id = data.packaging_id
            release.label_number = data.label_number
            release.upc = data.upc
            release.length_in_seconds = data.length_in_seconds
            release.purchase_info = dump_purchase_info(data.purchase_info)
            release.images = dump_json(data.images)
            release.links = dump_json(data.links)
            release.media = dump_json(data.media)
            release.notes = data.notes
            release.last_modified = utcnow()

            self.uow.music_releases.update(release)
            await self.uow.save_changes()
            await self.uow.commit_transaction()
        except Exception as e:
            logger.error(f"Error updating music release {release_id}: {e}", exc_info=True)
            if self.uow.has_active_transaction:
                await self.uow.rollback_transaction()
            return Result.failure(
                f"An error occurred while updating the music release: {e}", ErrorType.DATABASE_ERROR
            )

        return Result.success(await self.mapper.to_response(release))

    async def delete_music_release(self, user_id: uuid.UUID, release_id: int) -> Result[bool]:
        release = await self.uow.music_releases.get_by_id(release_id)
        if release is None:
            return Result.not_found("Music release", release_id)
        if release.user_id != user_id:
            return Result.authorization_error()

        # Files go first; a file that cannot be removed does not block the delete.
        self.uow.image_storage.delete_release_images(release.images)
        await self.uow.music_releases.delete(release)
        await self.uow.save_changes()
        logger.info(f"Deleted music release {release_id} for user {user_id}")
        return Result.success(True)
