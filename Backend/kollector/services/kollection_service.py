import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select

from kollector.core.result import ErrorType, Result
from kollector.models.kollection import Kollection, KollectionItem
from kollector.models.music_release import MusicRelease
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.kollection import (
    AddToKollectionRequest, KollectionCreate, KollectionResponse, KollectionSummary, KollectionUpdate
)
from kollector.services.database import utcnow
from kollector.services.release_mapper import MusicReleaseMapper

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 100


class KollectionService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.mapper = MusicReleaseMapper(uow)

    async def _item_counts(self, kollection_ids: List[int]) -> dict:
        if not kollection_ids:
            return {}
        rows = await self.uow.session.execute(
            select(KollectionItem.kollection_id, func.count(KollectionItem.id))
            .where(KollectionItem.kollection_id.in_(kollection_ids))
            .group_by(KollectionItem.kollection_id)
        )
        return {kollection_id: count for kollection_id, count in rows.all()}

    def _summary(self, kollection: Kollection, item_count: int) -> KollectionSummary:
        return KollectionSummary(
            id=kollection.id,
            name=kollection.name,
            created_at=kollection.created_at,
            last_modified=kollection.last_modified,
            item_count=item_count
        )

    async def _get_owned(self, user_id: uuid.UUID, kollection_id: int):
        kollection = await self.uow.kollections.get_by_id(kollection_id)
        if kollection is None or kollection.user_id != user_id:
            return None, Result.not_found("Kollection", kollection_id)
        return kollection, None

    async def _validate_name(self, user_id: uuid.UUID, name: Optional[str], exclude_id: Optional[int] = None):
        if not name or not name.strip():
            return Result.validation_error("Kollection name is required")
        if len(name.strip()) > NAME_MAX_LENGTH:
            return Result.validation_error(f"Kollection name cannot exceed {NAME_MAX_LENGTH} characters")

        filters = [Kollection.user_id == user_id, func.lower(Kollection.name) == name.strip().lower()]
        if exclude_id is not None:
            filters.append(Kollection.id != exclude_id)
        if await self.uow.kollections.any(filters):
            return Result.duplicate_error(f"A kollection named '{name.strip()}' already exists")
        return None

    async def get_all(self, user_id: uuid.UUID) -> List[KollectionSummary]:
        kollections = await self.uow.kollections.get(
            filter=Kollection.user_id == user_id,
            order_by=Kollection.name
        )
        counts = await self._item_counts([k.id for k in kollections])
        return [self._summary(k, counts.get(k.id, 0)) for k in kollections]

    async def get(self, user_id: uuid.UUID, kollection_id: int) -> Result[KollectionResponse]:
        kollection, error = await self._get_owned(user_id, kollection_id)
        if error:
            return error

        releases = await self.uow.music_releases.get(
            filter=MusicRelease.id.in_(
                select(KollectionItem.music_release_id).where(KollectionItem.kollection_id == kollection_id)
            )
        )
        items = await self.uow.kollection_items.get(
            filter=KollectionItem.kollection_id == kollection_id,
            order_by=[KollectionItem.added_at, KollectionItem.id]
        )
        position = {item.music_release_id: index for index, item in enumerate(items)}
        releases.sort(key=lambda r: position.get(r.id, len(position)))

        summary = self._summary(kollection, len(items))
        return Result.success(KollectionResponse(
            **summary.model_dump(),
            releases=await self.mapper.to_summaries(releases)
        ))

    async def create(self, user_id: uuid.UUID, data: KollectionCreate) -> Result[KollectionSummary]:
        error = await self._validate_name(user_id, data.name)
        if error:
            return error

        now = utcnow()
        kollection = Kollection(user_id=user_id, name=data.name.strip(), created_at=now, last_modified=now)
        await self.uow.kollections.add(kollection)
        await self.uow.save_changes()
        logger.info(f"Created kollection {kollection.id} '{kollection.name}' for user {user_id}")
        return Result.success(self._summary(kollection, 0))

    async def update(self, user_id: uuid.UUID, kollection_id: int, data: KollectionUpdate) -> Result[KollectionSummary]:
        kollection, error = await self._get_owned(user_id, kollection_id)
        if error:
            return error
        error = await self._validate_name(user_id, data.name, exclude_id=kollection_id)
        if error:
            return error

        kollection.name = data.name.strip()
        kollection.last_modified = utcnow()
        self.uow.kollections.update(kollection)
        await self.uow.save_changes()

        counts = await self._item_counts([kollection_id])
        return Result.success(self._summary(kollection, counts.get(kollection_id, 0)))

    async def delete(self, user_id: uuid.UUID, kollection_id: int) -> Result[bool]:
        kollection, error = await self._get_owned(user_id, kollection_id)
        if error:
            return error

        await self.uow.kollections.delete(kollection)
        await self.uow.save_changes()
        logger.info(f"Deleted kollection {kollection_id} for user {user_id}")
        return Result.success(True)

    async def add_release(self, user_id: uuid.UUID, request: AddToKollectionRequest) -> Result[KollectionSummary]:
        release = await self.uow.music_releases.get_by_id(request.music_release_id)
        if release is None or release.user_id != user_id:
            return Result.not_found("Music release", request.music_release_id)

        if request.kollection_id is not None:
            kollection, error = await self._get_owned(user_id, request.kollection_id)
            if error:
                return error
        elif request.new_kollection_name and request.new_kollection_name.strip():
            created = await self.create(user_id, KollectionCreate(name=request.new_kollection_name.strip()))
            if created.is_failure:
                return created
            kollection = await self.uow.kollections.get_by_id(created.value.id)
        else:
            return Result.validation_error("Either a kollection id or a new kollection name is required")

        already_present = await self.uow.kollection_items.any([
            KollectionItem.kollection_id == kollection.id,
            KollectionItem.music_release_id == release.id
        ])
        if already_present:
            return Result.duplicate_error("This release is already in the kollection")

        await self.uow.kollection_items.add(KollectionItem(
            kollection_id=kollection.id, music_release_id=release.id, added_at=utcnow()
        ))
        kollection.last_modified = utcnow()
        await self.uow.save_changes()

        counts = await self._item_counts([kollection.id])
        logger.info(f"Added release {release.id} to kollection {kollection.id}")
        return Result.success(self._summary(kollection, counts.get(kollection.id, 0)))

    async def remove_release(self, user_id: uuid.UUID, kollection_id: int, release_id: int) -> Result[bool]:
        kollection, error = await self._get_owned(user_id, kollection_id)
        if error:
            return error

        item = await self.uow.kollection_items.get_first_or_default([
            KollectionItem.kollection_id == kollection_id,
            KollectionItem.music_release_id == release_id
        ])
        if item is None:
            return Result.failure("Release not found in this kollection", ErrorType.NOT_FOUND)

        await self.uow.kollection_items.delete(item)
        kollection.last_modified = utcnow()
        await self.uow.save_changes()
        return Result.success(True)
