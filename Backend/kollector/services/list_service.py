import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select

from kollector.core.result import ErrorType, Result
from kollector.models.music_release import MusicRelease
from kollector.models.user_list import ListRelease, UserList
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.music_release import MusicReleaseSummary
from kollector.schemas.user_list import AddToListRequest, ListCreate, ListResponse, ListSummary, ListUpdate
from kollector.services.database import utcnow
from kollector.services.release_mapper import MusicReleaseMapper

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 200


class ListService:
    """Named, user-owned lists of releases ("wishlist", "to sell", ...)."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def _release_ids(self, list_id: int) -> List[int]:
        entries = await self.uow.list_releases.get(
            filter=ListRelease.list_id == list_id,
            order_by=[ListRelease.added_at, ListRelease.id]
        )
        return [entry.release_id for entry in entries]

    async def _release_counts(self, list_ids: List[int]) -> dict:
        if not list_ids:
            return {}
        rows = await self.uow.session.execute(
            select(ListRelease.list_id, func.count(ListRelease.id))
            .where(ListRelease.list_id.in_(list_ids))
            .group_by(ListRelease.list_id)
        )
        return {list_id: count for list_id, count in rows.all()}

    @staticmethod
    def _summary(user_list: UserList, release_count: int) -> ListSummary:
        return ListSummary(
            id=user_list.id,
            name=user_list.name,
            release_count=release_count,
            created_at=user_list.created_at,
            last_modified=user_list.last_modified
        )

    async def _to_response(self, user_list: UserList) -> ListResponse:
        release_ids = await self._release_ids(user_list.id)
        return ListResponse(
            **self._summary(user_list, len(release_ids)).model_dump(),
            release_ids=release_ids
        )

    async def _get_owned(self, user_id: uuid.UUID, list_id: int):
        user_list = await self.uow.lists.get_by_id(list_id)
        if user_list is None or user_list.user_id != user_id:
            return None, Result.not_found("List", list_id)
        return user_list, None

    async def _validate_name(self, user_id: uuid.UUID, name: Optional[str], exclude_id: Optional[int] = None):
        if not name or not name.strip():
            return Result.validation_error("List name is required")
        if len(name.strip()) > NAME_MAX_LENGTH:
            return Result.validation_error(f"List name cannot exceed {NAME_MAX_LENGTH} characters")

        filters = [UserList.user_id == user_id, func.lower(UserList.name) == name.strip().lower()]
        if exclude_id is not None:
            filters.append(UserList.id != exclude_id)
        if await self.uow.lists.any(filters):
            return Result.duplicate_error(f"A list named '{name.strip()}' already exists")
        return None

    async def get_lists(self, user_id: uuid.UUID) -> Result[List[ListSummary]]:
        lists = await self.uow.lists.get(
            filter=UserList.user_id == user_id,
            order_by=[UserList.last_modified.desc(), UserList.id.desc()]
        )
        counts = await self._release_counts([l.id for l in lists])
        return Result.success([self._summary(l, counts.get(l.id, 0)) for l in lists])

    async def get_list(self, user_id: uuid.UUID, list_id: int) -> Result[ListResponse]:
        user_list, error = await self._get_owned(user_id, list_id)
        if error:
            return error
        return Result.success(await self._to_response(user_list))

    async def get_list_releases(self, user_id: uuid.UUID, list_id: int) -> Result[List[MusicReleaseSummary]]:
        user_list, error = await self._get_owned(user_id, list_id)
        if error:
            return error

        release_ids = await self._release_ids(list_id)
        releases = await self.uow.music_releases.get(filter=MusicRelease.id.in_(release_ids)) if release_ids else []
        position = {release_id: index for index, release_id in enumerate(release_ids)}
        releases.sort(key=lambda r: position[r.id])
        return Result.success(await MusicReleaseMapper(self.uow).to_summaries(releases))

    async def create_list(self, user_id: uuid.UUID, data: ListCreate) -> Result[ListResponse]:
        error = await self._validate_name(user_id, data.name)
        if error:
            return error

        now = utcnow()
        user_list = UserList(user_id=user_id, name=data.name.strip(), created_at=now, last_modified=now)
        await self.uow.lists.add(user_list)
        await self.uow.save_changes()
        logger.info(f"Created list {user_list.id} '{user_list.name}' for user {user_id}")
        return Result.success(ListResponse(**self._summary(user_list, 0).model_dump(), release_ids=[]))

    async def update_list(self, user_id: uuid.UUID, list_id: int, data: ListUpdate) -> Result[ListResponse]:
        user_list, error = await self._get_owned(user_id, list_id)
        if error:
            return error
        error = await self._validate_name(user_id, data.name, exclude_id=list_id)
        if error:
            return error

        user_list.name = data.name.strip()
        user_list.last_modified = utcnow()
        self.uow.lists.update(user_list)
        await self.uow.save_changes()
        return Result.success(await self._to_response(user_list))

    async def delete_list(self, user_id: uuid.UUID, list_id: int) -> Result[bool]:
        user_list, error = await self._get_owned(user_id, list_id)
        if error:
            return error

        await self.uow.lists.delete(user_list)
        await self.uow.save_changes()
        logger.info(f"Deleted list {list_id} for user {user_id}")
        return Result.success(True)

    async def add_release_to_list(self, user_id: uuid.UUID, request: AddToListRequest) -> Result[ListResponse]:
        release = await self.uow.music_releases.get_by_id(request.release_id)
        if release is None or release.user_id != user_id:
            return Result.not_found("Music release", request.release_id)

        if request.list_id is not None:
            user_list, error = await self._get_owned(user_id, request.list_id)
            if error:
                return error
        elif request.new_list_name and request.new_list_name.strip():
            created = await self.create_list(user_id, ListCreate(name=request.new_list_name))
            if created.is_failure:
                return created
            user_list = await self.uow.lists.get_by_id(created.value.id)
        else:
            return Result.validation_error("Either a list id or a new list name is required")

        already_present = await self.uow.list_releases.any([
            ListRelease.list_id == user_list.id, ListRelease.release_id == release.id
        ])
        if already_present:
            return Result.duplicate_error("This release is already in the list")

        await self.uow.list_releases.add(ListRelease(list_id=user_list.id, release_id=release.id, added_at=utcnow()))
        user_list.last_modified = utcnow()
        await self.uow.save_changes()
        logger.info(f"Added release {release.id} to list {user_list.id}")
        return Result.success(await self._to_response(user_list))

    async def remove_release_from_list(self, user_id: uuid.UUID, list_id: int, release_id: int) -> Result[bool]:
        user_list, error = await self._get_owned(user_id, list_id)
        if error:
            return error

        entry = await self.uow.list_releases.get_first_or_default([
            ListRelease.list_id == list_id, ListRelease.release_id == release_id
        ])
        if entry is None:
            return Result.failure("Release not found in this list", ErrorType.NOT_FOUND)

        await self.uow.list_releases.delete(entry)
        user_list.last_modified = utcnow()
        await self.uow.save_changes()
        return Result.success(True)

    async def get_lists_by_release(self, user_id: uuid.UUID, release_id: int) -> Result[List[ListSummary]]:
        lists = await self.uow.lists.get(
            filter=[
                UserList.user_id == user_id,
                UserList.id.in_(select(ListRelease.list_id).where(ListRelease.release_id == release_id))
            ],
            order_by=UserList.name
        )
        counts = await self._release_counts([l.id for l in lists])
        return Result.success([self._summary(l, counts.get(l.id, 0)) for l in lists])
