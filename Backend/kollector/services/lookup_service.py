import logging
import uuid
from typing import Optional, Tuple, Type

from sqlalchemy import func

from kollector.core.result import Result
from kollector.repositories.base import Repository
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.common import PagedResult
from kollector.schemas.lookup import LookupCreate, LookupResponse, LookupUpdate

logger = logging.getLogger(__name__)


class LookupService:
    """CRUD for one of the user-owned lookup tables (artists, labels, ...)."""

    def __init__(self, uow: UnitOfWork, model: Type, entity_name: str):
        self.uow = uow
        self.model = model
        self.entity_name = entity_name

    @property
    def repository(self) -> Repository:
        return self.uow.repository(self.model)

    def _validate_name(self, name: Optional[str]) -> Optional[str]:
        if not name or not name.strip():
            return f"{self.entity_name} name is required"
        max_length = self.model.name_max_length
        if len(name.strip()) > max_length:
            return f"{self.entity_name} name cannot exceed {max_length} characters"
        return None

    async def get_all(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        page_size: int = 50,
        search: Optional[str] = None
    ) -> PagedResult[LookupResponse]:
        filters = [self.model.user_id == user_id]
        if search and search.strip():
            filters.append(func.lower(self.model.name).contains(search.strip().lower()))

        result_page = await self.repository.get_paged(page, page_size, filter=filters, order_by=self.model.name)
        items = [LookupResponse.model_validate(entity) for entity in result_page.items]
        return PagedResult.from_page(result_page, items)

    async def _get_owned(self, user_id: uuid.UUID, entity_id: int):
        entity = await self.repository.get_by_id(entity_id)
        if entity is None:
            return None, Result.not_found(self.entity_name, entity_id)
        if entity.user_id != user_id:
            return None, Result.authorization_error(f"You do not have access to this {self.entity_name.lower()}")
        return entity, None

    async def get_by_id(self, user_id: uuid.UUID, entity_id: int) -> Result[LookupResponse]:
        entity = await self.repository.get_first_or_default(
            [self.model.id == entity_id, self.model.user_id == user_id]
        )
        if entity is None:
            return Result.not_found(self.entity_name, entity_id)
        return Result.success(LookupResponse.model_validate(entity))

    async def create(self, user_id: uuid.UUID, data: LookupCreate) -> Result[LookupResponse]:
        error = self._validate_name(data.name)
        if error:
            return Result.validation_error(error)

        entity = self.model(user_id=user_id, name=data.name.strip())
        await self.repository.add(entity)
        await self.uow.save_changes()
        logger.info(f"Created {self.entity_name} {entity.id} '{entity.name}' for user {user_id}")
        return Result.success(LookupResponse.model_validate(entity))

    async def update(self, user_id: uuid.UUID, entity_id: int, data: LookupUpdate) -> Result[LookupResponse]:
        error = self._validate_name(data.name)
        if error:
            return Result.validation_error(error)

        entity, failure = await self._get_owned(user_id, entity_id)
        if failure:
            return failure

        entity.name = data.name.strip()
        self.repository.update(entity)
        await self.uow.save_changes()
        return Result.success(LookupResponse.model_validate(entity))

    async def delete(self, user_id: uuid.UUID, entity_id: int) -> Result[bool]:
        entity, failure = await self._get_owned(user_id, entity_id)
        if failure:
            return failure

        await self.repository.delete(entity)
        await self.uow.save_changes()
        logger.info(f"Deleted {self.entity_name} {entity_id} for user {user_id}")
        return Result.success(True)

    async def get_or_create_by_name(self, user_id: uuid.UUID, name: str) -> Tuple[object, bool]:
        """Find a lookup by exact name (case-insensitive), creating it if missing.

        Returns the entity and whether it was created. The new row is flushed
        so its id is available immediately.
        """
        clean_name = name.strip()
        existing = await self.repository.get_first_or_default(
            [self.model.user_id == user_id, func.lower(self.model.name) == clean_name.lower()]
        )
        if existing is not None:
            return existing, False

        entity = self.model(user_id=user_id, name=clean_name)
        await self.repository.add(entity)
        await self.uow.session.flush()
        return entity, True
