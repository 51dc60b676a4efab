"""Generic async repository over a single mapped class.

Filters and orderings are plain SQLAlchemy expressions, e.g.::

    repo = Repository(session, MusicRelease)
    releases = await repo.get(
        filter=[MusicRelease.user_id == user_id, MusicRelease.live.is_(True)],
        order_by=MusicRelease.title,
        includes=["label", "country"],
    )

Relationships named in ``includes`` are eagerly loaded with ``selectinload``;
dotted names (``"items.music_release"``) load nested relationships.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, List, Optional, Sequence, Type, TypeVar, Union

from sqlalchemy import func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

ModelT = TypeVar("ModelT")

DEFAULT_PAGE_SIZE = 10

Criteria = Union[Any, Sequence[Any], None]
Includes = Optional[Iterable[Any]]


@dataclass
class Page(Generic[ModelT]):
    items: List[ModelT] = field(default_factory=list)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total_count: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def _as_list(criteria: Criteria) -> List[Any]:
    if criteria is None:
        return []
    if isinstance(criteria, (list, tuple)):
        return list(criteria)
    return [criteria]


class Repository(Generic[ModelT]):
    def __init__(self, session: AsyncSession, model: Type[ModelT]):
        self.session = session
        self.model = model
        self._pk = inspect(model).primary_key[0]

    def _load_option(self, include: Any):
        if not isinstance(include, str):
            return selectinload(include)

        option = None
        owner = self.model
        for name in include.split("."):
            attribute = getattr(owner, name)
            option = selectinload(attribute) if option is None else option.selectinload(attribute)
            owner = attribute.property.mapper.class_
        return option

    def _select(self, filter: Criteria = None, order_by: Criteria = None, includes: Includes = None):
        query = select(self.model)
        for criterion in _as_list(filter):
            query = query.where(criterion)
        for clause in _as_list(order_by):
            query = query.order_by(clause)
        for include in includes or ():
            query = query.options(self._load_option(include))
        return query

    async def get_all(self, includes: Includes = None) -> List[ModelT]:
        result = await self.session.execute(self._select(includes=includes))
        return list(result.scalars().all())

    async def get(
        self,
        filter: Criteria = None,
        order_by: Criteria = None,
        includes: Includes = None
    ) -> List[ModelT]:
        result = await self.session.execute(self._select(filter, order_by, includes))
        return list(result.scalars().all())

    async def get_by_id(self, entity_id: Any, includes: Includes = None) -> Optional[ModelT]:
        if not includes:
            return await self.session.get(self.model, entity_id)
        result = await self.session.execute(self._select(self._pk == entity_id, includes=includes))
        return result.scalar_one_or_none()

    async def get_first_or_default(self, filter: Criteria = None, includes: Includes = None) -> Optional[ModelT]:
        result = await self.session.execute(self._select(filter, includes=includes).limit(1))
        return result.scalars().first()

    async def add(self, entity: ModelT) -> ModelT:
        if entity is None:
            raise ValueError("entity must not be None")
        self.session.add(entity)
        return entity

    async def add_range(self, entities: Iterable[ModelT]) -> None:
        self.session.add_all(list(entities))

    def update(self, entity: ModelT) -> None:
        if entity is None:
            raise ValueError("entity must not be None")
        self.session.add(entity)

    def update_range(self, entities: Iterable[ModelT]) -> None:
        self.session.add_all(list(entities))

    async def delete_by_id(self, entity_id: Any) -> bool:
        entity = await self.get_by_id(entity_id)
        if entity is None:
            return False
        await self.session.delete(entity)
        return True

    async def delete(self, entity: ModelT) -> None:
        if entity is None:
            raise ValueError("entity must not be None")
        await self.session.delete(entity)

    async def delete_range(self, entities: Iterable[ModelT]) -> None:
        for entity in entities:
            await self.session.delete(entity)

    async def any(self, filter: Criteria = None) -> bool:
        query = select(self._pk)
        for criterion in _as_list(filter):
            query = query.where(criterion)
        result = await self.session.execute(query.limit(1))
        return result.first() is not None

    async def count(self, filter: Criteria = None) -> int:
        query = select(func.count()).select_from(self.model)
        for criterion in _as_list(filter):
            query = query.where(criterion)
        return await self.session.scalar(query) or 0

    async def exists(self, entity_id: Any) -> bool:
        return await self.any(self._pk == entity_id)

    async def get_paged(
        self,
        page: int,
        page_size: int,
        filter: Criteria = None,
        order_by: Criteria = None,
        includes: Includes = None
    ) -> Page[ModelT]:
        if page < 1:
            page = 1
        if page_size < 1:
            page_size = DEFAULT_PAGE_SIZE

        total_count = await self.count(filter)
        query = self._select(filter, order_by, includes).offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(query)
        return Page(
            items=list(result.scalars().all()),
            page=page,
            page_size=page_size,
            total_count=total_count
        )
