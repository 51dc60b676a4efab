"""Unit of Work over one AsyncSession.

Repositories handed out by a unit of work share its session, so their changes
are saved together by ``save_changes``. At most one explicit transaction may be
open at a time::

    await uow.begin_transaction()
    try:
        await uow.music_releases.add(release)
        await uow.save_changes()          # flushes, does not commit
        await uow.commit_transaction()
    except Exception:
        if uow.has_active_transaction:
            await uow.rollback_transaction()
        raise
"""

import logging
from typing import Any, Dict, Optional, Self, Type

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kollector.models.kollection import Kollection, KollectionItem
from kollector.models.lookups import Artist, Country, Format, Genre, Label, Packaging, Store
from kollector.models.music_release import MusicRelease
from kollector.models.now_playing import NowPlaying
from kollector.models.user_list import ListRelease, UserList
from kollector.repositories.base import Repository
from kollector.repositories.user_profile import UserProfileRepository
from kollector.repositories.users import UserInvitationRepository, UserRepository
from kollector.services.database import get_db
from kollector.services.image_storage import ImageStorage, get_image_storage

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, session: AsyncSession, image_storage: Optional[ImageStorage] = None):
        self.session = session
        self.image_storage = image_storage or ImageStorage()
        self._repositories: Dict[Any, Repository] = {}
        self._transaction_active = False

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            await self.session.rollback()
            self._transaction_active = False
        elif self._transaction_active:
            await self.commit_transaction()
        else:
            await self.session.commit()

    def repository(self, model: Type[Any]) -> Repository:
        """Return the cached repository for a mapped class, creating it on first use."""
        repository = self._repositories.get(model)
        if repository is None:
            repository = Repository(self.session, model)
            self._repositories[model] = repository
        return repository

    def _cached(self, key: str, factory) -> Any:
        repository = self._repositories.get(key)
        if repository is None:
            repository = factory()
            self._repositories[key] = repository
        return repository

    @property
    def music_releases(self) -> Repository[MusicRelease]:
        return self.repository(MusicRelease)

    @property
    def artists(self) -> Repository[Artist]:
        return self.repository(Artist)

    @property
    def countries(self) -> Repository[Country]:
        return self.repository(Country)

    @property
    def formats(self) -> Repository[Format]:
        return self.repository(Format)

    @property
    def genres(self) -> Repository[Genre]:
        return self.repository(Genre)

    @property
    def labels(self) -> Repository[Label]:
        return self.repository(Label)

    @property
    def packagings(self) -> Repository[Packaging]:
        return self.repository(Packaging)

    @property
    def stores(self) -> Repository[Store]:
        return self.repository(Store)

    @property
    def now_playing(self) -> Repository[NowPlaying]:
        return self.repository(NowPlaying)

    @property
    def kollections(self) -> Repository[Kollection]:
        return self.repository(Kollection)

    @property
    def kollection_items(self) -> Repository[KollectionItem]:
        return self.repository(KollectionItem)

    @property
    def lists(self) -> Repository[UserList]:
        return self.repository(UserList)

    @property
    def list_releases(self) -> Repository[ListRelease]:
        return self.repository(ListRelease)

    @property
    def users(self) -> UserRepository:
        return self._cached("users", lambda: UserRepository(self.session))

    @property
    def user_invitations(self) -> UserInvitationRepository:
        return self._cached("user_invitations", lambda: UserInvitationRepository(self.session))

    @property
    def user_profiles(self) -> UserProfileRepository:
        return self._cached("user_profiles", lambda: UserProfileRepository(self.session, self.image_storage))

    @property
    def has_active_transaction(self) -> bool:
        return self._transaction_active

    async def save_changes(self) -> int:
        """Write pending changes and return how many objects were affected.

        Inside an explicit transaction the changes are only flushed; the commit
        happens in ``commit_transaction``.
        """
        changes = len(self.session.new) + len(self.session.dirty) + len(self.session.deleted)
        if self._transaction_active:
            await self.session.flush()
        else:
            await self.session.commit()
        return changes

    async def begin_transaction(self) -> None:
        if self._transaction_active:
            raise RuntimeError("A transaction is already in progress")
        # The session begins its database transaction lazily on first use.
        self._transaction_active = True

    async def commit_transaction(self) -> None:
        if not self._transaction_active:
            raise RuntimeError("No transaction is in progress")
        try:
            await self.session.commit()
        except Exception:
            logger.error("Transaction commit failed, rolling back")
            await self.session.rollback()
            raise
        finally:
            self._transaction_active = False

    async def rollback_transaction(self) -> None:
        if not self._transaction_active:
            raise RuntimeError("No transaction is in progress")
        try:
            await self.session.rollback()
        finally:
            self._transaction_active = False


# Dependency
async def get_unit_of_work(
    db: AsyncSession = Depends(get_db),
    image_storage: ImageStorage = Depends(get_image_storage)
) -> UnitOfWork:
    return UnitOfWork(db, image_storage)
