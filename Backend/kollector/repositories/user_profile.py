import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kollector.models.kollection import Kollection
from kollector.models.music_release import MusicRelease
from kollector.models.user import UserProfile
from kollector.repositories.base import Repository
from kollector.services.image_storage import ImageStorage

logger = logging.getLogger(__name__)


class UserProfileRepository(Repository[UserProfile]):
    def __init__(self, session: AsyncSession, image_storage: Optional[ImageStorage] = None):
        super().__init__(session, UserProfile)
        self.image_storage = image_storage or ImageStorage()

    async def get_by_user_id(self, user_id: uuid.UUID) -> Optional[UserProfile]:
        return await self.get_first_or_default(UserProfile.user_id == user_id)

    async def create(self, profile: UserProfile) -> UserProfile:
        self.session.add(profile)
        await self.session.flush()
        return profile

    async def kollection_exists(self, kollection_id: int) -> bool:
        result = await self.session.execute(select(Kollection.id).where(Kollection.id == kollection_id))
        return result.first() is not None

    async def get_user_music_release_count(self, user_id: uuid.UUID) -> int:
        return await Repository(self.session, MusicRelease).count(MusicRelease.user_id == user_id)

    async def delete_all_user_music_releases(self, user_id: uuid.UUID) -> int:
        """Delete every release the user owns, together with its image files.

        File removal is best effort and happens before the rows are deleted;
        a failure to remove a file never stops the database delete. The rows
        are only flushed; the caller commits.
        """
        releases = await Repository(self.session, MusicRelease).get(MusicRelease.user_id == user_id)
        if not releases:
            return 0

        for release in releases:
            self.image_storage.delete_release_images(release.images)
            await self.session.delete(release)

        await self.session.flush()
        logger.info(f"Deleted {len(releases)} music releases for user {user_id}")
        return len(releases)
