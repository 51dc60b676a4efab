import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select

from kollector.core.result import Result
from kollector.models.music_release import MusicRelease
from kollector.models.now_playing import NowPlaying
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.now_playing import (
    NowPlayingCreate, NowPlayingResponse, PlayHistory, PlayHistoryItem, RecentlyPlayedItem
)
from kollector.services.database import utcnow
from kollector.services.release_mapper import parse_images

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 24


class NowPlayingService:
    """Play log. Plays belong to a user through their release."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def _owned_plays(self, user_id: uuid.UUID):
        return NowPlaying.music_release_id.in_(
            select(MusicRelease.id).where(MusicRelease.user_id == user_id)
        )

    async def create(self, user_id: uuid.UUID, data: NowPlayingCreate) -> Result[NowPlayingResponse]:
        owned = await self.uow.music_releases.any([
            MusicRelease.id == data.music_release_id, MusicRelease.user_id == user_id
        ])
        if not owned:
            logger.warning(f"Music release not found: {data.music_release_id}")
            return Result.not_found("Music release", data.music_release_id)

        play = NowPlaying(music_release_id=data.music_release_id, played_at=utcnow())
        await self.uow.now_playing.add(play)
        await self.uow.save_changes()
        logger.info(f"Created now playing record {play.id} for release {play.music_release_id}")
        return Result.success(NowPlayingResponse.model_validate(play))

    async def get(self, user_id: uuid.UUID, play_id: int) -> Result[NowPlayingResponse]:
        play = await self.uow.now_playing.get_first_or_default([NowPlaying.id == play_id, self._owned_plays(user_id)])
        if play is None:
            return Result.not_found("Now playing record", play_id)
        return Result.success(NowPlayingResponse.model_validate(play))

    async def delete(self, user_id: uuid.UUID, play_id: int) -> Result[bool]:
        play = await self.uow.now_playing.get_first_or_default([NowPlaying.id == play_id, self._owned_plays(user_id)])
        if play is None:
            return Result.not_found("Now playing record", play_id)

        await self.uow.now_playing.delete(play)
        await self.uow.save_changes()
        logger.info(f"Deleted now playing record {play_id}")
        return Result.success(True)

    async def get_last_played(self, user_id: uuid.UUID, release_id: int) -> Optional[datetime]:
        return await self.uow.session.scalar(
            select(func.max(NowPlaying.played_at))
            .where(NowPlaying.music_release_id == release_id, self._owned_plays(user_id))
        )

    async def get_history(self, user_id: uuid.UUID, release_id: int) -> PlayHistory:
        plays = await self.uow.now_playing.get(
            filter=[NowPlaying.music_release_id == release_id, self._owned_plays(user_id)],
            order_by=[NowPlaying.played_at.desc(), NowPlaying.id.desc()]
        )
        return PlayHistory(
            music_release_id=release_id,
            play_count=len(plays),
            play_dates=[PlayHistoryItem(id=p.id, played_at=p.played_at) for p in plays]
        )

    async def get_recently_played(self, user_id: uuid.UUID, limit: int = DEFAULT_RECENT_LIMIT) -> List[RecentlyPlayedItem]:
        if limit < 1:
            limit = DEFAULT_RECENT_LIMIT

        latest = func.max(NowPlaying.played_at).label("latest_played_at")
        rows = await self.uow.session.execute(
            select(NowPlaying.music_release_id, latest, func.count(NowPlaying.id).label("play_count"), MusicRelease.images)
            .join(MusicRelease, MusicRelease.id == NowPlaying.music_release_id)
            .where(MusicRelease.user_id == user_id)
            .group_by(NowPlaying.music_release_id, MusicRelease.images)
            .order_by(latest.desc())
            .limit(limit)
        )

        items = []
        for release_id, played_at, play_count, images_json in rows.all():
            images = parse_images(images_json)
            items.append(RecentlyPlayedItem(
                id=release_id,
                cover_front=images.cover_front if images else None,
                played_at=played_at,
                play_count=play_count
            ))
        return items
