from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime


class NowPlayingCreate(BaseModel):
    music_release_id: int

class NowPlayingResponse(BaseModel):
    id: int
    music_release_id: int
    played_at: datetime

    model_config = ConfigDict(from_attributes=True)

class PlayHistoryItem(BaseModel):
    id: int
    played_at: datetime

class PlayHistory(BaseModel):
    music_release_id: int
    play_count: int
    play_dates: List[PlayHistoryItem] = []

class RecentlyPlayedItem(BaseModel):
    """Latest play of a release; ``id`` is the release id."""
    id: int
    cover_front: Optional[str] = None
    played_at: datetime
    play_count: int
