from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime

from kollector.schemas.music_release import MusicReleaseSummary


class KollectionBase(BaseModel):
    name: str

class KollectionCreate(KollectionBase):
    pass

class KollectionUpdate(KollectionBase):
    pass

class KollectionSummary(BaseModel):
    id: int
    name: str
    created_at: datetime
    last_modified: datetime
    item_count: int = 0

    model_config = ConfigDict(from_attributes=True)

class KollectionResponse(KollectionSummary):
    releases: List[MusicReleaseSummary] = []

class AddToKollectionRequest(BaseModel):
    """Add a release to an existing kollection or to a new one created on the fly."""
    music_release_id: int
    kollection_id: Optional[int] = None
    new_kollection_name: Optional[str] = None
