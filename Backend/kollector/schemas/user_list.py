from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class ListBase(BaseModel):
    name: str

class ListCreate(ListBase):
    pass

class ListUpdate(ListBase):
    pass

class ListSummary(BaseModel):
    id: int
    name: str
    release_count: int = 0
    created_at: datetime
    last_modified: datetime

class ListResponse(ListSummary):
    release_ids: List[int] = []

class ListReleaseAdd(BaseModel):
    release_id: int

class AddToListRequest(BaseModel):
    release_id: int
    list_id: Optional[int] = None
    new_list_name: Optional[str] = None
