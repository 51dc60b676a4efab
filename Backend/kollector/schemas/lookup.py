from pydantic import BaseModel, ConfigDict


class LookupBase(BaseModel):
    name: str

class LookupCreate(LookupBase):
    pass  # Owner comes from the acting user

class LookupUpdate(LookupBase):
    pass

class LookupResponse(LookupBase):
    id: int

    model_config = ConfigDict(from_attributes=True)
