from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
from uuid import UUID


class GoogleLoginRequest(BaseModel):
    id_token: str

class BootstrapRequest(BaseModel):
    id_token: Optional[str] = None

class BootstrapResponse(BaseModel):
    user_id: UUID
    google_sub: str
    is_admin: bool

class GoogleIdentity(BaseModel):
    """Claims of a validated Google ID token."""
    sub: str
    email: str
    name: Optional[str] = None


class UserProfileResponse(BaseModel):
    user_id: UUID
    email: str
    display_name: Optional[str] = None
    selected_kollection_id: Optional[int] = None
    selected_theme: str
    is_admin: bool = False

class AuthResponse(BaseModel):
    token: str
    profile: UserProfileResponse

class UpdateProfileRequest(BaseModel):
    selected_kollection_id: Optional[int] = None
    selected_theme: Optional[str] = None

class DeleteCollectionResponse(BaseModel):
    albums_deleted: int
    success: bool
    message: str


class InvitationCreate(BaseModel):
    # Validated by the admin service so a bad address answers 400
    email: str

class InvitationResponse(BaseModel):
    id: int
    email: str
    created_at: datetime
    is_used: bool
    used_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class UserAccessResponse(BaseModel):
    user_id: UUID
    email: str
    display_name: Optional[str] = None
    is_admin: bool
    created_at: datetime
