import uuid
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from kollector.models.user import ApplicationUser, UserInvitation
from kollector.repositories.base import Repository


class UserRepository(Repository[ApplicationUser]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ApplicationUser)

    async def get_by_google_sub(self, google_sub: str) -> Optional[ApplicationUser]:
        return await self.get_first_or_default(ApplicationUser.google_sub == google_sub, includes=["profile"])

    async def get_by_email(self, email: str) -> Optional[ApplicationUser]:
        return await self.get_first_or_default(func.lower(ApplicationUser.email) == email.strip().lower())

    async def get_with_profile(self, user_id: uuid.UUID) -> Optional[ApplicationUser]:
        return await self.get_by_id(user_id, includes=["profile"])

    async def list_users(self) -> List[ApplicationUser]:
        return await self.get(order_by=ApplicationUser.email)


class UserInvitationRepository(Repository[UserInvitation]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, UserInvitation)

    async def get_by_email(self, email: str) -> Optional[UserInvitation]:
        return await self.get_first_or_default(func.lower(UserInvitation.email) == email.strip().lower())

    async def list_invitations(self) -> List[UserInvitation]:
        return await self.get(order_by=UserInvitation.created_at.desc())
