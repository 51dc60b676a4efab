import logging
import uuid
from typing import List

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy import delete

from kollector.core.result import ErrorType, Result
from kollector.models.kollection import Kollection
from kollector.models.lookups import LOOKUP_MODELS
from kollector.models.user import UserInvitation
from kollector.models.user_list import UserList
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.user import InvitationCreate, InvitationResponse, UserAccessResponse
from kollector.services.database import utcnow

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)


class AdminService:
    """Invitation and user-access management. Callers must already be admins."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def get_invitations(self) -> List[InvitationResponse]:
        invitations = await self.uow.user_invitations.list_invitations()
        return [InvitationResponse.model_validate(i) for i in invitations]

    async def create_invitation(self, admin_id: uuid.UUID, data: InvitationCreate) -> Result[InvitationResponse]:
        if not data.email or not data.email.strip():
            return Result.validation_error("Email is required")
        try:
            email = _email_adapter.validate_python(data.email.strip()).lower()
        except ValidationError:
            return Result.validation_error("Invalid email format")

        if await self.uow.user_invitations.get_by_email(email) is not None:
            return Result.validation_error("An invitation already exists for this email")
        if await self.uow.users.get_by_email(email) is not None:
            return Result.validation_error("User already has access to the application")

        invitation = UserInvitation(email=email, created_by_user_id=admin_id, created_at=utcnow(), is_used=False)
        await self.uow.user_invitations.add(invitation)
        await self.uow.save_changes()
        logger.info(f"Admin {admin_id} created invitation {invitation.id} for {email}")
        return Result.success(InvitationResponse.model_validate(invitation))

    async def delete_invitation(self, admin_id: uuid.UUID, invitation_id: int) -> Result[bool]:
        invitation = await self.uow.user_invitations.get_by_id(invitation_id)
        if invitation is None:
            return Result.failure("Invitation not found", ErrorType.NOT_FOUND)

        await self.uow.user_invitations.delete(invitation)
        await self.uow.save_changes()
        logger.info(f"Admin {admin_id} deleted invitation {invitation_id}")
        return Result.success(True)

    async def activate_invitation(self, admin_id: uuid.UUID, invitation_id: int) -> Result[InvitationResponse]:
        """Re-open a used invitation after its user's access was revoked."""
        invitation = await self.uow.user_invitations.get_by_id(invitation_id)
        if invitation is None:
            return Result.failure("Invitation not found", ErrorType.NOT_FOUND)
        if not invitation.is_used:
            return Result.validation_error("Registration is already active")
        if await self.uow.users.get_by_email(invitation.email) is not None:
            return Result.validation_error("User is already active")

        invitation.is_used = False
        invitation.used_at = None
        await self.uow.save_changes()
        logger.info(f"Admin {admin_id} activated invitation {invitation_id} for {invitation.email}")
        return Result.success(InvitationResponse.model_validate(invitation))

    async def get_users(self) -> List[UserAccessResponse]:
        users = await self.uow.users.list_users()
        return [
            UserAccessResponse(
                user_id=u.id,
                email=u.email,
                display_name=u.display_name,
                is_admin=u.is_admin,
                created_at=u.created_at
            )
            for u in users
        ]

    async def delete_user(self, admin_id: uuid.UUID, user_id: uuid.UUID) -> Result[bool]:
        if admin_id == user_id:
            return Result.validation_error("You cannot deactivate your own access")

        user = await self.uow.users.get_with_profile(user_id)
        if user is None:
            return Result.failure("User not found", ErrorType.NOT_FOUND)
        if user.is_admin:
            return Result.validation_error("Cannot deactivate access for admin users")

        # Releases go through the profile repository so their image files are removed too.
        await self.uow.user_profiles.delete_all_user_music_releases(user_id)

        session = self.uow.session
        await self.uow.kollections.delete_range(await self.uow.kollections.get(Kollection.user_id == user_id))
        await self.uow.lists.delete_range(await self.uow.lists.get(UserList.user_id == user_id))
        await session.flush()
        for model in LOOKUP_MODELS:
            await session.execute(delete(model).where(model.user_id == user_id))

        await self.uow.users.delete(user)
        await self.uow.save_changes()
        logger.info(f"Admin {admin_id} deactivated access for user {user_id}")
        return Result.success(True)
