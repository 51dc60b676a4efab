import logging
from typing import Optional

from kollector.core.config import settings
from kollector.core.exceptions import BadRequestError, ForbiddenError
from kollector.core.security import create_access_token
from kollector.models.user import DEFAULT_THEME, ApplicationUser, UserProfile
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.user import AuthResponse, BootstrapResponse, GoogleIdentity, UserProfileResponse
from kollector.services.database import utcnow
from kollector.services.google_auth import GoogleTokenValidator

logger = logging.getLogger(__name__)


def profile_response(user: ApplicationUser, profile: Optional[UserProfile]) -> UserProfileResponse:
    return UserProfileResponse(
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        selected_kollection_id=profile.selected_kollection_id if profile else None,
        selected_theme=profile.selected_theme if profile else DEFAULT_THEME,
        is_admin=user.is_admin
    )


class AuthService:
    def __init__(self, uow: UnitOfWork, validator: GoogleTokenValidator):
        self.uow = uow
        self.validator = validator

    async def _ensure_profile(self, user: ApplicationUser) -> UserProfile:
        profile = await self.uow.user_profiles.get_by_user_id(user.id)
        if profile is None:
            profile = await self.uow.user_profiles.create(
                UserProfile(user_id=user.id, selected_kollection_id=None, selected_theme=DEFAULT_THEME)
            )
        return profile

    async def _admit_new_user(self, identity: GoogleIdentity) -> ApplicationUser:
        """Create an account for a first-time sign-in.

        The first account of an empty system becomes the admin. Everyone else
        needs an unused invitation for their email, which is consumed here.
        """
        is_first_user = await self.uow.users.count() == 0
        if not is_first_user:
            invitation = await self.uow.user_invitations.get_by_email(identity.email)
            if invitation is None or invitation.is_used:
                logger.warning(f"Sign-in refused for uninvited email {identity.email}")
                raise ForbiddenError("No invitation found for this email address")
            invitation.is_used = True
            invitation.used_at = utcnow()

        logger.info(f"Creating new user for Google sub {identity.sub}")
        user = ApplicationUser(
            google_sub=identity.sub,
            email=identity.email,
            display_name=identity.name,
            is_admin=is_first_user
        )
        await self.uow.users.add(user)
        await self.uow.session.flush()
        return user

    async def login_with_google(self, id_token: str) -> AuthResponse:
        identity = await self.validator.validate(id_token)

        user = await self.uow.users.get_by_google_sub(identity.sub)
        if user is None:
            user = await self._admit_new_user(identity)
        elif user.email != identity.email or user.display_name != identity.name:
            user.email = identity.email
            user.display_name = identity.name
            user.updated_at = utcnow()

        profile = await self._ensure_profile(user)
        await self.uow.save_changes()

        token = create_access_token(user)
        logger.info(f"User {user.id} signed in")
        return AuthResponse(token=token, profile=profile_response(user, profile))

    async def bootstrap(self, id_token: Optional[str], secret: Optional[str]) -> BootstrapResponse:
        """Create or promote an admin account outside the invitation flow.

        Only available in Development with ENABLE_BOOTSTRAP set.
        """
        if not settings.is_development or not settings.ENABLE_BOOTSTRAP:
            raise ForbiddenError("Bootstrap endpoint disabled")
        if settings.BOOTSTRAP_SECRET and secret != settings.BOOTSTRAP_SECRET:
            raise ForbiddenError("Invalid bootstrap secret")
        if not id_token or not id_token.strip():
            raise BadRequestError("IdToken is required for bootstrap")

        identity = await self.validator.validate(id_token)
        user = await self.uow.users.get_by_google_sub(identity.sub)
        if user is None:
            logger.info(f"Bootstrap: creating new user for Google sub {identity.sub}")
            user = ApplicationUser(
                google_sub=identity.sub,
                email=identity.email,
                display_name=identity.name,
                is_admin=True
            )
            await self.uow.users.add(user)
            await self.uow.session.flush()
        else:
            user.is_admin = True

        await self._ensure_profile(user)
        await self.uow.save_changes()
        return BootstrapResponse(user_id=user.id, google_sub=user.google_sub, is_admin=user.is_admin)
