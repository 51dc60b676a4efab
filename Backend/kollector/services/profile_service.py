import logging
import uuid

from kollector.core.result import Result
from kollector.models.kollection import Kollection
from kollector.models.user import DEFAULT_THEME, UserProfile
from kollector.repositories.unit_of_work import UnitOfWork
from kollector.schemas.user import DeleteCollectionResponse, UpdateProfileRequest, UserProfileResponse
from kollector.services.auth_service import profile_response

logger = logging.getLogger(__name__)

THEMES = ("midnight", "metal-default", "clean-light")


class ProfileService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def get_profile(self, user_id: uuid.UUID) -> Result[UserProfileResponse]:
        user = await self.uow.users.get_by_id(user_id)
        if user is None:
            return Result.not_found("User", user_id)
        profile = await self.uow.user_profiles.get_by_user_id(user_id)
        return Result.success(profile_response(user, profile))

    async def update_profile(self, user_id: uuid.UUID, data: UpdateProfileRequest) -> Result[UserProfileResponse]:
        user = await self.uow.users.get_by_id(user_id)
        if user is None:
            return Result.not_found("User", user_id)

        if data.selected_kollection_id is not None:
            owned = await self.uow.kollections.any([
                Kollection.id == data.selected_kollection_id, Kollection.user_id == user_id
            ])
            if not owned:
                return Result.validation_error("Selected kollection does not exist")
        if data.selected_theme is not None and data.selected_theme not in THEMES:
            return Result.validation_error(f"Invalid theme. Valid themes are: {', '.join(THEMES)}")

        profile = await self.uow.user_profiles.get_by_user_id(user_id)
        if profile is None:
            profile = await self.uow.user_profiles.create(UserProfile(user_id=user_id, selected_theme=DEFAULT_THEME))

        profile.selected_kollection_id = data.selected_kollection_id
        if data.selected_theme is not None:
            profile.selected_theme = data.selected_theme
        await self.uow.save_changes()
        return Result.success(profile_response(user, profile))

    async def delete_collection(self, user_id: uuid.UUID) -> DeleteCollectionResponse:
        deleted = await self.uow.user_profiles.delete_all_user_music_releases(user_id)
        await self.uow.save_changes()
        logger.info(f"User {user_id} deleted their collection ({deleted} albums)")
        return DeleteCollectionResponse(
            albums_deleted=deleted,
            success=True,
            message=f"Successfully deleted {deleted} album(s) from your collection"
        )
