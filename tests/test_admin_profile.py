import os

import pytest

from kollector.core.result import ErrorType
from kollector.models.kollection import Kollection
from kollector.models.lookups import Artist
from kollector.models.music_release import MusicRelease
from kollector.models.user import ApplicationUser, UserInvitation
from kollector.schemas.user import InvitationCreate, UpdateProfileRequest
from kollector.services.admin_service import AdminService
from kollector.services.profile_service import ProfileService


@pytest.fixture
def admin_service(uow):
    return AdminService(uow)


@pytest.fixture
def profiles(uow):
    return ProfileService(uow)


# Invitations

@pytest.mark.asyncio
async def test_create_invitation_normalises_email(admin_service, admin):
    result = await admin_service.create_invitation(admin.id, InvitationCreate(email="  New.Person@Example.com "))
    assert result.is_success
    assert result.value.email == "new.person@example.com"
    assert not result.value.is_used

    invitations = await admin_service.get_invitations()
    assert [i.email for i in invitations] == ["new.person@example.com"]


@pytest.mark.asyncio
@pytest.mark.parametrize("email, message", [
    ("", "Email is required"),
    ("   ", "Email is required"),
    ("not-an-email", "Invalid email format"),
])
async def test_create_invitation_validation(admin_service, admin, email, message):
    result = await admin_service.create_invitation(admin.id, InvitationCreate(email=email))
    assert result.error_type == ErrorType.VALIDATION_ERROR
    assert result.error_message == message


@pytest.mark.asyncio
async def test_duplicate_invitation_and_existing_user(admin_service, admin, user):
    await admin_service.create_invitation(admin.id, InvitationCreate(email="guest@example.com"))

    duplicate = await admin_service.create_invitation(admin.id, InvitationCreate(email="GUEST@example.com"))
    assert duplicate.error_message == "An invitation already exists for this email"

    existing = await admin_service.create_invitation(admin.id, InvitationCreate(email="user@example.com"))
    assert existing.error_message == "User already has access to the application"


@pytest.mark.asyncio
async def test_delete_invitation(admin_service, admin):
    created = await admin_service.create_invitation(admin.id, InvitationCreate(email="guest@example.com"))
    assert (await admin_service.delete_invitation(admin.id, created.value.id)).is_success

    missing = await admin_service.delete_invitation(admin.id, created.value.id)
    assert missing.error_type == ErrorType.NOT_FOUND
    assert missing.error_message == "Invitation not found"


@pytest.mark.asyncio
async def test_activate_invitation(admin_service, uow, admin, user):
    unused = await admin_service.create_invitation(admin.id, InvitationCreate(email="guest@example.com"))
    still_open = await admin_service.activate_invitation(admin.id, unused.value.id)
    assert still_open.error_message == "Registration is already active"

    # A used invitation whose user still exists cannot be re-opened
    active = UserInvitation(email="user@example.com", is_used=True)
    await uow.user_invitations.add(active)
    await uow.save_changes()
    refused = await admin_service.activate_invitation(admin.id, active.id)
    assert refused.error_message == "User is already active"

    revoked = UserInvitation(email="former@example.com", is_used=True)
    await uow.user_invitations.add(revoked)
    await uow.save_changes()
    reopened = await admin_service.activate_invitation(admin.id, revoked.id)
    assert reopened.is_success
    assert not reopened.value.is_used
    assert reopened.value.used_at is None


# Users

@pytest.mark.asyncio
async def test_list_users(admin_service, admin, user):
    users = await admin_service.get_users()
    assert [(u.email, u.is_admin) for u in users] == [("admin@example.com", True), ("user@example.com", False)]


@pytest.mark.asyncio
async def test_delete_user_rules(admin_service, admin, user):
    admin_id = admin.id
    assert (await admin_service.delete_user(admin_id, admin_id)).error_message == "You cannot deactivate your own access"

    other_admin = ApplicationUser(google_sub="google-admin-2", email="admin2@example.com", is_admin=True)
    await admin_service.uow.users.add(other_admin)
    await admin_service.uow.save_changes()
    protected = await admin_service.delete_user(admin_id, other_admin.id)
    assert protected.error_message == "Cannot deactivate access for admin users"


@pytest.mark.asyncio
async def test_delete_user_removes_their_data(admin_service, uow, admin, user):
    admin_id, user_id = admin.id, user.id
    os.makedirs(uow.image_storage.covers_path)
    cover = os.path.join(uow.image_storage.covers_path, "mine.jpg")
    with open(cover, "wb") as f:
        f.write(b"x")

    await uow.artists.add(Artist(user_id=user_id, name="Bathory"))
    await uow.music_releases.add(MusicRelease(user_id=user_id, title="Blood Fire Death", images='{"cover_front":"mine.jpg"}'))
    await uow.kollections.add(Kollection(user_id=user_id, name="Vinyl"))
    await uow.save_changes()

    result = await admin_service.delete_user(admin_id, user_id)
    assert result.is_success

    assert await uow.users.get_by_id(user_id) is None
    assert await uow.user_profiles.get_by_user_id(user_id) is None
    assert await uow.music_releases.count(MusicRelease.user_id == user_id) == 0
    assert await uow.artists.count(Artist.user_id == user_id) == 0
    assert await uow.kollections.count(Kollection.user_id == user_id) == 0
    assert not os.path.exists(cover)

    missing = await admin_service.delete_user(admin_id, user_id)
    assert missing.error_type == ErrorType.NOT_FOUND


@pytest.mark.asyncio
async def test_failed_user_delete_keeps_their_releases(admin_service, uow, admin, user, monkeypatch):
    admin_id, user_id = admin.id, user.id
    await uow.music_releases.add(MusicRelease(user_id=user_id, title="Walls of Jericho"))
    await uow.save_changes()

    async def refuse(entity):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(uow.users, "delete", refuse)
    with pytest.raises(RuntimeError):
        await admin_service.delete_user(admin_id, user_id)
    await uow.session.rollback()

    assert await uow.users.get_by_id(user_id) is not None
    assert await uow.music_releases.count(MusicRelease.user_id == user_id) == 1


# Profile

@pytest.mark.asyncio
async def test_get_profile_defaults(profiles, user):
    profile = await profiles.get_profile(user.id)
    assert profile.value.email == "user@example.com"
    assert profile.value.selected_theme == "metal-default"
    assert profile.value.selected_kollection_id is None


@pytest.mark.asyncio
async def test_update_profile(profiles, uow, user):
    kollection = Kollection(user_id=user.id, name="CDs")
    await uow.kollections.add(kollection)
    await uow.save_changes()

    updated = await profiles.update_profile(
        user.id, UpdateProfileRequest(selected_kollection_id=kollection.id, selected_theme="midnight")
    )
    assert updated.value.selected_kollection_id == kollection.id
    assert updated.value.selected_theme == "midnight"

    # Leaving the theme out keeps it, while the kollection is cleared
    cleared = await profiles.update_profile(user.id, UpdateProfileRequest())
    assert cleared.value.selected_kollection_id is None
    assert cleared.value.selected_theme == "midnight"


@pytest.mark.asyncio
async def test_update_profile_validation(profiles, uow, user, other_user):
    foreign = Kollection(user_id=other_user.id, name="Not yours")
    await uow.kollections.add(foreign)
    await uow.save_changes()

    wrong_kollection = await profiles.update_profile(user.id, UpdateProfileRequest(selected_kollection_id=foreign.id))
    assert wrong_kollection.error_message == "Selected kollection does not exist"

    wrong_theme = await profiles.update_profile(user.id, UpdateProfileRequest(selected_theme="neon"))
    assert wrong_theme.error_type == ErrorType.VALIDATION_ERROR
    assert wrong_theme.error_message == "Invalid theme. Valid themes are: midnight, metal-default, clean-light"


@pytest.mark.asyncio
async def test_delete_collection(profiles, uow, user, other_user):
    user_id = user.id
    for title in ("Under the Sign of the Black Mark", "Hammerheart"):
        await uow.music_releases.add(MusicRelease(user_id=user_id, title=title))
    await uow.music_releases.add(MusicRelease(user_id=other_user.id, title="Someone else's"))
    await uow.save_changes()

    response = await profiles.delete_collection(user_id)
    assert response.success
    assert response.albums_deleted == 2
    assert response.message == "Successfully deleted 2 album(s) from your collection"
    assert await uow.music_releases.count() == 1

    empty = await profiles.delete_collection(user_id)
    assert empty.message == "Successfully deleted 0 album(s) from your collection"


@pytest.mark.asyncio
async def test_release_bulk_delete_follows_the_open_transaction(uow, user):
    user_id = user.id
    await uow.music_releases.add(MusicRelease(user_id=user_id, title="Hell Awaits"))
    await uow.save_changes()

    await uow.begin_transaction()
    assert await uow.user_profiles.delete_all_user_music_releases(user_id) == 1
    await uow.rollback_transaction()

    assert await uow.music_releases.count(MusicRelease.user_id == user_id) == 1
