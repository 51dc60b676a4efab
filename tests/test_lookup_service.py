import pytest

from kollector.core.result import ErrorType
from kollector.models.lookups import Artist, Country
from kollector.schemas.lookup import LookupCreate, LookupUpdate
from kollector.services.lookup_service import LookupService


@pytest.fixture
def artists(uow):
    return LookupService(uow, Artist, "Artist")


@pytest.mark.asyncio
async def test_create_trims_name(artists, user):
    result = await artists.create(user.id, LookupCreate(name="  Motörhead  "))
    assert result.is_success
    assert result.value.name == "Motörhead"
    assert result.value.id > 0


@pytest.mark.asyncio
async def test_create_requires_name(artists, user):
    result = await artists.create(user.id, LookupCreate(name="   "))
    assert result.error_type == ErrorType.VALIDATION_ERROR
    assert result.error_message == "Artist name is required"


@pytest.mark.asyncio
async def test_country_name_limit(uow, user):
    countries = LookupService(uow, Country, "Country")
    result = await countries.create(user.id, LookupCreate(name="x" * 101))
    assert result.error_type == ErrorType.VALIDATION_ERROR
    assert "100" in result.error_message


@pytest.mark.asyncio
async def test_get_all_is_scoped_to_owner_and_searchable(artists, user, other_user):
    for name in ("Iron Maiden", "Judas Priest", "Saxon"):
        await artists.create(user.id, LookupCreate(name=name))
    await artists.create(other_user.id, LookupCreate(name="Iron Butterfly"))

    everything = await artists.get_all(user.id)
    assert [a.name for a in everything.items] == ["Iron Maiden", "Judas Priest", "Saxon"]
    assert everything.total_count == 3

    searched = await artists.get_all(user.id, search="iron")
    assert [a.name for a in searched.items] == ["Iron Maiden"]


@pytest.mark.asyncio
async def test_get_by_id_of_other_user_is_not_found(artists, user, other_user):
    created = await artists.create(other_user.id, LookupCreate(name="Accept"))
    result = await artists.get_by_id(user.id, created.value.id)
    assert result.error_type == ErrorType.NOT_FOUND


@pytest.mark.asyncio
async def test_update_and_delete(artists, user):
    created = await artists.create(user.id, LookupCreate(name="Diamond Head"))

    updated = await artists.update(user.id, created.value.id, LookupUpdate(name="Diamond Head (UK)"))
    assert updated.value.name == "Diamond Head (UK)"

    deleted = await artists.delete(user.id, created.value.id)
    assert deleted.is_success
    assert (await artists.get_by_id(user.id, created.value.id)).error_type == ErrorType.NOT_FOUND


@pytest.mark.asyncio
async def test_update_of_other_users_entity_is_refused(artists, user, other_user):
    created = await artists.create(other_user.id, LookupCreate(name="Tygers of Pan Tang"))
    result = await artists.update(user.id, created.value.id, LookupUpdate(name="Mine now"))
    assert result.error_type == ErrorType.AUTHORIZATION_ERROR


@pytest.mark.asyncio
async def test_delete_missing_entity(artists, user):
    result = await artists.delete(user.id, 12345)
    assert result.error_type == ErrorType.NOT_FOUND
    assert result.error_message == "Artist with ID 12345 was not found"


@pytest.mark.asyncio
async def test_get_or_create_by_name_is_case_insensitive(artists, user):
    first, created = await artists.get_or_create_by_name(user.id, "Venom")
    again, created_again = await artists.get_or_create_by_name(user.id, " venom ")
    assert created
    assert not created_again
    assert first.id == again.id
