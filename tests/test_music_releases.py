"""Release commands, queries and collection statistics."""

import os
from datetime import datetime, timezone

import pytest

from kollector.core.result import ErrorType
from kollector.models.kollection import Kollection, KollectionItem
from kollector.models.lookups import Artist, Store
from kollector.models.now_playing import NowPlaying
from kollector.schemas.music_release import (
    MusicReleaseCreate, MusicReleaseQuery, MusicReleaseUpdate, PurchaseInfo, ReleaseImages
)
from kollector.services.release_command_service import MusicReleaseCommandService
from kollector.services.release_query_service import MusicReleaseQueryService
from kollector.services.statistics_service import CollectionStatisticsService


def year(value: int) -> datetime:
    return datetime(value, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def commands(uow):
    return MusicReleaseCommandService(uow)


@pytest.fixture
def queries(uow):
    return MusicReleaseQueryService(uow)


async def create(commands, user, **fields):
    result = await commands.create_music_release(user.id, MusicReleaseCreate(**fields))
    assert result.is_success, result.error_message
    return result.value


@pytest.mark.asyncio
async def test_create_resolves_lookup_names(commands, user):
    created = await create(
        commands, user,
        title="Master of Puppets",
        artist_names=["Metallica"],
        genre_names=["Thrash Metal", "thrash metal"],
        label_name="Elektra",
        country_name="US",
        format_name="Vinyl",
        release_year=year(1986),
    )

    release = created.release
    assert [a.name for a in release.artists] == ["Metallica"]
    assert [g.name for g in release.genres] == ["Thrash Metal"]
    assert release.label.name == "Elektra"
    assert release.country.name == "US"
    assert release.format.name == "Vinyl"
    assert created.created is not None
    assert [a.name for a in created.created.artists] == ["Metallica"]


@pytest.mark.asyncio
async def test_create_reuses_existing_lookups(commands, uow, user):
    await uow.artists.add(Artist(user_id=user.id, name="Metallica"))
    await uow.save_changes()

    created = await create(commands, user, title="Ride the Lightning", artist_names=["metallica"])
    assert created.created is None
    assert await uow.artists.count(Artist.user_id == user.id) == 1


@pytest.mark.asyncio
async def test_create_requires_title(commands, user):
    result = await commands.create_music_release(user.id, MusicReleaseCreate(title="  "))
    assert result.error_type == ErrorType.VALIDATION_ERROR


@pytest.mark.asyncio
async def test_create_rejects_foreign_lookup_ids(commands, uow, user, other_user):
    foreign = Artist(user_id=other_user.id, name="Not yours")
    await uow.artists.add(foreign)
    await uow.save_changes()

    result = await commands.create_music_release(
        user.id, MusicReleaseCreate(title="Stolen", artist_ids=[foreign.id])
    )
    assert result.error_type == ErrorType.VALIDATION_ERROR
    assert result.error_message == f"Artist with ID {foreign.id} was not found"


@pytest.mark.asyncio
async def test_duplicate_catalog_number_is_rejected(commands, user):
    await create(commands, user, title="Kill 'Em All", label_number="MFN 7")
    result = await commands.create_music_release(
        user.id, MusicReleaseCreate(title="Kill Em All (reissue)", label_number="mfn 7")
    )
    assert result.error_type == ErrorType.DUPLICATE_ERROR
    assert "Kill 'Em All" in result.error_message


@pytest.mark.asyncio
async def test_duplicate_title_with_shared_artist_is_rejected(commands, user):
    await create(commands, user, title="Powerslave", artist_names=["Iron Maiden"])
    result = await commands.create_music_release(
        user.id, MusicReleaseCreate(title="powerslave", artist_names=["Iron Maiden"])
    )
    assert result.error_type == ErrorType.DUPLICATE_ERROR


@pytest.mark.asyncio
async def test_same_title_by_other_artist_is_allowed(commands, user):
    await create(commands, user, title="Live", artist_names=["Band A"])
    await create(commands, user, title="Live", artist_names=["Band B"])


@pytest.mark.asyncio
async def test_store_name_in_purchase_info_is_resolved(commands, uow, user):
    created = await create(
        commands, user,
        title="Painkiller",
        purchase_info=PurchaseInfo(store_name="Record Exchange", price=25.0),
    )
    store = await uow.stores.get_first_or_default(Store.user_id == user.id)
    assert store.name == "Record Exchange"
    assert created.release.purchase_info.store_id == store.id
    assert created.release.purchase_info.store_name == "Record Exchange"


@pytest.mark.asyncio
async def test_update_release(commands, queries, user):
    created = await create(commands, user, title="Screaming for Vengance", live=False)
    result = await commands.update_music_release(
        user.id, created.release.id, MusicReleaseUpdate(title="Screaming for Vengeance", live=True)
    )
    assert result.is_success
    fetched = await queries.get_music_release(user.id, created.release.id)
    assert fetched.value.title == "Screaming for Vengeance"
    assert fetched.value.live is True


@pytest.mark.asyncio
async def test_update_of_other_users_release_is_refused(commands, user, other_user):
    created = await create(commands, other_user, title="British Steel")
    result = await commands.update_music_release(user.id, created.release.id, MusicReleaseUpdate(title="Mine"))
    assert result.error_type == ErrorType.AUTHORIZATION_ERROR


@pytest.mark.asyncio
async def test_delete_release_removes_image_files(commands, queries, image_storage, user):
    os.makedirs(image_storage.covers_path)
    cover = os.path.join(image_storage.covers_path, "cover.jpg")
    with open(cover, "wb") as f:
        f.write(b"jpeg")

    created = await create(commands, user, title="Heaven and Hell", images=ReleaseImages(cover_front="cover.jpg"))
    result = await commands.delete_music_release(user.id, created.release.id)

    assert result.is_success
    assert not os.path.exists(cover)
    assert (await queries.get_music_release(user.id, created.release.id)).error_type == ErrorType.NOT_FOUND


@pytest.mark.asyncio
async def test_delete_missing_release(commands, user):
    result = await commands.delete_music_release(user.id, 999)
    assert result.error_type == ErrorType.NOT_FOUND


@pytest.mark.asyncio
async def test_list_filters_sorts_and_pages(commands, queries, user, other_user):
    await create(commands, user, title="Blizzard of Ozz", artist_names=["Ozzy Osbourne"], release_year=year(1980))
    await create(commands, user, title="Ace of Spades", artist_names=["Motörhead"], release_year=year(1980), live=False)
    await create(commands, user, title="No Sleep 'til Hammersmith", artist_names=["Motörhead"],
                 release_year=year(1981), live=True)
    await create(commands, other_user, title="Ace of Base", artist_names=["Ace of Base"])

    everything = await queries.get_music_releases(user.id, MusicReleaseQuery())
    assert [r.title for r in everything.items] == ["Ace of Spades", "Blizzard of Ozz", "No Sleep 'til Hammersmith"]

    searched = await queries.get_music_releases(user.id, MusicReleaseQuery(search="ace"))
    assert [r.title for r in searched.items] == ["Ace of Spades"]

    live = await queries.get_music_releases(user.id, MusicReleaseQuery(live=True))
    assert [r.title for r in live.items] == ["No Sleep 'til Hammersmith"]

    from_1981 = await queries.get_music_releases(user.id, MusicReleaseQuery(year_from=1981))
    assert [r.title for r in from_1981.items] == ["No Sleep 'til Hammersmith"]

    paged = await queries.get_music_releases(user.id, MusicReleaseQuery(page=2, page_size=2, sort_order="desc"))
    assert [r.title for r in paged.items] == ["Ace of Spades"]
    assert paged.total_count == 3
    assert paged.total_pages == 2


@pytest.mark.asyncio
async def test_filter_by_artist_id(commands, queries, user):
    first = await create(commands, user, title="Overkill", artist_names=["Motörhead"])
    await create(commands, user, title="Paranoid", artist_names=["Black Sabbath"])
    artist_id = first.release.artists[0].id

    result = await queries.get_music_releases(user.id, MusicReleaseQuery(artist_id=artist_id))
    assert [r.title for r in result.items] == ["Overkill"]
    assert result.items[0].artist_names == ["Motörhead"]


@pytest.mark.asyncio
async def test_filter_by_kollection(commands, queries, uow, user):
    kept = await create(commands, user, title="Rust in Peace", artist_names=["Megadeth"])
    await create(commands, user, title="Peace Sells", artist_names=["Megadeth"])
    kollection = Kollection(user_id=user.id, name="Vinyl")
    await uow.kollections.add(kollection)
    await uow.save_changes()
    await uow.repository(KollectionItem).add(
        KollectionItem(kollection_id=kollection.id, music_release_id=kept.release.id)
    )
    await uow.save_changes()

    result = await queries.get_music_releases(user.id, MusicReleaseQuery(kollection_id=kollection.id))
    assert [r.title for r in result.items] == ["Rust in Peace"]
    assert result.total_count == 1

    by_artist = await queries.get_music_releases(
        user.id, MusicReleaseQuery(kollection_id=kollection.id, sort_by="artist")
    )
    assert [r.title for r in by_artist.items] == ["Rust in Peace"]

    unknown = await queries.get_music_releases(user.id, MusicReleaseQuery(kollection_id=kollection.id + 1))
    assert unknown.items == []


@pytest.mark.asyncio
async def test_sort_by_artist(commands, queries, user):
    await create(commands, user, title="A Title", artist_names=["Zeppelin"])
    await create(commands, user, title="Z Title", artist_names=["Accept"])

    result = await queries.get_music_releases(user.id, MusicReleaseQuery(sort_by="artist"))
    assert [r.title for r in result.items] == ["Z Title", "A Title"]


@pytest.mark.asyncio
async def test_get_release_includes_last_played(commands, queries, uow, user):
    created = await create(commands, user, title="Sad Wings of Destiny")
    await uow.now_playing.add(NowPlaying(music_release_id=created.release.id, played_at=year(2024)))
    await uow.save_changes()

    fetched = await queries.get_music_release(user.id, created.release.id)
    assert fetched.value.last_played_at is not None
    assert fetched.value.last_played_at.year == 2024


@pytest.mark.asyncio
async def test_other_users_release_is_not_found(commands, queries, user, other_user):
    created = await create(commands, other_user, title="Unleashed in the East")
    result = await queries.get_music_release(user.id, created.release.id)
    assert result.error_type == ErrorType.NOT_FOUND


@pytest.mark.asyncio
async def test_search_suggestions(commands, queries, user):
    await create(commands, user, title="Metal Heart", artist_names=["Accept"], label_name="Metal Blade")
    await create(commands, user, title="Heavy Metal Thunder", artist_names=["Saxon"])

    assert await queries.get_search_suggestions(user.id, "m") == []

    suggestions = await queries.get_search_suggestions(user.id, "metal")
    names = [s.name for s in suggestions]
    assert names[0] in ("Metal Blade", "Metal Heart")
    assert set(names) == {"Metal Heart", "Metal Blade", "Heavy Metal Thunder"}
    assert {s.type for s in suggestions} == {"release", "label"}


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, -1])
async def test_search_suggestions_with_bad_limit_uses_default(commands, queries, user, limit):
    await create(commands, user, title="Metal Heart", artist_names=["Accept"], label_name="Metal Blade")
    await create(commands, user, title="Heavy Metal Thunder", artist_names=["Saxon"])

    suggestions = await queries.get_search_suggestions(user.id, "metal", limit=limit)
    assert {s.name for s in suggestions} == {"Metal Heart", "Metal Blade", "Heavy Metal Thunder"}

    one = await queries.get_search_suggestions(user.id, "metal", limit=1)
    assert len(one) == 1


@pytest.mark.asyncio
async def test_random_release(commands, queries, user):
    assert await queries.get_random_release_id(user.id) is None
    created = await create(commands, user, title="Defenders of the Faith")
    assert await queries.get_random_release_id(user.id) == created.release.id


@pytest.mark.asyncio
async def test_statistics(uow, commands, user):
    await create(commands, user, title="One", artist_names=["A"], genre_names=["Rock"], format_name="Vinyl",
                 country_name="UK", release_year=year(1980), purchase_info=PurchaseInfo(price=10.0))
    await create(commands, user, title="Two", artist_names=["B"], genre_names=["Rock", "Metal"], format_name="Vinyl",
                 country_name="UK", release_year=year(1980), purchase_info=PurchaseInfo(price=30.0))
    await create(commands, user, title="Three", artist_names=["A"], format_name="CD", release_year=year(1975),
                 purchase_info=PurchaseInfo(price=0))

    stats = await CollectionStatisticsService(uow).get_statistics(user.id)

    assert stats.total_releases == 3
    assert stats.total_artists == 2
    assert stats.total_genres == 2
    assert [(y.year, y.count) for y in stats.releases_by_year] == [(1975, 1), (1980, 2)]
    assert [(f.name, f.count, f.percentage) for f in stats.releases_by_format] == [
        ("Vinyl", 2, 66.67), ("CD", 1, 33.33)
    ]
    assert stats.releases_by_country[0].name == "UK"
    assert stats.releases_by_genre[0].name == "Rock"
    assert stats.total_value == 40.0
    assert stats.average_price == 20.0
    assert stats.most_expensive_release.title == "Two"
    assert len(stats.recently_added) == 3


@pytest.mark.asyncio
async def test_statistics_for_empty_collection(uow, user):
    stats = await CollectionStatisticsService(uow).get_statistics(user.id)
    assert stats.total_releases == 0
    assert stats.total_value is None
    assert stats.recently_added == []
