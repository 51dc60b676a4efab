import sys
import os
import asyncio
import uuid
from datetime import datetime, timezone

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'Backend')))

from kollector.models.user import ApplicationUser, UserProfile
from kollector.models.lookups import Artist, Country, Format, Genre, Label, Packaging, Store
from kollector.models.music_release import MusicRelease
from kollector.models.kollection import Kollection, KollectionItem
from kollector.services.database import SessionLocal, engine, init_db
from kollector.services.release_mapper import dump_json


def year(value: int) -> datetime:
    return datetime(value, 1, 1, tzinfo=timezone.utc)


async def create_demo_data(email: str):
    await init_db()

    async with SessionLocal() as session:
        # Demo owner; signs in once a matching Google account logs in
        user = ApplicationUser(
            id=uuid.uuid4(),
            google_sub=f"demo-{uuid.uuid4()}",
            email=email.lower(),
            display_name="Demo Kollector",
            is_admin=True,
        )
        session.add(user)
        await session.flush()
        session.add(UserProfile(user_id=user.id))

        # Lookup data
        artists = [Artist(user_id=user.id, name=name) for name in ("Black Sabbath", "Slayer", "Bathory")]
        genres = [Genre(user_id=user.id, name=name) for name in ("Heavy Metal", "Thrash Metal", "Black Metal")]
        countries = [Country(user_id=user.id, name=name) for name in ("UK", "US", "Sweden")]
        vinyl = Format(user_id=user.id, name="Vinyl")
        cd = Format(user_id=user.id, name="CD")
        gatefold = Packaging(user_id=user.id, name="Gatefold")
        store = Store(user_id=user.id, name="Local Record Shop")
        labels = [Label(user_id=user.id, name=name) for name in ("Vertigo", "Def American", "Black Mark")]
        session.add_all([*artists, *genres, *countries, vinyl, cd, gatefold, store, *labels])
        await session.flush()

        # Demo releases
        releases = [
            MusicRelease(
                user_id=user.id,
                title="Paranoid",
                release_year=year(1970),
                artists=dump_json([artists[0].id]),
                genres=dump_json([genres[0].id]),
                label_id=labels[0].id,
                country_id=countries[0].id,
                format_id=vinyl.id,
                packaging_id=gatefold.id,
                label_number="6360 011",
                purchase_info=dump_json({"store_id": store.id, "price": 35.0}),
            ),
            MusicRelease(
                user_id=user.id,
                title="Reign in Blood",
                release_year=year(1986),
                artists=dump_json([artists[1].id]),
                genres=dump_json([genres[1].id]),
                label_id=labels[1].id,
                country_id=countries[1].id,
                format_id=cd.id,
                purchase_info=dump_json({"store_id": store.id, "price": 12.5}),
            ),
            MusicRelease(
                user_id=user.id,
                title="Under the Sign of the Black Mark",
                release_year=year(1987),
                artists=dump_json([artists[2].id]),
                genres=dump_json([genres[2].id]),
                label_id=labels[2].id,
                country_id=countries[2].id,
                format_id=vinyl.id,
            ),
        ]
        session.add_all(releases)
        await session.flush()

        # Demo kollection
        kollection = Kollection(user_id=user.id, name="Vinyl")
        session.add(kollection)
        await session.flush()
        session.add_all([
            KollectionItem(kollection_id=kollection.id, music_release_id=release.id)
            for release in releases if release.format_id == vinyl.id
        ])

        # Commit all changes
        await session.commit()
        print(f"✅ Demo data created successfully for {user.email}!")

    await engine.dispose()

if __name__ == "__main__":
    demo_email = sys.argv[1] if len(sys.argv) > 1 else "demo@example.com"
    asyncio.run(create_demo_data(demo_email))
