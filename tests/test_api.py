import json
import os

import httpx
import pytest
from fastapi import Request

from conftest import auth_headers
from kollector.core.config import settings
from kollector.services.discogs import DiscogsService, get_discogs_service
from kollector.services.google_auth import GoogleTokenValidator, get_google_token_validator


@pytest.fixture
def app():
    from main import app
    return app


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "Healthy"
    assert body["service"] == "KollectorScum API"


@pytest.mark.asyncio
async def test_root_and_runtime_info(client):
    assert (await client.get("/")).status_code == 200
    info = (await client.get("/runtime-info")).json()
    assert info["environment"] == "Production"


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/api/artists", "/api/musicreleases", "/api/kollections", "/api/profile"])
async def test_endpoints_require_a_token(client, path):
    response = await client.get(path)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(client):
    response = await client.get("/api/artists", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Could not validate credentials"


# Lookups

@pytest.mark.asyncio
async def test_lookup_crud(client, user):
    headers = auth_headers(user)

    created = await client.post("/api/genres", json={"name": "  Thrash Metal "}, headers=headers)
    assert created.status_code == 201
    genre = created.json()
    assert genre["name"] == "Thrash Metal"

    listing = (await client.get("/api/genres", params={"search": "thrash"}, headers=headers)).json()
    assert listing["total_count"] == 1
    assert listing["items"][0]["id"] == genre["id"]

    renamed = await client.put(f"/api/genres/{genre['id']}", json={"name": "Speed Metal"}, headers=headers)
    assert renamed.json()["name"] == "Speed Metal"

    assert (await client.delete(f"/api/genres/{genre['id']}", headers=headers)).status_code == 204
    assert (await client.get(f"/api/genres/{genre['id']}", headers=headers)).status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{"page": 0}, {"pageSize": 0}, {"pageSize": 5001}])
async def test_lookup_paging_bounds(client, user, params):
    response = await client.get("/api/artists", params=params, headers=auth_headers(user))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_lookup_invalid_id(client, user):
    response = await client.get("/api/labels/0", headers=auth_headers(user))
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid ID"


@pytest.mark.asyncio
async def test_lookups_are_private(client, user, other_user):
    created = (await client.post("/api/labels", json={"name": "Noise"}, headers=auth_headers(other_user))).json()
    response = await client.get(f"/api/labels/{created['id']}", headers=auth_headers(user))
    assert response.status_code in (403, 404)
    assert (await client.get("/api/labels", headers=auth_headers(user))).json()["items"] == []


@pytest.mark.asyncio
async def test_admin_can_act_as_another_user(client, admin, user):
    response = await client.post(
        "/api/artists", json={"name": "Kreator"},
        headers={**auth_headers(admin), "X-Admin-Act-As": str(user.id)}
    )
    assert response.status_code == 201

    mine = (await client.get("/api/artists", headers=auth_headers(user))).json()
    assert [a["name"] for a in mine["items"]] == ["Kreator"]


@pytest.mark.asyncio
async def test_act_as_is_ignored_for_regular_users(client, user, other_user):
    await client.post(
        "/api/artists", json={"name": "Destruction"},
        headers={**auth_headers(user), "X-Admin-Act-As": str(other_user.id)}
    )
    theirs = (await client.get("/api/artists", headers=auth_headers(other_user))).json()
    assert theirs["items"] == []


# Releases

@pytest.mark.asyncio
async def test_release_lifecycle(client, user):
    headers = auth_headers(user)
    payload = {"title": "Pleasure to Kill", "artist_names": ["Kreator"], "format_name": "Vinyl"}

    created = await client.post("/api/musicreleases", json=payload, headers=headers)
    assert created.status_code == 201
    release_id = created.json()["release"]["id"]

    listing = (await client.get("/api/musicreleases", params={"search": "pleasure"}, headers=headers)).json()
    assert listing["total_count"] == 1
    assert listing["items"][0]["artist_names"] == ["Kreator"]

    detail = (await client.get(f"/api/musicreleases/{release_id}", headers=headers)).json()
    assert detail["format"]["name"] == "Vinyl"

    random_pick = (await client.get("/api/musicreleases/random", headers=headers)).json()
    assert random_pick["id"] == release_id

    assert (await client.delete(f"/api/musicreleases/{release_id}", headers=headers)).status_code == 204
    assert (await client.get(f"/api/musicreleases/{release_id}", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_random_release_of_empty_collection(client, user):
    response = await client.get("/api/musicreleases/random", headers=auth_headers(user))
    assert response.status_code == 404
    assert response.json()["detail"] == "No music releases found"


@pytest.mark.asyncio
async def test_create_release_requires_title(client, user):
    response = await client.post("/api/musicreleases", json={"title": " "}, headers=auth_headers(user))
    assert response.status_code == 400


# Kollections, lists and plays

@pytest.mark.asyncio
async def test_kollection_and_list_routes(client, user):
    headers = auth_headers(user)
    release_id = (await client.post("/api/musicreleases", json={"title": "Terrible Certainty"}, headers=headers)) \
        .json()["release"]["id"]

    kollection = await client.post(
        "/api/kollections/add-release", json={"music_release_id": release_id, "new_kollection_name": "Vinyl"},
        headers=headers
    )
    assert kollection.status_code == 200
    kollection_id = kollection.json()["id"]
    assert kollection.json()["item_count"] == 1

    duplicate = await client.post("/api/kollections", json={"name": "VINYL"}, headers=headers)
    assert duplicate.status_code == 409

    in_kollection = (await client.get(
        "/api/musicreleases", params={"kollectionId": kollection_id}, headers=headers
    )).json()
    assert [r["id"] for r in in_kollection["items"]] == [release_id]

    assert (await client.delete(
        f"/api/kollections/{kollection_id}/releases/{release_id}", headers=headers
    )).status_code == 204

    created_list = await client.post("/api/lists", json={"name": "Wishlist"}, headers=headers)
    assert created_list.status_code == 201
    list_id = created_list.json()["id"]

    added = await client.post(f"/api/lists/{list_id}/releases", json={"release_id": release_id}, headers=headers)
    assert added.json()["release_ids"] == [release_id]

    by_release = (await client.get(f"/api/lists/by-release/{release_id}", headers=headers)).json()
    assert [l["name"] for l in by_release] == ["Wishlist"]

    releases = (await client.get(f"/api/lists/{list_id}/releases", headers=headers)).json()
    assert [r["title"] for r in releases] == ["Terrible Certainty"]


@pytest.mark.asyncio
async def test_now_playing_routes(client, user):
    headers = auth_headers(user)
    release_id = (await client.post("/api/musicreleases", json={"title": "Agent Orange"}, headers=headers)) \
        .json()["release"]["id"]

    play = await client.post("/api/nowplaying", json={"music_release_id": release_id}, headers=headers)
    assert play.status_code == 201

    history = (await client.get(f"/api/nowplaying/release/{release_id}/history", headers=headers)).json()
    assert history["play_count"] == 1

    recent = (await client.get("/api/nowplaying/recent", headers=headers)).json()
    assert [r["id"] for r in recent] == [release_id]

    missing = await client.post("/api/nowplaying", json={"music_release_id": 999}, headers=headers)
    assert missing.status_code == 404


# Images

@pytest.mark.asyncio
async def test_serve_image(client, image_storage):
    os.makedirs(image_storage.covers_path)
    with open(os.path.join(image_storage.covers_path, "cover.jpg"), "wb") as f:
        f.write(b"\xff\xd8jpeg")

    response = await client.get("/api/images/cover.jpg")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert response.content == b"\xff\xd8jpeg"

    assert (await client.get("/api/images/missing.jpg")).status_code == 404


@pytest.mark.asyncio
async def test_image_download_requires_login(client):
    response = await client.post("/api/images/download", json={"url": "https://img.test/a.jpg", "filename": "a.jpg"})
    assert response.status_code == 401


# Profile and admin

@pytest.mark.asyncio
async def test_profile_routes(client, user):
    headers = auth_headers(user)
    profile = (await client.get("/api/profile", headers=headers)).json()
    assert profile["email"] == "user@example.com"

    bad_theme = await client.put("/api/profile", json={"selected_theme": "neon"}, headers=headers)
    assert bad_theme.status_code == 400

    deleted = (await client.delete("/api/profile/collection", headers=headers)).json()
    assert deleted["albums_deleted"] == 0


@pytest.mark.asyncio
async def test_admin_routes_need_admin(client, user):
    response = await client.get("/api/admin/users", headers=auth_headers(user))
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


@pytest.mark.asyncio
async def test_admin_invitations(client, admin):
    headers = auth_headers(admin)
    created = await client.post("/api/admin/invitations", json={"email": "guest@example.com"}, headers=headers)
    assert created.status_code == 201

    invalid = await client.post("/api/admin/invitations", json={"email": "nope"}, headers=headers)
    assert invalid.status_code == 400
    assert invalid.json()["detail"] == "Invalid email format"

    invitations = (await client.get("/api/admin/invitations", headers=headers)).json()
    assert [i["email"] for i in invitations] == ["guest@example.com"]

    assert (await client.delete(
        f"/api/admin/invitations/{created.json()['id']}", headers=headers
    )).status_code == 204


@pytest.mark.asyncio
async def test_admin_cannot_delete_themselves(client, admin):
    response = await client.delete(f"/api/admin/users/{admin.id}", headers=auth_headers(admin))
    assert response.status_code == 400


# Auth

@pytest.mark.asyncio
async def test_google_login_route(client, app):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"aud": "web-client", "sub": "google-first", "email": "first@example.com"})

    validator = GoogleTokenValidator(audiences=["web-client"], transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_google_token_validator] = lambda: validator

    for path in ("/api/auth/google", "/api/auth/google/login"):
        response = await client.post(path, json={"id_token": "token"})
        assert response.status_code == 200
        body = response.json()
        assert body["profile"]["is_admin"]

    profile = await client.get("/api/profile", headers={"Authorization": f"Bearer {body['token']}"})
    assert profile.json()["email"] == "first@example.com"


@pytest.mark.asyncio
async def test_bootstrap_disabled(client):
    response = await client.post("/api/auth/bootstrap", json={"id_token": "token"})
    assert response.status_code == 403


# Discogs, import and query

@pytest.mark.asyncio
async def test_discogs_search_requires_catalog_number(client, user):
    response = await client.get("/api/discogs/search", params={"catalogNumber": " "}, headers=auth_headers(user))
    assert response.status_code == 400
    assert response.json()["detail"] == "Catalog number is required"


@pytest.mark.asyncio
async def test_discogs_release_not_found(client, app, user):
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    app.dependency_overrides[get_discogs_service] = lambda: DiscogsService(transport=transport)

    response = await client.get("/api/discogs/release/123", headers=auth_headers(user))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_import_requires_username(client, user):
    response = await client.post("/api/import/discogs", json={"username": "  "}, headers=auth_headers(user))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_query_without_model_configured(client, user):
    response = await client.post("/api/query/ask", json={"question": "What do I own?"}, headers=auth_headers(user))
    assert response.status_code == 400
    assert response.json()["detail"] == "Natural language queries are not configured"


# Unhandled errors

def boom_request():
    return Request({"type": "http", "method": "GET", "path": "/api/boom", "headers": [], "query_string": b""})


async def handle_failure(handler):
    try:
        raise ValueError("boom")
    except ValueError as exc:
        return await handler(boom_request(), exc)


@pytest.mark.asyncio
async def test_unhandled_error_sends_traceback_in_development(monkeypatch):
    from main import global_exception_handler
    monkeypatch.setattr(settings, "ENVIRONMENT", "Development")

    response = await handle_failure(global_exception_handler)
    assert response.status_code == 500
    body = json.loads(response.body)
    assert body["error"] == "An error occurred while processing your request"
    assert body["path"] == "/api/boom"
    assert body["detail"].startswith("Traceback")
    assert "ValueError: boom" in body["detail"]


@pytest.mark.asyncio
async def test_unhandled_error_hides_detail_in_production():
    from main import global_exception_handler

    response = await handle_failure(global_exception_handler)
    body = json.loads(response.body)
    assert response.status_code == 500
    assert "detail" not in body
