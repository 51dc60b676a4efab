from typing import Any, Dict, List, Optional
import httpx
import logging
from pydantic import ValidationError

from kollector.core.config import settings
from kollector.core.exceptions import ExternalServiceError
from kollector.schemas.discogs import DiscogsCollectionPage, DiscogsRelease, DiscogsSearchResult

logger = logging.getLogger(__name__)

COLLECTION_PAGE_SIZE = 100


def _first(values: Any) -> Optional[str]:
    if isinstance(values, list):
        return values[0] if values else None
    return values


def map_search_result(raw: Dict[str, Any]) -> DiscogsSearchResult:
    """Flatten one entry of /database/search into a DiscogsSearchResult."""
    title = raw.get("title") or ""
    artist = raw.get("artist")
    if isinstance(artist, list):
        artist = ", ".join(artist)
    elif not artist and " - " in title:
        # Release search hits are titled "Artist - Title"
        artist, title = title.split(" - ", 1)

    year = raw.get("year")
    return DiscogsSearchResult(
        id=raw["id"],
        title=title,
        artist=artist or "",
        year=str(year) if year is not None else None,
        format=_first(raw.get("format")),
        label=_first(raw.get("label")),
        catalog_number=raw.get("catno"),
        country=raw.get("country"),
        thumb_url=raw.get("thumb"),
        cover_image_url=raw.get("cover_image"),
        resource_url=raw.get("resource_url")
    )


class DiscogsService:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = settings.DISCOGS_BASE_URL.rstrip("/")
        self.headers = {"User-Agent": settings.DISCOGS_USER_AGENT}
        if settings.DISCOGS_TOKEN:
            self.headers["Authorization"] = f"Discogs token={settings.DISCOGS_TOKEN}"
        self.timeout = settings.DISCOGS_TIMEOUT_SECONDS
        self._transport = transport

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """GET a Discogs endpoint. Returns parsed JSON, or None for a non-2xx answer."""
        logger.info(f"DiscogsService: GET {path} {params or ''}")
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.timeout,
                transport=self._transport
            ) as client:
                response = await client.get(path, params=params)
        except httpx.RequestError as e:
            logger.error(f"Request error to Discogs API: {e}")
            raise ExternalServiceError(f"Failed to connect to Discogs API: {e}")

        if not response.is_success:
            logger.warning(f"Discogs API returned status code {response.status_code} for {path}")
            return None
        return response.json()

    def _search_results(self, data: Optional[Dict[str, Any]]) -> List[DiscogsSearchResult]:
        if not data or not data.get("results"):
            return []
        results = []
        for raw in data["results"]:
            try:
                results.append(map_search_result(raw))
            except (KeyError, ValidationError) as e:
                logger.warning(f"Skipping malformed Discogs search result: {e}")
        logger.info(f"Mapped {len(results)} search results from Discogs")
        return results

    async def search_by_catalog_number(
        self,
        catalog_number: str,
        format: Optional[str] = None,
        country: Optional[str] = None,
        year: Optional[int] = None
    ) -> List[DiscogsSearchResult]:
        params: Dict[str, Any] = {"catno": catalog_number, "type": "release"}
        if format:
            params["format"] = format
        if country:
            params["country"] = country
        if year is not None:
            params["year"] = year
        return self._search_results(await self._get("/database/search", params))

    async def search(
        self,
        query: Optional[str] = None,
        type: Optional[str] = "release",
        genre: Optional[str] = None,
        style: Optional[str] = None,
        country: Optional[str] = None,
        year: Optional[int] = None,
        format: Optional[str] = None
    ) -> List[DiscogsSearchResult]:
        candidates = {"q": query, "type": type, "genre": genre, "style": style,
                      "country": country, "year": year, "format": format}
        params = {key: value for key, value in candidates.items() if value not in (None, "")}
        return self._search_results(await self._get("/database/search", params))

    async def get_release_details(self, release_id: str) -> Optional[DiscogsRelease]:
        data = await self._get(f"/releases/{release_id}")
        if data is None:
            return None
        try:
            return DiscogsRelease.model_validate(data)
        except ValidationError as e:
            logger.error(f"Could not map Discogs release {release_id}: {e}")
            return None

    async def get_user_collection(
        self,
        username: str,
        page: int = 1,
        per_page: int = COLLECTION_PAGE_SIZE
    ) -> Optional[DiscogsCollectionPage]:
        data = await self._get(
            f"/users/{username}/collection/folders/0/releases",
            {"page": page, "per_page": per_page}
        )
        if data is None:
            logger.warning(f"No collection data found for user: {username}")
            return None
        try:
            collection = DiscogsCollectionPage.model_validate(data)
        except ValidationError as e:
            logger.error(f"Could not map Discogs collection page {page} for {username}: {e}")
            return None
        logger.info(f"Retrieved collection page {page} for {username}: {len(collection.releases)} releases")
        return collection


# Dependency
async def get_discogs_service() -> DiscogsService:
    """Dependency injection for DiscogsService"""
    return DiscogsService()
