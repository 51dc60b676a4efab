from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from kollector.schemas.lookup import LookupResponse


# JSON documents stored on the release row

class PurchaseInfo(BaseModel):
    store_id: Optional[int] = None
    store_name: Optional[str] = None
    price: Optional[float] = None
    date: Optional[datetime] = None
    notes: Optional[str] = None

class ReleaseImages(BaseModel):
    cover_front: Optional[str] = None
    cover_back: Optional[str] = None
    thumbnail: Optional[str] = None

class ReleaseLink(BaseModel):
    description: Optional[str] = None
    url: Optional[str] = None
    url_type: Optional[str] = None  # "spotify", "discogs", "musicbrainz", ...

class ReleaseTrack(BaseModel):
    title: str
    release_year: Optional[datetime] = None
    artists: List[str] = []
    genres: List[str] = []
    live: bool = False
    length_secs: Optional[int] = None
    index: int = 0

class ReleaseMedia(BaseModel):
    name: Optional[str] = None
    format_id: Optional[int] = None
    index: int = 0
    tracks: List[ReleaseTrack] = []


class MusicReleaseBase(BaseModel):
    title: str
    release_year: Optional[datetime] = None
    orig_release_year: Optional[datetime] = None
    live: bool = False
    label_number: Optional[str] = Field(default=None, max_length=100)
    upc: Optional[str] = Field(default=None, max_length=50)
    length_in_seconds: Optional[int] = None
    purchase_info: Optional[PurchaseInfo] = None
    images: Optional[ReleaseImages] = None
    links: Optional[List[ReleaseLink]] = None
    media: Optional[List[ReleaseMedia]] = None
    notes: Optional[str] = None

class MusicReleaseCreate(MusicReleaseBase):
    artist_ids: Optional[List[int]] = None
    genre_ids: Optional[List[int]] = None
    label_id: Optional[int] = None
    country_id: Optional[int] = None
    format_id: Optional[int] = None
    packaging_id: Optional[int] = None
    # Names are resolved against the user's lookups, creating missing ones.
    artist_names: Optional[List[str]] = None
    genre_names: Optional[List[str]] = None
    label_name: Optional[str] = None
    country_name: Optional[str] = None
    format_name: Optional[str] = None
    packaging_name: Optional[str] = None
    discogs_id: Optional[int] = None

class MusicReleaseUpdate(MusicReleaseBase):
    artist_ids: Optional[List[int]] = None
    genre_ids: Optional[List[int]] = None
    label_id: Optional[int] = None
    country_id: Optional[int] = None
    format_id: Optional[int] = None
    packaging_id: Optional[int] = None

class MusicReleaseResponse(MusicReleaseBase):
    id: int
    discogs_id: Optional[int] = None
    artists: List[LookupResponse] = []
    genres: List[LookupResponse] = []
    label: Optional[LookupResponse] = None
    country: Optional[LookupResponse] = None
    format: Optional[LookupResponse] = None
    packaging: Optional[LookupResponse] = None
    date_added: datetime
    last_modified: datetime
    last_played_at: Optional[datetime] = None

class MusicReleaseSummary(BaseModel):
    id: int
    title: str
    release_year: Optional[datetime] = None
    orig_release_year: Optional[datetime] = None
    artist_names: List[str] = []
    genre_names: List[str] = []
    label_name: Optional[str] = None
    format_name: Optional[str] = None
    country_name: Optional[str] = None
    cover_image_url: Optional[str] = None
    live: bool = False
    date_added: datetime

class CreatedEntities(BaseModel):
    artists: List[LookupResponse] = []
    genres: List[LookupResponse] = []
    labels: List[LookupResponse] = []
    countries: List[LookupResponse] = []
    formats: List[LookupResponse] = []
    packagings: List[LookupResponse] = []

    def is_empty(self) -> bool:
        return not any([self.artists, self.genres, self.labels, self.countries, self.formats, self.packagings])

class CreateMusicReleaseResponse(BaseModel):
    release: MusicReleaseResponse
    created: Optional[CreatedEntities] = None


class MusicReleaseQuery(BaseModel):
    """Filter, sort and paging options for the release list."""
    search: Optional[str] = None
    artist_id: Optional[int] = None
    genre_id: Optional[int] = None
    label_id: Optional[int] = None
    country_id: Optional[int] = None
    format_id: Optional[int] = None
    kollection_id: Optional[int] = None
    live: Optional[bool] = None
    year_from: Optional[int] = None
    year_to: Optional[int] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    page: int = 1
    page_size: int = 20


class SearchSuggestion(BaseModel):
    type: str  # "release", "artist" or "label"
    id: int
    name: str
    subtitle: Optional[str] = None


class RandomReleaseResponse(BaseModel):
    id: int


# Statistics

class YearStatistic(BaseModel):
    year: int
    count: int

class NamedStatistic(BaseModel):
    id: Optional[int] = None
    name: str
    count: int
    percentage: float

class CollectionStatistics(BaseModel):
    total_releases: int = 0
    total_artists: int = 0
    total_genres: int = 0
    total_labels: int = 0
    releases_by_year: List[YearStatistic] = []
    releases_by_format: List[NamedStatistic] = []
    releases_by_country: List[NamedStatistic] = []
    releases_by_genre: List[NamedStatistic] = []
    total_value: Optional[float] = None
    average_price: Optional[float] = None
    most_expensive_release: Optional[MusicReleaseSummary] = None
    recently_added: List[MusicReleaseSummary] = []
