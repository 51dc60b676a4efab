"""Discogs API shapes.

The models validate straight from Discogs JSON; unknown keys are ignored.
Search results are flattened by ``DiscogsService`` because Discogs returns
their artist/format/label fields as arrays or "Artist - Title" strings.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import List, Optional


class DiscogsModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class DiscogsSearchResult(DiscogsModel):
    id: int
    title: str = ""
    artist: str = ""
    year: Optional[str] = None
    format: Optional[str] = None
    label: Optional[str] = None
    catalog_number: Optional[str] = None
    country: Optional[str] = None
    thumb_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    resource_url: Optional[str] = None


class DiscogsArtist(DiscogsModel):
    name: str = ""
    id: Optional[int] = None
    resource_url: Optional[str] = None


class DiscogsLabel(DiscogsModel):
    name: str = ""
    catalog_number: Optional[str] = Field(None, validation_alias=AliasChoices("catno", "catalog_number"))
    id: Optional[int] = None
    resource_url: Optional[str] = None


class DiscogsFormat(DiscogsModel):
    name: str = ""
    qty: Optional[str] = None
    descriptions: List[str] = []


class DiscogsImage(DiscogsModel):
    type: str = ""
    uri: str = ""
    uri150: Optional[str] = None
    resource_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class DiscogsTrack(DiscogsModel):
    position: str = ""
    title: str = ""
    duration: Optional[str] = None
    artists: List[DiscogsArtist] = []


class DiscogsIdentifier(DiscogsModel):
    type: str = ""
    value: str = ""


class DiscogsRelease(DiscogsModel):
    id: int
    title: str = ""
    artists: List[DiscogsArtist] = []
    year: Optional[int] = None
    genres: List[str] = []
    styles: List[str] = []
    labels: List[DiscogsLabel] = []
    country: Optional[str] = None
    released_date: Optional[str] = Field(None, validation_alias=AliasChoices("released_formatted", "released_date"))
    formats: List[DiscogsFormat] = []
    images: List[DiscogsImage] = []
    tracklist: List[DiscogsTrack] = []
    identifiers: List[DiscogsIdentifier] = []
    resource_url: Optional[str] = None
    uri: Optional[str] = None
    notes: Optional[str] = None


# User collection

class DiscogsPagination(DiscogsModel):
    page: int = 1
    per_page: int = 100
    pages: int = 0
    items: int = 0


class DiscogsBasicInformation(DiscogsModel):
    id: int
    title: str = ""
    year: Optional[int] = None
    country: Optional[str] = None
    cover_image: Optional[str] = None
    thumb: Optional[str] = None
    resource_url: Optional[str] = None
    artists: List[DiscogsArtist] = []
    labels: List[DiscogsLabel] = []
    formats: List[DiscogsFormat] = []
    genres: List[str] = []
    styles: List[str] = []


class DiscogsNote(DiscogsModel):
    field_id: Optional[int] = None
    value: Optional[str] = None


class DiscogsCollectionRelease(DiscogsModel):
    instance_id: Optional[int] = None
    rating: Optional[int] = None
    date_added: Optional[str] = None
    notes: Optional[List[DiscogsNote]] = None
    basic_information: Optional[DiscogsBasicInformation] = None


class DiscogsCollectionPage(DiscogsModel):
    pagination: Optional[DiscogsPagination] = None
    releases: List[DiscogsCollectionRelease] = []


class DiscogsImportRequest(BaseModel):
    username: str


class DiscogsImportResult(BaseModel):
    success: bool = False
    total_releases: int = 0
    imported_releases: int = 0
    skipped_releases: int = 0
    failed_releases: int = 0
    errors: List[str] = []
    duration_seconds: float = 0.0
