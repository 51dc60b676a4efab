import uuid
import datetime
from sqlalchemy import String, ForeignKey, DateTime, Boolean, Integer, Text, Uuid
from sqlalchemy.orm import relationship, Mapped, mapped_column

from kollector.services.database import Base, utcnow


class MusicRelease(Base):
    __tablename__ = "music_releases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    discogs_id: Mapped[int | None] = mapped_column(Integer, index=True)

    title: Mapped[str] = mapped_column(String(300), index=True)
    release_year: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    orig_release_year: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True))

    # Compact JSON arrays of Artist / Genre ids, e.g. "[3,17]"
    artists: Mapped[str | None] = mapped_column(Text)
    genres: Mapped[str | None] = mapped_column(Text)
    live: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    label_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("labels.id", ondelete="SET NULL"), index=True)
    country_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("countries.id", ondelete="SET NULL"), index=True)
    format_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("formats.id", ondelete="SET NULL"), index=True)
    packaging_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("packagings.id", ondelete="SET NULL"), index=True)

    label_number: Mapped[str | None] = mapped_column(String(100))
    upc: Mapped[str | None] = mapped_column(String(50))
    length_in_seconds: Mapped[int | None] = mapped_column(Integer)

    # JSON documents: purchase info, images, links and media/tracklist.
    purchase_info: Mapped[str | None] = mapped_column(Text)
    images: Mapped[str | None] = mapped_column(Text)
    links: Mapped[str | None] = mapped_column(Text)
    media: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)

    date_added: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_modified: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    label = relationship("Label", back_populates="releases")
    country = relationship("Country", back_populates="releases")
    format = relationship("Format", back_populates="releases")
    packaging = relationship("Packaging", back_populates="releases")

    plays = relationship(
        "NowPlaying", back_populates="music_release", cascade="all, delete-orphan", passive_deletes=True
    )
    kollection_items = relationship(
        "KollectionItem", back_populates="music_release", cascade="all, delete-orphan", passive_deletes=True
    )
    list_entries = relationship(
        "ListRelease", back_populates="release", cascade="all, delete-orphan", passive_deletes=True
    )
