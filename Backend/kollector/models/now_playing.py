import datetime
from sqlalchemy import ForeignKey, DateTime, Integer
from sqlalchemy.orm import relationship, Mapped, mapped_column

from kollector.services.database import Base, utcnow


class NowPlaying(Base):
    """One play of a release. Rows are never edited, only deleted."""
    __tablename__ = "now_playing"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    music_release_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("music_releases.id", ondelete="CASCADE"), index=True
    )
    played_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    music_release = relationship("MusicRelease", back_populates="plays")
