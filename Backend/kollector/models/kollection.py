import uuid
import datetime
from sqlalchemy import String, ForeignKey, DateTime, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship, Mapped, mapped_column

from kollector.services.database import Base, utcnow


class Kollection(Base):
    __tablename__ = "kollections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(100))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_modified: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    items = relationship(
        "KollectionItem",
        back_populates="kollection",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="KollectionItem.added_at"
    )


class KollectionItem(Base):
    __tablename__ = "kollection_items"
    __table_args__ = (
        UniqueConstraint("kollection_id", "music_release_id", name="uq_kollection_items_kollection_release"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kollection_id: Mapped[int] = mapped_column(Integer, ForeignKey("kollections.id", ondelete="CASCADE"), index=True)
    music_release_id: Mapped[int] = mapped_column(Integer, ForeignKey("music_releases.id", ondelete="CASCADE"), index=True)
    added_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    kollection = relationship("Kollection", back_populates="items")
    music_release = relationship("MusicRelease", back_populates="kollection_items")
