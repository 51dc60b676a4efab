import uuid
import datetime
from sqlalchemy import String, ForeignKey, DateTime, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship, Mapped, mapped_column

from kollector.services.database import Base, utcnow


class UserList(Base):
    __tablename__ = "lists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(200))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_modified: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    list_releases = relationship(
        "ListRelease",
        back_populates="list",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ListRelease.added_at"
    )


class ListRelease(Base):
    __tablename__ = "list_releases"
    __table_args__ = (
        UniqueConstraint("list_id", "release_id", name="uq_list_releases_list_release"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    list_id: Mapped[int] = mapped_column(Integer, ForeignKey("lists.id", ondelete="CASCADE"), index=True)
    release_id: Mapped[int] = mapped_column(Integer, ForeignKey("music_releases.id", ondelete="CASCADE"), index=True)
    added_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    list = relationship("UserList", back_populates="list_releases")
    release = relationship("MusicRelease", back_populates="list_entries")
