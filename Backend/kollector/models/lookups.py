from sqlalchemy import Column, Integer, String, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from kollector.services.database import Base

# Lookup tables are owned per user: every user curates their own artists,
# labels, genres and so on.


class Country(Base):
    __tablename__ = "countries"
    name_max_length = 100

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    releases = relationship("MusicRelease", back_populates="country", passive_deletes=True)


class Store(Base):
    __tablename__ = "stores"
    name_max_length = 200

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)


class Format(Base):
    __tablename__ = "formats"
    name_max_length = 200

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    releases = relationship("MusicRelease", back_populates="format", passive_deletes=True)


class Genre(Base):
    __tablename__ = "genres"
    name_max_length = 200

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)


class Label(Base):
    __tablename__ = "labels"
    name_max_length = 200

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    releases = relationship("MusicRelease", back_populates="label", passive_deletes=True)


class Artist(Base):
    __tablename__ = "artists"
    name_max_length = 200

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)


class Packaging(Base):
    __tablename__ = "packagings"
    name_max_length = 200

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    releases = relationship("MusicRelease", back_populates="packaging", passive_deletes=True)


LOOKUP_MODELS = (Artist, Country, Format, Genre, Label, Packaging, Store)
