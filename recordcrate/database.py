from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Engine,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, mapped_column

from recordcrate.config import get_config
from recordcrate.errors import PersistenceError

_database_engine = None

JSONList = JSON().with_variant(JSONB(), "postgresql")


def get_engine() -> Engine:
    global _database_engine  # noqa: PLW0603
    if not _database_engine:
        config = get_config()
        _database_engine = create_engine(config.database_url)
    return _database_engine


def create_tables() -> None:
    Base.metadata.create_all(get_engine())


@contextmanager
def get_session() -> Generator[Session, None, None]:
    with Session(get_engine()) as session:
        try:
            yield session
        except SQLAlchemyError as error:
            session.rollback()
            raise PersistenceError(str(error)) from error
        except Exception:
            session.rollback()
            raise
        else:
            try:
                session.commit()
            except SQLAlchemyError as error:
                session.rollback()
                raise PersistenceError(str(error)) from error


def _now() -> datetime:
    return datetime.now(tz=UTC)


class Base(DeclarativeBase):
    pass


class CommonColumns(Base):
    __abstract__ = True

    id = mapped_column(Integer(), primary_key=True, autoincrement=True)
    updated = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)
    created = mapped_column(DateTime(timezone=True), default=_now)


class User(CommonColumns):
    __tablename__ = "user"

    username = mapped_column(String(255), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"User({self.id=}, {self.created=}, {self.username=})"


class UserSession(CommonColumns):
    __tablename__ = "user_session"

    token = mapped_column(String(512), nullable=False, unique=True)
    user_id = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )

    def __repr__(self) -> str:
        # Never print the token itself
        return f"UserSession({self.id=}, {self.created=}, {self.user_id=})"


class Album(CommonColumns):
    __tablename__ = "album"
    __table_args__ = (
        UniqueConstraint("user_id", "artist", "title"),
        CheckConstraint("release_year > 0"),
        CheckConstraint("rating BETWEEN 1 AND 5"),
    )

    user_id = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    artist = mapped_column(Text(), nullable=False)
    title = mapped_column(Text(), nullable=False)
    release_year = mapped_column(Integer(), nullable=False)
    # JSON list of track titles
    tracks = mapped_column(JSONList, nullable=False, default=list)
    # JSON list of genre names
    genres = mapped_column(JSONList, nullable=False, default=list)
    rating = mapped_column(Integer(), nullable=False)

    def __repr__(self) -> str:
        return (
            f"Album("
            f"{self.id=}, "
            f"{self.user_id=}, "
            f"{self.artist=}, "
            f"{self.title=}, "
            f"{self.release_year=}, "
            f"{self.rating=}"
            f")"
        )


class Song(CommonColumns):
    __tablename__ = "song"

    album_id = mapped_column(
        ForeignKey("album.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = mapped_column(Text(), nullable=False)
    artist = mapped_column(Text(), nullable=False)
    duration = mapped_column(Integer(), nullable=True)
    track_num = mapped_column(Integer(), nullable=True)

    def __repr__(self) -> str:
        return f"Song({self.id=}, {self.album_id=}, {self.title=}, {self.artist=})"


class Artist(CommonColumns):
    __tablename__ = "artist"
    __table_args__ = (
        Index("ix_artist_external_id_provider", "external_id", "provider"),
    )

    name = mapped_column(Text(), nullable=False, unique=True)
    biography = mapped_column(Text(), nullable=True)
    image_url = mapped_column(Text(), nullable=True)
    external_id = mapped_column(Text(), nullable=True)
    provider = mapped_column(String(64), nullable=True)
    genres = mapped_column(JSONList, nullable=False, default=list)
    popularity = mapped_column(Integer(), nullable=True)
    external_url = mapped_column(Text(), nullable=True)

    def __repr__(self) -> str:
        return (
            f"Artist({self.id=}, {self.name=}, {self.provider=}, {self.external_id=})"
        )
