"""Persistence boundary for the search and import pipelines.

``CatalogStore`` is the narrow interface the core depends on;
``SqlCatalogStore`` implements it on top of the SQLAlchemy models in
``recordcrate.database``. Every method opens and commits its own session, so
a sequence of calls is not atomic.
"""

from typing import Protocol

from loguru import logger
from sqlalchemy import exists, select, update

from recordcrate import models
from recordcrate.data import LocalAlbum, LocalSong, StoredArtist
from recordcrate.database import Album, Artist, Song, UserSession, get_session
from recordcrate.errors import AuthorizationError, PersistenceError


class CatalogStore(Protocol):
    def user_id_by_token(self, token: str) -> int: ...

    def find_album(self, user_id: int, artist: str, title: str) -> int | None: ...

    def insert_album(
        self,
        user_id: int,
        artist: str,
        title: str,
        release_year: int,
        tracks: list[str],
        genres: list[str],
        rating: int,
    ) -> int: ...

    def update_album(
        self, album_id: int, tracks: list[str], genres: list[str], release_year: int
    ) -> None: ...

    def get_album(self, album_id: int) -> LocalAlbum | None: ...

    def list_songs(self, album_id: int) -> list[LocalSong]: ...

    def track_exists(self, album_id: int, title: str, artist: str) -> bool: ...

    def insert_track(
        self,
        album_id: int,
        title: str,
        artist: str,
        duration: int | None,
        track_number: int | None,
    ) -> int: ...

    def upsert_artist_by_name(self, artist: models.Artist) -> int: ...

    def save_artist(self, artist: models.Artist) -> int: ...

    def list_artists(self) -> list[StoredArtist]: ...


def _row_values(row: Album | Song | Artist) -> dict:
    return {column.name: getattr(row, column.name) for column in row.__mapper__.c}


def _to_local_album(row: Album) -> LocalAlbum:
    values = _row_values(row)
    values["tracks"] = list(values["tracks"] or [])
    values["genres"] = list(values["genres"] or [])
    return LocalAlbum(**values)


def _to_local_song(row: Song) -> LocalSong:
    return LocalSong(
        id=row.id,
        album_id=row.album_id,
        title=row.title,
        artist=row.artist,
        duration=row.duration,
        track_num=row.track_num,
    )


def _to_stored_artist(row: Artist) -> StoredArtist:
    return StoredArtist(
        id=row.id,
        name=row.name,
        biography=row.biography,
        image_url=row.image_url,
        external_id=row.external_id,
        provider=row.provider,
        genres=list(row.genres or []),
        popularity=row.popularity,
        external_url=row.external_url,
    )


class SqlCatalogStore:
    def user_id_by_token(self, token: str) -> int:
        with get_session() as db_session:
            user_id = db_session.scalars(
                select(UserSession.user_id).where(UserSession.token == token)
            ).one_or_none()
        if user_id is None:
            raise AuthorizationError
        return user_id

    def find_album(self, user_id: int, artist: str, title: str) -> int | None:
        with get_session() as db_session:
            return db_session.scalars(
                select(Album.id).where(
                    Album.user_id == user_id,
                    Album.artist == artist,
                    Album.title == title,
                )
            ).one_or_none()

    def insert_album(  # noqa: PLR0913
        self,
        user_id: int,
        artist: str,
        title: str,
        release_year: int,
        tracks: list[str],
        genres: list[str],
        rating: int,
    ) -> int:
        with get_session() as db_session:
            album = Album(
                user_id=user_id,
                artist=artist,
                title=title,
                release_year=release_year,
                tracks=tracks,
                genres=genres,
                rating=rating,
            )
            db_session.add(album)
            db_session.flush()
            logger.debug("Inserted album: {}", album)
            return album.id

    def update_album(
        self, album_id: int, tracks: list[str], genres: list[str], release_year: int
    ) -> None:
        with get_session() as db_session:
            result = db_session.execute(
                update(Album)
                .where(Album.id == album_id)
                .values(tracks=tracks, genres=genres, release_year=release_year)
            )
            if result.rowcount != 1:
                raise PersistenceError(f"album {album_id} not found for update")

    def get_album(self, album_id: int) -> LocalAlbum | None:
        with get_session() as db_session:
            album = db_session.get(Album, album_id)
            if not album:
                return None
            return _to_local_album(album)

    def list_songs(self, album_id: int) -> list[LocalSong]:
        with get_session() as db_session:
            songs = db_session.scalars(
                select(Song).where(Song.album_id == album_id).order_by(Song.id)
            ).all()
            return [_to_local_song(song) for song in songs]

    def track_exists(self, album_id: int, title: str, artist: str) -> bool:
        with get_session() as db_session:
            return db_session.scalar(
                select(
                    exists().where(
                        Song.album_id == album_id,
                        Song.title == title,
                        Song.artist == artist,
                    )
                )
            )

    def insert_track(
        self,
        album_id: int,
        title: str,
        artist: str,
        duration: int | None,
        track_number: int | None,
    ) -> int:
        with get_session() as db_session:
            song = Song(
                album_id=album_id,
                title=title,
                artist=artist,
                duration=duration,
                track_num=track_number,
            )
            db_session.add(song)
            db_session.flush()
            return song.id

    def upsert_artist_by_name(self, artist: models.Artist) -> int:
        with get_session() as db_session:
            existing = db_session.scalars(
                select(Artist).where(Artist.name == artist.name)
            ).one_or_none()
            if existing:
                _apply_provider_fields(existing, artist)
                return existing.id

            row = Artist(name=artist.name)
            _apply_provider_fields(row, artist)
            db_session.add(row)
            db_session.flush()
            logger.info("Stored artist: {} (from {})", artist.name, artist.provider)
            return row.id

    def save_artist(self, artist: models.Artist) -> int:
        """Insert or update an artist keyed by its provider identity.

        Falls back to matching on the name when the artist has no external
        id, since names are unique in the table.
        """
        with get_session() as db_session:
            if artist.external_id:
                query = select(Artist).where(
                    Artist.external_id == artist.external_id,
                    Artist.provider == str(artist.provider),
                )
            else:
                query = select(Artist).where(Artist.name == artist.name)
            existing = db_session.scalars(query).first()

            if existing:
                existing.name = artist.name
                _apply_provider_fields(existing, artist)
                return existing.id

            row = Artist(name=artist.name)
            _apply_provider_fields(row, artist)
            db_session.add(row)
            db_session.flush()
            return row.id

    def list_artists(self) -> list[StoredArtist]:
        with get_session() as db_session:
            artists = db_session.scalars(select(Artist).order_by(Artist.name)).all()
            return [_to_stored_artist(artist) for artist in artists]


def _apply_provider_fields(row: Artist, artist: models.Artist) -> None:
    # Missing values from the provider never erase what is already stored
    if artist.external_id:
        row.external_id = artist.external_id
        row.provider = str(artist.provider)
    if artist.biography:
        row.biography = artist.biography
    if artist.image_url:
        row.image_url = artist.image_url
    if artist.genres:
        row.genres = list(artist.genres)
    elif row.genres is None:
        row.genres = []
    if artist.popularity is not None:
        row.popularity = artist.popularity
    if artist.external_url:
        row.external_url = artist.external_url
