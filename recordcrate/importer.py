from loguru import logger

from recordcrate.catalog import CatalogStore
from recordcrate.errors import AuthorizationError, CatalogError, ProviderError
from recordcrate.models import Album, Track
from recordcrate.providers.registry import ProviderRegistry

DEFAULT_RATING = 3
DEFAULT_RELEASE_YEAR = 1970


def resolve_release_year(album: Album) -> int:
    if album.release_year and album.release_year > 0:
        return album.release_year
    year = (album.release_date or "")[:4]
    if year.isdigit() and int(year) > 0:
        return int(year)
    return DEFAULT_RELEASE_YEAR


def extract_genres(genre: str | None) -> list[str]:
    if not genre:
        return []
    return [part.strip() for part in genre.split(",") if part.strip()]


def extract_track_titles(tracks: list[Track]) -> list[str]:
    return [track.title.strip() for track in tracks if track.title.strip()]


class AlbumImporter:
    """Imports a provider album, and its tracks, into a user's collection.

    Importing is idempotent. The album is matched on (user, artist, title)
    and refreshed in place when it already exists, keeping its id and rating.
    Tracks are only ever added, never updated or removed.
    """

    def __init__(self, registry: ProviderRegistry, store: CatalogStore) -> None:
        self._registry = registry
        self._store = store

    def _fetch_album(
        self, external_album_id: str, provider: str
    ) -> tuple[Album, list[Track]]:
        client = self._registry.require(provider)
        try:
            return client.get_album(external_album_id)
        except ProviderError as error:
            raise ProviderError(
                error.provider, f"fetch album: {error.message}"
            ) from error

    def validate_album(
        self, external_album_id: str, provider: str
    ) -> tuple[Album, list[Track]]:
        """Fetch an album without storing it, to check a provider works."""
        logger.info("Validating album={} provider={}", external_album_id, provider)
        album, tracks = self._fetch_album(external_album_id, provider)
        logger.info(
            "Validation succeeded album={} provider={}", external_album_id, provider
        )
        return album, tracks

    def import_album_for_user(
        self, token: str, external_album_id: str, provider: str
    ) -> int:
        token = (token or "").strip()
        if not token:
            raise AuthorizationError

        user_id = self._store.user_id_by_token(token)
        album, tracks = self._fetch_album(external_album_id, provider)
        logger.info(
            "Fetched album={} provider={} tracks={} user={}",
            album.title,
            provider,
            len(tracks),
            user_id,
        )

        album_id = self._store_album(user_id, album, tracks)

        for track in tracks:
            try:
                self._store_track(album_id, album, track)
            except CatalogError as error:
                logger.warning("Failed to store track {}: {}", track.title, error)

        logger.info(
            "Imported album: {} by {} with {} tracks for user {}",
            album.title,
            album.artist,
            len(tracks),
            user_id,
        )
        return album_id

    def _store_album(self, user_id: int, album: Album, tracks: list[Track]) -> int:
        track_titles = extract_track_titles(tracks)
        genres = extract_genres(album.genre)
        release_year = resolve_release_year(album)

        album_id = self._store.find_album(user_id, album.artist, album.title)
        if album_id is not None:
            logger.info(
                "Updating existing album id={} user={} title={!r}",
                album_id,
                user_id,
                album.title,
            )
            self._store.update_album(album_id, track_titles, genres, release_year)
            return album_id

        logger.info(
            "Inserting album user={} title={!r} rating={}",
            user_id,
            album.title,
            DEFAULT_RATING,
        )
        return self._store.insert_album(
            user_id,
            album.artist,
            album.title,
            release_year,
            track_titles,
            genres,
            DEFAULT_RATING,
        )

    def _store_track(self, album_id: int, album: Album, track: Track) -> None:
        title = track.title.strip()
        if not title:
            return
        artist = track.artist.strip() or album.artist.strip() or album.artist

        if self._store.track_exists(album_id, title, artist):
            return

        self._store.insert_track(
            album_id,
            title,
            artist,
            track.duration_seconds or None,
            track.track_number or None,
        )
