import threading
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
import requests
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey
from cryptography.hazmat.primitives.serialization import load_pem_private_key
from loguru import logger
from requests import HTTPError, RequestException

from recordcrate.config import APPLE_MUSIC_BASE_URL
from recordcrate.errors import ConfigurationError, ProviderError
from recordcrate.models import Album, Artist, Provider, SearchResults, Track
from recordcrate.providers.base import (
    MusicProvider,
    decodes_response,
    year_from_date,
)

# Developer tokens are valid for up to six months, a fresh one is signed
# well before that.
TOKEN_LIFETIME = timedelta(days=180)
TOKEN_REFRESH_INTERVAL = timedelta(hours=12)
ARTWORK_SIZE = "600"


class AppleMusicClient(MusicProvider):
    name = Provider.APPLE_MUSIC

    def __init__(
        self,
        key_id: str,
        team_id: str,
        private_key_pem: str,
        storefront: str = "us",
        timeout: float = 30,
    ) -> None:
        try:
            private_key = load_pem_private_key(
                private_key_pem.encode(), password=None
            )
        except (ValueError, TypeError) as error:
            raise ConfigurationError(
                f"parse Apple Music private key: {error}"
            ) from error
        if not isinstance(private_key, EllipticCurvePrivateKey):
            raise ConfigurationError("Apple Music private key must be an EC key")

        self._key_id = key_id
        self._team_id = team_id
        self._private_key = private_key
        self._storefront = storefront
        self._timeout = timeout
        self._token: str | None = None
        self._token_issued = datetime.min.replace(tzinfo=UTC)
        self._token_lock = threading.Lock()

    def _developer_token(self) -> str:
        with self._token_lock:
            now = datetime.now(tz=UTC)
            if self._token and now - self._token_issued < TOKEN_REFRESH_INTERVAL:
                return self._token

            self._token = jwt.encode(
                {
                    "iss": self._team_id,
                    "iat": int(now.timestamp()),
                    "exp": int((now + TOKEN_LIFETIME).timestamp()),
                },
                self._private_key,
                algorithm="ES256",
                headers={"kid": self._key_id},
            )
            self._token_issued = now
            logger.debug("Signed new Apple Music developer token at {}", now)
            return self._token

    def _get(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        token = self._developer_token()
        try:
            response = requests.get(
                url=f"{APPLE_MUSIC_BASE_URL}/catalog/{self._storefront}/{endpoint}",
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            rjson = response.json()
        except HTTPError as error:
            logger.warning(
                "HTTP Request Failed!\n{}\n{}\n{}",
                error,
                error.response.headers,
                error.response.text,
            )
            raise ProviderError(
                self.name,
                f"apple music api error: {error.response.status_code}"
                f" - {error.response.text}",
            ) from error
        except requests.exceptions.JSONDecodeError as error:
            raise ProviderError(self.name, f"decode response: {error}") from error
        except RequestException as error:
            raise ProviderError(self.name, f"send request: {error}") from error

        if not isinstance(rjson, dict):
            raise ProviderError(self.name, "decode response: expected a JSON object")
        return rjson

    def _search(self, query: str, types: str, limit: int) -> dict[str, Any]:
        rjson = self._get(
            "search", params={"term": query, "types": types, "limit": limit}
        )
        return rjson.get("results") or {}

    def _first(
        self, rjson: dict[str, Any], kind: str, item_id: str
    ) -> dict[str, Any]:
        data = rjson.get("data") or []
        if not data:
            raise ProviderError(self.name, f"{kind} {item_id} not found")
        return data[0]

    @decodes_response
    def search_artists(self, query: str, limit: int) -> list[Artist]:
        results = self._search(query, "artists", limit)
        items = (results.get("artists") or {}).get("data") or []
        return [self._convert_artist(item) for item in items]

    @decodes_response
    def search_albums(self, query: str, limit: int) -> list[Album]:
        results = self._search(query, "albums", limit)
        items = (results.get("albums") or {}).get("data") or []
        return [self._convert_album(item) for item in items]

    @decodes_response
    def search_tracks(self, query: str, limit: int) -> list[Track]:
        results = self._search(query, "songs", limit)
        items = (results.get("songs") or {}).get("data") or []
        return [self._convert_track(item) for item in items]

    @decodes_response
    def search(self, query: str, limit: int) -> SearchResults:
        results = self._search(query, "artists,albums,songs", limit)
        return SearchResults(
            artists=[
                self._convert_artist(item)
                for item in (results.get("artists") or {}).get("data") or []
            ],
            albums=[
                self._convert_album(item)
                for item in (results.get("albums") or {}).get("data") or []
            ],
            tracks=[
                self._convert_track(item)
                for item in (results.get("songs") or {}).get("data") or []
            ],
        )

    @decodes_response
    def get_artist(self, artist_id: str) -> Artist:
        rjson = self._get(f"artists/{artist_id}")
        return self._convert_artist(self._first(rjson, "artist", artist_id))

    @decodes_response
    def get_artist_albums(self, artist_id: str) -> list[Album]:
        rjson = self._get(f"artists/{artist_id}/albums")
        return [self._convert_album(item) for item in rjson.get("data") or []]

    @decodes_response
    def get_album(self, album_id: str) -> tuple[Album, list[Track]]:
        rjson = self._get(f"albums/{album_id}", params={"include": "tracks"})
        item = self._first(rjson, "album", album_id)
        album = self._convert_album(item)

        track_items = (
            ((item.get("relationships") or {}).get("tracks") or {}).get("data") or []
        )
        tracks = [self._convert_track(track, album) for track in track_items]
        logger.debug(
            "Fetched Apple Music album {} with {} tracks", album_id, len(tracks)
        )
        return album, tracks

    @decodes_response
    def get_track(self, track_id: str) -> Track:
        rjson = self._get(f"songs/{track_id}")
        return self._convert_track(self._first(rjson, "track", track_id))

    def _convert_artist(self, item: dict[str, Any]) -> Artist:
        attributes = item.get("attributes") or {}
        return Artist(
            external_id=item.get("id", ""),
            name=attributes.get("name", ""),
            provider=self.name,
            genres=tuple(attributes.get("genreNames") or ()),
            external_url=attributes.get("url"),
        )

    def _convert_album(self, item: dict[str, Any]) -> Album:
        attributes = item.get("attributes") or {}
        artwork_url = (attributes.get("artwork") or {}).get("url")
        if artwork_url:
            artwork_url = artwork_url.replace("{w}", ARTWORK_SIZE).replace(
                "{h}", ARTWORK_SIZE
            )
        genre_names = attributes.get("genreNames") or []
        release_date = attributes.get("releaseDate")
        return Album(
            external_id=item.get("id", ""),
            title=attributes.get("name", ""),
            artist=attributes.get("artistName", ""),
            provider=self.name,
            release_year=year_from_date(release_date),
            release_date=release_date,
            genre=genre_names[0] if genre_names else "",
            cover_url=artwork_url,
            track_count=attributes.get("trackCount"),
            external_url=attributes.get("url"),
        )

    def _convert_track(
        self, item: dict[str, Any], album: Album | None = None
    ) -> Track:
        attributes = item.get("attributes") or {}
        previews = attributes.get("previews") or []
        return Track(
            external_id=item.get("id", ""),
            title=attributes.get("name", ""),
            artist=attributes.get("artistName", ""),
            album=attributes.get("albumName") or (album.title if album else None),
            album_external_id=album.external_id if album else None,
            provider=self.name,
            duration_seconds=int(attributes.get("durationInMillis") or 0) // 1000,
            track_number=attributes.get("trackNumber"),
            disc_number=attributes.get("discNumber"),
            isrc=attributes.get("isrc"),
            external_url=attributes.get("url"),
            preview_url=previews[0].get("url") if previews else None,
        )
