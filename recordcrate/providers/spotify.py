import threading
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from http import HTTPStatus
from typing import Any

import requests
from loguru import logger
from requests import HTTPError, RequestException
from requests.auth import HTTPBasicAuth

from recordcrate.config import SPOTIFY_BASE_URL, SPOTIFY_TOKEN_URL
from recordcrate.errors import ProviderError
from recordcrate.models import Album, Artist, Provider, SearchResults, Track
from recordcrate.providers.base import (
    MusicProvider,
    decodes_response,
    year_from_date,
)

# Spotify rejects search and listing limits above this
MAX_PAGE_SIZE = 50


def _first_image(images: list[dict[str, Any]] | None) -> str | None:
    if images:
        return images[0].get("url")
    return None


def _first_artist(artists: list[dict[str, Any]] | None) -> tuple[str, str | None]:
    if artists:
        return artists[0].get("name", ""), artists[0].get("id")
    return "", None


class SpotifyClient(MusicProvider):
    name = Provider.SPOTIFY

    def __init__(self, client_id: str, client_secret: str, timeout: float = 30) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout
        self._access_token: str | None = None
        self._token_expires = datetime.min.replace(tzinfo=UTC)
        # Search tasks share one client across threads
        self._token_lock = threading.Lock()

    def _request_token(self) -> None:
        try:
            token_response = requests.post(
                url=SPOTIFY_TOKEN_URL,
                auth=HTTPBasicAuth(self._client_id, self._client_secret),
                data={"grant_type": "client_credentials"},
                headers={"content-type": "application/x-www-form-urlencoded"},
                timeout=self._timeout,
            )
            token_response.raise_for_status()
            token_json = token_response.json()
        except HTTPError as error:
            logger.warning(
                "HTTP Request Failed!\n{}\n{}\n{}",
                error,
                error.response.headers,
                error.response.text,
            )
            raise ProviderError(
                self.name,
                f"spotify auth failed: {error.response.status_code}"
                f" - {error.response.text}",
            ) from error
        except requests.exceptions.JSONDecodeError as error:
            raise ProviderError(self.name, f"decode auth response: {error}") from error
        except RequestException as error:
            raise ProviderError(self.name, f"send auth request: {error}") from error

        if not isinstance(token_json, dict) or not token_json.get("access_token"):
            raise ProviderError(self.name, "decode auth response: no access_token")
        try:
            expires_in = int(token_json.get("expires_in", 3600))
        except (TypeError, ValueError) as error:
            raise ProviderError(
                self.name, f"decode auth response: expires_in {error}"
            ) from error
        self._access_token = token_json["access_token"]
        self._token_expires = datetime.now(tz=UTC) + timedelta(seconds=expires_in)
        logger.debug("Spotify access token expires at {}", self._token_expires)

    def _get_access_token(self) -> str:
        with self._token_lock:
            five_minutes_from_now = datetime.now(tz=UTC) + timedelta(minutes=5)
            if not self._access_token or self._token_expires < five_minutes_from_now:
                self._request_token()
            return self._access_token

    def _invalidate_token(self, stale_token: str) -> None:
        with self._token_lock:
            if self._access_token == stale_token:
                self._access_token = None

    def _get(
        self, endpoint: str, params: dict[str, Any] | None = None, *, retry: bool = True
    ) -> dict[str, Any]:
        url = endpoint
        if not endpoint.startswith("https://"):
            url = f"{SPOTIFY_BASE_URL}/{endpoint}"
        access_token = self._get_access_token()
        try:
            response = requests.get(
                url=url,
                params=params,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self._timeout,
            )
            if response.status_code == HTTPStatus.UNAUTHORIZED and retry:
                # Token revoked or expired early, fetch a new one once
                self._invalidate_token(access_token)
                return self._get(endpoint, params, retry=False)
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
                f"spotify api error: {error.response.status_code}"
                f" - {error.response.text}",
            ) from error
        except requests.exceptions.JSONDecodeError as error:
            raise ProviderError(self.name, f"decode response: {error}") from error
        except RequestException as error:
            raise ProviderError(self.name, f"send request: {error}") from error

        if not isinstance(rjson, dict):
            raise ProviderError(self.name, "decode response: expected a JSON object")
        return rjson

    def _paginate(self, page: dict[str, Any] | None) -> Iterator[dict[str, Any]]:
        while page:
            yield from page.get("items") or []
            next_url = page.get("next")
            page = self._get(next_url) if next_url else None

    def _search(self, query: str, types: str, limit: int) -> dict[str, Any]:
        return self._get(
            "search",
            params={"q": query, "type": types, "limit": min(limit, MAX_PAGE_SIZE)},
        )

    @decodes_response
    def search_artists(self, query: str, limit: int) -> list[Artist]:
        rjson = self._search(query, "artist", limit)
        items = (rjson.get("artists") or {}).get("items") or []
        return [self._convert_artist(item) for item in items]

    @decodes_response
    def search_albums(self, query: str, limit: int) -> list[Album]:
        rjson = self._search(query, "album", limit)
        items = (rjson.get("albums") or {}).get("items") or []
        return [self._convert_album(item) for item in items]

    @decodes_response
    def search_tracks(self, query: str, limit: int) -> list[Track]:
        rjson = self._search(query, "track", limit)
        items = (rjson.get("tracks") or {}).get("items") or []
        return [self._convert_track(item) for item in items]

    @decodes_response
    def search(self, query: str, limit: int) -> SearchResults:
        rjson = self._search(query, "artist,album,track", limit)
        return SearchResults(
            artists=[
                self._convert_artist(item)
                for item in (rjson.get("artists") or {}).get("items") or []
            ],
            albums=[
                self._convert_album(item)
                for item in (rjson.get("albums") or {}).get("items") or []
            ],
            tracks=[
                self._convert_track(item)
                for item in (rjson.get("tracks") or {}).get("items") or []
            ],
        )

    @decodes_response
    def get_artist(self, artist_id: str) -> Artist:
        return self._convert_artist(self._get(f"artists/{artist_id}"))

    @decodes_response
    def get_artist_albums(self, artist_id: str) -> list[Album]:
        first_page = self._get(
            f"artists/{artist_id}/albums",
            params={"include_groups": "album,single", "limit": MAX_PAGE_SIZE},
        )
        return [self._convert_album(item) for item in self._paginate(first_page)]

    @decodes_response
    def get_album(self, album_id: str) -> tuple[Album, list[Track]]:
        rjson = self._get(f"albums/{album_id}")
        album = self._convert_album(rjson)

        # Album track listings are simplified tracks without the album attached
        album_ref = {"id": rjson.get("id"), "name": rjson.get("name")}
        tracks = [
            self._convert_track({**item, "album": album_ref})
            for item in self._paginate(rjson.get("tracks"))
        ]
        logger.debug("Fetched Spotify album {} with {} tracks", album_id, len(tracks))
        return album, tracks

    @decodes_response
    def get_track(self, track_id: str) -> Track:
        return self._convert_track(self._get(f"tracks/{track_id}"))

    def _convert_artist(self, item: dict[str, Any]) -> Artist:
        return Artist(
            external_id=item.get("id", ""),
            name=item.get("name", ""),
            provider=self.name,
            image_url=_first_image(item.get("images")),
            genres=tuple(item.get("genres") or ()),
            popularity=item.get("popularity"),
            external_url=(item.get("external_urls") or {}).get("spotify"),
        )

    def _convert_album(self, item: dict[str, Any]) -> Album:
        artist_name, artist_id = _first_artist(item.get("artists"))
        release_date = item.get("release_date")
        return Album(
            external_id=item.get("id", ""),
            title=item.get("name", ""),
            artist=artist_name,
            artist_external_id=artist_id,
            provider=self.name,
            release_year=year_from_date(release_date),
            release_date=release_date,
            genre=", ".join(item.get("genres") or []),
            cover_url=_first_image(item.get("images")),
            track_count=item.get("total_tracks"),
            external_url=(item.get("external_urls") or {}).get("spotify"),
        )

    def _convert_track(self, item: dict[str, Any]) -> Track:
        artist_name, artist_id = _first_artist(item.get("artists"))
        album = item.get("album") or {}
        return Track(
            external_id=item.get("id", ""),
            title=item.get("name", ""),
            artist=artist_name,
            artist_external_id=artist_id,
            album=album.get("name"),
            album_external_id=album.get("id"),
            provider=self.name,
            duration_seconds=int(item.get("duration_ms") or 0) // 1000,
            track_number=item.get("track_number"),
            disc_number=item.get("disc_number"),
            isrc=(item.get("external_ids") or {}).get("isrc"),
            external_url=(item.get("external_urls") or {}).get("spotify"),
            preview_url=item.get("preview_url"),
        )
