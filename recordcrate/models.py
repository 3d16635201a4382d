from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any


class Provider(StrEnum):
    SPOTIFY = "spotify"
    APPLE_MUSIC = "apple_music"


def _drop_empty(items: list[tuple[str, Any]]) -> dict[str, Any]:
    # Optional provider fields are left out of JSON instead of sent as null
    return {key: value for key, value in items if value is not None}


@dataclass(frozen=True)
class Artist:
    external_id: str
    name: str
    provider: Provider
    image_url: str | None = None
    biography: str | None = None
    genres: tuple[str, ...] = ()
    popularity: int | None = None
    external_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self, dict_factory=_drop_empty)
        data["genres"] = list(self.genres)
        return data


@dataclass(frozen=True)
class Album:
    external_id: str
    title: str
    artist: str
    provider: Provider
    artist_external_id: str | None = None
    release_year: int | None = None
    release_date: str | None = None
    # Comma separated string, list of genre names
    genre: str = ""
    cover_url: str | None = None
    track_count: int | None = None
    external_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_drop_empty)


@dataclass(frozen=True)
class Track:
    external_id: str
    title: str
    artist: str
    provider: Provider
    duration_seconds: int = 0
    artist_external_id: str | None = None
    album: str | None = None
    album_external_id: str | None = None
    track_number: int | None = None
    disc_number: int | None = None
    isrc: str | None = None
    external_url: str | None = None
    preview_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_drop_empty)


@dataclass(frozen=True)
class ProviderStatus:
    ok: bool
    error: str | None = None
    artists: int = 0
    albums: int = 0
    tracks: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_drop_empty)


@dataclass
class SearchResults:
    artists: list[Artist] = field(default_factory=list)
    albums: list[Album] = field(default_factory=list)
    tracks: list[Track] = field(default_factory=list)
    # Keyed by provider name, only filled in by the search aggregator
    provider_status: dict[str, ProviderStatus] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.artists or self.albums or self.tracks)

    def to_dict(self) -> dict[str, Any]:
        """Render for the HTTP layer, leaving out empty sections."""
        data: dict[str, Any] = {}
        if self.artists:
            data["artists"] = [artist.to_dict() for artist in self.artists]
        if self.albums:
            data["albums"] = [album.to_dict() for album in self.albums]
        if self.tracks:
            data["tracks"] = [track.to_dict() for track in self.tracks]
        if self.provider_status:
            data["providers"] = {
                name: status.to_dict() for name, status in self.provider_status.items()
            }
        return data
