from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class LocalAlbum:
    id: int
    user_id: int
    artist: str
    title: str
    release_year: int
    tracks: list[str]
    genres: list[str]
    rating: int
    created: datetime
    updated: datetime

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created"] = self.created.isoformat() if self.created else None
        data["updated"] = self.updated.isoformat() if self.updated else None
        return data


@dataclass(frozen=True)
class LocalSong:
    id: int
    album_id: int
    title: str
    artist: str
    duration: int | None
    track_num: int | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StoredArtist:
    id: int
    name: str
    biography: str | None
    image_url: str | None
    external_id: str | None
    provider: str | None
    genres: list[str]
    popularity: int | None
    external_url: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
