import functools
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, TypeVar

from recordcrate.errors import ProviderError, UnsupportedCapabilityError
from recordcrate.models import Album, Artist, Provider, SearchResults, Track

T = TypeVar("T")


def year_from_date(release_date: str | None) -> int | None:
    year = (release_date or "")[:4]
    if len(year) == 4 and year.isdigit():  # noqa: PLR2004
        return int(year) or None
    return None


def decodes_response(method: Callable[..., T]) -> Callable[..., T]:
    """Report a response body of the wrong shape as a ``ProviderError``."""

    @functools.wraps(method)
    def wrapper(self: "MusicProvider", *args: Any, **kwargs: Any) -> T:
        try:
            return method(self, *args, **kwargs)
        except (AttributeError, KeyError, TypeError, ValueError) as error:
            raise ProviderError(
                self.name, f"decode response: {type(error).__name__}: {error}"
            ) from error

    return wrapper


class MusicProvider(ABC):
    """Client for one external music catalog.

    Implementations translate the provider's own API into the neutral
    ``Artist``/``Album``/``Track`` models and look after their own
    credentials. Every method raises ``ProviderError`` when the provider
    can't be reached or answers with something unusable.
    """

    name: Provider

    @abstractmethod
    def search_artists(self, query: str, limit: int) -> list[Artist]: ...

    @abstractmethod
    def search_albums(self, query: str, limit: int) -> list[Album]: ...

    @abstractmethod
    def search_tracks(self, query: str, limit: int) -> list[Track]: ...

    @abstractmethod
    def search(self, query: str, limit: int) -> SearchResults:
        """Search artists, albums and tracks in a single request."""

    @abstractmethod
    def get_artist(self, artist_id: str) -> Artist: ...

    @abstractmethod
    def get_album(self, album_id: str) -> tuple[Album, list[Track]]: ...

    @abstractmethod
    def get_track(self, track_id: str) -> Track: ...

    def get_artist_albums(self, artist_id: str) -> list[Album]:  # noqa: ARG002
        """List an artist's albums and singles.

        Optional, providers without a discography endpoint keep this default.
        """
        raise UnsupportedCapabilityError(self.name, "artist discography")
