"""Concurrent search across every configured music provider.

Each selected provider runs in its own worker thread. Workers hand their
partial results to a ``ResultAccumulator``, which owns the merged result and
the lock around it; nothing else touches shared state. A provider that fails
is logged and recorded in the per-provider status map, the others carry on.
With a deadline set, providers still running when it passes are reported as
failed and whatever they return afterwards is dropped.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass

from loguru import logger

from recordcrate.catalog import CatalogStore
from recordcrate.config import DEFAULT_SEARCH_LIMIT
from recordcrate.errors import CatalogError, ProviderError
from recordcrate.models import Album, Artist, ProviderStatus, SearchResults, Track
from recordcrate.providers.base import MusicProvider
from recordcrate.providers.registry import ProviderRegistry

RESULT_TYPE_ALL = "all"
DEADLINE_EXCEEDED = "search deadline exceeded"


@dataclass(frozen=True)
class SearchOptions:
    query: str
    result_type: str = RESULT_TYPE_ALL
    provider: str = "all"
    limit: int = DEFAULT_SEARCH_LIMIT
    store_results: bool = False
    # Seconds to wait for every provider, None waits as long as they take
    deadline: float | None = None


class ResultAccumulator:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._results = SearchResults()
        self._closed = False

    def merge(self, provider: str, partial: SearchResults) -> None:
        with self._lock:
            if self._closed:
                logger.warning("Dropping late results from {}", provider)
                return
            self._results.artists.extend(partial.artists)
            self._results.albums.extend(partial.albums)
            self._results.tracks.extend(partial.tracks)
            self._results.provider_status[provider] = ProviderStatus(
                ok=True,
                artists=len(partial.artists),
                albums=len(partial.albums),
                tracks=len(partial.tracks),
            )

    def record_failure(self, provider: str, error: str) -> None:
        with self._lock:
            if self._closed:
                return
            self._results.provider_status[provider] = ProviderStatus(
                ok=False, error=error
            )

    def close(self, pending: list[str]) -> None:
        """Stop accepting results, marking providers that never reported."""
        with self._lock:
            for provider in pending:
                self._results.provider_status.setdefault(
                    provider, ProviderStatus(ok=False, error=DEADLINE_EXCEEDED)
                )
            self._closed = True

    def results(self) -> SearchResults:
        with self._lock:
            return SearchResults(
                artists=list(self._results.artists),
                albums=list(self._results.albums),
                tracks=list(self._results.tracks),
                provider_status=dict(self._results.provider_status),
            )


def _search_provider(
    provider: MusicProvider, options: SearchOptions, limit: int
) -> SearchResults:
    match options.result_type:
        case "artist":
            return SearchResults(artists=provider.search_artists(options.query, limit))
        case "album":
            return SearchResults(albums=provider.search_albums(options.query, limit))
        case "track":
            return SearchResults(tracks=provider.search_tracks(options.query, limit))
        case _:
            return provider.search(options.query, limit)


class SearchAggregator:
    def __init__(
        self, registry: ProviderRegistry, store: CatalogStore | None = None
    ) -> None:
        self._registry = registry
        self._store = store

    def search(self, options: SearchOptions) -> SearchResults:
        query = options.query.strip()
        if not query:
            logger.debug("Empty search query, nothing to do")
            return SearchResults()

        limit = options.limit if options.limit > 0 else DEFAULT_SEARCH_LIMIT
        options = SearchOptions(
            query=query,
            result_type=options.result_type,
            provider=options.provider,
            limit=limit,
            store_results=options.store_results,
            deadline=options.deadline,
        )

        providers = self._registry.select(options.provider)
        if not providers:
            logger.info("No configured provider matches {}", options.provider)
            return SearchResults()

        accumulator = ResultAccumulator()

        def run(provider: MusicProvider) -> None:
            name = str(provider.name)
            try:
                partial = _search_provider(provider, options, limit)
            except ProviderError as error:
                logger.warning("Search failed for {}: {}", name, error)
                accumulator.record_failure(name, str(error))
                return
            except Exception as error:  # noqa: BLE001
                logger.exception("Unexpected error searching {}", name)
                accumulator.record_failure(name, str(error))
                return
            accumulator.merge(name, partial)

        executor = ThreadPoolExecutor(
            max_workers=len(providers), thread_name_prefix="search"
        )
        futures = {
            executor.submit(run, provider): str(provider.name) for provider in providers
        }
        _, not_done = wait(futures, timeout=options.deadline)
        if not_done:
            pending = [futures[future] for future in not_done]
            logger.warning("Search deadline exceeded waiting for {}", pending)
            accumulator.close(pending)
        # Workers past the deadline finish in the background, their results dropped
        executor.shutdown(wait=False, cancel_futures=True)

        results = accumulator.results()
        logger.info(
            "Search {!r} found {} artists, {} albums, {} tracks",
            query,
            len(results.artists),
            len(results.albums),
            len(results.tracks),
        )

        if options.store_results:
            self._store_artists(results.artists)

        return results

    def _store_artists(self, artists: list[Artist]) -> None:
        if not self._store:
            logger.warning("store_results requested without a catalog store")
            return
        for artist in artists:
            try:
                self._store.upsert_artist_by_name(artist)
            except CatalogError as error:
                logger.warning("Failed to store artist {}: {}", artist.name, error)

    def get_artist_with_albums(
        self, provider: str, artist_id: str
    ) -> tuple[Artist, list[Album]]:
        client = self._registry.require(provider)
        artist = client.get_artist(artist_id)
        albums = client.get_artist_albums(artist_id)
        return artist, albums

    def get_album_with_tracks(
        self, provider: str, album_id: str
    ) -> tuple[Album, list[Track]]:
        client = self._registry.require(provider)
        return client.get_album(album_id)
