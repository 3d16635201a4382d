from flask import Blueprint, Response, g, jsonify, request

from recordcrate.catalog import SqlCatalogStore
from recordcrate.errors import AuthorizationError, CatalogError, InvalidRequestError
from recordcrate.models import Artist, Provider
from recordcrate.providers.registry import known_provider
from recordcrate.routes.util import (
    bearer_token,
    get_album_importer,
    get_search_aggregator,
    json_body,
    string_field,
)

catalog = Blueprint("catalog", __name__)

INVALID_PROVIDER_MESSAGE = "Invalid provider. Must be 'spotify' or 'apple_music'"


def _provider_arg() -> str:
    provider = request.args.get("provider") or str(Provider.SPOTIFY)
    if not known_provider(provider):
        raise InvalidRequestError(INVALID_PROVIDER_MESSAGE)
    return provider


@catalog.route("/import-album", methods=["POST"])
def import_album() -> tuple[Response, int] | Response:
    token = bearer_token()
    if not token:
        raise AuthorizationError("Authentication required")

    body = json_body()
    album_id = str(body.get("album_id") or "").strip()
    if not album_id:
        raise InvalidRequestError("Album ID is required")
    provider = str(body.get("provider") or "").strip()
    if not provider:
        raise InvalidRequestError("Provider is required")
    if not known_provider(provider):
        raise InvalidRequestError(INVALID_PROVIDER_MESSAGE)

    g.logger.info("Importing album={} provider={}", album_id, provider)
    try:
        stored_album_id = get_album_importer().import_album_for_user(
            token, album_id, provider
        )
    except AuthorizationError:
        g.logger.warning(
            "Unauthorized import attempt for album={} provider={}", album_id, provider
        )
        raise
    except CatalogError as error:
        g.logger.error(
            "Failed importing album={} provider={}: {}", album_id, provider, error
        )
        return jsonify({"error": f"Failed to import album: {error}"}), 500

    g.logger.info(
        "Imported album={} provider={} database_id={}",
        album_id,
        provider,
        stored_album_id,
    )

    store = SqlCatalogStore()
    try:
        stored_album = store.get_album(stored_album_id)
        songs = store.list_songs(stored_album_id)
    except CatalogError as error:
        g.logger.error("Failed to load stored album {}: {}", stored_album_id, error)
        stored_album, songs = None, []

    album = stored_album.to_dict() if stored_album else {"id": stored_album_id}
    album["songs"] = [song.to_dict() for song in songs]
    return jsonify({"message": "Album imported successfully", "album": album})


@catalog.route("/artist")
def get_artist() -> Response:
    artist_id = request.args.get("id", "").strip()
    if not artist_id:
        raise InvalidRequestError("Artist ID is required")

    artist, albums = get_search_aggregator().get_artist_with_albums(
        _provider_arg(), artist_id
    )
    return jsonify(
        {"artist": artist.to_dict(), "albums": [album.to_dict() for album in albums]}
    )


@catalog.route("/album")
def get_album() -> Response:
    album_id = request.args.get("id", "").strip()
    if not album_id:
        raise InvalidRequestError("Album ID is required")

    album, tracks = get_search_aggregator().get_album_with_tracks(
        _provider_arg(), album_id
    )
    return jsonify(
        {"album": album.to_dict(), "tracks": [track.to_dict() for track in tracks]}
    )


@catalog.route("/artists")
def list_artists() -> Response:
    artists = SqlCatalogStore().list_artists()
    g.logger.debug("Listing {} stored artists", len(artists))
    return jsonify({"artists": [artist.to_dict() for artist in artists]})


@catalog.route("/artists", methods=["POST"])
def save_artist() -> Response:
    body = json_body()

    name = string_field(body, "name", "Artist name is required")
    if not name:
        raise InvalidRequestError("Artist name is required")

    external_id = str(body.get("external_id") or "").strip()
    provider = string_field(body, "provider", INVALID_PROVIDER_MESSAGE)
    if provider and not known_provider(provider):
        raise InvalidRequestError(INVALID_PROVIDER_MESSAGE)
    if external_id and not provider:
        raise InvalidRequestError("Provider is required with an external ID")

    popularity = body.get("popularity")
    if popularity is not None and not isinstance(popularity, int):
        raise InvalidRequestError("Popularity must be a number")

    genres = body.get("genres") or []
    if not isinstance(genres, list) or not all(
        isinstance(genre, str) for genre in genres
    ):
        raise InvalidRequestError("Genres must be a list of strings")

    artist = Artist(
        external_id=external_id,
        name=name,
        provider=Provider(provider) if provider else "",
        image_url=body.get("image_url") or None,
        biography=body.get("biography") or None,
        genres=tuple(genres),
        popularity=popularity,
        external_url=body.get("external_url") or None,
    )
    artist_id = SqlCatalogStore().save_artist(artist)
    g.logger.info("Saved artist {} as {}", name, artist_id)
    return jsonify({"message": "Artist saved successfully", "id": artist_id})
