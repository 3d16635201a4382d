from http import HTTPStatus

import pytest
from flask.testing import FlaskClient

from fakes import FakeProvider, make_album, make_artist, make_track
from recordcrate.errors import ProviderError
from recordcrate.models import Provider
from recordcrate.providers.registry import ProviderRegistry

ALBUM_ID = "album-abbey-road"


@pytest.fixture
def spotify(install_registry: ProviderRegistry) -> FakeProvider:
    provider = FakeProvider(
        Provider.SPOTIFY,
        artists=[make_artist("The Beatles")],
        albums=[make_album()],
        tracks=[make_track("Come Together")],
        album_tracks={
            ALBUM_ID: (
                make_album(),
                [make_track("Come Together"), make_track("Something")],
            )
        },
        discography=[make_album(), make_album("Help!")],
    )
    install_registry.register(provider)
    return provider


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_search(client: FlaskClient, spotify: FakeProvider) -> None:
    response = client.post(
        "/search", json={"query": "beatles", "type": "album", "limit": 5}
    )

    assert response.status_code == HTTPStatus.OK
    assert [album["title"] for album in response.json["albums"]] == ["Abbey Road"]
    # Empty sections are left out
    assert "artists" not in response.json
    assert "tracks" not in response.json
    assert response.json["providers"]["spotify"]["ok"] is True
    assert spotify.calls == [("search_albums", ("beatles", 5))]


def test_search_reports_failed_provider(
    client: FlaskClient, spotify: FakeProvider
) -> None:
    spotify.error = ProviderError("spotify", "spotify api error: 503 - down")

    response = client.post("/search", json={"query": "beatles"})

    assert response.status_code == HTTPStatus.OK
    assert response.json == {
        "providers": {
            "spotify": {
                "ok": False,
                "error": "spotify: spotify api error: 503 - down",
                "artists": 0,
                "albums": 0,
                "tracks": 0,
            }
        }
    }


@pytest.mark.parametrize("body", [{}, {"query": ""}, {"query": "  "}, {"query": 5}])
def test_search_requires_query(client: FlaskClient, body: dict) -> None:
    response = client.post("/search", json=body)

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json == {"error": "Query is required"}


@pytest.mark.parametrize(
    ("body", "error"),
    [
        ({"query": "beatles", "provider": ["spotify"]}, "Provider must be a string"),
        ({"query": "beatles", "type": {"album": True}}, "Type must be a string"),
    ],
)
def test_search_rejects_non_string_options(
    client: FlaskClient, body: dict, error: str
) -> None:
    response = client.post("/search", json=body)

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json == {"error": error}


def test_search_rejects_malformed_body(client: FlaskClient) -> None:
    response = client.post(
        "/search", data="{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json == {"error": "Invalid request body"}


def test_search_stores_artists(
    client: FlaskClient, spotify: FakeProvider  # noqa: ARG001
) -> None:
    client.post("/search", json={"query": "beatles", "store_results": True})

    response = client.get("/artists")

    assert [artist["name"] for artist in response.json["artists"]] == ["The Beatles"]


def test_import_album(
    client: FlaskClient, spotify: FakeProvider, session_token: str  # noqa: ARG001
) -> None:
    response = client.post(
        "/import-album",
        json={"album_id": ALBUM_ID, "provider": "spotify"},
        headers=_auth(session_token),
    )

    assert response.status_code == HTTPStatus.OK
    assert response.json["message"] == "Album imported successfully"
    album = response.json["album"]
    assert album["title"] == "Abbey Road"
    assert album["rating"] == 3
    assert album["tracks"] == ["Come Together", "Something"]
    assert album["genres"] == ["Rock", "Pop"]
    assert [(song["title"], song["track_num"]) for song in album["songs"]] == [
        ("Come Together", None),
        ("Something", None),
    ]


def test_import_album_requires_token(client: FlaskClient) -> None:
    response = client.post(
        "/import-album", json={"album_id": ALBUM_ID, "provider": "spotify"}
    )

    assert response.status_code == HTTPStatus.UNAUTHORIZED
    assert response.json == {"error": "Unauthorized"}


def test_import_album_rejects_unknown_token(
    client: FlaskClient, spotify: FakeProvider, user_id: int  # noqa: ARG001
) -> None:
    response = client.post(
        "/import-album",
        json={"album_id": ALBUM_ID, "provider": "spotify"},
        headers=_auth("stolen-token"),
    )

    assert response.status_code == HTTPStatus.UNAUTHORIZED
    assert spotify.calls == []


@pytest.mark.parametrize(
    ("body", "error"),
    [
        ({"provider": "spotify"}, "Album ID is required"),
        ({"album_id": ALBUM_ID}, "Provider is required"),
        (
            {"album_id": ALBUM_ID, "provider": "tidal"},
            "Invalid provider. Must be 'spotify' or 'apple_music'",
        ),
    ],
)
def test_import_album_validates_body(
    client: FlaskClient, session_token: str, body: dict, error: str
) -> None:
    response = client.post("/import-album", json=body, headers=_auth(session_token))

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json == {"error": error}


def test_import_album_provider_failure(
    client: FlaskClient, spotify: FakeProvider, session_token: str  # noqa: ARG001
) -> None:
    response = client.post(
        "/import-album",
        json={"album_id": "missing", "provider": "spotify"},
        headers=_auth(session_token),
    )

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json == {
        "error": "Failed to import album: spotify: fetch album: album missing not found"
    }


def test_import_album_unconfigured_provider(
    client: FlaskClient, spotify: FakeProvider, session_token: str  # noqa: ARG001
) -> None:
    response = client.post(
        "/import-album",
        json={"album_id": ALBUM_ID, "provider": "apple_music"},
        headers=_auth(session_token),
    )

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json == {
        "error": "Failed to import album: provider apple_music not configured"
    }


def test_get_artist(client: FlaskClient, spotify: FakeProvider) -> None:  # noqa: ARG001
    response = client.get("/artist?id=artist-the-beatles&provider=spotify")

    assert response.status_code == HTTPStatus.OK
    assert response.json["artist"]["name"] == "The Beatles"
    assert [album["title"] for album in response.json["albums"]] == [
        "Abbey Road",
        "Help!",
    ]


def test_get_artist_requires_id(client: FlaskClient) -> None:
    response = client.get("/artist")

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json == {"error": "Artist ID is required"}


def test_get_artist_unconfigured_provider(
    client: FlaskClient, spotify: FakeProvider  # noqa: ARG001
) -> None:
    response = client.get("/artist?id=136975&provider=apple_music")

    assert response.status_code == HTTPStatus.NOT_IMPLEMENTED
    assert response.json == {"error": "provider apple_music not configured"}


def test_get_album_defaults_to_spotify(
    client: FlaskClient, spotify: FakeProvider  # noqa: ARG001
) -> None:
    response = client.get(f"/album?id={ALBUM_ID}")

    assert response.status_code == HTTPStatus.OK
    assert response.json["album"]["title"] == "Abbey Road"
    assert [track["title"] for track in response.json["tracks"]] == [
        "Come Together",
        "Something",
    ]


def test_get_album_provider_failure(
    client: FlaskClient, spotify: FakeProvider  # noqa: ARG001
) -> None:
    response = client.get("/album?id=missing")

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json == {"error": "spotify: album missing not found"}


def test_save_and_list_artists(client: FlaskClient) -> None:
    saved = client.post(
        "/artists",
        json={
            "name": "Nina Simone",
            "external_id": "nina-1",
            "provider": "spotify",
            "genres": ["jazz", "soul"],
            "popularity": 71,
        },
    )
    assert saved.status_code == HTTPStatus.OK
    assert saved.json["message"] == "Artist saved successfully"

    response = client.get("/artists")

    (artist,) = response.json["artists"]
    assert artist["name"] == "Nina Simone"
    assert artist["provider"] == "spotify"
    assert artist["genres"] == ["jazz", "soul"]
    assert artist["popularity"] == 71


@pytest.mark.parametrize(
    ("body", "error"),
    [
        ({}, "Artist name is required"),
        (
            {"name": "Nina", "provider": "tidal"},
            "Invalid provider. Must be 'spotify' or 'apple_music'",
        ),
        (
            {"name": "Nina", "external_id": "n1"},
            "Provider is required with an external ID",
        ),
        ({"name": "Nina", "genres": "rock"}, "Genres must be a list of strings"),
        ({"name": "Nina", "genres": ["rock", 7]}, "Genres must be a list of strings"),
        ({"name": ["Nina"]}, "Artist name is required"),
    ],
)
def test_save_artist_validates_body(
    client: FlaskClient, body: dict, error: str
) -> None:
    response = client.post("/artists", json=body)

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json == {"error": error}
