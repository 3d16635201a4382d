import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from fakes import FakeProvider
from recordcrate.config import get_config
from recordcrate.errors import ProviderNotConfiguredError
from recordcrate.models import Provider
from recordcrate.providers.apple_music import AppleMusicClient
from recordcrate.providers.registry import (
    ProviderRegistry,
    get_registry,
    known_provider,
)
from recordcrate.providers.spotify import SpotifyClient


@pytest.fixture
def spotify_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "fake-spotify-client-id")
    monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "fake-spotify-client-secret")


@pytest.fixture
def apple_music_env(monkeypatch: pytest.MonkeyPatch) -> None:
    pem = (
        ec.generate_private_key(ec.SECP256R1())
        .private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        .decode()
    )
    monkeypatch.setenv("APPLE_MUSIC_KEY_ID", "FAKEKEYID1")
    monkeypatch.setenv("APPLE_MUSIC_TEAM_ID", "FAKETEAMID")
    # Deployments pass the key on one line with escaped newlines
    monkeypatch.setenv("APPLE_MUSIC_PRIVATE_KEY", pem.replace("\n", "\\n"))


def test_no_credentials_means_no_providers() -> None:
    registry = ProviderRegistry.from_config(get_config())

    assert registry.available() == []
    assert registry.select("all") == []


def test_spotify_only(spotify_env: None) -> None:  # noqa: ARG001
    registry = ProviderRegistry.from_config(get_config())

    assert registry.available() == ["spotify"]
    assert isinstance(registry.get("spotify"), SpotifyClient)
    assert registry.get("apple_music") is None


def test_both_providers(
    spotify_env: None, apple_music_env: None  # noqa: ARG001
) -> None:
    registry = ProviderRegistry.from_config(get_config())

    assert registry.available() == ["spotify", "apple_music"]
    assert isinstance(registry.require("apple_music"), AppleMusicClient)


def test_invalid_apple_music_key_leaves_provider_out(
    spotify_env: None,  # noqa: ARG001
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APPLE_MUSIC_KEY_ID", "FAKEKEYID1")
    monkeypatch.setenv("APPLE_MUSIC_TEAM_ID", "FAKETEAMID")
    monkeypatch.setenv("APPLE_MUSIC_PRIVATE_KEY", "not-a-key")

    registry = ProviderRegistry.from_config(get_config())

    assert registry.available() == ["spotify"]


def test_select() -> None:
    spotify = FakeProvider(Provider.SPOTIFY)
    apple_music = FakeProvider(Provider.APPLE_MUSIC)
    registry = ProviderRegistry([spotify, apple_music])

    assert registry.select("") == [spotify, apple_music]
    assert registry.select("all") == [spotify, apple_music]
    assert registry.select("apple_music") == [apple_music]
    assert registry.select("tidal") == []


def test_require_unconfigured_provider() -> None:
    registry = ProviderRegistry([FakeProvider(Provider.SPOTIFY)])

    with pytest.raises(ProviderNotConfiguredError) as error:
        registry.require("apple_music")

    assert str(error.value) == "provider apple_music not configured"
    assert registry.available() == ["spotify"]


def test_get_registry_is_cached(spotify_env: None) -> None:  # noqa: ARG001
    assert get_registry() is get_registry()


@pytest.mark.parametrize(
    ("name", "expected"),
    [("spotify", True), ("apple_music", True), ("tidal", False), ("", False)],
)
def test_known_provider(name: str, expected: bool) -> None:  # noqa: FBT001
    assert known_provider(name) is expected
