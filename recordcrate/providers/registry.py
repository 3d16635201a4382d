from loguru import logger

from recordcrate.config import Config, get_config
from recordcrate.errors import ConfigurationError, ProviderNotConfiguredError
from recordcrate.models import Provider
from recordcrate.providers.apple_music import AppleMusicClient
from recordcrate.providers.base import MusicProvider
from recordcrate.providers.spotify import SpotifyClient

ALL_PROVIDERS = "all"


class ProviderRegistry:
    """Configured provider adapters, keyed by provider name."""

    def __init__(self, providers: list[MusicProvider] | None = None) -> None:
        self._providers: dict[str, MusicProvider] = {}
        for provider in providers or []:
            self.register(provider)

    @classmethod
    def from_config(cls, config: Config) -> "ProviderRegistry":
        registry = cls()

        if config.spotify_configured:
            registry.register(
                SpotifyClient(
                    config.spotify_client_id,
                    config.spotify_client_secret,
                    timeout=config.provider_request_timeout,
                )
            )

        if config.apple_music_configured:
            try:
                registry.register(
                    AppleMusicClient(
                        config.apple_music_key_id,
                        config.apple_music_team_id,
                        config.apple_music_private_key,
                        storefront=config.apple_music_storefront,
                        timeout=config.provider_request_timeout,
                    )
                )
            except ConfigurationError as error:
                logger.error("Apple Music left unconfigured: {}", error)

        logger.info("Configured music providers: {}", registry.available())
        return registry

    def register(self, provider: MusicProvider) -> None:
        self._providers[str(provider.name)] = provider

    def available(self) -> list[str]:
        return list(self._providers)

    def get(self, name: str) -> MusicProvider | None:
        return self._providers.get(name)

    def require(self, name: str) -> MusicProvider:
        provider = self.get(name)
        if not provider:
            raise ProviderNotConfiguredError(name)
        return provider

    def select(self, selector: str) -> list[MusicProvider]:
        """Providers a search should fan out to.

        An empty selector or "all" picks every configured provider; any other
        value picks that provider alone, or nothing when it isn't configured.
        """
        if not selector or selector == ALL_PROVIDERS:
            return list(self._providers.values())
        provider = self.get(selector)
        if not provider:
            logger.debug("Provider {} not configured, skipping", selector)
            return []
        return [provider]


_registry: ProviderRegistry | None = None


def get_registry() -> ProviderRegistry:
    global _registry  # noqa: PLW0603
    if not _registry:
        _registry = ProviderRegistry.from_config(get_config())
    return _registry


def known_provider(name: str) -> bool:
    return name in {str(provider) for provider in Provider}
