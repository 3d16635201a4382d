import os

from loguru import logger

SPOTIFY_BASE_URL = "https://api.spotify.com/v1"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"  # noqa: S105
APPLE_MUSIC_BASE_URL = "https://api.music.apple.com/v1"

DEFAULT_SEARCH_LIMIT = 20


class MissingEnvironmentVariableError(Exception):
    def __init__(self, variable_name: str) -> None:
        super().__init__(f"No {variable_name} environment variable provided")


class Config:
    def __init__(self) -> None:
        self._log_file: str = os.environ.get(
            "LOG_FILE", "/opt/recordcrate/recordcrate.log"
        )
        logger.debug("logfile={}", self._log_file)

        self._database_url: str = os.environ.get("DATABASE_URL", "")
        if not self._database_url:
            raise MissingEnvironmentVariableError("DATABASE_URL")
        logger.debug("DATABASE_URL defined (not shown)")

        # Provider credentials are optional, a provider without them is
        # left out of the registry.
        self._spotify_client_id: str = os.environ.get("SPOTIFY_CLIENT_ID", "")
        self._spotify_client_secret: str = os.environ.get("SPOTIFY_CLIENT_SECRET", "")
        if self.spotify_configured:
            logger.debug("spotify_client_id={}", self._spotify_client_id)
            logger.debug("SPOTIFY_CLIENT_SECRET defined (not shown)")
        else:
            logger.info("Spotify credentials not provided, Spotify search disabled")

        self._apple_music_key_id: str = os.environ.get("APPLE_MUSIC_KEY_ID", "")
        self._apple_music_team_id: str = os.environ.get("APPLE_MUSIC_TEAM_ID", "")
        self._apple_music_private_key: str = os.environ.get(
            "APPLE_MUSIC_PRIVATE_KEY", ""
        ).replace("\\n", "\n")
        self._apple_music_storefront: str = os.environ.get(
            "APPLE_MUSIC_STOREFRONT", "us"
        )
        if self.apple_music_configured:
            logger.debug("apple_music_key_id={}", self._apple_music_key_id)
            logger.debug("apple_music_team_id={}", self._apple_music_team_id)
            logger.debug("APPLE_MUSIC_PRIVATE_KEY defined (not shown)")
        else:
            logger.info(
                "Apple Music credentials not provided, Apple Music search disabled"
            )

        self._provider_request_timeout: float = float(
            os.environ.get("PROVIDER_REQUEST_TIMEOUT", "30")
        )
        logger.debug("provider_request_timeout={}", self._provider_request_timeout)

        # Overall bound on one fan-out search, unset waits for every provider
        search_deadline = os.environ.get("SEARCH_DEADLINE", "")
        self._search_deadline: float | None = (
            float(search_deadline) if search_deadline else None
        )
        logger.debug("search_deadline={}", self._search_deadline)

    @property
    def log_file(self) -> str:
        return self._log_file

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def spotify_client_id(self) -> str:
        return self._spotify_client_id

    @property
    def spotify_client_secret(self) -> str:
        return self._spotify_client_secret

    @property
    def spotify_configured(self) -> bool:
        return bool(self._spotify_client_id and self._spotify_client_secret)

    @property
    def apple_music_key_id(self) -> str:
        return self._apple_music_key_id

    @property
    def apple_music_team_id(self) -> str:
        return self._apple_music_team_id

    @property
    def apple_music_private_key(self) -> str:
        return self._apple_music_private_key

    @property
    def apple_music_storefront(self) -> str:
        return self._apple_music_storefront

    @property
    def apple_music_configured(self) -> bool:
        return bool(
            self._apple_music_key_id
            and self._apple_music_team_id
            and self._apple_music_private_key
        )

    @property
    def provider_request_timeout(self) -> float:
        return self._provider_request_timeout

    @property
    def search_deadline(self) -> float | None:
        return self._search_deadline


_config: Config | None = None


def get_config() -> Config:
    global _config  # noqa: PLW0603
    if not _config:
        _config = Config()
    return _config
