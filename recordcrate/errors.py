class CatalogError(Exception):
    pass


class AuthorizationError(CatalogError):
    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message)


class ConfigurationError(CatalogError):
    pass


class ProviderNotConfiguredError(ConfigurationError):
    def __init__(self, provider: str) -> None:
        super().__init__(f"provider {provider} not configured")
        self.provider = provider


class UnsupportedCapabilityError(ConfigurationError):
    def __init__(self, provider: str, capability: str) -> None:
        super().__init__(f"provider {provider} does not support {capability}")
        self.provider = provider
        self.capability = capability


class ProviderError(CatalogError):
    """Raised when talking to a music provider fails."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class PersistenceError(CatalogError):
    pass


class InvalidRequestError(CatalogError):
    pass
