"""Provider registry for managing and creating provider instances."""

from __future__ import annotations

from typing import TYPE_CHECKING

from libris.core.types import ProviderName
from libris.providers.base import ProviderClient, ProviderConfig, RateProfile

if TYPE_CHECKING:
    from libris.config import LibrisSettings


class ProviderRegistry:
    """
    Factory for creating and managing provider instances.

    Holds one client per provider name; the default names the client the
    engine uses when a call does not pick one.
    """

    def __init__(self, default: str | None = None) -> None:
        self._providers: dict[str, ProviderClient] = {}
        self._rate_profiles: dict[str, RateProfile] = {}
        self._default = default

    def register(
        self,
        provider: ProviderClient,
        *,
        default: bool = False,
        rate_profile: RateProfile | None = None,
    ) -> None:
        """Register a provider, optionally making it the default.

        ``rate_profile`` overrides the limits the provider publishes itself.
        """
        self._providers[provider.name] = provider
        if rate_profile is not None:
            self._rate_profiles[provider.name] = rate_profile
        if default or self._default is None:
            self._default = provider.name

    def get(self, name: str | None = None) -> ProviderClient:
        """Get a provider by name, or the default provider."""
        key = name or self._default
        if key is None or key not in self._providers:
            raise KeyError(f"Unknown provider: {key}")
        return self._providers[key]

    def rate_profile(self, name: str | None = None) -> RateProfile | None:
        """Rate limits to apply to a provider when a call does not set its own."""
        provider = self.get(name)
        if provider.name in self._rate_profiles:
            return self._rate_profiles[provider.name]
        return getattr(provider, "rate_profile", None)

    @property
    def names(self) -> list[str]:
        return list(self._providers)

    @property
    def default_name(self) -> str | None:
        return self._default

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    async def close(self) -> None:
        """Close every registered provider."""
        for provider in self._providers.values():
            await provider.close()

    @classmethod
    def from_settings(cls, settings: LibrisSettings) -> ProviderRegistry:
        """
        Create a registry with providers configured from settings.

        All three providers are registered; ``default_provider`` selects the
        one used when a call names none.
        """
        from libris.providers.google_books import GoogleBooksProvider
        from libris.providers.openlibrary import OpenLibraryProvider
        from libris.providers.proxy import ProxyProvider

        registry = cls()
        timeout = settings.request_timeout

        registry.register(
            ProxyProvider(
                ProviderConfig(base_url=settings.proxy_base_url, timeout=timeout),
                upstream=settings.proxy_upstream,
            )
        )
        registry.register(
            GoogleBooksProvider(
                ProviderConfig(api_key=settings.google_books_api_key, timeout=timeout)
            )
        )
        registry.register(OpenLibraryProvider(ProviderConfig(timeout=timeout)))

        default = settings.default_provider
        if default == ProviderName.PROXY or default.value in registry:
            registry._default = default.value
        else:
            # Upstream names route through the proxy
            registry._default = ProviderName.PROXY.value
        return registry
