"""
Metadata resolver: identifier -> BookMetadata via cache, then providers.

One generic algorithm parameterized by identifier scheme:
1. Normalize/validate the raw identifier
2. Return a cached record when present
3. Ask each provider in priority order; a failing provider counts as
   "found nothing" and the next one is tried
4. Cache and return the first usable record

Usage:
    resolver = build_isbn_resolver(cache)
    metadata = resolver.resolve("978-0-7432-7356-5")
"""

import logging
from typing import Callable, List, Optional, Sequence

from mediashelf.services.errors import ProviderUnavailable
from mediashelf.services.identifiers import ISBNValidator, classify_lccn, NormalizedIdentifier
from mediashelf.services.metadata import BookMetadata
from mediashelf.services.metadata_cache import MetadataCache
from mediashelf.services.providers import MetadataProvider, GoogleBooksProvider, OpenLibraryProvider

logger = logging.getLogger(__name__)


class MetadataResolver:
    """Cache-then-fallback lookup for a single identifier scheme."""

    def __init__(
        self,
        scheme: str,
        classify: Callable[[str], Optional[NormalizedIdentifier]],
        providers: Sequence[MetadataProvider],
        cache: MetadataCache
    ):
        """
        Args:
            scheme: short scheme name, also used as cache key prefix ('isbn', 'lccn')
            classify: raw input -> NormalizedIdentifier; returns None for
                "nothing to look up" and raises InvalidIdentifierFormat for
                malformed input
            providers: queried in the given order
            cache: shared metadata cache
        """
        self.scheme = scheme
        self.classify = classify
        self.providers: List[MetadataProvider] = list(providers)
        self.cache = cache

    def cache_key(self, identifier: NormalizedIdentifier) -> str:
        return f"{self.scheme}:{identifier.value}"

    def resolve(self, raw_identifier: Optional[str]) -> Optional[BookMetadata]:
        """
        Resolve an identifier to bibliographic metadata.

        Args:
            raw_identifier: identifier as typed or exported

        Returns:
            BookMetadata from the cache or the first provider that found it,
            or None when nobody did

        Raises:
            InvalidIdentifierFormat: when the scheme rejects the input (ISBN only)
        """
        identifier = self.classify(raw_identifier or "")
        if identifier is None:
            logger.debug(f"Resolver[{self.scheme}]: nothing to resolve for {raw_identifier!r}")
            return None

        key = self.cache_key(identifier)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Resolver[{self.scheme}]: cache hit for {identifier}")
            return cached

        for provider in self.providers:
            try:
                metadata = provider.lookup(identifier.value)
            except ProviderUnavailable as e:
                logger.warning(f"Resolver[{self.scheme}]: {e}, trying next provider")
                continue
            except Exception as e:
                logger.error(f"Resolver[{self.scheme}]: {provider.name} failed unexpectedly: {e}")
                continue

            if metadata is not None:
                logger.info(f"Resolver[{self.scheme}]: {identifier} found via {provider.name}: {metadata.title}")
                self.cache.put(key, metadata)
                return metadata

        logger.info(f"Resolver[{self.scheme}]: no provider found {identifier}")
        return None


def build_isbn_resolver(
    cache: MetadataCache,
    http=None,
    timeout: float = 5.0,
    google_api_key: Optional[str] = None
) -> MetadataResolver:
    """ISBN resolver: Google Books first, Open Library as fallback."""
    return MetadataResolver(
        scheme="isbn",
        classify=ISBNValidator.validate_and_classify,
        providers=[
            GoogleBooksProvider(http=http, timeout=timeout, api_key=google_api_key),
            OpenLibraryProvider("ISBN", http=http, timeout=timeout),
        ],
        cache=cache,
    )


def build_lccn_resolver(cache: MetadataCache, http=None, timeout: float = 5.0) -> MetadataResolver:
    """LCCN resolver: Open Library only."""
    return MetadataResolver(
        scheme="lccn",
        classify=classify_lccn,
        providers=[OpenLibraryProvider("LCCN", http=http, timeout=timeout)],
        cache=cache,
    )
