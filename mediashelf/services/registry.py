"""
Process-wide service wiring.

The application factory builds one ServiceRegistry and stores it in
``app.extensions['mediashelf']``; request handlers and CLI commands reach
it through ``get_services()``.
"""

import logging
import os
from dataclasses import dataclass

from flask import current_app

from mediashelf.services.cover_service import CoverService
from mediashelf.services.metadata_cache import MetadataCache
from mediashelf.services.resolver import MetadataResolver, build_isbn_resolver, build_lccn_resolver
from mediashelf.services.storage import LocalFileStorage

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'mediashelf'


@dataclass
class ServiceRegistry:
    cache: MetadataCache
    isbn_resolver: MetadataResolver
    lccn_resolver: MetadataResolver
    storage: LocalFileStorage
    covers: CoverService


def build_services(config, http=None) -> ServiceRegistry:
    """Construct the shared cache, resolvers, storage and cover service from config."""
    cache = MetadataCache(
        ttl=config['METADATA_CACHE_TTL'],
        max_entries=config['METADATA_CACHE_MAX_ENTRIES'],
    )
    isbn_resolver = build_isbn_resolver(
        cache,
        http=http,
        timeout=config['ISBN_PROVIDER_TIMEOUT'],
        google_api_key=config.get('GOOGLE_BOOKS_API_KEY'),
    )
    lccn_resolver = build_lccn_resolver(cache, http=http, timeout=config['LCCN_PROVIDER_TIMEOUT'])
    storage = LocalFileStorage(config['UPLOAD_FOLDER'])
    covers = CoverService(
        storage,
        isbn_resolver=isbn_resolver,
        lccn_resolver=lccn_resolver,
        http=http,
        timeout=config['COVER_DOWNLOAD_TIMEOUT'],
        max_size=config['COVER_MAX_SIZE'],
        user_agent=config['COVER_USER_AGENT'],
    )
    return ServiceRegistry(cache, isbn_resolver, lccn_resolver, storage, covers)


def init_services(app, http=None) -> ServiceRegistry:
    os.makedirs(os.path.join(app.config['UPLOAD_FOLDER'], CoverService.COVERS_DIR), exist_ok=True)
    services = build_services(app.config, http=http)
    app.extensions[EXTENSION_KEY] = services
    logger.debug(
        f"Services: metadata cache ready (ttl={services.cache.ttl}s, max_entries={services.cache.max_entries})"
    )
    return services


def get_services() -> ServiceRegistry:
    return current_app.extensions[EXTENSION_KEY]
