"""
External bibliographic metadata providers.

Each provider turns one normalized identifier into a BookMetadata or None.
Network problems, non-200 responses and malformed payloads are raised as
ProviderUnavailable so the resolver can fall through to the next provider.

Google Books: https://developers.google.com/books/docs/v1/using
Open Library: https://openlibrary.org/dev/docs/api/books
"""

import logging
from typing import Dict, List, Optional

import requests

from mediashelf.services.errors import ProviderUnavailable
from mediashelf.services.metadata import BookMetadata, extract_year, to_positive_int

logger = logging.getLogger(__name__)


class MetadataProvider:
    """Base class holding the HTTP client, timeout and error translation."""

    name = "provider"

    def __init__(self, http=None, timeout: float = 5.0):
        # ``http`` is anything with a requests-compatible ``get``
        self.http = http or requests
        self.timeout = timeout

    def lookup(self, identifier: str) -> Optional[BookMetadata]:
        raise NotImplementedError

    def _get_json(self, url: str, params: Dict) -> Dict:
        try:
            response = self.http.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout:
            raise ProviderUnavailable(self.name, f"timeout after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            raise ProviderUnavailable(self.name, f"request failed: {e}")
        except ValueError as e:
            raise ProviderUnavailable(self.name, f"invalid JSON: {e}")

        if not isinstance(data, dict):
            raise ProviderUnavailable(self.name, "unexpected response shape")
        return data


class GoogleBooksProvider(MetadataProvider):
    """Google Books volumes search, queried with ``isbn:<value>``."""

    name = "google_books"
    VOLUMES_URL = "https://www.googleapis.com/books/v1/volumes"

    def __init__(self, http=None, timeout: float = 5.0, api_key: Optional[str] = None):
        super().__init__(http, timeout)
        self.api_key = api_key

    def lookup(self, identifier: str) -> Optional[BookMetadata]:
        logger.info(f"Google Books: Searching by ISBN: {identifier}")

        params = {"q": f"isbn:{identifier}"}
        if self.api_key:
            params["key"] = self.api_key

        data = self._get_json(self.VOLUMES_URL, params)
        items = data.get("items") or []
        if not items:
            logger.info(f"Google Books: No data for ISBN {identifier}")
            return None

        try:
            return self._parse_volume(items[0].get("volumeInfo") or {}, identifier)
        except (AttributeError, TypeError, ValueError) as e:
            raise ProviderUnavailable(self.name, f"malformed volume: {e}")

    def _parse_volume(self, volume: Dict, isbn: str) -> BookMetadata:
        isbn_10 = None
        isbn_13 = None
        for entry in volume.get("industryIdentifiers") or []:
            if entry.get("type") == "ISBN_10":
                isbn_10 = entry.get("identifier")
            elif entry.get("type") == "ISBN_13":
                isbn_13 = entry.get("identifier")

        # Reported identifiers win; the queried value only fills its own slot
        if not isbn_10 and len(isbn) == 10:
            isbn_10 = isbn
        if not isbn_13 and len(isbn) == 13:
            isbn_13 = isbn

        image_links = volume.get("imageLinks") or {}

        return BookMetadata(
            title=(volume.get("title") or "Unknown").strip(),
            authors=[a.strip() for a in volume.get("authors") or [] if a and a.strip()],
            publisher=volume.get("publisher") or None,
            published_year=extract_year(volume.get("publishedDate")),
            description=volume.get("description") or None,
            cover_url=image_links.get("thumbnail") or image_links.get("smallThumbnail"),
            page_count=to_positive_int(volume.get("pageCount")),
            language=volume.get("language") or None,
            categories=list(volume.get("categories") or []),
            isbn_10=isbn_10,
            isbn_13=isbn_13,
            source=self.name,
        )


class OpenLibraryProvider(MetadataProvider):
    """Open Library books API keyed by ``<SCHEME>:<value>`` bibkeys (ISBN or LCCN)."""

    BOOKS_API_URL = "https://openlibrary.org/api/books"
    MAX_CATEGORIES = 5

    def __init__(self, bibkey_scheme: str = "ISBN", http=None, timeout: float = 5.0):
        super().__init__(http, timeout)
        self.bibkey_scheme = bibkey_scheme.upper()
        self.name = f"open_library_{self.bibkey_scheme.lower()}"

    def lookup(self, identifier: str) -> Optional[BookMetadata]:
        bibkey = f"{self.bibkey_scheme}:{identifier}"
        logger.info(f"Open Library: Searching by {bibkey}")

        params = {
            "bibkeys": bibkey,
            "jscmd": "data",
            "format": "json"
        }
        data = self._get_json(self.BOOKS_API_URL, params)

        book_data = data.get(bibkey)
        if not book_data:
            logger.info(f"Open Library: No data for {bibkey}")
            return None

        try:
            return self._parse_book_data(book_data, identifier)
        except (AttributeError, TypeError, ValueError) as e:
            raise ProviderUnavailable(self.name, f"malformed record: {e}")

    def _parse_book_data(self, book_data: Dict, identifier: str) -> BookMetadata:
        authors = []
        for author in book_data.get("authors") or []:
            author_name = (author.get("name") or "").strip()
            if author_name:
                authors.append(author_name)

        publisher = None
        publishers = book_data.get("publishers") or []
        if publishers:
            first = publishers[0]
            publisher = (first.get("name") if isinstance(first, dict) else str(first)) or None

        cover_url = None
        covers = book_data.get("cover")
        if isinstance(covers, dict):
            cover_url = covers.get("large") or covers.get("medium") or covers.get("small")

        language = None
        languages = book_data.get("languages") or []
        if languages and isinstance(languages[0], dict):
            language = (languages[0].get("key") or "").replace("/languages/", "") or None

        identifiers = book_data.get("identifiers") or {}
        isbn_10 = _first(identifiers.get("isbn_10"))
        isbn_13 = _first(identifiers.get("isbn_13"))
        if self.bibkey_scheme == "ISBN":
            if not isbn_10 and len(identifier) == 10:
                isbn_10 = identifier
            if not isbn_13 and len(identifier) == 13:
                isbn_13 = identifier

        return BookMetadata(
            title=(book_data.get("title") or "Unknown").strip(),
            authors=authors,
            publisher=publisher,
            published_year=extract_year(book_data.get("publish_date")),
            description=_text_value(book_data.get("description"))
            or _text_value(book_data.get("notes"))
            or _text_value(book_data.get("subtitle")),
            cover_url=cover_url,
            page_count=to_positive_int(book_data.get("number_of_pages")),
            language=language,
            categories=_subject_names(book_data.get("subjects"))[:self.MAX_CATEGORIES],
            isbn_10=isbn_10,
            isbn_13=isbn_13,
            source="open_library",
        )


def _first(values) -> Optional[str]:
    if isinstance(values, list) and values:
        return str(values[0])
    return None


def _text_value(value) -> Optional[str]:
    # Open Library text fields come either as plain strings or {"type", "value"}
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _subject_names(subjects) -> List[str]:
    names = []
    for subject in subjects or []:
        name = subject.get("name") if isinstance(subject, dict) else subject
        if name and str(name).strip():
            names.append(str(name).strip())
    return names
