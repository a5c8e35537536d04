"""
Catalog persistence used by the importer and the lookup API.

find-or-create helpers for publishers, authors and genres, item creation
with field validation, and idempotent author/genre association. None of
these commit: the caller owns the transaction so that one import row is
written atomically.
"""

import datetime
import logging
from typing import Optional, Tuple, Union

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from mediashelf import db
from mediashelf.models import (
    Author, Genre, Publisher, DigitalItem, PhysicalItem,
    DigitalItemType, DigitalItemFormat, PhysicalItemType
)
from mediashelf.services.identifiers import ISBNValidator, normalize_lccn

logger = logging.getLogger(__name__)

CatalogItem = Union[DigitalItem, PhysicalItem]

MIN_RATING = 0
MAX_RATING = 5
MIN_YEAR = 1000

ITEM_FIELDS = (
    'title', 'subtitle', 'description', 'isbn', 'lccn', 'language',
    'page_count', 'cover_image', 'rating', 'reading_status', 'notes',
)


class CatalogService:
    """Persistence collaborator for catalog items and their lookup tables."""

    @staticmethod
    def _lookup(model, name: str):
        return model.query.filter_by(name=name).first()

    @staticmethod
    def _find_or_create(model, name: str):
        """
        Return the row of ``model`` named ``name``, creating it if needed.

        The insert runs inside a savepoint; a unique-constraint violation
        means a concurrent writer created the same name first, so the
        savepoint is rolled back and the existing row is fetched instead.
        """
        name = (name or '').strip()
        if not name:
            raise ValueError(f"{model.__name__} name must not be empty")

        instance = CatalogService._lookup(model, name)
        if instance is not None:
            return instance

        try:
            with db.session.begin_nested():
                instance = model(name=name)
                db.session.add(instance)
                db.session.flush()
        except IntegrityError:
            logger.info(f"CatalogService: {model.__name__} '{name}' created concurrently, re-fetching")
            instance = CatalogService._lookup(model, name)
            if instance is None:
                raise
            return instance

        logger.debug(f"CatalogService: Created {model.__name__} '{name}'")
        return instance

    @staticmethod
    def find_or_create_publisher(name: str) -> Publisher:
        """Exact, case-sensitive match on publisher name."""
        return CatalogService._find_or_create(Publisher, name)

    @staticmethod
    def find_or_create_author(name: str) -> Author:
        return CatalogService._find_or_create(Author, name)

    @staticmethod
    def find_or_create_genre(name: str) -> Genre:
        return CatalogService._find_or_create(Genre, name)

    @staticmethod
    def create_digital_item(owner, **fields) -> DigitalItem:
        """
        Create a digital item owned by ``owner``.

        Args:
            owner: User the item belongs to
            **fields: item columns; ``publication_date`` may be an ISO
                ``YYYY-MM-DD`` string, ``format`` defaults to ``other``

        Returns:
            The new, flushed DigitalItem

        Raises:
            ValueError: if a field fails validation
        """
        item = DigitalItem(
            owner=owner,
            type=fields.get('type') or DigitalItemType.EBOOK.value,
            format=fields.get('format') or DigitalItemFormat.OTHER.value,
            file_path=fields.get('file_path'),
        )
        return CatalogService._populate(item, fields)

    @staticmethod
    def create_physical_item(owner, **fields) -> PhysicalItem:
        """
        Create a physical item owned by ``owner``.

        Args:
            owner: User the item belongs to
            **fields: item columns plus ``condition``, ``location`` and
                ``quantity``

        Returns:
            The new, flushed PhysicalItem

        Raises:
            ValueError: if a field fails validation
        """
        item = PhysicalItem(
            owner=owner,
            type=fields.get('type') or PhysicalItemType.BOOK.value,
            condition=fields.get('condition'),
            location=fields.get('location'),
            quantity=fields.get('quantity') or 1,
        )
        return CatalogService._populate(item, fields)

    @staticmethod
    def _populate(item: CatalogItem, fields: dict) -> CatalogItem:
        title = (fields.get('title') or '').strip()
        if not title:
            raise ValueError("Title is required")

        for name in ITEM_FIELDS:
            if name in fields:
                setattr(item, name, fields[name])
        item.title = title

        rating = fields.get('rating')
        if rating is not None and not MIN_RATING <= rating <= MAX_RATING:
            raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

        publication_date = parse_publication_date(fields.get('publication_date'))
        if publication_date is not None:
            validate_year(publication_date.year)
            item.publication_date = publication_date
            item.published_year = publication_date.year
        elif fields.get('published_year') is not None:
            item.published_year = validate_year(int(fields['published_year']))

        publisher = fields.get('publisher')
        if publisher is not None:
            item.publisher = publisher

        db.session.add(item)
        db.session.flush()
        logger.info(f"CatalogService: Created {type(item).__name__} #{item.id} '{item.title}'")
        return item

    @staticmethod
    def associate_author(item: CatalogItem, author: Author) -> None:
        """Link an author to an item. Linking twice is a no-op."""
        if author not in item.authors:
            item.authors.append(author)

    @staticmethod
    def associate_genre(item: CatalogItem, genre: Genre) -> None:
        """Link a genre to an item. Linking twice is a no-op."""
        if genre not in item.genres:
            item.genres.append(genre)

    @staticmethod
    def find_by_identifier(
        owner,
        isbn: Optional[str] = None,
        lccn: Optional[str] = None
    ) -> Optional[Tuple[str, CatalogItem]]:
        """
        Find an item of ``owner`` carrying the given ISBN or LCCN.

        Both the raw and the normalized form of the identifier are matched.
        Physical items are checked before digital ones.

        Returns:
            ('physical' | 'digital', item) or None
        """
        if isbn:
            column_name = 'isbn'
            candidates = {isbn, ISBNValidator.normalize(isbn)}
        elif lccn:
            column_name = 'lccn'
            candidates = {lccn, normalize_lccn(lccn)}
        else:
            return None
        candidates.discard('')

        for item_type, model in (('physical', PhysicalItem), ('digital', DigitalItem)):
            column = getattr(model, column_name)
            item = model.query.filter(
                model.user_id == owner.id,
                or_(*[column == value for value in candidates])
            ).first()
            if item is not None:
                return item_type, item
        return None


def parse_publication_date(value) -> Optional[datetime.date]:
    """
    Parse an ISO ``YYYY-MM-DD`` date; a bare ``YYYY`` means January 1st.

    Raises:
        ValueError: for any other non-empty value
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value

    text = str(value).strip()
    if len(text) == 4 and text.isdigit():
        text = f"{text}-01-01"
    try:
        return datetime.date.fromisoformat(text[:10])
    except ValueError:
        raise ValueError(f"Invalid publication date: {value}")


def validate_year(year: int) -> int:
    max_year = datetime.date.today().year + 1
    if not MIN_YEAR <= year <= max_year:
        raise ValueError(f"Published year must be between {MIN_YEAR} and {max_year}")
    return year
