"""
Row mapping: dialect-specific CSV records -> NormalizedImportRow.

The lookup tables translate free text from exports into the catalog's
closed enumerations. Status and condition fall back to None for unknown
input; format always yields a value (``other`` by default).
"""

import datetime
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

from mediashelf.importer.dialects import Dialect
from mediashelf.models import (
    DigitalItemFormat, PhysicalItemCondition, ReadingStatus
)
from mediashelf.services.errors import UnknownDialect
from mediashelf.services.identifiers import ISBNValidator
from mediashelf.services.metadata import extract_year

logger = logging.getLogger(__name__)

DEFAULT_TITLE = 'Untitled'
DIGITAL_MARKERS = ('ebook', 'digital')

READING_STATUS_MAP = {
    'read': ReadingStatus.COMPLETED,
    'completed': ReadingStatus.COMPLETED,
    'reading': ReadingStatus.READING,
    'currently reading': ReadingStatus.READING,
    'to read': ReadingStatus.TO_READ,
    'want to read': ReadingStatus.TO_READ,
    'on hold': ReadingStatus.ON_HOLD,
    'paused': ReadingStatus.ON_HOLD,
    'dropped': ReadingStatus.DROPPED,
    'dnf': ReadingStatus.DROPPED,
}

CONDITION_MAP = {
    'new': PhysicalItemCondition.NEW,
    'like new': PhysicalItemCondition.LIKE_NEW,
    'like-new': PhysicalItemCondition.LIKE_NEW,
    'excellent': PhysicalItemCondition.LIKE_NEW,
    'very good': PhysicalItemCondition.VERY_GOOD,
    'very-good': PhysicalItemCondition.VERY_GOOD,
    'good': PhysicalItemCondition.GOOD,
    'acceptable': PhysicalItemCondition.ACCEPTABLE,
    'fair': PhysicalItemCondition.ACCEPTABLE,
    'poor': PhysicalItemCondition.POOR,
}

FORMAT_MAP = {
    'epub': DigitalItemFormat.EPUB,
    'pdf': DigitalItemFormat.PDF,
    'mobi': DigitalItemFormat.MOBI,
    'azw3': DigitalItemFormat.AZW3,
    'azw': DigitalItemFormat.AZW3,
    'mp3': DigitalItemFormat.MP3,
    'm4a': DigitalItemFormat.M4A,
    'm4b': DigitalItemFormat.M4A,
    'mp4': DigitalItemFormat.MP4,
    'mkv': DigitalItemFormat.MKV,
    'avi': DigitalItemFormat.OTHER,
    'ebook': DigitalItemFormat.EPUB,
    'audiobook': DigitalItemFormat.MP3,
    'video': DigitalItemFormat.MP4,
}


@dataclass
class NormalizedImportRow:
    """One source record in a dialect-independent shape."""

    is_digital: bool
    title: str
    subtitle: Optional[str] = None
    author_names: List[str] = field(default_factory=list)
    isbn: Optional[str] = None
    lccn: Optional[str] = None
    publisher_name: Optional[str] = None
    publication_date: Optional[str] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    language: Optional[str] = None
    tag_names: List[str] = field(default_factory=list)
    rating: Optional[float] = None
    reading_status: Optional[ReadingStatus] = None
    condition: Optional[PhysicalItemCondition] = None
    format: Optional[DigitalItemFormat] = None
    location: Optional[str] = None


@dataclass
class MappedRow:
    """Mapping result for one source record.

    ``row`` is None for records of an unknown dialect; ``error`` is set when
    the record could not be mapped.
    """

    position: int
    label: str
    row: Optional[NormalizedImportRow] = None
    error: Optional[Exception] = None


def map_reading_status(value: Optional[str]) -> Optional[ReadingStatus]:
    if not value:
        return None
    return READING_STATUS_MAP.get(value.strip().lower())


def map_condition(value: Optional[str]) -> Optional[PhysicalItemCondition]:
    if not value:
        return None
    return CONDITION_MAP.get(value.strip().lower())


def map_format(value: Optional[str]) -> DigitalItemFormat:
    if not value:
        return DigitalItemFormat.OTHER
    return FORMAT_MAP.get(value.strip().lower(), DigitalItemFormat.OTHER)


def parse_rating(value: Optional[str]) -> Optional[float]:
    """Ratings are numbers in [0, 5]; anything else is absent."""
    if value is None or str(value).strip() == '':
        return None
    try:
        rating = float(value)
    except (TypeError, ValueError):
        return None
    if not 0 <= rating <= 5:
        return None
    return rating


def parse_page_count(value: Optional[str]) -> Optional[int]:
    """Leading-integer parse; non-numeric input is absent, never zero."""
    digits = ''
    for char in (value or '').strip():
        if not char.isdigit():
            break
        digits += char
    return int(digits) if digits else None


def split_names(value: Optional[str], separator: str) -> List[str]:
    return [name.strip() for name in (value or '').split(separator) if name.strip()]


def is_digital_label(*values: Optional[str]) -> bool:
    for value in values:
        lowered = (value or '').lower()
        if any(marker in lowered for marker in DIGITAL_MARKERS):
            return True
    return False


def normalize_date(value: Optional[str]) -> Optional[str]:
    """
    Bring a free-form export date to ISO ``YYYY-MM-DD`` where possible.

    Values that are neither ISO dates nor contain a year are passed through
    unchanged and rejected later when the item is created.
    """
    if not value:
        return None
    try:
        return datetime.date.fromisoformat(value[:10]).isoformat()
    except ValueError:
        pass
    year = extract_year(value)
    if year is not None:
        return f"{year}-01-01"
    return value


def _normalize_isbn(value: Optional[str]) -> Optional[str]:
    return ISBNValidator.normalize(value) or None


def _common_fields(record: Dict[str, str]) -> dict:
    """Columns read the same way from either dialect."""
    return {
        'subtitle': record.get('Subtitle') or None,
        'tag_names': split_names(record.get('Tags') or record.get('tags'), ','),
        'rating': parse_rating(record.get('Rating') or record.get('rating')),
        'reading_status': map_reading_status(record.get('Status') or record.get('status')),
        'condition': map_condition(record.get('Condition')),
        'format': map_format(record.get('Format')),
        'location': record.get('Location') or None,
    }


def map_dialect_a(record: Dict[str, str]) -> NormalizedImportRow:
    year = record.get('Year Published') or record.get('Year') or record.get('PublicationDate')
    return NormalizedImportRow(
        is_digital=is_digital_label(record.get('Type'), record.get('Format')),
        title=record.get('Title') or DEFAULT_TITLE,
        author_names=split_names(record.get('Authors'), ';'),
        isbn=_normalize_isbn(record.get('ISBN') or record.get('ISBN13') or record.get('ISBN10')),
        lccn=record.get('LCCN') or None,
        publisher_name=record.get('Publisher') or None,
        publication_date=f"{year}-01-01" if year else None,
        description=record.get('Description') or record.get('Notes') or None,
        **_common_fields(record)
    )


def map_dialect_b(record: Dict[str, str]) -> NormalizedImportRow:
    if record.get('creators'):
        author_names = split_names(record['creators'], ',')
    else:
        full_name = f"{record.get('first_name', '')} {record.get('last_name', '')}".strip()
        author_names = [full_name] if full_name else []

    return NormalizedImportRow(
        is_digital=is_digital_label(record.get('item_type')),
        title=record.get('title') or DEFAULT_TITLE,
        author_names=author_names,
        isbn=_normalize_isbn(record.get('ean_isbn13') or record.get('upc_isbn10')),
        lccn=record.get('lccn') or record.get('LCCN') or None,
        publisher_name=record.get('publisher') or None,
        publication_date=normalize_date(record.get('publish_date')),
        description=record.get('description') or record.get('notes') or None,
        page_count=parse_page_count(record.get('length')),
        **_common_fields(record)
    )


DIALECT_MAPPERS = {
    Dialect.DIALECT_A: map_dialect_a,
    Dialect.DIALECT_B: map_dialect_b,
}


def row_label(record: Dict[str, str], position: int) -> str:
    """Human-readable row name for error messages: the title when present."""
    return record.get('Title') or record.get('title') or f"row {position}"


class RowMapper:
    """Maps the records of one parsed file; the dialect is fixed at construction."""

    def __init__(self, dialect: Dialect):
        self.dialect = dialect
        self._map = DIALECT_MAPPERS.get(dialect)

    def map(self, record: Dict[str, str]) -> NormalizedImportRow:
        """Map one record.

        Raises:
            UnknownDialect: if the file layout was not recognised
        """
        if self._map is None:
            raise UnknownDialect(f"No mapping for dialect {self.dialect.value}")
        return self._map(record)

    def rows(self, records: Iterable[Dict[str, str]]) -> Iterator[MappedRow]:
        """
        Lazily map records in source order.

        Mapping failures are yielded as values so one bad record does not
        end the sequence.
        """
        for position, record in enumerate(records, start=1):
            label = row_label(record, position)
            try:
                mapped = MappedRow(position, label, row=self.map(record))
            except UnknownDialect:
                mapped = MappedRow(position, label)
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.warning(f"RowMapper: could not map {label!r}: {e}")
                mapped = MappedRow(position, label, error=e)
            yield mapped
