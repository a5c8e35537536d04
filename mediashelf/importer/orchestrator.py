"""
Bulk import orchestrator.

Drives one CSV file through parse -> detect dialect -> per-row
(map -> resolve metadata -> fill blanks -> cover -> publisher -> item ->
authors/genres) -> report.

Each row is committed on its own and any failure inside a row is rolled
back and recorded, so a bad row never aborts the batch. The uploaded
file is deleted when the run ends, whatever the outcome.

Usage:
    orchestrator = ImportOrchestrator(get_services().covers)
    outcome = orchestrator.run(current_user, "/uploads/imports/import-1.csv")
"""

import enum
import logging
import os
from dataclasses import dataclass, field, replace
from typing import List, Optional

from mediashelf import db
from mediashelf.importer.dialects import Dialect, detect_dialect, parse_csv
from mediashelf.importer.mappers import DEFAULT_TITLE, MappedRow, NormalizedImportRow, RowMapper
from mediashelf.models import DigitalItemType, PhysicalItemType
from mediashelf.services.catalog import CatalogService
from mediashelf.services.errors import BatchParseFailed, InvalidIdentifierFormat, RowProcessingFailed
from mediashelf.services.metadata import BookMetadata

logger = logging.getLogger(__name__)


class RowStatus(str, enum.Enum):
    DIGITAL = 'digital'
    PHYSICAL = 'physical'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass(frozen=True)
class RowResult:
    """Outcome of one row: imported (digital/physical), skipped or failed."""

    label: str
    status: RowStatus
    failure: Optional[RowProcessingFailed] = None
    item_id: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status in (RowStatus.DIGITAL, RowStatus.PHYSICAL)


@dataclass
class ImportOutcome:
    physical_items: int = 0
    digital_items: int = 0
    skipped: int = 0
    errors: List[RowProcessingFailed] = field(default_factory=list)

    def record(self, result: RowResult) -> None:
        if result.status == RowStatus.DIGITAL:
            self.digital_items += 1
        elif result.status == RowStatus.PHYSICAL:
            self.physical_items += 1
        else:
            self.skipped += 1
            if result.failure is not None:
                self.errors.append(result.failure)

    @property
    def imported(self) -> int:
        return self.physical_items + self.digital_items

    def error_messages(self) -> List[str]:
        return [str(error) for error in self.errors]

    def to_dict(self) -> dict:
        return {
            'importedCounts': {
                'physicalItems': self.physical_items,
                'digitalItems': self.digital_items,
                'skipped': self.skipped,
            },
            'errors': self.error_messages(),
        }


class ImportOrchestrator:
    """Runs import batches for one owner at a time, sequentially, row by row."""

    def __init__(
        self,
        covers,
        catalog=CatalogService,
        max_rows: Optional[int] = None,
        isbn_resolver=None,
        lccn_resolver=None
    ):
        """
        Args:
            covers: CoverService used for best-effort cover acquisition
            catalog: persistence collaborator (CatalogService interface)
            max_rows: optional cap on processed rows; the rest count as skipped
            isbn_resolver, lccn_resolver: metadata resolvers used to fill blank
                row fields; default to the ones the cover service holds
        """
        self.covers = covers
        self.isbn_resolver = isbn_resolver or getattr(covers, 'isbn_resolver', None)
        self.lccn_resolver = lccn_resolver or getattr(covers, 'lccn_resolver', None)
        self.catalog = catalog
        self.max_rows = max_rows

    def run(self, owner, csv_path: str) -> ImportOutcome:
        """
        Import every row of ``csv_path`` into ``owner``'s catalog.

        Args:
            owner: User receiving the items
            csv_path: spooled upload; always removed before returning

        Returns:
            ImportOutcome with counts and per-row errors

        Raises:
            BatchParseFailed: if the file cannot be read as CSV at all
        """
        try:
            try:
                with open(csv_path, 'rb') as f:
                    content = f.read()
            except OSError as e:
                raise BatchParseFailed(f"Could not read uploaded file: {e}")

            fieldnames, records = parse_csv(content)
            dialect = detect_dialect(fieldnames)
            if dialect == Dialect.UNKNOWN:
                logger.warning(f"Import: unknown CSV dialect, columns={fieldnames}; rows will be skipped")
            else:
                logger.info(f"Import: {len(records)} rows detected as {dialect.value}")

            outcome = self.process(owner, RowMapper(dialect), records)
        finally:
            self._discard(csv_path)

        logger.info(
            f"Import: finished for user {owner.id}: {outcome.digital_items} digital, "
            f"{outcome.physical_items} physical, {outcome.skipped} skipped"
        )
        return outcome

    def process(self, owner, mapper: RowMapper, records) -> ImportOutcome:
        outcome = ImportOutcome()
        over_limit = 0

        for mapped in mapper.rows(records):
            if self.max_rows is not None and mapped.position > self.max_rows:
                over_limit += 1
                continue
            outcome.record(self.process_row(owner, mapper.dialect, mapped))

        if over_limit:
            outcome.skipped += over_limit
            outcome.errors.append(RowProcessingFailed(
                f"rows {self.max_rows + 1}-{self.max_rows + over_limit}",
                f"import limited to {self.max_rows} rows; {over_limit} rows were not processed"
            ))
        return outcome

    def process_row(self, owner, dialect: Dialect, mapped: MappedRow) -> RowResult:
        if mapped.error is not None:
            return self._failed(mapped.label, mapped.error)

        if dialect == Dialect.UNKNOWN or mapped.row is None:
            return RowResult(mapped.label, RowStatus.SKIPPED)

        row = mapped.row
        cover_path = None
        try:
            row, cover_path = self._enrich_and_acquire_cover(row)
            item = self._persist(owner, row, cover_path)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            if cover_path:
                self.covers.delete(cover_path)
            return self._failed(mapped.label, e)

        status = RowStatus.DIGITAL if row.is_digital else RowStatus.PHYSICAL
        return RowResult(mapped.label, status, item_id=item.id)

    def _persist(self, owner, row: NormalizedImportRow, cover_path: Optional[str]):
        publisher = None
        if row.publisher_name:
            publisher = self.catalog.find_or_create_publisher(row.publisher_name)

        fields = dict(
            title=row.title,
            subtitle=row.subtitle,
            isbn=row.isbn,
            lccn=row.lccn,
            publisher=publisher,
            publication_date=row.publication_date,
            description=row.description,
            page_count=row.page_count,
            language=row.language,
            rating=row.rating,
            reading_status=row.reading_status.value if row.reading_status else None,
            cover_image=cover_path,
        )

        if row.is_digital:
            item = self.catalog.create_digital_item(
                owner,
                type=DigitalItemType.EBOOK.value,
                format=row.format.value if row.format else None,
                file_path=row.location,
                **fields
            )
        else:
            item = self.catalog.create_physical_item(
                owner,
                type=PhysicalItemType.BOOK.value,
                condition=row.condition.value if row.condition else None,
                location=row.location,
                **fields
            )

        for name in row.author_names:
            self.catalog.associate_author(item, self.catalog.find_or_create_author(name))
        for name in row.tag_names:
            self.catalog.associate_genre(item, self.catalog.find_or_create_genre(name))

        return item

    def _enrich_and_acquire_cover(self, row: NormalizedImportRow):
        """
        Resolve the row's ISBN (then LCCN), fill blank fields from the
        result and store its cover. Lookup and download problems never fail
        the row.

        Returns:
            (row with blanks filled, relative cover path or None)
        """
        metadata = self._resolve(self.isbn_resolver, 'ISBN', row.isbn)
        cover_path = self._store_cover(metadata, row.isbn)

        if not cover_path and row.lccn:
            lccn_metadata = self._resolve(self.lccn_resolver, 'LCCN', row.lccn)
            cover_path = self._store_cover(lccn_metadata, row.lccn)
            metadata = metadata or lccn_metadata

        if metadata is not None:
            row = fill_blanks(row, metadata)
        return row, cover_path

    @staticmethod
    def _resolve(resolver, scheme: str, identifier: Optional[str]) -> Optional[BookMetadata]:
        if not identifier or resolver is None:
            return None
        try:
            return resolver.resolve(identifier)
        except InvalidIdentifierFormat:
            logger.debug(f"Import: skipping metadata lookup for invalid {scheme} {identifier!r}")
        except Exception as e:
            logger.error(f"Import: metadata lookup failed for {scheme} {identifier}: {e}")
        return None

    def _store_cover(self, metadata: Optional[BookMetadata], seed: Optional[str]) -> Optional[str]:
        if metadata is None or not metadata.cover_url:
            return None
        try:
            cover_path = self.covers.fetch_and_store(metadata.cover_url, seed)
        except Exception as e:
            logger.error(f"Import: cover download failed for {seed}: {e}")
            return None
        if cover_path:
            logger.info(f"Import: cover downloaded for {seed}: {cover_path}")
        return cover_path

    @staticmethod
    def _failed(label: str, error: Exception) -> RowResult:
        failure = RowProcessingFailed(label, str(error) or type(error).__name__)
        logger.error(f"Import: {failure}", exc_info=error)
        return RowResult(label, RowStatus.FAILED, failure=failure)

    @staticmethod
    def _discard(csv_path: str) -> None:
        try:
            os.remove(csv_path)
            logger.debug(f"Import: removed uploaded file {csv_path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Import: could not remove uploaded file {csv_path}: {e}")


def fill_blanks(row: NormalizedImportRow, metadata: BookMetadata) -> NormalizedImportRow:
    """Copy resolved metadata into the fields the source row left empty."""
    updates = {}
    if row.title == DEFAULT_TITLE and metadata.title:
        updates['title'] = metadata.title
    if not row.author_names and metadata.authors:
        updates['author_names'] = list(metadata.authors)
    if not row.publisher_name and metadata.publisher:
        updates['publisher_name'] = metadata.publisher
    if not row.publication_date and metadata.published_year:
        updates['publication_date'] = f"{metadata.published_year}-01-01"
    if not row.description and metadata.description:
        updates['description'] = metadata.description
    if row.page_count is None and metadata.page_count:
        updates['page_count'] = metadata.page_count
    if not row.language and metadata.language:
        updates['language'] = metadata.language
    if not row.tag_names and metadata.categories:
        updates['tag_names'] = list(metadata.categories)
    return replace(row, **updates) if updates else row
