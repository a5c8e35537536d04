"""
CSV reading and export-dialect detection.

Two third-party export layouts are recognized from the header row:

- Dialect A: ``Type`` + ``Authors`` columns (Libib style)
- Dialect B: ``item_type`` + ``creators`` + ``ean_isbn13`` columns
  (LibraryThing/CLZ style)

Anything else is ``Dialect.UNKNOWN``; its rows are skipped, not rejected.
"""

import csv
import enum
import io
import logging
from typing import Dict, Iterable, List, Tuple

from mediashelf.services.errors import BatchParseFailed

logger = logging.getLogger(__name__)

DIALECT_A_SIGNATURE = frozenset({'Type', 'Authors'})
DIALECT_B_SIGNATURE = frozenset({'item_type', 'creators', 'ean_isbn13'})


class Dialect(str, enum.Enum):
    UNKNOWN = 'unknown'
    DIALECT_A = 'dialect_a'
    DIALECT_B = 'dialect_b'


def detect_dialect(fieldnames: Iterable[str]) -> Dialect:
    """Classify a header row. Column names are matched exactly after trimming."""
    header = {name.strip() for name in fieldnames or [] if name}
    if DIALECT_A_SIGNATURE <= header:
        return Dialect.DIALECT_A
    if DIALECT_B_SIGNATURE <= header:
        return Dialect.DIALECT_B
    return Dialect.UNKNOWN


def parse_csv(content: bytes) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Parse uploaded CSV bytes into a header and a list of row dicts.

    The file must be UTF-8 (a BOM is allowed) and start with a header row.
    Keys and values are trimmed, columns without a header are dropped and
    rows with no values at all are skipped.

    Args:
        content: raw file bytes

    Returns:
        (fieldnames, records)

    Raises:
        BatchParseFailed: if the file cannot be decoded or has no header or no rows
    """
    try:
        text = content.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise BatchParseFailed(f"File is not valid UTF-8: {e}")

    reader = csv.DictReader(io.StringIO(text))
    try:
        fieldnames = [name.strip() for name in reader.fieldnames or [] if name and name.strip()]
        if not fieldnames:
            raise BatchParseFailed("CSV appears to be missing a header row")

        records = []
        for raw in reader:
            record = {
                key.strip(): (value or '').strip()
                for key, value in raw.items()
                if key is not None
            }
            if any(record.values()):
                records.append(record)
    except csv.Error as e:
        raise BatchParseFailed(f"Malformed CSV at line {reader.line_num}: {e}")

    if not records:
        raise BatchParseFailed("CSV file is empty or invalid")

    logger.debug(f"CSV: parsed {len(records)} rows with columns {fieldnames}")
    return fieldnames, records
