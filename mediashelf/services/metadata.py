"""Bibliographic record shared by all metadata providers."""

import datetime
import re
from dataclasses import dataclass, field, asdict
from typing import List, Optional


@dataclass(frozen=True)
class BookMetadata:
    title: str
    authors: List[str] = field(default_factory=list)
    publisher: Optional[str] = None
    published_year: Optional[int] = None
    description: Optional[str] = None
    cover_url: Optional[str] = None
    page_count: Optional[int] = None
    language: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    isbn_10: Optional[str] = None
    isbn_13: Optional[str] = None
    source: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def extract_year(value) -> Optional[int]:
    """
    Pull a plausible four-digit publication year out of free text.

    Accepts ints or strings such as '2005', '2005-06-01' or 'June 5, 2005'.
    Years outside 1000..next year are rejected.
    """
    if value is None:
        return None
    match = re.search(r'\b(\d{4})\b', str(value))
    if not match:
        return None
    year = int(match.group(1))
    if 1000 <= year <= datetime.date.today().year + 1:
        return year
    return None


def to_positive_int(value) -> Optional[int]:
    """Page counts and similar: positive integers only, anything else is absent."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None
