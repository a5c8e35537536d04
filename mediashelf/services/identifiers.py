"""
Identifier validation utilities.

ISBN-10 / ISBN-13 checksum validation and LCCN normalization. Every other
component goes through these helpers instead of re-implementing them.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from mediashelf.services.errors import InvalidIdentifierFormat


class IdentifierScheme(str, Enum):
    ISBN10 = 'ISBN10'
    ISBN13 = 'ISBN13'
    LCCN = 'LCCN'


@dataclass(frozen=True)
class NormalizedIdentifier:
    """A validated identifier value tagged with its scheme."""

    value: str
    scheme: IdentifierScheme

    def __str__(self):
        return self.value


class ISBNValidator:
    """Validator for ISBN-10 and ISBN-13 formats."""

    @staticmethod
    def normalize(isbn: Optional[str]) -> str:
        """
        Normalize ISBN by removing hyphens, whitespace, and converting to uppercase.

        Uppercasing keeps a trailing 'x' check digit comparable to 'X'.

        Args:
            isbn: ISBN string with or without formatting

        Returns:
            Normalized ISBN string
        """
        if not isbn:
            return ""
        return re.sub(r'[\s-]', '', isbn).upper()

    @staticmethod
    def validate_isbn_10(isbn: str) -> bool:
        """
        Validate ISBN-10 using the weighted-sum checksum (weights 10..1, mod 11).

        Args:
            isbn: 10-character normalized ISBN string

        Returns:
            True if valid ISBN-10, False otherwise
        """
        if not isbn or len(isbn) != 10:
            return False

        if not isbn[:9].isdigit() or not (isbn[9].isdigit() or isbn[9] == 'X'):
            return False

        total = sum((10 - i) * int(digit) for i, digit in enumerate(isbn[:9]))
        total += 10 if isbn[9] == 'X' else int(isbn[9])

        return total % 11 == 0

    @staticmethod
    def validate_isbn_13(isbn: str) -> bool:
        """
        Validate ISBN-13 using the alternating 1/3 weighted-sum checksum (mod 10).

        Args:
            isbn: 13-digit normalized ISBN string

        Returns:
            True if valid ISBN-13, False otherwise
        """
        if not isbn or len(isbn) != 13 or not isbn.isdigit():
            return False

        total = sum(int(digit) * (1 if i % 2 == 0 else 3)
                    for i, digit in enumerate(isbn[:12]))
        check_digit = (10 - (total % 10)) % 10

        return int(isbn[12]) == check_digit

    @staticmethod
    def validate(normalized: str) -> bool:
        """
        Check an already-normalized ISBN (either ISBN-10 or ISBN-13).

        Args:
            normalized: output of ISBNValidator.normalize

        Returns:
            True if valid, False otherwise
        """
        if len(normalized) == 10:
            return ISBNValidator.validate_isbn_10(normalized)
        elif len(normalized) == 13:
            return ISBNValidator.validate_isbn_13(normalized)
        return False

    @staticmethod
    def is_valid(isbn: Optional[str]) -> bool:
        """Normalize and validate raw ISBN input."""
        return ISBNValidator.validate(ISBNValidator.normalize(isbn))

    @staticmethod
    def validate_and_classify(raw: Optional[str]) -> NormalizedIdentifier:
        """
        Normalize, validate and tag raw ISBN input.

        Args:
            raw: ISBN as typed or exported

        Returns:
            NormalizedIdentifier with scheme ISBN10 or ISBN13

        Raises:
            InvalidIdentifierFormat: if the checksum or length is wrong
        """
        normalized = ISBNValidator.normalize(raw)
        if not ISBNValidator.validate(normalized):
            raise InvalidIdentifierFormat('ISBN', raw or '')

        scheme = IdentifierScheme.ISBN10 if len(normalized) == 10 else IdentifierScheme.ISBN13
        return NormalizedIdentifier(normalized, scheme)

    @staticmethod
    def to_isbn_13(isbn: str) -> Optional[str]:
        """
        Convert a valid ISBN-10 to its 978-prefixed ISBN-13 form.

        ISBN-13 input is returned normalized; invalid input returns None.
        """
        normalized = ISBNValidator.normalize(isbn)
        if not ISBNValidator.validate(normalized):
            return None
        if len(normalized) == 13:
            return normalized

        isbn_13 = "978" + normalized[:-1]
        total = sum(int(digit) * (1 if i % 2 == 0 else 3)
                    for i, digit in enumerate(isbn_13))
        return isbn_13 + str((10 - (total % 10)) % 10)


def normalize_lccn(lccn: Optional[str]) -> str:
    """
    Normalize a Library of Congress Control Number.

    LCCNs carry no checksum, so normalization (strip spaces and hyphens,
    lowercase) is the only processing; any non-empty result is accepted.
    """
    if not lccn:
        return ""
    return re.sub(r'[\s-]', '', lccn).lower()


def classify_lccn(raw: Optional[str]) -> Optional[NormalizedIdentifier]:
    """Return a tagged LCCN, or None when nothing is left after normalization."""
    normalized = normalize_lccn(raw)
    if not normalized:
        return None
    return NormalizedIdentifier(normalized, IdentifierScheme.LCCN)
