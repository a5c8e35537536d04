"""
Error taxonomy for metadata lookup and bulk import.

Only InvalidIdentifierFormat and BatchParseFailed ever reach a caller.
The remaining types are raised inside a component and absorbed at its
boundary: provider failures trigger fallback, cover failures leave the
cover empty, row failures land in the import report.
"""


class MediaShelfError(Exception):
    """Base class for all application errors."""


class InvalidIdentifierFormat(MediaShelfError, ValueError):
    """Identifier failed its shape or checksum validation."""

    def __init__(self, scheme: str, value: str):
        self.scheme = scheme
        self.value = value
        super().__init__(f"Invalid {scheme} format: {value!r}")


class ProviderUnavailable(MediaShelfError):
    """An external metadata provider timed out or returned an unusable response."""

    def __init__(self, provider: str, reason: str):
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} unavailable: {reason}")


class CoverAcquisitionFailed(MediaShelfError):
    """A cover image could not be downloaded or stored."""


class UnknownDialect(MediaShelfError):
    """The CSV header matches none of the supported export layouts."""


class RowProcessingFailed(MediaShelfError):
    """A single import row could not be mapped or persisted."""

    def __init__(self, row_label: str, message: str):
        self.row_label = row_label
        self.message = message
        super().__init__(f'Row "{row_label}": {message}')


class BatchParseFailed(MediaShelfError):
    """The uploaded file could not be read as CSV at all."""
