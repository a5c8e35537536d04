from mediashelf.services.errors import (
    MediaShelfError,
    InvalidIdentifierFormat,
    ProviderUnavailable,
    CoverAcquisitionFailed,
    UnknownDialect,
    RowProcessingFailed,
    BatchParseFailed,
)
from mediashelf.services.identifiers import ISBNValidator, NormalizedIdentifier, IdentifierScheme
from mediashelf.services.metadata import BookMetadata
from mediashelf.services.metadata_cache import MetadataCache
from mediashelf.services.resolver import MetadataResolver
from mediashelf.services.registry import get_services
