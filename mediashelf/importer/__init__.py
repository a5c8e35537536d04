from mediashelf.importer.dialects import Dialect, detect_dialect, parse_csv
from mediashelf.importer.mappers import NormalizedImportRow, RowMapper
from mediashelf.importer.orchestrator import ImportOrchestrator, ImportOutcome, RowResult
