"""
Lead management module for the vendor/lead tracker.

Handles importing, validating and resolving leads from CSV files, exporting
stored leads, and activity-based lead scoring.
"""

from .csv_parser import (
    CanonicalField,
    HeaderMapping,
    map_headers,
    normalize_header,
    parse_csv
)
from .references import (
    Country,
    LeadStatus,
    Owner,
    ReferenceData
)
from .importer import (
    LeadImporter,
    ImportConfig,
    ImportSession,
    ImportResult,
    FileRejectedError,
    InvalidRow,
    ParsedRow,
    ValidRow,
    parse_row,
    parse_score,
    submit_rows
)

__all__ = [
    "CanonicalField",
    "HeaderMapping",
    "map_headers",
    "normalize_header",
    "parse_csv",
    "Country",
    "LeadStatus",
    "Owner",
    "ReferenceData",
    "LeadImporter",
    "ImportConfig",
    "ImportSession",
    "ImportResult",
    "FileRejectedError",
    "InvalidRow",
    "ParsedRow",
    "ValidRow",
    "parse_row",
    "parse_score",
    "submit_rows"
]
