"""
Lead Importer - CSV import with validation and reference resolution.

Designed for vendor/lead sheets exported from spreadsheets or the sample
template (Vendor Name, Country, Website, Contact Mail, Contact Number,
Status, Lead Owner, Notes, ...).

Flow:
    file text -> parse_csv -> map_headers -> parse_row (per row)
    -> preview -> chunked insert of valid rows

Usage:
    from leads import LeadImporter, ReferenceData

    importer = LeadImporter(ReferenceData.from_records(**store.fetch_reference_records()))
    session = importer.import_file("leads.csv")

    print(session.preview())
    result = session.submit(store, current_user_id)
    print(result.summary())
"""

import argparse
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from database import LeadStoreError, get_client
from .csv_parser import CanonicalField, HeaderMapping, map_headers, parse_csv
from .exporter import export_leads
from .references import ReferenceData

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_LEADING_INT = re.compile(r"[+-]?[0-9]+")

DEFAULT_SCORE = 50
DEFAULT_BATCH_SIZE = 50
DEFAULT_PREVIEW_LIMIT = 30
MIN_SCORE = 1
MAX_SCORE = 100

UNKNOWN_COMPANY = "(Unknown)"
COMPANY_REQUIRED = "Company name is required"
INVALID_EMAIL = "Invalid email"
PLACEHOLDER_EMAIL = "Invalid email (placeholder)"

PAYLOAD_FIELDS = (
    "company_name",
    "website",
    "email",
    "phone",
    "contact_name",
    "contact_designation",
    "country_id",
    "status_id",
    "lead_score",
    "notes",
    "owner_id",
)


class FileRejectedError(ValueError):
    """Raised when an uploaded file cannot be used for an import."""
    pass


# =========================================
# Configuration
# =========================================


@dataclass
class ImportConfig:
    """
    Importer tunables.

    Can be initialized from environment variables:
        config = ImportConfig.from_env()
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    preview_limit: int = DEFAULT_PREVIEW_LIMIT
    default_score: int = DEFAULT_SCORE

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch_size must be positive")
        if self.preview_limit < 1:
            raise ValueError("preview_limit must be positive")
        if not MIN_SCORE <= self.default_score <= MAX_SCORE:
            raise ValueError(f"default_score must be between {MIN_SCORE} and {MAX_SCORE}")

    @classmethod
    def from_env(cls) -> "ImportConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            LEAD_IMPORT_BATCH_SIZE: Rows per insert request (default: 50)
            LEAD_IMPORT_PREVIEW_LIMIT: Rows shown in the preview (default: 30)
            LEAD_IMPORT_DEFAULT_SCORE: Score for rows without one (default: 50)
        """
        return cls(
            batch_size=int(os.environ.get("LEAD_IMPORT_BATCH_SIZE", DEFAULT_BATCH_SIZE)),
            preview_limit=int(os.environ.get("LEAD_IMPORT_PREVIEW_LIMIT", DEFAULT_PREVIEW_LIMIT)),
            default_score=int(os.environ.get("LEAD_IMPORT_DEFAULT_SCORE", DEFAULT_SCORE)),
        )


# =========================================
# Rows
# =========================================


@dataclass
class ParsedRow:
    """One CSV data row after validation and reference resolution."""
    company_name: str
    website: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_name: Optional[str] = None
    contact_designation: Optional[str] = None
    country_id: Optional[str] = None
    status_id: Optional[str] = None
    lead_score: int = DEFAULT_SCORE
    notes: Optional[str] = None
    owner_id: Optional[str] = None
    error: Optional[str] = None

    def to_payload(self, default_owner_id: Optional[str] = None) -> Dict:
        """Insert record for the lead store."""
        payload = {name: getattr(self, name) for name in PAYLOAD_FIELDS}
        if payload["owner_id"] is None:
            payload["owner_id"] = default_owner_id
        return payload


@dataclass
class ValidRow:
    row: ParsedRow


@dataclass
class InvalidRow:
    row: ParsedRow
    reason: str


RowResult = Union[ValidRow, InvalidRow]


def parse_score(value: Optional[str], default: int = DEFAULT_SCORE) -> int:
    """Leading base-10 integer clamped to [1, 100]; anything else is the default."""
    if value is None or not value.strip():
        return default
    match = _LEADING_INT.match(value.strip())
    if match is None:
        return default
    return max(MIN_SCORE, min(MAX_SCORE, int(match.group())))


def _compose_notes(followup: Optional[str], call_booked: Optional[str], notes: Optional[str]) -> Optional[str]:
    parts = []
    if followup:
        parts.append(f"Follow-up: {followup}")
    if call_booked:
        parts.append(f"Call: {call_booked}")
    if notes:
        parts.append(notes)
    return "\n".join(parts) if parts else None


def _email_problem(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    if not EMAIL_REGEX.fullmatch(email):
        return INVALID_EMAIL
    if "?" in email:
        return PLACEHOLDER_EMAIL
    return None


def parse_row(
    headers: HeaderMapping,
    raw: Sequence[str],
    references: ReferenceData,
    default_score: int = DEFAULT_SCORE,
) -> RowResult:
    """
    Validate one raw row against the header mapping.

    Never raises: problems are reported as InvalidRow so the preview can
    show every row.
    """

    def get(key: CanonicalField) -> Optional[str]:
        index = headers.index_of(key)
        if index is None or index >= len(raw):
            return None
        value = raw[index].strip()
        return value or None

    company_name = get(CanonicalField.COMPANY_NAME)
    email = get(CanonicalField.EMAIL)
    email_problem = _email_problem(email)

    # First failure wins
    error = None
    if not company_name:
        error = COMPANY_REQUIRED
    elif email_problem:
        error = email_problem

    row = ParsedRow(
        company_name=company_name or UNKNOWN_COMPANY,
        website=get(CanonicalField.WEBSITE),
        email=None if email_problem else email,
        phone=get(CanonicalField.PHONE),
        contact_name=get(CanonicalField.CONTACT_NAME),
        contact_designation=get(CanonicalField.CONTACT_DESIGNATION),
        country_id=references.resolve_country(get(CanonicalField.COUNTRY)),
        status_id=references.resolve_status(get(CanonicalField.STATUS)),
        lead_score=parse_score(get(CanonicalField.LEAD_SCORE), default_score),
        notes=_compose_notes(
            get(CanonicalField.FOLLOWUP_STAGE),
            get(CanonicalField.CALL_BOOKED),
            get(CanonicalField.NOTES),
        ),
        owner_id=references.resolve_owner(get(CanonicalField.LEAD_OWNER)),
        error=error,
    )

    if error:
        return InvalidRow(row=row, reason=error)
    return ValidRow(row=row)


# =========================================
# Submission
# =========================================


@dataclass
class ImportResult:
    """Results from a lead import operation."""
    inserted: int = 0
    skipped: int = 0
    chunks: int = 0

    def summary(self) -> str:
        message = f"{self.inserted} lead(s) imported."
        if self.skipped:
            message += f" {self.skipped} row(s) skipped due to errors."
        return message


def submit_rows(
    store,
    results: Sequence[RowResult],
    default_owner_id: Optional[str] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> ImportResult:
    """
    Insert valid rows into the lead store in sequential chunks.

    Stops at the first failing chunk. Earlier chunks stay committed and the
    raised LeadStoreError reports how many rows made it in.

    Args:
        store: Object exposing insert_leads(list_of_dicts)
        results: Parsed rows; InvalidRow entries are skipped
        default_owner_id: Owner for rows whose own owner did not resolve
        batch_size: Rows per insert request

    Raises:
        LeadStoreError: If any chunk fails
    """
    result = ImportResult(skipped=sum(1 for r in results if isinstance(r, InvalidRow)))
    payloads = [
        r.row.to_payload(default_owner_id)
        for r in results
        if isinstance(r, ValidRow)
    ]

    for start in range(0, len(payloads), batch_size):
        chunk = payloads[start:start + batch_size]
        logger.debug("Inserting chunk %d (%d rows)", result.chunks + 1, len(chunk))

        try:
            store.insert_leads(chunk)
        except LeadStoreError as e:
            logger.error("Import halted after %d lead(s): %s", result.inserted, e.message)
            raise LeadStoreError(e.message, inserted=result.inserted, payload=e.payload) from e

        result.inserted += len(chunk)
        result.chunks += 1

    logger.info("Import complete: %d inserted, %d skipped", result.inserted, result.skipped)
    return result


# =========================================
# Session
# =========================================


@dataclass
class ImportSession:
    """
    Working set for one upload-preview-confirm cycle.

    Owned by the caller; drop it when the dialog closes or a new file is chosen.
    """
    file_name: str
    headers: HeaderMapping
    results: List[RowResult]
    references: ReferenceData
    config: ImportConfig = field(default_factory=ImportConfig)

    @property
    def rows(self) -> List[ParsedRow]:
        return [r.row for r in self.results]

    @property
    def valid_rows(self) -> List[ParsedRow]:
        return [r.row for r in self.results if isinstance(r, ValidRow)]

    @property
    def invalid_rows(self) -> List[ParsedRow]:
        return [r.row for r in self.results if isinstance(r, InvalidRow)]

    @property
    def ignored_columns(self) -> List[str]:
        return list(self.headers.unrecognized)

    def summary(self) -> str:
        return (
            f"{self.file_name}: {len(self.results)} row(s), "
            f"{len(self.valid_rows)} valid, {len(self.invalid_rows)} with errors"
        )

    def preview(self) -> pd.DataFrame:
        """First rows as shown to the user before confirming."""
        records = []
        for row in self.rows[:self.config.preview_limit]:
            records.append(
                {
                    "Company": row.company_name,
                    "Country": self.references.country_label(row.country_id),
                    "Status": self.references.status_label(row.status_id),
                    "Owner": self.references.owner_label(row.owner_id),
                    "Email": row.email or "—",
                    "Score": row.lead_score,
                    "Result": row.error or "OK",
                }
            )
        return pd.DataFrame(
            records,
            columns=["Company", "Country", "Status", "Owner", "Email", "Score", "Result"],
        )

    def preview_footer(self) -> Optional[str]:
        total = len(self.results)
        if total <= self.config.preview_limit:
            return None
        return (
            f"Showing first {self.config.preview_limit} rows. "
            f"All {total} rows will be processed on import."
        )

    def payloads(self, default_owner_id: Optional[str] = None) -> List[Dict]:
        return [row.to_payload(default_owner_id) for row in self.valid_rows]

    def submit(self, store, default_owner_id: Optional[str] = None) -> ImportResult:
        """
        Persist valid rows.

        Raises:
            FileRejectedError: If there are no valid rows to import
            LeadStoreError: If a chunk fails
        """
        if not self.valid_rows:
            raise FileRejectedError(
                "No valid rows. Fix errors or add at least one row with a company name."
            )
        return submit_rows(
            store,
            self.results,
            default_owner_id=default_owner_id,
            batch_size=self.config.batch_size,
        )


# =========================================
# Importer
# =========================================


class LeadImporter:
    """
    Turns uploaded CSV files into import sessions.

    Features:
    - Accepts comma or tab separated text, quoted fields, any line ending
    - Maps header aliases (Vendor Name, Contact Mail, ...) to lead fields
    - Resolves country, status and owner text against reference tables
    - Flags invalid rows without aborting the batch
    """

    CSV_SUFFIXES = (".csv",)
    CSV_MIME_MARKERS = ("csv", "spreadsheet")

    def __init__(self, references: ReferenceData, config: Optional[ImportConfig] = None):
        self.references = references
        self.config = config or ImportConfig()

    @classmethod
    def from_store(cls, store, config: Optional[ImportConfig] = None) -> "LeadImporter":
        """Create an importer with reference tables loaded from the lead store."""
        return cls(ReferenceData.from_records(**store.fetch_reference_records()), config=config)

    def check_file(self, file_name: str, content_type: Optional[str] = None) -> None:
        """
        Reject files that don't look like CSV.

        Raises:
            FileRejectedError: If neither name nor MIME type indicates CSV
        """
        content_type = (content_type or "").lower()
        if file_name.lower().endswith(self.CSV_SUFFIXES):
            return
        if any(marker in content_type for marker in self.CSV_MIME_MARKERS):
            return
        logger.warning("Rejected non-CSV file %s (%s)", file_name, content_type or "no type")
        raise FileRejectedError(f"Invalid file: {file_name}. Please choose a CSV file.")

    def parse_text(self, text: str, file_name: str = "upload.csv") -> ImportSession:
        """
        Parse file contents into a session.

        Raises:
            FileRejectedError: If the file holds no data rows
        """
        raw_rows = parse_csv(text)
        if len(raw_rows) < 2:
            raise FileRejectedError(f"Empty file: no rows found in {file_name}")

        headers = map_headers(raw_rows[0])
        results = [
            parse_row(headers, raw, self.references, self.config.default_score)
            for raw in raw_rows[1:]
        ]

        session = ImportSession(
            file_name=file_name,
            headers=headers,
            results=results,
            references=self.references,
            config=self.config,
        )
        logger.info("Parsed %s", session.summary())
        return session

    def import_file(
        self,
        filepath: Union[str, Path],
        content_type: Optional[str] = None,
        encoding: str = "utf-8-sig",  # Handles BOM from Excel exports
    ) -> ImportSession:
        """
        Read and parse a CSV file from disk.

        Raises:
            FileRejectedError: Missing file, non-CSV file or no data rows
        """
        filepath = Path(filepath)
        self.check_file(filepath.name, content_type)

        if not filepath.exists():
            raise FileRejectedError(f"CSV file not found: {filepath}")

        text = filepath.read_text(encoding=encoding)
        return self.parse_text(text, file_name=filepath.name)


# =========================================
# CLI
# =========================================


def main(argv: Optional[Sequence[str]] = None, store=None) -> int:
    """Import or export leads from the command line."""
    parser = argparse.ArgumentParser(description="Import leads from CSV into the lead store")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import a CSV file")
    import_parser.add_argument("filepath", help="Path to CSV file")
    import_parser.add_argument("--dry-run", action="store_true", help="Only preview, don't insert")
    import_parser.add_argument(
        "--owner-id",
        default=os.environ.get("LEAD_IMPORT_OWNER_ID"),
        help="Owner for rows without a resolvable Lead Owner (or set LEAD_IMPORT_OWNER_ID)",
    )

    export_parser = subparsers.add_parser("export", help="Export stored leads to CSV")
    export_parser.add_argument("filepath", help="Destination CSV path")
    export_parser.add_argument("--limit", type=int, default=1000, help="Maximum leads to export")

    for sub in (import_parser, export_parser):
        sub.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    if store is None:
        try:
            store = get_client()
        except ValueError as e:
            print(f"Error: {e}")
            return 1

    try:
        if args.command == "export":
            path = export_leads(store, args.filepath, limit=args.limit)
            print(f"Exported leads to {path}")
            return 0

        importer = LeadImporter.from_store(store, config=ImportConfig.from_env())
        session = importer.import_file(args.filepath)

        print(session.summary())
        print(session.preview().to_string(index=False))
        footer = session.preview_footer()
        if footer:
            print(footer)
        if session.ignored_columns:
            print(f"Ignored columns: {', '.join(session.ignored_columns)}")

        if args.dry_run:
            return 0

        result = session.submit(store, default_owner_id=args.owner_id)
        print(f"Import complete: {result.summary()}")

    except FileRejectedError as e:
        print(f"Error: {e}")
        return 1
    except LeadStoreError as e:
        print(f"{args.command.capitalize()} failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
