"""
CSV tokenizer and header normalization for lead imports.

Works on the full text of an uploaded file (spreadsheet exports, hand-edited
sheets, copy/paste from Google Sheets):

- Comma and tab both separate fields
- Double-quoted fields may contain separators and newlines ("" escapes a quote)
- \\n, \\r\\n and bare \\r all end a row
- Rows with no non-empty cells are dropped

Usage:
    from leads.csv_parser import parse_csv, map_headers

    rows = parse_csv(text)
    headers = map_headers(rows[0])
    headers.index_of(CanonicalField.EMAIL)
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class CanonicalField(str, Enum):
    """Lead attributes the importer recognizes in a header row."""
    COMPANY_NAME = "company_name"
    COUNTRY = "country"
    WEBSITE = "website"
    EMAIL = "email"
    PHONE = "phone"
    CONTACT_NAME = "contact_name"
    CONTACT_DESIGNATION = "contact_designation"
    STATUS = "status"
    LEAD_SCORE = "lead_score"
    NOTES = "notes"
    FOLLOWUP_STAGE = "followup_stage"
    CALL_BOOKED = "call_booked"
    LEAD_OWNER = "lead_owner"


# Header text (trimmed, lowercased, whitespace collapsed) -> canonical field
HEADER_ALIASES: Dict[str, CanonicalField] = {
    # Company
    "company_name": CanonicalField.COMPANY_NAME,
    "company": CanonicalField.COMPANY_NAME,
    "vendor name": CanonicalField.COMPANY_NAME,
    "vendorname": CanonicalField.COMPANY_NAME,
    "name": CanonicalField.COMPANY_NAME,

    # Country
    "country": CanonicalField.COUNTRY,
    "country name": CanonicalField.COUNTRY,

    # Website
    "website": CanonicalField.WEBSITE,
    "url": CanonicalField.WEBSITE,

    # Email
    "email": CanonicalField.EMAIL,
    "contact mail": CanonicalField.EMAIL,
    "contactmail": CanonicalField.EMAIL,
    "contact email": CanonicalField.EMAIL,

    # Phone
    "phone": CanonicalField.PHONE,
    "contact number": CanonicalField.PHONE,
    "contactnumber": CanonicalField.PHONE,
    "contact phone": CanonicalField.PHONE,

    # Contact person
    "contact_name": CanonicalField.CONTACT_NAME,
    "contact name": CanonicalField.CONTACT_NAME,
    "contactname": CanonicalField.CONTACT_NAME,
    "contact_designation": CanonicalField.CONTACT_DESIGNATION,
    "contact designation": CanonicalField.CONTACT_DESIGNATION,
    "designation": CanonicalField.CONTACT_DESIGNATION,

    # Pipeline
    "status": CanonicalField.STATUS,
    "lead status": CanonicalField.STATUS,
    "lead_score": CanonicalField.LEAD_SCORE,
    "score": CanonicalField.LEAD_SCORE,
    "lead score": CanonicalField.LEAD_SCORE,

    # Notes and follow-up columns folded into notes
    "notes": CanonicalField.NOTES,
    "note": CanonicalField.NOTES,
    "followup stage": CanonicalField.FOLLOWUP_STAGE,
    "followup_stage": CanonicalField.FOLLOWUP_STAGE,
    "follow-up stage": CanonicalField.FOLLOWUP_STAGE,
    "call booked": CanonicalField.CALL_BOOKED,
    "call_booked": CanonicalField.CALL_BOOKED,

    # Ownership
    "lead_owner": CanonicalField.LEAD_OWNER,
    "lead owner": CanonicalField.LEAD_OWNER,
    "owner": CanonicalField.LEAD_OWNER,
    "assigned to": CanonicalField.LEAD_OWNER,
}

_SEPARATORS = (",", "\t")


def parse_csv(text: str) -> List[List[str]]:
    """
    Split raw file text into rows of trimmed cells.

    Never raises: an unterminated quote swallows the rest of the input into
    the current cell instead of failing the parse.
    """
    rows: List[List[str]] = []
    row: List[str] = []
    cell: List[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        next_char = text[i + 1] if i + 1 < length else ""

        if in_quotes:
            if char == '"':
                if next_char == '"':
                    cell.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                cell.append(char)
            i += 1
            continue

        if char == '"':
            in_quotes = True
        elif char in _SEPARATORS:
            row.append("".join(cell).strip())
            cell = []
        elif char in ("\n", "\r"):
            if char == "\r" and next_char == "\n":
                i += 1
            row.append("".join(cell).strip())
            cell = []
            if any(row):
                rows.append(row)
            row = []
        else:
            cell.append(char)
        i += 1

    # Flush the last row when the file has no trailing newline
    if cell or row:
        row.append("".join(cell).strip())
        if any(row):
            rows.append(row)

    return rows


def normalize_header(header: str) -> str:
    """Map a raw header cell to its canonical field name (or a snake_case fallback)."""
    key = _WHITESPACE.sub(" ", header.strip().lower())
    canonical = HEADER_ALIASES.get(key)
    if canonical is not None:
        return canonical.value
    return _WHITESPACE.sub("_", header.strip().lower())


@dataclass
class HeaderMapping:
    """Result of normalizing a header row."""
    raw: List[str]
    normalized: List[str]
    unrecognized: List[str] = field(default_factory=list)

    def index_of(self, key: CanonicalField) -> Optional[int]:
        """Index of the first column mapped to ``key``; later duplicates are ignored."""
        try:
            return self.normalized.index(key.value)
        except ValueError:
            return None

    @property
    def recognized(self) -> List[CanonicalField]:
        seen: List[CanonicalField] = []
        for name in self.normalized:
            try:
                canonical = CanonicalField(name)
            except ValueError:
                continue
            if canonical not in seen:
                seen.append(canonical)
        return seen


def map_headers(header_row: Sequence[str]) -> HeaderMapping:
    """Normalize a header row, keeping unmatched columns in an explicit bucket."""
    normalized = [normalize_header(h) for h in header_row]
    known = {f.value for f in CanonicalField}
    unrecognized = [raw for raw, name in zip(header_row, normalized) if name not in known]

    if unrecognized:
        logger.debug("Ignoring unrecognized columns: %s", ", ".join(unrecognized))

    return HeaderMapping(raw=list(header_row), normalized=normalized, unrecognized=unrecognized)
