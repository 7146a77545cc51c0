"""
Lead CSV export.

Writes stored leads with the same headers the importer recognizes, so an
exported file can be edited and imported again. Reference ids are rendered
as names (country name, status name, owner full name).
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from .references import ReferenceData

logger = logging.getLogger(__name__)

# Lead field -> exported header
EXPORT_COLUMNS = {
    "company_name": "Vendor Name",
    "country_id": "Country",
    "website": "Website",
    "email": "Contact Mail",
    "phone": "Contact Number",
    "contact_name": "Contact Name",
    "contact_designation": "Designation",
    "status_id": "Status",
    "lead_score": "Lead Score",
    "owner_id": "Lead Owner",
    "notes": "Notes",
}


def leads_to_dataframe(leads: Sequence[Dict], references: ReferenceData) -> pd.DataFrame:
    """Flatten stored lead records into export rows."""
    countries = {c.id: c.name for c in references.countries}
    statuses = {s.id: s.name for s in references.statuses}
    owners = {o.id: o.full_name for o in references.owners}

    def name_of(lookup: Dict[str, Optional[str]], ref_id: Optional[str]) -> str:
        if not ref_id:
            return ""
        return lookup.get(ref_id) or ""

    records: List[Dict] = []
    for lead in leads:
        records.append(
            {
                "Vendor Name": lead.get("company_name") or "",
                "Country": name_of(countries, lead.get("country_id")),
                "Website": lead.get("website") or "",
                "Contact Mail": lead.get("email") or "",
                "Contact Number": lead.get("phone") or "",
                "Contact Name": lead.get("contact_name") or "",
                "Designation": lead.get("contact_designation") or "",
                "Status": name_of(statuses, lead.get("status_id")),
                "Lead Score": lead.get("lead_score") if lead.get("lead_score") is not None else "",
                "Lead Owner": name_of(owners, lead.get("owner_id")),
                "Notes": lead.get("notes") or "",
            }
        )

    return pd.DataFrame(records, columns=list(EXPORT_COLUMNS.values()))


def export_leads_csv(
    leads: Sequence[Dict],
    path: Union[str, Path],
    references: ReferenceData,
) -> Path:
    """Write lead records to a CSV file."""
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)

    frame = leads_to_dataframe(leads, references)
    frame.to_csv(destination, index=False, encoding="utf-8")

    logger.info("Exported %d lead(s) to %s", len(frame), destination)
    return destination


def export_leads(store, path: Union[str, Path], limit: int = 1000) -> Path:
    """Fetch leads and reference tables from the store and export them."""
    references = ReferenceData.from_records(**store.fetch_reference_records())
    leads = store.list_leads(limit=limit)
    return export_leads_csv(leads, path, references)
