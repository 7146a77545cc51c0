"""
Reference tables used to resolve free-text CSV values to foreign keys.

Countries, lead statuses and assignable owners are fetched once per import
session and matched by exact, case-insensitive comparison only.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

UNRESOLVED_LABEL = "?"
EMPTY_LABEL = "—"


@dataclass(frozen=True)
class Country:
    id: str
    name: str
    code: str


@dataclass(frozen=True)
class LeadStatus:
    id: str
    name: str
    color: str = "#6B7280"
    sort_order: int = 0


@dataclass(frozen=True)
class Owner:
    """A directory user holding an assignable role."""
    id: str
    full_name: Optional[str] = None


@dataclass
class ReferenceData:
    """Lookup sets for a single import session."""
    countries: List[Country] = field(default_factory=list)
    statuses: List[LeadStatus] = field(default_factory=list)
    owners: List[Owner] = field(default_factory=list)

    def __post_init__(self):
        # Default status is the first one in ascending sort order
        self.statuses = sorted(self.statuses, key=lambda s: s.sort_order)

    @classmethod
    def from_records(
        cls,
        countries: List[Dict],
        statuses: List[Dict],
        owners: List[Dict],
    ) -> "ReferenceData":
        """Build from plain rows as returned by the lead store."""
        return cls(
            countries=[
                Country(id=c["id"], name=c.get("name") or "", code=c.get("code") or "")
                for c in countries
            ],
            statuses=[
                LeadStatus(
                    id=s["id"],
                    name=s.get("name") or "",
                    color=s.get("color") or "#6B7280",
                    sort_order=s.get("sort_order") or 0,
                )
                for s in statuses
            ],
            owners=[Owner(id=o["id"], full_name=o.get("full_name")) for o in owners],
        )

    @property
    def default_status_id(self) -> Optional[str]:
        return self.statuses[0].id if self.statuses else None

    # =========================================
    # Resolution
    # =========================================

    def resolve_country(self, value: Optional[str]) -> Optional[str]:
        """Match a country by full name first, then by code."""
        if not value or not value.strip():
            return None
        needle = value.strip().lower()

        for country in self.countries:
            if country.name.lower() == needle:
                return country.id
        for country in self.countries:
            if country.code.lower() == needle:
                return country.id
        return None

    def resolve_status(self, value: Optional[str]) -> Optional[str]:
        """Match a status by name, falling back to the default status."""
        if not value or not value.strip():
            return self.default_status_id
        needle = value.strip().lower()

        for status in self.statuses:
            if status.name.lower() == needle:
                return status.id
        return self.default_status_id

    def resolve_owner(self, value: Optional[str]) -> Optional[str]:
        """Match an owner by exact full name. No fuzzy matching."""
        if not value or not value.strip():
            return None
        needle = value.strip().lower()

        for owner in self.owners:
            if owner.full_name and owner.full_name.strip().lower() == needle:
                return owner.id
        return None

    # =========================================
    # Display labels
    # =========================================

    def country_label(self, country_id: Optional[str]) -> str:
        return self._label(country_id, {c.id: c.name for c in self.countries})

    def status_label(self, status_id: Optional[str]) -> str:
        return self._label(status_id, {s.id: s.name for s in self.statuses})

    def owner_label(self, owner_id: Optional[str]) -> str:
        return self._label(owner_id, {o.id: o.full_name for o in self.owners})

    @staticmethod
    def _label(ref_id: Optional[str], names: Dict[str, Optional[str]]) -> str:
        if ref_id is None:
            return EMPTY_LABEL
        return names.get(ref_id) or UNRESOLVED_LABEL
