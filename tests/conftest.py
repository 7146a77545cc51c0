from typing import Dict, List, Optional

import pytest

from database import LeadStoreError
from leads import ReferenceData
from leads.scoring import clamp_lead_score


class FakeLeadStore:
    """In-memory stand-in for the Supabase lead store."""

    def __init__(
        self,
        references: Optional[Dict[str, List[Dict]]] = None,
        fail_on_call: Optional[int] = None,
    ) -> None:
        self.references = references or {"statuses": [], "countries": [], "owners": []}
        self.fail_on_call = fail_on_call
        self.insert_calls: List[List[Dict]] = []
        self.committed: List[Dict] = []
        self.leads: List[Dict] = []
        self.scores: Dict[str, Optional[int]] = {}
        self.list_error: Optional[Exception] = None

    def fetch_reference_records(self) -> Dict[str, List[Dict]]:
        return self.references

    def insert_leads(self, leads: List[Dict]) -> List[Dict]:
        self.insert_calls.append(list(leads))
        if self.fail_on_call == len(self.insert_calls):
            raise LeadStoreError("insert rejected", payload={"code": "23514"})
        self.committed.extend(leads)
        return leads

    def list_leads(self, limit: int = 1000, offset: int = 0) -> List[Dict]:
        if self.list_error:
            raise self.list_error
        return self.leads[offset:offset + limit]

    def increment_lead_score(self, lead_id: str, points: int) -> int:
        if lead_id not in self.scores:
            raise LeadStoreError(f"Lead not found: {lead_id}")
        self.scores[lead_id] = clamp_lead_score((self.scores[lead_id] or 0) + points)
        return self.scores[lead_id]


@pytest.fixture()
def reference_records():
    return {
        "countries": [
            {"id": "c1", "name": "India", "code": "IN"},
            {"id": "c2", "name": "Germany", "code": "DE"},
            {"id": "c3", "name": "United States", "code": "US"},
        ],
        "statuses": [
            {"id": "s2", "name": "Contacted", "color": "#3B82F6", "sort_order": 1},
            {"id": "s1", "name": "New", "color": "#6B7280", "sort_order": 0},
        ],
        "owners": [
            {"id": "u1", "full_name": "Ravi Kumar"},
            {"id": "u2", "full_name": "Anna Schmidt"},
            {"id": "u3", "full_name": None},
        ],
    }


@pytest.fixture()
def references(reference_records):
    return ReferenceData.from_records(**reference_records)


@pytest.fixture()
def store(reference_records):
    return FakeLeadStore(references=reference_records)


@pytest.fixture()
def make_store(reference_records):
    def _make(references=None, fail_on_call=None):
        return FakeLeadStore(references=references or reference_records, fail_on_call=fail_on_call)

    return _make
