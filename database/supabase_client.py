"""
Supabase Database Client for the lead importer

The hosted backend owns the authoritative records for:
- Leads (inserted in batches by the CSV importer)
- Reference tables: lead statuses, countries, user roles and profiles
- Lead scores bumped by logged activities

Row-level security lives in Supabase; this client only orchestrates queries.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import create_client, Client

logger = logging.getLogger(__name__)


class LeadStoreError(RuntimeError):
    """
    Raised when a lead store call fails.

    Attributes:
        message: Human-readable error description
        inserted: Rows already committed before the failure (batch inserts)
        payload: Backend error details, if any
    """

    def __init__(
        self,
        message: str,
        inserted: int = 0,
        payload: Optional[Dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.inserted = inserted
        self.payload = payload

    def __str__(self) -> str:
        parts = [self.message]
        if self.inserted:
            parts.append(f"({self.inserted} lead(s) were imported before the failure)")
        return " ".join(parts)


@dataclass
class DatabaseConfig:
    """Supabase connection configuration."""
    url: str
    key: str  # anon/public key for client-side, service key for server-side

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Load config from environment variables."""
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_KEY")

        if not url or not key:
            raise ValueError(
                "Missing Supabase credentials. Set SUPABASE_URL and SUPABASE_KEY environment variables."
            )

        return cls(url=url, key=key)


def _error_payload(error: Exception) -> Optional[Dict]:
    if isinstance(error, APIError):
        return {
            "message": error.message,
            "code": error.code,
            "details": error.details,
            "hint": error.hint,
        }
    return None


class SupabaseClient:
    """
    Supabase client for lead import data operations.

    Every backend failure surfaces as LeadStoreError.
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        """
        Initialize Supabase client.

        Args:
            config: Database configuration. If None, loads from environment.
        """
        if config is None:
            config = DatabaseConfig.from_env()

        self.client: Client = create_client(config.url, config.key)

    # ==========================================
    # REFERENCE TABLES
    # ==========================================

    def list_statuses(self) -> List[Dict]:
        """Lead statuses in ascending sort order."""
        result = (
            self.client.table("lead_statuses")
            .select("id, name, color, sort_order")
            .order("sort_order")
            .execute()
        )
        return result.data or []

    def list_countries(self) -> List[Dict]:
        """Countries ordered by name."""
        result = self.client.table("countries").select("id, name, code").order("name").execute()
        return result.data or []

    def list_owners(self) -> List[Dict]:
        """
        Users holding any role, with their profile names.

        Returns:
            List of {"id": user_id, "full_name": ...} dicts
        """
        roles = self.client.table("user_roles").select("user_id").execute()
        user_ids = list(dict.fromkeys(r["user_id"] for r in (roles.data or [])))
        if not user_ids:
            return []

        profiles = (
            self.client.table("profiles")
            .select("user_id, full_name")
            .in_("user_id", user_ids)
            .execute()
        )
        return [
            {"id": p["user_id"], "full_name": p.get("full_name")}
            for p in (profiles.data or [])
        ]

    def fetch_reference_records(self) -> Dict[str, List[Dict]]:
        """
        Load statuses, countries and owners concurrently.

        All three must succeed before rows can be resolved.

        Returns:
            Dict with "statuses", "countries" and "owners" row lists
        """
        try:
            with ThreadPoolExecutor(max_workers=3) as pool:
                statuses = pool.submit(self.list_statuses)
                countries = pool.submit(self.list_countries)
                owners = pool.submit(self.list_owners)
                records = {
                    "statuses": statuses.result(),
                    "countries": countries.result(),
                    "owners": owners.result(),
                }
        except Exception as e:
            logger.error("Failed to load reference data: %s", e)
            raise LeadStoreError(f"Failed to load reference data: {e}", payload=_error_payload(e)) from e

        logger.info(
            "Loaded reference data: %d statuses, %d countries, %d owners",
            len(records["statuses"]),
            len(records["countries"]),
            len(records["owners"]),
        )
        return records

    # ==========================================
    # LEAD OPERATIONS
    # ==========================================

    def insert_leads(self, leads: List[Dict[str, Any]]) -> List[Dict]:
        """
        Insert one batch of lead records.

        Raises:
            LeadStoreError: If the backend rejects the batch
        """
        try:
            result = self.client.table("leads").insert(leads).execute()
        except Exception as e:
            logger.error("Lead insert of %d row(s) failed: %s", len(leads), e)
            raise LeadStoreError(str(e), payload=_error_payload(e)) from e
        return result.data or []

    def list_leads(self, limit: int = 1000, offset: int = 0) -> List[Dict]:
        """List leads, newest first."""
        try:
            result = (
                self.client.table("leads")
                .select("*")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error("Listing leads failed: %s", e)
            raise LeadStoreError(f"Failed to list leads: {e}", payload=_error_payload(e)) from e
        return result.data or []

    def increment_lead_score(self, lead_id: str, points: int) -> int:
        """
        Add points to a lead's score in one server-side statement.

        Uses the increment_lead_score function from database/sql, which
        clamps the result to [0, 100].

        Returns:
            The new score

        Raises:
            LeadStoreError: If the call fails or the lead does not exist
        """
        try:
            result = self.client.rpc(
                "increment_lead_score", {"p_lead_id": lead_id, "p_points": points}
            ).execute()
        except Exception as e:
            logger.error("Score update for lead %s failed: %s", lead_id, e)
            raise LeadStoreError(f"Failed to update lead score: {e}", payload=_error_payload(e)) from e

        if result.data is None:
            raise LeadStoreError(f"Lead not found: {lead_id}")
        return result.data


# Singleton instance for convenience
_client: Optional[SupabaseClient] = None


def get_client() -> SupabaseClient:
    """Get or create singleton Supabase client."""
    global _client
    if _client is None:
        _client = SupabaseClient()
    return _client
