"""
Database module for the lead importer.

Provides Supabase integration for the hosted lead store.
"""

from .supabase_client import (
    SupabaseClient,
    DatabaseConfig,
    LeadStoreError,
    get_client
)

__all__ = [
    "SupabaseClient",
    "DatabaseConfig",
    "LeadStoreError",
    "get_client"
]
