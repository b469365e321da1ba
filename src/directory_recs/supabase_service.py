from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from supabase import Client, create_client

from .config import SupabaseSettings

LOGGER = logging.getLogger(__name__)

ACTIVITY_SELECT = """
    business_id,
    businesses!inner (
        category_id,
        categories!inner (id, name)
    )
"""

# PostgREST caps unranged selects (1000 rows by default)
CATEGORY_PAGE_SIZE = 1000

BUSINESS_SELECT = """
    id, name, slug, description, rating, review_count,
    is_featured, is_verified,
    categories:category_id (name),
    regions:region_id (name),
    business_photos (image_url, is_primary)
"""


class DirectoryDataSource(Protocol):
    """Read-only queries the recommender needs from the directory store."""

    def fetch_saved_items(self, user_id: str) -> List[Dict[str, Any]]:
        ...

    def fetch_reviewed_items(self, user_id: str) -> List[Dict[str, Any]]:
        ...

    def resolve_category_names(self, names: Sequence[str]) -> List[Dict[str, Any]]:
        ...

    def fetch_items_in_categories(
        self, category_ids: Sequence[str], limit: int
    ) -> List[Dict[str, Any]]:
        ...

    def fetch_featured_items(self, limit: int) -> List[Dict[str, Any]]:
        ...


class SupabaseDirectoryService:
    """Supabase-backed implementation of DirectoryDataSource.

    Rows are returned as the client delivers them; validation happens in
    ``models``. Query errors raised by the client are not caught here.
    """

    def __init__(self, client: Client, page_size: int = CATEGORY_PAGE_SIZE):
        self.client = client
        self.page_size = page_size

    # ==================== USER ACTIVITY ====================

    def fetch_saved_items(self, user_id: str) -> List[Dict[str, Any]]:
        """Saved businesses of a user, joined to their category"""
        response = (self.client.table("saved_businesses")
                   .select(ACTIVITY_SELECT)
                   .eq("user_id", user_id)
                   .execute())
        return response.data or []

    def fetch_reviewed_items(self, user_id: str) -> List[Dict[str, Any]]:
        """Reviewed businesses of a user, joined to their category"""
        response = (self.client.table("reviews")
                   .select(ACTIVITY_SELECT)
                   .eq("user_id", user_id)
                   .execute())
        return response.data or []

    # ==================== CATEGORIES ====================

    def resolve_category_names(self, names: Sequence[str]) -> List[Dict[str, Any]]:
        """Categories whose name matches one of ``names``, ignoring case"""
        wanted = {name.lower() for name in names if name}
        if not wanted:
            return []
        matches: List[Dict[str, Any]] = []
        start = 0
        while True:
            response = (self.client.table("categories")
                       .select("id, name")
                       .order("id")
                       .range(start, start + self.page_size - 1)
                       .execute())
            rows = response.data or []
            matches.extend(
                row for row in rows
                if isinstance(row.get("name"), str) and row["name"].lower() in wanted
            )
            if len(rows) < self.page_size:
                return matches
            start += self.page_size

    # ==================== BUSINESSES ====================

    def fetch_items_in_categories(
        self, category_ids: Sequence[str], limit: int
    ) -> List[Dict[str, Any]]:
        """Businesses in the given categories, best rated first"""
        if not category_ids:
            return []
        response = (self.client.table("businesses")
                   .select(BUSINESS_SELECT)
                   .in_("category_id", list(category_ids))
                   .order("rating", desc=True, nullsfirst=False)
                   .limit(limit)
                   .execute())
        return response.data or []

    def fetch_featured_items(self, limit: int) -> List[Dict[str, Any]]:
        """Featured businesses first, then best rated"""
        response = (self.client.table("businesses")
                   .select(BUSINESS_SELECT)
                   .order("is_featured", desc=True)
                   .order("rating", desc=True, nullsfirst=False)
                   .limit(limit)
                   .execute())
        return response.data or []


def create_directory_service(
    settings: Optional[SupabaseSettings] = None,
) -> SupabaseDirectoryService:
    """Build a service from explicit settings, or from the environment."""
    if settings is None:
        settings = SupabaseSettings.from_env()
    client: Client = create_client(settings.url, settings.key)
    LOGGER.info("Connected Supabase client for %s", settings.url)
    return SupabaseDirectoryService(client)
