from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pytest


def activity_row(business_id: str, category_id: Optional[str] = None, category_name: Optional[str] = None) -> Dict[str, Any]:
    categories = {"id": category_id, "name": category_name} if category_id else None
    return {
        "business_id": business_id,
        "businesses": {"category_id": category_id, "categories": categories},
    }


def business_row(
    business_id: str,
    category_id: str,
    category_name: str,
    rating: Optional[float] = None,
    is_featured: bool = False,
    photos: Optional[List[Dict[str, Any]]] = None,
    region: Optional[str] = "Old Town",
) -> Dict[str, Any]:
    return {
        "id": business_id,
        "name": f"Business {business_id}",
        "slug": f"business-{business_id}",
        "description": None,
        "rating": rating,
        "review_count": 3,
        "is_featured": is_featured,
        "is_verified": True,
        "category_id": category_id,
        "categories": {"name": category_name},
        "regions": {"name": region} if region else None,
        "business_photos": photos if photos is not None else [],
    }


def _rating_key(row: Dict[str, Any]):
    rating = row.get("rating")
    return (rating is None, -(rating or 0.0))


class FakeDirectoryDataSource:
    """In-memory stand-in for the Supabase service, recording each query."""

    def __init__(
        self,
        saved: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        reviewed: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        categories: Optional[List[Dict[str, Any]]] = None,
        businesses: Optional[List[Dict[str, Any]]] = None,
    ):
        self.saved = saved or {}
        self.reviewed = reviewed or {}
        self.categories = categories or []
        self.businesses = businesses or []
        self.calls: List[tuple] = []

    def fetch_saved_items(self, user_id: str):
        self.calls.append(("saved", user_id))
        return list(self.saved.get(user_id, []))

    def fetch_reviewed_items(self, user_id: str):
        self.calls.append(("reviewed", user_id))
        return list(self.reviewed.get(user_id, []))

    def resolve_category_names(self, names: Sequence[str]):
        self.calls.append(("resolve", list(names)))
        wanted = {name.lower() for name in names}
        return [row for row in self.categories if row["name"].lower() in wanted]

    def fetch_items_in_categories(self, category_ids: Sequence[str], limit: int):
        self.calls.append(("in_categories", list(category_ids), limit))
        rows = [row for row in self.businesses if row["category_id"] in category_ids]
        return sorted(rows, key=_rating_key)[:limit]

    def fetch_featured_items(self, limit: int):
        self.calls.append(("featured", limit))
        rows = sorted(self.businesses, key=_rating_key)
        rows = sorted(rows, key=lambda row: not row["is_featured"])
        return rows[:limit]

    def calls_named(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]


CATEGORIES = [
    {"id": "cat-rest", "name": "Restaurants"},
    {"id": "cat-hard", "name": "Hardware"},
    {"id": "cat-spa", "name": "Spas"},
    {"id": "cat-auto", "name": "Auto Repair"},
]


def _directory_businesses() -> List[Dict[str, Any]]:
    return [
        business_row("r1", "cat-rest", "Restaurants", 4.9),
        business_row("r2", "cat-rest", "Restaurants", 4.5),
        business_row("r3", "cat-rest", "Restaurants", 4.0),
        business_row("r4", "cat-rest", "Restaurants", None),
        business_row("r5", "cat-rest", "Restaurants", 3.0),
        business_row("h1", "cat-hard", "Hardware", 4.8),
        business_row("h2", "cat-hard", "Hardware", 4.1),
        business_row("s1", "cat-spa", "Spas", 3.5, is_featured=True),
        business_row("a1", "cat-auto", "Auto Repair", None, is_featured=True),
    ]


@pytest.fixture
def directory() -> FakeDirectoryDataSource:
    """Directory where user-a saved one restaurant and reviewed both hardware stores."""
    return FakeDirectoryDataSource(
        saved={
            "user-a": [activity_row("r1", "cat-rest", "Restaurants")],
            "user-c": [],
        },
        reviewed={
            "user-a": [
                activity_row("h1", "cat-hard", "Hardware"),
                activity_row("h2", "cat-hard", "Hardware"),
            ],
            "user-c": [
                activity_row("h1", "cat-hard", "Hardware"),
                activity_row("h2", "cat-hard", "Hardware"),
            ],
        },
        categories=list(CATEGORIES),
        businesses=_directory_businesses(),
    )
