"""
Personalised "For You" recommendations for the business directory.

Saved businesses, reviews and recently viewed categories are folded into a
ranked list of category affinities. Businesses from the strongest categories
are then fetched, stripped of anything the user already saved or reviewed,
and trimmed to the requested size. Without any signal the caller gets an
empty result flagged ``has_activity=False`` and can use the featured
fallback instead.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, List, Mapping, Optional, Set, Tuple, Union

from .affinity import build_category_affinities
from .config import RecommenderConfig
from .models import (
    ActivityRecord,
    CandidateItem,
    CategoryAffinity,
    CategoryRef,
    RecommendationResult,
    ViewedCategory,
    parse_activity_rows,
    parse_business_rows,
    parse_category_rows,
)
from .supabase_service import DirectoryDataSource

LOGGER = logging.getLogger(__name__)

ViewedInput = Union[ViewedCategory, Mapping[str, Any], Tuple[str, int]]


def coerce_viewed(entries: Optional[Iterable[ViewedInput]]) -> List[ViewedCategory]:
    """Accept models, ``{"categoryName", "count"}`` dicts or ``(name, count)`` pairs."""
    viewed: List[ViewedCategory] = []
    for entry in entries or ():
        if isinstance(entry, ViewedCategory):
            viewed.append(entry)
        elif isinstance(entry, Mapping):
            viewed.append(ViewedCategory.model_validate(entry))
        else:
            name, count = entry
            viewed.append(ViewedCategory(category_name=name, count=count))
    return viewed


class AffinityRecommender:
    def __init__(
        self,
        data_source: DirectoryDataSource,
        config: Optional[RecommenderConfig] = None,
    ):
        self.data_source = data_source
        self.config = config or RecommenderConfig()

    def _check_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.config.default_limit
        if limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit}")
        return limit

    def _fetch_history(self, user_id: str) -> Tuple[List[ActivityRecord], List[ActivityRecord]]:
        # Saved and reviewed lookups do not depend on each other
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="user-history") as pool:
            saved_future = pool.submit(self.data_source.fetch_saved_items, user_id)
            reviewed_future = pool.submit(self.data_source.fetch_reviewed_items, user_id)
            saved_rows = saved_future.result()
            reviewed_rows = reviewed_future.result()

        return (
            parse_activity_rows(saved_rows, "saved_businesses"),
            parse_activity_rows(reviewed_rows, "reviews"),
        )

    def _resolve_viewed(self, viewed: List[ViewedCategory]) -> List[CategoryRef]:
        if not viewed:
            return []
        names = list(dict.fromkeys(entry.category_name for entry in viewed))
        return parse_category_rows(self.data_source.resolve_category_names(names))

    def _collect(
        self,
        user_id: Optional[str],
        recently_viewed_categories: Optional[Iterable[ViewedInput]],
    ) -> Tuple[List[CategoryAffinity], Set[str]]:
        saved: List[ActivityRecord] = []
        reviewed: List[ActivityRecord] = []
        if user_id:
            saved, reviewed = self._fetch_history(user_id)

        viewed = coerce_viewed(recently_viewed_categories)
        resolved = self._resolve_viewed(viewed)

        affinities = build_category_affinities(
            saved, reviewed, viewed, resolved, self.config.signal_weights
        )
        excluded = {record.item_id for record in saved} | {record.item_id for record in reviewed}
        return affinities, excluded

    def get_category_affinities(
        self,
        user_id: Optional[str] = None,
        recently_viewed_categories: Optional[Iterable[ViewedInput]] = None,
    ) -> List[CategoryAffinity]:
        """Ranked category affinities for a user, strongest first."""
        affinities, _ = self._collect(user_id, recently_viewed_categories)
        return affinities

    def get_recommendations(
        self,
        user_id: Optional[str] = None,
        recently_viewed_categories: Optional[Iterable[ViewedInput]] = None,
        limit: Optional[int] = None,
    ) -> RecommendationResult:
        """
        Recommend businesses from the user's strongest categories.

        Args:
            user_id: Owner of the saved/review history; None for anonymous visitors
            recently_viewed_categories: Category names with view counts
            limit: Maximum number of items to return

        Returns:
            RecommendationResult. ``based_on`` names the top category and
            ``has_activity`` is True whenever any category signal existed,
            even if no business survived exclusion.
        """
        limit = self._check_limit(limit)
        affinities, excluded = self._collect(user_id, recently_viewed_categories)

        if not affinities:
            return RecommendationResult(items=[], based_on=None, has_activity=False)

        top_category = affinities[0]
        category_ids = [a.category_id for a in affinities[: self.config.top_categories]]

        fetch_size = limit * self.config.overfetch_factor
        while True:
            rows = self.data_source.fetch_items_in_categories(category_ids, fetch_size)
            candidates = parse_business_rows(rows, self.config.placeholder_image_url)
            items = [item for item in candidates if item.id not in excluded][:limit]
            # A short page means the candidate pool is exhausted
            if len(items) >= limit or len(rows) < fetch_size:
                break
            fetch_size *= 2

        LOGGER.debug(
            "Recommending %d of %d candidates from %s (%d excluded ids)",
            len(items),
            len(candidates),
            category_ids,
            len(excluded),
        )
        return RecommendationResult(
            items=items,
            based_on=top_category.category_name,
            has_activity=True,
        )

    def get_fallback_recommendations(self, limit: Optional[int] = None) -> List[CandidateItem]:
        """Featured businesses first, then the best rated ones."""
        limit = self._check_limit(limit)
        rows = self.data_source.fetch_featured_items(limit)
        return parse_business_rows(rows, self.config.placeholder_image_url)[:limit]
