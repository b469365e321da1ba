"""
Category-affinity recommendations for the business directory.

The package provides utilities for:
    * folding saved businesses, reviews and recently viewed categories into
      ranked category affinities,
    * recommending businesses from the strongest categories while excluding
      what the user already saved or reviewed,
    * a featured/top-rated fallback for visitors without any activity.

Data is read through a Supabase client that callers inject, so the engine
can run against any object implementing ``DirectoryDataSource``.
"""

from __future__ import annotations

from .affinity import aggregate_recently_viewed, build_category_affinities
from .config import RecommenderConfig
from .errors import MalformedRowError
from .models import CandidateItem, CategoryAffinity, RecommendationResult, ViewedCategory
from .recommendation import AffinityRecommender

__all__ = [
    "AffinityRecommender",
    "CandidateItem",
    "CategoryAffinity",
    "MalformedRowError",
    "RecommendationResult",
    "RecommenderConfig",
    "ViewedCategory",
    "aggregate_recently_viewed",
    "build_category_affinities",
]
