from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv


DEFAULT_SIGNAL_WEIGHTS: Dict[str, int] = {
    "saved": 3,
    "reviewed": 2,
    "viewed": 1,
}

PLACEHOLDER_IMAGE_URL = (
    "https://images.unsplash.com/photo-1556742049-0cfed4f6a45d?w=600&q=80"
)


@dataclass
class RecommenderConfig:
    """Parameters used by the affinity recommender."""

    top_categories: int = 3
    # Initial headroom for exclusion filtering; doubled while results come up short
    overfetch_factor: int = 2
    default_limit: int = 6
    signal_weights: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_SIGNAL_WEIGHTS)
    )
    placeholder_image_url: str = PLACEHOLDER_IMAGE_URL


@dataclass
class ApiLimits:
    """Bounds applied to untrusted request bodies."""

    default_limit: int = 6
    max_limit: int = 20
    max_viewed_categories: int = 10


@dataclass
class SupabaseSettings:
    url: str
    key: str

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "SupabaseSettings":
        load_dotenv(dotenv_path)
        url = os.getenv("SUPABASE_URL")
        # Prefer the service role key for server-side reads
        key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")

        if not url or not key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY) "
                "must be set in environment"
            )
        return cls(url=url, key=key)
