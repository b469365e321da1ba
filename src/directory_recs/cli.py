from __future__ import annotations

import argparse
import json
import logging
from typing import List, Optional, Sequence

from .config import RecommenderConfig
from .models import ViewedCategory
from .recommendation import AffinityRecommender
from .supabase_service import create_directory_service


def parse_viewed(values: Sequence[str]) -> List[ViewedCategory]:
    """Parse ``Name=count`` pairs; a bare name counts as one view."""
    viewed = []
    for value in values:
        name, sep, count = value.rpartition("=")
        if not sep:
            name, count = value, "1"
        try:
            viewed.append(ViewedCategory(category_name=name.strip(), count=int(count)))
        except ValueError as exc:
            raise argparse.ArgumentTypeError(f"Invalid --viewed value {value!r}: {exc}") from exc
    return viewed


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print directory recommendations for a user as JSON."
    )
    parser.add_argument("--user-id", type=str, default=None, help="User whose saves and reviews are used.")
    parser.add_argument(
        "--viewed",
        action="append",
        default=[],
        help="Recently viewed category as Name=count (repeatable).",
    )
    parser.add_argument("--limit", type=int, default=6, help="How many items to return.")
    parser.add_argument("--top-categories", type=int, default=3, help="Categories used for retrieval.")
    parser.add_argument("--overfetch-factor", type=int, default=2, help="Candidate headroom multiplier.")
    parser.add_argument("--popular", action="store_true", help="Only print the featured fallback list.")
    parser.add_argument("--affinities", action="store_true", help="Print the ranked category affinities.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None):
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    config = RecommenderConfig(
        top_categories=args.top_categories,
        overfetch_factor=args.overfetch_factor,
    )
    recommender = AffinityRecommender(create_directory_service(), config)
    viewed = parse_viewed(args.viewed)

    if args.popular:
        items = recommender.get_fallback_recommendations(args.limit)
        payload = [item.model_dump() for item in items]
    elif args.affinities:
        affinities = recommender.get_category_affinities(args.user_id, viewed)
        payload = [
            {
                "category_id": a.category_id,
                "category_name": a.category_name,
                "total_weight": a.total_weight,
                "dominant_source": a.dominant_source.value,
            }
            for a in affinities
        ]
    else:
        result = recommender.get_recommendations(args.user_id, viewed, args.limit)
        payload = result.model_dump(by_alias=True)

    print(json.dumps(payload, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
