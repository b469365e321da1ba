from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from .config import DEFAULT_SIGNAL_WEIGHTS
from .models import (
    ActivityRecord,
    CategoryAffinity,
    CategoryRef,
    Signal,
    SignalSource,
    ViewedCategory,
)

LOGGER = logging.getLogger(__name__)

AFFINITY_COLUMNS = ["category_id", "category_name", "source", "weight"]


def _activity_signals(
    records: Iterable[ActivityRecord], source: SignalSource, weight: int
) -> List[Signal]:
    signals = []
    for record in records:
        # Activity without a joined category still excludes, but says nothing
        if record.category_id is None or record.category_name is None:
            continue
        signals.append(Signal(record.category_id, record.category_name, source, weight))
    return signals


def _viewed_signals(
    viewed: Iterable[ViewedCategory],
    resolved_categories: Iterable[CategoryRef],
    weight: int,
) -> List[Signal]:
    lookup: Dict[str, CategoryRef] = {}
    for category in resolved_categories:
        lookup.setdefault(category.name.lower(), category)

    signals = []
    for entry in viewed:
        category = lookup.get(entry.category_name.lower())
        if category is None:
            LOGGER.debug("Dropping unresolved viewed category %r", entry.category_name)
            continue
        signals.append(
            Signal(category.id, category.name, SignalSource.VIEWED, weight * entry.count)
        )
    return signals


def build_signals(
    saved: Sequence[ActivityRecord],
    reviewed: Sequence[ActivityRecord],
    viewed: Sequence[ViewedCategory] = (),
    resolved_categories: Sequence[CategoryRef] = (),
    weights: Optional[Mapping[str, int]] = None,
) -> List[Signal]:
    """Signals in processing order: saved, then reviewed, then viewed."""
    weights = weights or DEFAULT_SIGNAL_WEIGHTS
    return (
        _activity_signals(saved, SignalSource.SAVED, weights["saved"])
        + _activity_signals(reviewed, SignalSource.REVIEWED, weights["reviewed"])
        + _viewed_signals(viewed, resolved_categories, weights["viewed"])
    )


def aggregate_signals(signals: Sequence[Signal]) -> List[CategoryAffinity]:
    """
    Fold signals into one affinity per category.

    Weights add up per category. The source of the first signal seen for a
    category is kept as its dominant source, and categories tied on weight
    keep the order in which they were first seen.
    """
    if not signals:
        return []

    frame = pd.DataFrame(
        [(s.category_id, s.category_name, s.source.value, s.weight) for s in signals],
        columns=AFFINITY_COLUMNS,
    )
    agg = (
        frame.groupby("category_id", sort=False)
        .agg(
            category_name=("category_name", "first"),
            total_weight=("weight", "sum"),
            dominant_source=("source", "first"),
        )
        .reset_index()
    )
    agg = agg.sort_values(by="total_weight", ascending=False, kind="mergesort")

    return [
        CategoryAffinity(
            category_id=str(row.category_id),
            category_name=str(row.category_name),
            total_weight=int(row.total_weight),
            dominant_source=SignalSource(row.dominant_source),
        )
        for row in agg.itertuples(index=False)
    ]


def build_category_affinities(
    saved: Sequence[ActivityRecord],
    reviewed: Sequence[ActivityRecord],
    viewed: Sequence[ViewedCategory] = (),
    resolved_categories: Sequence[CategoryRef] = (),
    weights: Optional[Mapping[str, int]] = None,
) -> List[CategoryAffinity]:
    signals = build_signals(saved, reviewed, viewed, resolved_categories, weights)
    return aggregate_signals(signals)


def aggregate_recently_viewed(history: Iterable[Mapping[str, Any]]) -> List[ViewedCategory]:
    """
    Count a raw recently-viewed history per business category.

    Entries that are not businesses, or carry no category, are ignored.
    Categories keep the order in which they first appear.
    """
    counts: Dict[str, int] = {}
    for entry in history:
        if entry.get("type") != "business" or not entry.get("category"):
            continue
        category = str(entry["category"])
        counts[category] = counts.get(category, 0) + 1
    return [ViewedCategory(category_name=name, count=count) for name, count in counts.items()]
