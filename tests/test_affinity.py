from __future__ import annotations

from directory_recs.affinity import (
    aggregate_recently_viewed,
    aggregate_signals,
    build_category_affinities,
    build_signals,
)
from directory_recs.models import (
    ActivityRecord,
    CategoryRef,
    Signal,
    SignalSource,
    ViewedCategory,
)

RESTAURANTS = CategoryRef("cat-rest", "Restaurants")
HARDWARE = CategoryRef("cat-hard", "Hardware")
SPAS = CategoryRef("cat-spa", "Spas")


def _record(item_id, category):
    return ActivityRecord(item_id, category.id, category.name)


def _weights(affinities):
    return {a.category_name: a.total_weight for a in affinities}


def test_saved_and_reviewed_weights():
    affinities = build_category_affinities(
        saved=[_record("r1", RESTAURANTS)],
        reviewed=[_record("h1", HARDWARE), _record("h2", HARDWARE)],
    )
    assert _weights(affinities) == {"Hardware": 4, "Restaurants": 3}
    assert affinities[0].category_name == "Hardware"


def test_weights_accumulate_across_sources():
    affinities = build_category_affinities(
        saved=[_record("h1", HARDWARE)],
        reviewed=[_record("h2", HARDWARE), _record("h3", HARDWARE)],
        viewed=[ViewedCategory(category_name="Hardware", count=4)],
        resolved_categories=[HARDWARE],
    )
    assert len(affinities) == 1
    assert affinities[0].total_weight == 3 + 2 + 2 + 4


def test_dominant_source_is_first_writer():
    affinities = build_category_affinities(
        saved=[],
        reviewed=[_record("h1", HARDWARE)],
        viewed=[ViewedCategory(category_name="Hardware", count=10)],
        resolved_categories=[HARDWARE],
    )
    assert affinities[0].total_weight == 12
    assert affinities[0].dominant_source is SignalSource.REVIEWED


def test_viewed_only_category_is_attributed_to_views():
    affinities = build_category_affinities(
        saved=[],
        reviewed=[],
        viewed=[ViewedCategory(category_name="Restaurants", count=5)],
        resolved_categories=[RESTAURANTS],
    )
    assert _weights(affinities) == {"Restaurants": 5}
    assert affinities[0].dominant_source is SignalSource.VIEWED


def test_ties_keep_first_seen_order():
    # Saved is processed before viewed, so Restaurants was seen first
    affinities = build_category_affinities(
        saved=[_record("r1", RESTAURANTS)],
        reviewed=[],
        viewed=[ViewedCategory(category_name="Hardware", count=3)],
        resolved_categories=[HARDWARE],
    )
    assert [a.category_name for a in affinities] == ["Restaurants", "Hardware"]


def test_ties_between_viewed_categories_follow_input_order():
    affinities = build_category_affinities(
        saved=[],
        reviewed=[],
        viewed=[
            ViewedCategory(category_name="Spas", count=2),
            ViewedCategory(category_name="Hardware", count=2),
        ],
        resolved_categories=[HARDWARE, SPAS],
    )
    assert [a.category_name for a in affinities] == ["Spas", "Hardware"]


def test_viewed_names_match_case_insensitively_and_sum():
    affinities = build_category_affinities(
        saved=[],
        reviewed=[],
        viewed=[
            ViewedCategory(category_name="restaurants", count=2),
            ViewedCategory(category_name="RESTAURANTS", count=1),
        ],
        resolved_categories=[RESTAURANTS],
    )
    assert len(affinities) == 1
    assert affinities[0].category_name == "Restaurants"
    assert affinities[0].total_weight == 3


def test_unresolved_viewed_names_are_dropped():
    affinities = build_category_affinities(
        saved=[],
        reviewed=[],
        viewed=[
            ViewedCategory(category_name="Bakeries", count=7),
            ViewedCategory(category_name="Spas", count=1),
        ],
        resolved_categories=[SPAS],
    )
    assert _weights(affinities) == {"Spas": 1}


def test_activity_without_category_adds_no_signal():
    signals = build_signals(
        saved=[ActivityRecord("orphan")],
        reviewed=[_record("h1", HARDWARE)],
    )
    assert signals == [Signal("cat-hard", "Hardware", SignalSource.REVIEWED, 2)]


def test_custom_weights():
    affinities = build_category_affinities(
        saved=[_record("r1", RESTAURANTS)],
        reviewed=[_record("h1", HARDWARE)],
        weights={"saved": 1, "reviewed": 5, "viewed": 1},
    )
    assert _weights(affinities) == {"Hardware": 5, "Restaurants": 1}


def test_no_signals_gives_no_affinities():
    assert aggregate_signals([]) == []
    assert build_category_affinities(saved=[], reviewed=[]) == []


def test_sorted_descending_by_weight():
    affinities = build_category_affinities(
        saved=[_record("s1", SPAS)],
        reviewed=[],
        viewed=[
            ViewedCategory(category_name="Hardware", count=1),
            ViewedCategory(category_name="Restaurants", count=9),
        ],
        resolved_categories=[HARDWARE, RESTAURANTS],
    )
    weights = [a.total_weight for a in affinities]
    assert weights == sorted(weights, reverse=True)
    assert [a.category_name for a in affinities] == ["Restaurants", "Spas", "Hardware"]


def test_aggregate_recently_viewed_counts_business_categories():
    history = [
        {"type": "business", "category": "Restaurants"},
        {"type": "event", "category": "Music"},
        {"type": "business", "category": "Hardware"},
        {"type": "business", "category": "Restaurants"},
        {"type": "business"},
        {"type": "rental", "category": "Restaurants"},
    ]
    viewed = aggregate_recently_viewed(history)
    assert [(v.category_name, v.count) for v in viewed] == [
        ("Restaurants", 2),
        ("Hardware", 1),
    ]
