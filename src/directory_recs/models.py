"""
Typed shapes consumed and produced by the recommender.

Raw rows from the data source are validated here before the engine sees
them, so a response with a missing id or a mistyped join fails with a
MalformedRowError instead of leaking ``None`` fields into the output.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import PLACEHOLDER_IMAGE_URL
from .errors import MalformedRowError


class SignalSource(str, Enum):
    SAVED = "saved"
    REVIEWED = "reviewed"
    VIEWED = "viewed"


@dataclass(frozen=True)
class Signal:
    category_id: str
    category_name: str
    source: SignalSource
    weight: int


@dataclass(frozen=True)
class CategoryAffinity:
    category_id: str
    category_name: str
    total_weight: int
    dominant_source: SignalSource


@dataclass(frozen=True)
class ActivityRecord:
    """A saved or reviewed business with its (optional) joined category."""

    item_id: str
    category_id: Optional[str] = None
    category_name: Optional[str] = None


@dataclass(frozen=True)
class CategoryRef:
    id: str
    name: str


class ViewedCategory(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category_name: str = Field(..., alias="categoryName", min_length=1)
    count: int = Field(1, ge=0)


class CandidateItem(BaseModel):
    id: str
    type: str = "business"
    name: str
    slug: str
    description: Optional[str] = None
    image_url: str
    rating: Optional[float] = None
    review_count: int = 0
    category_name: Optional[str] = None
    is_featured: bool = False
    is_verified: bool = False
    location: Optional[str] = None


class RecommendationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CandidateItem] = Field(default_factory=list)
    based_on: Optional[str] = Field(None, alias="basedOn")
    has_activity: bool = Field(False, alias="hasActivity")


# ---------------------------------------------------------------------------
# Raw row models (Supabase nested-join responses)
# ---------------------------------------------------------------------------


class _CategoryJoin(BaseModel):
    id: str
    name: str


class _BusinessCategoryJoin(BaseModel):
    category_id: Optional[str] = None
    categories: Optional[_CategoryJoin] = None


class _ActivityRow(BaseModel):
    business_id: str
    businesses: Optional[_BusinessCategoryJoin] = None


class _NameJoin(BaseModel):
    name: Optional[str] = None


class _PhotoRow(BaseModel):
    image_url: Optional[str] = None
    is_primary: Optional[bool] = None


class _BusinessRow(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    is_featured: Optional[bool] = None
    is_verified: Optional[bool] = None
    categories: Optional[_NameJoin] = None
    regions: Optional[_NameJoin] = None
    business_photos: Optional[List[_PhotoRow]] = None


def _row_id(row: Any, *keys: str) -> Optional[Any]:
    if isinstance(row, dict):
        for key in keys:
            if row.get(key) is not None:
                return row[key]
    return None


def _ensure_rows(rows: Optional[Iterable[Any]], table: str) -> List[Any]:
    if rows is None:
        return []
    if isinstance(rows, (str, bytes, dict)):
        raise MalformedRowError(table, f"expected a list of rows, got {type(rows).__name__}")
    return list(rows)


def _validation_reason(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def parse_activity_rows(rows: Optional[Iterable[Any]], table: str) -> List[ActivityRecord]:
    records: List[ActivityRecord] = []
    for row in _ensure_rows(rows, table):
        try:
            parsed = _ActivityRow.model_validate(row)
        except ValidationError as exc:
            raise MalformedRowError(table, _validation_reason(exc), _row_id(row, "business_id")) from exc
        joined = parsed.businesses.categories if parsed.businesses else None
        records.append(
            ActivityRecord(
                item_id=parsed.business_id,
                category_id=joined.id if joined else None,
                category_name=joined.name if joined else None,
            )
        )
    return records


def parse_category_rows(rows: Optional[Iterable[Any]]) -> List[CategoryRef]:
    categories: List[CategoryRef] = []
    for row in _ensure_rows(rows, "categories"):
        try:
            parsed = _CategoryJoin.model_validate(row)
        except ValidationError as exc:
            raise MalformedRowError("categories", _validation_reason(exc), _row_id(row, "id")) from exc
        categories.append(CategoryRef(id=parsed.id, name=parsed.name))
    return categories


def resolve_image_url(
    photos: Optional[List[_PhotoRow]], placeholder: str = PLACEHOLDER_IMAGE_URL
) -> str:
    """Primary photo, else the first photo, else the placeholder."""
    if not photos:
        return placeholder
    primary = next((photo for photo in photos if photo.is_primary), None)
    if primary is not None and primary.image_url:
        return primary.image_url
    return photos[0].image_url or placeholder


def parse_business_rows(
    rows: Optional[Iterable[Any]], placeholder: str = PLACEHOLDER_IMAGE_URL
) -> List[CandidateItem]:
    items: List[CandidateItem] = []
    for row in _ensure_rows(rows, "businesses"):
        try:
            parsed = _BusinessRow.model_validate(row)
        except ValidationError as exc:
            raise MalformedRowError("businesses", _validation_reason(exc), _row_id(row, "id")) from exc
        items.append(
            CandidateItem(
                id=parsed.id,
                name=parsed.name,
                slug=parsed.slug,
                description=parsed.description,
                image_url=resolve_image_url(parsed.business_photos, placeholder),
                rating=parsed.rating,
                review_count=parsed.review_count or 0,
                category_name=parsed.categories.name if parsed.categories else None,
                is_featured=bool(parsed.is_featured),
                is_verified=bool(parsed.is_verified),
                location=parsed.regions.name if parsed.regions else None,
            )
        )
    return items
