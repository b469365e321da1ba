"""
FastAPI service for personalised business recommendations.
Exposes the affinity recommender and its featured fallback over REST.
"""

from __future__ import annotations

import logging
import math
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .config import ApiLimits, RecommenderConfig
from .models import CandidateItem, ViewedCategory
from .recommendation import AffinityRecommender
from .supabase_service import DirectoryDataSource, create_directory_service

LOGGER = logging.getLogger(__name__)

API_LIMITS = ApiLimits()

PUBLIC_CACHE_CONTROL = "public, max-age=60, stale-while-revalidate=300"
PRIVATE_CACHE_CONTROL = "private, max-age=30"

_DATA_SOURCE_LOCK = threading.Lock()


# Pydantic models for request/response
class RecommendationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId", description="Signed-in user, if any")
    recently_viewed_categories: Optional[List[ViewedCategory]] = Field(
        None,
        alias="recentlyViewedCategories",
        description="Category names with view counts from the browsing history",
    )
    limit: Optional[Any] = Field(None, description="Requested number of items (clamped)")


class RecommendationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CandidateItem]
    based_on: Optional[str] = Field(None, alias="basedOn")
    has_activity: bool = Field(..., alias="hasActivity")
    is_fallback: bool = Field(..., alias="isFallback")


class AffinityOut(BaseModel):
    category_id: str
    category_name: str
    total_weight: int
    dominant_source: str


class AffinityProfileResponse(BaseModel):
    user_id: str
    affinities: List[AffinityOut]
    total_categories: int


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    data_source_ready: bool


def clamp_limit(raw: Any, limits: ApiLimits = API_LIMITS) -> int:
    """Coerce an untrusted limit to a number in [1, max_limit]; junk or 0 means default."""
    try:
        value = float(raw) if raw is not None else 0.0
    except (TypeError, ValueError):
        value = 0.0
    if math.isnan(value) or value == 0:
        value = float(limits.default_limit)
    return int(min(max(1.0, value), float(limits.max_limit)))


# Initialize FastAPI app
app = FastAPI(
    title="Directory Recommendations API",
    description="Category-affinity recommendations for the business directory",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_data_source(request: Request) -> DirectoryDataSource:
    """Shared data source, connected on first use."""
    source = getattr(request.app.state, "data_source", None)
    if source is None:
        with _DATA_SOURCE_LOCK:
            source = getattr(request.app.state, "data_source", None)
            if source is None:
                source = create_directory_service()
                request.app.state.data_source = source
    return source


def get_recommender(
    data_source: DirectoryDataSource = Depends(get_data_source),
) -> AffinityRecommender:
    return AffinityRecommender(data_source, RecommenderConfig())


@app.get("/", response_model=Dict[str, str])
def root():
    """Root endpoint."""
    return {
        "message": "Directory Recommendations API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse)
def health_check(request: Request):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        data_source_ready=getattr(request.app.state, "data_source", None) is not None,
    )


@app.post("/recommendations", response_model=RecommendationResponse)
def post_recommendations(
    body: RecommendationRequest,
    response: Response,
    recommender: AffinityRecommender = Depends(get_recommender),
):
    """
    Personalised recommendations, or featured businesses when the user has
    no usable activity.

    The featured fallback is public and cacheable; personalised answers are
    private.
    """
    limit = clamp_limit(body.limit)
    viewed = (body.recently_viewed_categories or [])[: API_LIMITS.max_viewed_categories]

    try:
        result = recommender.get_recommendations(
            user_id=body.user_id,
            recently_viewed_categories=viewed,
            limit=limit,
        )
        if not result.has_activity or not result.items:
            fallback = recommender.get_fallback_recommendations(limit)
            response.headers["Cache-Control"] = PUBLIC_CACHE_CONTROL
            return RecommendationResponse(
                items=fallback,
                based_on=None,
                has_activity=False,
                is_fallback=True,
            )
    except Exception:
        LOGGER.exception("Error getting recommendations")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to get recommendations"},
        )

    response.headers["Cache-Control"] = PRIVATE_CACHE_CONTROL
    return RecommendationResponse(
        items=result.items,
        based_on=result.based_on,
        has_activity=result.has_activity,
        is_fallback=False,
    )


@app.get("/recommendations/popular", response_model=List[CandidateItem])
def get_popular(
    response: Response,
    limit: int = Query(API_LIMITS.default_limit, ge=1, le=API_LIMITS.max_limit),
    recommender: AffinityRecommender = Depends(get_recommender),
):
    """
    Featured-then-top-rated businesses, independent of any user.
    """
    items = recommender.get_fallback_recommendations(limit)
    response.headers["Cache-Control"] = PUBLIC_CACHE_CONTROL
    return items


@app.get("/users/{user_id}/affinities", response_model=AffinityProfileResponse)
def get_user_affinities(
    user_id: str,
    top_n: int = Query(10, ge=1, le=50),
    recommender: AffinityRecommender = Depends(get_recommender),
):
    """
    Get a user's category affinities (strongest first).
    """
    affinities = recommender.get_category_affinities(user_id=user_id)

    if not affinities:
        raise HTTPException(status_code=404, detail=f"No activity found for user '{user_id}'")

    return AffinityProfileResponse(
        user_id=user_id,
        affinities=[
            AffinityOut(
                category_id=a.category_id,
                category_name=a.category_name,
                total_weight=a.total_weight,
                dominant_source=a.dominant_source.value,
            )
            for a in affinities[:top_n]
        ],
        total_categories=len(affinities),
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
