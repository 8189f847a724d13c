"""Pydantic schemas for API requests and responses."""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum

class PosterMatchStatus(str, Enum):
    """Poster lookup outcomes returned to clients."""
    MATCHED = "matched"
    NO_MATCH = "no_match"

class PosterListResponse(BaseModel):
    """Every poster path in the current snapshot."""
    posters: List[str] = Field(..., description="Poster paths in listing order")
    count: int = Field(..., description="Number of posters")
    version: int = Field(..., description="Snapshot version")

class PosterReloadResponse(BaseModel):
    """Response for a forced poster reload."""
    success: bool = Field(..., description="Whether the reload produced a snapshot")
    count: int = Field(..., description="Number of posters after reload")
    version: int = Field(..., description="Snapshot version after reload")
    refreshed_at: datetime = Field(..., description="Snapshot refresh time")

class PosterMatchResponse(BaseModel):
    """Poster resolved for a movie title."""
    title: str = Field(..., description="Title as requested, trimmed")
    status: PosterMatchStatus = Field(..., description="Match outcome")
    path: Optional[str] = Field(None, description="Matched poster path")
    rule: Optional[str] = Field(None, description="Matching rule that produced the path")
    candidates: Optional[List[str]] = Field(None, description="Full poster list on a legacy no-match")

class PosterDebugAttempt(BaseModel):
    """One strategy attempted during resolution."""
    rule: str = Field(..., description="Matching rule")
    path: Optional[str] = Field(None, description="Path found by the rule, if any")

class PosterDebugResponse(BaseModel):
    """Step-by-step poster resolution trace."""
    title: str = Field(..., description="Title as requested, trimmed")
    status: PosterMatchStatus = Field(..., description="Match outcome")
    path: Optional[str] = Field(None, description="Matched poster path")
    rule: Optional[str] = Field(None, description="Rule that produced the match")
    attempts: List[PosterDebugAttempt] = Field(default_factory=list, description="Rules tried in order")
    candidate_count: int = Field(..., description="Posters in the snapshot")

class Movie(BaseModel):
    """Movie catalog entry."""
    show_id: str = Field(..., description="Movie ID")
    type: Optional[str] = Field(None, description="Movie or TV Show")
    title: Optional[str] = Field(None, description="Title")
    director: Optional[str] = Field(None, description="Director")
    cast: Optional[str] = Field(None, description="Comma separated cast")
    country: Optional[str] = Field(None, description="Country")
    release_year: Optional[int] = Field(None, description="Release year")
    rating: Optional[str] = Field(None, description="Content rating")
    duration: Optional[str] = Field(None, description="Duration")
    description: Optional[str] = Field(None, description="Description")
    categories: List[str] = Field(default_factory=list, description="Active genre categories")

class Pagination(BaseModel):
    """Pagination info for paged listings."""
    current_page: int
    page_size: int
    total_pages: int
    total_count: int
    has_next: bool
    has_previous: bool

class PagedMoviesResponse(BaseModel):
    """A page of movies."""
    movies: List[Movie] = Field(..., description="Movies on this page")
    pagination: Pagination = Field(..., description="Pagination info")

class MovieRating(BaseModel):
    """A user's rating of a movie."""
    user_id: int = Field(..., description="User ID")
    show_id: str = Field(..., description="Movie ID")
    rating: float = Field(..., description="Rating, 0 when missing")

class MovieUser(BaseModel):
    """A user profile, without credentials."""
    user_id: int = Field(..., description="User ID")
    name: Optional[str] = Field(None, description="Display name")
    phone: Optional[str] = Field(None, description="Phone number")
    email: Optional[str] = Field(None, description="Email address")
    age: Optional[int] = Field(None, description="Age")
    gender: Optional[str] = Field(None, description="Gender")
    city: Optional[str] = Field(None, description="City")
    state: Optional[str] = Field(None, description="State")

class UserListRequest(BaseModel):
    """Movie to add to a user's favorites or watchlist."""
    user_id: int = Field(..., description="User ID")
    movie_id: str = Field(..., min_length=1, description="Movie ID")

class UserFavorite(BaseModel):
    """A movie in a user's favorites."""
    favorite_id: int = Field(..., description="Favorite entry ID")
    user_id: int = Field(..., description="User ID")
    movie_id: str = Field(..., description="Movie ID")

class UserWatchlistItem(BaseModel):
    """A movie in a user's watchlist."""
    watchlist_id: int = Field(..., description="Watchlist entry ID")
    user_id: int = Field(..., description="User ID")
    movie_id: str = Field(..., description="Movie ID")

class RecommendationItem(BaseModel):
    """Individual recommendation item."""
    show_id: str = Field(..., description="Movie ID")
    score: float = Field(..., description="Genre similarity score")
    title: str = Field(..., description="Display title")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional metadata")

class RecommendationResponse(BaseModel):
    """Response for recommendations."""
    show_id: str = Field(..., description="Movie the recommendations are for")
    user_id: Optional[int] = Field(None, description="User used for re-ranking")
    recommendations: List[RecommendationItem] = Field(..., description="List of recommendations")
    latency_ms: float = Field(..., description="Request latency in milliseconds")

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="Service version")
    posters_loaded: bool = Field(..., description="Whether a poster snapshot exists")
    catalog_loaded: bool = Field(..., description="Whether the movie catalog is loaded")
