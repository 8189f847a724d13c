"""FastAPI service for movie posters, catalog and recommendations."""

import time
from datetime import datetime
from typing import List, Optional
from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
import structlog
from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from .schemas import (
    PosterListResponse, PosterReloadResponse, PosterMatchResponse, PosterMatchStatus,
    PosterDebugResponse, PosterDebugAttempt, Movie, PagedMoviesResponse, MovieRating,
    MovieUser, UserListRequest, UserFavorite, UserWatchlistItem,
    RecommendationItem, RecommendationResponse, HealthResponse
)
from .config import config
from .cache import RedisCache
from ..data.loaders import MovieCatalog, display_title
from ..data.user_lists import UserListStore
from ..models.content_genre import GenreSimilarityRecommender
from ..posters.cache import PosterCache, PosterSnapshot
from ..posters.matching import PosterTitleResolver
from ..posters.normalize import normalize
from ..posters.sources import DirectoryPosterSource

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

VERSION = "1.0.0"

# Prometheus metrics
REQUEST_COUNT = Counter('cineniche_requests_total', 'Total requests', ['endpoint'])
REQUEST_LATENCY = Histogram('cineniche_request_duration_seconds', 'Request latency', ['endpoint'])
ERROR_COUNT = Counter('cineniche_errors_total', 'Total errors', ['endpoint', 'error_type'])
POSTER_MATCHES = Counter('cineniche_poster_matches_total', 'Poster resolutions by rule', ['rule'])
POSTER_SNAPSHOT_SIZE = Gauge('cineniche_poster_snapshot_size', 'Posters in the current snapshot')


def build_poster_cache() -> PosterCache:
    """Poster cache over the configured poster directory."""
    source = DirectoryPosterSource(config.POSTER_DIR, base_url=config.POSTER_BASE_URL)
    return PosterCache(
        source,
        refresh_interval_seconds=config.POSTER_REFRESH_SECONDS,
        resolver=PosterTitleResolver(config.POSTER_DIRECTORY_MARKER),
    )


def get_poster_cache(request: Request) -> PosterCache:
    return request.app.state.poster_cache


def get_stats_cache(request: Request) -> RedisCache:
    return request.app.state.stats_cache


def get_catalog(request: Request) -> MovieCatalog:
    catalog = request.app.state.catalog
    if catalog is None:
        raise HTTPException(status_code=503, detail="Movie catalog not loaded")
    return catalog


def get_favorites(request: Request) -> UserListStore:
    return request.app.state.favorites


def get_watchlist(request: Request) -> UserListStore:
    return request.app.state.watchlist


def get_recommender(request: Request) -> GenreSimilarityRecommender:
    recommender = request.app.state.recommender
    if recommender is None:
        raise HTTPException(status_code=503, detail="Recommender not loaded")
    return recommender


def current_snapshot(posters: PosterCache) -> PosterSnapshot:
    """Current poster snapshot, or 503 when no listing has ever succeeded."""
    try:
        snapshot = posters.snapshot()
    except Exception as e:
        ERROR_COUNT.labels(endpoint='posters', error_type='listing').inc()
        logger.error("Poster listing unavailable", error=str(e))
        raise HTTPException(status_code=503, detail="Poster listing unavailable")
    POSTER_SNAPSHOT_SIZE.set(len(snapshot.paths))
    return snapshot


def _to_movie(record: dict) -> Movie:
    return Movie(**record)


def create_app(poster_cache: Optional[PosterCache] = None,
               catalog: Optional[MovieCatalog] = None,
               stats_cache: Optional[RedisCache] = None,
               favorites: Optional[UserListStore] = None,
               watchlist: Optional[UserListStore] = None,
               load_catalog: bool = True) -> FastAPI:
    """Build the application around its collaborators.

    Collaborators that are not passed in are built from ``config`` at startup.
    """
    app = FastAPI(
        title="CineNiche API",
        description="Movie catalog, poster resolution and genre-based recommendations",
        version=VERSION
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.poster_cache = poster_cache or build_poster_cache()
    app.state.stats_cache = stats_cache or RedisCache()
    app.state.catalog = catalog
    app.state.favorites = favorites if favorites is not None else UserListStore.favorites()
    app.state.watchlist = watchlist if watchlist is not None else UserListStore.watchlist()
    app.state.recommender = GenreSimilarityRecommender().fit(catalog) if catalog is not None else None

    @app.on_event("startup")
    async def startup_event():
        """Load the catalog, saved user lists and the first poster snapshot."""
        logger.info("Starting CineNiche service")

        if not app.state.stats_cache.health_check():
            logger.warning("Redis connection failed, continuing without stats")

        if app.state.catalog is None and load_catalog:
            try:
                app.state.catalog = MovieCatalog.load()
                app.state.recommender = GenreSimilarityRecommender().fit(app.state.catalog)
            except Exception as e:
                ERROR_COUNT.labels(endpoint='startup', error_type='catalog').inc()
                logger.error("Failed to load movie catalog", error=str(e))

        if load_catalog:
            for store in (app.state.favorites, app.state.watchlist):
                try:
                    store.load()
                except Exception as e:
                    ERROR_COUNT.labels(endpoint='startup', error_type='user_lists').inc()
                    logger.error("Failed to load user list", list=store.id_field, error=str(e))

        try:
            snapshot = app.state.poster_cache.refresh()
            POSTER_SNAPSHOT_SIZE.set(len(snapshot.paths))
        except Exception as e:
            ERROR_COUNT.labels(endpoint='startup', error_type='posters').inc()
            logger.error("Initial poster listing failed", error=str(e))

        logger.info("CineNiche service started")

    @app.get("/healthz", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(),
            version=VERSION,
            posters_loaded=app.state.poster_cache.loaded,
            catalog_loaded=app.state.catalog is not None
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/api/posters", response_model=PosterListResponse)
    def list_posters(posters: PosterCache = Depends(get_poster_cache)):
        """Every poster path, unresolved."""
        REQUEST_COUNT.labels(endpoint='posters').inc()
        snapshot = current_snapshot(posters)
        return PosterListResponse(posters=list(snapshot.paths), count=len(snapshot.paths),
                                  version=snapshot.version)

    @app.post("/api/posters/reload", response_model=PosterReloadResponse)
    def reload_posters(posters: PosterCache = Depends(get_poster_cache)):
        """Force a poster listing refresh."""
        REQUEST_COUNT.labels(endpoint='posters_reload').inc()
        previous_version = posters.version
        try:
            snapshot = posters.refresh(force=True)
        except Exception as e:
            ERROR_COUNT.labels(endpoint='posters_reload', error_type='listing').inc()
            logger.error("Forced poster reload failed", error=str(e))
            raise HTTPException(status_code=503, detail="Poster listing unavailable")

        POSTER_SNAPSHOT_SIZE.set(len(snapshot.paths))
        logger.info("Posters reloaded", count=len(snapshot.paths), version=snapshot.version)
        return PosterReloadResponse(
            success=snapshot.version != previous_version,
            count=len(snapshot.paths),
            version=snapshot.version,
            refreshed_at=datetime.fromtimestamp(snapshot.refreshed_at)
        )

    @app.get("/api/posters/match", response_model=PosterMatchResponse, response_model_exclude_none=True)
    def match_poster(title: str = Query("", description="Movie title"),
                     legacy: bool = Query(False, description="Return all posters when nothing matches"),
                     posters: PosterCache = Depends(get_poster_cache),
                     stats: RedisCache = Depends(get_stats_cache)):
        """Poster path for a movie title."""
        start_time = time.time()
        REQUEST_COUNT.labels(endpoint='posters_match').inc()

        if not normalize(title):
            ERROR_COUNT.labels(endpoint='posters_match', error_type='empty_title').inc()
            raise HTTPException(status_code=400, detail="Title is required")

        snapshot = current_snapshot(posters)
        result = posters.resolver.resolve(title, snapshot.paths)

        POSTER_MATCHES.labels(rule=result.rule or 'none').inc()
        latency = (time.time() - start_time) * 1000
        REQUEST_LATENCY.labels(endpoint='posters_match').observe(latency / 1000)
        stats.set_latency("posters_match", latency)

        if result.matched:
            return PosterMatchResponse(title=title.strip(), status=PosterMatchStatus.MATCHED,
                                       path=result.path, rule=result.rule)

        stats.increment_counter("poster_no_match")
        logger.info("No poster found", title=title, candidates=len(snapshot.paths), legacy=legacy)
        return PosterMatchResponse(
            title=title.strip(),
            status=PosterMatchStatus.NO_MATCH,
            candidates=list(snapshot.paths) if legacy else None
        )

    @app.get("/api/posters/debug", response_model=PosterDebugResponse)
    def debug_poster(title: str = Query("", description="Movie title"),
                     posters: PosterCache = Depends(get_poster_cache)):
        """Every matching rule tried for a title, in order."""
        REQUEST_COUNT.labels(endpoint='posters_debug').inc()
        if not normalize(title):
            raise HTTPException(status_code=400, detail="Title is required")

        snapshot = current_snapshot(posters)
        trace = posters.resolver.explain(title, snapshot.paths)

        return PosterDebugResponse(
            title=trace.title,
            status=PosterMatchStatus.MATCHED if trace.result.matched else PosterMatchStatus.NO_MATCH,
            path=trace.result.path,
            rule=trace.result.rule,
            attempts=[PosterDebugAttempt(rule=rule, path=path) for rule, path in trace.attempts],
            candidate_count=len(snapshot.paths)
        )

    @app.get("/api/movies/titles", response_model=List[Movie])
    def list_movies(catalog: MovieCatalog = Depends(get_catalog)):
        """All movies ordered by title."""
        REQUEST_COUNT.labels(endpoint='movies').inc()
        movies = catalog.list_movies()
        logger.info("Listed movies", count=len(movies))
        return [_to_movie(record) for record in movies]

    @app.get("/api/movies/titles/paged", response_model=PagedMoviesResponse)
    def list_movies_paged(page: int = 1, page_size: int = Query(20, alias="pageSize"),
                          catalog: MovieCatalog = Depends(get_catalog)):
        """One page of movies ordered by title."""
        REQUEST_COUNT.labels(endpoint='movies_paged').inc()
        result = catalog.list_movies_paged(page=page, page_size=page_size)
        return PagedMoviesResponse(
            movies=[_to_movie(record) for record in result['movies']],
            pagination=result['pagination']
        )

    @app.get("/api/movies/titles/{show_id}", response_model=Movie)
    def get_movie(show_id: str, catalog: MovieCatalog = Depends(get_catalog)):
        """A single movie."""
        REQUEST_COUNT.labels(endpoint='movie').inc()
        record = catalog.get_movie(show_id)
        if record is None:
            logger.info("Movie not found", show_id=show_id)
            raise HTTPException(status_code=404, detail=f"Movie not found: {show_id}")
        return _to_movie(record)

    @app.get("/api/movies/ratings/average/{show_id}")
    def get_average_rating(show_id: str, catalog: MovieCatalog = Depends(get_catalog)) -> float:
        """Average rating of a movie, 0 when unrated."""
        REQUEST_COUNT.labels(endpoint='ratings_average').inc()
        return catalog.average_rating(show_id)

    @app.get("/api/movies/ratings/user/{user_id}", response_model=List[MovieRating])
    def get_user_ratings(user_id: int, catalog: MovieCatalog = Depends(get_catalog)):
        """Ratings given by one user."""
        REQUEST_COUNT.labels(endpoint='ratings_user').inc()
        return catalog.ratings_for_user(user_id)

    @app.get("/api/movies/ratings/{show_id}", response_model=List[MovieRating])
    def get_movie_ratings(show_id: str, catalog: MovieCatalog = Depends(get_catalog)):
        """Ratings for one movie."""
        REQUEST_COUNT.labels(endpoint='ratings_movie').inc()
        return catalog.ratings_for_movie(show_id)

    @app.get("/api/movies/users", response_model=List[MovieUser])
    def list_users(catalog: MovieCatalog = Depends(get_catalog)):
        """All users ordered by name."""
        REQUEST_COUNT.labels(endpoint='users').inc()
        return catalog.list_users()

    @app.get("/api/movies/users/{user_id}", response_model=MovieUser)
    def get_user(user_id: int, catalog: MovieCatalog = Depends(get_catalog)):
        """A single user."""
        REQUEST_COUNT.labels(endpoint='user').inc()
        user = catalog.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=404, detail=f"User not found: {user_id}")
        return user

    @app.get("/api/movies/favorites/user/{user_id}", response_model=List[UserFavorite])
    def get_user_favorites(user_id: int, favorites: UserListStore = Depends(get_favorites)):
        """A user's favorite movies."""
        REQUEST_COUNT.labels(endpoint='favorites').inc()
        return favorites.for_user(user_id)

    @app.post("/api/movies/favorites", response_model=UserFavorite)
    def add_favorite(item: UserListRequest, response: Response,
                     favorites: UserListStore = Depends(get_favorites)):
        """Add a favorite; 201 when created, 200 when it already existed."""
        REQUEST_COUNT.labels(endpoint='favorites_add').inc()
        entry, created = favorites.add(item.user_id, item.movie_id)
        response.status_code = 201 if created else 200
        return entry

    @app.delete("/api/movies/favorites/{user_id}/{movie_id}", status_code=204)
    def remove_favorite(user_id: int, movie_id: str,
                        favorites: UserListStore = Depends(get_favorites)):
        """Remove a favorite."""
        REQUEST_COUNT.labels(endpoint='favorites_remove').inc()
        if not favorites.remove(user_id, movie_id):
            raise HTTPException(status_code=404, detail="Favorite not found")
        return Response(status_code=204)

    @app.get("/api/movies/watchlist/user/{user_id}", response_model=List[UserWatchlistItem])
    def get_user_watchlist(user_id: int, watchlist: UserListStore = Depends(get_watchlist)):
        """A user's watchlist."""
        REQUEST_COUNT.labels(endpoint='watchlist').inc()
        return watchlist.for_user(user_id)

    @app.post("/api/movies/watchlist", response_model=UserWatchlistItem)
    def add_to_watchlist(item: UserListRequest, response: Response,
                         watchlist: UserListStore = Depends(get_watchlist)):
        """Add a watchlist entry; 201 when created, 200 when it already existed."""
        REQUEST_COUNT.labels(endpoint='watchlist_add').inc()
        entry, created = watchlist.add(item.user_id, item.movie_id)
        response.status_code = 201 if created else 200
        return entry

    @app.delete("/api/movies/watchlist/{user_id}/{movie_id}", status_code=204)
    def remove_from_watchlist(user_id: int, movie_id: str,
                              watchlist: UserListStore = Depends(get_watchlist)):
        """Remove a watchlist entry."""
        REQUEST_COUNT.labels(endpoint='watchlist_remove').inc()
        if not watchlist.remove(user_id, movie_id):
            raise HTTPException(status_code=404, detail="Watchlist entry not found")
        return Response(status_code=204)

    @app.get("/api/movies/recommendations/{show_id}", response_model=RecommendationResponse)
    def get_recommendations(show_id: str,
                            k: int = Query(config.RECOMMEND_DEFAULT_K, ge=1, le=50),
                            user_id: Optional[int] = None,
                            catalog: MovieCatalog = Depends(get_catalog),
                            recommender: GenreSimilarityRecommender = Depends(get_recommender),
                            stats: RedisCache = Depends(get_stats_cache)):
        """Movies with similar genres, optionally boosted by a user's ratings."""
        start_time = time.time()
        REQUEST_COUNT.labels(endpoint='recommend').inc()

        if show_id not in catalog:
            raise HTTPException(status_code=404, detail=f"Movie not found: {show_id}")

        try:
            recommendations = recommender.recommend(show_id, user_id=user_id, k=k)
        except Exception as e:
            ERROR_COUNT.labels(endpoint='recommend', error_type='exception').inc()
            logger.error("Error getting recommendations", show_id=show_id, user_id=user_id, error=str(e))
            raise HTTPException(status_code=500, detail="Internal server error")

        items = []
        for rec in recommendations:
            record = catalog.get_movie(rec['show_id'])
            items.append(RecommendationItem(
                show_id=rec['show_id'],
                score=rec['score'],
                title=display_title(record['title'] if record else None),
                metadata={'source': rec['source'],
                          'categories': record['categories'] if record else []}
            ))

        latency = (time.time() - start_time) * 1000
        REQUEST_LATENCY.labels(endpoint='recommend').observe(latency / 1000)
        stats.set_latency("recommend_api", latency)

        return RecommendationResponse(
            show_id=show_id,
            user_id=user_id,
            recommendations=items,
            latency_ms=latency
        )

    @app.get("/stats")
    def get_stats(stats: RedisCache = Depends(get_stats_cache)):
        """Latency statistics and Redis health."""
        latency_stats = {}
        for operation in ['posters_match', 'recommend_api']:
            operation_stats = stats.get_latency_stats(operation)
            if operation_stats:
                latency_stats[operation] = operation_stats

        return {
            'latency_stats': latency_stats,
            'counters': {
                'poster_no_match': stats.get_counter("poster_no_match")
            },
            'cache_stats': {
                'redis_healthy': stats.health_check(),
                'posters_loaded': app.state.poster_cache.loaded
            }
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=config.API_HOST,
        port=config.API_PORT,
        log_level=config.LOG_LEVEL.lower()
    )
