"""Content-based recommendation using genre flag overlap."""

from typing import Any, Dict, List, Optional

import numpy as np
import structlog

from ..data.loaders import MovieCatalog

logger = structlog.get_logger(__name__)

class GenreSimilarityRecommender:
    """Scores movies by Jaccard similarity of their active genre sets."""

    def __init__(self):
        """Initialize genre similarity recommender."""
        self.catalog: Optional[MovieCatalog] = None
        self.genre_matrix: Optional[np.ndarray] = None
        self.genre_counts: Optional[np.ndarray] = None
        self.show_ids: List[str] = []

    def fit(self, catalog: MovieCatalog):
        """Build the boolean movie x genre matrix."""
        logger.info("Fitting genre similarity model", movies=len(catalog))

        self.catalog = catalog
        self.show_ids = list(catalog.titles['show_id'])
        if catalog.genre_columns:
            self.genre_matrix = catalog.titles[catalog.genre_columns].to_numpy(dtype=bool)
        else:
            self.genre_matrix = np.zeros((len(catalog), 0), dtype=bool)
        self.genre_counts = self.genre_matrix.sum(axis=1)

        logger.info("Genre similarity model fitted",
                   movies=self.genre_matrix.shape[0],
                   genres=self.genre_matrix.shape[1])
        return self

    def _jaccard_scores(self, idx: int) -> np.ndarray:
        target = self.genre_matrix[idx]
        intersection = (self.genre_matrix & target).sum(axis=1)
        union = (self.genre_matrix | target).sum(axis=1)

        scores = np.zeros(len(self.show_ids), dtype=float)
        # Jaccard is 0 whenever either movie has no genres
        valid = (union > 0) & (self.genre_counts > 0) & (self.genre_counts[idx] > 0)
        scores[valid] = intersection[valid] / union[valid]
        return scores

    def get_similar_items(self, show_id: str, n_similar: int = 5) -> List[Dict[str, Any]]:
        """Top movies by genre similarity, ties kept in catalog order."""
        if self.catalog is None:
            raise RuntimeError("Model not fitted")

        idx = self.catalog.position(show_id)
        if idx is None:
            logger.warning("Movie not found for similarity", show_id=show_id)
            return []

        scores = self._jaccard_scores(idx)
        order = np.argsort(-scores, kind='stable')

        similar_items = []
        for candidate_idx in order:
            if candidate_idx == idx:
                continue
            similar_items.append({
                'show_id': self.show_ids[candidate_idx],
                'score': float(scores[candidate_idx]),
                'source': 'genre'
            })
            if len(similar_items) >= n_similar:
                break

        return similar_items

    def recommend(self, show_id: str, user_id: Optional[int] = None, k: int = 5) -> List[Dict[str, Any]]:
        """Genre recommendations, optionally moving movies the user rated to the front."""
        candidates = self.get_similar_items(show_id, n_similar=k * 2)

        if user_id is not None:
            rated = self.catalog.rated_by_user(user_id)
            # rated first, similarity order kept within each group
            candidates = sorted(candidates, key=lambda item: item['show_id'] not in rated)
            for item in candidates:
                if item['show_id'] in rated:
                    item['source'] = 'genre+rated'

        return candidates[:k]
