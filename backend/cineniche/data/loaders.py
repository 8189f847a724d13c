"""Movie catalog loading and lookups."""

import math
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import structlog

from ..service.config import config

logger = structlog.get_logger(__name__)

class SchemaMapper:
    """Maps catalog CSV column variants to standard names."""

    STANDARD_COLUMNS = {
        'show_id': ['show_id', 'showid', 'show-id', 'movie_id', 'movieid', 'id'],
        'user_id': ['user_id', 'userid', 'user-id'],
        'rating': ['rating', 'score'],
        'title': ['title', 'name', 'movie_title'],
        'director': ['director'],
        'cast': ['cast'],
        'country': ['country'],
        'release_year': ['release_year', 'year'],
        'duration': ['duration', 'runtime'],
        'description': ['description', 'overview', 'summary'],
        'type': ['type'],
    }

    TITLE_METADATA = ['show_id', 'type', 'title', 'director', 'cast', 'country',
                      'release_year', 'rating', 'duration', 'description']

    # Passwords in the users file are never read
    USER_FIELDS = ['user_id', 'name', 'phone', 'email', 'age', 'gender', 'city', 'state']

    @classmethod
    def infer_schema(cls, df: pd.DataFrame, wanted: List[str]) -> Dict[str, str]:
        """Map each wanted standard column to the first matching source column."""
        mapping = {}
        lowered = {col.lower(): col for col in df.columns}

        for standard_col in wanted:
            for possible_name in cls.STANDARD_COLUMNS.get(standard_col, [standard_col]):
                if possible_name.lower() in lowered:
                    mapping[standard_col] = lowered[possible_name.lower()]
                    break

        return mapping

    @classmethod
    def standardize_titles(cls, df: pd.DataFrame) -> pd.DataFrame:
        """Rename metadata columns; every other column is a genre flag."""
        mapping = cls.infer_schema(df, cls.TITLE_METADATA)
        if 'show_id' not in mapping or 'title' not in mapping:
            raise ValueError(f"Titles data needs show_id and title columns, got {list(df.columns)}")

        renamed = df.rename(columns={orig: std for std, orig in mapping.items()})
        genre_columns = [col for col in renamed.columns if col not in cls.TITLE_METADATA]

        for col in cls.TITLE_METADATA:
            if col not in renamed.columns:
                renamed[col] = None

        if genre_columns:
            renamed[genre_columns] = (
                renamed[genre_columns].apply(pd.to_numeric, errors='coerce').fillna(0).astype(int)
            )
        renamed['show_id'] = renamed['show_id'].astype(str)
        renamed['release_year'] = pd.to_numeric(renamed['release_year'], errors='coerce')
        return renamed[cls.TITLE_METADATA + genre_columns]

    @classmethod
    def standardize_ratings(cls, df: pd.DataFrame) -> pd.DataFrame:
        """Rename rating columns and coerce types."""
        mapping = cls.infer_schema(df, ['user_id', 'show_id', 'rating'])
        if 'user_id' not in mapping or 'show_id' not in mapping:
            raise ValueError(f"Ratings data needs user_id and show_id columns, got {list(df.columns)}")

        renamed = df.rename(columns={orig: std for std, orig in mapping.items()})
        if 'rating' not in renamed.columns:
            renamed['rating'] = np.nan
        renamed = renamed.dropna(subset=['user_id', 'show_id']).copy()

        renamed['user_id'] = pd.to_numeric(renamed['user_id'], errors='coerce')
        renamed = renamed.dropna(subset=['user_id']).copy()
        renamed['user_id'] = renamed['user_id'].astype(int)
        renamed['show_id'] = renamed['show_id'].astype(str)
        renamed['rating'] = pd.to_numeric(renamed['rating'], errors='coerce')

        return renamed[['user_id', 'show_id', 'rating']].drop_duplicates(subset=['user_id', 'show_id'])

    @classmethod
    def standardize_users(cls, df: pd.DataFrame) -> pd.DataFrame:
        """Rename user profile columns; unknown columns are dropped."""
        mapping = cls.infer_schema(df, cls.USER_FIELDS)
        if 'user_id' not in mapping:
            raise ValueError(f"Users data needs a user_id column, got {list(df.columns)}")

        renamed = df.rename(columns={orig: std for std, orig in mapping.items()})
        for col in cls.USER_FIELDS:
            if col not in renamed.columns:
                renamed[col] = None

        renamed['user_id'] = pd.to_numeric(renamed['user_id'], errors='coerce')
        renamed = renamed.dropna(subset=['user_id']).copy()
        renamed['user_id'] = renamed['user_id'].astype(int)
        renamed['age'] = pd.to_numeric(renamed['age'], errors='coerce')

        return renamed[cls.USER_FIELDS].drop_duplicates(subset=['user_id'])


def display_title(title: Optional[str]) -> str:
    """Title as shown to users: ``#`` characters removed."""
    if not title:
        return 'Unknown Title'
    return title.replace('#', '').strip()


def _clean_value(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    return value


class MovieCatalog:
    """Movie titles with genre flags, user ratings and user profiles."""

    def __init__(self, titles: pd.DataFrame, ratings: Optional[pd.DataFrame] = None,
                 users: Optional[pd.DataFrame] = None):
        self.titles = SchemaMapper.standardize_titles(titles)
        self.titles = self.titles.drop_duplicates(subset=['show_id']).reset_index(drop=True)
        self.genre_columns = [col for col in self.titles.columns if col not in SchemaMapper.TITLE_METADATA]

        if ratings is None:
            ratings = pd.DataFrame(columns=['user_id', 'show_id', 'rating'])
        self.ratings = SchemaMapper.standardize_ratings(ratings)

        if users is None:
            users = pd.DataFrame(columns=SchemaMapper.USER_FIELDS)
        self.users = SchemaMapper.standardize_users(users)
        self._users_sorted = self.users.assign(
            _sort_name=self.users['name'].fillna('')
        ).sort_values('_sort_name', kind='stable').drop(columns=['_sort_name'])

        self._sorted = self.titles.assign(
            _sort_title=self.titles['title'].fillna('')
        ).sort_values('_sort_title', kind='stable').drop(columns=['_sort_title'])
        self._index = {show_id: idx for idx, show_id in enumerate(self.titles['show_id'])}

    @classmethod
    def load(cls, data_dir: Optional[str] = None) -> "MovieCatalog":
        """Load titles, ratings and users CSV files from ``data_dir``.

        Only the titles file is required.
        """
        data_dir = Path(data_dir or config.DATA_DIR)
        titles_path = data_dir / config.TITLES_FILE
        ratings_path = data_dir / config.RATINGS_FILE
        users_path = data_dir / config.USERS_FILE

        logger.info("Loading movie catalog", data_dir=str(data_dir))
        if not titles_path.exists():
            raise FileNotFoundError(f"Titles file not found: {titles_path}")

        # Load with error handling for different encodings
        try:
            titles = pd.read_csv(titles_path, encoding='utf-8')
        except UnicodeDecodeError:
            titles = pd.read_csv(titles_path, encoding='latin-1')

        if ratings_path.exists():
            ratings = pd.read_csv(ratings_path)
        else:
            logger.warning("Ratings file not found, continuing without ratings", path=str(ratings_path))
            ratings = None

        if users_path.exists():
            # Phone numbers must stay text
            users = pd.read_csv(users_path, dtype=str)
        else:
            logger.warning("Users file not found, continuing without users", path=str(users_path))
            users = None

        catalog = cls(titles, ratings, users)
        logger.info("Movie catalog loaded",
                    movies=len(catalog.titles),
                    ratings=len(catalog.ratings),
                    users=len(catalog.users),
                    genres=len(catalog.genre_columns))
        return catalog

    def __len__(self) -> int:
        return len(self.titles)

    def __contains__(self, show_id: str) -> bool:
        return show_id in self._index

    def position(self, show_id: str) -> Optional[int]:
        """Row position of a movie in catalog order."""
        return self._index.get(show_id)

    def categories(self, show_id: str) -> List[str]:
        """Names of the genre flags set for a movie."""
        idx = self._index.get(show_id)
        if idx is None:
            return []
        row = self.titles.iloc[idx]
        return [col for col in self.genre_columns if row[col] == 1]

    def _to_record(self, row: pd.Series) -> Dict[str, Any]:
        record = {col: _clean_value(row[col]) for col in SchemaMapper.TITLE_METADATA}
        if record['release_year'] is not None:
            record['release_year'] = int(record['release_year'])
        record['categories'] = self.categories(record['show_id'])
        return record

    def get_movie(self, show_id: str) -> Optional[Dict[str, Any]]:
        idx = self._index.get(show_id)
        if idx is None:
            return None
        return self._to_record(self.titles.iloc[idx])

    def list_movies(self) -> List[Dict[str, Any]]:
        """All movies ordered by title."""
        return [self._to_record(row) for _, row in self._sorted.iterrows()]

    def list_movies_paged(self, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        """One page of movies ordered by title, with pagination info.

        A page below 1 becomes 1 and a page size outside 1..100 becomes 20.
        """
        if page < 1:
            page = 1
        if page_size < 1 or page_size > 100:
            page_size = 20

        total_count = len(self._sorted)
        total_pages = math.ceil(total_count / page_size)
        start = (page - 1) * page_size
        rows = self._sorted.iloc[start:start + page_size]

        return {
            'movies': [self._to_record(row) for _, row in rows.iterrows()],
            'pagination': {
                'current_page': page,
                'page_size': page_size,
                'total_pages': total_pages,
                'total_count': total_count,
                'has_next': page < total_pages,
                'has_previous': page > 1,
            }
        }

    def _rating_records(self, frame: pd.DataFrame) -> List[Dict[str, Any]]:
        return [
            {
                'user_id': int(row.user_id),
                'show_id': row.show_id,
                'rating': 0.0 if pd.isna(row.rating) else float(row.rating),
            }
            for row in frame.itertuples(index=False)
        ]

    def ratings_for_movie(self, show_id: str) -> List[Dict[str, Any]]:
        return self._rating_records(self.ratings[self.ratings['show_id'] == show_id])

    def ratings_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        return self._rating_records(self.ratings[self.ratings['user_id'] == user_id])

    def rated_by_user(self, user_id: int) -> set:
        """Show ids the user has rated."""
        return set(self.ratings.loc[self.ratings['user_id'] == user_id, 'show_id'])

    def average_rating(self, show_id: str) -> float:
        """Mean of the non-missing ratings for a movie, 0.0 when there are none."""
        ratings = self.ratings.loc[self.ratings['show_id'] == show_id, 'rating'].dropna()
        if ratings.empty:
            return 0.0
        return float(ratings.mean())

    def _user_record(self, row: pd.Series) -> Dict[str, Any]:
        record = {col: _clean_value(row[col]) for col in SchemaMapper.USER_FIELDS}
        if record['age'] is not None:
            record['age'] = int(record['age'])
        return record

    def list_users(self) -> List[Dict[str, Any]]:
        """All users ordered by name, unnamed users first."""
        return [self._user_record(row) for _, row in self._users_sorted.iterrows()]

    def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        rows = self.users[self.users['user_id'] == user_id]
        if rows.empty:
            return None
        return self._user_record(rows.iloc[0])
