"""Tests for the movie catalog."""

import pytest
import pandas as pd
import numpy as np

from cineniche.data.loaders import MovieCatalog, SchemaMapper, display_title

def make_titles() -> pd.DataFrame:
    return pd.DataFrame({
        'show_id': ['s1', 's2', 's3', 's4', 's5'],
        'type': ['Movie', 'Movie', 'TV Show', 'Movie', 'Movie'],
        'title': ['Alpha', 'Bravo', 'Charlie', '#Delta', 'Echo'],
        'director': ['Ann Lee', 'Bo Kim', None, 'Dee Roy', 'Eve Fox'],
        'cast': ['A, B', 'C', 'D', 'E', 'F'],
        'country': ['US', 'UK', 'US', 'IN', 'FR'],
        'release_year': [2001, 2002, 2003, 2004, np.nan],
        'rating': ['PG', 'R', 'TV-MA', 'PG-13', 'G'],
        'duration': ['90 min', '100 min', '2 Seasons', '80 min', '95 min'],
        'description': ['a', 'b', 'c', 'd', 'e'],
        'Action': [1, 1, 1, 0, 0],
        'Comedies': [1, 1, 0, 0, 0],
        'Dramas': [0, 0, 0, 1, 0],
    })

def make_ratings() -> pd.DataFrame:
    return pd.DataFrame({
        'user_id': [7, 7, 8, 8],
        'show_id': ['s4', 's1', 's1', 's2'],
        'rating': [5, 4, 2, np.nan],
    })

def make_users() -> pd.DataFrame:
    return pd.DataFrame({
        'user_id': [3, 1, 2],
        'name': ['Zoe Park', 'Adam Reed', None],
        'phone': ['8015550100', '8015550101', '8015550102'],
        'email': ['zoe@example.com', 'adam@example.com', 'anon@example.com'],
        'age': [34, 27, np.nan],
        'gender': ['F', 'M', None],
        'city': ['Provo', 'Orem', 'Lehi'],
        'state': ['UT', 'UT', 'UT'],
        'password': ['secret', 'secret', 'secret'],
    })

class TestSchemaMapper:
    """Test SchemaMapper functionality."""

    def test_infer_schema_variants(self):
        """Test alternative column names are mapped."""
        sample_data = pd.DataFrame({
            'movieId': ['1'],
            'Name': ['Movie1'],
            'Overview': ['text'],
            'Year': [2000],
        })

        mapping = SchemaMapper.infer_schema(sample_data, ['show_id', 'title', 'description', 'release_year'])

        assert mapping == {
            'show_id': 'movieId',
            'title': 'Name',
            'description': 'Overview',
            'release_year': 'Year',
        }

    def test_standardize_titles_genre_flags(self):
        """Test non-metadata columns become integer genre flags."""
        titles = pd.DataFrame({
            'show_id': [1, 2],
            'title': ['One', 'Two'],
            'Horror Movies': [1, None],
            'Thrillers': ['1', '0'],
        })

        standardized = SchemaMapper.standardize_titles(titles)

        assert list(standardized['show_id']) == ['1', '2']
        assert list(standardized['Horror Movies']) == [1, 0]
        assert list(standardized['Thrillers']) == [1, 0]
        assert 'director' in standardized.columns

    def test_standardize_titles_requires_ids(self):
        """Test titles without ids are rejected."""
        with pytest.raises(ValueError):
            SchemaMapper.standardize_titles(pd.DataFrame({'title': ['One']}))

    def test_standardize_ratings(self):
        """Test rating rows are coerced and deduplicated."""
        ratings = pd.DataFrame({
            'userId': ['1', '1', 'x', None],
            'show_id': ['s1', 's1', 's2', 's3'],
            'rating': ['4', '5', '3', '2'],
        })

        standardized = SchemaMapper.standardize_ratings(ratings)

        assert len(standardized) == 1
        assert standardized.iloc[0]['user_id'] == 1
        assert standardized.iloc[0]['rating'] == 4.0

    def test_standardize_users(self):
        """Test user columns are kept and passwords dropped."""
        users = SchemaMapper.standardize_users(make_users())

        assert list(users.columns) == SchemaMapper.USER_FIELDS
        assert users['user_id'].tolist() == [3, 1, 2]

    def test_standardize_users_requires_id(self):
        """Test users without ids are rejected."""
        with pytest.raises(ValueError):
            SchemaMapper.standardize_users(pd.DataFrame({'name': ['Zoe']}))

class TestMovieCatalog:
    """Test catalog lookups."""

    @pytest.fixture
    def catalog(self):
        return MovieCatalog(make_titles(), make_ratings())

    def test_genre_columns(self, catalog):
        """Test genre columns are detected."""
        assert catalog.genre_columns == ['Action', 'Comedies', 'Dramas']
        assert catalog.categories('s1') == ['Action', 'Comedies']
        assert catalog.categories('s5') == []
        assert catalog.categories('missing') == []

    def test_list_movies_sorted_by_title(self, catalog):
        """Test the listing is ordered by title."""
        titles = [movie['title'] for movie in catalog.list_movies()]

        assert titles == ['#Delta', 'Alpha', 'Bravo', 'Charlie', 'Echo']

    def test_get_movie(self, catalog):
        """Test a single movie record."""
        movie = catalog.get_movie('s3')

        assert movie['title'] == 'Charlie'
        assert movie['director'] is None
        assert movie['release_year'] == 2003
        assert movie['categories'] == ['Action']
        assert catalog.get_movie('s5')['release_year'] is None
        assert catalog.get_movie('missing') is None

    def test_paged(self, catalog):
        """Test pagination info."""
        result = catalog.list_movies_paged(page=2, page_size=2)

        assert [movie['title'] for movie in result['movies']] == ['Bravo', 'Charlie']
        assert result['pagination'] == {
            'current_page': 2,
            'page_size': 2,
            'total_pages': 3,
            'total_count': 5,
            'has_next': True,
            'has_previous': True,
        }

    def test_paged_clamps_arguments(self, catalog):
        """Test out-of-range paging falls back to defaults."""
        result = catalog.list_movies_paged(page=0, page_size=500)

        assert result['pagination']['current_page'] == 1
        assert result['pagination']['page_size'] == 20
        assert len(result['movies']) == 5
        assert not result['pagination']['has_next']

    def test_ratings(self, catalog):
        """Test rating lookups."""
        assert catalog.ratings_for_user(7) == [
            {'user_id': 7, 'show_id': 's4', 'rating': 5.0},
            {'user_id': 7, 'show_id': 's1', 'rating': 4.0},
        ]
        assert catalog.ratings_for_movie('s2') == [{'user_id': 8, 'show_id': 's2', 'rating': 0.0}]
        assert catalog.rated_by_user(7) == {'s4', 's1'}

    def test_average_rating(self, catalog):
        """Test averages skip missing ratings."""
        assert catalog.average_rating('s1') == 3.0
        assert catalog.average_rating('s2') == 0.0
        assert catalog.average_rating('s5') == 0.0

    def test_membership(self, catalog):
        """Test id membership and positions."""
        assert 's1' in catalog
        assert 'missing' not in catalog
        assert catalog.position('s4') == 3
        assert len(catalog) == 5

    def test_display_title(self):
        """Test hashes are removed for display."""
        assert display_title('#Delta') == 'Delta'
        assert display_title(None) == 'Unknown Title'

class TestCatalogUsers:
    """Test user profile lookups."""

    @pytest.fixture
    def catalog(self):
        return MovieCatalog(make_titles(), make_ratings(), make_users())

    def test_list_users_by_name(self, catalog):
        """Test users are ordered by name with unnamed users first."""
        users = catalog.list_users()

        assert [user['user_id'] for user in users] == [2, 1, 3]
        assert 'password' not in users[0]

    def test_get_user(self, catalog):
        """Test a single user record."""
        user = catalog.get_user(3)

        assert user['name'] == 'Zoe Park'
        assert user['age'] == 34
        assert user['phone'] == '8015550100'
        assert catalog.get_user(2)['age'] is None

    def test_get_user_missing(self, catalog):
        """Test an unknown user is None."""
        assert catalog.get_user(99) is None

    def test_no_users(self):
        """Test a catalog built without users."""
        catalog = MovieCatalog(make_titles())

        assert catalog.list_users() == []
        assert catalog.get_user(1) is None

class TestCatalogLoading:
    """Test loading catalog files."""

    def test_load_from_directory(self, tmp_path):
        """Test titles and ratings are read from CSV."""
        make_titles().to_csv(tmp_path / 'movies_titles.csv', index=False)
        make_ratings().to_csv(tmp_path / 'movies_ratings.csv', index=False)

        catalog = MovieCatalog.load(str(tmp_path))

        assert len(catalog) == 5
        assert len(catalog.ratings) == 4
        assert catalog.categories('s4') == ['Dramas']

    def test_load_without_ratings(self, tmp_path):
        """Test a missing ratings file yields no ratings."""
        make_titles().to_csv(tmp_path / 'movies_titles.csv', index=False)

        catalog = MovieCatalog.load(str(tmp_path))

        assert catalog.ratings.empty
        assert catalog.average_rating('s1') == 0.0

    def test_load_missing_titles(self, tmp_path):
        """Test a missing titles file raises."""
        with pytest.raises(FileNotFoundError):
            MovieCatalog.load(str(tmp_path))

    def test_load_users(self, tmp_path):
        """Test the users file is read with phone numbers kept as text."""
        make_titles().to_csv(tmp_path / 'movies_titles.csv', index=False)
        users = make_users()
        users['phone'] = ['0801555010', '0801555011', '0801555012']
        users.to_csv(tmp_path / 'movies_users.csv', index=False)

        catalog = MovieCatalog.load(str(tmp_path))

        assert len(catalog.users) == 3
        assert catalog.get_user(3)['phone'] == '0801555010'
        assert catalog.get_user(3)['age'] == 34

    def test_load_without_users(self, tmp_path):
        """Test a missing users file yields no users."""
        make_titles().to_csv(tmp_path / 'movies_titles.csv', index=False)

        assert MovieCatalog.load(str(tmp_path)).list_users() == []
