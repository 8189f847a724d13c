"""Tests for favorites and watchlist storage."""

import threading

import pandas as pd
import pytest

from cineniche.data.user_lists import UserListStore

class TestUserListStore:
    """Test in-memory list behaviour."""

    @pytest.fixture
    def store(self):
        return UserListStore('favorite_id')

    def test_add_creates_entry(self, store):
        """Test a new entry gets the next id."""
        entry, created = store.add(7, 's1')

        assert created
        assert entry == {'favorite_id': 1, 'user_id': 7, 'movie_id': 's1'}
        assert store.for_user(7) == [entry]

    def test_add_existing(self, store):
        """Test adding the same movie twice returns the first entry."""
        first, _ = store.add(7, 's1')
        again, created = store.add(7, 's1')

        assert not created
        assert again == first
        assert len(store) == 1

    def test_for_user_filters(self, store):
        """Test entries are listed per user in insertion order."""
        store.add(7, 's2')
        store.add(8, 's1')
        store.add(7, 's1')

        assert [entry['movie_id'] for entry in store.for_user(7)] == ['s2', 's1']
        assert store.for_user(9) == []

    def test_remove(self, store):
        """Test removing an entry and a missing entry."""
        store.add(7, 's1')

        assert store.remove(7, 's1')
        assert not store.remove(7, 's1')
        assert store.for_user(7) == []

    def test_ids_not_reused(self, store):
        """Test ids keep increasing after a removal."""
        store.add(7, 's1')
        store.remove(7, 's1')
        entry, _ = store.add(7, 's1')

        assert entry['favorite_id'] == 2

    def test_returned_entries_are_copies(self, store):
        """Test callers cannot change stored entries."""
        entry, _ = store.add(7, 's1')
        entry['movie_id'] = 'changed'

        assert store.for_user(7)[0]['movie_id'] == 's1'

    def test_concurrent_adds(self, store):
        """Test parallel adds of one movie create a single entry."""
        barrier = threading.Barrier(8)
        created = []

        def adder():
            barrier.wait()
            created.append(store.add(7, 's1')[1])

        threads = [threading.Thread(target=adder) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert created.count(True) == 1
        assert len(store) == 1

class TestUserListFiles:
    """Test CSV persistence."""

    def test_changes_written(self, tmp_path):
        """Test every change is saved and read back."""
        path = tmp_path / 'movies_watchlist.csv'
        store = UserListStore('watchlist_id', str(path))
        store.add(7, 's1')
        store.add(7, 's2')
        store.remove(7, 's1')

        reloaded = UserListStore('watchlist_id', str(path))

        assert reloaded.load() == 1
        assert reloaded.for_user(7) == [{'watchlist_id': 2, 'user_id': 7, 'movie_id': 's2'}]
        assert reloaded.add(8, 's3')[0]['watchlist_id'] == 3

    def test_load_without_ids(self, tmp_path):
        """Test files without an id column get sequential ids and no duplicates."""
        path = tmp_path / 'favorites.csv'
        pd.DataFrame({
            'user_id': [7, 7, 8],
            'movie_id': ['s1', 's1', '010'],
        }).to_csv(path, index=False)

        store = UserListStore('favorite_id', str(path))

        assert store.load() == 2
        assert store.for_user(8) == [{'favorite_id': 2, 'user_id': 8, 'movie_id': '010'}]

    def test_load_missing_file(self, tmp_path):
        """Test a missing file starts an empty list."""
        store = UserListStore('favorite_id', str(tmp_path / 'missing.csv'))

        assert store.load() == 0
        assert len(store) == 0

    def test_load_bad_columns(self, tmp_path):
        """Test a file without user and movie columns is rejected."""
        path = tmp_path / 'favorites.csv'
        pd.DataFrame({'id': [1]}).to_csv(path, index=False)

        with pytest.raises(ValueError):
            UserListStore('favorite_id', str(path)).load()

    def test_default_paths(self, tmp_path):
        """Test the configured file names under the data directory."""
        assert UserListStore.favorites(str(tmp_path)).path == tmp_path / 'movies_favorites.csv'
        assert UserListStore.watchlist(str(tmp_path)).path.name == 'movies_watchlist.csv'
