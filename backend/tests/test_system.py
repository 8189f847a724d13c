"""System setup tests: configuration, stats cache and imports."""

import pytest

from cineniche.service.config import Config, config
from cineniche.service.cache import RedisCache

class FlakyRedis:
    """Redis client whose every command fails."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise ConnectionError("redis down")
        return fail

class TestConfig:
    """Test configuration loading."""

    def test_defaults(self):
        """Test default configuration values."""
        defaults = Config()
        assert defaults.DATA_DIR == "dataset"
        assert defaults.POSTER_DIRECTORY_MARKER == "Movie Posters"
        assert defaults.POSTER_REFRESH_SECONDS == 1800
        assert defaults.RECOMMEND_DEFAULT_K == 5

    def test_from_env(self, monkeypatch):
        """Test environment overrides are type converted."""
        monkeypatch.setenv("CINENICHE_POSTER_REFRESH_SECONDS", "60")
        monkeypatch.setenv("CINENICHE_POSTER_BASE_URL", "https://cdn.example/")

        loaded = Config.from_env()

        assert loaded.POSTER_REFRESH_SECONDS == 60
        assert loaded.POSTER_BASE_URL == "https://cdn.example/"

    def test_global_instance(self):
        """Test the module level config exists."""
        assert isinstance(config, Config)

class TestRedisCache:
    """Test stats cache degradation."""

    def test_failures_are_swallowed(self):
        """Test Redis errors turn into neutral return values."""
        cache = RedisCache(client=FlakyRedis())

        assert cache.increment_counter("posters") == 0
        assert cache.get_counter("posters") == 0
        assert cache.set_latency("posters_match", 1.5) is False
        assert cache.get_latency_stats("posters_match") is None
        assert cache.health_check() is False

class TestImports:
    """Test that the service modules import."""

    def test_fastapi_app(self):
        """Test FastAPI app instantiation."""
        try:
            from cineniche.service.api import app
        except ImportError as e:
            pytest.fail(f"Failed to import module: {e}")
        assert app is not None
        assert hasattr(app, 'routes')

class TestDebugPostersScript:
    """Test the poster debugging CLI."""

    def test_format_trace(self):
        """Test the trace lists each rule and the outcome."""
        from cineniche.posters.matching import PosterTitleResolver
        from cineniche.scripts.debug_posters import format_trace

        lines = format_trace(PosterTitleResolver(), "'79", ["/p/79.jpg", "/p/'79.jpg"])

        assert lines[0] == '==== TESTING: "\'79" ===='
        assert lines[-1] == "  => /p/'79.jpg (rule: apostrophe)"

    def test_main_with_directory(self, tmp_path, capsys):
        """Test titles are resolved against a poster directory."""
        from cineniche.scripts.debug_posters import main

        (tmp_path / "Selfie69.jpg").write_bytes(b"jpg")
        (tmp_path / "Selfie.jpg").write_bytes(b"jpg")

        assert main(["Selfie 69", "Nothing Here", "--poster-dir", str(tmp_path), "--base-url", "/p/"]) == 0

        output = capsys.readouterr().out
        assert "=> /p/Selfie69.jpg (rule: sequel)" in output
        assert "=> no_match" in output
