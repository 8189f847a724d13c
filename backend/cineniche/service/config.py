"""Configuration settings for the CineNiche service."""

import os
from dataclasses import dataclass

@dataclass
class Config:
    """Main configuration class."""
    
    # Data paths
    DATA_DIR: str = "dataset"
    TITLES_FILE: str = "movies_titles.csv"
    RATINGS_FILE: str = "movies_ratings.csv"
    USERS_FILE: str = "movies_users.csv"
    FAVORITES_FILE: str = "movies_favorites.csv"
    WATCHLIST_FILE: str = "movies_watchlist.csv"
    
    # Posters
    POSTER_DIR: str = "posters"
    POSTER_BASE_URL: str = "/posters/"
    POSTER_DIRECTORY_MARKER: str = "Movie Posters"
    POSTER_REFRESH_SECONDS: int = 1800  # 30 minutes
    
    # Recommendations
    RECOMMEND_DEFAULT_K: int = 5
    
    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_TTL: int = 3600  # 1 hour
    
    # API settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 5212
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        config = cls()
        
        # Override with environment variables
        for field in config.__dataclass_fields__:
            env_var = f"CINENICHE_{field}"
            if env_var in os.environ:
                value = os.environ[env_var]
                # Try to convert to appropriate type
                field_type = type(getattr(config, field))
                if field_type == int:
                    setattr(config, field, int(value))
                elif field_type == float:
                    setattr(config, field, float(value))
                elif field_type == bool:
                    setattr(config, field, value.lower() == "true")
                else:
                    setattr(config, field, value)
        
        return config

# Global config instance
config = Config.from_env()
