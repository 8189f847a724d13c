#!/usr/bin/env python3
"""Script for serving the CineNiche API."""

import sys
import structlog
import uvicorn
from pathlib import Path
import argparse

from cineniche.service.config import config

# Configure logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
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

def check_redis_connection() -> bool:
    """Check Redis connection."""
    try:
        from cineniche.service.cache import RedisCache
        if RedisCache().health_check():
            logger.info("Redis connection successful")
            return True
        else:
            logger.error("Redis health check failed")
            return False
    except Exception as e:
        logger.error("Failed to connect to Redis", error=str(e))
        return False

def validate_environment() -> bool:
    """Validate the environment before starting the service."""
    logger.info("Validating environment")
    
    titles_path = Path(config.DATA_DIR) / config.TITLES_FILE
    if not titles_path.exists():
        logger.error("Titles file not found", path=str(titles_path))
        return False
    
    poster_dir = Path(config.POSTER_DIR)
    if not poster_dir.exists():
        logger.warning("Poster directory not found", poster_dir=str(poster_dir))
    
    # Check Redis connection
    if not check_redis_connection():
        logger.warning("Redis connection failed - stats will not be recorded")
    
    logger.info("Environment validation completed")
    return True

def start_server(host: str = None, port: int = None, reload: bool = False, workers: int = 1):
    """Start the FastAPI server."""
    host = host or config.API_HOST
    port = port or config.API_PORT
    
    logger.info("Starting CineNiche service", 
               host=host, 
               port=port, 
               reload=reload, 
               workers=workers)
    
    if not validate_environment():
        logger.error("Environment validation failed")
        sys.exit(1)
    
    uvicorn_config = {
        "app": "cineniche.service.api:app",
        "host": host,
        "port": port,
        "reload": reload,
        "workers": workers if not reload else 1,
        "log_level": config.LOG_LEVEL.lower(),
        "access_log": True
    }
    
    try:
        uvicorn.run(**uvicorn_config)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error("Server failed to start", error=str(e))
        sys.exit(1)

def main():
    """Main function."""
    parser = argparse.ArgumentParser(description="Start the CineNiche API")
    
    parser.add_argument(
        "--host", 
        type=str, 
        default=config.API_HOST,
        help=f"Host to bind to (default: {config.API_HOST})"
    )
    
    parser.add_argument(
        "--port", 
        type=int, 
        default=config.API_PORT,
        help=f"Port to bind to (default: {config.API_PORT})"
    )
    
    parser.add_argument(
        "--reload", 
        action="store_true",
        help="Enable auto-reload for development"
    )
    
    parser.add_argument(
        "--workers", 
        type=int, 
        default=1,
        help="Number of worker processes (default: 1)"
    )
    
    parser.add_argument(
        "--validate", 
        action="store_true",
        help="Validate environment and exit"
    )
    
    args = parser.parse_args()
    
    if args.validate:
        logger.info("Running environment validation")
        sys.exit(0 if validate_environment() else 1)
    
    start_server(
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers
    )

if __name__ == "__main__":
    main()
