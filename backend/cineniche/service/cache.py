"""Redis-backed request statistics for the CineNiche service."""

from typing import Dict, Optional
import redis
import structlog
from .config import config

logger = structlog.get_logger(__name__)

class RedisCache:
    """Redis wrapper for latency samples and counters.
    
    Every operation degrades to a logged no-op when Redis is unreachable.
    """
    
    def __init__(self, client: Optional[redis.Redis] = None):
        """Initialize Redis connection."""
        self.redis_client = client or redis.Redis(
            host=config.REDIS_HOST,
            port=config.REDIS_PORT,
            db=config.REDIS_DB,
            socket_connect_timeout=1,
        )
        self.ttl = config.REDIS_TTL
    
    def increment_counter(self, name: str, value: int = 1) -> int:
        """Increment a counter."""
        try:
            key = f"cineniche:counter:{name}"
            return self.redis_client.incr(key, value)
        except Exception as e:
            logger.error("Failed to increment counter", name=name, error=str(e))
            return 0
    
    def get_counter(self, name: str) -> int:
        """Read a counter, 0 when unset."""
        try:
            value = self.redis_client.get(f"cineniche:counter:{name}")
            return int(value) if value is not None else 0
        except Exception as e:
            logger.error("Failed to read counter", name=name, error=str(e))
            return 0
    
    def set_latency(self, operation: str, latency_ms: float) -> bool:
        """Store latency measurement."""
        try:
            key = f"cineniche:latency:{operation}"
            self.redis_client.lpush(key, latency_ms)
            # Keep only last 1000 measurements
            self.redis_client.ltrim(key, 0, 999)
            self.redis_client.expire(key, self.ttl)
            return True
        except Exception as e:
            logger.error("Failed to store latency", operation=operation, error=str(e))
            return False
    
    def get_latency_stats(self, operation: str) -> Optional[Dict[str, float]]:
        """Get latency statistics."""
        try:
            key = f"cineniche:latency:{operation}"
            data = self.redis_client.lrange(key, 0, -1)
            if not data:
                return None
            
            latencies = [float(x) for x in data]
            latencies.sort()
            
            n = len(latencies)
            return {
                "count": n,
                "p50": latencies[n // 2],
                "p95": latencies[int(n * 0.95)],
                "p99": latencies[int(n * 0.99)],
                "mean": sum(latencies) / n,
                "min": latencies[0],
                "max": latencies[-1]
            }
        except Exception as e:
            logger.error("Failed to get latency stats", operation=operation, error=str(e))
            return None
    
    def health_check(self) -> bool:
        """Check Redis connection health."""
        try:
            return bool(self.redis_client.ping())
        except Exception as e:
            logger.error("Redis health check failed", error=str(e))
            return False
