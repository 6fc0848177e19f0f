from fastapi import Request
from typing import Optional
import redis
import json

class RedisClient:
    """
    Redis client wrapper for caching.

    This class provides a simplified interface for the Redis operations used in the application,
    currently caching of the public subject and grade catalog.

    Attributes:
        redis_host (str): Redis server hostname/IP
        redis_port (int): Redis server port
        redis_password (str): Redis server password
        client (redis.StrictRedis): Redis client instance
    """

    def __init__(self, host: str, port: int, password: Optional[str] = None):
        self.redis_host = host
        self.redis_port = port
        self.redis_password = password

        # decode_responses=True so that we don't have to manually decode all the responses.
        self.client = redis.StrictRedis(
            host=self.redis_host,
            port=self.redis_port,
            password=self.redis_password,
            decode_responses=True
        )

    def set_cache(self, key: str, value: str, expiration: int):
        """
        Set a cached value with expiration time.

        Args:
            key (str): Cache key
            value (str): Value to cache
            expiration (int): Time in seconds until the cache expires
        """
        self.client.setex(key, expiration, value)

    def get_cache(self, key: str) -> Optional[str]:
        """
        Retrieve a cached value.

        Args:
            key (str): Cache key to retrieve

        Returns:
            str: The cached value if found, None otherwise
        """
        return self.client.get(key)

    def get_json(self, key: str):
        cached = self.get_cache(key)
        return json.loads(cached) if cached else None

    def set_json(self, key: str, value, expiration: int):
        self.set_cache(key, json.dumps(value, default=str), expiration)

    def close(self):
        self.client.close()

def get_redis(request: Request) -> Optional[RedisClient]:
    """Dependency returning the app's Redis client, or None when USE_REDIS is off."""
    return getattr(request.app.state, "redis", None)
