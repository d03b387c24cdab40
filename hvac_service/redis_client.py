"""Shared Redis connection used for queue health checks"""

import logging
import os
from typing import Optional

import redis

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None

CONNECTION_OPTIONS = {
    "decode_responses": True,
    "socket_connect_timeout": 15,
    "socket_timeout": 30,
    "retry_on_timeout": True,
    "health_check_interval": 30,
    "max_connections": 20,
}


def get_redis_client() -> redis.Redis:
    """
    Get or create the Redis client.

    REDIS_URL wins when set; otherwise REDIS_HOST/PORT/PASSWORD/DB/SSL are used.
    """
    global _redis_client

    if _redis_client is None:
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            masked = f"{redis_url.split(':')[0]}:****@{redis_url.split('@')[1]}" if "@" in redis_url else "****"
            logger.info(f"📡 Using Redis URL connection: {masked}")
            client = redis.from_url(redis_url, **CONNECTION_OPTIONS)
        else:
            host = os.getenv("REDIS_HOST", "localhost")
            port = int(os.getenv("REDIS_PORT", "6379"))
            client = redis.Redis(
                host=host,
                port=port,
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                **CONNECTION_OPTIONS,
            )
            logger.info(f"📡 Using Redis at {host}:{port}")

        client.ping()
        logger.info("Redis connected successfully")
        _redis_client = client

    return _redis_client
