# SPDX-License-Identifier: Apache-2.0

"""
Redis service for the JWT token blocklist.

Revoked access tokens are stored under `jwt:blocked:<jti>` with a TTL that
matches the token's remaining lifetime.
"""

import time
from typing import Any, Dict, Optional
import redis
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

BLOCKLIST_PREFIX = "jwt:blocked:"


class RedisService:
    """
    Redis service backed by redis-py.

    The service degrades instead of failing when Redis is unreachable:
    lookups report tokens as not blocked and writes report failure.
    """

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None):
        """
        Initialize the Redis service.

        Args:
            redis_url: Redis connection URL (redis://host:port/db)
            client: Pre-built client, used instead of connecting to redis_url
        """
        self.redis_url = redis_url or "redis://localhost:6379/0"
        self.client: Optional[redis.Redis] = client

        if self.client is None:
            try:
                self.client = redis.from_url(self.redis_url, decode_responses=True)
                self.client.ping()
                logger.info(f"Redis service initialized at {self.redis_url}")
            except redis.RedisError as e:
                logger.error(f"Failed to initialize Redis service: {str(e)}")
                self.client = None

    def is_available(self) -> bool:
        """Check if Redis service is available."""
        return self.client is not None

    def _handle_redis_error(self, operation: str, error: Exception) -> None:
        logger.error(f"Redis {operation} failed: {str(error)}")

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        if not self.is_available():
            return False
        try:
            return bool(self.client.set(key, value, ex=ttl_seconds))
        except redis.RedisError as e:
            self._handle_redis_error("SET", e)
            return False

    def exists(self, key: str) -> bool:
        if not self.is_available():
            return False
        try:
            return self.client.exists(key) > 0
        except redis.RedisError as e:
            self._handle_redis_error("EXISTS", e)
            return False

    # JWT Token Blocklist Methods

    def is_token_blocked(self, token_id: str) -> bool:
        """
        Check if a JWT token is in the blocklist.

        Args:
            token_id: Token jti claim

        Returns:
            True if token is blocked, False otherwise
        """
        if not self.is_available():
            logger.warning("Redis unavailable for token blocklist check - allowing token")
            return False

        with tracer.start_as_current_span("redis.is_token_blocked") as span:
            span.set_attribute("redis.operation", "is_token_blocked")
            result = self.exists(f"{BLOCKLIST_PREFIX}{token_id}")
            span.set_attribute("auth.token_blocked", result)
            return result

    def block_token(self, token_id: str, ttl_seconds: int) -> bool:
        """
        Add a JWT token to the blocklist.

        Args:
            token_id: Token jti claim
            ttl_seconds: Time to live (should match token expiration)

        Returns:
            True if token was blocked, False otherwise
        """
        if not self.is_available():
            logger.error("Redis unavailable - cannot block token")
            return False

        with tracer.start_as_current_span("redis.block_token") as span:
            span.set_attributes({
                "redis.operation": "block_token",
                "redis.ttl": ttl_seconds
            })

            result = self.set_with_ttl(f"{BLOCKLIST_PREFIX}{token_id}", "1", ttl_seconds)
            span.set_attribute("auth.token_block_result", "success" if result else "failed")

            if result:
                logger.info(f"Token blocked (TTL: {ttl_seconds}s)")
            else:
                logger.error("Failed to block token")

            return result

    # Health Check Methods

    def ping(self) -> bool:
        if not self.is_available():
            return False
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            self._handle_redis_error("PING", e)
            return False

    def health_check(self) -> Dict[str, Any]:
        """
        Perform Redis health check.

        Returns:
            Health check results
        """
        if not self.is_available():
            return {"status": "unavailable", "message": "Redis client not initialized"}

        start_time = time.time()
        healthy = self.ping()
        response_time = (time.time() - start_time) * 1000

        return {
            "status": "healthy" if healthy else "unhealthy",
            "response_time_ms": round(response_time, 2)
        }
