"""
Database Package for PairTimer.

Provides the Redis-backed store for shared sessions and segment logs.
"""

from pairtimer.database.redis_manager import RedisManager

__all__ = [
    'RedisManager',
]
