"""
Stores Package

Data persistence and state management for shopdesk: the SQLAlchemy database,
the Redis client, the query cache and the row change feed.

This package follows fast-failing import strategy - missing dependencies will
cause immediate import errors rather than graceful degradation.
"""

# Database first: models import Base from here
from .database import (
    Base,
    SessionLocal,
    create_tables,
    database_session,
    dispose_engine,
    engine,
    get_db_dependency,
    get_pool_status,
    test_connection,
    transaction_manager,
)
from .redis_client import (
    RedisClient,
    close_redis_client,
    get_redis_client,
    test_redis_connection,
)
from .query_cache import QueryCache, get_query_cache
from .change_feed import ChangeFeed, FeedSubscription, RowChange, get_change_feed

__all__ = [
    # Database
    "Base",
    "engine",
    "SessionLocal",
    "get_db_dependency",
    "database_session",
    "transaction_manager",
    "create_tables",
    "test_connection",
    "get_pool_status",
    "dispose_engine",
    # Redis
    "RedisClient",
    "get_redis_client",
    "close_redis_client",
    "test_redis_connection",
    # Query cache
    "QueryCache",
    "get_query_cache",
    # Change feed
    "ChangeFeed",
    "FeedSubscription",
    "RowChange",
    "get_change_feed",
]
