"""
Cache decorator for async repository reads.
"""
import hashlib
import json
from functools import wraps
from typing import Callable, Any
from sqlalchemy.ext.asyncio import AsyncSession
from gowra.cache.redis_client import cache
from gowra.core.logging import logger


def cached(key_prefix: str, expire: int = 300):
    """
    Cache the JSON-serialisable result of an async function.

    The session argument is left out of the key, so the same query from
    two requests shares one entry.

    Usage:
        @cached('events:list', expire=300)
        async def list_events(db, limit=20): ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            cache_key = f"{key_prefix}:{_key_from_args(args, kwargs)}"

            cached_value = await cache.get(cache_key)
            if cached_value is not None:
                logger.debug(f"Cache hit for key: {cache_key}")
                return cached_value

            logger.debug(f"Cache miss for key: {cache_key}")
            result = await func(*args, **kwargs)
            if result is not None:
                await cache.set(cache_key, result, expire)
            return result
        return wrapper
    return decorator


def cache_key_for(key_prefix: str, *args, **kwargs) -> str:
    """Key that ``@cached(key_prefix)`` would use for the same call."""
    return f"{key_prefix}:{_key_from_args(args, kwargs)}"


def _key_from_args(args: tuple, kwargs: dict) -> str:
    key_data = {
        'args': [str(arg) for arg in args if not isinstance(arg, AsyncSession)],
        'kwargs': {k: str(v) for k, v in kwargs.items() if not isinstance(v, AsyncSession)},
    }
    key_string = json.dumps(key_data, sort_keys=True)
    return hashlib.md5(key_string.encode()).hexdigest()
