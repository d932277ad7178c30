"""
Cache utilities for the spreads league
Caches computed boards so repeated page loads don't rescore the whole league
"""

import functools

from flask import current_app

from league import cache


def make_cache_key(name, *args, **kwargs):
    """Generate a cache key from a name and call arguments"""
    args_str = "_".join(str(arg) for arg in args)
    kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
    return f"{name}_{args_str}_{kwargs_str}"


def cached_query(model_name, timeout=None):
    """
    Decorator for caching computed query results

    Args:
        model_name: Name used as the cache key prefix
        timeout: Cache timeout in seconds (default LEADERBOARD_CACHE_TIMEOUT)
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            cache_key = make_cache_key(f"query_{model_name}_{f.__name__}", *args, **kwargs)

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Query cache hit: {cache_key}")
                return result

            result = f(*args, **kwargs)
            cache.set(
                cache_key,
                result,
                timeout=timeout or current_app.config.get("LEADERBOARD_CACHE_TIMEOUT", 120),
            )
            current_app.logger.debug(f"Query cache set: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_league_cache():
    """Drop every cached board after data changes"""
    cache.clear()
    current_app.logger.info("League cache cleared")


def get_cache_stats():
    """Get cache configuration"""
    return {
        "type": current_app.config.get("CACHE_TYPE", "Unknown"),
        "timeout": current_app.config.get("LEADERBOARD_CACHE_TIMEOUT", 120),
    }
