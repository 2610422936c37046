"""FastAPI dependency injection providers."""

import hmac

from fastapi import Depends, HTTPException
from fastapi.security import APIKeyHeader, APIKeyQuery

from kaiseki.abilities.cache import JsonFileNameCache, NameCacheBackend
from kaiseki.config import get_settings

# Set during lifespan, read by Depends()
_fflogs_factory = None
_cache_store = None
_name_cache_factory = None


def set_dependencies(fflogs_factory, cache_store=None, name_cache_factory=None) -> None:
    """Called once during app lifespan startup.

    ``name_cache_factory`` maps a language code to a name cache backend.
    """
    global _fflogs_factory, _cache_store, _name_cache_factory
    _fflogs_factory = fflogs_factory
    _cache_store = cache_store
    _name_cache_factory = name_cache_factory


def get_fflogs_factory():
    """FastAPI dependency -- returns the shared FFLogs client factory."""
    if _fflogs_factory is None:
        raise RuntimeError("FFLogs factory not initialized")
    return _fflogs_factory


def get_cache_store():
    """FastAPI dependency -- analysis cache store, or None when no database is configured."""
    return _cache_store


def get_name_cache_factory():
    """FastAPI dependency -- language -> ability name cache backend."""
    if _name_cache_factory is not None:
        return _name_cache_factory

    def _json_cache(language: str) -> NameCacheBackend:
        return JsonFileNameCache(get_settings().xivapi.cache_path)

    return _json_cache


# Auth dependencies
_header_scheme = APIKeyHeader(name="X-API-Key", auto_error=False)
_query_scheme = APIKeyQuery(name="api_key", auto_error=False)


async def verify_api_key(
    header_key: str | None = Depends(_header_scheme),
    query_key: str | None = Depends(_query_scheme),
) -> None:
    """Rejects requests when API key is configured but not provided."""
    configured_key = get_settings().api_key
    if not configured_key:
        return  # auth disabled when key not set
    provided = header_key or query_key
    if not provided or not hmac.compare_digest(provided, configured_key):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
