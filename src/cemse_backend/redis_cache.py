import os
from aiocache import Cache

from cemse_backend.settings import settings

# Get Redis configuration from environment
REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = int(os.environ.get('REDIS_PORT', '6379'))
REDIS_PASSWORD = os.environ.get('REDIS_PASSWORD', '')

def _build_cache() -> Cache:
    if settings.SESSION_BACKEND == "memory":
        return Cache(Cache.MEMORY, namespace="session")

    return Cache(
        Cache.REDIS,
        endpoint=REDIS_HOST,
        port=REDIS_PORT,
        password=REDIS_PASSWORD if REDIS_PASSWORD else None,
        pool_max_size=10,
        namespace="session",
        db=0
    )

_redis_cache = _build_cache()

async def get_redis_client() -> Cache:
    return _redis_cache
