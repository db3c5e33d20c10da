"""Optional Redis connection used for pub/sub pushes and email rate limits."""

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Connect and verify the server answers. Raises if it does not."""
    global _client  # noqa: PLW0603
    client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    _client = client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis_or_none() -> redis.Redis | None:
    """Redis client if connected. Callers skip Redis work when this is None."""
    return _client
