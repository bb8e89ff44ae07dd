import asyncio
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

T = TypeVar("T")


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    retries: int = 3,
    backoff_seconds: float = 0.5,
    retry_on: Optional[Tuple[Type[BaseException], ...]] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await fn() with retries and exponential backoff. If retry_on is None, defaults to (Exception,).
    Used by the model router so transient provider failures do not fail the request."""
    exc_types: Tuple[Type[BaseException], ...] = retry_on or (Exception,)

    for attempt in range(retries + 1):
        try:
            return await fn()
        except exc_types:
            if attempt >= retries:
                raise
            await sleep(backoff_seconds * (2 ** attempt))

    raise RuntimeError("unreachable")
