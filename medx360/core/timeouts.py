import asyncio
import logging
from typing import Awaitable, TypeVar
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from medx360.core.errors import StorageTimeoutError

log = logging.getLogger(__name__)

T = TypeVar("T")

def _is_lock_timeout(exc: OperationalError) -> bool:
    # sqlite: "database is locked"; postgres: lock_timeout / statement_timeout
    msg = str(exc.orig).lower()
    return "locked" in msg or "timeout" in msg or "canceling statement" in msg

async def bounded(op: Awaitable[T], timeout: float, what: str) -> T:
    """Await a store operation, turning every kind of stall into StorageTimeoutError."""
    try:
        return await asyncio.wait_for(op, timeout)
    except asyncio.TimeoutError as e:
        log.warning("store call %s exceeded %.2fs", what, timeout)
        raise StorageTimeoutError(f"{what} timed out after {timeout}s") from e
    except PoolTimeoutError as e:
        log.warning("no connection available for %s", what)
        raise StorageTimeoutError(f"{what}: connection pool exhausted") from e
    except OperationalError as e:
        if _is_lock_timeout(e):
            raise StorageTimeoutError(f"{what}: {e.orig}") from e
        raise
