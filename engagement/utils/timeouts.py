"""Bounded waits for durable-store work done on the request path."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError

from engagement.config import settings
from engagement.exceptions import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_store_timeout(awaitable: Awaitable[T], operation: str, timeout: float | None = None) -> T:
    """
    Await ``awaitable`` under the store timeout.

    Timeouts and lost connections become ``TransientStoreError``; any other
    exception propagates unchanged.
    """
    timeout = timeout if timeout is not None else settings.store_timeout_seconds
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{operation} timed out after {timeout}s")
        raise TransientStoreError(operation=operation)
    except (OperationalError, InterfaceError, ConnectionError) as e:
        logger.warning(f"{operation} failed, store unavailable: {e!r}")
        raise TransientStoreError(operation=operation) from e
