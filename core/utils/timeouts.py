"""Bounded calls to external collaborators (blob store, relay, mail server)."""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from core.config import settings
from core.exceptions import DomainError, UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_collaborator(
    awaitable: Awaitable[T],
    operation: str,
    timeout: Optional[float] = None,
) -> T:
    """
    Await a collaborator call under a timeout.

    Args:
        awaitable: The pending call
        operation: Short description used in logs and error messages
        timeout: Seconds, defaults to settings.collaborator_timeout_seconds

    Returns:
        The call's result

    Raises:
        UpstreamError: On timeout or any non-domain failure of the call
    """
    timeout = timeout if timeout is not None else settings.collaborator_timeout_seconds
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"{operation} timed out after {timeout}s")
        raise UpstreamError(f"{operation} timed out") from e
    except DomainError:
        raise
    except Exception as e:
        logger.error(f"{operation} failed: {e}", exc_info=True)
        raise UpstreamError(f"{operation} failed") from e
