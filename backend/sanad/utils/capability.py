import asyncio
import logging
from typing import Awaitable, TypeVar

from sanad.core import exceptions
from sanad.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_timeout(capability: str, call: Awaitable[T]) -> T:
    """Awaits an external capability call, turning a timeout into ExternalCapabilityError."""
    timeout = settings.EXTERNAL_CALL_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"{capability} call timed out after {timeout}s")
        raise exceptions.ExternalCapabilityError(capability, f"{capability} did not respond within {timeout} seconds.")
