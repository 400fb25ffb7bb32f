"""
Timeout Enforcement
Central timeout policy for every asynchronous step of an exchange session.
"""

import asyncio
import logging
from typing import Optional, Union
from enum import Enum
from dataclasses import dataclass

from ..errors import ContactShareError

logger = logging.getLogger(__name__)


class TimeoutCategory(str, Enum):
    """Timeout operation categories"""
    REGISTRY_CONNECT = "TIMEOUT_REGISTRY_CONNECT"
    REGISTRY_READ = "TIMEOUT_REGISTRY_READ"
    REGISTRY_RELEASE = "TIMEOUT_REGISTRY_RELEASE"
    PAYLOAD_ENCODE = "TIMEOUT_PAYLOAD_ENCODE"
    PAYLOAD_SHARE = "TIMEOUT_PAYLOAD_SHARE"


@dataclass
class TimeoutConfig:
    """Timeout configuration for different operation categories (seconds)"""
    registry_connect: float = 10.0
    registry_read: float = 5.0
    registry_release: float = 5.0
    payload_encode: float = 5.0
    payload_share: float = 30.0

    # Default timeout for unspecified operations
    default_timeout: float = 30.0


class OperationTimeoutError(ContactShareError):
    """Raised when an operation times out"""

    def __init__(self, category: TimeoutCategory, timeout_seconds: float, operation: str):
        self.category = category
        self.timeout_seconds = timeout_seconds
        self.operation = operation
        super().__init__(f"Operation '{operation}' timed out after {timeout_seconds}s ({category.value})")


class TimeoutManager:
    """
    Central timeout enforcement manager

    Every registry, encode or hand-off step runs with an explicit timeout.
    """

    def __init__(self, config: Optional[TimeoutConfig] = None):
        self.config = config or TimeoutConfig()
        logger.debug("TimeoutManager initialized with explicit timeout policy")

    def get_timeout(self, category: Union[TimeoutCategory, str]) -> float:
        """Get timeout for operation category"""
        if isinstance(category, str) and not isinstance(category, TimeoutCategory):
            try:
                category = TimeoutCategory(category)
            except ValueError:
                logger.warning(f"Unknown timeout category: {category}, using default")
                return self.config.default_timeout

        timeout_map = {
            TimeoutCategory.REGISTRY_CONNECT: self.config.registry_connect,
            TimeoutCategory.REGISTRY_READ: self.config.registry_read,
            TimeoutCategory.REGISTRY_RELEASE: self.config.registry_release,
            TimeoutCategory.PAYLOAD_ENCODE: self.config.payload_encode,
            TimeoutCategory.PAYLOAD_SHARE: self.config.payload_share,
        }

        return timeout_map.get(category, self.config.default_timeout)

    async def execute_with_timeout(
        self,
        category: TimeoutCategory,
        operation: str,
        awaitable,
        timeout: Optional[float] = None,
    ):
        """
        Await an operation with timeout enforcement

        Args:
            category: Timeout category
            operation: Description of operation being executed
            awaitable: Coroutine or future to await
            timeout: Optional override timeout

        Returns:
            Result of the operation

        Raises:
            OperationTimeoutError: If operation times out
        """
        effective_timeout = timeout or self.get_timeout(category)

        logger.debug(f"Executing {operation} with {effective_timeout}s timeout ({category.value})")

        try:
            return await asyncio.wait_for(awaitable, timeout=effective_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Operation {operation} timed out after {effective_timeout}s ({category.value})")
            raise OperationTimeoutError(category, effective_timeout, operation)


# Global timeout manager instance
_timeout_manager: Optional[TimeoutManager] = None


def get_timeout_manager() -> TimeoutManager:
    """Get the global timeout manager instance"""
    global _timeout_manager
    if _timeout_manager is None:
        _timeout_manager = TimeoutManager()
    return _timeout_manager

