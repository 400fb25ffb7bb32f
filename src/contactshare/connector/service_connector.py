"""
contactshare Service Connector
Single asynchronous, cancellable connection to the identity registry
"""

import asyncio
import logging
from typing import Optional

from ..errors import ConnectionFailedError, DuplicateConnectError
from ..registry.identity_registry import IdentityRegistry, RegistryHandle
from ..reliability.timeout_manager import (
    OperationTimeoutError,
    TimeoutCategory,
    TimeoutManager,
    get_timeout_manager,
)

logger = logging.getLogger(__name__)


class ServiceConnector:
    """
    Holds at most one registry connection

    connect() returns a future resolved with the handle or with
    ConnectionFailedError; disconnect() is idempotent and releases whatever
    was acquired, including a handle that arrives after disconnecting.
    """

    def __init__(self, registry: IdentityRegistry, timeout_manager: Optional[TimeoutManager] = None):
        self._registry = registry
        self._timeouts = timeout_manager or get_timeout_manager()
        self._pending: Optional[asyncio.Future] = None
        self._task: Optional[asyncio.Task] = None
        self._handle: Optional[RegistryHandle] = None

    @property
    def connected(self) -> bool:
        return self._handle is not None

    @property
    def connecting(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def connect(self) -> asyncio.Future:
        """
        Issue a connection request without blocking the caller

        Must be called from a running event loop.

        Raises:
            DuplicateConnectError: If a connection is pending or held
        """
        if self.connecting or self.connected:
            raise DuplicateConnectError("A registry connection is already pending or held")

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending = future
        self._task = loop.create_task(self._do_connect(future))
        logger.debug("Registry connection requested")
        return future

    async def _do_connect(self, future: asyncio.Future) -> None:
        try:
            handle = await self._timeouts.execute_with_timeout(
                TimeoutCategory.REGISTRY_CONNECT,
                "registry connection",
                self._registry.open_handle(),
            )
        except OperationTimeoutError as e:
            self._fail(future, ConnectionFailedError(str(e)))
            return
        except ConnectionFailedError as e:
            self._fail(future, e)
            return
        except Exception as e:
            self._fail(future, ConnectionFailedError(f"Registry connection failed: {e}"))
            return

        if future.done():
            # Abandoned while connecting
            logger.info("Releasing registry handle that arrived after the request was abandoned")
            await self._release(handle)
            return

        self._handle = handle
        future.set_result(handle)
        logger.info("Connected to identity registry")

    def _fail(self, future: asyncio.Future, error: ConnectionFailedError) -> None:
        logger.error(f"Registry connection failed: {error}")
        if not future.done():
            future.set_exception(error)

    async def disconnect(self) -> None:
        """Cancel a pending connection and release a held handle; safe to repeat"""
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        handle, self._handle = self._handle, None
        if handle is not None:
            await self._release(handle)
            logger.info("Disconnected from identity registry")

    async def _release(self, handle: RegistryHandle) -> None:
        try:
            await self._timeouts.execute_with_timeout(
                TimeoutCategory.REGISTRY_RELEASE,
                "registry handle release",
                self._registry.release_handle(handle),
            )
        except Exception as e:
            logger.warning(f"Registry handle release failed: {e}")
