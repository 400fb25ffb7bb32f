"""
Tests for the Service Connector
Validate single-connection rule, failure resolution and guaranteed release
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from contactshare.connector.service_connector import ServiceConnector
from contactshare.errors import ConnectionFailedError, DuplicateConnectError
from contactshare.registry.identity_registry import InMemoryIdentityRegistry
from contactshare.reliability.timeout_manager import TimeoutConfig, TimeoutManager
from tests.factories import make_contact


class TestServiceConnector:
    """Test registry connection lifecycle"""

    @pytest.mark.asyncio
    async def test_connect_resolves_handle(self):
        registry = InMemoryIdentityRegistry(own_contact=make_contact())
        connector = ServiceConnector(registry)

        handle = await connector.connect()

        assert connector.connected
        assert handle.get_own_contact() == make_contact()
        assert registry.open_handle_count == 1

    @pytest.mark.asyncio
    async def test_connect_does_not_block_caller(self):
        registry = InMemoryIdentityRegistry(own_contact=make_contact(), connect_delay=0.05)
        connector = ServiceConnector(registry)

        future = connector.connect()

        assert not future.done()
        assert connector.connecting
        await future
        assert connector.connected

    @pytest.mark.asyncio
    async def test_duplicate_connect_while_pending(self):
        registry = InMemoryIdentityRegistry(own_contact=make_contact(), connect_delay=0.05)
        connector = ServiceConnector(registry)
        future = connector.connect()

        with pytest.raises(DuplicateConnectError):
            connector.connect()

        await future
        assert registry.open_handle_count == 1

    @pytest.mark.asyncio
    async def test_duplicate_connect_while_held(self):
        connector = ServiceConnector(InMemoryIdentityRegistry(own_contact=make_contact()))
        await connector.connect()

        with pytest.raises(DuplicateConnectError):
            connector.connect()

    @pytest.mark.asyncio
    async def test_registry_unavailable(self):
        registry = InMemoryIdentityRegistry(own_contact=make_contact())
        registry.available = False
        connector = ServiceConnector(registry)

        with pytest.raises(ConnectionFailedError):
            await connector.connect()

        assert not connector.connected

    @pytest.mark.asyncio
    async def test_registry_crash_is_connection_failure(self):
        registry = Mock()
        registry.open_handle = AsyncMock(side_effect=RuntimeError("registry process died"))
        connector = ServiceConnector(registry)

        with pytest.raises(ConnectionFailedError, match="registry process died"):
            await connector.connect()

    @pytest.mark.asyncio
    async def test_connect_timeout(self):
        registry = InMemoryIdentityRegistry(own_contact=make_contact(), connect_delay=1.0)
        connector = ServiceConnector(registry, TimeoutManager(TimeoutConfig(registry_connect=0.01)))

        with pytest.raises(ConnectionFailedError, match="timed out"):
            await connector.connect()

        assert registry.open_handle_count == 0

    @pytest.mark.asyncio
    async def test_disconnect_without_connect(self):
        connector = ServiceConnector(InMemoryIdentityRegistry())

        await connector.disconnect()
        await connector.disconnect()

        assert not connector.connected

    @pytest.mark.asyncio
    async def test_disconnect_releases_handle(self):
        registry = InMemoryIdentityRegistry(own_contact=make_contact())
        connector = ServiceConnector(registry)
        handle = await connector.connect()

        await connector.disconnect()
        await connector.disconnect()

        assert handle.released
        assert registry.open_handle_count == 0
        assert not connector.connected

    @pytest.mark.asyncio
    async def test_disconnect_while_pending(self):
        registry = InMemoryIdentityRegistry(own_contact=make_contact(), connect_delay=0.05)
        connector = ServiceConnector(registry)
        future = connector.connect()

        await connector.disconnect()
        await asyncio.sleep(0.1)

        assert future.cancelled()
        assert registry.open_handle_count == 0

    @pytest.mark.asyncio
    async def test_abandoned_handle_is_released(self):
        """A handle arriving after the request was abandoned never leaks"""
        registry = InMemoryIdentityRegistry(own_contact=make_contact(), connect_delay=0.02)
        connector = ServiceConnector(registry)
        future = connector.connect()

        future.cancel()
        await asyncio.sleep(0.1)

        assert registry.open_handle_count == 0
        assert not connector.connected

    @pytest.mark.asyncio
    async def test_reconnect_after_disconnect(self):
        registry = InMemoryIdentityRegistry(own_contact=make_contact())
        connector = ServiceConnector(registry)
        await connector.connect()
        await connector.disconnect()

        await connector.connect()

        assert connector.connected
        assert registry.open_handle_count == 1
