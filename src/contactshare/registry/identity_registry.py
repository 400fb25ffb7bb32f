"""
contactshare Identity Registry
Interface to the long-lived store of the local identity and known contacts,
plus an in-memory implementation used by the CLI and tests.

The exchange core only reads through a RegistryHandle; it never mutates
registry state.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Protocol

from ..crypto import compute_key_id
from ..errors import (
    ConnectionFailedError,
    ContactNotFoundError,
    IdentityUnavailableError,
    RegistryHandleReleasedError,
)
from ..models.contact import Contact

logger = logging.getLogger(__name__)


class RegistryHandle(Protocol):
    """Read-only view of registry state, valid while its connection is held"""

    def get_own_contact(self) -> Contact:
        ...

    def get_contact(self, public_key: bytes) -> Contact:
        ...


class IdentityRegistry(Protocol):
    """Process-wide identity store the exchange core connects to"""

    async def open_handle(self) -> RegistryHandle:
        ...

    async def release_handle(self, handle: RegistryHandle) -> None:
        ...


class InMemoryRegistryHandle:
    """Borrowed view over an InMemoryIdentityRegistry"""

    def __init__(self, registry: "InMemoryIdentityRegistry"):
        self._registry = registry
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        self._released = True

    def get_own_contact(self) -> Contact:
        self._check_live()
        own = self._registry.own_contact
        if own is None:
            raise IdentityUnavailableError("Registry holds no local identity")
        return own

    def get_contact(self, public_key: bytes) -> Contact:
        self._check_live()
        contact = self._registry.find_contact(public_key)
        if contact is None:
            raise ContactNotFoundError(compute_key_id(public_key))
        return contact

    def _check_live(self) -> None:
        if self._released:
            raise RegistryHandleReleasedError("Registry handle used after release")


class InMemoryIdentityRegistry:
    """In-memory registry; `available` simulates the registry process being up"""

    def __init__(self, own_contact: Optional[Contact] = None, contacts: Optional[List[Contact]] = None,
                 connect_delay: float = 0.0):
        self.own_contact = own_contact
        self.available = True
        self.connect_delay = connect_delay
        self._contacts: Dict[bytes, Contact] = {}
        self._open_handles: List[InMemoryRegistryHandle] = []
        for contact in contacts or []:
            self.add_contact(contact)

    def add_contact(self, contact: Contact) -> None:
        """Add or replace a contact, keyed by public key"""
        self._contacts[contact.public_key] = contact

    def remove_contact(self, public_key: bytes) -> None:
        self._contacts.pop(public_key, None)

    def find_contact(self, public_key: bytes) -> Optional[Contact]:
        return self._contacts.get(public_key)

    @property
    def contacts(self) -> List[Contact]:
        return list(self._contacts.values())

    @property
    def open_handle_count(self) -> int:
        return len(self._open_handles)

    async def open_handle(self) -> InMemoryRegistryHandle:
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if not self.available:
            raise ConnectionFailedError("Identity registry is not available")

        handle = InMemoryRegistryHandle(self)
        self._open_handles.append(handle)
        logger.debug(f"Registry handle opened ({len(self._open_handles)} open)")
        return handle

    async def release_handle(self, handle: InMemoryRegistryHandle) -> None:
        handle.release()
        if handle in self._open_handles:
            self._open_handles.remove(handle)
        logger.debug(f"Registry handle released ({len(self._open_handles)} open)")
