"""
contactshare - out-of-band exchange of identity records

Encodes contacts into canonical payloads for scannable codes and drives the
exchange session that presents or re-shares them.
"""

__version__ = "1.0.0"

from .errors import (
    ContactShareError,
    ConnectionFailedError,
    DuplicateConnectError,
    EncodingError,
    DecodeError,
    MalformedPayloadError,
    MissingFieldError,
    InvalidFieldError,
    InvalidKeyError,
    RegistryReadError,
    IdentityUnavailableError,
    ContactNotFoundError,
    RegistryHandleReleasedError,
    SessionStateError,
)
from .models.contact import Contact
from .codec.contact_codec import ContactCodec
from .config import ExchangeConfig, INCOMING_CONTACT_TOPIC
from .connector.service_connector import ServiceConnector
from .notifications.channel import NotificationChannel, get_notification_channel
from .registry.identity_registry import InMemoryIdentityRegistry
from .session.exchange_session import ExchangeSession, ExchangeState, TerminationReason

__all__ = [
    "ContactShareError",
    "ConnectionFailedError",
    "DuplicateConnectError",
    "EncodingError",
    "DecodeError",
    "MalformedPayloadError",
    "MissingFieldError",
    "InvalidFieldError",
    "InvalidKeyError",
    "RegistryReadError",
    "IdentityUnavailableError",
    "ContactNotFoundError",
    "RegistryHandleReleasedError",
    "SessionStateError",
    "Contact",
    "ContactCodec",
    "ExchangeConfig",
    "INCOMING_CONTACT_TOPIC",
    "ServiceConnector",
    "NotificationChannel",
    "get_notification_channel",
    "InMemoryIdentityRegistry",
    "ExchangeSession",
    "ExchangeState",
    "TerminationReason",
]
