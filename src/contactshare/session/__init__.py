"""
Exchange session state machine
"""

from .exchange_session import (
    ExchangeSession,
    ExchangeState,
    SessionEvent,
    TerminationReason,
)

__all__ = [
    "ExchangeSession",
    "ExchangeState",
    "SessionEvent",
    "TerminationReason",
]
