"""
contactshare Exchange Session
State machine driving one attempt to present an identity record:
connect to the registry, read the identity, encode it, present or hand it off,
and terminate cleanly.

Every asynchronous result is gated on a liveness check; once TERMINATED the
session ignores late connection, read and encode results.
"""

import asyncio
import hashlib
import inspect
import logging
import secrets
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from ..codec.canonical_utils import stable_hash
from ..codec.contact_codec import ContactCodec
from ..config import ExchangeConfig
from ..connector.service_connector import ServiceConnector
from ..errors import SessionStateError
from ..models.contact import Contact
from ..notifications.channel import NotificationChannel, Subscription, get_notification_channel
from ..registry.identity_registry import IdentityRegistry, RegistryHandle
from ..reliability.timeout_manager import TimeoutCategory, TimeoutManager

logger = logging.getLogger(__name__)

TargetSelector = Union[bytes, Contact, None]
PayloadCallback = Callable[[str], Any]


class ExchangeState(str, Enum):
    """Exchange session states"""
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    PRESENTING = "presenting"
    TERMINATED = "terminated"


class TerminationReason(str, Enum):
    """Why a session reached TERMINATED"""
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    MODE_SWITCH = "mode_switch"
    TORN_DOWN = "torn_down"


@dataclass
class SessionEvent:
    """Event emitted during an exchange session"""
    event_name: str
    session_id: str
    timestamp: datetime
    data: Dict[str, Any] = field(default_factory=dict)
    idempotency_key: str = field(init=False)

    def __post_init__(self):
        self.idempotency_key = hashlib.sha256(
            f"{self.session_id}:{self.event_name}".encode('utf-8')
        ).hexdigest()


class ExchangeSession:
    """
    One exchange attempt, owned by the caller that started it

    Usage:
        async with ExchangeSession.for_registry(registry, on_present=show) as session:
            session.start()
            await session.wait_settled()
            await session.share()

    Args:
        connector: Connector owned by this session alone
        target: Public key (or Contact) of a known contact to re-share;
            None presents the local identity
        codec: Payload codec
        channel: Notification channel carrying the cancellation topic
        config: Session configuration
        timeout_manager: Timeouts for registry reads and encoding
        executor: Executor for registry reads and encoding; a private
            thread pool is created when omitted
        on_present: Receives the payload once the session reaches PRESENTING
        share_handler: Receives the payload on hand-off
        on_error: Receives the fatal error, at most once
    """

    def __init__(
        self,
        connector: ServiceConnector,
        target: TargetSelector = None,
        codec: Optional[ContactCodec] = None,
        channel: Optional[NotificationChannel] = None,
        config: Optional[ExchangeConfig] = None,
        timeout_manager: Optional[TimeoutManager] = None,
        executor: Optional[Executor] = None,
        on_present: Optional[PayloadCallback] = None,
        share_handler: Optional[PayloadCallback] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.config = config or ExchangeConfig()
        self.session_id = secrets.token_hex(8)
        self.target_key: Optional[bytes] = target.public_key if isinstance(target, Contact) else target

        self._connector = connector
        self._codec = codec or ContactCodec()
        self._channel = channel or get_notification_channel()
        self._timeouts = timeout_manager or TimeoutManager(self.config.timeouts)
        self._executor = executor
        self._owns_executor = executor is None
        self._on_present = on_present
        self._share_handler = share_handler
        self._on_error = on_error

        self._state = ExchangeState.IDLE
        self._handle: Optional[RegistryHandle] = None
        self._payload: Optional[str] = None
        self._subscription: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self._sharing = False

        self.error: Optional[Exception] = None
        self.termination_reason: Optional[TerminationReason] = None
        self.event_handlers: List[Callable[[SessionEvent], None]] = []

    @classmethod
    def for_registry(cls, registry: IdentityRegistry, config: Optional[ExchangeConfig] = None,
                     **kwargs) -> "ExchangeSession":
        """Create a session with its own connector to registry"""
        config = config or ExchangeConfig()
        timeout_manager = kwargs.pop("timeout_manager", None) or TimeoutManager(config.timeouts)
        connector = ServiceConnector(registry, timeout_manager)
        return cls(connector, config=config, timeout_manager=timeout_manager, **kwargs)

    @property
    def state(self) -> ExchangeState:
        return self._state

    @property
    def payload(self) -> Optional[str]:
        """Payload available while PRESENTING"""
        return self._payload

    @property
    def is_terminated(self) -> bool:
        return self._state is ExchangeState.TERMINATED

    @property
    def failure_message(self) -> Optional[str]:
        """Single user-facing message for a fatal failure"""
        return str(self.error) if self.error is not None else None

    def add_event_handler(self, handler: Callable[[SessionEvent], None]):
        """Add event handler for session events"""
        self.event_handlers.append(handler)

    def _emit_event(self, event_name: str, data: Dict[str, Any] = None) -> SessionEvent:
        event = SessionEvent(
            event_name=event_name,
            session_id=self.session_id,
            timestamp=datetime.now(timezone.utc),
            data=data or {}
        )

        for handler in self.event_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error: {e}")

        return event

    def start(self) -> None:
        """
        IDLE -> CONNECTING

        Subscribes to the cancellation topic and requests the registry
        connection. Must be called from a running event loop.
        """
        if self._state is ExchangeState.TERMINATED:
            logger.debug(f"[{self.session_id}] start() ignored, session terminated")
            return
        if self._state is not ExchangeState.IDLE:
            raise SessionStateError(f"Session already started (state {self._state.value})")

        loop = asyncio.get_running_loop()
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.worker_threads,
                thread_name_prefix="contactshare"
            )

        self._subscription = self._channel.subscribe(self.config.cancellation_topic, self._on_cancellation)
        self._transition(ExchangeState.CONNECTING, "start requested")
        future = self._connector.connect()
        self._task = loop.create_task(self._run(future))

        self._emit_event("session_started", {
            "target": "own_identity" if self.target_key is None else "contact",
            "cancellation_topic": self.config.cancellation_topic,
        })

    async def wait_settled(self) -> ExchangeState:
        """Wait until the session is PRESENTING or TERMINATED"""
        task = self._task
        if task is not None and task is not asyncio.current_task():
            await asyncio.wait({task})
        return self._state

    async def _run(self, connection: asyncio.Future) -> None:
        try:
            handle = await asyncio.shield(connection)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if self._alive():
                self._fail(e)
            return

        if not self._alive():
            return
        self._handle = handle
        self._transition(ExchangeState.READY, "registry connected")

        try:
            contact = await self._off_thread(
                TimeoutCategory.REGISTRY_READ, "registry read", self._read_target, handle
            )
            if not self._alive():
                return
            payload = await self._off_thread(
                TimeoutCategory.PAYLOAD_ENCODE, "payload encode", self._codec.encode, contact
            )
        except Exception as e:
            if self._alive():
                self._fail(e)
            return

        if not self._alive():
            return
        self._payload = payload
        self._transition(ExchangeState.PRESENTING, "payload ready")
        self._emit_event("payload_ready", {
            "key_id": contact.key_id,
            "fingerprint": stable_hash(payload),
        })

        if self._on_present is not None:
            try:
                await self._deliver(self._on_present, payload)
            except Exception as e:
                if self._alive():
                    self._fail(e)

    def _read_target(self, handle: RegistryHandle) -> Contact:
        if self.target_key is None:
            return handle.get_own_contact()
        return handle.get_contact(self.target_key)

    async def _off_thread(self, category: TimeoutCategory, operation: str, func, *args):
        loop = asyncio.get_running_loop()
        return await self._timeouts.execute_with_timeout(
            category, operation, loop.run_in_executor(self._executor, func, *args)
        )

    async def _deliver(self, collaborator: PayloadCallback, payload: str) -> None:
        result = collaborator(payload)
        if inspect.isawaitable(result):
            await self._timeouts.execute_with_timeout(
                TimeoutCategory.PAYLOAD_SHARE, "payload delivery", result
            )

    async def share(self) -> bool:
        """
        Hand the payload to the share collaborator, then terminate

        Returns:
            True if the payload was handed off, False if the session had
            terminated before or during the hand-off

        Raises:
            SessionStateError: If called before PRESENTING, without a share handler
                or while another hand-off is in progress
        """
        if self._state is ExchangeState.TERMINATED:
            logger.debug(f"[{self.session_id}] share() ignored, session terminated")
            return False
        if self._state is not ExchangeState.PRESENTING:
            raise SessionStateError(f"Cannot share in state {self._state.value}")
        if self._share_handler is None:
            raise SessionStateError("No share handler configured")
        if self._sharing:
            raise SessionStateError("Payload hand-off already in progress")

        self._sharing = True
        payload = self._payload
        try:
            await self._deliver(self._share_handler, payload)
        except Exception as e:
            if self._alive():
                self._fail(e)
            return False

        if not self._alive():
            logger.info(f"[{self.session_id}] Hand-off finished after termination ({self.termination_reason.value})")
            return False

        self._emit_event("payload_shared", {"fingerprint": stable_hash(payload)})
        self._terminate(TerminationReason.COMPLETED, "payload handed off")
        return True

    def switch_mode(self) -> bool:
        """Terminate so the caller can start the counterpart (scanner) flow"""
        return self._terminate(TerminationReason.MODE_SWITCH, "mode switch requested")

    def _on_cancellation(self, topic: str, data: Any) -> None:
        if self._alive():
            logger.info(f"[{self.session_id}] Exchange completed elsewhere ({topic})")
            self._terminate(TerminationReason.CANCELLED, f"cancelled via {topic}")

    def _fail(self, error: Exception) -> None:
        logger.error(f"[{self.session_id}] Exchange failed: {error}")
        self._terminate(TerminationReason.FAILED, str(error), error)

    def _alive(self) -> bool:
        return self._state is not ExchangeState.TERMINATED

    def _transition(self, new_state: ExchangeState, message: str = "") -> None:
        old_state = self._state
        self._state = new_state
        logger.info(f"[{self.session_id}] State transition: {old_state.value} -> {new_state.value} ({message})")

    def _terminate(self, reason: TerminationReason, message: str = "",
                   error: Optional[Exception] = None) -> bool:
        if self._state is ExchangeState.TERMINATED:
            return False

        self._transition(ExchangeState.TERMINATED, message or reason.value)
        self.termination_reason = reason
        self._payload = None
        self._handle = None

        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

        self._emit_event("session_terminated", {
            "reason": reason.value,
            "error": str(error) if error is not None else None,
        })

        if error is not None:
            self.error = error
            if self._on_error is not None:
                try:
                    self._on_error(error)
                except Exception as e:
                    logger.error(f"Error handler failed: {e}")

        return True

    async def close(self) -> None:
        """
        Tear the session down from any state

        Forces TERMINATED, releases the cancellation subscription and the
        registry connection. Only the first call has any effect.
        """
        if self._closed:
            return
        self._closed = True
        self._terminate(TerminationReason.TORN_DOWN, "session torn down")

        try:
            if self._subscription is not None:
                self._channel.unsubscribe(self._subscription)
                self._subscription = None

            task = self._task
            if task is not None and task is not asyncio.current_task():
                await asyncio.wait({task})

            await self._connector.disconnect()
        finally:
            if self._owns_executor and self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None

    async def __aenter__(self) -> "ExchangeSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
