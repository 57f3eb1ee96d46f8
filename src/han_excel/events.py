"""Priority-ordered event bus used by the builder for lifecycle events.

Listeners are registered per event type and invoked in descending priority
order (ties keep registration order). Listener failures are logged and
never reach the code that emitted the event.
"""

import asyncio
import inspect
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from han_excel.utils.logging import get_logger

logger = get_logger(__name__)

EventListener = Callable[[Any], Awaitable[None] | None]

DEFAULT_EVENT_TYPE = "default"


@dataclass(frozen=True)
class ListenerOptions:
    """Registration options for a listener.

    Attributes:
        once: Deactivate the listener after its first invocation.
        is_async: Await the listener during ``emit``.
        priority: Higher priorities run first.
        stop_propagation: Skip lower-priority listeners after this one runs.
    """

    once: bool = False
    is_async: bool = False
    priority: int = 0
    stop_propagation: bool = False


@dataclass
class ListenerRegistration:
    type: str
    listener: EventListener
    options: ListenerOptions
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    active: bool = True
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


def _event_type(event: Any) -> str:
    event_type = getattr(event, "type", None)
    if event_type is None and isinstance(event, dict):
        event_type = event.get("type")
    if event_type is None:
        return DEFAULT_EVENT_TYPE
    return event_type.value if isinstance(event_type, Enum) else str(event_type)


def _type_key(event_type: str | Enum) -> str:
    return event_type.value if isinstance(event_type, Enum) else event_type


class EventBus:
    """Registry of listeners keyed by event type."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[ListenerRegistration]] = {}
        self._background: set[asyncio.Future[Any]] = set()

    def on(
        self,
        event_type: str | Enum,
        listener: EventListener,
        options: ListenerOptions | None = None,
    ) -> str:
        """Register a listener.

        Returns:
            Registration id usable with :meth:`off`.
        """
        key = _type_key(event_type)
        registration = ListenerRegistration(
            type=key, listener=listener, options=options or ListenerOptions()
        )
        registrations = self._listeners.setdefault(key, [])
        registrations.append(registration)
        registrations.sort(key=lambda r: -r.options.priority)
        return registration.id

    def once(
        self,
        event_type: str | Enum,
        listener: EventListener,
        options: ListenerOptions | None = None,
    ) -> str:
        base = options or ListenerOptions()
        return self.on(
            event_type,
            listener,
            ListenerOptions(
                once=True,
                is_async=base.is_async,
                priority=base.priority,
                stop_propagation=base.stop_propagation,
            ),
        )

    def off(self, event_type: str | Enum, listener_id: str) -> bool:
        registrations = self._listeners.get(_type_key(event_type))
        if not registrations:
            return False
        for index, registration in enumerate(registrations):
            if registration.id == listener_id:
                del registrations[index]
                return True
        return False

    def off_all(self, event_type: str | Enum) -> int:
        """Remove every listener of one type and return how many there were."""
        return len(self._listeners.pop(_type_key(event_type), []))

    def clear(self) -> None:
        self._listeners.clear()

    def get_listeners(self, event_type: str | Enum) -> list[ListenerRegistration]:
        return list(self._listeners.get(_type_key(event_type), []))

    def listener_count(self, event_type: str | Enum) -> int:
        return len(self._listeners.get(_type_key(event_type), []))

    def event_types(self) -> list[str]:
        return list(self._listeners)

    async def emit(self, event: Any) -> None:
        """Dispatch an event, awaiting listeners registered with ``is_async``."""
        event_type = _event_type(event)
        for registration in self._active(event_type):
            if registration.options.once:
                registration.active = False
            try:
                result = registration.listener(event)
                if inspect.isawaitable(result):
                    if registration.options.is_async:
                        await result
                    else:
                        self._schedule(result, event_type)
            except Exception:
                logger.exception(
                    "Event listener failed",
                    event_type=event_type,
                    listener_id=registration.id,
                )
            if registration.options.stop_propagation:
                break
        self._prune(event_type)

    def emit_sync(self, event: Any) -> None:
        """Dispatch an event without awaiting anything."""
        event_type = _event_type(event)
        for registration in self._active(event_type):
            if registration.options.once:
                registration.active = False
            try:
                result = registration.listener(event)
                if inspect.iscoroutine(result):
                    result.close()
                    logger.warning(
                        "Async listener skipped by synchronous emit",
                        event_type=event_type,
                        listener_id=registration.id,
                    )
            except Exception:
                logger.exception(
                    "Event listener failed",
                    event_type=event_type,
                    listener_id=registration.id,
                )
            if registration.options.stop_propagation:
                break
        self._prune(event_type)

    def _active(self, event_type: str) -> list[ListenerRegistration]:
        return [r for r in self._listeners.get(event_type, []) if r.active]

    def _prune(self, event_type: str) -> None:
        registrations = self._listeners.get(event_type)
        if registrations is None:
            return
        active = [r for r in registrations if r.active]
        if len(active) != len(registrations):
            self._listeners[event_type] = active

    def _schedule(self, awaitable: Awaitable[Any], event_type: str) -> None:
        future = asyncio.ensure_future(awaitable)
        self._background.add(future)

        def _done(f: asyncio.Future[Any]) -> None:
            self._background.discard(f)
            if not f.cancelled() and f.exception() is not None:
                logger.error(
                    "Event listener failed",
                    event_type=event_type,
                    error=repr(f.exception()),
                )

        future.add_done_callback(_done)
