# app/core/events.py
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Lifecycle event names
CONTACT_POST_SAVE = "contact.post_save"
CONTACT_POST_DELETE = "contact.post_delete"
COMPANY_POST_SAVE = "company.post_save"
COMPANY_POST_DELETE = "company.post_delete"
CONTACT_COMPANY_CHANGE = "contact.company_change"


@dataclass(frozen=True)
class SyncContext:
    """Per-call options for a save or delete.

    A sync driver writing data it just pulled from an integration passes
    suppress_change_tracking=True so those writes are not recorded back into
    the field change ledger.
    """
    suppress_change_tracking: bool = False

    @classmethod
    def for_sync(cls) -> "SyncContext":
        return cls(suppress_change_tracking=True)


DEFAULT_CONTEXT = SyncContext()


@dataclass
class ContactEvent:
    contact: Any
    context: SyncContext = DEFAULT_CONTEXT
    is_new: bool = False
    deleted_id: Optional[int] = None


@dataclass
class CompanyEvent:
    company: Any
    context: SyncContext = DEFAULT_CONTEXT
    is_new: bool = False
    deleted_id: Optional[int] = None


@dataclass
class ContactCompanyChangeEvent:
    contact: Any
    company: Any
    added: bool = True
    context: SyncContext = DEFAULT_CONTEXT


@dataclass
class EventDispatcher:
    """Synchronous event dispatcher with per-listener priority.

    Listeners with a higher priority run first; listeners with equal priority
    run in registration order.
    """
    _listeners: Dict[str, List[Tuple[int, int, Callable]]] = field(default_factory=dict)
    _counter: int = 0

    def add_listener(self, event_name: str, listener: Callable, priority: int = 0) -> None:
        self._counter += 1
        self._listeners.setdefault(event_name, []).append((-priority, self._counter, listener))
        self._listeners[event_name].sort(key=lambda item: (item[0], item[1]))

    def add_subscriber(self, subscriber) -> None:
        """Register every (method name, priority) pair a subscriber declares"""
        for event_name, (method_name, priority) in subscriber.get_subscribed_events().items():
            self.add_listener(event_name, getattr(subscriber, method_name), priority)

    def has_listeners(self, event_name: str) -> bool:
        return bool(self._listeners.get(event_name))

    def get_listeners(self, event_name: str) -> List[Callable]:
        return [listener for _, _, listener in self._listeners.get(event_name, [])]

    def dispatch(self, event_name: str, event):
        if not self.has_listeners(event_name):
            logger.debug(f"No listeners for {event_name}")
            return event

        for listener in self.get_listeners(event_name):
            logger.debug(f"Dispatching {event_name} to {getattr(listener, '__qualname__', listener)}")
            listener(event)
        return event
