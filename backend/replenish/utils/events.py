"""
Domain Event Bus (Observer Pattern)

Services publish events; handlers subscribe per event type. The bus is the
outward hook for notification delivery: the planning engine only produces
exception and recommendation records, handlers forward them to whatever sink
is configured (the default LoggingHandler writes them to the application log).
"""
import logging
import threading
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Type

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    occurred_at: datetime = field(default_factory=datetime.utcnow, init=False)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["event"] = self.name
        return payload


@dataclass
class EntityCreatedEvent(DomainEvent):
    entity_type: str = ""
    entity_id: Any = None
    user_id: Optional[int] = None


@dataclass
class EntityUpdatedEvent(DomainEvent):
    entity_type: str = ""
    entity_id: Any = None
    user_id: Optional[int] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None


@dataclass
class PlanStatusChangedEvent(DomainEvent):
    entity_type: str = "plan"
    entity_id: Any = None
    user_id: Optional[int] = None
    old_status: str = ""
    new_status: str = ""
    run_id: Optional[str] = None


@dataclass
class PlanRunCompletedEvent(DomainEvent):
    plan_id: int = 0
    run_id: str = ""
    status: str = ""
    pairs_processed: int = 0
    pairs_errored: int = 0
    exceptions_created: int = 0
    recommendations_created: int = 0


@dataclass
class PlanningExceptionRaisedEvent(DomainEvent):
    plan_id: int = 0
    run_id: str = ""
    exception_id: Optional[int] = None
    exception_type: str = ""
    severity: str = ""
    product_id: str = ""
    location: str = ""
    bucket_start: Optional[str] = None


@dataclass
class PastDueRecommendationEvent(DomainEvent):
    plan_id: int = 0
    run_id: str = ""
    recommendation_id: Optional[int] = None
    product_id: str = ""
    location: str = ""
    recommended_order_date: Optional[str] = None
    final_order_quantity: Optional[str] = None


Handler = Callable[[DomainEvent], None]


class EventBus:

    def __init__(self):
        self._handlers: Dict[Type[DomainEvent], List[Handler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[DomainEvent], handler: Handler) -> None:
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()

    def publish(self, event: DomainEvent) -> None:
        with self._lock:
            handlers = [
                h
                for event_type, registered in self._handlers.items()
                if isinstance(event, event_type)
                for h in registered
            ]
        for handler in handlers:
            # A failing subscriber must not undo the state change that produced the event.
            try:
                handler(event)
            except Exception:  # noqa: BLE001
                logger.exception("event_handler_failed event=%s handler=%s", event.name, getattr(handler, "__name__", handler))


class LoggingHandler:
    """Writes every event to the application log."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logging.getLogger("replenish.events")

    def __call__(self, event: DomainEvent) -> None:
        self._log.info("domain_event name=%s", event.name, extra={"event": event.to_dict()})


_bus = EventBus()


def get_event_bus() -> EventBus:
    return _bus


def configure_event_bus() -> EventBus:
    _bus.clear()
    _bus.subscribe(DomainEvent, LoggingHandler())
    return _bus
