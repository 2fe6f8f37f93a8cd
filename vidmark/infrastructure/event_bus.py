import threading
from typing import Type, Callable, List, Dict, Any, Optional
from vidmark.domain.events import Event

class EventBus:
    """A simple synchronous event bus for decoupled communication.

    Workers publish from their own threads; delivery is serialized so subscribers
    never run concurrently with each other.
    """

    def __init__(self):
        self._subscribers: Dict[Type[Event], List[Callable[[Any], None]]] = {}
        self._lock = threading.RLock()

    def subscribe(self, event_type: Type[Event], callback: Optional[Callable[[Any], None]] = None):
        """Subscribes a callback to a specific event type. Can be used as a decorator."""
        if callback is None:
            def decorator(func: Callable[[Any], None]):
                self.subscribe(event_type, func)
                return func
            return decorator

        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)

    def publish(self, event: Event):
        """Publishes an event to all interested subscribers."""
        with self._lock:
            for callback in list(self._subscribers.get(type(event), [])):
                callback(event)
