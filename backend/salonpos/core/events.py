"""
In-process "appointments changed" notifications.

Publishers call `publish(tenant_id)` after a committed appointment write.
Listeners get only the tenant id; they are expected to re-fetch.
"""
import logging
import threading
from collections import defaultdict
from typing import Callable, DefaultDict, List

logger = logging.getLogger(__name__)

Listener = Callable[[int], None]


class AppointmentEvents:
    def __init__(self) -> None:
        self._listeners: DefaultDict[int, List[Listener]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, tenant_id: int, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns the function that unsubscribes it."""
        with self._lock:
            self._listeners[tenant_id].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners[tenant_id]:
                    self._listeners[tenant_id].remove(listener)

        return unsubscribe

    def publish(self, tenant_id: int) -> None:
        with self._lock:
            listeners = list(self._listeners.get(tenant_id, []))
        for listener in listeners:
            # The write already committed; a broken listener must not undo it
            try:
                listener(tenant_id)
            except Exception:
                logger.exception("Appointment listener failed for tenant %s", tenant_id)

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()


appointment_events = AppointmentEvents()
