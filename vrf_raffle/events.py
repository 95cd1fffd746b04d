"""
Raffle notifications
Events are emitted after the state change that produced them has committed
"""

import logging
import threading
from collections import defaultdict, deque
from dataclasses import asdict, dataclass
from typing import Callable, Deque, Dict, List

logger = logging.getLogger(__name__)

# Most recent events kept in memory per emitter
EVENT_LOG_SIZE = 1000


@dataclass(frozen=True)
class RaffleEvent:
    @property
    def name(self):
        return type(self).__name__

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class EnteredRaffle(RaffleEvent):
    player: str


@dataclass(frozen=True)
class RequestedRaffleWinner(RaffleEvent):
    request_id: int


@dataclass(frozen=True)
class WinnerPicked(RaffleEvent):
    winner: str


@dataclass(frozen=True)
class RandomWordsRequested(RaffleEvent):
    request_id: int
    subscription_id: int
    consumer: str


@dataclass(frozen=True)
class RandomWordsFulfilled(RaffleEvent):
    request_id: int
    payment: int
    success: bool


class EventEmitter:
    """
    Fire-and-forget listener registry with a bounded log of recent events

    Listener failures are logged and never reach the emitting operation.
    """

    def __init__(self, publisher=None, max_events=EVENT_LOG_SIZE):
        self.publisher = publisher
        self.events: Deque[RaffleEvent] = deque(maxlen=max_events)
        self._listeners: Dict[str, List[Callable]] = defaultdict(list)
        self._lock = threading.Lock()

    def on(self, event_name, callback):
        with self._lock:
            self._listeners[event_name].append(callback)
        return callback

    def once(self, event_name, callback):
        """Register a listener that is removed after its first call"""
        def wrapper(event):
            self.off(event_name, wrapper)
            callback(event)

        return self.on(event_name, wrapper)

    def off(self, event_name, callback):
        with self._lock:
            listeners = self._listeners.get(event_name, [])
            if callback in listeners:
                listeners.remove(callback)

    def emit(self, event):
        with self._lock:
            self.events.append(event)
            listeners = list(self._listeners.get(event.name, []))

        for callback in listeners:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Listener for {event.name} failed: {e}", exc_info=True)

        if self.publisher is not None and self.publisher.enabled:
            self.publisher.publish_raffle_event(event)

    def events_named(self, event_name):
        with self._lock:
            return [event for event in self.events if event.name == event_name]
