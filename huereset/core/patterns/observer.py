"""
Observer Pattern Implementation for Status Reporting

The UI collaborator (console, web page, test harness) subscribes to a
StatusReporter and receives two kinds of events: log lines with a level,
and orchestrator state changes.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class EventKind(Enum):
    """Types of status events."""
    LOG = "log"
    STATE = "state"


class LogLevel(Enum):
    """Levels of the status log stream."""
    DEBUG = "debug"
    INFO = "info"
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


_PYTHON_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.OK: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass
class StatusEvent:
    """Event data for the status stream."""
    kind: EventKind
    message: str = ""
    level: LogLevel = LogLevel.INFO
    state: Optional[Any] = None
    outcome: Optional[Any] = None
    timestamp: float = field(default_factory=time.time)


class StatusObserver(ABC):
    """Abstract base class for status observers."""

    @abstractmethod
    def notify(self, event: StatusEvent) -> None:
        """Handle a status event."""
        pass

    @abstractmethod
    def get_observer_id(self) -> str:
        """Get unique identifier for this observer."""
        pass

    def get_interested_kinds(self) -> List[EventKind]:
        """Get list of event kinds this observer is interested in."""
        return list(EventKind)


class StatusReporter:
    """Subject that notifies observers of log lines and state changes."""

    def __init__(self):
        self._observers: List[StatusObserver] = []
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, observer: StatusObserver) -> None:
        """Subscribe an observer to status events."""
        if observer not in self._observers:
            self._observers.append(observer)
            self._logger.debug(f"Subscribed observer: {observer.get_observer_id()}")
        else:
            self._logger.warning(f"Observer already subscribed: {observer.get_observer_id()}")

    def unsubscribe(self, observer: StatusObserver) -> None:
        """Unsubscribe an observer from status events."""
        if observer in self._observers:
            self._observers.remove(observer)
            self._logger.debug(f"Unsubscribed observer: {observer.get_observer_id()}")
        else:
            self._logger.warning(f"Observer not found for unsubscription: {observer.get_observer_id()}")

    def log(self, message: str, level: LogLevel = LogLevel.INFO, outcome=None) -> None:
        self.notify_observers(StatusEvent(EventKind.LOG, message=message, level=level, outcome=outcome))

    def state(self, state) -> None:
        self.notify_observers(StatusEvent(EventKind.STATE, message=state.name, state=state))

    def notify_observers(self, event: StatusEvent) -> None:
        """Notify all interested observers, in subscription order."""
        for observer in list(self._observers):
            if event.kind in observer.get_interested_kinds():
                self._safe_notify_observer(observer, event)

    def _safe_notify_observer(self, observer: StatusObserver, event: StatusEvent) -> None:
        """Safely notify a single observer, catching and logging any exceptions."""
        try:
            observer.notify(event)
        except Exception as e:
            self._logger.error(f"Error notifying observer {observer.get_observer_id()}: {e}", exc_info=True)

    def get_observer_count(self) -> int:
        """Get the number of registered observers."""
        return len(self._observers)


class LoggingStatusObserver(StatusObserver):
    """Forwards the status log stream to the standard logging module."""

    def __init__(self, logger_name: str = "status"):
        self._status_logger = logging.getLogger(logger_name)

    def get_observer_id(self) -> str:
        return "logging"

    def get_interested_kinds(self) -> List[EventKind]:
        return [EventKind.LOG]

    def notify(self, event: StatusEvent) -> None:
        self._status_logger.log(_PYTHON_LEVELS[event.level], event.message)
