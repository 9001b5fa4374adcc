# Status_Reporter.py
# Description: Notification channel for sync status events (info / error / done)
#
# Imports
from typing import Callable, List, Optional
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from gridsync.sync_api.schemas import StatusEvent
#
#######################################################################################################################
#
# Functions:

StatusCallback = Callable[[StatusEvent], None]


def log_status_event(event: StatusEvent) -> None:
    """Default listener: writes each status event to the application log."""
    if event.type == "error":
        logger.error(f"[status] {event.header}: {event.content}")
    elif event.type == "done":
        logger.debug("[status] done")
    else:
        logger.info(f"[status] {event.header}: {event.content}")


class StatusReporter:
    """
    Fans status events out to the registered listeners, in call order.

    Reporting with no listener is a no-op. A listener that raises is logged and
    does not stop delivery to the others.
    """

    def __init__(self, callback: Optional[StatusCallback] = None):
        self._listeners: List[StatusCallback] = []
        if callback is not None:
            self._listeners.append(callback)

    def add_listener(self, callback: StatusCallback) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: StatusCallback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    @property
    def listeners(self) -> List[StatusCallback]:
        return list(self._listeners)

    def report(self, event: StatusEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.exception(f"Status listener {listener!r} failed on '{event.type}' event: {e}")

    def info(self, header: Optional[str], content: Optional[str], **counters) -> None:
        self.report(StatusEvent(type="info", header=header, content=content, **counters))

    def error(self, header: Optional[str], content: Optional[str]) -> None:
        self.report(StatusEvent(type="error", header=header, content=content))

    def done(self) -> None:
        self.report(StatusEvent(type="done", header=None, content=None))

#
# End of Status_Reporter.py
#######################################################################################################################
