# Transport_Tracking.py
# Description: Global in-flight indicator for network operations (begin / end markers)
#
# Imports
from typing import Callable, List
#
# Third-Party Imports
from loguru import logger
#
#######################################################################################################################
#
# Functions:

class TransportTracker:
    """Counts network operations currently in flight and tells listeners when the count changes."""

    def __init__(self):
        self._in_flight = 0
        self._listeners: List[Callable[[int], None]] = []

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def busy(self) -> bool:
        return self._in_flight > 0

    def subscribe(self, callback: Callable[[int], None]) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[int], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def begin(self) -> None:
        self._in_flight += 1
        self._notify()

    def end(self) -> None:
        if self._in_flight == 0:
            logger.warning("TransportTracker.end() called with no operation in flight.")
            return
        self._in_flight -= 1
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self._in_flight)
            except Exception as e:
                logger.exception(f"Transport tracking listener failed: {e}")


# Shared by every service unless one is injected
transport_tracker = TransportTracker()

#
# End of Transport_Tracking.py
#######################################################################################################################
