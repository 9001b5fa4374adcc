# Data_Container.py
# Description: In-memory row container bound to a dataset, plus the registry that looks containers up by name.
#
# Imports
from typing import Any, Callable, Dict, List, Optional
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from gridsync.sync_api.schemas import Row
#
#######################################################################################################################
#
# Functions:

SubscriberCallback = Callable[[str, Any], None]


class DataContainer:
    """
    Holds the rows of one dataset in arrival order.

    Subscribers are called with ``(event_name, data)``; the sync engine emits
    "collection-changed" on reload and "collection-sorted" after a successful load.
    """

    def __init__(self, rows: Optional[List[Row]] = None):
        self._rows: List[Row] = list(rows or [])
        self._collection: List[Row] = list(self._rows)
        self._subscribers: List[SubscriberCallback] = []
        self.current_entity: Optional[Row] = None

    def __len__(self) -> int:
        return len(self._rows)

    def set_data(self, rows: List[Row], add: bool = False) -> None:
        """Replaces the contents with ``rows``, or appends them when ``add`` is set."""
        if add:
            self._rows.extend(rows)
        else:
            self._rows = list(rows)

    def replace(self, rows: List[Row], at_index: int, count: int = 1) -> None:
        """Swaps ``count`` rows starting at ``at_index`` for ``rows``; everything else keeps its position."""
        if at_index < 0 or at_index > len(self._rows):
            raise IndexError(f"replace index {at_index} out of range for {len(self._rows)} rows")
        self._rows[at_index:at_index + count] = rows

    def get_all_data(self) -> List[Row]:
        return list(self._rows)

    def get_collection(self) -> List[Row]:
        """Rows as of the last reload_datasource()."""
        return list(self._collection)

    def reload_datasource(self) -> None:
        self._collection = list(self._rows)
        self.call_subscribers("collection-changed", len(self._collection))

    def set_current_entity(self, row: Optional[Row]) -> None:
        self.current_entity = row
        self.call_subscribers("current-entity", row)

    def subscribe(self, callback: SubscriberCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: SubscriberCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def call_subscribers(self, event: str, data: Any = None) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event, data)
            except Exception as e:
                logger.exception(f"Container subscriber failed on '{event}': {e}")


def reselect_current_entity(container: DataContainer, primary_key: str) -> Optional[Row]:
    """
    Points the container's current entity at the refreshed row with the same key.

    The selection is cleared when the row is gone after the reload.
    """
    current = container.current_entity
    if current is None:
        return None
    key = current.get(primary_key)
    for row in container.get_all_data():
        if row.get(primary_key) == key:
            container.set_current_entity(row)
            return row
    logger.debug(f"Current entity with {primary_key}={key!r} not found after reload, clearing selection.")
    container.set_current_entity(None)
    return None


# --- Container registry, one container per dataset name ---
_DATA_CONTAINERS: Dict[str, DataContainer] = {}


def register_data_container(name: str, container: DataContainer) -> DataContainer:
    _DATA_CONTAINERS[name] = container
    return container


def get_data_container(name: str) -> DataContainer:
    if name not in _DATA_CONTAINERS:
        logger.debug(f"Creating empty data container for dataset '{name}'")
        _DATA_CONTAINERS[name] = DataContainer()
    return _DATA_CONTAINERS[name]


def clear_data_containers() -> None:
    _DATA_CONTAINERS.clear()

#
# End of Data_Container.py
#######################################################################################################################
