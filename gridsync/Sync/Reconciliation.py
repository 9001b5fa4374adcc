# Reconciliation.py
# Description: Merge-by-key of freshly fetched rows into a data container. No I/O.
#
# Imports
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Sequence
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from gridsync.Sync.Data_Container import DataContainer
from gridsync.sync_api.schemas import Row
#
#######################################################################################################################
#
# Functions:

@dataclass
class MergeStats:
    replaced: int = 0
    appended: int = 0
    bulk: bool = False

    @property
    def total(self) -> int:
        return self.replaced + self.appended


def _build_key_index(known_keys: Sequence[Any]) -> Dict[Hashable, int]:
    # First occurrence wins, same as a left-to-right scan
    index: Dict[Hashable, int] = {}
    for position, key in enumerate(known_keys):
        try:
            index.setdefault(key, position)
        except TypeError:
            continue
    return index


def _find_key(index: Dict[Hashable, int], known_keys: Sequence[Any], key: Any) -> Optional[int]:
    try:
        return index.get(key)
    except TypeError:
        # Unhashable key values fall back to a linear scan
        for position, known in enumerate(known_keys):
            if known == key:
                return position
        return None


def merge_rows(
    container: DataContainer,
    known_keys: Sequence[Any],
    incoming: List[Row],
    primary_key: str,
) -> MergeStats:
    """
    Applies each incoming row exactly once: replaced in place when its key is in
    ``known_keys`` (positions as captured before the fetch), appended otherwise.

    Appended rows keep their incoming order; replaced rows keep their position.
    """
    stats = MergeStats()
    index = _build_key_index(known_keys)
    for row in incoming:
        position = _find_key(index, known_keys, row.get(primary_key))
        if position is not None:
            container.replace([row], position, 1)
            stats.replaced += 1
        else:
            container.set_data([row], add=True)
            stats.appended += 1
    return stats


def reconcile(
    container: DataContainer,
    rows: List[Row],
    known_keys: Sequence[Any],
    primary_key: str,
    update_only: bool,
) -> MergeStats:
    """Bulk-replaces the container on a full load with no known keys, merges by key otherwise."""
    if not update_only and not known_keys:
        container.set_data(rows)
        logger.debug(f"Full load: container replaced with {len(rows)} rows")
        return MergeStats(appended=len(rows), bulk=True)

    stats = merge_rows(container, known_keys, rows, primary_key)
    logger.debug(f"Incremental merge: {stats.replaced} replaced, {stats.appended} appended")
    return stats

#
# End of Reconciliation.py
#######################################################################################################################
