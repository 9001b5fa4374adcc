# gridsync/sync_api/__init__.py
from .client import SyncAPIClient
from .exceptions import (
    GridSyncAPIError, APIConnectionError, APIResponseError,
    AuthenticationError, DecodeError
)
from .schemas import (
    Row, RowValue, StatusEvent, StreamUnit, FilterArgument, MutationResult,
    DatasetApiConfig, HttpApiConfig, SyncState,
    StatusType, StreamUnitType # Export Literals
)

__all__ = [
    "SyncAPIClient",
    "GridSyncAPIError", "APIConnectionError", "APIResponseError",
    "AuthenticationError", "DecodeError",
    "Row", "RowValue", "StatusEvent", "StreamUnit", "FilterArgument", "MutationResult",
    "DatasetApiConfig", "HttpApiConfig", "SyncState",
    "StatusType", "StreamUnitType"
]
