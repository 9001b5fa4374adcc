# gridsync/Sync/__init__.py
from .Data_Container import (
    DataContainer, get_data_container, register_data_container, reselect_current_entity
)
from .Progress_Protocol import DecoderState, ProgressStreamDecoder
from .Reconciliation import MergeStats, merge_rows, reconcile
from .Status_Reporter import StatusReporter, log_status_event
from .Stream_Data import decode_stream_line, fetch_stream_data
from .Sync_Service import SyncService, get_sync_service
from .Transport_Tracking import TransportTracker, transport_tracker

__all__ = [
    "DataContainer", "get_data_container", "register_data_container", "reselect_current_entity",
    "DecoderState", "ProgressStreamDecoder",
    "MergeStats", "merge_rows", "reconcile",
    "StatusReporter", "log_status_event",
    "decode_stream_line", "fetch_stream_data",
    "SyncService", "get_sync_service",
    "TransportTracker", "transport_tracker",
]
