# Progress_Protocol.py
# Description: Decoder for the streamed mutation response.
#
# Wire format: UTF-8 text, progress markers separated by ";" and terminated by a
# JSON array of accepted ids, e.g. ``updated 10;updated 20;[101,102,103]``.
# A failed update sends a single JSON object with a "msg" field instead.
#
# Imports
import json
from enum import Enum
from typing import Any, List, Optional
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from gridsync.sync_api.exceptions import DecodeError
#
#######################################################################################################################
#
# Functions:

MARKER_SEPARATOR = ";"
TERMINATOR_CHAR = "]"
UNKNOWN_ERROR_MESSAGE = "unknown error"


class DecoderState(str, Enum):
    AWAITING_DATA = "awaiting_data"
    ACCUMULATING = "accumulating"
    TERMINATED_SUCCESS = "terminated_success"
    TERMINATED_ERROR = "terminated_error"


def parse_accepted_ids(text: str) -> List[Any]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Malformed accepted-ids terminator: {e}", raw_text=text) from e
    if not isinstance(value, list):
        raise DecodeError("Accepted-ids terminator is not a JSON array", raw_text=text)
    return value


def parse_error_message(text: str) -> str:
    """Extracts ``msg`` from an error payload such as ``{"msg": "row 4 is locked"}``."""
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise DecodeError(f"Malformed error payload: {e}", raw_text=text or "") from e
    if not isinstance(value, dict) or not isinstance(value.get("msg"), str):
        raise DecodeError("Error payload has no 'msg' field", raw_text=text)
    return value["msg"]


def error_message_or_default(text: str) -> str:
    try:
        return parse_error_message(text)
    except DecodeError as e:
        logger.warning(f"{e}; reporting '{UNKNOWN_ERROR_MESSAGE}'. Raw payload: {e.raw_text[:200]!r}")
        return UNKNOWN_ERROR_MESSAGE


class ProgressStreamDecoder:
    """
    Incremental decoder for one update response.

    ``feed`` is called once per read cycle with the newly decoded text and returns
    the progress marker to report for that cycle, if any. Only the first of several
    completed markers in a cycle is returned. Once a terminal state is reached,
    further input is ignored.
    """

    def __init__(self):
        self.buffer = ""
        self.accepted_ids: List[Any] = []
        self.state = DecoderState.AWAITING_DATA
        self.decode_error: Optional[DecodeError] = None

    @property
    def terminated(self) -> bool:
        return self.state in (DecoderState.TERMINATED_SUCCESS, DecoderState.TERMINATED_ERROR)

    def feed(self, text: str) -> Optional[str]:
        if self.terminated:
            return None
        self.state = DecoderState.ACCUMULATING
        self.buffer += text

        if self.buffer.endswith(TERMINATOR_CHAR):
            final_segment = self.buffer.split(MARKER_SEPARATOR)[-1]
            try:
                self.accepted_ids = parse_accepted_ids(final_segment)
            except DecodeError as e:
                # accepted_ids keeps its previous value
                logger.warning(f"{e}. Raw terminator: {e.raw_text[:200]!r}")
                self.decode_error = e
            self.state = DecoderState.TERMINATED_SUCCESS

        segments = self.buffer.split(MARKER_SEPARATOR)
        if len(segments) > 1:
            # Keep only the trailing, possibly partial, segment
            self.buffer = segments[-1]
            return segments[0]
        return None

    def finish(self) -> Optional[str]:
        """
        Called when the stream ends. Without a terminator the remaining buffer is
        read as an error payload and its message (or the generic one) is returned.
        """
        if self.state is DecoderState.TERMINATED_SUCCESS:
            return None
        self.state = DecoderState.TERMINATED_ERROR
        return error_message_or_default(self.buffer)

#
# End of Progress_Protocol.py
#######################################################################################################################
