# Stream_Data.py
# Description: Row-stream decoder. Turns the newline-delimited JSON body of a read request into typed units.
#
# Imports
import json
from typing import Callable, Optional
#
# Third-Party Imports
from loguru import logger
from pydantic import ValidationError
#
# Local Imports
from gridsync.sync_api.client import SyncAPIClient
from gridsync.sync_api.exceptions import DecodeError, GridSyncAPIError
from gridsync.sync_api.schemas import FilterArgument, StreamUnit
from gridsync.sync_api.utils import filter_to_body
#
#######################################################################################################################
#
# Functions:

UnitHandler = Callable[[StreamUnit], None]


def decode_stream_line(line: str) -> StreamUnit:
    """
    Decodes one line of the row stream, e.g. ``{"type": "data", "data": {"id": 1}}``.

    Raises:
        DecodeError: the line is not JSON, not a known unit, or a data unit without an object row.
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Could not decode stream line: {e}", raw_text=line) from e
    try:
        return StreamUnit.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Invalid stream unit: {e.errors()[0].get('msg', 'invalid')}", raw_text=line) from e


async def fetch_stream_data(
    client: SyncAPIClient,
    url: str,
    query: Optional[FilterArgument],
    on_unit: UnitHandler,
) -> None:
    """
    Streams a dataset and hands every unit to ``on_unit`` in arrival order.

    Never raises for transport or decoding problems: those are delivered as
    ``error`` units and the remaining lines are still drained. Returns once the
    server ends the stream.
    """
    line_count = 0
    try:
        async for line in client.stream_lines("POST", url, json_body=filter_to_body(query)):
            line_count += 1
            try:
                unit = decode_stream_line(line)
            except DecodeError as e:
                logger.warning(f"{e} (line {line_count}: {e.raw_text[:200]!r})")
                unit = StreamUnit(type="error", data=str(e))
            on_unit(unit)
    except GridSyncAPIError as e:
        logger.error(f"Row stream from {url} failed after {line_count} lines: {e}")
        on_unit(StreamUnit(type="error", data=str(e)))
    else:
        logger.debug(f"Row stream from {url} ended after {line_count} lines")

#
# End of Stream_Data.py
#######################################################################################################################
