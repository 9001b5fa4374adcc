# gridsync/sync_api/exceptions.py
#
#
#######################################################################################################################
#
# Functions:

class GridSyncAPIError(Exception):
    """Base class for failures talking to the row stream or update endpoint."""
    pass

class APIConnectionError(GridSyncAPIError):
    """The query or update endpoint could not be reached, or the stream broke off mid-read."""
    pass

class APIResponseError(GridSyncAPIError):
    """
    The row stream answered with a non-2xx status before any unit was sent.

    ``message`` is the server's ``msg``/``detail`` text when the body carries one;
    the raw body is kept in ``response_data["raw_text"]``.
    """
    def __init__(self, status_code: int, message: str, response_data: dict = None):
        super().__init__(f"Row stream failed with HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.response_data = response_data or {}

class AuthenticationError(GridSyncAPIError):
    """The row stream rejected the request (401), or no bearer token could be obtained for an update."""
    pass

class DecodeError(GridSyncAPIError):
    """
    A streamed payload could not be decoded: a row-stream line, the accepted-ids
    terminator of an update, or its ``{"msg": ...}`` error payload.
    """
    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text

#
# End of gridsync/sync_api/exceptions.py
########################################################################################################################
