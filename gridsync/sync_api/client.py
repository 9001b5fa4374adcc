# gridsync/sync_api/client.py
#
#
# Imports
import json
from contextlib import asynccontextmanager
from typing import Optional, Dict, Any, List, AsyncGenerator, AsyncIterator
#
# 3rd-party Libraries
import httpx
from loguru import logger
#
# Local Imports
from .exceptions import APIConnectionError, APIResponseError, AuthenticationError
from .schemas import Row
#
########################################################################################################################
#
# Functions:

def _error_detail_from_body(body: bytes, default: str) -> str:
    """Pulls a human readable message out of an error body ({"msg": ...} or {"detail": ...})."""
    try:
        response_data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return default
    if isinstance(response_data, dict):
        for key in ("msg", "detail"):
            if isinstance(response_data.get(key), str):
                return response_data[key]
    return default


class SyncAPIClient:
    def __init__(
        self,
        timeout: float = 300.0,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "SyncAPIClient":
        await self._get_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            # Credentials are per request (see stream_update), never on the shared client
            headers = {"Accept": "application/json"}
            kwargs: Dict[str, Any] = dict(
                headers=headers,
                timeout=self.timeout,
                follow_redirects=True,
            )
            if self._transport is not None:
                kwargs["transport"] = self._transport
            else:
                kwargs["verify"] = self.verify_ssl
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def stream_lines(
        self,
        method: str,
        url: str,
        json_body: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> AsyncGenerator[str, None]:
        """
        Yields each non-empty line of a streamed response body, in arrival order.

        Raises AuthenticationError on 401, APIResponseError on other non-2xx
        statuses and APIConnectionError on transport failures.
        """
        client = await self._get_client()

        try:
            async with client.stream(method, url, json=json_body, headers=headers) as response:
                if response.is_error:
                    body = await response.aread()
                    error_detail = _error_detail_from_body(body, response.reason_phrase or "request failed")
                    if response.status_code == 401:
                        raise AuthenticationError(f"Authentication failed: {error_detail}")
                    raise APIResponseError(
                        response.status_code, error_detail,
                        response_data={"raw_text": body.decode("utf-8", errors="replace")},
                    )
                async for line in response.aiter_lines():
                    if line.strip():
                        yield line
        except httpx.RequestError as e: # Covers ConnectError, TimeoutException, etc.
            raise APIConnectionError(f"Connection error to {url}: {e}") from e

    @asynccontextmanager
    async def stream_update(self, url: str, rows: List[Row], token: str) -> AsyncIterator[httpx.Response]:
        """
        POSTs the changed rows as one JSON array and hands back the open streamed response.

        Status is not checked here; the mutation pipeline decides what a failed response means.
        """
        client = await self._get_client()
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }
        logger.debug(f"Posting {len(rows)} changed rows to {url}")
        try:
            async with client.stream("POST", url, json=rows, headers=headers) as response:
                yield response
        except httpx.RequestError as e:
            raise APIConnectionError(f"Connection error to {url}: {e}") from e

#
# End of client.py
########################################################################################################################
