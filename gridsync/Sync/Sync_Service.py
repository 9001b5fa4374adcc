# Sync_Service.py
# Description: Keeps a dataset's container in sync with the server (full / incremental loads) and
#              submits changed rows back, decoding the streamed progress response.
#
# Imports
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
#
# Third-Party Imports
import httpx
from loguru import logger
#
# Local Imports
from gridsync.config import get_api_config, get_http_api_config
from gridsync.Metrics.metrics_logger import MetricsLogger, timeit
from gridsync.Sync.Data_Container import DataContainer, get_data_container, reselect_current_entity
from gridsync.Sync.Progress_Protocol import ProgressStreamDecoder, error_message_or_default
from gridsync.Sync.Reconciliation import reconcile
from gridsync.Sync.Status_Reporter import StatusCallback, StatusReporter, log_status_event
from gridsync.Sync.Stream_Data import fetch_stream_data
from gridsync.Sync.Transport_Tracking import TransportTracker, transport_tracker
from gridsync.sync_api.client import SyncAPIClient
from gridsync.sync_api.exceptions import APIConnectionError, AuthenticationError
from gridsync.sync_api.schemas import (
    DatasetApiConfig, FilterArgument, MutationResult, Row, StreamUnit, SyncState
)
from gridsync.sync_api.utils import generate_query_url, generate_update_url, get_modified_filter
#
#######################################################################################################################
#
# Functions:

TokenProvider = Callable[[], Awaitable[str]]


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class SyncService:
    """
    Sync engine for one dataset.

    ``load_all`` refreshes the dataset's container from the read endpoint, either
    fully or incrementally (rows modified since the previous request).
    ``update`` posts changed rows and follows the server's progress stream.
    Both report through ``reporter`` and bracket their network work with the
    transport tracker. Sync state (last request time, metadata) lives on the
    instance, so each dataset needs its own service (see ``get_sync_service``).
    """

    def __init__(
        self,
        data_controller_name: str,
        callback_fn: Optional[StatusCallback] = log_status_event,
        container: Optional[DataContainer] = None,
        client: Optional[SyncAPIClient] = None,
        token_provider: Optional[TokenProvider] = None,
        tracker: Optional[TransportTracker] = None,
    ):
        self.data_controller_name = data_controller_name
        self.reporter = StatusReporter(callback_fn)
        self.state = SyncState()
        self.token_provider = token_provider
        self.tracker = tracker or transport_tracker
        self.metrics = MetricsLogger(base_labels={"dataset": data_controller_name})
        self._container = container
        self._client = client

    # --- Collaborators ---

    @property
    def container(self) -> DataContainer:
        if self._container is not None:
            return self._container
        return get_data_container(self.data_controller_name)

    @property
    def client(self) -> SyncAPIClient:
        if self._client is None:
            http_config = get_http_api_config()
            self._client = SyncAPIClient(timeout=http_config.timeout, verify_ssl=http_config.verify_ssl)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()

    async def _get_access_token(self) -> str:
        if self.token_provider is None:
            raise AuthenticationError(f"No access token provider configured for '{self.data_controller_name}'")
        return await self.token_provider()

    # --- Sync state ---

    @property
    def last_request(self) -> Optional[datetime]:
        return self.state.last_request

    @property
    def meta_data(self) -> Dict[str, Any]:
        return self.state.meta_data

    def get_last_request_timestamp(self) -> Optional[datetime]:
        return self.state.last_request

    def _reset_service_state(self) -> None:
        self.reporter.info(
            "Connecting to database",
            "Updating grid, please wait",
            loading_data_runtime_milliseconds=0,
            loading_data_reply_milliseconds=0,
            loading_data_row_count=0,
        )

    # --- Read synchronization ---

    @timeit(metric_name="gridsync_load_duration_seconds")
    async def load_all(self, query: Optional[FilterArgument] = None, update_only: bool = False) -> None:
        """
        Refreshes the container.

        Incremental mode needs ``update_only``, a previous request and a non-empty
        container; otherwise the container is cleared and fully reloaded. Fetch
        errors are reported as status events, never raised.
        """
        self.tracker.begin()
        try:
            self._reset_service_state()
            api_config = get_api_config(self.data_controller_name)
            container = self.container
            primary_key = api_config.primary_key

            # Nothing to merge into without a previous request and rows to keep
            update_only = bool(update_only) and self.state.last_request is not None and len(container) > 0
            use_query = query

            primary_keys: List[Any] = []
            if not update_only:
                container.set_data([])
            else:
                if api_config.modified:
                    use_query = get_modified_filter(query, api_config.modified, self.state.last_request)
                primary_keys = [row.get(primary_key) for row in container.get_all_data()]

            logger.info(
                f"Loading '{self.data_controller_name}' "
                f"({'incremental' if update_only else 'full'}, {len(primary_keys)} known keys)"
            )
            http_config = get_http_api_config()
            error = await self._fetch_data(
                generate_query_url(http_config.query_url, api_config.api_name, False),
                use_query,
                primary_keys,
                update_only,
                api_config,
            )

            if not error:
                container.reload_datasource()
                container.call_subscribers("collection-sorted")
                self.reporter.done()

            reselect_current_entity(container, primary_key)
        finally:
            self.tracker.end()
        # Listeners already tolerate a repeated done
        self.reporter.done()

    async def load_metadata(self, query: Optional[FilterArgument] = None) -> Dict[str, Any]:
        """Requests metadata only (``meta=1``); the container and last request time are left alone."""
        self.tracker.begin()
        try:
            self._reset_service_state()
            api_config = get_api_config(self.data_controller_name)
            http_config = get_http_api_config()
            _, error = await self._consume_stream(
                generate_query_url(http_config.query_url, api_config.api_name, True),
                query,
            )
            if error:
                logger.warning(f"Metadata request for '{self.data_controller_name}' reported errors")
        finally:
            self.tracker.end()
        self.reporter.done()
        return self.state.meta_data

    async def _consume_stream(self, url: str, query: Optional[FilterArgument]) -> Tuple[List[Row], bool]:
        """Drains the row stream; returns the data rows and whether any error unit arrived."""
        v0 = time.perf_counter()
        reply_ms: Optional[int] = None
        fetch_error = False
        rows: List[Row] = []

        def on_unit(unit: StreamUnit) -> None:
            nonlocal fetch_error, reply_ms
            if reply_ms is None:
                reply_ms = _elapsed_ms(v0)

            if unit.type == "data":
                rows.append(unit.data)
            elif unit.type == "meta":
                self.state.meta_data = unit.data if isinstance(unit.data, dict) else {}
            elif unit.type == "length":
                elapsed = _elapsed_ms(v0)
                self.reporter.info(
                    "Downloading data",
                    f"Rows fetch: {unit.data}\nTime used: {elapsed}ms",
                    loading_data_row_count=_as_int(unit.data),
                    loading_data_runtime_milliseconds=elapsed,
                    loading_data_reply_milliseconds=reply_ms,
                )
            elif unit.type == "error":
                fetch_error = True
                self.reporter.error("Fetch error", str(unit.data))

        await fetch_stream_data(self.client, url, query, on_unit)
        return rows, fetch_error

    async def _fetch_data(
        self,
        url_path_and_params: str,
        query: Optional[FilterArgument],
        primary_keys: List[Any],
        update_only: bool,
        api_config: DatasetApiConfig,
    ) -> bool:
        # Set before the request resolves: a failed fetch still moves the incremental baseline
        self.state.last_request = datetime.now(timezone.utc)

        rows, fetch_error = await self._consume_stream(url_path_and_params, query)

        stats = reconcile(self.container, rows, primary_keys, api_config.primary_key, update_only)
        self.metrics.log_counter("gridsync_rows_fetched_total", len(rows))
        if not stats.bulk:
            self.metrics.log_counter("gridsync_rows_replaced_total", stats.replaced)
            self.metrics.log_counter("gridsync_rows_appended_total", stats.appended)
        logger.info(
            f"Fetched {len(rows)} rows for '{self.data_controller_name}' "
            f"(replaced={stats.replaced}, appended={stats.appended}, error={fetch_error})"
        )
        return fetch_error

    # --- Write synchronization ---

    @timeit(metric_name="gridsync_update_duration_seconds")
    async def update(self, data: List[Row]) -> MutationResult:
        """
        Posts changed rows and decodes the progress stream that comes back.

        Returns ``MutationResult(success=False, data="no changes")`` without any
        request when ``data`` is empty. Every outcome ends with a single done event.
        """
        self.tracker.begin()
        try:
            if data:
                result = await self._submit_update(data)
            else:
                logger.info(f"Update for '{self.data_controller_name}' skipped: no changes")
                result = MutationResult(success=False, data="no changes")
        finally:
            self.tracker.end()
        self.reporter.done()
        return result

    async def _submit_update(self, data: List[Row]) -> MutationResult:
        self._reset_service_state()
        api_config = get_api_config(self.data_controller_name)
        http_config = get_http_api_config()
        fetch_url = generate_update_url(http_config.update_url, api_config.api_name)
        token = await self._get_access_token()

        try:
            async with self.client.stream_update(fetch_url, data, token) as response:
                if not response.is_success or response.headers.get("content-length") == "0":
                    return await self._handle_failed_response(response)
                return await self._read_update_progress(response)
        except APIConnectionError as e:
            logger.error(f"Update for '{self.data_controller_name}' could not reach the server: {e}")
            self.reporter.error("Fetch error", str(e))
            return MutationResult(success=False, data=[])

    async def _handle_failed_response(self, response: httpx.Response) -> MutationResult:
        body = await response.aread()
        if not response.is_success:
            message = error_message_or_default(body.decode("utf-8", errors="replace"))
            logger.error(f"Update for '{self.data_controller_name}' rejected ({response.status_code}): {message}")
            self.reporter.error("Fetch error", message)
        else:
            logger.warning(f"Update for '{self.data_controller_name}' returned no body")
        return MutationResult(success=False, data=[])

    async def _read_update_progress(self, response: httpx.Response) -> MutationResult:
        v0 = time.perf_counter()
        decoder = ProgressStreamDecoder()

        async for text in response.aiter_text():
            marker = decoder.feed(text)
            if marker is not None:
                self.reporter.info("Updating", "updated :" + marker)
            if decoder.terminated:
                break

        if not decoder.terminated:
            message = decoder.finish()
            logger.error(f"Update stream for '{self.data_controller_name}' ended without a result: {message}")
            self.reporter.error("Update Error", message)
            return MutationResult(success=False, data=[])

        self.metrics.log_histogram("gridsync_update_stream_seconds", (time.perf_counter() - v0))
        self.metrics.log_counter("gridsync_update_accepted_ids_total", len(decoder.accepted_ids))
        logger.info(f"Update for '{self.data_controller_name}' accepted {len(decoder.accepted_ids)} rows")
        return MutationResult(success=response.is_success, data=decoder.accepted_ids)


# --- One service per dataset ---
_SERVICES: Dict[str, SyncService] = {}


def get_sync_service(data_controller_name: str, **kwargs) -> SyncService:
    """Returns the dataset's service, creating it (with ``kwargs``) on first use."""
    if data_controller_name not in _SERVICES:
        _SERVICES[data_controller_name] = SyncService(data_controller_name, **kwargs)
    return _SERVICES[data_controller_name]


def clear_sync_services() -> None:
    _SERVICES.clear()

#
# End of Sync_Service.py
#######################################################################################################################
