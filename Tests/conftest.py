# Tests/conftest.py
#
#
# Imports
import json
from typing import Any, Callable, Dict, Iterable, List, Optional
import pytest
#
# Third-party imports
import httpx
#
# Local imports
from gridsync import config
from gridsync.Sync.Data_Container import DataContainer, clear_data_containers
from gridsync.Sync.Sync_Service import SyncService, clear_sync_services
from gridsync.Sync.Transport_Tracking import TransportTracker
from gridsync.sync_api.client import SyncAPIClient
from gridsync.sync_api.schemas import StatusEvent
#
############################################################################################################################
#
# Functions:

QUERY_URL = "http://gridsync.test/api/query/"
UPDATE_URL = "http://gridsync.test/api/update/"


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Points the config at a temp file and registers the datasets used by the tests."""
    monkeypatch.setenv("GRIDSYNC_CONFIG_PATH", str(tmp_path / "config.toml"))
    monkeypatch.setenv("GRIDSYNC_QUERY_URL", QUERY_URL)
    monkeypatch.setenv("GRIDSYNC_UPDATE_URL", UPDATE_URL)
    config.load_settings(force_reload=True)
    config.register_dataset("customers", api_name="customers", primary_key="id", modified="modified")
    config.register_dataset("orders", api_name="orders", primary_key="order_no")
    yield
    config.unregister_dataset("customers")
    config.unregister_dataset("orders")
    config._CONFIG_CACHE = None
    clear_data_containers()
    clear_sync_services()


class StatusRecorder:
    """Collects status events in delivery order."""

    def __init__(self):
        self.events: List[StatusEvent] = []

    def __call__(self, event: StatusEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> List[StatusEvent]:
        return [e for e in self.events if e.type == event_type]

    @property
    def types(self) -> List[str]:
        return [e.type for e in self.events]

    def progress(self) -> List[StatusEvent]:
        return [e for e in self.events if e.type == "info" and e.header == "Updating"]


@pytest.fixture
def status_recorder():
    return StatusRecorder()


@pytest.fixture
def container():
    return DataContainer()


@pytest.fixture
def tracker():
    return TransportTracker()


def ndjson(*units: Dict[str, Any]) -> bytes:
    return "".join(json.dumps(unit) + "\n" for unit in units).encode("utf-8")


def chunked(*chunks: str):
    """Response body that arrives as separate reads, one per chunk."""
    async def body():
        for chunk in chunks:
            yield chunk.encode("utf-8")
    return body()


class RecordingHandler:
    """MockTransport handler that records requests and serves queued responses."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.responder = responder
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last_request(self) -> Optional[httpx.Request]:
        return self.requests[-1] if self.requests else None

    def last_json(self) -> Any:
        return json.loads(self.last_request.content)


def make_client(responder: Callable[[httpx.Request], httpx.Response]):
    handler = RecordingHandler(responder)
    return SyncAPIClient(transport=httpx.MockTransport(handler)), handler


async def static_token() -> str:
    return "test-token"


@pytest.fixture
def make_service(container, status_recorder, tracker):
    """Builds a SyncService wired to a MockTransport; returns (service, handler)."""
    def _make(responder, dataset: str = "customers", token_provider=static_token):
        client, handler = make_client(responder)
        service = SyncService(
            dataset,
            callback_fn=status_recorder,
            container=container,
            client=client,
            token_provider=token_provider,
            tracker=tracker,
        )
        return service, handler
    return _make


def rows_with_keys(keys: Iterable[Any], key_field: str = "id", **extra) -> List[Dict[str, Any]]:
    return [{key_field: k, **extra} for k in keys]

#
# End of Tests/conftest.py
########################################################################################################################
