# test_sync_api_client.py
#
# Imports
from datetime import datetime, timezone
import pytest
#
# Third-Party Imports
import httpx
#
# Local Imports
from gridsync.sync_api.client import SyncAPIClient, _error_detail_from_body
from gridsync.sync_api.exceptions import APIConnectionError, APIResponseError, AuthenticationError
from gridsync.sync_api.schemas import FilterArgument
from gridsync.sync_api.utils import (
    filter_to_body,
    generate_query_url,
    generate_update_url,
    get_modified_filter,
)
from Tests.conftest import make_client
#
########################################################################################################################
#
# Functions:

async def drain(client, url="http://gridsync.test/api/query/customers?rows=0"):
    return [line async for line in client.stream_lines("POST", url)]


class TestStreamLines:

    @pytest.mark.asyncio
    async def test_yields_non_empty_lines(self):
        client, _ = make_client(lambda request: httpx.Response(200, content=b"a\n\nb\n  \nc"))
        assert await drain(client) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_401_raises_authentication_error(self):
        client, _ = make_client(lambda request: httpx.Response(401, json={"detail": "token expired"}))
        with pytest.raises(AuthenticationError, match="token expired"):
            await drain(client)

    @pytest.mark.asyncio
    async def test_error_status_raises_response_error(self):
        client, _ = make_client(lambda request: httpx.Response(502, text="bad gateway page"))
        with pytest.raises(APIResponseError) as exc_info:
            await drain(client)
        assert exc_info.value.status_code == 502
        assert exc_info.value.response_data["raw_text"] == "bad gateway page"
        assert str(exc_info.value) == "Row stream failed with HTTP 502: Bad Gateway"

    @pytest.mark.asyncio
    async def test_error_status_uses_server_message(self):
        client, _ = make_client(lambda request: httpx.Response(503, json={"msg": "grid is reindexing"}))
        with pytest.raises(APIResponseError) as exc_info:
            await drain(client)
        assert exc_info.value.message == "grid is reindexing"
        assert "HTTP 503: grid is reindexing" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_failure_raises_connection_error(self):
        def refuse(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        client, _ = make_client(refuse)
        with pytest.raises(APIConnectionError):
            await drain(client)

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self):
        client, _ = make_client(lambda request: httpx.Response(200, content=b""))
        async with client:
            assert client._client is not None
        assert client._client is None
        # A closed client reopens on next use
        assert await drain(client) == []


class TestStreamUpdate:

    @pytest.mark.asyncio
    async def test_status_is_left_to_the_caller(self):
        client, handler = make_client(lambda request: httpx.Response(422, json={"msg": "nope"}))
        async with client.stream_update("http://gridsync.test/api/update/customers", [{"id": 1}], "t0k") as response:
            assert response.status_code == 422
        assert handler.last_request.headers["Authorization"] == "Bearer t0k"
        assert handler.last_json() == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_transport_failure_raises_connection_error(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        client, _ = make_client(refuse)
        with pytest.raises(APIConnectionError):
            async with client.stream_update("http://gridsync.test/api/update/customers", [{"id": 1}], "t"):
                pass


def test_error_detail_from_body():
    assert _error_detail_from_body(b'{"msg": "locked"}', "fallback") == "locked"
    assert _error_detail_from_body(b'{"detail": "missing"}', "fallback") == "missing"
    assert _error_detail_from_body(b"<html>", "fallback") == "fallback"
    assert _error_detail_from_body(b"[1]", "fallback") == "fallback"


@pytest.mark.asyncio
async def test_row_stream_requests_carry_no_credentials():
    handler_requests = []

    def respond(request):
        handler_requests.append(request)
        return httpx.Response(200, content=b"")

    client = SyncAPIClient(transport=httpx.MockTransport(respond))
    await drain(client)
    assert "Authorization" not in handler_requests[0].headers
    assert handler_requests[0].headers["Accept"] == "application/json"


class TestUrls:

    def test_query_url(self):
        assert generate_query_url("https://h/api/query/", "customers") == "https://h/api/query/customers?rows=0"

    def test_metadata_query_url(self):
        assert generate_query_url("https://h/q/", "orders", True) == "https://h/q/orders?rows=0&meta=1"

    def test_update_url(self):
        assert generate_update_url("https://h/api/update/", "customers") == "https://h/api/update/customers"


class TestFilters:

    SINCE = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_modified_filter_without_query(self):
        result = get_modified_filter(None, "changed_at", self.SINCE)
        assert result.type == "GROUP"
        assert result.logical_operator == "AND"
        (condition,) = result.filter_arguments
        assert condition.attribute == "changed_at"
        assert condition.attribute_type == "date"
        assert condition.operator == "GREATER_THAN_OR_EQUAL_TO"
        assert condition.value == "2024-01-02T03:04:05+00:00"

    def test_modified_filter_wraps_group(self):
        query = FilterArgument(
            type="GROUP",
            logical_operator="OR",
            filter_arguments=[
                FilterArgument(attribute="a", operator="EQUAL", value=1),
                FilterArgument(attribute="b", operator="IS_BLANK"),
            ],
        )
        result = get_modified_filter(query, "modified", self.SINCE)
        assert result.filter_arguments[0] == query
        assert result.filter_arguments[0] is not query
        assert result.filter_arguments[1].attribute == "modified"

    def test_filter_to_body(self):
        assert filter_to_body(None) is None
        body = filter_to_body(FilterArgument(type="GROUP", logical_operator="AND", filter_arguments=[]))
        assert body == {"type": "GROUP", "logicalOperator": "AND", "filterArguments": []}

    def test_filter_accepts_wire_names(self):
        parsed = FilterArgument.model_validate({"type": "CONDITION", "attributeType": "number", "attribute": "n"})
        assert parsed.attribute_type == "number"

#
# End of test_sync_api_client.py
########################################################################################################################
