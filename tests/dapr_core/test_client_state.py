"""Unit tests for DaprClient state management operations."""

import json

import httpx
import pytest
from pydantic import BaseModel

from dapr_core.client import DaprClient
from dapr_core.runtime.errors import BackendUnavailableError, ValidationError
from dapr_core.runtime.options import ClientOptions
from dapr_core.runtime.pool import ConnectionPool
from dapr_core.state.models import (
    ConcurrencyMode,
    ConsistencyMode,
    StateItem,
    StateOptions,
    TransactionOperation,
)

SIDECAR_URL = "http://sidecar.test:3500"
STORE = "statestore"


class OrderState(BaseModel):
    order_id: str
    status: str
    total: float


class TestIdentifierValidation:
    """Every state operation validates identifiers before any I/O."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("store", [None, "", "  "])
    async def test_rejects_invalid_store(self, client, sidecar, store):
        calls = [
            client.save_state(store, "k", "v"),
            client.get_state(store, "k"),
            client.delete_state(store, "k"),
            client.save_bulk_state(store, [StateItem(key="k", value="v")]),
            client.get_bulk_state(store, ["k"]),
            client.delete_bulk_state(store, ["k"]),
            client.execute_state_transaction(store, [TransactionOperation.delete("k")]),
        ]
        for call in calls:
            with pytest.raises(ValidationError) as exc_info:
                await call
            assert exc_info.value.param_name == "store_name"

        assert sidecar.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", [None, "", " \n"])
    async def test_rejects_invalid_key(self, client, sidecar, key):
        calls = [
            client.save_state(STORE, key, "v"),
            client.get_state(STORE, key),
            client.delete_state(STORE, key),
            client.get_bulk_state(STORE, ["ok", key]),
            client.delete_bulk_state(STORE, [key]),
        ]
        for call in calls:
            with pytest.raises(ValidationError) as exc_info:
                await call
            assert exc_info.value.param_name == "key"

        assert sidecar.requests == []

    @pytest.mark.asyncio
    async def test_bulk_operations_reject_empty_collections(self, client, sidecar):
        with pytest.raises(ValidationError) as exc_info:
            await client.save_bulk_state(STORE, [])
        assert exc_info.value.param_name == "items"

        with pytest.raises(ValidationError) as exc_info:
            await client.delete_bulk_state(STORE, [])
        assert exc_info.value.param_name == "keys"

        with pytest.raises(ValidationError) as exc_info:
            await client.get_bulk_state(STORE, [])
        assert exc_info.value.param_name == "keys"

        with pytest.raises(ValidationError) as exc_info:
            await client.execute_state_transaction(STORE, [])
        assert exc_info.value.param_name == "operations"

        with pytest.raises(ValidationError):
            await client.delete_bulk_state(STORE, None)

        assert sidecar.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("keys", ["order-1", b"order-1"])
    async def test_bulk_operations_reject_bare_string_keys(self, client, sidecar, keys):
        with pytest.raises(ValidationError) as exc_info:
            await client.get_bulk_state(STORE, keys)
        assert exc_info.value.param_name == "keys"

        with pytest.raises(ValidationError) as exc_info:
            await client.delete_bulk_state(STORE, keys)
        assert exc_info.value.param_name == "keys"

        assert sidecar.requests == []


class TestSaveState:
    @pytest.mark.asyncio
    async def test_posts_single_element_array(self, client, sidecar):
        sidecar.respond("POST", f"/v1.0/state/{STORE}", status_code=204)

        await client.save_state(STORE, "order-1", {"status": "pending"})

        assert sidecar.last_request.method == "POST"
        assert sidecar.last_json() == [{"key": "order-1", "value": {"status": "pending"}}]

    @pytest.mark.asyncio
    async def test_maps_all_options(self, client, sidecar):
        sidecar.respond("POST", f"/v1.0/state/{STORE}", status_code=204)
        options = StateOptions(
            concurrency=ConcurrencyMode.FIRST_WRITE,
            consistency=ConsistencyMode.STRONG,
            etag="e1",
            ttl_seconds=60,
        )

        await client.save_state(STORE, "k", "v", options)

        body = sidecar.last_request.content.decode()
        assert '"first-write"' in body
        assert '"strong"' in body
        assert '"e1"' in body
        assert sidecar.last_json()[0]["metadata"] == {"ttlInSeconds": "60"}

    @pytest.mark.asyncio
    async def test_omits_options_without_modes(self, client, sidecar):
        sidecar.respond("POST", f"/v1.0/state/{STORE}", status_code=204)

        await client.save_state(STORE, "k", "v", StateOptions(etag="e1"))

        assert sidecar.last_json() == [{"key": "k", "value": "v", "etag": "e1"}]

    @pytest.mark.asyncio
    async def test_backend_error_is_raw_status_error(self, client, sidecar):
        sidecar.respond("POST", f"/v1.0/state/{STORE}", status_code=409, content="etag mismatch")

        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await client.save_state(STORE, "k", "v", StateOptions(etag="stale"))

        assert exc_info.value.response.status_code == 409


class TestGetState:
    @pytest.mark.asyncio
    async def test_returns_typed_value(self, client, sidecar):
        sidecar.respond(
            "GET",
            f"/v1.0/state/{STORE}/order-1",
            json_body={"order_id": "order-1", "status": "pending", "total": 99.99},
        )

        order = await client.get_state(STORE, "order-1", response_type=OrderState)

        assert order == OrderState(order_id="order-1", status="pending", total=99.99)

    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self, client, sidecar):
        sidecar.respond("GET", f"/v1.0/state/{STORE}/nonexistent", status_code=204)

        assert await client.get_state(STORE, "nonexistent", response_type=OrderState) is None

    @pytest.mark.asyncio
    async def test_sends_consistency_query(self, client, sidecar):
        sidecar.respond("GET", f"/v1.0/state/{STORE}/k", json_body="value1")

        result = await client.get_state(STORE, "k", consistency=ConsistencyMode.STRONG)

        assert result == "value1"
        assert sidecar.last_request.url.params["consistency"] == "strong"

    @pytest.mark.asyncio
    async def test_no_query_without_consistency(self, client, sidecar):
        sidecar.respond("GET", f"/v1.0/state/{STORE}/k", json_body="value1")

        await client.get_state(STORE, "k")

        assert sidecar.last_request.url.query == b""

    @pytest.mark.asyncio
    async def test_returns_etag(self, client, sidecar):
        sidecar.respond("GET", f"/v1.0/state/{STORE}/k", json_body=5, headers={"ETag": "17"})

        value, etag = await client.get_state_and_etag(STORE, "k", response_type=int)

        assert value == 5
        assert etag == "17"


class TestSaveThenGet:
    """Reading after writing returns the written value."""

    @pytest.mark.asyncio
    async def test_round_trip(self, options):
        store: dict[str, bytes] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                for item in json.loads(request.content):
                    store[item["key"]] = json.dumps(item["value"]).encode()
                return httpx.Response(204)
            key = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, content=store.get(key, b""))

        pool = ConnectionPool(transport=httpx.MockTransport(handler))
        client = DaprClient(options, pool=pool)
        order = OrderState(order_id="o-7", status="confirmed", total=12.5)

        await client.save_state(STORE, "o-7", order)
        loaded = await client.get_state(STORE, "o-7", response_type=OrderState)

        assert loaded == order
        await pool.aclose()


class TestDeleteState:
    @pytest.mark.asyncio
    async def test_deletes_key(self, client, sidecar):
        sidecar.respond("DELETE", f"/v1.0/state/{STORE}/k", status_code=204)

        await client.delete_state(STORE, "k")

        assert sidecar.last_request.method == "DELETE"
        assert sidecar.last_request.url.query == b""

    @pytest.mark.asyncio
    async def test_maps_options_to_query_and_if_match(self, client, sidecar):
        sidecar.respond("DELETE", f"/v1.0/state/{STORE}/k", status_code=204)
        options = StateOptions(
            concurrency=ConcurrencyMode.FIRST_WRITE,
            consistency=ConsistencyMode.STRONG,
            etag="e5",
        )

        await client.delete_state(STORE, "k", options)

        params = sidecar.last_request.url.params
        assert params["concurrency"] == "first-write"
        assert params["consistency"] == "strong"
        assert sidecar.last_request.headers["if-match"] == "e5"


class TestBulkState:
    @pytest.mark.asyncio
    async def test_save_bulk_maps_each_item(self, client, sidecar):
        sidecar.respond("POST", f"/v1.0/state/{STORE}", status_code=204)
        items = [
            StateItem(key="a", value=1),
            StateItem(key="b", value=2, etag="3"),
            StateItem(key="c", value=3, options=StateOptions(ttl_seconds=10)),
        ]

        await client.save_bulk_state(STORE, items)

        assert sidecar.last_json() == [
            {"key": "a", "value": 1},
            {"key": "b", "value": 2, "etag": "3"},
            {"key": "c", "value": 3, "metadata": {"ttlInSeconds": "10"}},
        ]

    @pytest.mark.asyncio
    async def test_get_bulk_decodes_each_item(self, client, sidecar):
        sidecar.respond(
            "POST",
            f"/v1.0/state/{STORE}/bulk",
            json_body=[
                {"key": "o1", "data": {"order_id": "o1", "status": "a", "total": 1}, "etag": "1"},
                {"key": "o2", "data": {"order_id": "o2", "status": "b", "total": 2}},
            ],
        )

        items = await client.get_bulk_state(STORE, ["o1", "o2"], response_type=OrderState)

        assert [item.key for item in items] == ["o1", "o2"]
        assert items[0].value == OrderState(order_id="o1", status="a", total=1)
        assert items[0].etag == "1"
        assert items[1].value.status == "b"
        assert sidecar.last_json() == {"keys": ["o1", "o2"]}

    @pytest.mark.asyncio
    async def test_get_bulk_surfaces_item_errors(self, client, sidecar):
        sidecar.respond(
            "POST",
            f"/v1.0/state/{STORE}/bulk",
            json_body=[
                {"key": "a", "data": "v1"},
                {"key": "b", "error": "connection reset"},
                {"key": "c", "data": "v3"},
            ],
        )

        items = await client.get_bulk_state(STORE, ["a", "b", "c"], response_type=str)

        assert len(items) == 3
        assert [item.has_error for item in items] == [False, True, False]
        assert items[1].error == "connection reset"
        assert items[1].value is None
        assert items[2].value == "v3"

    @pytest.mark.asyncio
    async def test_get_bulk_sends_parallelism(self, client, sidecar):
        sidecar.respond("POST", f"/v1.0/state/{STORE}/bulk", json_body=[])

        items = await client.get_bulk_state(STORE, ["a"], parallelism=5)

        assert items == []
        assert sidecar.last_json() == {"keys": ["a"], "parallelism": 5}

    @pytest.mark.asyncio
    async def test_delete_bulk_sends_keys_only(self, client, sidecar):
        sidecar.respond("POST", f"/v1.0/state/{STORE}", status_code=204)

        await client.delete_bulk_state(STORE, ["a", "b"])

        assert sidecar.last_json() == [{"key": "a"}, {"key": "b"}]


class TestStateTransaction:
    @pytest.mark.asyncio
    async def test_preserves_operation_order(self, client, sidecar):
        sidecar.respond("POST", f"/v1.0/state/{STORE}/transaction", status_code=204)

        await client.execute_state_transaction(
            STORE,
            [TransactionOperation.upsert("a", "v1"), TransactionOperation.delete("b")],
        )

        operations = sidecar.last_json()["operations"]
        assert [op["operation"] for op in operations] == ["upsert", "delete"]
        assert [op["request"]["key"] for op in operations] == ["a", "b"]
        assert operations[0]["request"]["value"] == "v1"

    @pytest.mark.asyncio
    async def test_unsupported_store_is_raw_status_error(self, client, sidecar):
        sidecar.respond(
            "POST",
            f"/v1.0/state/{STORE}/transaction",
            status_code=500,
            content="state store does not support transactions",
        )

        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await client.execute_state_transaction(STORE, [TransactionOperation.upsert("a", 1)])

        assert "does not support transactions" in exc_info.value.response.text


class TestStateConnectivity:
    @pytest.mark.asyncio
    async def test_fail_fast_wraps_connectivity_failure(self, client, sidecar):
        sidecar.error = httpx.ConnectTimeout("timed out")

        with pytest.raises(BackendUnavailableError):
            await client.get_state(STORE, "k")

    @pytest.mark.asyncio
    async def test_raw_error_without_fail_fast(self, sidecar, pool):
        sidecar.error = httpx.ConnectError("connection refused")
        client = DaprClient(ClientOptions(endpoint=SIDECAR_URL, fail_fast=False), pool=pool)

        with pytest.raises(httpx.ConnectError):
            await client.save_state(STORE, "k", "v")
