"""
Integration tests for the Redis transport against an in-memory client.
"""

import asyncio
import json

import pytest
from opentelemetry import trace
from opentelemetry.context import attach, detach
from redis.exceptions import ConnectionError as RedisConnectionError

from notifier.constants import DEFAULT_QUEUE_NAME
from notifier.observability.tracing import inject_carrier
from notifier.transport import RedisTransport, TransportConnectionError
from notifier.transport.validation import validate
from tests.fakes import TRACE_ID, FakeRedis


class BrokenRedis(FakeRedis):
    """Client whose commands fail with a connection error."""

    async def ping(self) -> bool:
        raise RedisConnectionError("Connection refused")

    async def lpush(self, key: str, value: str) -> int:
        raise RedisConnectionError("Connection refused")


def consumed(registry, outcome: str) -> float:
    return registry.get_sample_value(
        "queue_messages_consumed_total",
        {"transport": "redis", "outcome": outcome},
    ) or 0.0


class TestRedisTransport:
    """Tests for RedisTransport."""

    @pytest.fixture
    def client(self, stop_event) -> FakeRedis:
        return FakeRedis(stop_event=stop_event)

    @pytest.fixture
    def transport(self, client, stop_event, metrics) -> RedisTransport:
        return RedisTransport(
            client=client,
            stop_event=stop_event,
            metrics=metrics,
            error_backoff=0,
        )

    def push(self, client: FakeRedis, payload) -> None:
        if not isinstance(payload, str):
            payload = json.dumps(payload)
        client.lists[DEFAULT_QUEUE_NAME].insert(0, payload)

    @pytest.mark.asyncio
    async def test_publish_then_consume(self, transport, client, message_fields, producer_context):
        """Test a published message reaches the handler with its carrier."""
        token = attach(producer_context)
        try:
            await transport.publish(inject_carrier(message_fields))
        finally:
            detach(token)

        received = []

        async def handler(message):
            received.append(message)

        await transport.consume(handler)

        assert len(received) == 1
        wire = received[0].to_wire()
        assert wire.pop("traceContext")
        assert wire == message_fields

    @pytest.mark.asyncio
    async def test_handler_runs_under_producer_trace(
        self, transport, message_fields, producer_context
    ):
        """Test the handler sees the producer's trace as its parent."""
        await transport.publish(inject_carrier(message_fields, context=producer_context))
        seen = []

        async def handler(message):
            seen.append(trace.get_current_span().get_span_context().trace_id)

        await transport.consume(handler)

        assert seen == [TRACE_ID]

    @pytest.mark.asyncio
    async def test_messages_are_fifo(self, transport, message_fields):
        """Test that messages are consumed in publish order."""
        for order_id in (1, 2, 3):
            await transport.publish(inject_carrier({**message_fields, "orderId": order_id}))
        order = []

        async def handler(message):
            order.append(message.order_id)

        await transport.consume(handler)

        assert order == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_handler_failure_loses_message(
        self, transport, client, message_fields, registry
    ):
        """Test that a failed item is not redelivered; the next pop gets a different one."""
        self.push(client, {**message_fields, "orderId": 1})
        self.push(client, {**message_fields, "orderId": 2})
        calls = []

        async def handler(message):
            calls.append(message.order_id)
            if message.order_id == 1:
                raise ValueError("smtp down")

        await transport.consume(handler)

        assert calls == [1, 2]
        assert client.lists[DEFAULT_QUEUE_NAME] == []
        assert consumed(registry, "lost") == 1
        assert consumed(registry, "acked") == 1

    @pytest.mark.asyncio
    async def test_retrieval_failure_backs_off_without_loss(
        self, stop_event, metrics, registry, message_fields
    ):
        """Test that a failed pop is retried and the item is still delivered."""
        client = FakeRedis(stop_event=stop_event, failing_pops=2)
        transport = RedisTransport(
            client=client, stop_event=stop_event, metrics=metrics, error_backoff=0
        )
        self.push(client, message_fields)
        received = []

        async def handler(message):
            received.append(message)

        await transport.consume(handler)

        assert len(received) == 1
        assert client.pop_calls == 4
        assert registry.get_sample_value(
            "queue_transport_errors_total",
            {"transport": "redis", "operation": "receive"},
        ) == 2

    @pytest.mark.asyncio
    async def test_malformed_message_discarded(self, transport, client, message_fields, registry):
        """Test that malformed items never reach the handler and are not retried."""
        self.push(client, "not json")
        self.push(client, '{"type":"x"}')
        self.push(client, message_fields)
        received = []

        async def handler(message):
            received.append(message)

        await transport.consume(handler)

        assert len(received) == 1
        assert client.lists[DEFAULT_QUEUE_NAME] == []
        assert consumed(registry, "malformed") == 2

    @pytest.mark.asyncio
    async def test_pre_cancelled_token(self, message_fields, metrics):
        """Test that a pre-set stop event means no retrieval at all."""
        stop = asyncio.Event()
        stop.set()
        client = FakeRedis()
        transport = RedisTransport(client=client, stop_event=stop, metrics=metrics)
        self.push(client, message_fields)

        async def handler(message):
            raise AssertionError("handler must not run")

        await transport.consume(handler)

        assert client.pop_calls == 0
        assert transport.running is False

    @pytest.mark.asyncio
    async def test_close_from_handler_stops_after_current_item(
        self, transport, client, message_fields
    ):
        """Test that close() lets the in-flight handler finish and stops the loop."""
        self.push(client, {**message_fields, "orderId": 1})
        self.push(client, {**message_fields, "orderId": 2})
        calls = []

        async def handler(message):
            calls.append(message.order_id)
            await transport.close()

        await transport.consume(handler)

        assert calls == [1]
        assert len(client.lists[DEFAULT_QUEUE_NAME]) == 1
        assert client.close_calls == 1

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, transport, client):
        """Test that the connection is released once."""
        await transport.close()
        await transport.close()

        assert client.close_calls == 1
        assert transport.stopping

    @pytest.mark.asyncio
    async def test_concurrent_consume_rejected(self, metrics):
        """Test that a second consume on the same instance fails."""
        client = FakeRedis()
        transport = RedisTransport(client=client, metrics=metrics)

        async def handler(message):
            pass

        task = asyncio.create_task(transport.consume(handler))
        while not transport.running:
            await asyncio.sleep(0)

        with pytest.raises(RuntimeError):
            await transport.consume(handler)

        await transport.close()
        await task
        assert transport.running is False

    @pytest.mark.asyncio
    async def test_publish_failure(self, metrics, message_fields):
        """Test that a connection failure on publish raises TransportConnectionError."""
        transport = RedisTransport(client=BrokenRedis(), metrics=metrics)

        with pytest.raises(TransportConnectionError):
            await transport.publish(inject_carrier(message_fields))

    @pytest.mark.asyncio
    async def test_connect_failure(self, metrics):
        """Test that an unreachable server fails connect."""
        transport = RedisTransport(client=BrokenRedis(), metrics=metrics)

        with pytest.raises(TransportConnectionError):
            await transport.connect()

    @pytest.mark.asyncio
    async def test_publish_records_metric(self, transport, message_fields, registry):
        """Test the publish counter."""
        await transport.publish(inject_carrier(message_fields))

        assert registry.get_sample_value(
            "queue_messages_published_total", {"transport": "redis"}
        ) == 1

    @pytest.mark.asyncio
    async def test_validator_crash_discards_item(
        self, transport, client, message_fields, registry, monkeypatch
    ):
        """Test that a payload crashing the validator is discarded, not a receive error."""

        def crashing_validate(raw):
            if raw == "explode":
                raise RecursionError("maximum recursion depth exceeded")
            return validate(raw)

        monkeypatch.setattr("notifier.transport.base.validate", crashing_validate)
        self.push(client, "explode")
        self.push(client, message_fields)
        received = []

        async def handler(message):
            received.append(message)

        await transport.consume(handler)

        assert len(received) == 1
        assert consumed(registry, "malformed") == 1
        assert registry.get_sample_value(
            "queue_transport_errors_total",
            {"transport": "redis", "operation": "receive"},
        ) is None

    @pytest.mark.asyncio
    async def test_snake_case_extras_are_ignored(self, transport, client, message_fields):
        """Test that unknown snake_case keys neither fail nor become the carrier."""
        self.push(client, {**message_fields, "trace_context": 5})
        self.push(client, {**message_fields, "trace_context": {"traceparent": "x"}})
        received = []

        async def handler(message):
            received.append(message)

        await transport.consume(handler)

        assert len(received) == 2
        assert all(message.trace_context is None for message in received)


class TestRedisBackoff:
    """Tests for the fixed backoff after Redis failures."""

    def push(self, client: FakeRedis, payload) -> None:
        if not isinstance(payload, str):
            payload = json.dumps(payload)
        client.lists[DEFAULT_QUEUE_NAME].insert(0, payload)

    @pytest.mark.asyncio
    async def test_pop_failure_sleeps_one_second(
        self, stop_event, metrics, message_fields, backoffs
    ):
        """Test that a failed pop is followed by a one second backoff."""
        client = FakeRedis(stop_event=stop_event, failing_pops=1)
        transport = RedisTransport(client=client, stop_event=stop_event, metrics=metrics)
        self.push(client, message_fields)

        async def handler(message):
            pass

        await transport.consume(handler)

        assert backoffs == [1.0]

    @pytest.mark.asyncio
    async def test_handler_failure_sleeps_one_second(
        self, stop_event, metrics, message_fields, backoffs
    ):
        """Test that a failed handler is followed by a one second backoff."""
        client = FakeRedis(stop_event=stop_event)
        transport = RedisTransport(client=client, stop_event=stop_event, metrics=metrics)
        self.push(client, message_fields)

        async def handler(message):
            raise RuntimeError("smtp down")

        await transport.consume(handler)

        assert backoffs == [1.0]

    @pytest.mark.asyncio
    async def test_malformed_item_has_no_backoff(
        self, stop_event, metrics, message_fields, backoffs
    ):
        """Test that discarding a malformed item does not sleep."""
        client = FakeRedis(stop_event=stop_event)
        transport = RedisTransport(client=client, stop_event=stop_event, metrics=metrics)
        self.push(client, "not json")
        self.push(client, {**message_fields, "total": "9.5"})
        received = []

        async def handler(message):
            received.append(message)

        await transport.consume(handler)

        assert received == []
        assert backoffs == []
