import time
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pika
import pytest

from common.broker import ATTEMPT_HEADER
from common.events import TransactionEvent
from common.lifecycle import Lifecycle
from payment_service.publisher import TransactionPublisher


def make_event(**overrides) -> TransactionEvent:
    fields = dict(
        customer_id="cust-1",
        order_id="ORD-1",
        product_id="prod-1",
        amount=450.0,
        currency="USD",
        transaction_reference="TXN-1700000000000-ABCDEFGH",
        payment_status="completed",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return TransactionEvent(**fields)


@pytest.fixture
def broker():
    broker = MagicMock()
    broker.queue = "transaction_queue"
    broker.is_open = True
    return broker


@pytest.fixture
def lifecycle():
    lifecycle = Lifecycle("test")
    yield lifecycle
    lifecycle.shutdown()
    lifecycle.join(2)


def test_publish_is_persistent_with_attempt_header(broker, lifecycle):
    publisher = TransactionPublisher(broker, lifecycle)

    result = publisher.publish(make_event())

    assert result.success
    kwargs = broker.channel.basic_publish.call_args.kwargs
    assert kwargs["routing_key"] == "transaction_queue"
    assert kwargs["mandatory"] is True
    assert kwargs["properties"].delivery_mode == pika.DeliveryMode.Persistent.value
    assert kwargs["properties"].headers == {ATTEMPT_HEADER: 0}
    assert TransactionEvent.from_message(kwargs["body"]) == make_event()


def test_body_uses_camel_case_wire_names(broker, lifecycle):
    TransactionPublisher(broker, lifecycle).publish(make_event())

    body = broker.channel.basic_publish.call_args.kwargs["body"]
    assert b'"transactionReference"' in body
    assert b'"orderId"' in body


def test_not_connected_and_cannot_connect(broker, lifecycle):
    broker.is_open = False
    broker.open.side_effect = pika.exceptions.AMQPConnectionError("down")

    result = TransactionPublisher(broker, lifecycle).publish(make_event())

    assert not result.success
    assert result.error == "RabbitMQ not connected"
    broker.channel.basic_publish.assert_not_called()


def test_reconnects_on_demand_before_publishing(broker, lifecycle):
    broker.is_open = False

    result = TransactionPublisher(broker, lifecycle).publish(make_event())

    assert result.success
    broker.open.assert_called_once()
    broker.open.return_value.confirm_delivery.assert_called_once()


@pytest.mark.parametrize("error", [pika.exceptions.NackError([]), pika.exceptions.UnroutableError([])])
def test_refused_publish(broker, lifecycle, error):
    broker.channel.basic_publish.side_effect = error

    result = TransactionPublisher(broker, lifecycle).publish(make_event())

    assert not result.success
    assert result.error == "Queue full or channel closed"


def test_connection_lost_while_publishing_closes_broker(broker, lifecycle):
    broker.channel.basic_publish.side_effect = pika.exceptions.StreamLostError("lost")

    result = TransactionPublisher(broker, lifecycle).publish(make_event())

    assert not result.success
    broker.close.assert_called_once()


def test_supervisor_retries_until_connected(broker, lifecycle):
    broker.is_open = False
    attempts = []

    def open_channel():
        attempts.append(1)
        if len(attempts) < 3:
            raise pika.exceptions.AMQPConnectionError("down")
        broker.is_open = True
        return MagicMock()

    broker.open.side_effect = open_channel
    publisher = TransactionPublisher(broker, lifecycle, reconnect_delay=0.01, poll_interval=0.01)
    publisher.start()

    deadline = time.monotonic() + 5
    while not publisher.is_ready and time.monotonic() < deadline:
        time.sleep(0.01)

    assert publisher.is_ready
    assert len(attempts) == 3


def test_supervisor_stops_on_shutdown(broker, lifecycle):
    broker.is_open = False
    broker.open.side_effect = pika.exceptions.AMQPConnectionError("down")
    publisher = TransactionPublisher(broker, lifecycle, reconnect_delay=0.01)
    publisher.start()

    lifecycle.shutdown()

    assert lifecycle.join(2)
