"""
TransactionConsumer — records completed transactions delivered over RabbitMQ.

Per message:

    received -> parsed -> persisted          -> acked
    received -> parsed -> duplicate          -> acked
    received -> malformed (copied to DLQ)    -> acked
    received -> parsed -> persist failed     -> republished with attempt+1, original acked
                                             -> or, out of attempts, rejected to the DLQ

Delivery is at-least-once, so the unique transaction reference in the history
table is what keeps the outcome exactly-once. Prefetch is 1: the next message
is not delivered until the current one has been settled.
"""

import logging
from enum import Enum

import pika
from pika.adapters.blocking_connection import BlockingChannel
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from common.broker import ATTEMPT_HEADER, BrokerConnection, dead_letter_queue_name
from common.events import TransactionEvent
from common.lifecycle import Lifecycle
from transaction_worker.store import TransactionHistoryStore

logger = logging.getLogger("TransactionWorker")

CONNECTION_ERRORS = (pika.exceptions.AMQPError, OSError)


class Outcome(str, Enum):
    PERSISTED = "persisted"
    DUPLICATE = "duplicate"
    MALFORMED = "malformed"
    REQUEUED = "requeued"
    DISCARDED = "discarded"


def previous_attempts(properties) -> int:
    headers = getattr(properties, "headers", None) or {}
    try:
        return max(0, int(headers.get(ATTEMPT_HEADER, 0)))
    except (TypeError, ValueError):
        return 0


class TransactionConsumer:
    def __init__(self, broker: BrokerConnection, store: TransactionHistoryStore, lifecycle: Lifecycle,
                 max_attempts: int = 3, reconnect_delay: float = 5.0, inactivity_timeout: float = 1.0):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.broker = broker
        self.store = store
        self.lifecycle = lifecycle
        self.max_attempts = max_attempts
        self.reconnect_delay = reconnect_delay
        self.inactivity_timeout = inactivity_timeout

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------

    def handle(self, channel: BlockingChannel, method, properties, body: bytes) -> Outcome:
        """Settle one delivery (ack, republish or reject) and report what happened."""
        attempt = previous_attempts(properties) + 1

        try:
            event = TransactionEvent.from_message(body)
        except ValidationError as e:
            logger.error("Could not parse transaction message, routing to DLQ: %s", e.errors()[:3])
            channel.basic_publish(
                exchange="",
                routing_key=dead_letter_queue_name(self.broker.queue),
                body=body,
                properties=pika.BasicProperties(
                    delivery_mode=pika.DeliveryMode.Persistent,
                    headers={"x-error": "malformed transaction event"},
                ),
            )
            channel.basic_ack(delivery_tag=method.delivery_tag)
            return Outcome.MALFORMED

        logger.info(
            "Processing transaction %s for order %s (attempt %d%s)",
            event.transaction_reference, event.order_id, attempt,
            ", redelivered" if method.redelivered else "",
        )

        try:
            created = self.store.record(event)
        except SQLAlchemyError as e:
            logger.error("Error saving transaction %s: %s", event.transaction_reference, e)
            return self._retry_or_discard(channel, method, properties, body, attempt)

        channel.basic_ack(delivery_tag=method.delivery_tag)
        if not created:
            logger.warning("Duplicate transaction %s detected, acknowledged", event.transaction_reference)
            return Outcome.DUPLICATE

        logger.info("Transaction %s saved to history", event.transaction_reference)
        return Outcome.PERSISTED

    def _retry_or_discard(self, channel: BlockingChannel, method, properties, body: bytes,
                          attempt: int) -> Outcome:
        if attempt >= self.max_attempts:
            logger.error("Max attempts (%d) exceeded, discarding message to DLQ", self.max_attempts)
            channel.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
            return Outcome.DISCARDED

        headers = dict(getattr(properties, "headers", None) or {})
        headers[ATTEMPT_HEADER] = attempt
        # republish before acking: a crash in between means a duplicate, never a loss
        channel.basic_publish(
            exchange="",
            routing_key=self.broker.queue,
            body=body,
            properties=pika.BasicProperties(
                delivery_mode=pika.DeliveryMode.Persistent,
                content_type=getattr(properties, "content_type", None) or "application/json",
                headers=headers,
            ),
        )
        channel.basic_ack(delivery_tag=method.delivery_tag)
        logger.warning("Requeued message for retry (attempt %d of %d)", attempt, self.max_attempts)
        return Outcome.REQUEUED

    # ------------------------------------------------------------------
    # Consume loop
    # ------------------------------------------------------------------

    def _consume(self) -> None:
        channel = self.broker.open()
        channel.basic_qos(prefetch_count=1)
        logger.info("TransactionWorker ready — waiting for transaction events on %s...", self.broker.queue)

        for method, properties, body in channel.consume(
            self.broker.queue, auto_ack=False, inactivity_timeout=self.inactivity_timeout
        ):
            if method is not None:
                self.handle(channel, method, properties, body)
            if self.lifecycle.stopping:
                break

        # hands any prefetched, unacked delivery back to the broker
        channel.cancel()

    def run(self) -> None:
        """Consume until shutdown, reconnecting every `reconnect_delay` seconds on failure."""
        while not self.lifecycle.stopping:
            try:
                self._consume()
            except CONNECTION_ERRORS as e:
                logger.warning("Lost connection to RabbitMQ: %s", e)
            except Exception as e:
                logger.exception("Unexpected consumer error: %s", e)
            finally:
                self.broker.close()

            if self.lifecycle.stopping:
                break
            logger.info("Reconnecting in %ss...", self.reconnect_delay)
            if self.lifecycle.wait(self.reconnect_delay):
                break
        logger.info("TransactionWorker consumer stopped")
