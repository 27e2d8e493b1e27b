"""
TransactionPublisher — pushes completed-transaction events onto RabbitMQ.

The publisher owns one BrokerConnection (one connection, one channel). Flask
serves requests from several threads and pika's blocking connection is not
thread-safe, so every touch of the connection happens under one lock.

A supervisor thread keeps the connection serviced (heartbeats) and, when the
connection is lost or could not be opened, retries every `reconnect_delay`
seconds until the lifecycle asks it to stop. Publishing never raises: callers
get a PublishResult and decide what to log.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import pika

from common.broker import ATTEMPT_HEADER, BrokerConnection
from common.events import TransactionEvent
from common.lifecycle import Lifecycle

logger = logging.getLogger("transaction_publisher")

CONNECTION_ERRORS = (pika.exceptions.AMQPError, OSError)


@dataclass(frozen=True)
class PublishResult:
    success: bool
    error: Optional[str] = None


class TransactionPublisher:
    def __init__(self, broker: BrokerConnection, lifecycle: Lifecycle,
                 reconnect_delay: float = 5.0, poll_interval: float = 1.0):
        self.broker = broker
        self.lifecycle = lifecycle
        self.reconnect_delay = reconnect_delay
        self.poll_interval = poll_interval
        self._lock = threading.RLock()
        self._supervisor: Optional[threading.Thread] = None

    @property
    def is_ready(self) -> bool:
        return self.broker.is_open

    def start(self) -> None:
        """Try to connect once, then hand the connection to the supervisor thread."""
        self.connect()
        if self._supervisor is None:
            self._supervisor = self.lifecycle.spawn(self._supervise, name="publisher-supervisor")

    def connect(self) -> bool:
        with self._lock:
            try:
                channel = self.broker.open()
                # broker acks/nacks every publish, so a refused message is visible
                channel.confirm_delivery()
                return True
            except CONNECTION_ERRORS as e:
                logger.error("Failed to connect to RabbitMQ: %s", e)
                self.broker.close()
                return False

    def publish(self, event: TransactionEvent) -> PublishResult:
        with self._lock:
            if not self.broker.is_open:
                logger.warning("RabbitMQ not connected, attempting to connect...")
                if not self.connect():
                    return PublishResult(success=False, error="RabbitMQ not connected")

            try:
                self.broker.channel.basic_publish(
                    exchange="",
                    routing_key=self.broker.queue,
                    body=event.to_message(),
                    properties=pika.BasicProperties(
                        delivery_mode=pika.DeliveryMode.Persistent,
                        content_type="application/json",
                        timestamp=int(time.time()),
                        headers={ATTEMPT_HEADER: 0},
                    ),
                    mandatory=True,
                )
            except (pika.exceptions.NackError, pika.exceptions.UnroutableError) as e:
                logger.warning("Failed to publish transaction - queue full or channel closed: %s", e)
                return PublishResult(success=False, error="Queue full or channel closed")
            except CONNECTION_ERRORS as e:
                logger.error("Error publishing transaction for order %s: %s", event.order_id, e)
                self.broker.close()
                return PublishResult(success=False, error=str(e) or type(e).__name__)

        logger.info(
            "Transaction published to queue %s (order %s, reference %s)",
            self.broker.queue, event.order_id, event.transaction_reference,
        )
        return PublishResult(success=True)

    def close(self) -> None:
        with self._lock:
            self.broker.close()
        logger.info("RabbitMQ publisher closed")

    def _pump(self) -> bool:
        """Service heartbeats; False when there is no usable connection."""
        if not self.broker.is_open:
            return False
        try:
            self.broker.connection.process_data_events(time_limit=0)
            return True
        except CONNECTION_ERRORS as e:
            logger.warning("RabbitMQ connection closed: %s", e)
            self.broker.close()
            return False

    def _supervise(self) -> None:
        while not self.lifecycle.stopping:
            with self._lock:
                alive = self._pump()
            if alive:
                self.lifecycle.wait(self.poll_interval)
                continue

            logger.warning("RabbitMQ unavailable, reconnecting in %ss", self.reconnect_delay)
            if self.lifecycle.wait(self.reconnect_delay):
                break
            with self._lock:
                if not self.broker.is_open:
                    self.connect()
        logger.info("Publisher supervisor stopped")
