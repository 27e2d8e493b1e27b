"""
TransactionWorker — consumes completed-transaction events from RabbitMQ and
writes them to the transaction history store.
"""

import logging

from common.broker import BrokerConnection
from common.db import Database
from common.lifecycle import Lifecycle
from transaction_worker import config
from transaction_worker.consumer import TransactionConsumer
from transaction_worker.store import TransactionHistoryStore

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("TransactionWorker")


def build_consumer(lifecycle: Lifecycle, db: Database) -> TransactionConsumer:
    store = TransactionHistoryStore(db)
    store.create_schema()
    broker = BrokerConnection(config.RABBITMQ_URL, config.RABBITMQ_QUEUE)
    return TransactionConsumer(
        broker,
        store,
        lifecycle,
        max_attempts=config.TRANSACTION_MAX_ATTEMPTS,
        reconnect_delay=config.RABBITMQ_RECONNECT_DELAY,
    )


def main():
    logger.info("Starting TransactionWorker...")
    lifecycle = Lifecycle("TransactionWorker")
    lifecycle.install_signal_handlers()

    db = Database(config.DATABASE_URL)
    consumer = build_consumer(lifecycle, db)
    lifecycle.spawn(consumer.run, name="transaction-consumer")

    # main thread only waits for a signal; the consumer drains its current message
    while not lifecycle.wait(1.0):
        pass

    if not lifecycle.join(config.SHUTDOWN_TIMEOUT_SECONDS):
        logger.warning("Consumer did not finish within %ss", config.SHUTDOWN_TIMEOUT_SECONDS)
    db.dispose()
    logger.info("TransactionWorker stopped")


if __name__ == "__main__":
    main()
