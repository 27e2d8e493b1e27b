"""
PaymentService — charges the customer for an order and, once the charge has
gone through, publishes a transaction event for the history worker.

A failed publish never undoes the payment; the transaction history is an
eventually consistent side channel.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional

from flask import Flask, jsonify, request
from pydantic import BaseModel, Field, ValidationError

from common.broker import BrokerConnection
from common.db import Database
from common.events import TransactionEvent
from common.lifecycle import Lifecycle
from payment_service import config
from payment_service.gateway import DemoGateway
from payment_service.models import Payment
from payment_service.publisher import TransactionPublisher
from payment_service.store import PaymentStore

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("PaymentService")


class PaymentRequest(BaseModel):
    customerId: str = Field(min_length=1)
    orderId: str = Field(min_length=1)
    amount: float = Field(gt=0)
    currency: Literal["NGN", "USD", "EUR", "GBP"] = "NGN"
    productId: str = Field(min_length=1)


def transaction_event(payment: Payment) -> TransactionEvent:
    return TransactionEvent(
        customer_id=payment.customer_id,
        order_id=payment.order_id,
        product_id=payment.product_id,
        amount=float(payment.amount),
        currency=payment.currency,
        transaction_reference=payment.transaction_reference,
        payment_status=payment.payment_status,
        payment_method=payment.payment_method,
        timestamp=datetime.now(timezone.utc),
    )


def create_app(database: Optional[Database] = None, publisher: Optional[TransactionPublisher] = None,
               gateway: Optional[DemoGateway] = None) -> Flask:
    db = database or Database(config.DATABASE_URL)
    store = PaymentStore(db)
    store.create_schema()
    gateway = gateway or DemoGateway()
    if publisher is None:
        broker = BrokerConnection(config.RABBITMQ_URL, config.RABBITMQ_QUEUE)
        publisher = TransactionPublisher(broker, Lifecycle("PaymentService"), config.RABBITMQ_RECONNECT_DELAY)
        publisher.start()

    app = Flask(__name__)
    app.extensions["payment_publisher"] = publisher

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "status": "success",
            "service": "payment-service",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "connected" if db.ping() else "disconnected",
            "rabbitmq": "connected" if publisher.is_ready else "disconnected",
        }), 200

    @app.route("/payments", methods=["POST"])
    def process_payment():
        """Charge the customer and publish the transaction on success."""
        data = request.get_json(silent=True) or {}
        try:
            req = PaymentRequest.model_validate(data)
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            logger.warning("Invalid payment request: %s", fields)
            return jsonify({
                "status": "fail",
                "message": f"Missing or invalid fields: {', '.join(fields)}",
            }), 400

        logger.info("Processing payment for order %s (%s %s)", req.orderId, req.amount, req.currency)
        payment = store.create(
            customer_id=req.customerId,
            order_id=req.orderId,
            product_id=req.productId,
            amount=Decimal(str(req.amount)),
            currency=req.currency,
            payment_gateway=gateway.name,
        )
        logger.info("Payment record %s created, reference %s", payment.id, payment.transaction_reference)

        result = gateway.charge(payment)
        if not result.success:
            store.mark_failed(payment.id, result.error)
            logger.warning("Payment %s for order %s failed: %s", payment.id, req.orderId, result.error)
            return jsonify({
                "status": "fail",
                "message": "Payment processing failed",
                "error": result.error,
            }), 400

        payment = store.mark_completed(payment.id)
        logger.info("Payment %s completed for order %s", payment.id, req.orderId)

        published = publisher.publish(transaction_event(payment))
        if not published.success:
            logger.warning(
                "Failed to publish transaction %s, payment completed anyway: %s",
                payment.transaction_reference, published.error,
            )

        return jsonify({
            "status": "success",
            "message": "Payment processed successfully",
            "data": {"payment": payment.to_dict()},
        }), 200

    @app.route("/payments/<payment_id>", methods=["GET"])
    def get_payment(payment_id):
        payment = store.get(payment_id)
        if not payment:
            return jsonify({"status": "fail", "message": "Payment not found"}), 404
        return jsonify({"status": "success", "data": {"payment": payment.to_dict(detailed=True)}}), 200

    @app.route("/payments", methods=["GET"])
    def list_payments():
        payments = store.list(
            customer_id=request.args.get("customerId"),
            payment_status=request.args.get("paymentStatus"),
            order_id=request.args.get("orderId"),
        )
        return jsonify({
            "status": "success",
            "results": len(payments),
            "data": {"payments": [p.to_dict(detailed=True) for p in payments]},
        }), 200

    return app


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app = create_app()
    publisher = app.extensions["payment_publisher"]
    publisher.lifecycle.install_signal_handlers(exit_process=True)

    logger.info("PaymentService starting on port %d...", config.PORT)
    try:
        app.run(host="0.0.0.0", port=config.PORT, debug=False, threaded=True)
    finally:
        publisher.lifecycle.shutdown()
        publisher.close()
        publisher.lifecycle.join(config.SHUTDOWN_TIMEOUT_SECONDS)
