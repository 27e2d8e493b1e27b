import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./order_service.db")
PORT = int(os.getenv("ORDER_SERVICE_PORT", 5003))

CUSTOMER_SERVICE_URL = os.getenv("CUSTOMER_SERVICE_URL", "http://localhost:5001")
PRODUCT_SERVICE_URL = os.getenv("PRODUCT_SERVICE_URL", "http://localhost:5002")
PAYMENT_SERVICE_URL = os.getenv("PAYMENT_SERVICE_URL", "http://localhost:5004")

# Read-style validation calls are short; payment initiation gets longer
ORDER_VALIDATION_TIMEOUT_MS = int(os.getenv("ORDER_VALIDATION_TIMEOUT_MS", 5000))
ORDER_PAYMENT_TIMEOUT_MS = int(os.getenv("ORDER_PAYMENT_TIMEOUT_MS", 10000))
ORDER_STOCK_TIMEOUT_MS = int(os.getenv("ORDER_STOCK_TIMEOUT_MS", 5000))
