import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./product_service.db")
SEED_DATA = os.getenv("SEED_DATA", "true").lower() == "true"
PORT = int(os.getenv("PRODUCT_SERVICE_PORT", 5002))
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", 10))
