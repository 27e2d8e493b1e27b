import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./customer_service.db")
SEED_DATA = os.getenv("SEED_DATA", "true").lower() == "true"
PORT = int(os.getenv("CUSTOMER_SERVICE_PORT", 5001))
