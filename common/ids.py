"""
Identifier helpers shared by every service.

Order and transaction references are human readable:

    ORD-<unix millis>-<6 base36 chars>
    TXN-<unix millis>-<8 base36 chars>

The random suffix alone is not enough to keep references unique when many are
minted in the same millisecond, so each prefix remembers the suffixes it has
already handed out for the current millisecond and draws again on a clash.
"""

import secrets
import string
import threading
import time
import uuid

BASE36_ALPHABET = string.digits + string.ascii_uppercase

ORDER_PREFIX = "ORD"
TRANSACTION_PREFIX = "TXN"


class ReferenceGenerator:
    """Mints `<prefix>-<millis>-<suffix>` references, unique within the process."""

    def __init__(self, prefix: str, suffix_length: int):
        self.prefix = prefix
        self.suffix_length = suffix_length
        self._lock = threading.Lock()
        self._current_ms = 0
        self._issued: set = set()

    def _random_suffix(self) -> str:
        return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(self.suffix_length))

    def __call__(self) -> str:
        with self._lock:
            # the wall clock may step back; never reopen an older millisecond
            now_ms = max(int(time.time() * 1000), self._current_ms)
            if now_ms != self._current_ms:
                self._current_ms = now_ms
                self._issued = set()
            suffix = self._random_suffix()
            while suffix in self._issued:
                suffix = self._random_suffix()
            self._issued.add(suffix)
            return f"{self.prefix}-{now_ms}-{suffix}"


generate_order_reference = ReferenceGenerator(ORDER_PREFIX, 6)
generate_transaction_reference = ReferenceGenerator(TRANSACTION_PREFIX, 8)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def generate_id() -> str:
    """Primary key for stored rows."""
    return uuid.uuid4().hex
