"""
Stand-in for the external card gateway. It only reports success or failure;
PAYMENT_FAIL_MODE and PAYMENT_DELAY_MS let a test environment force declines
and slow responses.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from payment_service import config
from payment_service.models import Payment

logger = logging.getLogger("payment_gateway")


@dataclass(frozen=True)
class ChargeResult:
    success: bool
    error: Optional[str] = None


class DemoGateway:
    name = "demo_gateway"

    def __init__(self, fail_mode: bool = config.PAYMENT_FAIL_MODE, delay_ms: int = config.PAYMENT_DELAY_MS):
        self.fail_mode = fail_mode
        self.delay_ms = delay_ms

    def charge(self, payment: Payment) -> ChargeResult:
        if self.delay_ms > 0:
            logger.info("Injecting delay of %dms", self.delay_ms)
            time.sleep(self.delay_ms / 1000.0)

        if self.fail_mode:
            logger.error("Forced failure active. Declining payment %s", payment.id)
            return ChargeResult(success=False, error="Insufficient funds or card declined")

        return ChargeResult(success=True)
