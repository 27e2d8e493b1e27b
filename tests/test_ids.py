import re
import threading

from common import ids
from common.ids import ReferenceGenerator, generate_order_reference, generate_transaction_reference

ORDER_PATTERN = re.compile(r"^ORD-\d{13}-[0-9A-Z]{6}$")
TRANSACTION_PATTERN = re.compile(r"^TXN-\d{13}-[0-9A-Z]{8}$")


class FrozenClock:
    def __init__(self, now: float):
        self.now = now

    def time(self) -> float:
        return self.now


def test_reference_formats():
    assert ORDER_PATTERN.match(generate_order_reference())
    assert TRANSACTION_PATTERN.match(generate_transaction_reference())


def test_no_collisions_in_10000_generations():
    orders = {generate_order_reference() for _ in range(10_000)}
    transactions = {generate_transaction_reference() for _ in range(10_000)}
    assert len(orders) == 10_000
    assert len(transactions) == 10_000


def test_unique_across_threads():
    generate = ReferenceGenerator("ORD", 6)
    results = []
    lock = threading.Lock()

    def mint():
        batch = [generate() for _ in range(2_000)]
        with lock:
            results.extend(batch)

    threads = [threading.Thread(target=mint) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == len(set(results)) == 10_000


def test_single_char_suffix_still_unique_within_a_millisecond(monkeypatch):
    # 36 possible suffixes: the generator must redraw instead of repeating
    generate = ReferenceGenerator("T", 1)
    monkeypatch.setattr(ids, "time", FrozenClock(1_700_000_000.0))
    refs = [generate() for _ in range(36)]
    assert len(set(refs)) == 36


def test_clock_stepping_back_does_not_reopen_older_millisecond(monkeypatch):
    generate = ReferenceGenerator("ORD", 6)
    clock = FrozenClock(1_700_000_000.5)
    monkeypatch.setattr(ids, "time", clock)
    first = generate()
    clock.now = 1_700_000_000.1
    second = generate()
    assert first.split("-")[1] == second.split("-")[1] == "1700000000500"
    assert first != second
