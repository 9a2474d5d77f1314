"""Time-ordered ID generator for ledger records.

Expense, settlement, adjustment and recurring-template ids are snowflake-style
integers rendered with a short type prefix (``exp_``, ``stl_``, ``adj_``, ``rec_``).
Ids produced by one generator sort in creation order, which the ledger relies
on to order adjustments that share a timestamp.
"""

import threading
import time


class LedgerIdGenerator:
    """Single-process snowflake generator.

    Layout (63 bits):
      - 41 bits: millisecond timestamp since custom epoch
      - 10 bits: node_id (0-1023)
      - 12 bits: sequence (0-4095 per millisecond)
    """

    _EPOCH_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z
    _NODE_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, node_id: int = 0) -> None:
        if not (0 <= node_id < (1 << self._NODE_BITS)):
            raise ValueError(f"node_id must be 0-{(1 << self._NODE_BITS) - 1}")
        self._node_id = node_id
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_int(self) -> int:
        with self._lock:
            now = self._now_ms()
            if now < self._last_ms:
                # Clock went backwards; keep ids monotonic.
                now = self._last_ms
            if now == self._last_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    now = self._wait_past(now)
            else:
                self._sequence = 0
            self._last_ms = now
            return (
                ((now - self._EPOCH_MS) << (self._NODE_BITS + self._SEQUENCE_BITS))
                | (self._node_id << self._SEQUENCE_BITS)
                | self._sequence
            )

    def next_id(self, prefix: str) -> str:
        # Zero-padded so string order matches numeric order.
        return f"{prefix}_{self.next_int():019d}"

    def _now_ms(self) -> int:
        return int(time.time() * 1000)

    def _wait_past(self, last_ms: int) -> int:
        now = self._now_ms()
        while now <= last_ms:
            now = self._now_ms()
        return now


_default_generator = LedgerIdGenerator()


def new_expense_id() -> str:
    return _default_generator.next_id("exp")


def new_settlement_id() -> str:
    return _default_generator.next_id("stl")


def new_adjustment_id() -> str:
    return _default_generator.next_id("adj")


def new_recurring_id() -> str:
    return _default_generator.next_id("rec")
