"""Tests for hl_common.id_generator and hl_common.datetime_utils."""

from datetime import UTC, datetime

import pytest

from src.hl_common.datetime_utils import utc_now
from src.hl_common.id_generator import (
    LedgerIdGenerator,
    new_adjustment_id,
    new_expense_id,
    new_settlement_id,
)


class TestLedgerIdGenerator:
    def test_prefixed(self) -> None:
        assert new_expense_id().startswith("exp_")
        assert new_settlement_id().startswith("stl_")
        assert new_adjustment_id().startswith("adj_")

    def test_unique_ids(self) -> None:
        gen = LedgerIdGenerator(node_id=1)
        ids = {gen.next_id("exp") for _ in range(1000)}
        assert len(ids) == 1000

    def test_string_order_matches_creation_order(self) -> None:
        gen = LedgerIdGenerator(node_id=1)
        ids = [gen.next_id("adj") for _ in range(100)]
        assert ids == sorted(ids)

    def test_node_id_range(self) -> None:
        with pytest.raises(ValueError):
            LedgerIdGenerator(node_id=1024)


class TestUtcNow:
    def test_returns_aware_datetime(self) -> None:
        now = utc_now()
        assert isinstance(now, datetime)
        assert now.tzinfo is not None

    def test_is_utc(self) -> None:
        assert utc_now().utcoffset() == UTC.utcoffset(None)
