"""Tests for SettlementTracker."""

from dataclasses import replace
from datetime import timedelta

import pytest
from ledger_builders import T0, adjust, expense, settle, split

from src.hl_common.enums import ExpenseStatus
from src.hl_common.errors import (
    ExpenseVoidedError,
    LedgerCorruptionError,
    NonPositiveAmountError,
    OverSettlementError,
    UnknownShareError,
)
from src.hl_common.money import Money
from src.hl_ledger.domain.models import ExpenseLedger
from src.hl_ledger.domain.settlement import SettlementTracker


def _dinner() -> ExpenseLedger:
    # 90 split three ways, C paid
    return ExpenseLedger(expense("exp_1", 90, {"C": 90}, participants=["A", "B", "C"]))


class TestOutstanding:
    def test_initial_outstanding_is_owed(self) -> None:
        tracker = SettlementTracker(_dinner())
        assert tracker.outstanding_for_share("A") == Money(30)

    def test_settlements_reduce_outstanding(self) -> None:
        ledger = settle(settle(_dinner(), "A", 10), "A", 5, minutes=2)
        tracker = SettlementTracker(ledger)
        assert tracker.settled_for("A") == Money(15)
        assert tracker.outstanding_for_share("A") == Money(15)

    def test_unknown_member(self) -> None:
        with pytest.raises(UnknownShareError) as exc_info:
            SettlementTracker(_dinner()).outstanding_for_share("Z")
        assert exc_info.value.code == 2002

    def test_credit_after_downward_edit(self) -> None:
        ledger = settle(_dinner(), "A", 30)
        ledger = adjust(ledger, split(60, {"C": 60}, participants=["A", "B", "C"]))
        tracker = SettlementTracker(ledger)
        assert tracker.signed_outstanding("A") == Money(-10)
        assert tracker.outstanding_for_share("A") == Money(0)
        assert tracker.latest_credit("A") == Money(10)

    def test_excess_without_credit_is_corruption(self) -> None:
        # Settlement larger than the share with no adjustment to explain it.
        ledger = settle(_dinner(), "A", 45)
        with pytest.raises(LedgerCorruptionError):
            SettlementTracker(ledger).signed_outstanding("A")


class TestPrepareSettlement:
    def test_returns_entry_without_touching_ledger(self) -> None:
        ledger = _dinner()
        entry = SettlementTracker(ledger).prepare_settlement(
            "A", Money(20), settlement_id="stl_1", settled_at=T0
        )
        assert entry.member_id == "A"
        assert entry.settled == Money(20)
        assert entry.expense_id == "exp_1"
        assert entry.household_id == "hh_1"
        assert ledger.settlements == []

    def test_exact_remaining_amount_is_allowed(self) -> None:
        ledger = settle(_dinner(), "A", 10)
        entry = SettlementTracker(ledger).prepare_settlement(
            "A", Money(20), settlement_id="stl_2", settled_at=T0
        )
        assert entry.settled == Money(20)

    def test_over_settlement(self) -> None:
        ledger = settle(_dinner(), "A", 10)
        with pytest.raises(OverSettlementError) as exc_info:
            SettlementTracker(ledger).prepare_settlement(
                "A", Money(21), settlement_id="stl_2", settled_at=T0
            )
        assert exc_info.value.code == 2003
        assert "20" in exc_info.value.message

    @pytest.mark.parametrize("cents", [0, -5])
    def test_non_positive_amount(self, cents: int) -> None:
        with pytest.raises(NonPositiveAmountError):
            SettlementTracker(_dinner()).prepare_settlement(
                "A", Money(cents), settlement_id="stl_1", settled_at=T0
            )

    def test_unknown_member(self) -> None:
        with pytest.raises(UnknownShareError):
            SettlementTracker(_dinner()).prepare_settlement(
                "Z", Money(1), settlement_id="stl_1", settled_at=T0
            )

    def test_voided_expense(self) -> None:
        ledger = _dinner()
        ledger = ledger.with_expense(replace(ledger.expense, status=ExpenseStatus.VOIDED))
        with pytest.raises(ExpenseVoidedError):
            SettlementTracker(ledger).prepare_settlement(
                "A", Money(1), settlement_id="stl_1", settled_at=T0
            )

    def test_credit_holder_cannot_settle_more(self) -> None:
        ledger = settle(_dinner(), "A", 30)
        ledger = adjust(ledger, split(60, {"C": 60}, participants=["A", "B", "C"]))
        with pytest.raises(OverSettlementError):
            SettlementTracker(ledger).prepare_settlement(
                "A", Money(1), settlement_id="stl_9", settled_at=T0 + timedelta(hours=1)
            )


class TestFullySettled:
    def test_not_settled_initially(self) -> None:
        assert not SettlementTracker(_dinner()).is_fully_settled()

    def test_payer_share_does_not_need_settling(self) -> None:
        ledger = settle(settle(_dinner(), "A", 30), "B", 30, minutes=2)
        assert SettlementTracker(ledger).is_fully_settled()

    def test_partial(self) -> None:
        ledger = settle(settle(_dinner(), "A", 30), "B", 29, minutes=2)
        assert not SettlementTracker(ledger).is_fully_settled()

    def test_self_paid_expense_is_settled(self) -> None:
        ledger = ExpenseLedger(expense("exp_1", 50, {"A": 50}, participants=["A"]))
        assert SettlementTracker(ledger).is_fully_settled()


class TestObligations:
    def test_single_payer(self) -> None:
        obligations = sorted(SettlementTracker(_dinner()).obligations())
        assert obligations == [("A", "C", Money(30)), ("B", "C", Money(30))]

    def test_multi_payer_nets_to_ten(self) -> None:
        ledger = ExpenseLedger(
            expense("exp_1", 100, {"A": 60, "B": 40}, shares={"A": 50, "B": 50})
        )
        obligations = sorted(SettlementTracker(ledger).obligations())
        # A's 50 is owed 30 to A (self) and 20 to B; B's 50 is 30 to A and 20 to B (self).
        assert obligations == [("A", "B", Money(20)), ("B", "A", Money(30))]

    def test_credit_flows_back_from_payer(self) -> None:
        ledger = settle(_dinner(), "A", 30)
        ledger = adjust(ledger, split(60, {"C": 60}, participants=["A", "B", "C"]))
        obligations = sorted(SettlementTracker(ledger).obligations())
        assert obligations == [("A", "C", Money(-10)), ("B", "C", Money(20))]
