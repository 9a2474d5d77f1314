"""Tests for the SplitAllocator functions."""

import pytest

from src.hl_common.errors import (
    AmountMismatchError,
    EmptyParticipantsError,
    UnbalancedSplitError,
)
from src.hl_common.money import Money
from src.hl_ledger.domain.allocator import (
    allocate_custom,
    allocate_equal,
    allocate_multi_payer,
    allocate_percentage,
    allocate_weighted,
)


def _cents(amounts: list[Money]) -> list[int]:
    return [m.cents for m in amounts]


class TestAllocateEqual:
    def test_hundred_by_three(self) -> None:
        assert _cents(allocate_equal(Money(100), 3)) == [34, 33, 33]

    def test_even_split(self) -> None:
        assert _cents(allocate_equal(Money(9000), 3)) == [3000, 3000, 3000]

    @pytest.mark.parametrize("total,n", [(1, 7), (101, 4), (99999, 13), (5, 5), (2, 3)])
    def test_sum_and_spread(self, total: int, n: int) -> None:
        shares = _cents(allocate_equal(Money(total), n))
        assert sum(shares) == total
        assert max(shares) - min(shares) <= 1
        assert all(total // n <= s <= total // n + 1 for s in shares)

    def test_remainder_goes_to_earliest(self) -> None:
        assert _cents(allocate_equal(Money(102), 4)) == [26, 26, 25, 25]

    def test_negative_total_is_mirrored(self) -> None:
        assert _cents(allocate_equal(Money(-100), 3)) == [-34, -33, -33]

    def test_zero_participants(self) -> None:
        with pytest.raises(EmptyParticipantsError):
            allocate_equal(Money(100), 0)

    def test_keeps_currency(self) -> None:
        assert all(m.currency == "EUR" for m in allocate_equal(Money(10, "EUR"), 3))


class TestAllocateCustom:
    def test_exact_sum_accepted(self) -> None:
        assert _cents(allocate_custom(Money(100), [Money(70), Money(30)])) == [70, 30]

    def test_short_sum_rejected(self) -> None:
        with pytest.raises(AmountMismatchError) as exc_info:
            allocate_custom(Money(100), [Money(50), Money(45)])
        assert exc_info.value.expected == 100
        assert exc_info.value.actual == 95
        assert exc_info.value.code == 1002

    def test_mismatch_is_an_unbalanced_split(self) -> None:
        with pytest.raises(UnbalancedSplitError):
            allocate_custom(Money(100), [Money(101)])


class TestAllocateMultiPayer:
    def test_exact_sum_accepted(self) -> None:
        assert _cents(allocate_multi_payer(Money(100), [Money(60), Money(40)])) == [60, 40]

    def test_over_sum_rejected(self) -> None:
        with pytest.raises(AmountMismatchError) as exc_info:
            allocate_multi_payer(Money(100), [Money(60), Money(60)])
        assert "Payments" in exc_info.value.message


class TestAllocateWeighted:
    def test_proportional(self) -> None:
        assert _cents(allocate_weighted(Money(100), [60, 40])) == [60, 40]

    def test_ties_go_to_earlier_index(self) -> None:
        assert _cents(allocate_weighted(Money(100), [1, 1, 1])) == [34, 33, 33]

    def test_largest_remainder_wins(self) -> None:
        # 10 * [1, 2] / 3 = [3.33, 6.67] -> the second gets the extra unit
        assert _cents(allocate_weighted(Money(10), [1, 2])) == [3, 7]

    def test_negative_total(self) -> None:
        assert _cents(allocate_weighted(Money(-10), [1, 2])) == [-3, -7]

    def test_zero_weight_gets_nothing(self) -> None:
        assert _cents(allocate_weighted(Money(7), [0, 5])) == [0, 7]

    def test_rejects_negative_weights(self) -> None:
        with pytest.raises(ValueError):
            allocate_weighted(Money(10), [-1, 2])

    def test_rejects_all_zero_weights(self) -> None:
        with pytest.raises(ValueError):
            allocate_weighted(Money(10), [0, 0])


class TestAllocatePercentage:
    def test_thirds(self) -> None:
        assert _cents(allocate_percentage(Money(100), [3333, 3333, 3334])) == [33, 33, 34]

    def test_quarter_split(self) -> None:
        assert _cents(allocate_percentage(Money(1999), [2500, 7500])) == [500, 1499]

    def test_must_sum_to_one_hundred_percent(self) -> None:
        with pytest.raises(AmountMismatchError) as exc_info:
            allocate_percentage(Money(100), [5000, 4000])
        assert "bps" in exc_info.value.message
        assert exc_info.value.actual == 9000
