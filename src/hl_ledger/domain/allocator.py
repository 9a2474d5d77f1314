"""SplitAllocator — exact apportionment of a total into shares.

Every function returns amounts that sum exactly to the total. Remainder
minor units are handed out one at a time (largest remainder first, ties to
the earlier position), so nothing is lost or gained to rounding.
"""

from collections.abc import Sequence

from src.hl_common.errors import AmountMismatchError, EmptyParticipantsError
from src.hl_common.money import Money

BASIS_POINTS_TOTAL = 10_000


def allocate_equal(total: Money, n: int) -> list[Money]:
    """Split `total` into n shares; the first `total % n` participants get one extra unit.

    100 / 3 -> [34, 33, 33]
    """
    if n <= 0:
        raise EmptyParticipantsError("participant")
    sign = -1 if total.cents < 0 else 1
    base, remainder = divmod(abs(total.cents), n)
    return [
        Money(sign * (base + (1 if i < remainder else 0)), total.currency)
        for i in range(n)
    ]


def allocate_custom(total: Money, requested: Sequence[Money]) -> list[Money]:
    """Accept caller-chosen shares only if they add up to `total` exactly."""
    actual = Money.total(list(requested), total.currency)
    if actual != total:
        raise AmountMismatchError("Shares", total.cents, actual.cents)
    return list(requested)


def allocate_multi_payer(total: Money, payments: Sequence[Money]) -> list[Money]:
    """Accept per-payer contributions only if they add up to `total` exactly."""
    actual = Money.total(list(payments), total.currency)
    if actual != total:
        raise AmountMismatchError("Payments", total.cents, actual.cents)
    return list(payments)


def allocate_weighted(total: Money, weights: Sequence[int]) -> list[Money]:
    """Largest-remainder apportionment of `total` in proportion to `weights`.

    Weights are non-negative ints with a positive sum. A negative total is
    apportioned as the mirror image of its absolute value.
    """
    if not weights:
        raise EmptyParticipantsError("weight")
    if any(w < 0 for w in weights):
        raise ValueError(f"Weights must be non-negative, got {list(weights)}")
    weight_sum = sum(weights)
    if weight_sum <= 0:
        raise ValueError("Weights must have a positive sum")

    sign = -1 if total.cents < 0 else 1
    magnitude = abs(total.cents)
    quotas = [magnitude * w for w in weights]
    floors = [q // weight_sum for q in quotas]
    leftover = magnitude - sum(floors)

    # Stable sort keeps earlier positions first among equal remainders.
    order = sorted(range(len(weights)), key=lambda i: quotas[i] % weight_sum, reverse=True)
    for i in order[:leftover]:
        floors[i] += 1
    return [Money(sign * f, total.currency) for f in floors]


def allocate_percentage(total: Money, basis_points: Sequence[int]) -> list[Money]:
    """Split by percentages expressed in basis points (2500 = 25%)."""
    bps_sum = sum(basis_points)
    if bps_sum != BASIS_POINTS_TOTAL:
        raise AmountMismatchError("Percentages", BASIS_POINTS_TOTAL, bps_sum, unit="bps")
    return allocate_weighted(total, basis_points)
