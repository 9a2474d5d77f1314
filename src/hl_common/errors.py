"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Input validation (rejected before any persistence)
  2xxx: Expense / settlement / adjustment / recurring template
  9xxx: System (invariant violations, concurrency)
"""

from typing import Any


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Input validation ---

class UnbalancedSplitError(AppError):
    def __init__(self, detail: str, code: int = 1001) -> None:
        super().__init__(code, f"Unbalanced split: {detail}", 422)


class AmountMismatchError(UnbalancedSplitError):
    """Requested amounts do not add up to the total. Never silently corrected."""

    def __init__(self, kind: str, expected: int, actual: int, unit: str = "cents") -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{kind} sum to {actual} {unit}, expected {expected} {unit}", code=1002
        )


class EmptyParticipantsError(AppError):
    def __init__(self, side: str) -> None:
        super().__init__(1003, f"Expense needs at least one {side}", 422)


class NonPositiveAmountError(AppError):
    def __init__(self, field: str, amount: int) -> None:
        super().__init__(1004, f"{field} must be positive, got {amount} cents", 422)


class CurrencyMismatchError(AppError):
    def __init__(self, left: str, right: str) -> None:
        super().__init__(1005, f"Currency mismatch: {left} vs {right}", 422)


class BlankDescriptionError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Expense description must not be blank", 422)


class InvalidScheduleError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1007, f"Invalid recurring schedule: {detail}", 422)


# --- 2xxx: Expense / settlement / adjustment ---

class ExpenseNotFoundError(AppError):
    def __init__(self, expense_id: str) -> None:
        super().__init__(2001, f"Expense not found: {expense_id}", 404)


class UnknownShareError(AppError):
    def __init__(self, expense_id: str, member_id: str) -> None:
        super().__init__(
            2002, f"Member {member_id} has no share on expense {expense_id}", 422
        )


class OverSettlementError(AppError):
    def __init__(self, requested: int, outstanding: int) -> None:
        super().__init__(
            2003,
            f"Settlement of {requested} cents exceeds outstanding {outstanding} cents",
            422,
        )


class SettledExpenseRequiresConfirmationError(AppError):
    """Expected control-flow signal: the caller must resubmit with confirm=True."""

    def __init__(self, expense_id: str, preview: dict[str, Any]) -> None:
        self.preview = preview
        super().__init__(
            2004,
            f"Expense {expense_id} has settlements; confirm to apply an adjustment",
            409,
        )


class AdjustmentNotFoundError(AppError):
    def __init__(self, adjustment_id: str) -> None:
        super().__init__(2005, f"Adjustment not found: {adjustment_id}", 404)


class ExpenseVoidedError(AppError):
    def __init__(self, expense_id: str) -> None:
        super().__init__(2006, f"Expense {expense_id} is voided", 409)


class AdjustmentAlreadyRevertedError(AppError):
    def __init__(self, adjustment_id: str) -> None:
        super().__init__(2007, f"Adjustment {adjustment_id} was already reverted", 409)


class RecurringExpenseNotFoundError(AppError):
    def __init__(self, recurring_id: str) -> None:
        super().__init__(2008, f"Recurring expense not found: {recurring_id}", 404)


# --- 9xxx: System ---

class LedgerCorruptionError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9001, f"Ledger corruption: {detail}", 500)


class ConcurrentModificationError(AppError):
    def __init__(self, expense_id: str, retryable: bool = True) -> None:
        self.retryable = retryable
        super().__init__(
            9002, f"Expense {expense_id} was modified concurrently", 409
        )


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9003, detail, 500)
