"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class ExpenseStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EDITED = "EDITED"
    SETTLED = "SETTLED"
    VOIDED = "VOIDED"


class AdjustmentLineType(str, Enum):
    CONTRIBUTION = "CONTRIBUTION"
    SHARE = "SHARE"
    CREDIT = "CREDIT"


class EditMode(str, Enum):
    """How an edit was applied to the stored expense."""
    REWRITE = "REWRITE"
    ADJUSTMENT = "ADJUSTMENT"


class SplitMode(str, Enum):
    EQUAL = "EQUAL"
    CUSTOM = "CUSTOM"
    PERCENTAGE = "PERCENTAGE"


class LedgerEventType(str, Enum):
    EXPENSE = "EXPENSE"
    SETTLEMENT = "SETTLEMENT"
    ADJUSTMENT = "ADJUSTMENT"


class RecurringFrequency(str, Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"
