from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID


class ErrorKind(str, Enum):
    INVALID_ENTRY = "INVALID_ENTRY"
    UNKNOWN_MEMBER = "UNKNOWN_MEMBER"
    IMBALANCE_INCONSISTENCY = "IMBALANCE_INCONSISTENCY"
    GROUP_NOT_FOUND = "GROUP_NOT_FOUND"
    MEMBER_NOT_IN_GROUP = "MEMBER_NOT_IN_GROUP"
    DUPLICATE_MEMBER = "DUPLICATE_MEMBER"
    MEMBER_HAS_BALANCE = "MEMBER_HAS_BALANCE"
    IDEMPOTENCY_CONFLICT = "IDEMPOTENCY_CONFLICT"


class SettleUpError(Exception):
    kind: ErrorKind

    def to_detail(self) -> dict:
        return {"kind": self.kind.value, "message": str(self)}


class InvalidEntryError(SettleUpError):
    kind = ErrorKind.INVALID_ENTRY

    def __init__(self, entry_id: Optional[UUID], reason: str):
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Invalid entry {entry_id}: {reason}")


class ImbalanceInconsistencyError(SettleUpError):
    kind = ErrorKind.IMBALANCE_INCONSISTENCY

    def __init__(self, residual: Decimal, message: str):
        self.residual = residual
        super().__init__(f"{message} (residual {residual})")


class GroupNotFoundError(SettleUpError):
    kind = ErrorKind.GROUP_NOT_FOUND


class MemberNotInGroupError(SettleUpError):
    kind = ErrorKind.MEMBER_NOT_IN_GROUP


class DuplicateMemberError(SettleUpError):
    kind = ErrorKind.DUPLICATE_MEMBER


class MemberHasBalanceError(SettleUpError):
    kind = ErrorKind.MEMBER_HAS_BALANCE


class IdempotencyConflictError(SettleUpError):
    kind = ErrorKind.IDEMPOTENCY_CONFLICT
