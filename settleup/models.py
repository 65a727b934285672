from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntryKind(str, Enum):
    EXPENSE = "expense"
    PAYMENT = "payment"


class LedgerEntry(BaseModel):
    """An append-only record of money moving inside one group."""

    id: UUID = Field(default_factory=uuid4)
    group_id: Optional[UUID] = None
    kind: EntryKind
    amount: Decimal
    title: str = ""
    category: str = "Default"
    payer: Optional[str] = None
    participants: tuple[str, ...] = ()
    from_member: Optional[str] = Field(default=None, alias="from")
    to_member: Optional[str] = Field(default=None, alias="to")
    idempotency_key: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True, populate_by_name=True, from_attributes=True)

    @field_validator("participants", mode="before")
    @classmethod
    def _distinct_participants(cls, value):
        if value is None:
            return ()
        return tuple(dict.fromkeys(value))

    @classmethod
    def expense(cls, amount, payer: str, participants, **kwargs) -> "LedgerEntry":
        return cls(kind=EntryKind.EXPENSE, amount=amount, payer=payer, participants=participants, **kwargs)

    @classmethod
    def payment(cls, amount, from_member: str, to_member: str, **kwargs) -> "LedgerEntry":
        return cls(
            kind=EntryKind.PAYMENT, amount=amount,
            from_member=from_member, to_member=to_member, **kwargs
        )

    @property
    def members(self) -> tuple[str, ...]:
        if self.kind == EntryKind.EXPENSE:
            named = (self.payer,) + self.participants
        else:
            named = (self.from_member, self.to_member)
        return tuple(dict.fromkeys(m for m in named if m))


class Settlement(BaseModel):
    from_member: str = Field(..., alias="from")
    to_member: str = Field(..., alias="to")
    amount: Decimal

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class UnknownMember(BaseModel):
    entry_id: UUID
    member: str
    role: str


class MemberBalance(BaseModel):
    member: str
    contributed: Decimal
    owed: Decimal
    net: Decimal


class BalanceSheet(BaseModel):
    balances: dict[str, Decimal]
    breakdown: list[MemberBalance]
    unknown_members: list[UnknownMember] = Field(default_factory=list)


class SettleUpResult(BaseModel):
    sheet: BalanceSheet
    settlements: list[Settlement]


class Group(BaseModel):
    id: UUID
    name: str
    owner: Optional[str] = None
    members: list[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CreateGroupRequest(BaseModel):
    name: str = Field(..., description="Display name of the group")
    owner: Optional[str] = None
    members: list[str] = Field(default_factory=list)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Goa trip",
            "owner": "asha@example.com",
            "members": ["asha@example.com", "ravi@example.com", "meera@example.com"]
        }
    })


class AddMemberRequest(BaseModel):
    member: str


class RecordExpenseRequest(BaseModel):
    idempotency_key: Optional[str] = Field(default=None, description="Repeat-safe key for the entry")
    title: str = ""
    category: str = "Default"
    amount: Decimal
    payer: str
    participants: list[str]

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "idempotency_key": "dinner-2024-03-02",
            "title": "Dinner",
            "category": "Food",
            "amount": 150.00,
            "payer": "asha@example.com",
            "participants": ["asha@example.com", "ravi@example.com", "meera@example.com"]
        }
    })


class RecordPaymentRequest(BaseModel):
    idempotency_key: Optional[str] = None
    title: str = "Payment"
    amount: Decimal
    from_member: str = Field(..., alias="from")
    to_member: str = Field(..., alias="to")

    model_config = ConfigDict(populate_by_name=True)


class EntryResponse(BaseModel):
    entry: LedgerEntry
    message: str


class GroupBalancesResponse(BaseModel):
    group_id: UUID
    currency: str
    balances: list[MemberBalance]
    unknown_members: list[UnknownMember]


class SettleUpResponse(BaseModel):
    group_id: UUID
    currency: str
    balances: list[MemberBalance]
    settlements: list[Settlement]


class AnalyticsData(BaseModel):
    currency: str
    total_spending: Decimal
    spending_by_category: dict[str, Decimal]
    expense_count: int
