import logging
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID, uuid4

from .config import Settings, get_settings
from .engine import compute_balances, validate_entry
from .errors import (
    DuplicateMemberError,
    GroupNotFoundError,
    IdempotencyConflictError,
    MemberHasBalanceError,
    MemberNotInGroupError,
)
from .export import generate_csv
from .models import (
    AnalyticsData,
    CreateGroupRequest,
    EntryKind,
    EntryResponse,
    Group,
    GroupBalancesResponse,
    LedgerEntry,
    RecordExpenseRequest,
    RecordPaymentRequest,
    SettleUpResponse,
)
from .planner import plan_settlements

logger = logging.getLogger(__name__)

EntryListener = Callable[[LedgerEntry], None]

_ENTRY_IDENTITY = ("kind", "amount", "payer", "participants", "from_member", "to_member")


class InMemoryStorage:
    def __init__(self):
        self.groups: dict[UUID, dict] = {}
        self.entries: dict[UUID, LedgerEntry] = {}
        self.idempotency_index: dict[tuple[UUID, str], UUID] = {}


class SettleUpService:
    def __init__(self, storage: Optional[InMemoryStorage] = None, settings: Optional[Settings] = None):
        self.storage = storage or InMemoryStorage()
        self.settings = settings or get_settings()
        self._listeners: list[EntryListener] = []

    # Groups

    def create_group(self, request: CreateGroupRequest) -> Group:
        members = list(dict.fromkeys(request.members))
        if request.owner and request.owner not in members:
            members.insert(0, request.owner)

        group_data = {
            "id": uuid4(),
            "name": request.name,
            "owner": request.owner,
            "members": members,
            "created_at": datetime.now(timezone.utc),
        }
        self.storage.groups[group_data["id"]] = group_data
        logger.info("Created group %s with %d members", group_data["id"], len(members))
        return Group(**group_data)

    def get_group(self, group_id: UUID) -> Group:
        return Group(**self._group_data(group_id))

    def list_groups(self) -> list[Group]:
        return [Group(**g) for g in self.storage.groups.values()]

    def add_member(self, group_id: UUID, member: str) -> Group:
        group_data = self._group_data(group_id)
        if member in group_data["members"]:
            raise DuplicateMemberError(f"{member} is already a member of group {group_id}")
        group_data["members"].append(member)
        logger.info("Added %s to group %s", member, group_id)
        return Group(**group_data)

    def remove_member(self, group_id: UUID, member: str) -> Group:
        group_data = self._group_data(group_id)
        if member not in group_data["members"]:
            raise MemberNotInGroupError(f"{member} is not a member of group {group_id}")

        balance = compute_balances(
            group_data["members"], self.list_entries(group_id), self.settings
        ).balances[member]
        if abs(balance) > self.settings.tolerance:
            raise MemberHasBalanceError(
                f"{member} still has a balance of {balance} in group {group_id}; settle up first"
            )

        group_data["members"].remove(member)
        logger.info("Removed %s from group %s", member, group_id)
        return Group(**group_data)

    # Entries

    def record_expense(self, group_id: UUID, request: RecordExpenseRequest) -> EntryResponse:
        entry = LedgerEntry.expense(
            amount=request.amount,
            payer=request.payer,
            participants=request.participants,
            group_id=group_id,
            title=request.title,
            category=request.category,
            idempotency_key=request.idempotency_key,
        )
        return self._record(group_id, entry)

    def record_payment(self, group_id: UUID, request: RecordPaymentRequest) -> EntryResponse:
        entry = LedgerEntry.payment(
            amount=request.amount,
            from_member=request.from_member,
            to_member=request.to_member,
            group_id=group_id,
            title=request.title,
            category="Payment",
            idempotency_key=request.idempotency_key,
        )
        return self._record(group_id, entry)

    def list_entries(self, group_id: UUID) -> list[LedgerEntry]:
        self._group_data(group_id)
        return [e for e in self.storage.entries.values() if e.group_id == group_id]

    # Balances

    def get_balances(self, group_id: UUID) -> GroupBalancesResponse:
        group_data = self._group_data(group_id)
        sheet = compute_balances(group_data["members"], self.list_entries(group_id), self.settings)
        return GroupBalancesResponse(
            group_id=group_id,
            currency=self.settings.currency,
            balances=sheet.breakdown,
            unknown_members=sheet.unknown_members,
        )

    def get_settle_up(self, group_id: UUID) -> SettleUpResponse:
        group_data = self._group_data(group_id)
        sheet = compute_balances(group_data["members"], self.list_entries(group_id), self.settings)
        return SettleUpResponse(
            group_id=group_id,
            currency=self.settings.currency,
            balances=sheet.breakdown,
            settlements=plan_settlements(sheet.balances, self.settings),
        )

    # Reporting

    def get_analytics(self, group_id: Optional[UUID] = None) -> AnalyticsData:
        expenses = [e for e in self._entries_for(group_id) if e.kind == EntryKind.EXPENSE]
        by_category: dict[str, Decimal] = defaultdict(Decimal)
        for expense in expenses:
            by_category[expense.category] += expense.amount

        return AnalyticsData(
            currency=self.settings.currency,
            total_spending=sum((e.amount for e in expenses), Decimal("0.00")),
            spending_by_category=dict(by_category),
            expense_count=len(expenses),
        )

    def export_csv(self, group_id: Optional[UUID] = None) -> str:
        return generate_csv(self._entries_for(group_id))

    # Listeners

    def subscribe(self, listener: EntryListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: EntryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _record(self, group_id: UUID, entry: LedgerEntry) -> EntryResponse:
        group_data = self._group_data(group_id)

        existing = self._check_idempotency(group_id, entry)
        if existing:
            return EntryResponse(entry=existing, message="Entry already exists (idempotent return)")

        validate_entry(entry, self.settings)
        outsiders = [m for m in entry.members if m not in group_data["members"]]
        if outsiders:
            raise MemberNotInGroupError(
                f"{', '.join(outsiders)} not a member of group {group_id}"
            )

        self.storage.entries[entry.id] = entry
        if entry.idempotency_key:
            self.storage.idempotency_index[(group_id, entry.idempotency_key)] = entry.id
        logger.info("Recorded %s %s of %s in group %s", entry.kind.value, entry.id, entry.amount, group_id)

        self._notify(entry)
        return EntryResponse(entry=entry, message=f"{entry.kind.value.capitalize()} recorded successfully")

    def _notify(self, entry: LedgerEntry) -> None:
        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception:
                logger.exception("Entry listener %r failed for entry %s", listener, entry.id)

    def _check_idempotency(self, group_id: UUID, entry: LedgerEntry) -> Optional[LedgerEntry]:
        if not entry.idempotency_key:
            return None
        entry_id = self.storage.idempotency_index.get((group_id, entry.idempotency_key))
        if not entry_id:
            return None

        existing = self.storage.entries[entry_id]
        for name in _ENTRY_IDENTITY:
            if getattr(existing, name) != getattr(entry, name):
                raise IdempotencyConflictError(
                    f"Idempotency key {entry.idempotency_key!r} already used for a different entry"
                )
        return existing

    def _entries_for(self, group_id: Optional[UUID]) -> list[LedgerEntry]:
        if group_id is None:
            return list(self.storage.entries.values())
        return self.list_entries(group_id)

    def _group_data(self, group_id: UUID) -> dict:
        group_data = self.storage.groups.get(group_id)
        if not group_data:
            raise GroupNotFoundError(f"Group {group_id} not found")
        return group_data
